"""
Fetch transaction history for a wallet through the Alchemy worker.

Run from command line:
  python example.py                                   # default demo wallet on eth mainnet
  python example.py 0x... --networks eth-mainnet,base-mainnet --limit 10
  python example.py 0x... --find-by gasPrice --find-value 15666336304

Reads ALCHEMY_API_KEY and GAME_AGENT_API_KEY from the environment or .env;
both fall back to "demo".
"""

import argparse
import json
import os
import sys

from dotenv import load_dotenv

from alchemy_plugin import AlchemyPlugin
from config import AlchemyConfig, get_logger, mask_secret, setup_logging
from worker import FunctionRegistry

load_dotenv()
logger = get_logger(__name__)

DEFAULT_WALLET = "0xe5cB067E90D5Cd1F8052B83562Ae670bA4A211a8"
DEMO_KEY = "demo"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fetch wallet transaction history via Alchemy.")
    parser.add_argument("address", nargs="?", default=DEFAULT_WALLET, help="EVM wallet address (0x...)")
    parser.add_argument("--networks", help='Comma-separated or JSON list, e.g. "eth-mainnet,base-mainnet"')
    parser.add_argument("--limit", help="Max transactions to return (default 25)")
    parser.add_argument("--find-by", dest="find_by", help="Transaction field to match, e.g. gasPrice")
    parser.add_argument("--find-value", dest="find_value", help="Value the field must equal")
    return parser.parse_args(argv)


def main(argv=None):
    """Run one get_transaction_history call and print the result as JSON."""
    setup_logging()
    opts = parse_args(argv)

    config = AlchemyConfig.from_env(default_api_key=DEMO_KEY)
    agent_key = os.getenv("GAME_AGENT_API_KEY") or DEMO_KEY
    # The agent runtime is external; the key is only reported here
    logger.info("Agent key: %s", mask_secret(agent_key))

    registry = FunctionRegistry()
    registry.register_worker(AlchemyPlugin(config=config).get_worker())

    args = {"address": opts.address}
    for key, value in (
        ("networks", opts.networks),
        ("limit", opts.limit),
        ("findBy", opts.find_by),
        ("findValue", opts.find_value),
    ):
        if value is not None:
            args[key] = value

    result = registry.invoke("get_transaction_history", args, lambda line: print(line, file=sys.stderr))

    # Output JSON to stdout (so you can pipe to a file or other tools)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
