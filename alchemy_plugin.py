"""
Alchemy Worker - Transaction history plugin.

Wraps the Alchemy transaction-history endpoint as a worker function:
validate loosely-typed arguments, send one request, optionally filter the
transactions by a single field/value pair and report a status/feedback pair.
"""

import json
import math
import re
from dataclasses import dataclass

import data_fetch
from config import AlchemyConfig, get_logger
from worker import FunctionArg, FunctionResult, LogSink, Worker, WorkerFunction

logger = get_logger(__name__)

DEFAULT_ID = "alchemy_worker"
DEFAULT_NAME = "Alchemy Worker"
DEFAULT_DESCRIPTION = (
    "A worker that fetches on-chain data using the Alchemy API, such as transaction history "
    "for an EVM address (wallet address). Currently only supports fetching transaction history. "
    "Networks supported are ETH (eth-mainnet) and BASE (base-mainnet) mainnet networks."
)

# Valid Ethereum address: 0x + 40 hex chars
WALLET_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
EXAMPLE_ADDRESS = "0x1E6E8695FAb3Eb382534915eA8d7Cc1D1994B152"

DEFAULT_NETWORKS = ("ETH_MAINNET",)
DEFAULT_LIMIT = 25
# Leading ASCII integer; anything after it ("10abc", "25.0") is ignored
LIMIT_PATTERN = re.compile(r"\s*([+-]?[0-9]+)")

MSG_ADDRESS_REQUIRED = "Wallet address is required."
MSG_ADDRESS_INVALID = (
    "Invalid wallet address format. Must be a valid Ethereum address "
    f"(e.g., {EXAMPLE_ADDRESS})."
)
MSG_NETWORKS_INVALID = "Networks must be a list or a comma-separated string."
MSG_LIMIT_INVALID = "Limit must be a positive number."
MSG_NOT_FOUND = "No transaction history found"
MSG_SUCCESS = "Transaction history fetched successfully."
RESULT_MARKER = "Result: "

TRANSACTION_HISTORY_ARGS = (
    FunctionArg(
        "address",
        f"The EVM address to fetch transaction history for (e.g., {EXAMPLE_ADDRESS})",
    ),
    FunctionArg(
        "networks",
        'Array of networks to query the transaction history on (e.g., ["eth-mainnet", "base-mainnet"]). '
        'Defaults to ["eth-mainnet"] if not provided. Currently only supports ETH and BASE mainnet networks.',
        type="array",
    ),
    FunctionArg(
        "limit",
        "Maximum number of transactions to return. Defaults to 25 if not provided. Maximum limit is 50.",
        type="number",
    ),
    FunctionArg(
        "findBy",
        "Find transactions by a specific field (e.g., gasPrice).",
        optional=True,
    ),
    FunctionArg(
        "findValue",
        "Value to find transactions by (e.g., 15666336304).",
        optional=True,
    ),
)


@dataclass(frozen=True)
class TransactionHistoryRequest:
    """Validated arguments for one transaction-history call."""

    address: str
    networks: tuple[str, ...] = DEFAULT_NETWORKS
    limit: int = DEFAULT_LIMIT
    find_by: str | None = None
    find_value: str | None = None

    @property
    def wants_filter(self) -> bool:
        return bool(self.find_by) and bool(self.find_value)

    def to_request_body(self) -> dict:
        return {
            "addresses": [
                {
                    "address": self.address,
                    "networks": list(self.networks),
                },
            ],
            "limit": self.limit,
        }


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_networks(raw):
    """
    Normalize networks to a tuple of upper-cased identifiers.
    Returns (networks, None) or (None, error_message).
    """
    if _is_blank(raw):
        return DEFAULT_NETWORKS, None

    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            # Agents often hand over Python-style lists: ['eth-mainnet']
            try:
                items = json.loads(text.replace("'", '"'))
            except ValueError:
                return None, MSG_NETWORKS_INVALID
            if not isinstance(items, list):
                return None, MSG_NETWORKS_INVALID
        else:
            items = text.split(",")
    elif isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        return None, MSG_NETWORKS_INVALID

    if not all(isinstance(item, str) for item in items):
        return None, MSG_NETWORKS_INVALID
    networks = tuple(item.strip().upper() for item in items if item.strip())
    if not networks:
        return DEFAULT_NETWORKS, None
    return networks, None


def _parse_limit(raw):
    """Returns (limit, None) or (None, error_message). Blank means the default."""
    if _is_blank(raw):
        return DEFAULT_LIMIT, None
    if isinstance(raw, bool):
        return None, MSG_LIMIT_INVALID
    if isinstance(raw, int):
        limit = raw
    elif isinstance(raw, float):
        if not math.isfinite(raw):
            return None, MSG_LIMIT_INVALID
        limit = int(raw)
    elif isinstance(raw, str):
        match = LIMIT_PATTERN.match(raw)
        if not match:
            return None, MSG_LIMIT_INVALID
        limit = int(match.group(1))
    else:
        return None, MSG_LIMIT_INVALID
    if limit <= 0:
        return None, MSG_LIMIT_INVALID
    return limit, None


def parse_transaction_history_args(args: dict):
    """
    Turn raw function arguments into a TransactionHistoryRequest.

    Checks run in a fixed order (address, address format, networks, limit) and
    the first failure wins.

    Returns:
        (request, None) when valid, or (None, error_message).
    """
    address = args.get("address")
    if _is_blank(address):
        return None, MSG_ADDRESS_REQUIRED
    if not isinstance(address, str) or not WALLET_PATTERN.fullmatch(address):
        return None, MSG_ADDRESS_INVALID

    networks, err = _parse_networks(args.get("networks"))
    if err:
        return None, err

    limit, err = _parse_limit(args.get("limit"))
    if err:
        return None, err

    find_by = args.get("findBy")
    find_value = args.get("findValue")
    return TransactionHistoryRequest(
        address=address,
        networks=networks,
        limit=limit,
        find_by=None if _is_blank(find_by) else str(find_by),
        find_value=None if _is_blank(find_value) else str(find_value),
    ), None


def filter_transactions(result: dict, find_by: str, find_value: str) -> dict:
    """Keep only transactions whose find_by field equals find_value; recount."""
    transactions = result.get("transactions") or []
    matched = [tx for tx in transactions if isinstance(tx, dict) and tx.get(find_by) == find_value]
    return {**result, "transactions": matched, "totalCount": len(matched)}


def format_success(result: dict) -> str:
    """Success feedback; the JSON after RESULT_MARKER parses back to the envelope."""
    return f"{MSG_SUCCESS} {RESULT_MARKER}{json.dumps(result)}"


class AlchemyPlugin:
    """
    Exposes Alchemy transaction history as the get_transaction_history
    worker function. Holds only its immutable config.
    """

    def __init__(
        self,
        api_key: str | None = None,
        id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        config: AlchemyConfig | None = None,
    ):
        if config is None:
            if not api_key:
                raise ValueError("Alchemy API key is required.")
            config = AlchemyConfig(api_key=api_key)
        self.config = config
        self.id = id or DEFAULT_ID
        self.name = name or DEFAULT_NAME
        self.description = description or DEFAULT_DESCRIPTION

    def get_worker(self, functions=None, get_environment=None) -> Worker:
        return Worker(
            id=self.id,
            name=self.name,
            description=self.description,
            functions=list(functions or [self.transaction_history_function]),
            get_environment=get_environment,
        )

    @property
    def transaction_history_function(self) -> WorkerFunction:
        return WorkerFunction(
            name="get_transaction_history",
            description=(
                "Fetches the transaction history for a given EVM address across specified blockchain "
                "networks using the Alchemy API. The networks supported are ETH (eth-mainnet) and "
                "BASE (base-mainnet) mainnet networks. Apply filters to find transactions by a "
                "specific field (e.g., gasPrice) if given."
            ),
            args=TRANSACTION_HISTORY_ARGS,
            executable=self.get_transaction_history,
        )

    def get_transaction_history(self, args: dict, log: LogSink) -> FunctionResult:
        """
        Fetch transaction history for args["address"].

        Validation failures return before anything is logged or sent.
        Log lines: start of fetch, then either the transport error or the
        success count.
        """
        request, err = parse_transaction_history_args(args)
        if err:
            logger.info("Rejected get_transaction_history args: %s", err)
            return FunctionResult.failed(err)

        def emit(line):
            logger.info(line)
            log(line)

        emit(
            f"Fetching transaction history for address: {request.address} "
            f"on networks: {', '.join(request.networks)}"
        )

        try:
            result = data_fetch.post_transaction_history(self.config, request.to_request_body())
        except data_fetch.AlchemyRequestError as e:
            emit(f"Error: {e.message}")
            return FunctionResult.failed(
                f"Failed to fetch transaction history: {e.server_message or e.message}"
            )

        if request.wants_filter:
            result = filter_transactions(result, request.find_by, request.find_value)
            if not result["totalCount"]:
                logger.info("No transactions with %s == %s", request.find_by, request.find_value)
                return FunctionResult.failed(MSG_NOT_FOUND)

        count = result.get("totalCount")
        if count is None:
            count = len(result.get("transactions") or [])
        emit(f"Successfully fetched {count} transactions.")
        return FunctionResult.done(format_success(result))
