"""
Alchemy Worker - Blockchain data fetching.

Posts transaction-history queries to the Alchemy Data API and returns the
decoded JSON envelope. One request per call, no retries.
"""

import requests

from config import AlchemyConfig, get_logger, mask_secret

logger = get_logger(__name__)

HISTORY_PATH = "/v1/{api_key}/transactions/history/by-address"

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class AlchemyRequestError(Exception):
    """
    Raised when the history request fails (network, timeout, non-2xx, bad JSON).

    message is the transport-level description; server_message is the
    upstream's own error.message when the response body carried one.
    """

    def __init__(self, message, server_message=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.server_message = server_message
        self.status_code = status_code


def build_history_url(config: AlchemyConfig) -> str:
    """Full URL of the transaction-history endpoint for this config."""
    return config.base_url + HISTORY_PATH.format(api_key=config.api_key)


def _server_error_message(response):
    """Pull error.message out of an Alchemy error body. None if absent."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return str(message) if message else None
    if isinstance(error, str) and error:
        return error
    return None


def post_transaction_history(config: AlchemyConfig, body: dict) -> dict:
    """
    POST a transaction-history query.

    Args:
        config: Alchemy settings (API key, base URL, timeout).
        body: Request body, e.g. {"addresses": [{"address": ..., "networks": [...]}], "limit": 25}.

    Returns:
        The decoded response envelope ({after, totalCount, transactions}).

    Raises:
        AlchemyRequestError on any transport or upstream failure.
    """
    url = build_history_url(config)
    safe_url = url.replace(config.api_key, mask_secret(config.api_key))
    logger.debug("POST %s body=%s", safe_url, body)

    try:
        resp = requests.post(url, json=body, headers=JSON_HEADERS, timeout=config.request_timeout)
    except requests.exceptions.Timeout:
        logger.warning("Alchemy request timeout (timeout=%ss)", config.request_timeout)
        raise AlchemyRequestError(f"Request timed out after {config.request_timeout}s")
    except requests.RequestException as e:
        logger.warning("Alchemy request failed: %s", e)
        raise AlchemyRequestError(str(e).replace(config.api_key, mask_secret(config.api_key)))

    if not resp.ok:
        server_message = _server_error_message(resp)
        message = f"Request failed with status code {resp.status_code}"
        logger.warning("Alchemy returned %s: %s", resp.status_code, server_message or resp.reason)
        raise AlchemyRequestError(message, server_message=server_message, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError:
        logger.warning("Alchemy response was not valid JSON")
        raise AlchemyRequestError("Invalid JSON in API response.", status_code=resp.status_code)
    if not isinstance(data, dict):
        raise AlchemyRequestError("Invalid JSON in API response.", status_code=resp.status_code)
    return data
