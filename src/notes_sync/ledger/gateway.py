import itertools
import logging
from typing import Any

import httpx

from notes_sync.ledger import READ_FUNCTIONS, WRITE_FUNCTIONS, LedgerConnection
from notes_sync.ledger.config import LedgerConfig, get_ledger_config
from notes_sync.ledger.models import Note, TxLookup, TxLookupState, as_int
from notes_sync.sync.errors import NetworkError, RevertedError, SubmissionRejected

logger = logging.getLogger(__name__)

# EIP-1193 "user rejected request"
USER_REJECTED_CODE = 4001
EXECUTION_REVERTED_CODE = 3

_NOTE_LIST_FUNCTIONS = frozenset({"getUserNotes", "getPublicNotes", "getPinnedNotes"})


class GatewayLedgerConnection(LedgerConnection):
    """JSON-RPC client for a ledger gateway that signs on the user's behalf."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or get_ledger_config()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.config.request_timeout)
        self._ids = itertools.count(1)

    async def call(self, function: str, args: tuple[Any, ...] = ()) -> Any:
        if function not in READ_FUNCTIONS:
            raise ValueError(f"unknown read function: {function}")
        result = await self._rpc(
            "notes_call",
            {"contract": self.config.contract_address, "function": function, "args": list(args)},
        )
        if function in _NOTE_LIST_FUNCTIONS:
            try:
                return [Note.from_dict(item) for item in result]
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise NetworkError(f"malformed {function} response: {exc}") from exc
        return _int_result(function, result)

    async def send_transaction(
        self, function: str, args: tuple[Any, ...], sender: str, value: int = 0
    ) -> str:
        if function not in WRITE_FUNCTIONS:
            raise ValueError(f"unknown write function: {function}")
        params = {
            "contract": self.config.contract_address,
            "function": function,
            "args": list(args),
            "from": sender,
            "value": hex(value),
        }
        result = await self._rpc("notes_sendTransaction", params)
        if not isinstance(result, str) or not result:
            raise NetworkError("gateway returned no transaction hash")
        return result

    async def get_transaction(self, tx_hash: str) -> TxLookup:
        result = await self._rpc("notes_getTransaction", [tx_hash])
        if result is None:
            # the node has not seen the hash (yet)
            return TxLookup(state=TxLookupState.UNKNOWN)
        if not isinstance(result, dict):
            raise NetworkError(f"malformed transaction lookup for {tx_hash}: {result!r}")
        try:
            return TxLookup.from_dict(result)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"malformed transaction lookup for {tx_hash}: {exc}") from exc

    async def block_number(self) -> int:
        result = await self._rpc("eth_blockNumber", [])
        return _int_result("eth_blockNumber", result)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _rpc(self, method: str, params: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.config.gateway_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("gateway %s returned HTTP %s", method, exc.response.status_code)
            raise NetworkError(
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("gateway %s failed: %s", method, exc)
            raise NetworkError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise NetworkError(f"gateway returned invalid JSON for {method}") from exc

        if not isinstance(body, dict):
            raise NetworkError(f"gateway returned a non-object body for {method}")

        error = body.get("error")
        if error is not None:
            raise _error_from_payload(error)
        return body.get("result")


def _error_from_payload(error: Any) -> Exception:
    if not isinstance(error, dict):
        return NetworkError(f"gateway error: {error}")
    code = error.get("code")
    message = str(error.get("message", "gateway error"))
    if code == USER_REJECTED_CODE:
        return SubmissionRejected(message)
    if code == EXECUTION_REVERTED_CODE:
        data = error.get("data")
        reason = data if isinstance(data, str) else message
        return RevertedError(message, revert_reason=reason)
    return NetworkError(f"gateway error {code}: {message}")


def _int_result(method: str, result: Any) -> int:
    try:
        return as_int(result)
    except (TypeError, ValueError) as exc:
        raise NetworkError(f"malformed {method} response: {result!r}") from exc
