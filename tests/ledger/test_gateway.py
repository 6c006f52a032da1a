import json

import httpx
import pytest

from notes_sync.ledger.config import LedgerConfig
from notes_sync.ledger.gateway import GatewayLedgerConnection
from notes_sync.ledger.models import Note, TxLookupState
from notes_sync.sync.errors import NetworkError, RevertedError, SubmissionRejected

CONFIG = LedgerConfig(gateway_url="http://gateway.test/rpc", contract_address="0xcontract")


def _connection(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GatewayLedgerConnection(config=CONFIG, client=client), client


def _rpc_result(request, result):
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def _rpc_error(request, code, message, data=None):
    body = json.loads(request.content)
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})


@pytest.mark.asyncio
async def test_call_decodes_note_lists():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return _rpc_result(
            request,
            [
                {
                    "id": 1,
                    "author": "0xabc",
                    "title": "T",
                    "content": "C",
                    "createdAt": 10,
                    "updatedAt": 10,
                    "isPublic": True,
                    "isPinned": False,
                    "tipsReceived": 0,
                    "version": 1,
                }
            ],
        )

    connection, client = _connection(handler)
    async with client:
        notes = await connection.call("getUserNotes", ("0xabc",))

    assert notes == [Note(id=1, author="0xabc", title="T", content="C", created_at=10, updated_at=10, is_public=True)]
    assert seen[0]["method"] == "notes_call"
    assert seen[0]["params"] == {"contract": "0xcontract", "function": "getUserNotes", "args": ["0xabc"]}


@pytest.mark.asyncio
async def test_call_decodes_counts():
    connection, client = _connection(lambda request: _rpc_result(request, "0x3"))
    async with client:
        assert await connection.call("getUserNoteCount", ("0xabc",)) == 3


@pytest.mark.asyncio
async def test_send_transaction_posts_hex_value():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return _rpc_result(request, "0xhash")

    connection, client = _connection(handler)
    async with client:
        tx_hash = await connection.send_transaction("tipNote", (3,), "0xabc", value=10**16)

    assert tx_hash == "0xhash"
    params = seen[0]["params"]
    assert seen[0]["method"] == "notes_sendTransaction"
    assert params["from"] == "0xabc"
    assert params["value"] == hex(10**16)
    assert params["args"] == [3]


@pytest.mark.asyncio
async def test_user_rejection_maps_to_submission_rejected():
    connection, client = _connection(lambda request: _rpc_error(request, 4001, "User rejected the request."))
    async with client:
        with pytest.raises(SubmissionRejected):
            await connection.send_transaction("deleteNote", (1,), "0xabc")


@pytest.mark.asyncio
async def test_execution_revert_maps_to_reverted_error():
    connection, client = _connection(
        lambda request: _rpc_error(request, 3, "execution reverted", data="Only the author can modify this note")
    )
    async with client:
        with pytest.raises(RevertedError) as exc_info:
            await connection.send_transaction("updateNote", (5, "t", "c"), "0xabc")

    assert exc_info.value.revert_reason == "Only the author can modify this note"


@pytest.mark.asyncio
async def test_http_failure_maps_to_network_error():
    connection, client = _connection(lambda request: httpx.Response(502, text="bad gateway"))
    async with client:
        with pytest.raises(NetworkError) as exc_info:
            await connection.block_number()

    assert "502" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_failure_maps_to_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    connection, client = _connection(handler)
    async with client:
        with pytest.raises(NetworkError):
            await connection.call("getPublicNotes")


@pytest.mark.asyncio
async def test_get_transaction_parses_receipt():
    receipt = {
        "txHash": "0xhash",
        "status": True,
        "blockNumber": 9,
        "events": [{"event": "NoteCreated", "args": {"noteId": 4, "author": "0xabc", "title": "T", "isPublic": True}}],
    }
    connection, client = _connection(lambda request: _rpc_result(request, {"state": "mined", "receipt": receipt}))
    async with client:
        lookup = await connection.get_transaction("0xhash")

    assert lookup.state is TxLookupState.MINED
    assert lookup.receipt.created_note_id() == 4


@pytest.mark.asyncio
async def test_unknown_functions_are_refused_locally():
    calls = []
    connection, client = _connection(lambda request: calls.append(request) or _rpc_result(request, None))
    async with client:
        with pytest.raises(ValueError):
            await connection.call("createNote", ())
        with pytest.raises(ValueError):
            await connection.send_transaction("getPublicNotes", (), "0xabc")

    assert calls == []


@pytest.mark.asyncio
async def test_null_transaction_lookup_means_not_seen_yet():
    connection, client = _connection(lambda request: _rpc_result(request, None))
    async with client:
        lookup = await connection.get_transaction("0xhash")

    assert lookup.state is TxLookupState.UNKNOWN
    assert lookup.receipt is None


@pytest.mark.asyncio
async def test_malformed_results_map_to_network_error():
    responses = {
        "notes_getTransaction": ["not", "a", "lookup"],
        "eth_blockNumber": None,
        "notes_call": [{"id": 1}],
    }

    def handler(request):
        body = json.loads(request.content)
        return _rpc_result(request, responses[body["method"]])

    connection, client = _connection(handler)
    async with client:
        with pytest.raises(NetworkError):
            await connection.get_transaction("0xhash")
        with pytest.raises(NetworkError):
            await connection.block_number()
        with pytest.raises(NetworkError):
            await connection.call("getPublicNotes")
