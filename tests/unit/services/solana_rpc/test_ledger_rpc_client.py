"""Unit tests for SolanaRPCClient.

Tests the JSON-RPC ledger connection with mocked HTTP responses using respx.
"""

import base64
import json
from unittest.mock import AsyncMock, patch

import pytest
import respx
from httpx import Response

from stakeflow.config.settings import Settings
from stakeflow.core.exceptions import LedgerConnectionError
from stakeflow.services.solana.rpc_client import SolanaRPCClient

from conftest import WALLET

RPC_URL = "https://rpc.test.invalid"


def rpc_result(result):
    return Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


@pytest.fixture
def rpc_client():
    """Create SolanaRPCClient against a fake endpoint."""
    settings = Settings(_env_file=None, solana_rpc_url=RPC_URL)
    return SolanaRPCClient(settings)


@pytest.fixture
def no_backoff():
    with patch("stakeflow.services.base.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestGetAccountInfo:
    """Tests for get_account_info."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_returns_value(self, rpc_client):
        route = respx.post(RPC_URL).mock(
            return_value=rpc_result({"context": {"slot": 1}, "value": {"lamports": 42}})
        )

        info = await rpc_client.get_account_info(WALLET)

        assert info == {"lamports": 42}
        body = json.loads(route.calls[0].request.content)
        assert body["method"] == "getAccountInfo"
        assert body["params"][1] == {"encoding": "jsonParsed"}
        await rpc_client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_account_is_none(self, rpc_client):
        respx.post(RPC_URL).mock(return_value=rpc_result({"context": {}, "value": None}))

        assert await rpc_client.get_account_info(WALLET) is None
        await rpc_client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_rpc_error_wrapped(self, rpc_client):
        respx.post(RPC_URL).mock(
            return_value=Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}},
            )
        )

        with pytest.raises(LedgerConnectionError) as exc_info:
            await rpc_client.get_account_info(WALLET)

        assert exc_info.value.address == WALLET
        assert "bad" in str(exc_info.value)
        await rpc_client.close()


class TestGetTokenAccounts:
    """Tests for get_token_accounts_by_owner."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_parses_accounts_and_skips_malformed(self, rpc_client):
        respx.post(RPC_URL).mock(
            return_value=rpc_result(
                {
                    "value": [
                        {
                            "pubkey": "Acct1",
                            "account": {
                                "data": {
                                    "parsed": {
                                        "info": {
                                            "mint": "MintA",
                                            "owner": WALLET,
                                            "tokenAmount": {"amount": "2500000", "decimals": 6},
                                        }
                                    }
                                }
                            },
                        },
                        {"pubkey": "Broken", "account": {"data": "raw"}},
                    ]
                }
            )
        )

        accounts = await rpc_client.get_token_accounts_by_owner(WALLET)

        assert len(accounts) == 1
        assert accounts[0].pubkey == "Acct1"
        assert accounts[0].amount == 2_500_000
        assert accounts[0].decimals == 6
        await rpc_client.close()


class TestSubmissionCalls:
    """Tests for send_transaction and get_signature_statuses."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_transaction_base64(self, rpc_client):
        route = respx.post(RPC_URL).mock(return_value=rpc_result("Sig111"))

        signature = await rpc_client.send_transaction(b"signed-bytes")

        assert signature == "Sig111"
        body = json.loads(route.calls[0].request.content)
        assert body["method"] == "sendTransaction"
        assert body["params"][0] == base64.b64encode(b"signed-bytes").decode()
        await rpc_client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_signature_statuses(self, rpc_client):
        respx.post(RPC_URL).mock(
            return_value=rpc_result(
                {"value": [{"confirmationStatus": "confirmed", "err": None}, None]}
            )
        )

        statuses = await rpc_client.get_signature_statuses(["Sig1", "Sig2"])

        assert statuses[0]["confirmationStatus"] == "confirmed"
        assert statuses[1] is None
        await rpc_client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_errors_exhaust_retries(self, rpc_client, no_backoff):
        route = respx.post(RPC_URL).mock(return_value=Response(503))

        with pytest.raises(LedgerConnectionError):
            await rpc_client.send_transaction(b"tx")

        assert route.call_count == rpc_client.max_retries
        assert no_backoff.await_count == rpc_client.max_retries - 1
        await rpc_client.close()
