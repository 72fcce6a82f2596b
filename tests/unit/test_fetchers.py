"""Unit tests for fetchers and the RPC client"""
import base64
import json

import base58
import httpx
import pytest

from dexparser import DexParser, ParseConfig, RpcConfig
from dexparser.config import MAINNET_RPC, RPC_URL_ENV
from dexparser.constants import ALT_PROGRAM_ID
from dexparser.core import TransactionAdapter
from dexparser.fetchers import (
    AltsFetcher,
    FetchFilter,
    RpcClient,
    RpcError,
    TokenAccountInfo,
    TokenAccountsFetcher,
    resolve_loaded_addresses,
    resolve_token_accounts,
)
from dexparser.fetchers.rpc import decode_lookup_table

from conftest import MEME_MINT, UNKNOWN_DEX, USER, TxBuilder, key

TABLE = key(80)
TABLE_ADDRESSES = [key(81), key(82), key(83)]


def v0_tx():
    builder = TxBuilder()
    builder.add_instruction(UNKNOWN_DEX, [USER])
    tx = builder.build()
    tx["transaction"]["message"]["addressTableLookups"] = [
        {"accountKey": TABLE, "writableIndexes": [2], "readonlyIndexes": [0]},
    ]
    return tx


def table_account(addresses):
    data = bytes(56) + b"".join(base58.b58decode(a) for a in addresses)
    return {"data": [base64.b64encode(data).decode(), "base64"], "owner": ALT_PROGRAM_ID, "lamports": 1}


def mock_client(handler) -> RpcClient:
    transport = httpx.MockTransport(handler)
    return RpcClient(RpcConfig(rpc_url="http://rpc.test"), client=httpx.Client(transport=transport))


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestFetchFilter:
    def test_all(self):
        assert FetchFilter.ALL.admits([], None)

    def test_program(self):
        config = ParseConfig(program_ids=[UNKNOWN_DEX])
        assert FetchFilter.PROGRAM.admits([USER, UNKNOWN_DEX], config)
        assert not FetchFilter.PROGRAM.admits([USER], config)
        assert not FetchFilter.PROGRAM.admits([USER, UNKNOWN_DEX], None)

    def test_account(self):
        config = ParseConfig(account_include=[USER])
        assert FetchFilter.ACCOUNT.admits([USER], config)
        assert not FetchFilter.ACCOUNT.admits([key(90)], config)


class TestResolveLoadedAddresses:
    def test_fills_loaded_addresses(self):
        calls = []

        def fetch(keys):
            calls.append(keys)
            return {TABLE: TABLE_ADDRESSES}

        tx = v0_tx()
        resolved = resolve_loaded_addresses(tx, AltsFetcher(FetchFilter.ALL, fetch))
        assert calls == [[TABLE]]
        assert resolved["meta"]["loadedAddresses"] == {"writable": [key(83)], "readonly": [key(81)]}
        assert "loadedAddresses" not in tx["meta"]

        adapter = TransactionAdapter(resolved)
        assert adapter.account_keys[-2:] == [key(83), key(81)]

    def test_without_fetcher_or_lookups(self, swap_tx):
        tx = v0_tx()
        assert resolve_loaded_addresses(tx, None) is tx
        fetcher = AltsFetcher(FetchFilter.ALL, lambda keys: pytest.fail("should not fetch"))
        assert resolve_loaded_addresses(swap_tx, fetcher) is swap_tx

    def test_existing_loaded_addresses_are_kept(self):
        tx = v0_tx()
        tx["meta"]["loadedAddresses"] = {"writable": [key(84)], "readonly": []}
        fetcher = AltsFetcher(FetchFilter.ALL, lambda keys: pytest.fail("should not fetch"))
        assert resolve_loaded_addresses(tx, fetcher) is tx

    def test_filter_rejects(self):
        tx = v0_tx()
        fetcher = AltsFetcher(FetchFilter.PROGRAM, lambda keys: pytest.fail("should not fetch"))
        assert resolve_loaded_addresses(tx, fetcher, ParseConfig(program_ids=[key(90)])) is tx

    def test_missing_table(self):
        with pytest.raises(ValueError, match="not found"):
            resolve_loaded_addresses(v0_tx(), AltsFetcher(FetchFilter.ALL, lambda keys: {}))

    def test_index_out_of_range(self):
        fetcher = AltsFetcher(FetchFilter.ALL, lambda keys: {TABLE: TABLE_ADDRESSES[:1]})
        with pytest.raises(ValueError, match="out of range"):
            resolve_loaded_addresses(v0_tx(), fetcher)

    def test_parse_reports_fetch_failure(self):
        config = ParseConfig(alts_fetcher=AltsFetcher(FetchFilter.ALL, lambda keys: {}))
        result = DexParser().parse_all(v0_tx(), config)
        assert not result.state
        assert "Lookup table not found" in result.msg


class TestResolveTokenAccounts:
    def _adapter(self):
        builder = TxBuilder()
        builder.add_instruction(UNKNOWN_DEX, [USER, key(60)])
        return TransactionAdapter(builder.build())

    def test_registers_fetched_mints(self):
        adapter = self._adapter()
        requested = []

        def fetch(accounts):
            requested.extend(accounts)
            return [TokenAccountInfo(mint=MEME_MINT, owner=USER, decimals=6) if a == key(60) else None
                    for a in accounts]

        count = resolve_token_accounts(adapter, TokenAccountsFetcher(FetchFilter.ALL, fetch))
        assert count == 1
        assert key(60) in requested
        assert adapter.get_spl_token_mint(key(60)) == MEME_MINT
        assert adapter.get_token_decimals(MEME_MINT) == 6

    def test_no_fetcher(self):
        assert resolve_token_accounts(self._adapter(), None) == 0


class TestRpcClient:
    def test_lookup_table_decode(self):
        assert decode_lookup_table(base64.b64decode(table_account(TABLE_ADDRESSES)["data"][0])) == TABLE_ADDRESSES
        assert decode_lookup_table(bytes(56)) == []

    def test_fetch_lookup_tables(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["method"] == "getMultipleAccounts"
            assert body["params"][0] == [TABLE, key(85)]
            return rpc_result(request, {"value": [table_account(TABLE_ADDRESSES), None]})

        with mock_client(handler) as client:
            assert client.fetch_lookup_tables([TABLE, key(85)]) == {TABLE: TABLE_ADDRESSES}

    def test_get_transaction_params(self):
        def handler(request):
            body = json.loads(request.content)
            assert body["method"] == "getTransaction"
            signature, options = body["params"]
            assert signature == "Sig"
            assert options["maxSupportedTransactionVersion"] == 0
            assert options["commitment"] == "confirmed"
            return rpc_result(request, None)

        with mock_client(handler) as client:
            assert client.get_transaction("Sig") is None

    def test_rpc_error(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1,
                                             "error": {"code": -32602, "message": "invalid signature"}})

        with mock_client(handler) as client:
            with pytest.raises(RpcError, match="invalid signature") as excinfo:
                client.get_transaction("bad")
        assert excinfo.value.method == "getTransaction"

    def test_http_error(self):
        with mock_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.call("getSlot", [])

    def test_accounts_are_chunked(self):
        sizes = []

        def handler(request):
            keys = json.loads(request.content)["params"][0]
            sizes.append(len(keys))
            return rpc_result(request, {"value": [None] * len(keys)})

        keys = [key(i % 250 + 1) for i in range(150)]
        with mock_client(handler) as client:
            assert len(client.get_multiple_accounts(keys)) == 150
        assert sizes == [100, 50]

    def test_fetch_token_accounts(self):
        parsed = {
            "data": {
                "program": "spl-token",
                "parsed": {"type": "account", "info": {
                    "mint": MEME_MINT,
                    "owner": USER,
                    "tokenAmount": {"amount": "42", "decimals": 6, "uiAmount": 0.000042},
                }},
            },
        }
        not_token = {"data": ["", "base64"]}

        def handler(request):
            assert json.loads(request.content)["params"][1]["encoding"] == "jsonParsed"
            return rpc_result(request, {"value": [parsed, not_token, None]})

        with mock_client(handler) as client:
            infos = client.fetch_token_accounts([key(60), key(61), key(62)])
        assert infos[0] == TokenAccountInfo(mint=MEME_MINT, owner=USER, amount="42", decimals=6)
        assert infos[1:] == [None, None]

    def test_fetch_pool_infos(self):
        def handler(request):
            return rpc_result(request, {"value": [
                {"data": [base64.b64encode(b"pool").decode(), "base64"], "owner": UNKNOWN_DEX, "lamports": 7},
                None,
            ]})

        with mock_client(handler) as client:
            fetcher = client.pool_info_fetcher()
            infos = fetcher.fetch([key(63), key(64)])
        assert infos[0] == {"pubkey": key(63), "owner": UNKNOWN_DEX, "lamports": 7, "data": b"pool"}
        assert infos[1] is None


class TestRpcConfig:
    def test_env_url(self, monkeypatch):
        monkeypatch.setenv(RPC_URL_ENV, "http://from-env")
        assert RpcConfig().rpc_url == "http://from-env"

    def test_default_url(self, monkeypatch):
        monkeypatch.delenv(RPC_URL_ENV, raising=False)
        assert RpcConfig().rpc_url == MAINNET_RPC
        assert RpcConfig(rpc_url="http://explicit").rpc_url == "http://explicit"
