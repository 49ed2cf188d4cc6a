"""Integration tests for the RPC gateway — endpoint fallback and error handling."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from chainfolio.chains.endpoints import RpcEndpointResolver
from chainfolio.config import AppConfig, RpcConfig
from chainfolio.errors import (
    AllEndpointsFailedError,
    NodeRpcError,
    TransportError,
    UnsupportedChainError,
)
from chainfolio.rpc.gateway import RpcGateway

URLS = (
    "https://rpc1.example.com",
    "https://rpc2.example.com",
    "https://rpc3.example.com",
)


@pytest.fixture()
def gateway() -> RpcGateway:
    return RpcGateway(RpcEndpointResolver({1: URLS}), timeout=5)


def _response(body=None, status: int = 200, error: Exception | None = None):
    mock_response = AsyncMock()
    mock_response.status = status
    if error:
        mock_response.json = AsyncMock(side_effect=error)
    else:
        mock_response.json = AsyncMock(return_value=body)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)
    return mock_response


def _mock_session(*outcomes):
    """Session whose successive ``post`` calls yield ``outcomes`` in order.

    An exception in ``outcomes`` is raised by ``post`` itself.
    """
    mock_session = AsyncMock()
    mock_session.post = MagicMock(side_effect=list(outcomes))
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


def _posted_urls(mock_session) -> list[str]:
    return [c.args[0] for c in mock_session.post.call_args_list]


class TestRpcCall:
    @pytest.mark.asyncio
    async def test_successful_call(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(_response({"jsonrpc": "2.0", "id": 1, "result": "0x10"}))

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                result = await gateway.call(1, "eth_blockNumber")

        assert result == "0x10"
        assert _posted_urls(mock_session) == [URLS[0]]
        payload = mock_session.post.call_args.kwargs["json"]
        assert payload == {"jsonrpc": "2.0", "id": 1, "method": "eth_blockNumber", "params": []}

    @pytest.mark.asyncio
    async def test_falls_back_after_transport_failures(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            aiohttp.ClientConnectionError("refused"),
            asyncio.TimeoutError(),
            _response({"jsonrpc": "2.0", "result": "0xde0b6b3a7640000"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                result = await gateway.call(1, "eth_getBalance", ["0xabc", "latest"])

        assert result == "0xde0b6b3a7640000"
        assert _posted_urls(mock_session) == list(URLS)

    @pytest.mark.asyncio
    async def test_stops_at_first_success(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            _response(status=503),
            _response({"jsonrpc": "2.0", "result": "0x1"}),
            _response({"jsonrpc": "2.0", "result": "0x2"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                result = await gateway.call(1, "eth_blockNumber")

        assert result == "0x1"
        assert mock_session.post.call_count == 2

    @pytest.mark.asyncio
    async def test_non_transient_node_error_short_circuits(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            _response(
                {
                    "jsonrpc": "2.0",
                    "error": {"code": -32602, "message": "invalid argument 0"},
                }
            ),
            _response({"jsonrpc": "2.0", "result": "0x1"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                with pytest.raises(NodeRpcError) as exc_info:
                    await gateway.call(1, "eth_getBalance", ["bad"])

        assert exc_info.value.code == -32602
        assert mock_session.post.call_count == 1

    @pytest.mark.asyncio
    async def test_transient_node_error_moves_on(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            _response({"jsonrpc": "2.0", "error": {"code": -32000, "message": "header not found"}}),
            _response({"jsonrpc": "2.0", "result": "0x5"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                result = await gateway.call(1, "eth_getBalance", ["0xabc", "latest"])

        assert result == "0x5"
        assert _posted_urls(mock_session) == list(URLS[:2])

    @pytest.mark.asyncio
    async def test_all_endpoints_fail(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            ConnectionError("down"),
            _response(status=500),
            _response(error=ValueError("not json")),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                with pytest.raises(AllEndpointsFailedError, match="All RPC endpoints failed") as exc_info:
                    await gateway.call(1, "eth_blockNumber")

        assert exc_info.value.chain_id == 1
        assert isinstance(exc_info.value.last_error, TransportError)
        assert mock_session.post.call_count == 3

    @pytest.mark.asyncio
    async def test_missing_result_is_transport_failure(self, gateway: RpcGateway) -> None:
        mock_session = _mock_session(
            _response({"jsonrpc": "2.0", "id": 1}),
            _response(["not", "an", "object"]),
            _response({"jsonrpc": "2.0", "result": None}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                result = await gateway.call(1, "eth_getTransactionByHash", ["0x0"])

        assert result is None
        assert mock_session.post.call_count == 3

    @pytest.mark.asyncio
    async def test_unsupported_chain(self, gateway: RpcGateway) -> None:
        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession") as session_cls:
            with pytest.raises(UnsupportedChainError, match="Unsupported chain ID: 999"):
                await gateway.call(999, "eth_blockNumber")
        session_cls.assert_not_called()


class TestFromConfig:
    def test_uses_configured_timeout_and_endpoints(self) -> None:
        gateway = RpcGateway.from_config(AppConfig(rpc=RpcConfig(timeout=3)))
        assert gateway.resolver.resolve(1) is not None
        assert gateway._timeout == 3

    @pytest.mark.asyncio
    async def test_custom_markers_drive_fallback(self) -> None:
        config = AppConfig(rpc=RpcConfig(transient_markers=("rate limit",)))
        gateway = RpcGateway.from_config(config)
        mock_session = _mock_session(
            _response({"jsonrpc": "2.0", "error": {"code": -32005, "message": "Rate limit hit"}}),
            _response({"jsonrpc": "2.0", "result": "0x1"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                assert await gateway.call(1, "eth_blockNumber") == "0x1"

    @pytest.mark.asyncio
    async def test_custom_codes_drive_fallback(self) -> None:
        config = AppConfig(rpc=RpcConfig(transient_codes=(-32005,)))
        gateway = RpcGateway.from_config(config)
        mock_session = _mock_session(
            _response({"jsonrpc": "2.0", "error": {"code": -32005, "message": "limit exceeded"}}),
            _response({"jsonrpc": "2.0", "result": "0x2"}),
        )

        with patch("chainfolio.rpc.gateway.aiohttp.ClientSession", return_value=mock_session):
            with patch("chainfolio.rpc.gateway.aiohttp.TCPConnector"):
                assert await gateway.call(1, "eth_blockNumber") == "0x2"
