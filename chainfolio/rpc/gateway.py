"""JSON-RPC gateway with ordered endpoint fallback."""
from __future__ import annotations

import asyncio
import functools
import logging
import ssl
from collections.abc import Callable
from typing import Any

import aiohttp
import certifi

from ..chains.endpoints import RpcEndpointResolver
from ..config import AppConfig
from ..errors import (
    AllEndpointsFailedError,
    NodeRpcError,
    TransportError,
    UnsupportedChainError,
)
from .transient import is_transient_rpc_error

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0


class RpcGateway:
    """Issue a JSON-RPC call against a chain, trying its endpoints in order.

    Transport failures and transient node errors move on to the next
    endpoint. A clean result, or a non-transient node error, ends the pass.
    The endpoint order is never changed between calls.
    """

    def __init__(
        self,
        resolver: RpcEndpointResolver,
        timeout: float = DEFAULT_TIMEOUT,
        is_transient: Callable[[NodeRpcError], bool] = is_transient_rpc_error,
    ) -> None:
        self._resolver = resolver
        self._timeout = timeout
        self._is_transient = is_transient

    @classmethod
    def from_config(cls, config: AppConfig) -> RpcGateway:
        return cls(
            RpcEndpointResolver.from_config(config),
            timeout=config.rpc.timeout,
            is_transient=functools.partial(
                is_transient_rpc_error,
                markers=config.rpc.transient_markers,
                codes=config.rpc.transient_codes,
            ),
        )

    @property
    def resolver(self) -> RpcEndpointResolver:
        return self._resolver

    async def call(
        self,
        chain_id: int,
        method: str,
        params: list[Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Make an RPC call with fallback to alternative endpoints.

        Raises:
            UnsupportedChainError: no endpoint set for ``chain_id``.
            NodeRpcError: a node answered with a non-transient error.
            AllEndpointsFailedError: every endpoint failed transiently.
        """
        endpoint_set = self._resolver.resolve(chain_id)
        if endpoint_set is None:
            raise UnsupportedChainError(chain_id)

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": list(params or []),
        }
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)
        ssl_context = ssl.create_default_context(cafile=certifi.where())

        endpoints = endpoint_set.endpoints
        last_error: Exception | None = None
        for attempt, rpc_url in enumerate(endpoints):
            try:
                return await self._post(rpc_url, payload, client_timeout, ssl_context)
            except TransportError as e:
                last_error = e
                logger.warning(
                    "RPC endpoint %s failed for chain %d: %s", rpc_url, chain_id, e.reason
                )
            except NodeRpcError as e:
                if not self._is_transient(e):
                    raise
                last_error = e
                logger.warning(
                    "RPC endpoint %s is lagging for chain %d: %s",
                    rpc_url,
                    chain_id,
                    e.message,
                )
            if attempt < len(endpoints) - 1:
                logger.debug("Trying next endpoint for chain %d", chain_id)

        raise AllEndpointsFailedError(chain_id, last_error)

    async def _post(
        self,
        rpc_url: str,
        payload: dict[str, Any],
        client_timeout: aiohttp.ClientTimeout,
        ssl_context: ssl.SSLContext,
    ) -> Any:
        """POST one request; map every failure onto TransportError or NodeRpcError."""
        try:
            connector = aiohttp.TCPConnector(ssl=ssl_context)
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    rpc_url, json=payload, timeout=client_timeout
                ) as response:
                    if not 200 <= response.status < 300:
                        raise TransportError(rpc_url, f"HTTP {response.status}")
                    body = await response.json(content_type=None)
        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(rpc_url, "timeout") from e
        except (aiohttp.ClientError, OSError, ValueError) as e:
            raise TransportError(rpc_url, str(e) or type(e).__name__) from e

        if not isinstance(body, dict):
            raise TransportError(rpc_url, "response is not a JSON-RPC object")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise NodeRpcError(
                    error.get("code"), str(error.get("message", "")), error.get("data")
                )
            raise NodeRpcError(None, str(error))

        if "result" not in body:
            raise TransportError(rpc_url, "response has neither result nor error")
        return body["result"]
