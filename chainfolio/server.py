"""HTTP surface — JSON-RPC proxy, prices, portfolio and insight history."""
from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any

from aiohttp import web

from .config import AppConfig
from .errors import (
    AllEndpointsFailedError,
    HistoryStoreError,
    InvalidRequestError,
    NodeRpcError,
    TransportError,
    UnsupportedChainError,
    UpstreamGeneratorError,
)
from .models import InsightAssessment, RiskProfile, UserProfile
from .rpc.gateway import RpcGateway
from .services.orchestrator import InsightOrchestrator

logger = logging.getLogger(__name__)

ORCHESTRATOR = web.AppKey("orchestrator", InsightOrchestrator)
GATEWAY = web.AppKey("gateway", RpcGateway)
CONFIG = web.AppKey("config", AppConfig)

routes = web.RouteTableDef()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(
    request: web.Request, handler: Any
) -> web.StreamResponse:
    """Translate the exception taxonomy into HTTP status codes."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except (InvalidRequestError, UnsupportedChainError) as e:
        return _error(400, str(e))
    except (AllEndpointsFailedError, TransportError, NodeRpcError) as e:
        logger.warning("Upstream RPC failure on %s: %s", request.path, e)
        return _error(502, str(e))
    except UpstreamGeneratorError as e:
        return _error(502, str(e))
    except HistoryStoreError as e:
        logger.error("History store failure on %s: %s", request.path, e)
        return _error(503, str(e))


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise InvalidRequestError(f"Malformed JSON body: {e}") from e
    if not isinstance(body, dict):
        raise InvalidRequestError("JSON body must be an object")
    return body


def _int_param(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidRequestError(f"Query parameter '{name}' must be an integer") from e


def _user_profile(raw: Any) -> UserProfile:
    try:
        return UserProfile.from_dict(raw)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid userProfile: {e}") from e


def _chain_ids_param(request: web.Request) -> list[int] | None:
    raw = request.query.get("chains")
    if not raw:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise InvalidRequestError("Query parameter 'chains' must be chain ids") from e


def format_native_balance(
    raw_hex: str, symbol: str, chain_name: str, decimals: int = 18
) -> dict[str, Any]:
    """Human-readable companion of an ``eth_getBalance`` result."""
    wei = int(raw_hex, 16)
    value = Decimal(wei).scaleb(-decimals)
    return {
        "wei": raw_hex,
        "value": f"{value:.6f}",
        "symbol": symbol,
        "chain": chain_name,
        "raw": raw_hex,
    }


# ---------------------------------------------------------------------------
# RPC proxy and chain table
# ---------------------------------------------------------------------------


@routes.post("/rpc")
async def rpc_proxy(request: web.Request) -> web.Response:
    body = await _read_json(request)
    method = body.get("method")
    if body.get("chainId") is None or not method:
        raise InvalidRequestError("Both 'chainId' and 'method' are required")
    try:
        chain_id = int(body["chainId"])
    except (TypeError, ValueError) as e:
        raise InvalidRequestError("'chainId' must be an integer") from e

    params = body.get("params") or []
    if not isinstance(params, list):
        raise InvalidRequestError("'params' must be a list")

    try:
        result = await request.app[GATEWAY].call(chain_id, method, params)
    except NodeRpcError as e:
        error: dict[str, Any] = {"code": e.code, "message": e.message}
        if e.data is not None:
            error["data"] = e.data
        return web.json_response({"jsonrpc": "2.0", "id": 1, "error": error})

    payload: dict[str, Any] = {"jsonrpc": "2.0", "id": 1, "result": result}
    if method == "eth_getBalance" and isinstance(result, str):
        descriptor = request.app[ORCHESTRATOR].registry.describe(chain_id)
        try:
            payload["result_formatted"] = format_native_balance(
                result,
                descriptor.native_symbol if descriptor else "ETH",
                descriptor.name if descriptor else "Unknown",
                descriptor.native_decimals if descriptor else 18,
            )
        except ValueError:
            logger.debug("Unparseable balance %r from chain %d", result, chain_id)
    return web.json_response(payload)


@routes.get("/chains")
async def list_chains(request: web.Request) -> web.Response:
    registry = request.app[ORCHESTRATOR].registry
    resolver = request.app[GATEWAY].resolver
    api_key = request.app[CONFIG].rpc.alchemy_api_key
    network = request.query.get("network", "all")
    try:
        chain_ids = registry.chain_ids(network)
    except ValueError as e:
        raise InvalidRequestError(str(e)) from e

    chains = []
    for chain_id in chain_ids:
        descriptor = registry.describe(chain_id)
        endpoint_set = resolver.resolve(chain_id)
        urls = list(endpoint_set.endpoints) if endpoint_set else []
        if api_key:
            urls = [url.replace(api_key, "***") for url in urls]
        chains.append(
            {
                "chainId": chain_id,
                "name": descriptor.name,
                "symbol": descriptor.native_symbol,
                "network": descriptor.network_class.value,
                "rpcUrls": urls,
            }
        )
    return web.json_response({"supportedChains": chains})


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


@routes.get("/api/prices")
async def get_prices(request: web.Request) -> web.Response:
    ids = request.query.get("ids")
    if not ids:
        return _error(400, "Missing 'ids' query parameter")
    keys = [k.strip() for k in ids.split(",") if k.strip()]
    prices = await request.app[ORCHESTRATOR].enricher.prices_for(keys)
    return web.json_response({key: price.to_dict() for key, price in prices.items()})


@routes.get("/api/prices/{feed}/history")
async def get_price_history(request: web.Request) -> web.Response:
    feed = request.match_info["feed"]
    days = _int_param(request, "days", 30)
    if days <= 0:
        raise InvalidRequestError("'days' must be positive")
    points = await request.app[ORCHESTRATOR].enricher.price_history(feed, days)
    return web.json_response(
        {
            "feed": feed,
            "days": days,
            "prices": [[p.timestamp.isoformat(), float(p.usd)] for p in points],
        }
    )


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------


@routes.get("/api/portfolio/{address}")
async def get_portfolio(request: web.Request) -> web.Response:
    orchestrator = request.app[ORCHESTRATOR]
    network = request.query.get(
        "network", request.app[CONFIG].server.default_network
    )
    chain_ids = _chain_ids_param(request)
    if chain_ids is None:
        try:
            chain_ids = orchestrator.registry.chain_ids(network)
        except ValueError as e:
            raise InvalidRequestError(str(e)) from e

    snapshot = await orchestrator.get_portfolio(
        request.match_info["address"], chain_ids
    )
    health = orchestrator.score_health(
        snapshot, RiskProfile.parse(request.query.get("risk"))
    )
    return web.json_response(
        {"portfolio": snapshot.to_dict(), "health": health.to_dict()}
    )


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@routes.post("/api/insights")
async def generate_insight(request: web.Request) -> web.Response:
    body = await _read_json(request)
    portfolio = body.get("portfolio") or {}
    if not isinstance(portfolio, dict):
        raise InvalidRequestError("'portfolio' must be an object")
    profile = _user_profile(body.get("userProfile"))
    assessment = await request.app[ORCHESTRATOR].generate_insight(portfolio, profile)
    return web.json_response(assessment.to_dict())


@routes.post("/api/insights/save")
async def save_insight(request: web.Request) -> web.Response:
    body = await _read_json(request)
    address = body.get("walletAddress")
    analysis = body.get("analysis")
    snapshot = body.get("portfolioSnapshot")
    if not address or not isinstance(analysis, dict) or not isinstance(snapshot, dict):
        raise InvalidRequestError(
            "'walletAddress', 'analysis' and 'portfolioSnapshot' are required"
        )
    try:
        assessment = InsightAssessment.from_dict(analysis)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid analysis: {e}") from e

    raw_profile = body.get("userProfile")
    market_context = body.get("marketContext") or {}
    if not isinstance(market_context, dict):
        raise InvalidRequestError("'marketContext' must be an object")
    confirmation = await request.app[ORCHESTRATOR].save_assessment(
        address,
        snapshot,
        assessment,
        user_profile=_user_profile(raw_profile) if raw_profile else None,
        market_context=market_context,
    )
    return web.json_response(confirmation.to_dict(), status=201)


@routes.get("/api/insights/history/{address}")
async def insight_history(request: web.Request) -> web.Response:
    page = await request.app[ORCHESTRATOR].query_history(
        request.match_info["address"],
        limit=_int_param(request, "limit", 10),
        offset=_int_param(request, "offset", 0),
    )
    return web.json_response(page.to_dict())


@routes.get("/api/insights/trends/{address}")
async def insight_trends(request: web.Request) -> web.Response:
    trend = await request.app[ORCHESTRATOR].query_trend(
        request.match_info["address"], days=_int_param(request, "days", 30)
    )
    return web.json_response(trend.to_dict())


@routes.get("/api/insights/compare/{address}")
async def insight_compare(request: web.Request) -> web.Response:
    comparison = await request.app[ORCHESTRATOR].compare_latest(
        request.match_info["address"]
    )
    return web.json_response(comparison.to_dict())


@routes.get("/api/insights/stats/{address}")
async def insight_stats(request: web.Request) -> web.Response:
    stats = await request.app[ORCHESTRATOR].insight_stats(request.match_info["address"])
    return web.json_response(stats.to_dict())


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {"status": "ok", "chains": len(request.app[ORCHESTRATOR].registry)}
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    config: AppConfig,
    orchestrator: InsightOrchestrator | None = None,
    gateway: RpcGateway | None = None,
) -> web.Application:
    """Build the aiohttp application; collaborators default to ``config``."""
    gateway = gateway or RpcGateway.from_config(config)
    orchestrator = orchestrator or InsightOrchestrator.from_config(config, gateway)

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG] = config
    app[GATEWAY] = gateway
    app[ORCHESTRATOR] = orchestrator
    app.add_routes(routes)
    return app


def run_server(config: AppConfig, host: str | None = None, port: int | None = None) -> None:
    """Serve until interrupted."""
    host = host or config.server.host
    port = port or config.server.port
    logger.info("Multi-chain RPC proxy listening on http://%s:%d", host, port)
    web.run_app(create_app(config), host=host, port=port, print=None)
