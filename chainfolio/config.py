"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .chains.defaults import DEFAULT_CHAINS, DEFAULT_SYMBOL_FEEDS

logger = logging.getLogger(__name__)

DEFAULT_TRANSIENT_MARKERS: tuple[str, ...] = (
    "sync",
    "header not found",
    "missing trie node",
    "unknown block",
    "block not found",
    "state not available",
    "behind",
)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 0
    name: str = ""
    symbol: str = "ETH"
    network: str = "mainnet"
    price_feed: str | None = None
    decimals: int = 18
    alchemy_slug: str = ""
    rpc_endpoints: tuple[str, ...] = ()


@dataclass(frozen=True)
class RpcConfig:
    timeout: float = 8.0
    alchemy_api_key: str = ""
    transient_markers: tuple[str, ...] = DEFAULT_TRANSIENT_MARKERS
    transient_codes: tuple[int, ...] = ()


@dataclass(frozen=True)
class EnrichmentConfig:
    enabled: bool = True
    token_balances_method: str = "alchemy_getTokenBalances"
    token_metadata_method: str = "alchemy_getTokenMetadata"
    nft_method: str = "qn_fetchNFTs"
    max_tokens: int = 20


@dataclass(frozen=True)
class PriceConfig:
    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    timeout: float = 10.0
    ttl_seconds: int = 300
    history_ttl_seconds: int = 3600
    symbol_feeds: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SYMBOL_FEEDS))


@dataclass(frozen=True)
class ProfileThresholds:
    max_concentration: float
    min_chains: int
    single_asset_score: int
    concentration_penalty: int


def _default_profiles() -> dict[str, ProfileThresholds]:
    return {
        "Conservative": ProfileThresholds(0.3, 3, 15, 20),
        "Balanced": ProfileThresholds(0.5, 2, 10, 10),
        "Aggressive": ProfileThresholds(0.8, 1, 5, 5),
    }


@dataclass(frozen=True)
class ScoringConfig:
    diversification_full: int = 40
    diversification_pair: int = 25
    distribution_full: int = 30
    distribution_partial: int = 15
    concentration_full: int = 30
    concentration_floor: int = 5
    concentration_unpriced: int = 15
    conservative_penalty: int = 10
    excellent_threshold: int = 80
    good_threshold: int = 50
    profiles: dict[str, ProfileThresholds] = field(default_factory=_default_profiles)


@dataclass(frozen=True)
class InsightsConfig:
    openai_api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout: float = 60.0
    mock_delay_seconds: float = 0.0


@dataclass(frozen=True)
class HistoryConfig:
    backend: str = "memory"
    mongo_uri: str = ""
    database: str = "chainfolio"
    collection: str = "insight_history"
    retention_days: int = 90


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 4000
    default_network: str = "mainnet"


def _default_chains() -> dict[int, ChainConfig]:
    return _build_chains({})


@dataclass(frozen=True)
class AppConfig:
    rpc: RpcConfig = field(default_factory=RpcConfig)
    chains: dict[int, ChainConfig] = field(default_factory=_default_chains)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    prices: PriceConfig = field(default_factory=PriceConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    insights: InsightsConfig = field(default_factory=InsightsConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _as_endpoints(raw: Any) -> tuple[str, ...]:
    """A single URL or a list of URLs, empty entries dropped."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    return tuple(url.strip() for url in raw if url and url.strip())


def _build_rpc(raw: dict[str, Any]) -> RpcConfig:
    markers = raw.get("transient_markers")
    return RpcConfig(
        timeout=float(raw.get("timeout", 8.0)),
        alchemy_api_key=str(raw.get("alchemy_api_key") or ""),
        transient_markers=(
            tuple(str(m).lower() for m in markers)
            if markers
            else DEFAULT_TRANSIENT_MARKERS
        ),
        transient_codes=tuple(int(c) for c in raw.get("transient_codes") or ()),
    )


def _build_chains(raw: dict[Any, Any]) -> dict[int, ChainConfig]:
    """Merge per-chain overrides onto the built-in table.

    A chain absent from the built-in table may be added if the override is
    complete enough (name and endpoints).
    """
    overrides = {int(k): (v or {}) for k, v in raw.items()}
    chains: dict[int, ChainConfig] = {}
    for chain_id in [*DEFAULT_CHAINS, *(c for c in overrides if c not in DEFAULT_CHAINS)]:
        cfg = {**DEFAULT_CHAINS.get(chain_id, {}), **overrides.get(chain_id, {})}
        if cfg.get("enabled") is False:
            continue
        chains[chain_id] = ChainConfig(
            chain_id=chain_id,
            name=cfg.get("name", f"Chain {chain_id}"),
            symbol=cfg.get("symbol", "ETH"),
            network=str(cfg.get("network", "mainnet")).lower(),
            price_feed=cfg.get("price_feed") or None,
            decimals=int(cfg.get("decimals", 18)),
            alchemy_slug=cfg.get("alchemy", ""),
            rpc_endpoints=_as_endpoints(cfg.get("rpc_endpoints")),
        )
    return chains


def _build_enrichment(raw: dict[str, Any]) -> EnrichmentConfig:
    defaults = EnrichmentConfig()
    return EnrichmentConfig(
        enabled=bool(raw.get("enabled", True)),
        token_balances_method=raw.get(
            "token_balances_method", defaults.token_balances_method
        ),
        token_metadata_method=raw.get(
            "token_metadata_method", defaults.token_metadata_method
        ),
        nft_method=raw.get("nft_method", defaults.nft_method),
        max_tokens=int(raw.get("max_tokens", defaults.max_tokens)),
    )


def _build_prices(raw: dict[str, Any]) -> PriceConfig:
    feeds = dict(DEFAULT_SYMBOL_FEEDS)
    feeds.update({str(k).upper(): str(v) for k, v in (raw.get("symbol_feeds") or {}).items()})
    return PriceConfig(
        base_url=str(raw.get("base_url", PriceConfig.base_url)).rstrip("/"),
        api_key=str(raw.get("api_key") or ""),
        timeout=float(raw.get("timeout", 10.0)),
        ttl_seconds=int(raw.get("ttl_seconds", 300)),
        history_ttl_seconds=int(raw.get("history_ttl_seconds", 3600)),
        symbol_feeds=feeds,
    )


def _build_scoring(raw: dict[str, Any]) -> ScoringConfig:
    defaults = ScoringConfig()
    profiles = _default_profiles()
    for name, cfg in (raw.get("profiles") or {}).items():
        base = profiles.get(name, profiles["Balanced"])
        profiles[name] = ProfileThresholds(
            max_concentration=float(cfg.get("max_concentration", base.max_concentration)),
            min_chains=int(cfg.get("min_chains", base.min_chains)),
            single_asset_score=int(cfg.get("single_asset_score", base.single_asset_score)),
            concentration_penalty=int(
                cfg.get("concentration_penalty", base.concentration_penalty)
            ),
        )

    def _int(key: str) -> int:
        return int(raw.get(key, getattr(defaults, key)))

    return ScoringConfig(
        diversification_full=_int("diversification_full"),
        diversification_pair=_int("diversification_pair"),
        distribution_full=_int("distribution_full"),
        distribution_partial=_int("distribution_partial"),
        concentration_full=_int("concentration_full"),
        concentration_floor=_int("concentration_floor"),
        concentration_unpriced=_int("concentration_unpriced"),
        conservative_penalty=_int("conservative_penalty"),
        excellent_threshold=_int("excellent_threshold"),
        good_threshold=_int("good_threshold"),
        profiles=profiles,
    )


def _build_insights(raw: dict[str, Any]) -> InsightsConfig:
    return InsightsConfig(
        openai_api_key=str(raw.get("openai_api_key") or ""),
        model=raw.get("model", "gpt-4o-mini"),
        timeout=float(raw.get("timeout", 60.0)),
        mock_delay_seconds=float(raw.get("mock_delay_seconds", 0.0)),
    )


def _build_history(raw: dict[str, Any]) -> HistoryConfig:
    return HistoryConfig(
        backend=str(raw.get("backend", "memory")).lower(),
        mongo_uri=str(raw.get("mongo_uri") or ""),
        database=raw.get("database", "chainfolio"),
        collection=raw.get("collection", "insight_history"),
        retention_days=int(raw.get("retention_days", 90)),
    )


def _build_server(raw: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        host=raw.get("host", "0.0.0.0"),
        port=int(raw.get("port", 4000)),
        default_network=str(raw.get("default_network", "mainnet")).lower(),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        rpc=_build_rpc(raw.get("rpc") or {}),
        chains=_build_chains(raw.get("chains") or {}),
        enrichment=_build_enrichment(raw.get("enrichment") or {}),
        prices=_build_prices(raw.get("prices") or {}),
        scoring=_build_scoring(raw.get("scoring") or {}),
        insights=_build_insights(raw.get("insights") or {}),
        history=_build_history(raw.get("history") or {}),
        server=_build_server(raw.get("server") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chains:
        raise ValueError("At least one chain must be configured")

    for chain_id, chain in cfg.chains.items():
        if chain.network not in ("mainnet", "testnet"):
            raise ValueError(
                f"Chain {chain_id} has unknown network '{chain.network}'"
            )
        if not chain.rpc_endpoints and not (cfg.rpc.alchemy_api_key and chain.alchemy_slug):
            raise ValueError(f"Chain {chain_id} ({chain.name}) has no RPC endpoints")

    if cfg.rpc.timeout <= 0:
        raise ValueError("rpc.timeout must be positive")

    for name in ("Conservative", "Balanced", "Aggressive"):
        if name not in cfg.scoring.profiles:
            raise ValueError(f"Scoring profile '{name}' is missing")

    if cfg.history.backend not in ("memory", "mongo"):
        raise ValueError(f"Unknown history backend '{cfg.history.backend}'")
    if cfg.history.backend == "mongo" and not cfg.history.mongo_uri:
        raise ValueError("history.mongo_uri is required for the mongo backend")

    if cfg.server.default_network not in ("mainnet", "testnet", "all"):
        raise ValueError(
            f"Unknown server.default_network '{cfg.server.default_network}'"
        )
