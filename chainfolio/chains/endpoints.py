"""RPC endpoint resolution — chain id to an ordered endpoint set."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from ..models import EndpointSet
from .defaults import ALCHEMY_URL_TEMPLATE

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)


class RpcEndpointResolver:
    """Deterministic, I/O-free mapping from chain id to EndpointSet."""

    def __init__(self, endpoints: Mapping[int, str | Iterable[str]]) -> None:
        self._sets: dict[int, EndpointSet] = {}
        for chain_id, urls in endpoints.items():
            if isinstance(urls, str):
                urls = (urls,)
            self._sets[chain_id] = EndpointSet(chain_id=chain_id, endpoints=tuple(urls))

    @classmethod
    def from_config(cls, config: AppConfig) -> RpcEndpointResolver:
        """Build from the chain table; an Alchemy URL, when keyed, goes first."""
        api_key = config.rpc.alchemy_api_key
        endpoints: dict[int, tuple[str, ...]] = {}
        for chain_id, chain in config.chains.items():
            urls = list(chain.rpc_endpoints)
            if api_key and chain.alchemy_slug:
                alchemy_url = ALCHEMY_URL_TEMPLATE.format(
                    slug=chain.alchemy_slug, key=api_key
                )
                urls = [alchemy_url, *(u for u in urls if u != alchemy_url)]
            if not urls:
                logger.warning("Chain %d has no RPC endpoints, skipping", chain_id)
                continue
            endpoints[chain_id] = tuple(urls)
        return cls(endpoints)

    def resolve(self, chain_id: int) -> EndpointSet | None:
        return self._sets.get(chain_id)

    def chain_ids(self) -> list[int]:
        return list(self._sets)
