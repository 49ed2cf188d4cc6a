"""Chain registry — read-only table of supported chains."""
from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..models import ChainDescriptor, NetworkClass

if TYPE_CHECKING:
    from ..config import ChainConfig


class ChainRegistry:
    """Lookup of chain descriptors by id and by network class."""

    def __init__(self, descriptors: Iterable[ChainDescriptor]) -> None:
        self._chains: dict[int, ChainDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.chain_id in self._chains:
                raise ValueError(f"Duplicate chain id {descriptor.chain_id}")
            self._chains[descriptor.chain_id] = descriptor

    @classmethod
    def from_config(cls, chains: dict[int, ChainConfig]) -> ChainRegistry:
        return cls(
            ChainDescriptor(
                chain_id=chain_id,
                name=cfg.name,
                native_symbol=cfg.symbol,
                network_class=NetworkClass(cfg.network),
                price_feed_key=cfg.price_feed,
                native_decimals=cfg.decimals,
            )
            for chain_id, cfg in chains.items()
        )

    def describe(self, chain_id: int) -> ChainDescriptor | None:
        """Return the descriptor, or None for an unsupported chain."""
        return self._chains.get(chain_id)

    def list_by_class(self, network_class: NetworkClass) -> list[ChainDescriptor]:
        return [c for c in self._chains.values() if c.network_class is network_class]

    def all(self) -> list[ChainDescriptor]:
        return list(self._chains.values())

    def chain_ids(self, network_mode: str | NetworkClass = "mainnet") -> list[int]:
        """Chain ids for a network mode: ``mainnet``, ``testnet`` or ``all``."""
        if isinstance(network_mode, NetworkClass):
            return [c.chain_id for c in self.list_by_class(network_mode)]
        mode = str(network_mode).lower()
        if mode == "all":
            return list(self._chains)
        try:
            network_class = NetworkClass(mode)
        except ValueError as e:
            raise ValueError(f"Unknown network mode '{network_mode}'") from e
        return [c.chain_id for c in self.list_by_class(network_class)]

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._chains

    def __len__(self) -> int:
        return len(self._chains)
