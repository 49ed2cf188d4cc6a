"""Balance aggregation — concurrent per-chain fan-out over the RPC gateway."""
from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from typing import Any

from ..chains.registry import ChainRegistry
from ..config import EnrichmentConfig
from ..errors import InvalidAddressError, InvalidRequestError, RpcError
from ..interfaces.rpc_client import RpcClient
from ..models import AssetKind, AssetLine, ChainDescriptor, PortfolioSnapshot

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_address(address: str) -> str:
    """Return the lower-cased address, or raise InvalidAddressError."""
    if not isinstance(address, str) or not _ADDRESS_RE.match(address.strip()):
        raise InvalidAddressError(str(address))
    return address.strip().lower()


def _parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity (``"0x1bc16d674ec80000"``)."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    return int(value, 16) if len(value) > 2 else 0


def _parse_decimals(value: Any) -> int:
    """Token decimals from metadata; 18 when the provider omits them."""
    if value is None:
        return 18
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Invalid token decimals: {value!r}")
    try:
        decimals = int(value)
    except ValueError:
        raise ValueError(f"Invalid token decimals: {value!r}") from None
    if not 0 <= decimals <= 255:
        raise ValueError(f"Invalid token decimals: {value!r}")
    return decimals


class BalanceAggregator:
    """Builds a PortfolioSnapshot of native, token and NFT holdings."""

    def __init__(
        self,
        gateway: RpcClient,
        registry: ChainRegistry,
        enrichment: EnrichmentConfig | None = None,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._enrichment = enrichment or EnrichmentConfig()

    async def aggregate(
        self, address: str, chain_ids: Iterable[int]
    ) -> PortfolioSnapshot:
        """Query every requested chain concurrently and collect the results.

        A failure on one chain is recorded on that chain's native line and
        never affects the others. Unsupported chain ids are skipped.

        Raises:
            InvalidAddressError: ``address`` is not a 20-byte hex address.
            InvalidRequestError: ``chain_ids`` is empty.
        """
        wallet = validate_address(address)

        requested = list(dict.fromkeys(chain_ids))
        if not requested:
            raise InvalidRequestError("At least one chain id is required")

        descriptors: list[ChainDescriptor] = []
        for chain_id in requested:
            descriptor = self._registry.describe(chain_id)
            if descriptor is None:
                logger.debug("Skipping unsupported chain %s", chain_id)
                continue
            descriptors.append(descriptor)

        per_chain = await asyncio.gather(
            *(self._chain_lines(wallet, d) for d in descriptors)
        )

        lines = tuple(line for chain_lines in per_chain for line in chain_lines)
        logger.info(
            "Aggregated %d lines across %d chains for %s",
            len(lines),
            len(descriptors),
            wallet,
        )
        return PortfolioSnapshot(wallet_address=wallet, asset_lines=lines)

    async def _chain_lines(
        self, address: str, descriptor: ChainDescriptor
    ) -> list[AssetLine]:
        """Native line first, then token lines, then the NFT line."""
        if not (self._enrichment.enabled and descriptor.is_mainnet):
            return [await self._native_line(address, descriptor)]

        native, tokens, nft = await asyncio.gather(
            self._native_line(address, descriptor),
            self._token_lines(address, descriptor),
            self._nft_line(address, descriptor),
        )
        lines = [native, *tokens]
        if nft is not None:
            lines.append(nft)
        return lines

    # ------------------------------------------------------------------
    # Native balance
    # ------------------------------------------------------------------

    async def _native_line(
        self, address: str, descriptor: ChainDescriptor
    ) -> AssetLine:
        try:
            result = await self._gateway.call(
                descriptor.chain_id, "eth_getBalance", [address, "latest"]
            )
            raw_amount = _parse_quantity(result)
        except (RpcError, ValueError) as e:
            logger.warning(
                "Native balance failed on %s (%d): %s",
                descriptor.name,
                descriptor.chain_id,
                e,
            )
            return AssetLine(
                chain_id=descriptor.chain_id,
                symbol=descriptor.native_symbol,
                raw_amount=0,
                decimals=descriptor.native_decimals,
                fetch_error=str(e),
            )

        return AssetLine(
            chain_id=descriptor.chain_id,
            symbol=descriptor.native_symbol,
            raw_amount=raw_amount,
            decimals=descriptor.native_decimals,
        )

    # ------------------------------------------------------------------
    # Best-effort enrichment
    # ------------------------------------------------------------------

    async def _token_lines(
        self, address: str, descriptor: ChainDescriptor
    ) -> list[AssetLine]:
        chain_id = descriptor.chain_id
        try:
            result = await self._gateway.call(
                chain_id,
                self._enrichment.token_balances_method,
                [address, "erc20"],
            )
        except (RpcError, ValueError) as e:
            logger.debug("Token balances unavailable on chain %d: %s", chain_id, e)
            return []

        if not isinstance(result, dict):
            return []

        held: list[tuple[str, int]] = []
        for entry in result.get("tokenBalances") or []:
            if not isinstance(entry, dict) or entry.get("error"):
                continue
            contract = entry.get("contractAddress")
            if not isinstance(contract, str) or not contract:
                continue
            try:
                amount = _parse_quantity(entry.get("tokenBalance"))
            except ValueError:
                continue
            if amount > 0:
                held.append((contract.lower(), amount))

        held = held[: self._enrichment.max_tokens]
        if not held:
            return []

        metadata = await asyncio.gather(
            *(self._token_metadata(chain_id, contract) for contract, _ in held)
        )

        lines: list[AssetLine] = []
        for (contract, amount), meta in zip(held, metadata):
            if meta is None:
                continue
            try:
                decimals = _parse_decimals(meta.get("decimals"))
            except ValueError as e:
                logger.debug("Skipping token %s on chain %d: %s", contract, chain_id, e)
                continue
            lines.append(
                AssetLine(
                    chain_id=chain_id,
                    symbol=str(meta.get("symbol") or "UNKNOWN"),
                    raw_amount=amount,
                    decimals=decimals,
                    kind=AssetKind.TOKEN,
                    contract_address=contract,
                )
            )
        return lines

    async def _token_metadata(
        self, chain_id: int, contract: str
    ) -> dict[str, Any] | None:
        try:
            result = await self._gateway.call(
                chain_id, self._enrichment.token_metadata_method, [contract]
            )
        except (RpcError, ValueError) as e:
            logger.debug(
                "Token metadata unavailable for %s on chain %d: %s", contract, chain_id, e
            )
            return None
        return result if isinstance(result, dict) else None

    async def _nft_line(
        self, address: str, descriptor: ChainDescriptor
    ) -> AssetLine | None:
        chain_id = descriptor.chain_id
        try:
            result = await self._gateway.call(
                chain_id,
                self._enrichment.nft_method,
                [{"wallet": address, "page": 1, "perPage": 40}],
            )
        except (RpcError, ValueError) as e:
            logger.debug("NFT count unavailable on chain %d: %s", chain_id, e)
            return None

        if not isinstance(result, dict):
            return None
        count = result.get("totalItems")
        if count is None:
            count = len(result.get("assets") or [])
        try:
            count = int(count)
        except (TypeError, ValueError):
            return None
        if count <= 0:
            return None

        return AssetLine(
            chain_id=chain_id,
            symbol="NFT",
            raw_amount=count,
            decimals=0,
            kind=AssetKind.NFT,
        )
