"""Exception taxonomy shared by the gateway, services and HTTP layer."""
from __future__ import annotations


class ChainfolioError(Exception):
    """Base class for all errors raised by chainfolio."""


class InvalidRequestError(ChainfolioError):
    """Structurally invalid input; the whole request must be rejected."""


class InvalidAddressError(InvalidRequestError):
    """Wallet address is not a 0x-prefixed 20-byte hex string."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid wallet address: {address!r}")
        self.address = address


# ---------------------------------------------------------------------------
# RPC
# ---------------------------------------------------------------------------


class RpcError(ChainfolioError):
    """Base class for failures of a single JSON-RPC call."""


class UnsupportedChainError(RpcError):
    """No endpoint set is configured for the chain."""

    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Unsupported chain ID: {chain_id}")
        self.chain_id = chain_id


class TransportError(RpcError):
    """Connection error, timeout, non-2xx status or undecodable body."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class NodeRpcError(RpcError):
    """JSON-RPC level error returned by a node."""

    def __init__(self, code: int | None, message: str, data: object = None) -> None:
        super().__init__(f"RPC Error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class AllEndpointsFailedError(RpcError):
    """Every endpoint of the chain failed transiently."""

    def __init__(self, chain_id: int, last_error: Exception | None) -> None:
        super().__init__(
            f"All RPC endpoints failed for chain {chain_id}. Last error: {last_error}"
        )
        self.chain_id = chain_id
        self.last_error = last_error


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class PriceUnavailableError(ChainfolioError):
    """No price could be obtained for a feed key."""


class UpstreamGeneratorError(ChainfolioError):
    """The AI insight generator failed or returned an unusable payload."""


class HistoryStoreError(ChainfolioError):
    """The insight history store could not complete an operation."""
