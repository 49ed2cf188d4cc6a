"""RPC client protocol — JSON-RPC call abstraction."""
from typing import Any, Protocol


class RpcClient(Protocol):
    """Anything that can issue a JSON-RPC call against a chain by id."""

    async def call(
        self,
        chain_id: int,
        method: str,
        params: list[Any] | None = None,
        timeout: float | None = None,
    ) -> Any: ...
