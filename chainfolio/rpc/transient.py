"""Classification of JSON-RPC errors that another endpoint may not share."""
from __future__ import annotations

from collections.abc import Iterable

from ..config import DEFAULT_TRANSIENT_MARKERS
from ..errors import NodeRpcError


def is_transient_rpc_error(
    error: NodeRpcError,
    markers: Iterable[str] = DEFAULT_TRANSIENT_MARKERS,
    codes: Iterable[int] = (),
) -> bool:
    """True when the node error looks like a sync/lag problem of that node.

    Either the error code is one of ``codes`` or the message (or data)
    contains one of ``markers``. Such errors are retried on the next
    endpoint; anything else is a genuine answer (bad params, unknown method)
    and is returned to the caller.
    """
    if error.code is not None and error.code in set(codes):
        return True
    text = f"{error.message} {error.data or ''}".lower()
    return any(marker in text for marker in markers)
