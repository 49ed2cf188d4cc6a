"""JSON-RPC access to EVM nodes."""
from .gateway import RpcGateway
from .transient import is_transient_rpc_error

__all__ = ["RpcGateway", "is_transient_rpc_error"]
