"""Chain table and endpoint resolution."""
from .endpoints import RpcEndpointResolver
from .registry import ChainRegistry

__all__ = ["ChainRegistry", "RpcEndpointResolver"]
