"""Unit tests for transient JSON-RPC error classification."""
from __future__ import annotations

import pytest

from chainfolio.errors import NodeRpcError
from chainfolio.rpc.transient import is_transient_rpc_error


class TestIsTransientRpcError:
    @pytest.mark.parametrize(
        "message",
        [
            "header not found",
            "missing trie node 0xabc",
            "Node is still syncing",
            "unknown block",
            "Block not found",
            "node is behind",
        ],
    )
    def test_node_lag_is_transient(self, message: str) -> None:
        assert is_transient_rpc_error(NodeRpcError(-32000, message))

    @pytest.mark.parametrize(
        "message",
        ["invalid argument 0: hex string has length 3", "the method foo does not exist"],
    )
    def test_genuine_answers_are_not_transient(self, message: str) -> None:
        assert not is_transient_rpc_error(NodeRpcError(-32602, message))

    def test_marker_in_data_counts(self) -> None:
        error = NodeRpcError(-32000, "execution error", data="state not available")
        assert is_transient_rpc_error(error)

    def test_custom_markers(self) -> None:
        error = NodeRpcError(-32005, "rate limited")
        assert not is_transient_rpc_error(error)
        assert is_transient_rpc_error(error, markers=("rate limited",))

    def test_configured_code_is_transient(self) -> None:
        error = NodeRpcError(-32005, "limit exceeded")
        assert not is_transient_rpc_error(error)
        assert is_transient_rpc_error(error, codes=(-32005,))

    def test_code_match_ignores_message(self) -> None:
        error = NodeRpcError(-32603, "internal error", data={"detail": "x"})
        assert is_transient_rpc_error(error, markers=(), codes=[-32603])

    def test_missing_code_never_matches(self) -> None:
        assert not is_transient_rpc_error(NodeRpcError(None, "oops"), codes=(-32005,))
