from __future__ import annotations

from typing import Any, Dict, List


class PatchError(Exception):
    """Raised when a patch cannot be compiled for a pod."""


class RenderError(PatchError):
    """Raised when a container or volume fragment cannot be rendered."""


class InvariantError(PatchError):
    """Raised when the compiler would emit a structurally invalid patch."""


_VALID_OPS = {"add", "replace"}


def validate_operations(ops: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Check emitted operations keep RFC6902 structure before serialization."""

    if not isinstance(ops, list):
        raise InvariantError("patch is not an array")
    for op in ops:
        if not isinstance(op, dict):
            raise InvariantError("non-object operation")
        operation = op.get("op")
        if operation not in _VALID_OPS:
            raise InvariantError(f"invalid op: {operation!r}")
        path = op.get("path")
        if not isinstance(path, str) or not path.startswith("/"):
            raise InvariantError(f"invalid path: {path!r}")
        if "value" not in op:
            raise InvariantError(f"missing value for {path}")
    return ops


__all__ = ["PatchError", "RenderError", "InvariantError", "validate_operations"]
