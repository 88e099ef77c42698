from __future__ import annotations

from typing import Any


class _Unresolved:
    """Marker for "no value here" where ``None`` is a legitimate value.

    Returned by path resolution when a reference cannot be followed, and used
    as the empty slot of a ToolResult. Compare with ``is NO_VAL``; copies keep
    the identity.
    """
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "NO_VAL"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unresolved:
        return self

    def __deepcopy__(self, memo: dict) -> _Unresolved:
        return self

    def __reduce__(self) -> str:
        return "NO_VAL"


NO_VAL: Any = _Unresolved()

__all__ = ["NO_VAL"]
