"""Entry points that build literal containers from nested Python literals."""

from __future__ import annotations

import numbers

import jax

from .container import LiteralContainer
from .errors import LiteralShapeError, format_sizes
from .runtime import Placement


def _is_array(value: object) -> bool:
    return hasattr(value, "dtype") and hasattr(value, "ndim")


def _is_scalar(value: object) -> bool:
    if _is_array(value):
        return int(value.ndim) == 0
    return isinstance(value, numbers.Number)


def _nested(obj, kind) -> LiteralContainer:
    if isinstance(obj, LiteralContainer):
        return obj
    if _is_scalar(obj):
        return LiteralContainer.from_scalar(obj, kind)
    if _is_array(obj):
        raise LiteralShapeError(
            f"arrays nested inside a list literal must be rank 0, got sizes {format_sizes(obj.shape)}"
        )
    if isinstance(obj, (list, tuple)):
        if not obj:
            return LiteralContainer()
        return LiteralContainer.from_children(_nested(item, kind) for item in obj)
    raise TypeError(f"cannot build a literal from {type(obj).__name__}")


def literal(obj, kind=None) -> LiteralContainer:
    """Build a `LiteralContainer` from a scalar, array or nested lists/tuples.

    A top-level flat run of scalars, or a 1-D array, is referenced directly
    (`ContainerType.ARRAY_REF`). Nested lists become list containers all the
    way down to scalar leaves. ``kind`` forces every leaf to one element kind.
    """
    if isinstance(obj, LiteralContainer):
        return obj
    if _is_array(obj):
        if int(obj.ndim) == 0:
            return LiteralContainer.from_scalar(obj, kind)
        if int(obj.ndim) == 1:
            return LiteralContainer.from_sequence(obj, kind)
        raise LiteralShapeError(
            f"only 1-dimensional arrays can be referenced directly, got sizes {format_sizes(obj.shape)}"
        )
    if isinstance(obj, (list, tuple)) and obj and all(_is_scalar(item) for item in obj):
        return LiteralContainer.from_sequence(obj, kind)
    return _nested(obj, kind)


def tensor(obj, *, device: jax.Device | None = None, sharding=None, dtype=None) -> jax.Array:
    """Materialize a nested literal as a JAX array on ``device`` or ``sharding``."""
    return literal(obj).convert_to_array(Placement(device=device, sharding=sharding, dtype=dtype))
