"""Element kinds understood by literal containers and their dtype mapping."""

from __future__ import annotations

import numbers
from enum import Enum
from functools import partial

import jax
import jax.numpy as jnp
import ml_dtypes
import numpy as np

from .errors import LiteralKindError


class ElementKind(str, Enum):
    UNDEFINED = "undefined"
    BOOL = "bool"
    UINT8 = "uint8"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT16 = "float16"
    BFLOAT16 = "bfloat16"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"

    def __str__(self) -> str:
        return self.value


_NUMPY_DTYPES: dict[ElementKind, np.dtype] = {
    ElementKind.BOOL: np.dtype(np.bool_),
    ElementKind.UINT8: np.dtype(np.uint8),
    ElementKind.INT8: np.dtype(np.int8),
    ElementKind.INT16: np.dtype(np.int16),
    ElementKind.INT32: np.dtype(np.int32),
    ElementKind.INT64: np.dtype(np.int64),
    ElementKind.FLOAT16: np.dtype(np.float16),
    ElementKind.BFLOAT16: np.dtype(ml_dtypes.bfloat16),
    ElementKind.FLOAT32: np.dtype(np.float32),
    ElementKind.FLOAT64: np.dtype(np.float64),
    ElementKind.COMPLEX64: np.dtype(np.complex64),
    ElementKind.COMPLEX128: np.dtype(np.complex128),
}
_KINDS_BY_DTYPE: dict[np.dtype, ElementKind] = {dtype: kind for kind, dtype in _NUMPY_DTYPES.items()}

# Kinds without a native text formatter; printed through float32.
_WIDEN_FOR_TEXT = frozenset({ElementKind.FLOAT16, ElementKind.BFLOAT16})


def numpy_dtype(kind: ElementKind) -> np.dtype:
    try:
        return _NUMPY_DTYPES[kind]
    except KeyError:
        raise LiteralKindError(f"element kind {kind} has no array dtype") from None


def jax_dtype(kind: ElementKind) -> np.dtype:
    """Dtype that JAX actually materializes for ``kind`` under the active config.

    With ``jax_enable_x64`` off, 64-bit kinds canonicalize to their 32-bit
    counterparts.
    """
    return jax.dtypes.canonicalize_dtype(numpy_dtype(kind))


def kind_of_dtype(dtype) -> ElementKind:
    try:
        resolved = np.dtype(dtype)
    except TypeError as exc:
        raise LiteralKindError(f"unsupported dtype {dtype!r}") from exc
    kind = _KINDS_BY_DTYPE.get(resolved)
    if kind is None:
        raise LiteralKindError(f"unsupported dtype {resolved}")
    return kind


def as_element_kind(value) -> ElementKind:
    """Coerce an ``ElementKind``, kind name or dtype-like value to a kind."""
    if isinstance(value, ElementKind):
        return value
    if isinstance(value, str):
        try:
            return ElementKind(value.lower())
        except ValueError:
            pass
    return kind_of_dtype(value)


def kind_of_value(value: object) -> ElementKind:
    if isinstance(value, bool):
        return ElementKind.BOOL
    dtype = getattr(value, "dtype", None)
    if dtype is not None:
        ndim = int(getattr(value, "ndim", 0))
        if ndim != 0:
            raise LiteralKindError(f"expected a scalar element, got an array of rank {ndim}")
        return kind_of_dtype(dtype)
    if isinstance(value, numbers.Integral):
        return ElementKind.INT64
    if isinstance(value, numbers.Real):
        return ElementKind.FLOAT64
    if isinstance(value, numbers.Complex):
        return ElementKind.COMPLEX128
    raise LiteralKindError(f"unsupported literal element type {type(value).__name__}")


def promote(left: ElementKind, right: ElementKind) -> ElementKind:
    """Smallest kind both operands widen to, following JAX's promotion lattice."""
    return kind_of_dtype(jnp.promote_types(numpy_dtype(left), numpy_dtype(right)))


def needs_widening(kind: ElementKind) -> bool:
    return kind in _WIDEN_FOR_TEXT


def widen_for_text(kind: ElementKind, value):
    if not needs_widening(kind):
        return value
    return np.float32(value)


def _format_bool(value) -> str:
    return str(bool(value))


def _format_integer(value) -> str:
    return str(int(value))


def _format_numpy(scalar_type, value) -> str:
    return str(scalar_type(value))


_FORMATTERS = {
    ElementKind.BOOL: _format_bool,
    ElementKind.UINT8: _format_integer,
    ElementKind.INT8: _format_integer,
    ElementKind.INT16: _format_integer,
    ElementKind.INT32: _format_integer,
    ElementKind.INT64: _format_integer,
    ElementKind.FLOAT32: partial(_format_numpy, np.float32),
    ElementKind.FLOAT64: partial(_format_numpy, np.float64),
    ElementKind.COMPLEX64: partial(_format_numpy, np.complex64),
    ElementKind.COMPLEX128: partial(_format_numpy, np.complex128),
}


def format_scalar(kind: ElementKind, value) -> str:
    if needs_widening(kind):
        value = widen_for_text(kind, value)
        kind = ElementKind.FLOAT32
    formatter = _FORMATTERS.get(kind)
    if formatter is None:
        raise LiteralKindError(f"cannot format a value of element kind {kind}")
    return formatter(value)


def host_scalar(value, kind: ElementKind) -> np.generic:
    """``value`` as the numpy scalar of ``kind``, before any JAX narrowing."""
    try:
        return numpy_dtype(kind).type(value)
    except OverflowError as exc:
        raise LiteralKindError(f"value {value!r} does not fit element kind {kind}") from exc


def host_values(values, kind: ElementKind) -> np.ndarray:
    try:
        return np.array(values, dtype=numpy_dtype(kind))
    except OverflowError as exc:
        raise LiteralKindError(f"flat sequence has a value that does not fit element kind {kind}") from exc


def ensure_representable(values, dtype) -> None:
    """Raise `LiteralKindError` if casting ``values`` to ``dtype`` leaves its range.

    Integer targets reject values outside their bounds; floating targets reject
    finite values that would overflow to infinity. Precision loss is allowed.
    """
    data = np.asarray(values)
    target = np.dtype(dtype)
    if data.size == 0 or data.dtype == target:
        return
    source_is_complex = jnp.issubdtype(data.dtype, jnp.complexfloating)
    if jnp.issubdtype(target, jnp.integer) and not source_is_complex:
        info = np.iinfo(target)
        bad = (data < info.min) | (data > info.max)
    elif jnp.issubdtype(target, jnp.inexact) and jnp.issubdtype(data.dtype, jnp.number):
        if source_is_complex and not jnp.issubdtype(target, jnp.complexfloating):
            return
        with np.errstate(over="ignore", invalid="ignore"):
            narrowed = data.astype(target)
        bad = np.isfinite(data) & ~np.isfinite(narrowed)
    else:
        return
    if np.any(bad):
        offending = np.asarray(data[bad]).flat[0]
        raise LiteralKindError(f"value {offending} does not fit dtype {target}")
