"""Literal containers: scalars, nested lists and referenced flat arrays.

A `LiteralContainer` is validated and shaped once, at construction, and is
immutable afterwards. Materialization stages nested lists in a host buffer,
fills it outer dimension first, and moves the result to its placement with a
single bulk transfer.
"""

from __future__ import annotations

import io
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TextIO, Union

import jax
import numpy as np

from .errors import (
    LiteralInternalError,
    LiteralKindError,
    LiteralPlacementError,
    LiteralShapeError,
    LiteralVariantError,
    format_sizes,
)
from .kinds import (
    ElementKind,
    as_element_kind,
    ensure_representable,
    format_scalar,
    host_scalar,
    jax_dtype,
    kind_of_dtype,
    kind_of_value,
)
from .runtime import (
    Placement,
    allocate,
    array_from_flat_sequence,
    convert_placement_and_kind,
    default_kind,
    fill_scalar,
    outer_slice,
    scalar_array,
)

logger = logging.getLogger(__name__)


class ContainerType(str, Enum):
    SCALAR = "scalar"
    LIST = "list"
    ARRAY_REF = "array_ref"


@dataclass(frozen=True)
class ScalarData:
    value: np.generic
    kind: ElementKind


@dataclass(frozen=True)
class ListData:
    children: tuple["LiteralContainer", ...] = ()


@dataclass(frozen=True, eq=False)
class ArrayRefData:
    array: jax.Array
    host: np.ndarray
    kind: ElementKind


ContainerData = Union[ScalarData, ListData, ArrayRefData]


@dataclass(frozen=True)
class ContainerInfo:
    type: ContainerType
    shape: tuple[int, ...]
    rank: int
    element_kind: ElementKind
    numel: int


def _infer_list(children: tuple["LiteralContainer", ...]) -> tuple[tuple[int, ...], ElementKind]:
    if not children:
        return (0,), ElementKind.UNDEFINED
    for idx, child in enumerate(children):
        if not isinstance(child, LiteralContainer):
            raise TypeError(f"list literal item {idx} is a {type(child).__name__}, not a LiteralContainer")
    first = children[0]
    for idx, child in enumerate(children):
        if child.sizes() != first.sizes():
            raise LiteralShapeError(
                f"Expected all sub-lists to have sizes {format_sizes(first.sizes())} (e.g. {first}), "
                f"but got sub-list {child} at index {idx} with sizes {format_sizes(child.sizes())}"
            )
        if child.element_kind() is not first.element_kind():
            raise LiteralKindError(
                f"Expected all elements to have the same element kind {first.element_kind()}, "
                f"but got element {child} at index {idx} of element kind {child.element_kind()}"
            )
    return (len(children), *first.sizes()), first.element_kind()


def _infer(data: ContainerData) -> tuple[tuple[int, ...], ElementKind]:
    if isinstance(data, ScalarData):
        return (), data.kind
    if isinstance(data, ListData):
        return _infer_list(data.children)
    if isinstance(data, ArrayRefData):
        if data.array.ndim != 1:
            raise LiteralShapeError(
                f"Referenced arrays must be 1-dimensional, got sizes {format_sizes(data.array.shape)}"
            )
        return (int(data.array.shape[0]),), data.kind
    raise LiteralInternalError(f"Invalid literal container data {type(data).__name__}")


@dataclass(frozen=True, eq=False, repr=False)
class LiteralContainer:
    """Literal value of one of three shapes; see `ContainerType`.

    `LiteralContainer()` is the empty literal: a list with sizes ``(0,)`` and
    an undefined element kind. Use the ``from_*`` constructors for the rest.
    """

    data: ContainerData = field(default_factory=ListData)
    _sizes: tuple[int, ...] = field(init=False)
    _kind: ElementKind = field(init=False)

    def __post_init__(self) -> None:
        sizes, kind = _infer(self.data)
        object.__setattr__(self, "_sizes", sizes)
        object.__setattr__(self, "_kind", kind)

    @classmethod
    def from_scalar(cls, value, kind=None) -> "LiteralContainer":
        resolved = kind_of_value(value) if kind is None else as_element_kind(kind)
        if resolved is ElementKind.UNDEFINED:
            raise LiteralKindError("scalar literals need a concrete element kind")
        scalar = host_scalar(value, resolved)
        ensure_representable(scalar, jax_dtype(resolved))
        return cls(ScalarData(value=scalar, kind=resolved))

    @classmethod
    def from_sequence(cls, values, kind=None) -> "LiteralContainer":
        """Reference a flat run of scalars as one eagerly built 1-D array."""
        if getattr(values, "dtype", None) is None:
            values = list(values)
        if kind is not None:
            resolved = as_element_kind(kind)
        elif getattr(values, "dtype", None) is not None:
            resolved = kind_of_dtype(values.dtype)
        else:
            kinds = {kind_of_value(value) for value in values}
            if len(kinds) > 1:
                names = ", ".join(sorted(str(k) for k in kinds))
                raise LiteralKindError(f"Expected a flat sequence of one element kind, but got kinds: {names}")
            resolved = kinds.pop() if kinds else ElementKind.UNDEFINED
        if resolved is ElementKind.UNDEFINED:
            if len(values):
                raise LiteralKindError("non-empty flat sequences need a concrete element kind")
            buffer_kind = default_kind()
        else:
            buffer_kind = resolved
        host, array = array_from_flat_sequence(values, buffer_kind)
        return cls(ArrayRefData(array=array, host=host, kind=resolved))

    @classmethod
    def from_children(cls, children: Iterable["LiteralContainer"]) -> "LiteralContainer":
        items = tuple(children)
        if not items:
            raise ValueError("list literals need at least one element; use LiteralContainer() for the empty literal")
        return cls(ListData(items))

    @property
    def type(self) -> ContainerType:
        data = self.data
        if isinstance(data, ScalarData):
            return ContainerType.SCALAR
        if isinstance(data, ListData):
            return ContainerType.LIST
        if isinstance(data, ArrayRefData):
            return ContainerType.ARRAY_REF
        raise LiteralInternalError(f"Invalid literal container data {type(data).__name__}")

    def is_scalar(self) -> bool:
        return isinstance(self.data, ScalarData)

    def is_list(self) -> bool:
        return isinstance(self.data, ListData)

    def is_array_ref(self) -> bool:
        return isinstance(self.data, ArrayRefData)

    def scalar(self) -> np.generic:
        if not isinstance(self.data, ScalarData):
            raise LiteralVariantError(f"scalar() called on a {self.type.value} literal container")
        return self.data.value

    def list_children(self) -> tuple["LiteralContainer", ...]:
        if not isinstance(self.data, ListData):
            raise LiteralVariantError(f"list_children() called on a {self.type.value} literal container")
        return self.data.children

    def array_ref(self) -> jax.Array:
        if not isinstance(self.data, ArrayRefData):
            raise LiteralVariantError(f"array_ref() called on a {self.type.value} literal container")
        return self.data.array

    def sizes(self) -> tuple[int, ...]:
        return self._sizes

    def element_kind(self) -> ElementKind:
        return self._kind

    def info(self) -> ContainerInfo:
        return ContainerInfo(
            type=self.type,
            shape=self._sizes,
            rank=len(self._sizes),
            element_kind=self._kind,
            numel=math.prod(self._sizes),
        )

    def convert_to_array(self, placement: Placement | None = None, *, device=None, sharding=None, dtype=None) -> jax.Array:
        if placement is None:
            placement = Placement(device=device, sharding=sharding, dtype=dtype)
        elif device is not None or sharding is not None or dtype is not None:
            raise LiteralPlacementError("pass either a Placement or device/sharding/dtype keywords, not both")
        kind = placement.resolve_kind(self._kind)

        data = self.data
        if isinstance(data, ScalarData):
            return scalar_array(data.value, kind, placement)
        if isinstance(data, ListData):
            buffer = allocate(self._sizes, kind)
            self.fill(buffer)
            logger.debug("staged %s literal of sizes %s on host", kind, format_sizes(self._sizes))
            return convert_placement_and_kind(buffer, placement, kind)
        if isinstance(data, ArrayRefData):
            return convert_placement_and_kind(data.array, placement, kind)
        raise LiteralInternalError(f"Invalid literal container data {type(data).__name__}")

    def fill(self, buffer: np.ndarray) -> None:
        """Write this literal's values into ``buffer`` in place, outer dimension first."""
        data = self.data
        if isinstance(data, ScalarData):
            if buffer.ndim != 0:
                raise LiteralInternalError(
                    f"Expected a 0-dim destination, but got one with {buffer.ndim} dimensions"
                )
            fill_scalar(buffer, data.value)
            return
        if isinstance(data, ListData):
            if buffer.ndim == 0 or buffer.shape[0] != len(data.children):
                leading = buffer.shape[0] if buffer.ndim else "no"
                raise LiteralInternalError(
                    f"Expected a destination with size {len(data.children)} in its first dimension, "
                    f"but got one with size {leading} in its first dimension"
                )
            for index, child in enumerate(data.children):
                child.fill(outer_slice(buffer, index))
            return
        if isinstance(data, ArrayRefData):
            raise LiteralVariantError("literal container already references an array; fill() must not be called")
        raise LiteralInternalError(f"Invalid literal container data {type(data).__name__}")

    def render(self, stream: TextIO) -> None:
        data = self.data
        if isinstance(data, ScalarData):
            stream.write(format_scalar(data.kind, data.value))
            return
        if isinstance(data, ListData):
            stream.write("{")
            for index, child in enumerate(data.children):
                if index:
                    stream.write(", ")
                child.render(stream)
            stream.write("}")
            return
        if isinstance(data, ArrayRefData):
            stream.write("{")
            for index, item in enumerate(data.host):
                if index:
                    stream.write(", ")
                stream.write(format_scalar(data.kind, item))
            stream.write("}")
            return
        raise LiteralInternalError(f"Invalid literal container data {type(data).__name__}")

    def __str__(self) -> str:
        out = io.StringIO()
        self.render(out)
        return out.getvalue()

    def __repr__(self) -> str:
        return f"LiteralContainer({self.type.value}, sizes={format_sizes(self._sizes)}, kind={self._kind}, {self})"
