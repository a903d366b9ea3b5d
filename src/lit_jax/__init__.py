"""lit-jax public API."""

from .builder import literal, tensor
from .container import ContainerInfo, ContainerType, LiteralContainer
from .errors import (
    LiteralError,
    LiteralInternalError,
    LiteralKindError,
    LiteralPlacementError,
    LiteralShapeError,
    LiteralVariantError,
)
from .kinds import ElementKind, needs_widening, promote
from .runtime import Placement, transfer_stats

__all__ = [
    "literal",
    "tensor",
    "LiteralContainer",
    "ContainerType",
    "ContainerInfo",
    "ElementKind",
    "Placement",
    "promote",
    "needs_widening",
    "transfer_stats",
    "LiteralError",
    "LiteralShapeError",
    "LiteralKindError",
    "LiteralPlacementError",
    "LiteralInternalError",
    "LiteralVariantError",
]
