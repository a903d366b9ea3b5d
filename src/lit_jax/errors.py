"""Structured error types for literal construction and materialization."""

from __future__ import annotations


class LiteralError(Exception):
    """Base class for structured lit-jax errors."""


class LiteralShapeError(LiteralError):
    """Sibling sub-lists disagree on shape."""


class LiteralKindError(LiteralError):
    """Element-kind mismatch or unsupported element kind."""


class LiteralPlacementError(LiteralError):
    """Placement request that cannot be honored as written."""


class LiteralInternalError(LiteralError):
    """Internal consistency failure.

    Raised when a container is used in a way its own construction should have
    made impossible (wrong variant, destination of the wrong shape). These are
    programming errors and are never retried.
    """


class LiteralVariantError(LiteralInternalError):
    """Variant-specific accessor or fill called on the wrong variant."""


def format_sizes(sizes) -> str:
    return "[" + ", ".join(str(int(d)) for d in sizes) + "]"
