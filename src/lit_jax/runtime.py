"""Array runtime seam: host staging buffers, placements and bulk transfers."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import jax
import jax.numpy as jnp
import numpy as np

from .errors import LiteralPlacementError, LiteralShapeError, format_sizes
from .kinds import ElementKind, as_element_kind, ensure_representable, host_values, jax_dtype

logger = logging.getLogger(__name__)

_HOST_PLATFORM = os.environ.get("LIT_JAX_HOST_PLATFORM", "cpu")
_EMPTY_DTYPE = os.environ.get("LIT_JAX_EMPTY_DTYPE", "float32")

_TRANSFER_STATS: dict[str, int] = {
    "host_allocations": 0,
    "bulk_transfers": 0,
    "direct_scalars": 0,
    "flat_sequences": 0,
}
_STATS_LOCK = threading.Lock()


@lru_cache(maxsize=1)
def default_kind() -> ElementKind:
    """Kind used when a literal carries no element kind (the empty literal)."""
    return as_element_kind(_EMPTY_DTYPE)


@lru_cache(maxsize=1)
def host_device() -> jax.Device:
    try:
        return jax.devices(_HOST_PLATFORM)[0]
    except RuntimeError:
        device = jax.devices()[0]
        logger.debug("host platform %r unavailable; using %s for eager arrays", _HOST_PLATFORM, device)
        return device


@dataclass(frozen=True)
class Placement:
    """Where and as what a literal is materialized.

    - `device`: target `jax.Device`; `None` means the default device.
    - `sharding`: target `jax.sharding.Sharding`, the array's layout across devices.
    - `dtype`: explicit element kind override (kind, kind name or dtype).
    """

    device: Any = None
    sharding: Any = None
    dtype: Any = None

    def __post_init__(self) -> None:
        if self.device is not None and self.sharding is not None:
            raise LiteralPlacementError("Placement takes a device or a sharding, not both")
        if self.dtype is not None:
            kind = as_element_kind(self.dtype)
            if kind is ElementKind.UNDEFINED:
                raise LiteralPlacementError("Placement dtype override must be a concrete element kind")
            object.__setattr__(self, "dtype", kind)

    def target(self):
        if self.sharding is not None:
            return self.sharding
        if self.device is not None:
            return self.device
        return jax.devices()[0]

    def resolve_kind(self, kind: ElementKind) -> ElementKind:
        if self.dtype is not None:
            return self.dtype
        if kind is ElementKind.UNDEFINED:
            return default_kind()
        return kind


def _count(key: str) -> None:
    with _STATS_LOCK:
        _TRANSFER_STATS[key] += 1


def allocate(shape: Sequence[int], kind: ElementKind) -> np.ndarray:
    """Uninitialized host staging buffer, already in the target dtype."""
    _count("host_allocations")
    return np.empty(tuple(shape), dtype=jax_dtype(kind))


def outer_slice(array: np.ndarray, index: int) -> np.ndarray:
    # Trailing ellipsis keeps a rank-0 view instead of a detached scalar.
    return array[index, ...]


def fill_scalar(array: np.ndarray, value) -> None:
    ensure_representable(value, array.dtype)
    array[...] = value


def scalar_array(value, kind: ElementKind, placement: Placement) -> jax.Array:
    dtype = jax_dtype(kind)
    ensure_representable(value, dtype)
    _count("direct_scalars")
    return jnp.full((), value, dtype=dtype, device=placement.target())


def convert_placement_and_kind(array, placement: Placement, kind: ElementKind) -> jax.Array:
    dtype = jax_dtype(kind)
    if array.dtype != dtype:
        ensure_representable(array, dtype)
        array = array.astype(dtype)
    target = placement.target()
    out = jax.device_put(array, target)
    _count("bulk_transfers")
    logger.debug("moved array of shape %s (%s) to %s", format_sizes(out.shape), dtype, target)
    return out


def array_from_flat_sequence(values, kind: ElementKind) -> tuple[np.ndarray, jax.Array]:
    """Host copy at the kind's own precision plus its eager JAX array."""
    host = host_values(values, kind)
    if host.ndim != 1:
        raise LiteralShapeError(
            f"Expected a flat sequence of scalars, but got data with sizes {format_sizes(host.shape)}"
        )
    host.setflags(write=False)
    dtype = jax_dtype(kind)
    ensure_representable(host, dtype)
    device = host_device()
    out = jax.device_put(host.astype(dtype, copy=False), device)
    _count("flat_sequences")
    logger.debug("materialized flat sequence of length %d (%s) on %s", host.shape[0], dtype, device)
    return host, out


def transfer_stats(*, reset: bool = False) -> dict[str, int]:
    with _STATS_LOCK:
        stats = dict(_TRANSFER_STATS)
        if reset:
            for key in _TRANSFER_STATS:
                _TRANSFER_STATS[key] = 0
    return stats
