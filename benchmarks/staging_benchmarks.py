"""Host staging versus per-element device writes for nested literal conversion."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

import jax
import jax.numpy as jnp

from lit_jax import LiteralContainer, Placement, literal, transfer_stats
from lit_jax.kinds import jax_dtype
from _bench_utils import (
    host_metadata,
    mean as _mean,
    percentile as _percentile,
    sample_ms,
    stddev as _stddev,
)


PROFILE_PRESETS: dict[str, dict[str, int]] = {
    "quick": {"samples": 3, "warmup": 1, "repeats": 3},
    "full": {"samples": 7, "warmup": 2, "repeats": 10},
}


@dataclass(frozen=True)
class TimingStats:
    mean_ms: float
    stdev_ms: float
    p50_ms: float
    p95_ms: float
    min_ms: float
    max_ms: float


@dataclass(frozen=True)
class StagingRow:
    name: str
    sizes: tuple[int, ...]
    staged: TimingStats
    per_element: TimingStats
    bulk_transfers_per_call: float


def _summarize_ms(ms: list[float]) -> TimingStats:
    return TimingStats(
        mean_ms=_mean(ms),
        stdev_ms=_stddev(ms),
        p50_ms=_percentile(ms, 0.50),
        p95_ms=_percentile(ms, 0.95),
        min_ms=min(ms),
        max_ms=max(ms),
    )


def _nested_values(sizes: tuple[int, ...], offset: int = 0):
    if len(sizes) == 1:
        return [float(offset + i) for i in range(sizes[0])]
    stride = 1
    for d in sizes[1:]:
        stride *= d
    return [_nested_values(sizes[1:], offset + i * stride) for i in range(sizes[0])]


def _leaves(lit: LiteralContainer, prefix: tuple[int, ...] = ()):
    if lit.is_scalar():
        yield prefix, lit.scalar()
        return
    for index, child in enumerate(lit.list_children()):
        yield from _leaves(child, (*prefix, index))


def _per_element_convert(lit: LiteralContainer, device) -> jax.Array:
    # Baseline: allocate on the device and write every leaf there.
    out = jax.device_put(jnp.zeros(lit.sizes(), dtype=jax_dtype(lit.element_kind())), device)
    for index, value in _leaves(lit):
        out = out.at[index].set(value)
    return out


def run(cases: list[tuple[int, ...]], *, samples: int, warmup: int, repeats: int) -> list[StagingRow]:
    device = jax.devices()[0]
    placement = Placement(device=device)
    rows: list[StagingRow] = []
    for sizes in cases:
        lit = literal(_nested_values(sizes), kind="float32")
        name = "x".join(str(d) for d in sizes)

        transfer_stats(reset=True)
        staged = sample_ms(lambda: lit.convert_to_array(placement), repeats=repeats, warmup=warmup, samples=samples)
        calls = (max(0, warmup) + samples * repeats) or 1
        bulk = transfer_stats()["bulk_transfers"] / calls

        per_element = sample_ms(lambda: _per_element_convert(lit, device), repeats=1, warmup=1, samples=samples)
        row = StagingRow(
            name=name,
            sizes=sizes,
            staged=_summarize_ms(staged),
            per_element=_summarize_ms(per_element),
            bulk_transfers_per_call=bulk,
        )
        rows.append(row)
        ratio = row.per_element.mean_ms / row.staged.mean_ms if row.staged.mean_ms > 0 else float("inf")
        print(
            f"{name:14} staged={row.staged.mean_ms:9.3f}ms  per-element={row.per_element.mean_ms:10.3f}ms  "
            f"speedup={ratio:8.1f}x  transfers/call={bulk:.1f}"
        )
    return rows


def main() -> None:
    parser = argparse.ArgumentParser(description="Compare staged literal conversion with per-element device writes")
    parser.add_argument("--profile", choices=sorted(PROFILE_PRESETS), default="quick", help="fixed benchmark profile")
    parser.add_argument("--samples", type=int, default=None, help="override timing sample count")
    parser.add_argument("--warmup", type=int, default=None, help="override warmup rounds")
    parser.add_argument("--repeats", type=int, default=None, help="override staged-conversion repeats per sample")
    parser.add_argument(
        "--json-out",
        default="",
        help="optional path to write machine-readable benchmark results",
    )
    args = parser.parse_args()

    profile = PROFILE_PRESETS[args.profile]
    samples = int(profile["samples"] if args.samples is None else args.samples)
    warmup = int(profile["warmup"] if args.warmup is None else args.warmup)
    repeats = int(profile["repeats"] if args.repeats is None else args.repeats)

    print("lit-jax staging benchmark")
    print(f"config: profile={args.profile}, samples={samples}, warmup={warmup}, repeats={repeats}")
    print(f"host: backend={jax.default_backend()}, devices={len(jax.devices())}")
    print()

    cases = [(8, 8), (4, 8, 8), (2, 4, 8, 8)]
    rows = run(cases, samples=samples, warmup=warmup, repeats=repeats)

    if args.json_out:
        payload = {
            "timestamp_utc": datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ"),
            "config": {"profile": args.profile, "samples": samples, "warmup": warmup, "repeats": repeats},
            "host": host_metadata(),
            "rows": [asdict(row) for row in rows],
        }
        out_path = Path(args.json_out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        print(f"\nwrote {out_path}")


if __name__ == "__main__":
    main()
