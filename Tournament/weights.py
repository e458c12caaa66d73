# weights.py

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

NUMERIC_EPS = 1e-12


# ============================================================
# 1. BAND SPEC
# ============================================================

@dataclass(frozen=True)
class Band:
    """Contiguous rank range (1-based, inclusive) sharing `total` of the pool."""
    start: int
    end: int
    total: float

    @property
    def label(self) -> str:
        return f"{self.start}-{self.end}"


# ============================================================
# 2. MONOTONE-BY-PAIRS BUILDER
# ============================================================

def _pair_ramp(p: int, total: float, head_cap: float, tail_floor: float) -> Tuple[float, float]:
    """
    Pair totals T_k = A + B*k for k = 1..p (k = p is the band head).

    sum_k T_k == total always holds, i.e. A = total/p - B*(p+1)/2. The slope
    B is the proportional one (A = 0, T_k ∝ k) unless that would put

      - the head pair above head_cap   (previous band's tail, per pair), or
      - the tail pair below tail_floor (next band's uniform level, per pair),

    in which case B shrinks to the largest slope meeting both. A negative
    solution (the band cannot fit between its neighbours) is floored to a
    flat split, which still conserves the band total.
    """
    mean_pair = total / p
    half_span = (p - 1) / 2.0

    B = 2.0 * total / (p * (p + 1))
    B = min(B, (head_cap - mean_pair) / half_span)
    B = min(B, (mean_pair - tail_floor) / half_span)
    if B < NUMERIC_EPS:
        B = 0.0

    A = mean_pair - B * (p + 1) / 2.0
    if A < 0.0:
        A = 0.0
    return A, B


def _band_pairs(band: Band, n: int) -> Tuple[int, int, int]:
    """Clip a band to n ranks -> (start, end, pairs). Odd length drops the last rank."""
    s = max(1, band.start)
    e = min(band.end, n)
    m = e - s + 1
    if m <= 0:
        return s, e, 0
    if m % 2 != 0:
        m -= 1
        e = s + m - 1
    return s, e, m // 2


def build_monotone_by_pairs(
    n: int,
    top1: float,
    top2: float,
    bands: Sequence[Band],
) -> np.ndarray:
    """
    Build a length-n, rank-ordered payout weight vector.

    - rank 1 gets top1, rank 2 gets top2
    - every band (ranks >= 3) keeps its declared total exactly
    - inside a band, ranks are paired (two ranks per pair, equal weight)
      and pair totals follow a linear ramp rising toward the band head
    - the head's per-person weight is capped at the previous band's tail,
      and the tail is kept at or above the next band's flat level, so the
      whole vector is non-increasing; a capped band gets a flatter ramp
    - a band with a single pair splits its total evenly
    - ranks past the last band stay 0

    A band with an odd number of ranks (after clipping to n) drops its last
    rank from the pairing; that rank keeps weight 0.
    """
    n = max(int(n), 0)
    w = np.zeros(n, dtype=float)
    if n >= 1:
        w[0] = top1
    if n >= 2:
        w[1] = top2
    prev_tail = w[1] if n >= 2 else np.inf

    clipped = [_band_pairs(b, n) for b in bands]

    for i, band in enumerate(bands):
        s, e, p = clipped[i]
        if p <= 0:
            continue

        S = band.total

        if p == 1:
            per = S / 2.0
            w[s - 1] = per
            w[e - 1] = per
            prev_tail = per
            continue

        tail_floor = 0.0
        for j in range(i + 1, len(bands)):
            p_next = clipped[j][2]
            if p_next > 0:
                tail_floor = bands[j].total / p_next
                break

        A, B = _pair_ramp(p, S, 2.0 * prev_tail, tail_floor)

        for k in range(1, p + 1):
            per = (A + B * k) / 2.0
            r1 = e - (k - 1) * 2 - 1   # better rank of pair k
            w[r1 - 1] = per
            w[r1] = per
        prev_tail = w[e - 1]

    return w


# ============================================================
# 3. NAMED SCHEDULES
# ============================================================

@dataclass(frozen=True)
class Schedule:
    name: str
    field_size: int
    top1: float
    top2: float
    bands: Tuple[Band, ...]

    def weights(self, n: Optional[int] = None) -> np.ndarray:
        """Weight vector for n ranks (defaults to the schedule's field size)."""
        n = self.field_size if n is None else int(n)
        return _cached_weights(self, n).copy()

    def band_totals(self) -> Dict[str, float]:
        out = {"1": self.top1, "2": self.top2}
        out.update({b.label: b.total for b in self.bands})
        return out

    @property
    def declared_total(self) -> float:
        return self.top1 + self.top2 + sum(b.total for b in self.bands)


@lru_cache(maxsize=None)
def _cached_weights(schedule: Schedule, n: int) -> np.ndarray:
    w = build_monotone_by_pairs(n, schedule.top1, schedule.top2, schedule.bands)
    w.setflags(write=False)
    return w


CUP_SCHEDULE = Schedule("cup", 128, 0.15, 0.09, (
    Band(3, 4, 0.12),
    Band(5, 8, 0.16),
    Band(9, 16, 0.16),
    Band(17, 32, 0.16),
    Band(33, 64, 0.16),   # 65-128 get 0
))

REGIONAL_SCHEDULE = Schedule("regional", 32, 0.20, 0.12, (
    Band(3, 4, 0.16),
    Band(5, 8, 0.20),
    Band(9, 16, 0.32),    # 17-32 get 0
))

WORLDS_SCHEDULE = Schedule("worlds", 48, 0.16, 0.10, (
    Band(3, 4, 0.14),
    Band(5, 8, 0.20),
    Band(9, 16, 0.24),
    Band(17, 32, 0.16),   # 33-48 get 0
))

EXT_REGIONAL_SCHEDULE = Schedule("ext_regional", 48, 0.15, 0.09, (
    Band(3, 4, 0.14),
    Band(5, 8, 0.20),
    Band(9, 16, 0.25),
    Band(17, 32, 0.17),   # 33-48 get 0
))

TPC_SCHEDULE = Schedule("tpc", 32, 0.18, 0.11, (
    Band(3, 4, 0.16),
    Band(5, 8, 0.19),
    Band(9, 16, 0.36),    # 17-32 get 0
))

SCHEDULES: Dict[str, Schedule] = {
    s.name: s for s in (
        CUP_SCHEDULE, REGIONAL_SCHEDULE, WORLDS_SCHEDULE,
        EXT_REGIONAL_SCHEDULE, TPC_SCHEDULE,
    )
}


def weights_cup(n: int = 128) -> np.ndarray:
    return CUP_SCHEDULE.weights(n)


def weights_reg(n: int = 32) -> np.ndarray:
    return REGIONAL_SCHEDULE.weights(n)


def weights_world(n: int = 48) -> np.ndarray:
    return WORLDS_SCHEDULE.weights(n)


def weights_reg48(n: int = 48) -> np.ndarray:
    return EXT_REGIONAL_SCHEDULE.weights(n)


def weights_tpc(n: int = 32) -> np.ndarray:
    return TPC_SCHEDULE.weights(n)


# ============================================================
# 4. INSPECTION
# ============================================================

def payout_table(
    schedule: Schedule,
    n: Optional[int] = None,
    pool: Optional[float] = None,
) -> pd.DataFrame:
    """
    One row per rank: rank, band, weight (and pool_share if a pool is given).
    """
    w = schedule.weights(n)
    band_of = np.array(["-"] * len(w), dtype=object)
    if len(w) >= 1:
        band_of[0] = "1"
    if len(w) >= 2:
        band_of[1] = "2"
    for b in schedule.bands:
        lo, hi = max(1, b.start), min(b.end, len(w))
        if hi >= lo:
            band_of[lo - 1:hi] = b.label

    df = pd.DataFrame({
        "rank": np.arange(1, len(w) + 1),
        "band": band_of,
        "weight": w,
    })
    if pool is not None:
        df["pool_share"] = df["weight"] * pool
    return df


def check_schedule(schedule: Schedule, n: Optional[int] = None, tol: float = 1e-9) -> List[str]:
    """
    Return a list of invariant violations for schedule.weights(n).

    Checks: sum == 1, non-negative, non-increasing, pairs equal inside each
    band, band sums == declared totals, zero past the last band.
    """
    w = schedule.weights(n)
    n = len(w)
    problems: List[str] = []

    if abs(w.sum() - 1.0) > tol:
        problems.append(f"{schedule.name}({n}): weights sum to {w.sum():.12f}, not 1")
    if (w < -tol).any():
        problems.append(f"{schedule.name}({n}): negative weight present")
    if n > 1 and (np.diff(w) > tol).any():
        bad = int(np.argmax(np.diff(w) > tol)) + 2
        problems.append(f"{schedule.name}({n}): weight rises at rank {bad}")

    last_end = 2
    for b in schedule.bands:
        lo, hi = b.start, min(b.end, n)
        if hi < lo:
            continue
        seg = w[lo - 1:hi]
        if len(seg) % 2 == 0 and not np.allclose(seg[0::2], seg[1::2], atol=tol, rtol=0):
            problems.append(f"{schedule.name}({n}): unequal pair inside band {b.label}")
        if hi == b.end and abs(seg.sum() - b.total) > tol:
            problems.append(
                f"{schedule.name}({n}): band {b.label} sums to {seg.sum():.12f}, "
                f"declared {b.total}"
            )
        last_end = max(last_end, hi)

    if n > last_end and np.any(w[last_end:] != 0.0):
        problems.append(f"{schedule.name}({n}): nonzero weight past rank {last_end}")

    return problems
