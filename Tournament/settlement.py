# settlement.py

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .randomness import normal_like, rank_by

logger = logging.getLogger(__name__)


# ============================================================
# 1. BONUS ELIGIBILITY
# ============================================================

@dataclass(frozen=True)
class BonusPolicy:
    """
    Which ranks receive the fixed bonus y.

    kind is one of "all", "top_half", "top_k" (k required for top_k).
    """
    kind: str
    k: Optional[int] = None

    def __post_init__(self):
        if self.kind not in ("all", "top_half", "top_k"):
            raise ValueError(f"Unknown bonus policy: {self.kind!r}")
        if self.kind == "top_k" and (self.k is None or self.k < 0):
            raise ValueError("top_k policy needs a non-negative k")

    @classmethod
    def all(cls) -> "BonusPolicy":
        return cls("all")

    @classmethod
    def top_half(cls) -> "BonusPolicy":
        return cls("top_half")

    @classmethod
    def top_k(cls, k: int) -> "BonusPolicy":
        return cls("top_k", int(k))

    def eligible_count(self, n: int) -> int:
        if self.kind == "all":
            return n
        if self.kind == "top_half":
            return math.ceil(n / 2)
        return min(self.k, n)

    def is_eligible(self, rank: int, n: int) -> bool:
        return 1 <= rank <= self.eligible_count(n)

    def __str__(self) -> str:
        return f"top {self.k}" if self.kind == "top_k" else self.kind.replace("_", " ")


# ============================================================
# 2. RESULT
# ============================================================

@dataclass(frozen=True)
class Settlement:
    """
    Per-participant breakdown of one settlement, indexed by participant slot
    (the order participants were passed in), not by rank.
    """
    order: np.ndarray        # order[k] = slot at rank k+1
    ranks: np.ndarray        # ranks[slot] = 1-based rank
    performance: np.ndarray
    fees: np.ndarray
    bonuses: np.ndarray
    shares: np.ndarray
    payouts: np.ndarray
    deltas: np.ndarray
    new_chips: np.ndarray
    pool: float

    @property
    def size(self) -> int:
        return len(self.ranks)

    @property
    def bonus_total(self) -> float:
        return float(self.bonuses.sum())


def _empty_settlement() -> Settlement:
    e = np.zeros(0, dtype=float)
    return Settlement(
        order=np.zeros(0, dtype=int), ranks=np.zeros(0, dtype=int),
        performance=e, fees=e, bonuses=e, shares=e, payouts=e,
        deltas=e, new_chips=e, pool=0.0,
    )


def _fit_weights(weights: Sequence[float], n: int) -> np.ndarray:
    """Truncate or zero-pad weights to exactly n ranks."""
    w = np.asarray(weights, dtype=float)[:n]
    if len(w) < n:
        w = np.concatenate([w, np.zeros(n - len(w))])
    return w


# ============================================================
# 3. CORE SETTLEMENT
# ============================================================

def settle(
    skills: Sequence[float],
    chips: Sequence[float],
    z: float,
    y: float,
    weights: Sequence[float],
    policy: BonusPolicy,
    rng: np.random.Generator,
) -> Settlement:
    """
    Settle one event for N participants (pure: inputs are not modified).

    Steps
    -----
    1. fee = chips / z ; pool = sum(fees)
    2. performance = skill + noise ; rank descending (ties -> slot order)
    3. rank r gets pool share weights[r-1] * pool, plus y if eligible
    4. delta = payout - fee ; new_chips = chips + delta

    With sum(weights) == 1, sum(deltas) == y * eligible_count exactly
    (up to float error): fees and pool shares cancel.

    Raises
    ------
    ValueError
        If z <= 0 or skills/chips lengths differ.
    """
    if not z > 0:
        raise ValueError(f"Fee divisor z must be > 0, got {z}")

    skills = np.asarray(skills, dtype=float)
    chips = np.asarray(chips, dtype=float)
    if skills.shape != chips.shape:
        raise ValueError(
            f"skills and chips must align, got {skills.shape} vs {chips.shape}"
        )

    n = len(skills)
    if n == 0:
        return _empty_settlement()

    performance = skills + normal_like(rng, size=n)
    order, ranks = rank_by(performance)

    fees = chips / z
    pool = float(fees.sum())

    w = _fit_weights(weights, n)
    if abs(w.sum() - 1.0) > 1e-9:
        logger.warning(
            "Weights for N=%d sum to %.6f; pool is not fully allocated", n, w.sum()
        )

    shares = w[ranks - 1] * pool
    eligible = ranks <= policy.eligible_count(n)
    bonuses = np.where(eligible, float(y), 0.0)

    payouts = shares + bonuses
    deltas = payouts - fees
    new_chips = chips + deltas

    logger.debug(
        "Settled N=%d pool=%.2f bonus_total=%.2f (%s)", n, pool, bonuses.sum(), policy
    )

    return Settlement(
        order=order,
        ranks=ranks,
        performance=performance,
        fees=fees,
        bonuses=bonuses,
        shares=shares,
        payouts=payouts,
        deltas=deltas,
        new_chips=new_chips,
        pool=pool,
    )


def tier_run(
    participant_ids: Sequence[int],
    roster,
    z: float,
    y: float,
    weights: Sequence[float],
    policy: BonusPolicy,
    rng: np.random.Generator,
) -> Settlement:
    """
    Settle an event for roster members and apply the deltas to the roster.

    The roster is only touched after every check and the full computation
    have succeeded.
    """
    ids = [int(i) for i in participant_ids]
    if len(set(ids)) != len(ids):
        raise ValueError("Duplicate participant ids in settlement")
    for pid in ids:
        if pid < 0 or pid >= len(roster):
            raise ValueError(f"Participant id {pid} is not on the roster")

    result = settle(
        roster.skills(ids),
        roster.chips(ids),
        z, y, weights, policy, rng,
    )
    if ids:
        roster.apply_deltas(ids, result.deltas)
    return result
