# events.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .config import EconomyParams, FieldSizes
from .settlement import BonusPolicy, Settlement
from .weights import (
    CUP_SCHEDULE,
    EXT_REGIONAL_SCHEDULE,
    REGIONAL_SCHEDULE,
    TPC_SCHEDULE,
    WORLDS_SCHEDULE,
    Schedule,
)

# Synthetic Worlds entrants have no roster entry
EXTERNAL_ID = -1


# ============================================================
# 1. EVENT KINDS
# ============================================================

class EventKind(str, Enum):
    CUP = "cup"
    REGIONAL = "regional"
    WORLDS = "worlds"
    TPC = "tpc"
    EXT_CUP = "ext_cup"
    EXT_REGIONAL = "ext_regional"
    DECAY = "decay"


@dataclass(frozen=True)
class EventSpec:
    """
    Fixed recipe for one settlement event type.

    size_attr names the FieldSizes attribute holding the field size;
    fee_param / bonus_param name the EconomyParams divisor and bonus.
    """
    kind: EventKind
    label: str
    size_attr: str
    schedule: Schedule
    fee_param: str
    bonus_param: str
    selection: str
    policy_for: Callable[[EconomyParams], BonusPolicy]

    def fee_and_bonus(self, params: EconomyParams) -> Tuple[float, float]:
        return getattr(params, self.fee_param), getattr(params, self.bonus_param)

    def policy(self, params: EconomyParams) -> BonusPolicy:
        return self.policy_for(params)

    def field_size(self, sizes: FieldSizes) -> int:
        return getattr(sizes, self.size_attr)


def _ext_cup_policy(params: EconomyParams) -> BonusPolicy:
    if params.ext_cup_top_k is None:
        return BonusPolicy.top_half()
    return BonusPolicy.top_k(params.ext_cup_top_k)


EVENT_SPECS: Dict[EventKind, EventSpec] = {
    EventKind.CUP: EventSpec(
        EventKind.CUP, "Cup", "cup_slots", CUP_SCHEDULE, "z_cup", "y_cup",
        "random sample of the whole population",
        lambda p: BonusPolicy.top_half(),
    ),
    EventKind.REGIONAL: EventSpec(
        EventKind.REGIONAL, "Regionals", "reg", REGIONAL_SCHEDULE, "z_reg", "y_reg",
        "top by chips",
        lambda p: BonusPolicy.all(),
    ),
    EventKind.WORLDS: EventSpec(
        EventKind.WORLDS, "Worlds", "world", WORLDS_SCHEDULE, "z_world", "y_world",
        "Regional qualifiers by weight points + external entrants",
        lambda p: BonusPolicy.all(),
    ),
    EventKind.TPC: EventSpec(
        EventKind.TPC, "TPC", "tpc", TPC_SCHEDULE, "z_tpc", "y_tpc",
        "current pros",
        lambda p: BonusPolicy.all(),
    ),
    EventKind.EXT_CUP: EventSpec(
        EventKind.EXT_CUP, "Open Cup", "cup_slots", CUP_SCHEDULE, "z_ext_cup", "y_ext_cup",
        "random sample of non-pros",
        _ext_cup_policy,
    ),
    EventKind.EXT_REGIONAL: EventSpec(
        EventKind.EXT_REGIONAL, "Regionals (48)", "ext_reg", EXT_REGIONAL_SCHEDULE,
        "z_ext_reg", "y_ext_reg",
        "pros + top non-pros by chips",
        lambda p: BonusPolicy.all(),
    ),
}


def event_table(params: EconomyParams, sizes: FieldSizes) -> pd.DataFrame:
    """One row per settlement event type: field, selection, z, y, bonus policy."""
    rows = []
    for spec in EVENT_SPECS.values():
        z, y = spec.fee_and_bonus(params)
        rows.append({
            "event": spec.label,
            "field_size": spec.field_size(sizes),
            "selection": spec.selection,
            "schedule": spec.schedule.name,
            "z": z,
            "y": y,
            "bonus_to": str(spec.policy(params)),
        })
    return pd.DataFrame(rows)


# ============================================================
# 2. RECORDS
# ============================================================

def _frozen(values, dtype=float) -> Tuple:
    return tuple(np.asarray(values, dtype=dtype).tolist())


@dataclass(frozen=True)
class EventRecord:
    """
    Immutable snapshot of one settlement. All per-participant tuples are in
    participant-slot order (aligned with participant_ids).
    """
    kind: EventKind
    round_no: Optional[int]
    participant_ids: Tuple[int, ...]
    ranks: Tuple[int, ...]
    fees: Tuple[float, ...]
    bonuses: Tuple[float, ...]
    shares: Tuple[float, ...]
    payouts: Tuple[float, ...]
    deltas: Tuple[float, ...]
    balances: Tuple[float, ...]
    pool: float
    qualifiers: Tuple[int, ...] = ()
    pros: Tuple[int, ...] = ()
    open_qualifiers: Tuple[int, ...] = ()
    note: str = ""

    @classmethod
    def from_settlement(
        cls,
        kind: EventKind,
        participant_ids,
        result: Settlement,
        round_no: Optional[int] = None,
        **extras,
    ) -> "EventRecord":
        extras = {k: tuple(int(i) for i in v) if k != "note" else v
                  for k, v in extras.items()}
        return cls(
            kind=kind,
            round_no=round_no,
            participant_ids=_frozen(participant_ids, int),
            ranks=_frozen(result.ranks, int),
            fees=_frozen(result.fees),
            bonuses=_frozen(result.bonuses),
            shares=_frozen(result.shares),
            payouts=_frozen(result.payouts),
            deltas=_frozen(result.deltas),
            balances=_frozen(result.new_chips),
            pool=float(result.pool),
            **extras,
        )

    @property
    def label(self) -> str:
        base = EVENT_SPECS[self.kind].label
        return f"{base} {self.round_no}" if self.round_no is not None else base

    @property
    def size(self) -> int:
        return len(self.participant_ids)

    @property
    def bonus_total(self) -> float:
        return float(sum(self.bonuses))

    @property
    def delta_total(self) -> float:
        return float(sum(self.deltas))

    def ranked_ids(self) -> Tuple[int, ...]:
        """Participant ids ordered by rank (best first)."""
        by_rank = sorted(zip(self.ranks, self.participant_ids))
        return tuple(pid for _, pid in by_rank)

    def delta_for(self, player_id: int) -> Optional[float]:
        for pid, d in zip(self.participant_ids, self.deltas):
            if pid == player_id and pid != EXTERNAL_ID:
                return d
        return None

    def to_frame(self) -> pd.DataFrame:
        """Per-participant table sorted by rank."""
        df = pd.DataFrame({
            "rank": self.ranks,
            "player_id": self.participant_ids,
            "fee": self.fees,
            "bonus": self.bonuses,
            "share": self.shares,
            "payout": self.payouts,
            "delta": self.deltas,
            "new_chips": self.balances,
        })
        df = df.sort_values("rank").reset_index(drop=True)
        df["is_external"] = df["player_id"] == EXTERNAL_ID
        df.insert(
            2, "name",
            [f"EXT{r}" if ext else f"P{pid + 1}"
             for r, pid, ext in zip(df["rank"], df["player_id"], df["is_external"])],
        )
        return df


@dataclass(frozen=True)
class DecayRecord:
    factor: float
    pct: float
    kind: EventKind = field(default=EventKind.DECAY)

    @property
    def label(self) -> str:
        return f"Decay (-{self.pct:g}%)"
