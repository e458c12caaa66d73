# store.py

from typing import Callable, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .events import EXTERNAL_ID, DecayRecord, EventKind, EventRecord
from .randomness import normal_like

Record = Union[EventRecord, DecayRecord]


# ============================================================
# 1. ROSTER
# ============================================================

class Roster:
    """
    Mutable population table: one row per competitor.

    Columns: player_id (index, 0-based), skill (fixed), chips (balance).
    """

    def __init__(self, players: pd.DataFrame):
        required = {"skill", "chips"}
        missing = required - set(players.columns)
        if missing:
            raise ValueError(f"Roster missing columns: {missing}")
        self._df = players[["skill", "chips"]].astype(float).copy()
        self._df.index = pd.RangeIndex(len(self._df), name="player_id")

    @classmethod
    def create(cls, n: int, x0: float, rng: np.random.Generator) -> "Roster":
        """n competitors, skill ~ normal_like, chips = x0."""
        if n < 0:
            raise ValueError(f"Population size must be >= 0, got {n}")
        return cls(pd.DataFrame({
            "skill": normal_like(rng, size=n),
            "chips": np.full(n, float(x0)),
        }))

    def __len__(self) -> int:
        return len(self._df)

    # --- reads ---

    def skills(self, ids: Sequence[int]) -> np.ndarray:
        return self._df["skill"].to_numpy()[list(ids)]

    def chips(self, ids: Optional[Sequence[int]] = None) -> np.ndarray:
        values = self._df["chips"].to_numpy()
        return values.copy() if ids is None else values[list(ids)]

    def top_by_chips(self, k: int, among: Optional[Sequence[int]] = None) -> List[int]:
        """
        Ids of the k richest competitors (optionally only from `among`).
        Equal balances keep id order.
        """
        df = self._df if among is None else self._df.loc[list(among)]
        if k > len(df):
            raise ValueError(f"Cannot take top {k} from {len(df)} competitors")
        top = df.sort_values("chips", ascending=False, kind="stable").head(k)
        return [int(i) for i in top.index]

    def snapshot(self) -> pd.DataFrame:
        """Copy of the roster, richest first."""
        return (
            self._df
            .sort_values("chips", ascending=False, kind="stable")
            .reset_index()
        )

    # --- writes ---

    def set_chips(self, ids: Sequence[int], values: Sequence[float]) -> None:
        col = self._df.columns.get_loc("chips")
        self._df.iloc[list(ids), col] = np.asarray(values, dtype=float)

    def apply_deltas(self, ids: Sequence[int], deltas: Sequence[float]) -> None:
        self.set_chips(ids, self.chips(ids) + np.asarray(deltas, dtype=float))

    def scale_chips(self, factor: float) -> None:
        """Multiply every balance by factor, floored at 0."""
        self._df["chips"] = (self._df["chips"] * factor).clip(lower=0.0)


# ============================================================
# 2. HISTORY
# ============================================================

class History:
    """Append-only event log, in event order."""

    def __init__(self):
        self._records: List[Record] = []

    def append(self, record: Record) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    def __getitem__(self, i: int) -> Record:
        return self._records[i]

    def records(self, kind: Optional[EventKind] = None) -> List[Record]:
        if kind is None:
            return list(self._records)
        return [r for r in self._records if r.kind == kind]

    def last(
        self,
        kind: Optional[EventKind] = None,
        where: Optional[Callable[[Record], bool]] = None,
    ) -> Optional[Record]:
        """Most recent record of a kind (and matching `where`), else None."""
        for rec in reversed(self._records):
            if kind is not None and rec.kind != kind:
                continue
            if where is not None and not where(rec):
                continue
            return rec
        return None

    def to_frame(self) -> pd.DataFrame:
        """
        Long format: one row per participant per settlement event, tagged
        with event_index and label. Decay events contribute no rows.
        """
        frames = []
        for i, rec in enumerate(self._records):
            if not isinstance(rec, EventRecord):
                continue
            df = rec.to_frame()
            df.insert(0, "event_index", i)
            df.insert(1, "event", rec.label)
            df.insert(2, "kind", rec.kind.value)
            df["pool"] = rec.pool
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=[
                "event_index", "event", "kind", "rank", "player_id", "name",
                "fee", "bonus", "share", "payout", "delta", "new_chips",
                "is_external", "pool",
            ])
        return pd.concat(frames, ignore_index=True)

    def changes_matrix(self, final_chips: Sequence[float]) -> pd.DataFrame:
        """
        Player x event table of net change (NaN = did not take part), plus
        final chips; rows sorted by final chips, richest first.
        """
        final_chips = np.asarray(final_chips, dtype=float)
        n_players = len(final_chips)
        columns = {}
        for i, rec in enumerate(self._records):
            if not isinstance(rec, EventRecord):
                continue
            col = np.full(n_players, np.nan)
            for pid, d in zip(rec.participant_ids, rec.deltas):
                if pid != EXTERNAL_ID:
                    col[pid] = d
            columns[f"{i}:{rec.label}"] = col

        out = pd.DataFrame(columns, index=pd.RangeIndex(n_players, name="player_id"))
        out["final_chips"] = final_chips
        return out.sort_values("final_chips", ascending=False, kind="stable")
