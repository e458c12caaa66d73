# session.py

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from .config import FIXED_SIZES, RNG_SEED, EconomyParams, FieldSizes, clamp_pct
from .events import (
    EVENT_SPECS,
    EXTERNAL_ID,
    DecayRecord,
    EventKind,
    EventRecord,
)
from .randomness import choice_from_list, choice_indexes, make_rng, normal_like, rank_by
from .settlement import settle, tier_run
from .store import History, Roster
from .weights import REGIONAL_SCHEDULE

logger = logging.getLogger(__name__)


class EconomySession:
    """
    One simulation session: roster, history and random generator, owned by a
    single caller. Every operation either commits exactly one record or is
    refused before anything changes.

    Legacy flow
    -----------
    3x Cup (128 drawn from all 256, y to top half)
      -> Regionals (top 32 by chips, y to all)
      -> Worlds (12 Regional qualifiers by weight points + 36 externals)

    Extended (pro circuit) flow
    ---------------------------
    3x TPC (the 32 pros, y to all)
      -> 2x Open Cup (128 drawn from the 224 non-pros, y to top K)
      -> Regionals (48) = 32 pros + top 16 non-pros by chips
    """

    def __init__(
        self,
        params: Optional[EconomyParams] = None,
        sizes: Optional[FieldSizes] = None,
        seed: Optional[int] = RNG_SEED,
        rng: Optional[np.random.Generator] = None,
    ):
        self.params = params or EconomyParams()
        self.sizes = sizes or FIXED_SIZES
        self.rng = rng if rng is not None else make_rng(seed)
        self.roster = Roster.create(self.sizes.population, self.params.x0, self.rng)
        self.history = History()
        self.stage = "idle"

    # ============================================================
    # STATE
    # ============================================================

    def reset(self, params: Optional[EconomyParams] = None) -> None:
        """Recreate the population from (optionally new) params; clear history."""
        if params is not None:
            self.params = params
        self.roster = Roster.create(self.sizes.population, self.params.x0, self.rng)
        self.history = History()
        self.stage = "idle"
        logger.info("Reset: %d competitors at %.2f chips", self.sizes.population, self.params.x0)

    def roster_frame(self) -> pd.DataFrame:
        return self.roster.snapshot()

    def history_frame(self) -> pd.DataFrame:
        return self.history.to_frame()

    def changes_matrix(self) -> pd.DataFrame:
        return self.history.changes_matrix(self.roster.chips())

    def _commit(self, record, stage: str):
        self.history.append(record)
        self.stage = stage
        if isinstance(record, EventRecord):
            logger.info("%s: N=%d pool=%.2f bonuses=%.2f",
                        record.label, record.size, record.pool, record.bonus_total)
        return record

    def _settle_roster(self, kind: EventKind, ids: List[int], round_no=None, stage=None, **extras):
        spec = EVENT_SPECS[kind]
        z, y = spec.fee_and_bonus(self.params)
        result = tier_run(
            ids, self.roster, z, y,
            spec.schedule.weights(len(ids)),
            spec.policy(self.params),
            self.rng,
        )
        record = EventRecord.from_settlement(kind, ids, result, round_no=round_no, **extras)
        return self._commit(record, stage or kind.value)

    def _field_size(self, kind: EventKind) -> int:
        return EVENT_SPECS[kind].field_size(self.sizes)

    # ============================================================
    # PRO SET
    # ============================================================

    def current_pros(self) -> List[int]:
        """
        Pros, in priority order:
          1. top `tpc` by rank of the latest 48-field Regional
          2. participants of the latest full-size legacy Regional (first `tpc`)
          3. top `tpc` by chips right now
        """
        n = self._field_size(EventKind.TPC)
        last48 = self.history.last(EventKind.EXT_REGIONAL)
        if last48 is not None:
            return list(last48.ranked_ids()[:n])

        reg_size = self._field_size(EventKind.REGIONAL)
        last32 = self.history.last(EventKind.REGIONAL, where=lambda r: r.size == reg_size)
        if last32 is not None:
            return list(last32.participant_ids[:n])

        logger.info("No qualifying Regional yet; using top %d by chips as pros", n)
        return self.roster.top_by_chips(n)

    def non_pros(self, pros: Optional[List[int]] = None) -> List[int]:
        pro_set = set(self.current_pros() if pros is None else pros)
        return [i for i in range(len(self.roster)) if i not in pro_set]

    # ============================================================
    # LEGACY FLOW
    # ============================================================

    def run_cup(self, round_no: int = 1) -> EventRecord:
        """One Cup: cup_slots drawn uniformly from the whole population."""
        ids = choice_indexes(self.rng, len(self.roster), self._field_size(EventKind.CUP))
        return self._settle_roster(EventKind.CUP, ids, round_no=round_no, stage=f"cup{round_no}")

    def run_cups_phase(self, rounds: int = 3) -> List[EventRecord]:
        return [self.run_cup(r) for r in range(1, rounds + 1)]

    def run_regional(self) -> EventRecord:
        """Regionals: the top `reg` competitors by current chips."""
        ids = self.roster.top_by_chips(self._field_size(EventKind.REGIONAL))
        return self._settle_roster(EventKind.REGIONAL, ids)

    def worlds_qualifiers(self) -> Optional[List[int]]:
        """
        Our region's Worlds qualifiers from the latest legacy Regional.

        Each Regional rank converts to points = weight[rank-1] * 100 and the
        top `world_quota` by points qualify. Equal points (a paired band)
        keep the Regional's participant order. None if no Regional has run.
        """
        last_reg = self.history.last(EventKind.REGIONAL)
        if last_reg is None:
            return None
        w_reg = REGIONAL_SCHEDULE.weights(last_reg.size)
        points = np.round(w_reg[np.asarray(last_reg.ranks) - 1] * 100, 9)
        order, _ = rank_by(points)
        quota = min(self.sizes.world_quota, last_reg.size)
        return [last_reg.participant_ids[j] for j in order[:quota]]

    def run_worlds(self) -> Optional[EventRecord]:
        """
        Worlds: our qualifiers + synthetic external entrants up to `world`.

        Externals get skill = median qualifier skill + noise * spread and
        chips = median qualifier chips; their post-event balances are
        discarded. Refused (None, nothing changes) without a prior Regional.
        """
        qualifiers = self.worlds_qualifiers()
        if qualifiers is None:
            logger.warning("Worlds refused: no Regional has been run yet")
            return None

        spec = EVENT_SPECS[EventKind.WORLDS]
        z, y = spec.fee_and_bonus(self.params)

        q_skill = self.roster.skills(qualifiers)
        q_chips = self.roster.chips(qualifiers)
        n_ext = max(0, self._field_size(EventKind.WORLDS) - len(qualifiers))
        med_skill = float(np.median(q_skill))
        med_chips = float(np.median(q_chips))

        ext_skill = med_skill + normal_like(self.rng, size=n_ext) * self.sizes.external_skill_spread
        skills = np.concatenate([q_skill, ext_skill])
        chips = np.concatenate([q_chips, np.full(n_ext, med_chips)])
        ids = list(qualifiers) + [EXTERNAL_ID] * n_ext

        result = settle(
            skills, chips, z, y,
            spec.schedule.weights(len(ids)),
            spec.policy(self.params),
            self.rng,
        )
        self.roster.set_chips(qualifiers, result.new_chips[:len(qualifiers)])

        record = EventRecord.from_settlement(
            EventKind.WORLDS, ids, result, qualifiers=qualifiers,
        )
        return self._commit(record, "worlds")

    def auto_play(self) -> List[EventRecord]:
        """Reset, then 3x Cup -> Regionals -> Worlds."""
        self.reset()
        records = self.run_cups_phase()
        records.append(self.run_regional())
        records.append(self.run_worlds())
        return records

    # ============================================================
    # EXTENDED (PRO CIRCUIT) FLOW
    # ============================================================

    def run_tpc(self, round_no: int = 1) -> EventRecord:
        """One pro-circuit round for the current pros."""
        pros = self.current_pros()
        return self._settle_roster(EventKind.TPC, pros, round_no=round_no, stage=f"tpc{round_no}")

    def run_tpc_phase(self, rounds: int = 3) -> List[EventRecord]:
        return [self.run_tpc(r) for r in range(1, rounds + 1)]

    def run_ext_cup(self, round_no: int = 1, non_pros: Optional[List[int]] = None) -> EventRecord:
        """One Open Cup: cup_slots drawn from the non-pros."""
        pool = self.non_pros() if non_pros is None else non_pros
        ids = choice_from_list(self.rng, pool, self._field_size(EventKind.EXT_CUP))
        return self._settle_roster(
            EventKind.EXT_CUP, ids, round_no=round_no, stage=f"ext_cup{round_no}",
            note="pros excluded",
        )

    def run_ext_cups_phase(self, rounds: int = 2) -> List[EventRecord]:
        """Open Cups; the non-pro pool is fixed at the start of the phase."""
        non_pros = self.non_pros()
        slots = self._field_size(EventKind.EXT_CUP)
        if slots > len(non_pros):
            raise ValueError(
                f"Cannot draw {slots} from {len(non_pros)} non-pros"
            )
        return [self.run_ext_cup(r, non_pros=non_pros) for r in range(1, rounds + 1)]

    def run_ext_regional(self) -> EventRecord:
        """Regionals (48): current pros + richest non-pros."""
        pros = self.current_pros()
        open_qualifiers = self.roster.top_by_chips(
            self._field_size(EventKind.EXT_REGIONAL) - len(pros), among=self.non_pros(pros),
        )
        ids = list(pros) + open_qualifiers
        return self._settle_roster(
            EventKind.EXT_REGIONAL, ids, pros=pros, open_qualifiers=open_qualifiers,
        )

    def run_extended_auto(self) -> List[EventRecord]:
        """3x TPC -> 2x Open Cup -> Regionals (48), on the current state."""
        records = self.run_tpc_phase()
        records.extend(self.run_ext_cups_phase())
        records.append(self.run_ext_regional())
        return records

    # ============================================================
    # DECAY
    # ============================================================

    def decay(self, pct: Optional[float] = None) -> DecayRecord:
        """Shrink every balance by pct percent (clamped to [0, 100]), floor 0."""
        pct = clamp_pct(self.params.decay_pct if pct is None else pct)
        factor = 1.0 - pct / 100.0
        self.roster.scale_chips(factor)
        logger.info("Decay: -%g%% (factor %.4f)", pct, factor)
        return self._commit(DecayRecord(factor=factor, pct=pct), "decay")
