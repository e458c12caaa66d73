"""Tournament package public API.

This package provides the chip-economy settlement engine for a tiered
tournament circuit (Cups, Regionals, pro circuit, Worlds):

Functions / classes exported
----------------------------
- build_monotone_by_pairs            (weights)
- weights_cup / weights_reg / ...    (weights)
- settle, tier_run, BonusPolicy      (settlement)
- EconomySession                     (session)
- simulate_many_seasons              (seasons)
- EconomyParams, FieldSizes          (config)

Usage
-----
from Tournament import EconomySession

session = EconomySession(seed=42)
session.run_cups_phase()
session.run_regional()
session.run_worlds()
print(session.roster_frame().head(16))
"""

from .config import (
    RNG_SEED, EconomyParams, FieldSizes, DEFAULT_PARAMS, FIXED_SIZES, parse_overrides,
)
from .randomness import make_rng, normal_like, choice_indexes, choice_from_list, rank_by
from .weights import (
    Band, Schedule, build_monotone_by_pairs, check_schedule, payout_table,
    CUP_SCHEDULE, REGIONAL_SCHEDULE, WORLDS_SCHEDULE, EXT_REGIONAL_SCHEDULE, TPC_SCHEDULE,
    SCHEDULES, weights_cup, weights_reg, weights_world, weights_reg48, weights_tpc,
)
from .settlement import BonusPolicy, Settlement, settle, tier_run
from .events import (
    EventKind, EventSpec, EVENT_SPECS, EventRecord, DecayRecord, EXTERNAL_ID, event_table,
)
from .store import Roster, History
from .session import EconomySession
from .seasons import (
    play_season, simulate_many_seasons, summarize_players, summarize_events,
    skill_chip_correlation,
)


__all__ = [
    "RNG_SEED", "EconomyParams", "FieldSizes", "DEFAULT_PARAMS", "FIXED_SIZES",
    "parse_overrides",
    "make_rng", "normal_like", "choice_indexes", "choice_from_list", "rank_by",
    "Band", "Schedule", "build_monotone_by_pairs", "check_schedule", "payout_table",
    "CUP_SCHEDULE", "REGIONAL_SCHEDULE", "WORLDS_SCHEDULE", "EXT_REGIONAL_SCHEDULE",
    "TPC_SCHEDULE", "SCHEDULES",
    "weights_cup", "weights_reg", "weights_world", "weights_reg48", "weights_tpc",
    "BonusPolicy", "Settlement", "settle", "tier_run",
    "EventKind", "EventSpec", "EVENT_SPECS", "EventRecord", "DecayRecord", "EXTERNAL_ID",
    "event_table",
    "Roster", "History",
    "EconomySession",
    "play_season", "simulate_many_seasons", "summarize_players", "summarize_events",
    "skill_chip_correlation",
]

__version__ = "0.1.0"
