# seasons.py

import numpy as np
import pandas as pd
from typing import Optional, Tuple

from .config import RNG_SEED, EconomyParams, FieldSizes
from .events import EventRecord
from .session import EconomySession

FORMATS = ("legacy", "extended")


# ============================================================
# 1. ONE SEASON
# ============================================================

def play_season(session: EconomySession, fmt: str = "legacy") -> None:
    """
    Run one season on a session.

    legacy   : 3x Cup -> Regionals -> Worlds
    extended : legacy season first (it seeds the pro set), then
               3x TPC -> 2x Open Cup -> Regionals (48)
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown season format {fmt!r}; expected one of {FORMATS}")

    session.run_cups_phase()
    session.run_regional()
    session.run_worlds()
    if fmt == "extended":
        session.run_extended_auto()


# ============================================================
# 2. MANY-SEASON SIM WRAPPER
# ============================================================

def simulate_many_seasons(
    n: int,
    params: Optional[EconomyParams] = None,
    sizes: Optional[FieldSizes] = None,
    seed: int = RNG_SEED,
    fmt: str = "legacy",
    decay_between: bool = False,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Run n independent seasons, each on a fresh population.

    Returns
    -------
    standings_df : pd.DataFrame
        Long format; one row per competitor per season.
        Columns: season_id, player_id, skill, chips, rank.
    events_df : pd.DataFrame
        Long format; one row per settlement event per season.
        Columns: season_id, event_index, event, kind, field_size, pool,
                 bonus_total, delta_total.
    """
    all_standings = []
    all_events = []

    for season_id in range(1, n + 1):
        # Fresh RNG each season (population, draws and noise)
        session = EconomySession(params=params, sizes=sizes, seed=seed + season_id)
        play_season(session, fmt=fmt)
        if decay_between:
            session.decay()

        standings = session.roster_frame()
        standings["season_id"] = season_id
        standings["rank"] = np.arange(1, len(standings) + 1)
        all_standings.append(standings)

        for i, rec in enumerate(session.history):
            if not isinstance(rec, EventRecord):
                continue
            all_events.append({
                "season_id": season_id,
                "event_index": i,
                "event": rec.label,
                "kind": rec.kind.value,
                "field_size": rec.size,
                "pool": rec.pool,
                "bonus_total": rec.bonus_total,
                "delta_total": rec.delta_total,
            })

    standings_df = pd.concat(all_standings, ignore_index=True)
    events_df = pd.DataFrame(all_events)
    return standings_df, events_df


# ============================================================
# 3. SUMMARIES
# ============================================================

def _p25(x: pd.Series) -> float:
    return float(np.percentile(x, 25))


def _p75(x: pd.Series) -> float:
    return float(np.percentile(x, 75))


def summarize_players(standings_df: pd.DataFrame, top_cut: int = 32) -> pd.DataFrame:
    """
    Per-player distribution of final chips across seasons.

    Player ids are re-drawn every season, so this describes finishing
    slots by id, not the same skill level. Sorted by mean chips.
    """
    required = {"season_id", "player_id", "chips", "rank"}
    missing = required - set(standings_df.columns)
    if missing:
        raise ValueError(f"standings_df is missing required columns: {missing}")

    summary = (
        standings_df
        .groupby("player_id", as_index=False)
        .agg(
            seasons=("season_id", "nunique"),
            mean_skill=("skill", "mean"),
            mean_chips=("chips", "mean"),
            median_chips=("chips", "median"),
            p25_chips=("chips", _p25),
            p75_chips=("chips", _p75),
            iqr_chips=("chips", lambda x: _p75(x) - _p25(x)),
            top_pct=("rank", lambda x: np.mean(x <= top_cut)),
        )
        .sort_values("mean_chips", ascending=False)
        .reset_index(drop=True)
    )
    money_cols = ["mean_chips", "median_chips", "p25_chips", "p75_chips", "iqr_chips"]
    summary[money_cols] = summary[money_cols].round(2)
    return summary


def summarize_events(events_df: pd.DataFrame) -> pd.DataFrame:
    """Pool and bonus statistics per event label, in first-seen order."""
    if events_df.empty:
        return pd.DataFrame(columns=[
            "event", "runs", "mean_pool", "min_pool", "max_pool", "mean_bonus_total",
        ])
    return (
        events_df
        .groupby("event", as_index=False, sort=False)
        .agg(
            runs=("pool", "size"),
            mean_pool=("pool", "mean"),
            min_pool=("pool", "min"),
            max_pool=("pool", "max"),
            mean_bonus_total=("bonus_total", "mean"),
        )
        .round(2)
    )


def skill_chip_correlation(standings_df: pd.DataFrame) -> pd.Series:
    """Spearman correlation of skill vs final chips, per season."""
    rho = {
        season_id: d["skill"].rank().corr(d["chips"].rank())
        for season_id, d in standings_df.groupby("season_id")
    }
    return pd.Series(rho, name="skill_chip_rho").rename_axis("season_id")
