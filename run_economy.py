# run_economy.py

import argparse
import logging

import pandas as pd

from Tournament import (
    FIXED_SIZES,
    RNG_SEED,
    SCHEDULES,
    EconomyParams,
    EconomySession,
    check_schedule,
    event_table,
    parse_overrides,
    simulate_many_seasons,
    skill_chip_correlation,
    summarize_events,
    summarize_players,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the chip economy: Cups, Regionals, pro circuit, Worlds."
    )
    parser.add_argument(
        "--format",
        choices=["legacy", "extended", "both"],
        default="both",
        help="legacy = 3x Cup -> Regionals -> Worlds; extended adds "
             "3x TPC -> 2x Open Cup -> Regionals (48) (default: both).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=RNG_SEED,
        help=f"Random seed (default: {RNG_SEED}).",
    )
    parser.add_argument(
        "--seasons",
        "-n",
        type=int,
        default=1,
        help="Number of seasons; more than 1 prints a multi-season summary.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override an economy parameter, e.g. --set z_cup=10 (repeatable).",
    )
    parser.add_argument(
        "--decay",
        action="store_true",
        help="Apply decay_pct to every balance after the run.",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=16,
        help="Rows to print per table (default: 16).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Print event types and payout schedule checks, then exit.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING).",
    )
    return parser.parse_args()


def print_event_table(params: EconomyParams) -> None:
    print("\n=== EVENT TYPES ===")
    print(event_table(params, FIXED_SIZES).to_string(index=False))


def print_schedule_checks() -> None:
    print("\n=== PAYOUT SCHEDULE CHECKS ===")
    for name, schedule in SCHEDULES.items():
        problems = check_schedule(schedule)
        status = "OK" if not problems else "FAIL"
        print(f"{name:>13} ({schedule.field_size:>3}): {status}")
        for p in problems:
            print(f"    - {p}")


def run_single(params: EconomyParams, fmt: str, seed: int, decay: bool, top: int) -> None:
    session = EconomySession(params=params, seed=seed)

    # The legacy season always runs first: its Regional seeds the pro set
    session.run_cups_phase()
    session.run_regional()
    session.run_worlds()
    if fmt in ("extended", "both"):
        session.run_extended_auto()
    if decay:
        session.decay()

    # =========================================================
    # 1. EVENT TIMELINE
    # =========================================================
    print("\n=== EVENT TIMELINE ===")
    for i, rec in enumerate(session.history):
        if rec.kind.value == "decay":
            print(f"[{i:>2}] {rec.label}: factor {rec.factor:.4f}")
            continue
        print(
            f"[{i:>2}] {rec.label:<16} N={rec.size:<4} pool={rec.pool:>10.2f} "
            f"bonuses={rec.bonus_total:>9.2f} net={rec.delta_total:>9.2f}"
        )

    # =========================================================
    # 2. LAST EVENT DETAIL
    # =========================================================
    last = session.history.last(where=lambda r: r.kind.value != "decay")
    if last is not None:
        print(f"\n=== {last.label.upper()} (TOP {top}) ===")
        print(last.to_frame().head(top).round(2).to_string(index=False))

    # =========================================================
    # 3. ROSTER
    # =========================================================
    print(f"\n=== ROSTER (TOP {top} BY CHIPS) ===")
    print(session.roster_frame().head(top).round(2).to_string(index=False))
    print(f"\nPros after this run: {sorted(session.current_pros())}")


def run_many(params: EconomyParams, fmt: str, seed: int, n: int, decay: bool, top: int) -> None:
    season_fmt = "extended" if fmt in ("extended", "both") else "legacy"
    standings_df, events_df = simulate_many_seasons(
        n, params=params, seed=seed, fmt=season_fmt, decay_between=decay,
    )

    print(f"\n=== EVENT POOLS ACROSS {n} SEASONS ({season_fmt}) ===")
    print(summarize_events(events_df).to_string(index=False))

    print(f"\n=== PLAYER SLOTS (TOP {top} BY MEAN CHIPS) ===")
    print(summarize_players(standings_df).head(top).to_string(index=False))

    rho = skill_chip_correlation(standings_df)
    print("\n=== SKILL vs FINAL CHIPS (SPEARMAN) ===")
    print("Mean:", round(rho.mean(), 4))
    print("Min:", round(rho.min(), 4))
    print("Max:", round(rho.max(), 4))


def main():
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )
    pd.set_option("display.width", 160)

    params = EconomyParams().with_overrides(**parse_overrides(args.overrides))

    if args.check:
        print_event_table(params)
        print_schedule_checks()
        return

    print("\n=== RUNNING CHIP ECONOMY ===")
    print(f"Format: {args.format}")
    print(f"Seed: {args.seed}")
    print(f"Seasons: {args.seasons}")
    if args.overrides:
        print(f"Overrides: {', '.join(args.overrides)}")

    if args.seasons > 1:
        run_many(params, args.format, args.seed, args.seasons, args.decay, args.top)
    else:
        run_single(params, args.format, args.seed, args.decay, args.top)


if __name__ == "__main__":
    main()
