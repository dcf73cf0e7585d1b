"""
Headless Batch Runner.

Run many independent seeded games for statistical analysis. A game that
hits an invariant violation is reported and excluded from the aggregates;
the batch continues.
"""

import numpy as np
from dataclasses import replace
from typing import Dict, List, Any
import argparse
import time

from mgai.policy_heuristic import lineup_provider
from mgsim.driver import SimulationOptions, run_simulation
from mgsim.invariants import InvariantViolation


def summarize_game(result) -> Dict[str, Any]:
    equities = {row["company_id"]: row["equity"] for row in result.ranking}
    return {
        "seed": result.seed,
        "winner_id": result.winner.company_id,
        "winner_name": result.winner.name,
        "winner_equity": result.winner.equity,
        "qualified": result.winner.qualified,
        "final_equity": [equities[i] for i in sorted(equities)],
        "reshuffles": dict(result.reshuffles),
    }


def run_batch(
    n_games: int = 10,
    base_seed: int = 0,
    options: SimulationOptions = None,
    verbose: bool = False
) -> Dict[str, Any]:
    """
    Run multiple games and aggregate statistics.

    Args:
        n_games: Number of games
        base_seed: Seed of the first game; game i uses base_seed + i
        options: Template options (seed and verbosity are overridden per game;
            seats without a provider play the default heuristic lineup)
        verbose: Print one line per game

    Returns:
        Aggregated statistics dict
    """
    template = options or SimulationOptions()
    if template.provider_factory is None:
        template = replace(template, provider_factory=lineup_provider)
    games: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []

    for i in range(n_games):
        seed = base_seed + i
        game_options = replace(template, seed=seed, verbose=False)
        try:
            result = run_simulation(game_options)
        except InvariantViolation as e:
            failures.append({"seed": seed, "rule": e.rule, "message": str(e)})
            if verbose:
                print(f"Game {i+1}/{n_games} (seed={seed}) FAILED: {e}")
            continue

        summary = summarize_game(result)
        games.append(summary)
        if verbose:
            print(f"Game {i+1}/{n_games} (seed={seed}): winner {summary['winner_name']} "
                  f"equity {summary['winner_equity']}")

    stats = {
        "n_games": n_games,
        "completed": len(games),
        "failed": len(failures),
        "failures": failures,
        "games": games,
    }

    if not games:
        stats.update({
            "avg_winner_equity": 0.0,
            "std_winner_equity": 0.0,
            "qualification_rate": 0.0,
            "avg_final_equity": [],
            "win_counts": {},
        })
        return stats

    winner_equity = np.array([g["winner_equity"] for g in games], dtype=float)
    final_equity = np.array([g["final_equity"] for g in games], dtype=float)
    win_counts: Dict[int, int] = {}
    for g in games:
        win_counts[g["winner_id"]] = win_counts.get(g["winner_id"], 0) + 1

    stats.update({
        "avg_winner_equity": float(np.mean(winner_equity)),
        "std_winner_equity": float(np.std(winner_equity)),
        "qualification_rate": float(np.mean([g["qualified"] for g in games])),
        "avg_final_equity": [float(v) for v in np.mean(final_equity, axis=0)],
        "win_counts": win_counts,
    })
    return stats


def main(argv: List[str] = None):
    """Run a batch of all-AI games and print a summary."""
    parser = argparse.ArgumentParser(description="MG simulation batch runner")
    parser.add_argument("--games", type=int, default=10)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--no-risk", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    print("=" * 60)
    print("MG Simulation Batch Runner")
    print("=" * 60)

    options = SimulationOptions(risk_enabled=not args.no_risk)

    start_time = time.time()
    stats = run_batch(n_games=args.games, base_seed=args.seed, options=options, verbose=args.verbose)
    elapsed = time.time() - start_time

    print(f"\nResults ({elapsed:.2f}s):")
    print(f"  Completed: {stats['completed']}/{stats['n_games']} (failed {stats['failed']})")
    print(f"  Winner Equity: {stats['avg_winner_equity']:.1f} ± {stats['std_winner_equity']:.1f}")
    print(f"  Qualification Rate: {stats['qualification_rate']*100:.1f}%")
    for seat, equity in enumerate(stats["avg_final_equity"]):
        print(f"  Seat {seat} Average Equity: {equity:.1f}")
    for failure in stats["failures"]:
        print(f"  Failed seed {failure['seed']}: {failure['message']}")

    print("\n" + "=" * 60)
    print("Done!")


if __name__ == "__main__":
    main()
