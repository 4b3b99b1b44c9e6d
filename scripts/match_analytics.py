#!/usr/bin/env python
"""
Match Analytics - Score, reason and tag statistics for saved match results

Reads a results JSON written by run_matcher.py --output and reports:
1. Score distribution per tier
2. How often each match reason fired
3. How often each highlight tag appears

Usage:
    python scripts/match_analytics.py output/matches.json
    python scripts/match_analytics.py output/matches.json --plot output/score_distribution.png
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd


def load_results(json_path: Path) -> List[Dict[str, Any]]:
    """Load result cards from a saved results file (object with 'results', or a bare list)."""
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return data.get("results", [])
    return data


def results_frame(results: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per result with the columns the reports need."""
    rows = [
        {
            "organization_id": r.get("organizationId", ""),
            "name": r.get("name", ""),
            "tier": r.get("tier", "FREE"),
            "match_score": r.get("matchScore", 0),
            "ai_ranked": r.get("aiRank") is not None,
            "match_reasons": r.get("matchReasons") or [],
            "tags": r.get("tags") or [],
        }
        for r in results
    ]
    return pd.DataFrame(
        rows,
        columns=["organization_id", "name", "tier", "match_score", "ai_ranked", "match_reasons", "tags"],
    )


def score_by_tier(df: pd.DataFrame) -> pd.DataFrame:
    """Score count / mean / median / min / max per tier."""
    if df.empty:
        return pd.DataFrame(columns=["count", "mean", "median", "min", "max"])
    return df.groupby("tier")["match_score"].agg(["count", "mean", "median", "min", "max"]).round(2)


def frequency(df: pd.DataFrame, column: str) -> pd.Series:
    """How many results carry each value of a list column, most frequent first."""
    if df.empty:
        return pd.Series(dtype="int64")
    exploded = df[column].explode().dropna()
    return exploded.value_counts()


def plot_score_distribution(df: pd.DataFrame, output_path: Path) -> None:
    import matplotlib
    matplotlib.use("Agg")  # non-interactive backend
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(8, 5))
    for tier, group in df.groupby("tier"):
        ax.hist(group["match_score"], bins=range(0, 105, 5), alpha=0.6, label=tier)
    ax.set_xlabel("Match score")
    ax.set_ylabel("OEMs")
    ax.set_title("Match score distribution by tier")
    ax.legend()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=120, bbox_inches="tight")
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser(description="Match result analytics")
    parser.add_argument("results", type=Path, help="Results JSON written by run_matcher.py --output")
    parser.add_argument("--plot", type=Path, help="Save a score histogram to this PNG")
    args = parser.parse_args()

    if not args.results.exists():
        print(f"Error: Results file not found: {args.results}", file=sys.stderr)
        return 1

    df = results_frame(load_results(args.results))

    print("=" * 70)
    print("Match Analytics")
    print("=" * 70)
    print(f"\nResults: {len(df)}")
    print(f"AI ranked: {int(df['ai_ranked'].sum()) if not df.empty else 0}")

    print("\n" + "=" * 50)
    print("Score by tier")
    print("=" * 50)
    print(score_by_tier(df))

    print("\n" + "=" * 50)
    print("Match reasons")
    print("=" * 50)
    print(frequency(df, "match_reasons").to_string())

    print("\n" + "=" * 50)
    print("Tags")
    print("=" * 50)
    print(frequency(df, "tags").to_string())

    if args.plot and not df.empty:
        plot_score_distribution(df, args.plot)
        print(f"\nPlot saved: {args.plot}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
