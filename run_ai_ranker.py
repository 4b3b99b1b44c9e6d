#!/usr/bin/env python3
"""
AI Ranker CLI - LLM ranking of OEMs for buyer queries

Runs the LLM ranker over one or more free-text buyer requirements and
caches one JSON file per query. The cache can be fed back into the matcher
as score overrides (see ai_ranking.load_ranking_cache / to_overrides).

Usage:
    # Rank a couple of queries
    python run_ai_ranker.py \\
        --input data/oems.json \\
        --queries "organic face serum 500 units" "private label shampoo for export"

    # Rank queries from a JSON file, reusing existing cache
    python run_ai_ranker.py \\
        --input data/oems.json \\
        --queries-json data/queries.json \\
        --output-dir cache/ai_ranking \\
        --skip-existing
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from ai_ranking import LLMRanker
from core.constants import AI_TOP_K
from core.data_io import load_candidates_from_json


def load_queries_from_json(json_path: Path) -> List[str]:
    """Load queries from a JSON list or an object with a 'queries' list."""
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        return [str(q) for q in data]
    elif isinstance(data, dict) and "queries" in data:
        return [str(q) for q in data["queries"]]
    else:
        raise ValueError("Invalid JSON format. Expected a list or an object with 'queries'.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rank OEMs for buyer queries using an LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--input",
        type=Path,
        default=Path("data/oems.json"),
        help="Path to OEM records JSON (default: data/oems.json)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("cache/ai_ranking"),
        help="Output directory for ranking cache (default: cache/ai_ranking)",
    )
    parser.add_argument(
        "--queries",
        nargs="+",
        help="Buyer requirements to rank for",
    )
    parser.add_argument(
        "--queries-json",
        type=Path,
        help="JSON file containing buyer requirements",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=AI_TOP_K,
        help=f"Number of OEMs to pick per query (default: {AI_TOP_K})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.5,
        help="Delay between requests in seconds (default: 0.5)",
    )
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Skip queries with existing cache",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Model to use (default: AI_RANKING_MODEL or google/gemini-2.5-flash-lite)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    return parser.parse_args()


def main():
    load_dotenv()
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    if not os.getenv("OPENROUTER_API_KEY"):
        print("Error: OPENROUTER_API_KEY environment variable is required", file=sys.stderr)
        return 1

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    queries: List[str] = list(args.queries or [])
    if args.queries_json:
        if not args.queries_json.exists():
            print(f"Error: JSON file not found: {args.queries_json}", file=sys.stderr)
            return 1
        json_queries = load_queries_from_json(args.queries_json)
        queries.extend(json_queries)
        print(f"Loaded {len(json_queries)} queries from {args.queries_json}")

    if not queries:
        print("No queries to process!")
        return 0

    print(f"Loading OEMs from {args.input}...")
    candidates = load_candidates_from_json(args.input)
    print(f"Loaded {len(candidates)} OEMs")

    args.output_dir.mkdir(parents=True, exist_ok=True)

    ranker = LLMRanker(model=args.model)

    print(f"\nModel: {ranker.model}")
    print(f"Output: {args.output_dir}")
    print(f"Top K: {args.top_k}")
    print(f"Skip existing: {args.skip_existing}")
    print(f"\nRanking {len(queries)} queries...")

    results = ranker.batch_rank(
        queries=queries,
        candidates=candidates,
        top_k=args.top_k,
        delay_seconds=args.delay,
        skip_existing=args.skip_existing,
        cache_dir=args.output_dir,
        show_progress=not args.quiet,
    )

    success_count = sum(1 for r in results if r.is_valid)
    failed_count = len(results) - success_count

    print(f"\n{'='*60}")
    print("AI RANKING SUMMARY")
    print(f"{'='*60}")
    print(f"Total queries: {len(results)}")
    print(f"Successful: {success_count}")
    print(f"Empty/failed: {failed_count}")
    print(f"Cache directory: {args.output_dir}")

    metadata = {
        "run_at": datetime.now().isoformat(),
        "model": ranker.model,
        "top_k": args.top_k,
        "input_path": str(args.input),
        "candidates": len(candidates),
        "total_queries": len(results),
        "successful": success_count,
        "empty_or_failed": failed_count,
    }

    metadata_file = args.output_dir / "run_metadata.json"
    with open(metadata_file, "w", encoding="utf-8") as f:
        json.dump(metadata, f, ensure_ascii=False, indent=2)

    print(f"Metadata saved: {metadata_file}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
