#!/usr/bin/env python3
"""
Cluster Activities

Groups a JSON file of work activities into story clusters and prints (or
writes) the clusters as JSON. Layer 2 LLM refinement runs only with --refine
and a configured provider key.

Usage:
    python scripts/cluster_activities.py activities.json [--self alice] [--refine] [--output clusters.json]
"""

import sys
import json
import asyncio
import logging
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Cluster work activities into stories")
    parser.add_argument("input", type=Path, help="JSON file containing a list of activities")
    parser.add_argument("--self", dest="self_ids", action="append", default=[],
                        help="Your own identifier (username/email); repeatable")
    parser.add_argument("--min-cluster-size", type=int, default=None, help="Smallest cluster to keep")
    parser.add_argument("--max-gap-days", type=int, default=None, help="Split clusters at gaps longer than this")
    parser.add_argument("--refine", action="store_true", help="Run Layer 2 LLM refinement on leftover activities")
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def load_activities(path: Path):
    from pydantic import TypeAdapter
    from storyweave.common.schemas import Activity

    data = json.loads(path.read_text(encoding="utf-8"))
    return TypeAdapter(list[Activity]).validate_python(data)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    from pydantic import ValidationError
    from storyweave.common.config import load_config
    from storyweave.pipeline import StoryClusteringPipeline

    try:
        activities = load_activities(args.input)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[cluster] ERROR: Could not read {args.input}: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"[cluster] ERROR: Invalid activities in {args.input}:\n{e}", file=sys.stderr)
        sys.exit(1)

    config = load_config()
    if args.min_cluster_size is not None:
        config.clustering.min_cluster_size = args.min_cluster_size
    if args.max_gap_days is not None:
        config.clustering.max_gap_days = args.max_gap_days
    config.refiner.enabled = args.refine

    try:
        pipeline = StoryClusteringPipeline.from_config(config)
    except ValueError as e:
        print(f"[cluster] ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    result = asyncio.run(pipeline.run(activities, args.self_ids))
    output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    if args.output:
        args.output.write_text(output + "\n", encoding="utf-8")
        print(f"[cluster] Wrote {len(result.clusters)} clusters to {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
