#!/usr/bin/env python3
"""
Pool Sleuth - forensic analysis of one batch of pool swaps

Reads a JSON batch, runs the analysis engine and writes the JSON result.

Input format:
    {
        "swaps": [...],            # raw swap records
        "pool": {...},             # tvlUSD and token authority flags
        "walletProfiles": [...],   # optional
        "history": {...} | [...]   # optional trend snapshot or history points
    }

Usage:
    python -m sleuth.main --input batch.json
    python -m sleuth.main --input batch.json --output result.json
    python -m sleuth.main --input batch.json --parallel --verbose
    python -m sleuth.main --show-config
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from sleuth.config import SleuthConfig
from sleuth.core.engine import PoolAnalyzer
from sleuth.core.metrics import get_metrics
from sleuth.core.normalizer import ContractViolationError
from sleuth.core.serialization import result_to_dict


logger = logging.getLogger("sleuth")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Pool Sleuth - forensic analysis of DEX swap batches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--input", "-i",
        help="Path to the JSON batch ('-' for stdin)"
    )

    parser.add_argument(
        "--output", "-o",
        help="Write the JSON result here instead of stdout"
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run detectors on a thread pool (or set SLEUTH_PARALLEL_DETECTORS=true)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the configuration summary and exit"
    )

    return parser.parse_args(argv)


def load_batch(path: str) -> Dict[str, Any]:
    """Load the input document; a bare list is taken as the swaps."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    if isinstance(data, list):
        return {"swaps": data}
    if not isinstance(data, dict):
        raise ContractViolationError(f"input must be a JSON object or list, got {type(data).__name__}")
    return data


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, SleuthConfig.get_log_level(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.show_config:
        SleuthConfig.print_config_summary()
        return 0

    if not args.input:
        print("[Sleuth] ERROR: --input is required", file=sys.stderr)
        return 2

    is_valid, warnings = SleuthConfig.validate_config()
    for warning in warnings:
        logger.warning(warning)
    if not is_valid:
        print("[Sleuth] ERROR: invalid configuration", file=sys.stderr)
        return 2

    config = SleuthConfig.build_analyzer_config()
    if args.parallel:
        config.parallel_detectors = True

    metrics = get_metrics() if SleuthConfig.get_metrics_enabled() else None
    analyzer = PoolAnalyzer(config=config, metrics=metrics)

    try:
        batch = load_batch(args.input)
        result = analyzer.analyze(
            batch.get("swaps"),
            context=batch.get("pool"),
            profiles=batch.get("walletProfiles", batch.get("wallet_profiles")),
            history=batch.get("history"),
        )
    except (OSError, json.JSONDecodeError) as e:
        print(f"[Sleuth] ERROR: Failed to read input: {e}", file=sys.stderr)
        return 1
    except ContractViolationError as e:
        print(f"[Sleuth] ERROR: Invalid input: {e}", file=sys.stderr)
        return 1

    payload = json.dumps(result_to_dict(result), indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info(f"Result written to {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
