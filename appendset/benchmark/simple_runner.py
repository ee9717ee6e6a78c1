"""
Simple benchmark runner comparing membership lookups across set backends.

Usage examples:
    python -m appendset.benchmark.simple_runner
    python -m appendset.benchmark.simple_runner --providers append_set,python_set --sizes 1000,10000,100000 --spill-threshold 50000
"""

import argparse
import sys
from typing import List, Optional

from ..data.generate import ItemGenerator
from .benchmark import BenchmarkConfig, create_membership_benchmark

PROVIDER_NAMES = {
    "python_set": "Python set",
    "in_memory_store": "InMemoryStore",
    "sqlite_store": "SQLiteStore",
    "append_set": "AppendSet",
}

COLORS = ["blue", "green", "red", "orange", "purple", "brown"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Benchmark set membership backends")
    parser.add_argument(
        "--providers",
        default="python_set,in_memory_store,sqlite_store,append_set",
        help="Comma-separated list of providers to test",
    )
    parser.add_argument(
        "--sizes",
        default="1000,10000,50000,100000",
        help="Comma-separated list of set sizes",
    )
    parser.add_argument(
        "--spill-threshold",
        type=int,
        default=50_000,
        help="Spill threshold for the append_set provider",
    )
    parser.add_argument(
        "--test-missing",
        action="store_true",
        help="Look up items that were never added instead of existing ones",
    )
    parser.add_argument(
        "--output-prefix", default="appendset", help="Prefix for output plot files"
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip generating plots")
    parser.add_argument("--seed", type=int, default=42, help="Item generator seed")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    providers = [p.strip() for p in args.providers.split(",") if p.strip()]
    sizes = [int(size.strip()) for size in args.sizes.split(",")]
    mode = "missing" if args.test_missing else "existing"

    config = BenchmarkConfig(
        x_names=["N"],
        x_vals=sizes,
        line_arg="provider",
        line_vals=providers,
        line_names=[PROVIDER_NAMES.get(p, p) for p in providers],
        styles=[
            (COLORS[i % len(COLORS)], "--" if args.test_missing else "-")
            for i in range(len(providers))
        ],
        ylabel="Time (ms)",
        plot_name=f"{args.output_prefix}-{mode}",
        args={"spill_threshold": args.spill_threshold},
        warmup_runs=5,
        measure_runs=10,
    )

    try:
        generator = ItemGenerator(seed=args.seed)
        items = generator.distinct_usernames(max(sizes))

        print(f"\nRunning benchmark for {mode.upper()} items...")
        benchmark = create_membership_benchmark(
            items, config, test_existing=not args.test_missing
        )
        benchmark.run(show_plots=False, print_data=True, save_plots=not args.no_plots)
        print(f"[OK] {mode.capitalize()} item benchmark completed")
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if not args.no_plots:
        print(f"\nPlots saved as {config.plot_name}*.png")
    return 0


if __name__ == "__main__":
    sys.exit(main())
