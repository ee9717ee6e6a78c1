import os
import random
import statistics
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import psutil

from ..config import SpillConfig
from ..data_structures.append_set import AppendSet
from ..data_structures.memory_store import InMemoryStore
from ..data_structures.sqlite_store import SQLiteStore

SetupFn = Callable[..., Dict[str, Any]]


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run, similar to triton.testing.Benchmark"""

    x_names: List[str]
    x_vals: List[Union[int, float]]
    line_arg: str
    line_vals: List[str]
    line_names: List[str]
    styles: List[Tuple[str, str]]
    ylabel: str
    plot_name: str
    args: Dict[str, Any] = field(default_factory=dict)
    warmup_runs: int = 3
    measure_runs: int = 10
    min_runtime_ms: float = 10.0
    measure_memory: bool = True
    measure_setup_time: bool = True


@dataclass
class BenchmarkResult:
    """Lookup timings for one provider at one size"""

    value: float
    std_dev: float
    measurements: List[float]
    config_name: str
    x_value: Union[int, float]
    setup_time: Optional[float] = None
    memory_usage: Optional[float] = None
    # None for providers that never spill
    spilled: Optional[bool] = None

    @property
    def failed(self) -> bool:
        return self.value == float("inf")


@dataclass(frozen=True)
class PlotSpec:
    """One figure drawn from a BenchmarkResult attribute"""

    title: str
    attr: str
    suffix: str = ""
    ylabel: Optional[str] = None
    error_attr: Optional[str] = None


def current_rss_mb() -> float:
    """Resident set size of this process in MB"""
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024


class BenchmarkRunner:
    """Times lookups for every (provider, size) pair and reports the results"""

    def __init__(self, config: BenchmarkConfig):
        self.config = config
        self.results: Dict[str, List[BenchmarkResult]] = {}

    def line_name(self, index: int) -> str:
        if index < len(self.config.line_names):
            return self.config.line_names[index]
        return self.config.line_vals[index].replace("_", " ").title()

    def do_bench(self, fn: Callable[[], Any]) -> Tuple[float, float, List[float]]:
        """Time fn until both measure_runs and min_runtime_ms are satisfied"""
        for _ in range(self.config.warmup_runs):
            fn()

        times: List[float] = []
        while (
            len(times) < self.config.measure_runs
            or sum(times) < self.config.min_runtime_ms
        ):
            start = time.perf_counter()
            fn()
            times.append((time.perf_counter() - start) * 1000)

        std_dev = statistics.stdev(times) if len(times) > 1 else 0.0
        return statistics.mean(times), std_dev, times

    def measure(
        self,
        benchmark_fn: Callable[..., Any],
        setup_fn: Optional[SetupFn],
        line_val: str,
        x_val: Union[int, float],
    ) -> BenchmarkResult:
        """Build the structure for one point, time lookups on it, then close it"""
        args = dict(self.config.args)
        args[self.config.x_names[0]] = x_val
        args[self.config.line_arg] = line_val

        try:
            if setup_fn is not None:
                args.update(setup_fn(**args))
            mean_time, std_dev, times = self.do_bench(lambda: benchmark_fn(**args))
            store = args.get("store")
            return BenchmarkResult(
                value=mean_time,
                std_dev=std_dev,
                measurements=times,
                config_name=line_val,
                x_value=x_val,
                setup_time=args.get("setup_time")
                if self.config.measure_setup_time
                else None,
                memory_usage=args.get("memory_usage")
                if self.config.measure_memory
                else None,
                spilled=getattr(store, "spilled", None),
            )
        finally:
            store = args.get("store")
            if store is not None and hasattr(store, "close"):
                store.close()

    def run_benchmark(
        self, benchmark_fn: Callable[..., Any], setup_fns: Dict[str, SetupFn]
    ) -> None:
        """Measure every point, recording a failed point as an infinite time"""
        total_steps = len(self.config.line_vals) * len(self.config.x_vals)
        step = 0

        print(f"\nStarting benchmark: {self.config.plot_name}")
        print(
            f"Testing {len(self.config.line_vals)} providers on {len(self.config.x_vals)} sizes"
        )
        print(f"Started at {datetime.now().strftime('%H:%M:%S')}")
        print("=" * 80)

        for i, line_val in enumerate(self.config.line_vals):
            print(f"\n[{i + 1}/{len(self.config.line_vals)}] Testing {self.line_name(i)}")
            print("-" * 60)
            self.results[line_val] = []

            for x_val in self.config.x_vals:
                step += 1
                print(
                    f"[{step:2d}/{total_steps}] N={x_val:>12,} "
                    f"({step / total_steps * 100:5.1f}%) ",
                    end="",
                    flush=True,
                )
                start_time = time.time()
                try:
                    result = self.measure(
                        benchmark_fn, setup_fns.get(line_val), line_val, x_val
                    )
                except Exception as e:
                    print(f"→ FAILED: {str(e)[:50]}... [{time.time() - start_time:4.1f}s]")
                    # Keep one result per size so the table and plots line up
                    result = BenchmarkResult(
                        value=float("inf"),
                        std_dev=0.0,
                        measurements=[],
                        config_name=line_val,
                        x_value=x_val,
                    )
                else:
                    marker = " [spilled]" if result.spilled else ""
                    print(
                        f"→ {result.value:8.3f}ms (±{result.std_dev:6.3f})"
                        f"{marker} [{time.time() - start_time:4.1f}s]"
                    )
                self.results[line_val].append(result)

        print("\n" + "=" * 80)
        print(f"Benchmark completed at {datetime.now().strftime('%H:%M:%S')}")

    def plot_specs(self) -> List[PlotSpec]:
        specs = [PlotSpec("Lookup Time", "value", error_attr="std_dev")]
        if self.config.measure_setup_time:
            specs.append(PlotSpec("Setup Time", "setup_time", "-setup", "Setup Time (ms)"))
        if self.config.measure_memory:
            specs.append(PlotSpec("Memory Usage", "memory_usage", "-memory", "Memory (MB)"))
        return specs

    def generate_plot(self, show_plots: bool = True, save_plot: bool = True) -> None:
        """Draw one figure per PlotSpec; spilled points get hollow markers"""
        for spec in self.plot_specs():
            plt.figure(figsize=(12, 8))

            for i, line_val in enumerate(self.config.line_vals):
                points = [
                    r
                    for r in self.results.get(line_val, [])
                    if not r.failed and getattr(r, spec.attr) is not None
                ]
                if not points:
                    continue

                color, style = (
                    self.config.styles[i] if i < len(self.config.styles) else ("blue", "-")
                )
                plt.errorbar(
                    [r.x_value for r in points],
                    [getattr(r, spec.attr) for r in points],
                    yerr=[getattr(r, spec.error_attr) for r in points]
                    if spec.error_attr
                    else None,
                    color=color,
                    linestyle=style,
                    marker="o",
                    label=self.line_name(i),
                    capsize=5,
                )
                spilled = [r for r in points if r.spilled]
                if spilled:
                    plt.scatter(
                        [r.x_value for r in spilled],
                        [getattr(r, spec.attr) for r in spilled],
                        s=120,
                        facecolors="none",
                        edgecolors=color,
                    )

            plt.xlabel(self.config.x_names[0])
            plt.ylabel(spec.ylabel or self.config.ylabel)
            plt.title(f"{self.config.plot_name} - {spec.title}")
            plt.legend()
            plt.grid(True, alpha=0.3)
            plt.tight_layout()

            if save_plot:
                plt.savefig(
                    f"{self.config.plot_name}{spec.suffix}.png",
                    dpi=150,
                    bbox_inches="tight",
                )
            if show_plots:
                plt.show()
            else:
                plt.close()

    def print_data(self) -> None:
        """Print one table per provider"""
        print(f"\n{self.config.plot_name} Benchmark Results")
        print("=" * 80)

        columns = [("N", 10), ("Lookup (ms)", 12), ("Std Dev", 10)]
        if self.config.measure_setup_time:
            columns.append(("Setup (ms)", 12))
        if self.config.measure_memory:
            columns.append(("Memory (MB)", 12))
        columns.append(("Spilled", 8))
        header = " ".join(f"{name:<{width}}" for name, width in columns)

        for i, line_val in enumerate(self.config.line_vals):
            if line_val not in self.results:
                continue
            print(f"\n{self.line_name(i)} ({line_val}):")
            print(header)
            print("-" * len(header))

            for r in self.results[line_val]:
                cells = [f"{r.x_value:<10}", f"{r.value:<12.4f}", f"{r.std_dev:<10.4f}"]
                if self.config.measure_setup_time:
                    cells.append(_cell(r.setup_time, 12, ".4f"))
                if self.config.measure_memory:
                    cells.append(_cell(r.memory_usage, 12, ".2f"))
                spilled = "-" if r.spilled is None else ("yes" if r.spilled else "no")
                cells.append(f"{spilled:<8}")
                print(" ".join(cells))


def _cell(value: Optional[float], width: int, fmt: str) -> str:
    if value is None:
        return f"{'N/A':<{width}}"
    return f"{value:<{width}{fmt}}"


def perf_report(config: BenchmarkConfig, setup_fns: Optional[Dict[str, SetupFn]] = None):
    """Decorator for performance reporting, similar to triton.testing.perf_report"""

    def decorator(func):
        def run(
            show_plots: bool = True, print_data: bool = True, save_plots: bool = True
        ) -> BenchmarkRunner:
            runner = BenchmarkRunner(config)
            runner.run_benchmark(func, setup_fns or {})

            if print_data:
                runner.print_data()
            if show_plots or save_plots:
                runner.generate_plot(show_plots=show_plots, save_plot=save_plots)
            return runner

        func.run = run
        func.config = config
        return func

    return decorator


class MembershipBenchmarkHelper:
    """Setups that build each set implementation over the first N items"""

    @staticmethod
    def _timed_populate(store: Any, items: Sequence[Any]) -> Dict[str, Any]:
        setup_start = time.perf_counter()
        store.add(items)
        setup_time = (time.perf_counter() - setup_start) * 1000

        return {
            "store": store,
            "setup_time": setup_time,
            "memory_usage": current_rss_mb(),
        }

    @staticmethod
    def setup_python_set(items: Sequence[Any], N: int, **kwargs) -> Dict[str, Any]:
        """Baseline: the builtin set (hashable items only)"""
        setup_start = time.perf_counter()
        store = set(items[:N])
        setup_time = (time.perf_counter() - setup_start) * 1000

        return {
            "store": store,
            "setup_time": setup_time,
            "memory_usage": current_rss_mb(),
        }

    @staticmethod
    def setup_in_memory_store(
        items: Sequence[Any], N: int, **kwargs
    ) -> Dict[str, Any]:
        return MembershipBenchmarkHelper._timed_populate(InMemoryStore(), items[:N])

    @staticmethod
    def setup_sqlite_store(items: Sequence[Any], N: int, **kwargs) -> Dict[str, Any]:
        store = SQLiteStore(temp_dir=kwargs.get("temp_dir"))
        try:
            return MembershipBenchmarkHelper._timed_populate(store, items[:N])
        except BaseException:
            store.close()
            raise

    @staticmethod
    def setup_append_set(items: Sequence[Any], N: int, **kwargs) -> Dict[str, Any]:
        """AppendSet with a threshold small enough to spill inside the sweep"""
        config = SpillConfig(
            add_batch_size=kwargs.get("add_batch_size", AppendSet.ADD_BATCH_SIZE),
            spill_threshold=kwargs.get("spill_threshold", AppendSet.SPILL_THRESHOLD),
            temp_dir=kwargs.get("temp_dir"),
        )
        store = AppendSet(config)
        try:
            return MembershipBenchmarkHelper._timed_populate(store, items[:N])
        except BaseException:
            store.close()
            raise

    @staticmethod
    def get_existing_item(items: Sequence[Any], N: int) -> Any:
        """Pick a random item from the first N"""
        return items[random.randint(0, min(N, len(items)) - 1)]

    @staticmethod
    def get_missing_item() -> Any:
        """An item no generator produces"""
        return "@not@added@"


def create_membership_benchmark(
    items: Sequence[Any], config: BenchmarkConfig, test_existing: bool = True
):
    """Create a lookup benchmark over the given items for each provider"""

    setup_functions = {
        "python_set": MembershipBenchmarkHelper.setup_python_set,
        "in_memory_store": MembershipBenchmarkHelper.setup_in_memory_store,
        "sqlite_store": MembershipBenchmarkHelper.setup_sqlite_store,
        "append_set": MembershipBenchmarkHelper.setup_append_set,
    }
    unknown = [p for p in config.line_vals if p not in setup_functions]
    if unknown:
        raise ValueError(f"Unknown provider(s): {', '.join(unknown)}")

    setup_fns = {
        provider: (lambda setup=setup_functions[provider], **kw: setup(items, **kw))
        for provider in config.line_vals
    }

    @perf_report(config, setup_fns)
    def benchmark(N: int, store: Any, **kwargs) -> bool:
        """One membership lookup; do_bench times each call"""
        if test_existing:
            target = MembershipBenchmarkHelper.get_existing_item(items, N)
        else:
            target = MembershipBenchmarkHelper.get_missing_item()
        return target in store

    return benchmark
