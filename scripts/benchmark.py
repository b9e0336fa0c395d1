#!/usr/bin/env python3
"""
DeltaWatch Performance Benchmarks

Measures the cost of a delivery for the four kinds of work an observer does:
dirty-checking object properties, projecting array splices, re-walking path
trees and settling binding chains. Each benchmark scales its workload until a
single delivery takes longer than the time limit.

Usage:
    python scripts/benchmark.py            # Run all benchmarks
    python scripts/benchmark.py --config   # Show current benchmark configuration
    python scripts/benchmark.py --quiet    # Only print the results table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import random
import sys
import time
from typing import Any, Callable, Dict

# Add the project root to the Python path
sys.path.insert(0, ".")

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deltawatch import Observer, apply_splices

# Configuration constants - adjust these to change benchmark behavior
TIME_LIMIT_SECONDS = 0.5  # Stop scaling once one delivery takes this long
STARTING_N = 10  # Starting workload size
SCALE_FACTOR = 1.5  # How much to multiply N by each iteration
EDIT_FRACTION = 0.05  # Share of array elements touched per splice round
SEED = 7


def _ignore(summaries):
    pass


class DeltaWatchBenchmark:
    """Rich-formatted display for DeltaWatch delivery benchmarks."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.random = random.Random(SEED)
        self.results: Dict[str, Dict[str, Any]] = {}

    def run_benchmarks(self):
        """Run all benchmarks and display the results."""
        start_time = time.time()
        if not self.quiet:
            self._display_header()

        self._run("Object Dirty-Check", "properties", self._object_delivery)
        self._run("Array Splices", "elements", self._array_delivery)
        self._run("Path Tree Walk", "paths", self._path_delivery)
        self._run("Binding Chain", "links", self._chain_delivery)

        self._display_final_results(start_time)

    # ========================================================================
    # WORKLOADS
    # ========================================================================

    def _object_delivery(self, n: int) -> float:
        model = {f"p{i}": i for i in range(n)}
        observer = Observer(_ignore)
        observer.observe_object(model)
        for i in range(0, n, 2):
            model[f"p{i}"] = -i

        start = time.perf_counter()
        observer.deliver()
        return time.perf_counter() - start

    def _array_delivery(self, n: int) -> float:
        model = list(range(n))
        copy = list(model)
        captured = []
        observer = Observer(captured.extend)
        observer.observe_array(model)

        edits = max(1, int(n * EDIT_FRACTION))
        for _ in range(edits):
            index = self.random.randrange(len(model))
            if self.random.random() < 0.5:
                model.insert(index, -index)
            else:
                del model[index]

        start = time.perf_counter()
        observer.deliver()
        elapsed = time.perf_counter() - start

        # Verify the splices reproduce the mutation
        if captured:
            apply_splices(copy, model, captured[0].splices)
        assert copy == model
        return elapsed

    def _path_delivery(self, n: int) -> float:
        model = {f"k{i}": {"inner": {"leaf": i}} for i in range(n)}
        observer = Observer(_ignore)
        for i in range(n):
            observer.observe_path(model, f"k{i}.inner.leaf")
        for i in range(0, n, 3):
            model[f"k{i}"]["inner"]["leaf"] = -i

        start = time.perf_counter()
        observer.deliver()
        return time.perf_counter() - start

    def _chain_delivery(self, n: int) -> float:
        model = {f"v{i}": 0 for i in range(n + 1)}
        observer = Observer(_ignore, max_cascade_passes=n + 2)
        for i in range(n):
            observer.bind(model, f"v{i}", model, f"v{i + 1}")
        observer.observe_path(model, f"v{n}")
        model["v0"] = 1

        start = time.perf_counter()
        observer.deliver()
        elapsed = time.perf_counter() - start

        # Verify the value reached the end of the chain
        assert model[f"v{n}"] == 1
        return elapsed

    # ========================================================================
    # DRIVER
    # ========================================================================

    def _run(self, name: str, unit: str, operation: Callable[[int], float]):
        if not self.quiet:
            self.console.print(f"[yellow]Running {name} benchmark...[/yellow]")
        result = self._run_adaptive_benchmark(operation)
        result["unit"] = unit
        self.results[name] = result
        if not self.quiet:
            per_item_us = result["delivery_time"] / max(result["max_n"], 1) * 1e6
            self.console.print(
                f"[green]✓[/green] {name}: {result['max_n']:,} {unit} "
                f"in {result['delivery_time'] * 1000:.1f}ms ({per_item_us:.2f}μs each)"
            )

    def _run_adaptive_benchmark(self, operation: Callable[[int], float]):
        """Scale the workload until one delivery reaches the time limit."""
        n = STARTING_N
        while True:
            delivery_time = operation(n)
            result = {"max_n": n, "delivery_time": delivery_time}
            if delivery_time >= TIME_LIMIT_SECONDS:
                return result
            n = int(n * SCALE_FACTOR) + 1

    def _display_header(self):
        header = Panel(
            Align.center("DeltaWatch Delivery Benchmark Suite"),
            title="DeltaWatch Benchmarks",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_final_results(self, start_time: float):
        elapsed = time.time() - start_time

        table = Table(title="Delivery Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Max Workload", style="magenta", justify="right")
        table.add_column("Delivery Time", style="green", justify="right")
        table.add_column("Per Item", style="yellow", justify="right")

        for name, result in self.results.items():
            per_item_us = result["delivery_time"] / max(result["max_n"], 1) * 1e6
            table.add_row(
                name,
                f"{result['max_n']:,} {result['unit']}",
                f"{result['delivery_time'] * 1000:.1f}ms",
                f"{per_item_us:.2f}μs",
            )

        self.console.print()
        self.console.print(table)
        self.console.print()
        self.console.print(f"[dim]Benchmark completed in {elapsed:.2f} seconds[/dim]")


def print_config():
    """Print the current benchmark configuration."""
    print("DeltaWatch Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")
    print(f"  EDIT_FRACTION: {EDIT_FRACTION}")


def main():
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="DeltaWatch Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )

    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    DeltaWatchBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()
