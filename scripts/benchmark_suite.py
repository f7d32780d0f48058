import sys
import os
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from path_carver.core.grid import Grid
from path_carver.algo.corridor import CorridorGenerator
from path_carver.core.analysis import CorridorAnalyzer


def benchmark_size(width: int, height: int, runs: int = 50):
    print(f"\n--- Benchmarking {width}x{height} ({runs} runs) ---")

    lengths = []
    climbs = 0
    stalls = 0
    gen_start = time.time()
    for seed in range(runs):
        grid = Grid(width, height)
        summary = CorridorGenerator(grid, seed=seed).run_all()
        stats = CorridorAnalyzer.calculate_stats(grid)
        lengths.append(stats["length"])
        climbs += stats["climbs"]
        stalls += summary.stalls
    gen_time = time.time() - gen_start

    cells = sum(lengths)
    print(f"Generation Time: {gen_time:.4f}s ({gen_time / runs * 1000:.2f} ms/run)")
    print(f"Speed: {cells / gen_time:,.0f} cells/sec")
    print(f"Corridor length: min {min(lengths)}, mean {cells / runs:.1f}, max {max(lengths)}")
    print(f"Climbs per run: {climbs / runs:.2f}")
    print(f"Stalls per run: {stalls / runs:.2f}")


def run_suite():
    sizes = [
        (8, 8),
        (16, 24),
        (64, 64),
        (256, 256),
    ]

    for w, h in sizes:
        benchmark_size(w, h)


if __name__ == "__main__":
    run_suite()
