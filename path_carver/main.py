import argparse
import sys
import os
import time
import logging

# Ensure project root is in path so we can import 'path_carver' package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from path_carver.core.errors import PathCarverError

logger = logging.getLogger("path_carver")


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Path Carver: winding corridor generator for tile maps")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate Command
    gen_parser = subparsers.add_parser("generate", help="Carve a new corridor")
    gen_parser.add_argument("--width", type=int, default=16, help="Grid Width")
    gen_parser.add_argument("--height", type=int, default=24, help="Grid Height")
    gen_parser.add_argument("--seed", type=int, default=None, help="Random Seed")
    gen_parser.add_argument("--delay", type=float, default=None, help="Seconds between steps (default: 0.05 visual, 0 headless)")
    gen_parser.add_argument("--strict", action="store_true", help="Fail instead of escaping when the walker is boxed in")
    gen_parser.add_argument("--visual", action="store_true", help="Show visualization (Space regenerates)")
    gen_parser.add_argument("--out", type=str, help="Output file path (optional)")
    gen_parser.add_argument("--compress", action="store_true", help="Compress the output file")
    gen_parser.add_argument("--record-events", type=str, help="Save carve events to binary file")
    gen_parser.add_argument("--record", action="store_true", help="Record generation video")
    gen_parser.add_argument("--print", dest="print_grid", action="store_true", help="Print the carved grid as text")

    # Replay Command
    replay_parser = subparsers.add_parser("replay", help="Replay an event log")
    replay_parser.add_argument("event_file", help="Path to event log file")
    replay_parser.add_argument("--headless", action="store_true", help="Apply the log and print the result")
    replay_parser.add_argument("--delay", type=float, default=0.05, help="Seconds between events")
    replay_parser.add_argument("--record", action="store_true", help="Record video")

    # Show Command
    show_parser = subparsers.add_parser("show", help="Print a saved grid and its statistics")
    show_parser.add_argument("input_file", help="Path to grid file")

    # Benchmark Command
    bench_parser = subparsers.add_parser("benchmark", help="Carve many corridors and report statistics")
    bench_parser.add_argument("--width", type=int, default=32, help="Grid Width")
    bench_parser.add_argument("--height", type=int, default=32, help="Grid Height")
    bench_parser.add_argument("--runs", type=int, default=200, help="Number of seeds")

    return parser


def cmd_generate(args):
    from path_carver.core.events import EventWriter
    from path_carver.core.grid import Grid
    from path_carver.algo.corridor import CorridorGenerator

    logger.info(f"Carving {args.width}x{args.height} corridor (seed={args.seed})...")

    evt_writer = None
    if args.record_events:
        evt_writer = EventWriter(args.record_events)
        logger.info(f"Recording events to {args.record_events}...")

    try:
        grid = Grid(args.width, args.height, event_writer=evt_writer)
        generator = CorridorGenerator(grid, seed=args.seed, strict=args.strict)

        if args.visual or args.record:
            logger.info("Visual mode enabled - Opening window...")
            from path_carver.viz.renderer import Renderer
            delay = 0.05 if args.delay is None else args.delay
            renderer = Renderer(grid, generator=generator, record=args.record, step_delay=delay)

            if args.record:
                from path_carver.viz.recorder import default_output_file
                os.makedirs("recordings", exist_ok=True)
                renderer.recorder.output_file = default_output_file(f"carve_{args.width}x{args.height}")
                logger.info(f"Recording video to {renderer.recorder.output_file}")

            renderer.init_window()
            renderer.run_loop()
        else:
            logger.info("Headless generation...")
            delay = args.delay or 0.0
            for _ in generator.run():
                if delay:
                    time.sleep(delay)

        summary = generator.summary()
        logger.info(f"Run summary: {summary}")

        if summary.completed:
            from path_carver.core.analysis import CorridorAnalyzer
            stats = CorridorAnalyzer.calculate_stats(grid)
            logger.info(f"Stats: {stats}")

        if args.print_grid:
            from path_carver.viz.text import render_text
            print(render_text(grid))

        if args.out:
            logger.info(f"Saving grid to {args.out}...")
            from path_carver.io.serializer import GridSerializer
            meta = {
                "seed": args.seed,
                "start_x": summary.start_x,
                "end": summary.end,
                "steps": summary.steps,
                "stalls": summary.stalls,
            }
            GridSerializer.save(grid, args.out, meta=meta, compress=args.compress)
            logger.info("Save complete.")
    finally:
        if evt_writer:
            evt_writer.close()


def cmd_replay(args):
    from path_carver.core.events import EventReader
    from path_carver.core.grid import Grid
    from path_carver.viz.replay import EventAdapter

    logger.info(f"Replaying {args.event_file}...")
    reader = EventReader(args.event_file)
    try:
        w, h = reader.read_header()
        logger.info(f"Log Header: {w}x{h}")
        grid = Grid(w, h)
        adapter = EventAdapter(grid, reader)

        if args.headless:
            adapter.run_all()
            from path_carver.viz.text import render_text
            print(render_text(grid))
        else:
            from path_carver.viz.renderer import Renderer
            renderer = Renderer(grid, generator=adapter, record=args.record, step_delay=args.delay)
            renderer.init_window()
            renderer.run_loop()

        logger.info(f"Replayed {adapter.tile_count} tiles, {adapter.reset_count} resets, {adapter.stall_count} stalls")
    finally:
        reader.close()


def cmd_show(args):
    from path_carver.io.serializer import GridSerializer
    from path_carver.core.analysis import CorridorAnalyzer
    from path_carver.viz.text import render_text

    logger.info(f"Loading {args.input_file}...")
    grid, meta = GridSerializer.load(args.input_file)
    logger.info(f"Loaded {grid.width}x{grid.height} grid. Meta: {meta}")
    print(render_text(grid))
    try:
        stats = CorridorAnalyzer.calculate_stats(grid)
    except ValueError as e:
        logger.warning(f"Grid does not hold a complete corridor: {e}")
        return
    for key, value in stats.items():
        print(f"{key:<18} {value}")


def cmd_benchmark(args):
    from path_carver.core.grid import Grid
    from path_carver.algo.corridor import CorridorGenerator
    from path_carver.core.analysis import CorridorAnalyzer

    logger.info(f"Carving {args.runs} corridors on {args.width}x{args.height}...")

    totals = {"length": 0, "turns": 0, "climbs": 0}
    stalls = 0
    t0 = time.time()
    for seed in range(args.runs):
        grid = Grid(args.width, args.height)
        summary = CorridorGenerator(grid, seed=seed).run_all()
        stalls += summary.stalls
        stats = CorridorAnalyzer.calculate_stats(grid)
        for key in totals:
            totals[key] += stats[key]
    duration = time.time() - t0

    print(f"\n{'METRIC':<20} | {'MEAN':<10}")
    print("-" * 33)
    for key, value in totals.items():
        print(f"{key:<20} | {value / args.runs:<10.2f}")
    print(f"{'stalls':<20} | {stalls / args.runs:<10.2f}")
    print(f"\n{args.runs} runs in {duration:.4f}s ({duration / args.runs * 1000:.2f} ms/run)")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    logger.info(f"Running command: {args.command}")

    commands = {
        "generate": cmd_generate,
        "replay": cmd_replay,
        "show": cmd_show,
        "benchmark": cmd_benchmark,
    }
    try:
        commands[args.command](args)
    except PathCarverError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
