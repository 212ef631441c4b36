"""permit-buffer CLI entry point.

Usage: uv run permit-buffer [command]
"""
import argparse
import logging
import sys


def _add_demo_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "demo",
        help="Run producers and consumers over a bounded buffer.",
    )
    p.add_argument(
        "--capacity", type=int, default=4,
        help="Buffer capacity (default: 4)",
    )
    p.add_argument(
        "--producers", type=int, default=2,
        help="Number of producer threads (default: 2)",
    )
    p.add_argument(
        "--consumers", type=int, default=2,
        help="Number of consumer threads (default: 2)",
    )
    p.add_argument(
        "--items", type=int, default=1_000,
        help="Items per producer (default: 1000)",
    )
    p.add_argument(
        "--timeout", type=float, default=None,
        help="Acquire timeout in seconds; workers retry on timeout "
             "(default: block without a timeout)",
    )
    p.add_argument(
        "--seed", type=int, default=42,
        help="RNG seed for reproducible payloads (default: 42)",
    )
    p.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log worker and buffer events at DEBUG level.",
    )


def _run_demo(args: argparse.Namespace) -> int:
    from permit_buffer.demo.harness import run_demo
    from permit_buffer.demo.report import format_report
    from permit_buffer.domain.errors import InvalidConfiguration

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s",
    )
    try:
        result = run_demo(
            capacity=args.capacity,
            producers=args.producers,
            consumers=args.consumers,
            items_per_producer=args.items,
            timeout=args.timeout,
            seed=args.seed,
        )
    except InvalidConfiguration as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(format_report(result))
    return 0 if result.ok else 1


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="permit-buffer",
        description="Bounded blocking buffer built on two counting permits.",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_demo_parser(subparsers)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "demo":
        sys.exit(_run_demo(args))
