"""Command line entry point for loadtimer."""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from loadtimer.app import LoadtimerApp
from loadtimer.config import ProfileConfig, load_defaults
from loadtimer.display import clear_lines, print_metrics
from loadtimer.errors import LoadtimerError
from loadtimer.procfs import ProcReader, process_name, tick_rate
from loadtimer.sampler import Namer, Sampler
from loadtimer.stats import collect_metrics

logger = logging.getLogger(__name__)

# Options that may come from the config file or the command line
OVERRIDABLE = ("interval", "samples", "break_secs", "threads", "interactive", "plain", "proc_root")

DEFAULT_PROC_ROOT = "/proc"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loadtimer",
        description="Measure CPU usage of processes.",
    )
    parser.add_argument("pids", nargs="*", type=int, metavar="PID", help="PIDs of processes to measure")
    parser.add_argument(
        "-s", "--sample-secs", dest="interval", type=float, help="sample duration in seconds (default: 10)"
    )
    parser.add_argument(
        "-n", "--num-samples", dest="samples", type=int, help="number of sample points (default: 2)"
    )
    parser.add_argument(
        "-b",
        "--break-secs",
        dest="break_secs",
        type=float,
        help="pause between samples, excluded from the measurement (default: 0)",
    )
    parser.add_argument(
        "-t", "--threads", action="store_true", default=None, help="also measure every thread"
    )
    parser.add_argument(
        "-i", "--interactive", action="store_true", default=None, help="keep sampling and refresh the table"
    )
    parser.add_argument(
        "--plain", action="store_true", default=None, help="refresh in the terminal instead of the TUI"
    )
    parser.add_argument("--config", type=Path, help="TOML file with a [loadtimer] table of defaults")
    parser.add_argument("--proc-root", dest="proc_root", help="procfs mount point (default: /proc)")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="log more (repeat for debug output)"
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ProfileConfig:
    """Merge config file defaults with command line options and validate."""
    values = load_defaults(args.config) if args.config else {}
    for name in OVERRIDABLE:
        value = getattr(args, name)
        if value is not None:
            values[name] = value
    if args.verbose == 1:
        values["log_level"] = "INFO"
    elif args.verbose > 1:
        values["log_level"] = "DEBUG"
    return ProfileConfig(pids=list(args.pids), **values).validate()


def namer_for(reader: ProcReader) -> Namer:
    """Pick how entity names are resolved for a procfs root."""
    if reader.root == Path(DEFAULT_PROC_ROOT):
        return process_name
    return reader.command_name


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def fill(sampler: Sampler, config: ProfileConfig) -> None:
    """Run ``config.samples`` cycles, pausing between them if configured."""
    for i in range(config.samples):
        if i:
            sampler.rest(config.break_secs)
        sampler.sample(config.interval)


def run_oneshot(sampler: Sampler, config: ProfileConfig, ticks: int, console: Console) -> None:
    fill(sampler, config)
    console.print()
    print_metrics(console, collect_metrics(sampler, ticks))


def run_plain(sampler: Sampler, config: ProfileConfig, ticks: int, console: Console) -> None:
    """Refresh the table in place after every cycle until interrupted."""
    fill(sampler, config)
    console.print()
    while True:
        printed = print_metrics(console, collect_metrics(sampler, ticks))
        sampler.rest(config.break_secs)
        sampler.sample(config.interval)
        clear_lines(console, printed)


def run_tui(sampler: Sampler, config: ProfileConfig, ticks: int) -> str | None:
    """Run the Textual view; returns the error message that ended it, if any."""
    fill(sampler, config)
    app = LoadtimerApp(sampler, config.interval, ticks, break_secs=config.break_secs)
    return app.run()


def main(argv: list[str] | None = None) -> int:
    """Entry point for the loadtimer command."""
    args = build_parser().parse_args(argv)
    console = Console(highlight=False)
    err_console = Console(stderr=True, highlight=False)

    try:
        config = resolve_config(args)
        setup_logging(config.log_level)
        ticks = tick_rate()
        logger.info("Counters advance %d ticks per second", ticks)

        pids = ", ".join(str(pid) for pid in config.pids)
        console.print(f"Measuring CPU usage of PIDs {pids}", markup=False, soft_wrap=True)
        console.print(f"{config.samples} sample(s) of {config.interval:g}s", markup=False, soft_wrap=True)

        reader = ProcReader(config.proc_root)
        sampler = Sampler(
            config.pids,
            config.samples,
            track_threads=config.threads,
            reader=reader,
            namer=namer_for(reader),
        )
        if not config.interactive:
            run_oneshot(sampler, config, ticks, console)
        elif config.plain:
            run_plain(sampler, config, ticks, console)
        else:
            error = run_tui(sampler, config, ticks)
            if error:
                err_console.print(f"loadtimer: error: {error}", markup=False, soft_wrap=True)
                return 1
    except LoadtimerError as e:
        err_console.print(f"loadtimer: error: {e}", markup=False, soft_wrap=True)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
