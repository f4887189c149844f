#!/usr/bin/env python3
"""Access Log Analyzer - Entry point"""

import argparse
import json
import signal
import sys
from contextlib import contextmanager
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from accesslog import (
    VERSION,
    AccessLogError,
    AnalyzerConfig,
    CancelToken,
    LogAnalyzer,
    SearchCriteria,
    StatusCodeRange,
    print_export_result,
    print_report,
)
from accesslog.filters import STATUS_CODE_RANGES, build_criteria, filter_stats, status_range
from accesslog.log import setup_logging

console = Console()
err_console = Console(stderr=True)


def _status_range(value: str) -> StatusCodeRange:
    if value in STATUS_CODE_RANGES:
        return status_range(value)
    lo, sep, hi = value.partition('-')
    try:
        if not sep:
            raise ValueError(value)
        return StatusCodeRange(int(lo), int(hi))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected MIN-MAX or one of {', '.join(STATUS_CODE_RANGES)}, got {value!r}"
        ) from None


def _timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an ISO 8601 timestamp, got {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Access Log Analyzer - Apache Combined Log Format analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  main.py access.log\n"
            "  main.py access.log --status-range client_error -x errors.xlsx\n"
            "  main.py access.log --from 2024-01-01T00:00:00+00:00 --method GET --keyword login"
        ),
    )

    parser.add_argument("logfile", help="Log file to analyze")

    filters = parser.add_argument_group("filters")
    filters.add_argument("--status", type=int, nargs="+", default=[], metavar="CODE",
                         help="Keep only these status codes")
    filters.add_argument("--status-range", type=_status_range, metavar="MIN-MAX",
                         help=f"Status range, or one of: {', '.join(STATUS_CODE_RANGES)}")
    filters.add_argument("--method", nargs="+", default=[], metavar="M", help="HTTP methods")
    filters.add_argument("--from", dest="start", type=_timestamp, metavar="ISO",
                         help="Earliest timestamp (naive values are UTC)")
    filters.add_argument("--to", dest="end", type=_timestamp, metavar="ISO", help="Latest timestamp")
    filters.add_argument("--min-size", type=int, metavar="N", help="Minimum response bytes")
    filters.add_argument("--max-size", type=int, metavar="N", help="Maximum response bytes")

    search = parser.add_argument_group("search")
    search.add_argument("--ip", default="", metavar="S", help="IP contains")
    search.add_argument("--url", default="", metavar="S", help="Path contains")
    search.add_argument("--user-agent", default="", metavar="S", help="User-Agent contains")
    search.add_argument("--keyword", default="", metavar="S", help="Any field contains")
    search.add_argument("--case-sensitive", action="store_true", help="Case sensitive search")

    parser.add_argument("--bot-signature", action="append", default=[], metavar="TOKEN",
                        help="Extra bot User-Agent token (repeatable)")
    parser.add_argument("--error-samples", type=int, metavar="N",
                        help="Number of parse errors to keep as samples")
    parser.add_argument("-o", "--output", help="Output file (JSON)")
    parser.add_argument("-j", "--json", action="store_true", help="JSON output only")
    parser.add_argument("-x", "--xlsx", metavar="FILE", help="Export entries and statistics to .xlsx")
    parser.add_argument("--log-level", choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        type=str.upper, help="Logging level")
    parser.add_argument("-v", "--verbose", action="store_true", help="Same as --log-level INFO")
    parser.add_argument("--version", action="version", version=f"AccessLogAnalyzer v{VERSION}")
    return parser


@contextmanager
def cancel_on_interrupt(token: CancelToken):
    """Turn Ctrl-C into a cancellation request for the duration of the block"""
    previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def _progress_bar() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )


def main():
    parser = build_parser()
    args = parser.parse_args()

    level = args.log_level or ('INFO' if args.verbose else None)
    try:
        config = AnalyzerConfig.from_env()
        config = config.with_overrides(error_sample_cap=args.error_samples, log_level=level)
    except ValueError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(1)

    if args.bot_signature:
        config = config.with_overrides(
            extra_bot_signatures=config.extra_bot_signatures + tuple(args.bot_signature)
        )
    setup_logging(config.log_level)

    criteria = build_criteria(
        status_codes=args.status, status_code_range=args.status_range,
        start=args.start, end=args.end, methods=args.method,
        min_size=args.min_size, max_size=args.max_size,
    )
    search = SearchCriteria(
        ip=args.ip, url=args.url, user_agent=args.user_agent,
        keyword=args.keyword, case_sensitive=args.case_sensitive,
    )

    analyzer = LogAnalyzer(config)
    problems = analyzer.validate(criteria)
    if problems:
        for problem in problems:
            err_console.print(f"[red]Invalid filter:[/] {problem}")
        sys.exit(1)

    try:
        if not analyzer.validate_format(args.logfile):
            err_console.print(
                f"[yellow]Warning:[/] {args.logfile} does not look like Combined Log Format"
            )

        with _progress_bar() as bar, cancel_on_interrupt(CancelToken()) as token:
            task = bar.add_task("Parsing", total=100)
            result = analyzer.parse(
                args.logfile,
                progress=lambda percent, message: bar.update(task, completed=percent, description=message),
                cancel=token,
            )
        if result.cancelled:
            err_console.print("[yellow]Parsing cancelled; continuing with the lines read so far[/]")

        outcome = analyzer.filter(result.entries, criteria)
        entries = analyzer.search(outcome.matched, search)
        filter_result = None
        if not criteria.is_empty() or not search.is_empty():
            filter_result = filter_stats(result.entries, entries)
        stats = analyzer.aggregate(entries)

        report = analyzer.generate_report(result, stats, filter_result)
        if args.json:
            print(json.dumps(report, indent=2, default=str))
        else:
            print_report(result, stats, console, filter_result)

        if args.output:
            with open(args.output, 'w') as f:
                json.dump(report, f, indent=2, default=str)
            if not args.json:
                console.print(f"\n[green]Report saved to:[/] {args.output}")

        if args.xlsx:
            with _progress_bar() as bar, cancel_on_interrupt(CancelToken()) as token:
                task = bar.add_task("Exporting", total=100)
                export_result = analyzer.export(
                    entries, stats, args.xlsx,
                    progress=lambda p: bar.update(task, completed=p.percent, description=p.message),
                    cancel=token,
                )
            print_export_result(export_result, err_console if args.json else console)

    except AccessLogError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
