"""Access Log Analyzer - Report output"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models import ExportResult, FilterStats, ParseResult, Statistics

WIDTH = 70


def _status_color(code: int) -> str:
    return 'green' if code < 400 else 'yellow' if code < 500 else 'red'


def _section(console: Console, title: str, style: str = 'bold'):
    console.print("\n" + "─" * WIDTH, style="cyan")
    console.print(title, style=style)


def print_report(result: ParseResult, stats: Statistics, console: Optional[Console] = None,
                 filter_result: Optional[FilterStats] = None):
    console = console or Console()

    console.print("\n" + "═" * WIDTH, style="cyan")
    console.print("              ACCESS LOG ANALYZER REPORT", style="bold cyan")
    console.print("═" * WIDTH, style="cyan")

    # Parse summary
    console.print(Panel.fit(
        f"Lines: [cyan]{result.total_lines:,}[/]\n"
        f"Parsed: [green]{result.parsed_lines:,}[/] ({result.success_rate:.1f}%)\n"
        f"Errors: [{'red' if result.error_lines else 'green'}]{result.error_lines:,}[/]\n"
        f"Time: [cyan]{result.parse_time_ms:,.0f} ms[/] "
        f"([cyan]{result.throughput_mbps:.2f} MB/s[/])"
        + ("\n[yellow]Parsing was cancelled; results are partial[/]" if result.cancelled else ""),
        title="Parse",
        border_style="cyan"
    ))

    if filter_result is not None:
        console.print(
            f"Filter matched [cyan]{filter_result.filtered:,}[/] of "
            f"[cyan]{filter_result.total:,}[/] entries ({filter_result.percentage:.2f}%)"
        )

    if stats.is_empty:
        console.print("\n[yellow]No entries to report[/]")
        console.print("\n" + "═" * WIDTH, style="cyan")
        return

    span = ''
    if stats.start_time is not None and stats.end_time is not None:
        span = f"\nPeriod: [cyan]{stats.start_time}[/] → [cyan]{stats.end_time}[/]"
    console.print(Panel.fit(
        f"Total Requests: [cyan]{stats.total_requests:,}[/]\n"
        f"Unique IPs: [cyan]{stats.unique_ips:,}[/]\n"
        f"Unique Paths: [cyan]{stats.unique_paths:,}[/]\n"
        f"Total Bytes: [cyan]{stats.total_bytes:,}[/] "
        f"(avg [cyan]{stats.average_response_size:,.1f}[/])\n"
        f"Error Rate: [{'red' if stats.error_count else 'green'}]{stats.error_rate:.2f}%[/]"
        + span,
        title="Summary",
        border_style="cyan"
    ))

    _section(console, "TOP IPs (by requests)")
    table = Table(box=box.ROUNDED)
    table.add_column("IP Address", style="cyan")
    table.add_column("Requests", style="white", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Paths", justify="right")
    for s in stats.top_ips:
        table.add_row(escape(s.ip), f"{s.count:,}", f"{s.total_bytes:,}", f"{s.unique_path_count:,}")
    console.print(table)

    _section(console, "TOP PATHS (by requests)")
    table = Table(box=box.ROUNDED)
    table.add_column("Path", style="cyan", overflow="fold")
    table.add_column("Requests", style="white", justify="right")
    table.add_column("Avg Bytes", justify="right")
    table.add_column("Errors", justify="right")
    for s in stats.top_paths:
        color = 'red' if s.error_rate >= 50 else 'yellow' if s.error_rate > 0 else 'green'
        table.add_row(escape(s.path), f"{s.count:,}", f"{s.average_bytes:,.1f}",
                      f"[{color}]{s.error_rate:.1f}%[/]")
    console.print(table)

    _section(console, "STATUS CODES")
    for category, count in stats.status_codes.by_category().items():
        console.print(f"  {category}: [bold]{count:,}[/]")
    for code, count in sorted(stats.status_codes.details.items()):
        console.print(f"    {code}: [{_status_color(code)}]{count:,}[/]")

    if stats.method_distribution:
        _section(console, "METHODS")
        for method, count in sorted(stats.method_distribution.items(), key=lambda kv: -kv[1]):
            console.print(f"  {escape(method)}: [cyan]{count:,}[/]")

    bots = stats.bot_stats
    _section(console, "BOTS")
    console.print(
        f"  Bot requests: [magenta]{bots.bot_requests:,}[/] ({bots.bot_percentage:.2f}%)  "
        f"Human requests: [green]{bots.human_requests:,}[/]"
    )
    for category, count in sorted(bots.bot_types.items()):
        console.print(f"  {category.replace('_', ' ').title()}: [magenta]{count:,}[/]")
    if bots.top_user_agents:
        table = Table(box=box.ROUNDED)
        table.add_column("Bot User-Agent", style="magenta", overflow="fold")
        table.add_column("Requests", justify="right")
        table.add_column("%", justify="right")
        for s in bots.top_user_agents:
            table.add_row(escape(s.user_agent), f"{s.count:,}", f"{s.percentage:.2f}")
        console.print(table)

    if result.error_samples:
        _section(console, f"PARSE ERRORS (first {len(result.error_samples)})", style="bold red")
        for sample in result.error_samples:
            console.print(f"  line {sample.line_number}: [red]{escape(sample.reason)}[/]")
            console.print(f"    {sample.line[:WIDTH * 2]}", markup=False, highlight=False)

    console.print("\n" + "═" * WIDTH, style="cyan")


def print_export_result(result: ExportResult, console: Optional[Console] = None):
    console = console or Console()
    if result.success:
        console.print(
            f"\n[green]Spreadsheet saved to:[/] {escape(result.written_path)} "
            f"({result.rows_written:,} rows, {result.file_size:,} bytes)"
        )
    else:
        console.print(f"\n[yellow]Export {result.state.value}[/] after {result.rows_written:,} rows")
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/] {escape(warning)}", highlight=False)
