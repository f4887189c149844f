"""Access Log Analyzer - Spreadsheet row formatting"""

from collections import Counter
from typing import List, Optional

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

from .models import LogEntry, Statistics
from .patterns import MAX_EXCEL_CELL_CHARS

# Sheet names and headers are part of the output contract; do not reorder.
ENTRIES_SHEET = 'Log Entries'
SUMMARY_SHEET = 'Summary'
TOP_IPS_SHEET = 'Top IPs'
TOP_PATHS_SHEET = 'Top Paths'
STATUS_SHEET = 'Status Codes'
BOTS_SHEET = 'Bots'

ENTRY_HEADERS = (
    'Line', 'IP', 'User', 'Timestamp', 'Method', 'Path',
    'Protocol', 'Status', 'Bytes', 'Referer', 'User-Agent',
)
SUMMARY_HEADERS = ('Metric', 'Value')
TOP_IP_HEADERS = ('Rank', 'IP', 'Requests', 'Total Bytes', 'Unique Paths')
TOP_PATH_HEADERS = ('Rank', 'Path', 'Requests', 'Average Bytes', 'Error Rate (%)')
STATUS_HEADERS = ('Status', 'Requests')
BOT_HEADERS = ('Rank', 'User-Agent', 'Requests', 'Percentage (%)')

TIME_FORMAT = '%Y-%m-%d %H:%M:%S %z'


class Formatter:
    """Turns entries and statistics into worksheet rows.

    Keeps count of every value it had to shorten or clean so the exporter
    can report them as warnings. Use one instance per export.
    """

    def __init__(self, max_cell_chars: int = MAX_EXCEL_CELL_CHARS):
        self.max_cell_chars = max_cell_chars
        self.truncated: Counter = Counter()
        self.sanitized = 0

    def text(self, value: str, column: str = '') -> str:
        if not value:
            return value
        cleaned = ILLEGAL_CHARACTERS_RE.sub('', value)
        if cleaned != value:
            self.sanitized += 1
        if len(cleaned) > self.max_cell_chars:
            self.truncated[column] += 1
            cleaned = cleaned[:self.max_cell_chars]
        return cleaned

    def format_time(self, value) -> str:
        return value.strftime(TIME_FORMAT) if value is not None else ''

    def entry_row(self, entry: LogEntry) -> list:
        return [
            entry.line_number,
            self.text(entry.ip, 'IP'),
            self.text(entry.user, 'User'),
            self.format_time(entry.timestamp),
            self.text(entry.method, 'Method'),
            self.text(entry.path, 'Path'),
            self.text(entry.protocol, 'Protocol'),
            entry.status_code,
            entry.response_bytes,
            self.text(entry.referer, 'Referer'),
            self.text(entry.user_agent, 'User-Agent'),
        ]

    def summary_rows(self, stats: Statistics) -> List[list]:
        bots = stats.bot_stats
        codes = stats.status_codes
        rows = [
            ['Total Requests', stats.total_requests],
            ['Unique IPs', stats.unique_ips],
            ['Unique Paths', stats.unique_paths],
            ['Total Bytes', stats.total_bytes],
            ['Total MB', round(stats.total_bytes / (1024 * 1024), 2)],
            ['Average Response Size (bytes)', round(stats.average_response_size, 2)],
            ['Start Time', self.format_time(stats.start_time)],
            ['End Time', self.format_time(stats.end_time)],
            ['Error Requests (4xx + 5xx)', stats.error_count],
            ['Error Rate (%)', round(stats.error_rate, 2)],
            ['2xx Success', codes.success],
            ['3xx Redirection', codes.redirection],
            ['4xx Client Error', codes.client_error],
            ['5xx Server Error', codes.server_error],
            ['Bot Requests', bots.bot_requests],
            ['Human Requests', bots.human_requests],
            ['Bot Percentage (%)', round(bots.bot_percentage, 2)],
        ]
        for category, count in sorted(bots.bot_types.items()):
            rows.append([f"Bot Type: {category}", count])
        for method, count in sorted(stats.method_distribution.items()):
            rows.append([f"Method: {self.text(method, 'Method')}", count])
        return rows

    def top_ip_rows(self, stats: Statistics) -> List[list]:
        return [
            [rank, self.text(s.ip, 'IP'), s.count, s.total_bytes, s.unique_path_count]
            for rank, s in enumerate(stats.top_ips, 1)
        ]

    def top_path_rows(self, stats: Statistics) -> List[list]:
        return [
            [rank, self.text(s.path, 'Path'), s.count, round(s.average_bytes, 2), round(s.error_rate, 2)]
            for rank, s in enumerate(stats.top_paths, 1)
        ]

    def status_rows(self, stats: Statistics) -> List[list]:
        codes = stats.status_codes
        rows = [[category, count] for category, count in codes.by_category().items()]
        rows.append(['', ''])
        rows.extend([code, count] for code, count in codes.details.items())
        return rows

    def bot_rows(self, stats: Statistics) -> List[list]:
        return [
            [rank, self.text(s.user_agent, 'User-Agent'), s.count, round(s.percentage, 2)]
            for rank, s in enumerate(stats.bot_stats.top_user_agents, 1)
        ]

    def warnings(self) -> List[str]:
        messages = []
        for column, count in sorted(self.truncated.items()):
            messages.append(
                f"{count:,} {column} value(s) were truncated to {self.max_cell_chars:,} characters to fit a cell"
            )
        if self.sanitized:
            messages.append(
                f"{self.sanitized:,} value(s) contained control characters that were removed"
            )
        return messages


def consistency_warnings(entry_count: int, stats: Optional[Statistics]) -> List[str]:
    if stats is None:
        return []
    if stats.total_requests != entry_count:
        return [
            f"Statistics cover {stats.total_requests:,} requests but {entry_count:,} entries "
            f"were exported; the summary sheets describe a different entry set"
        ]
    return []
