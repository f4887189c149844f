"""Access Log Analyzer - Data models"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class LogEntry:
    """One parsed Combined Log Format request"""
    line_number: int
    ip: str
    user: str
    timestamp: datetime
    method: str
    path: str
    protocol: str
    status_code: int
    response_bytes: int
    referer: str
    user_agent: str
    raw: str

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400


@dataclass(frozen=True)
class ParseError:
    """A line the parser rejected"""
    line_number: int
    line: str
    reason: str


@dataclass(frozen=True)
class ParseResult:
    entries: Tuple[LogEntry, ...]
    total_lines: int
    parsed_lines: int
    error_lines: int
    error_samples: Tuple[ParseError, ...]
    parse_time_ms: float = 0.0
    memory_bytes: int = 0
    throughput_mbps: float = 0.0
    file_size: int = 0
    cancelled: bool = False

    @property
    def success_rate(self) -> float:
        if self.total_lines == 0:
            return 0.0
        return self.parsed_lines / self.total_lines * 100

    @property
    def error_rate(self) -> float:
        if self.total_lines == 0:
            return 0.0
        return self.error_lines / self.total_lines * 100

    def summary(self) -> Dict:
        """Everything except the entries themselves"""
        return {
            'total_lines': self.total_lines,
            'parsed_lines': self.parsed_lines,
            'error_lines': self.error_lines,
            'error_samples': [asdict(e) for e in self.error_samples],
            'parse_time_ms': round(self.parse_time_ms, 2),
            'memory_bytes': self.memory_bytes,
            'throughput_mbps': round(self.throughput_mbps, 2),
            'file_size': self.file_size,
            'cancelled': self.cancelled,
        }


@dataclass(frozen=True)
class IPStat:
    ip: str
    count: int
    total_bytes: int
    unique_path_count: int


@dataclass(frozen=True)
class PathStat:
    path: str
    count: int
    average_bytes: float
    error_rate: float


@dataclass(frozen=True)
class StatusCodeDistribution:
    success: int = 0
    redirection: int = 0
    client_error: int = 0
    server_error: int = 0
    details: Dict[int, int] = field(default_factory=dict)

    def by_category(self) -> Dict[str, int]:
        return {
            '2xx': self.success,
            '3xx': self.redirection,
            '4xx': self.client_error,
            '5xx': self.server_error,
        }


@dataclass(frozen=True)
class UserAgentStat:
    user_agent: str
    count: int
    percentage: float


@dataclass(frozen=True)
class BotStats:
    total: int = 0
    bot_requests: int = 0
    human_requests: int = 0
    bot_percentage: float = 0.0
    top_user_agents: Tuple[UserAgentStat, ...] = ()
    bot_types: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Statistics:
    """Aggregate metrics computed once over a snapshot of entries"""
    total_requests: int = 0
    unique_ips: int = 0
    unique_paths: int = 0
    total_bytes: int = 0
    average_response_size: float = 0.0
    top_ips: Tuple[IPStat, ...] = ()
    top_paths: Tuple[PathStat, ...] = ()
    status_codes: StatusCodeDistribution = field(default_factory=StatusCodeDistribution)
    bot_stats: BotStats = field(default_factory=BotStats)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    method_distribution: Dict[str, int] = field(default_factory=dict)
    hourly_distribution: Dict[int, int] = field(default_factory=dict)
    error_count: int = 0
    error_rate: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.total_requests == 0

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['start_time'] = self.start_time.isoformat() if self.start_time else None
        data['end_time'] = self.end_time.isoformat() if self.end_time else None
        data['status_codes']['by_category'] = self.status_codes.by_category()
        return data


@dataclass(frozen=True)
class StatusCodeRange:
    min: int
    max: int


@dataclass(frozen=True)
class TimeRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class SizeRange:
    min: Optional[int] = None
    max: Optional[int] = None


@dataclass(frozen=True)
class FilterCriteria:
    """Structured predicates, combined with AND; unset fields match everything"""
    status_codes: Tuple[int, ...] = ()
    status_code_range: Optional[StatusCodeRange] = None
    time_range: Optional[TimeRange] = None
    methods: Tuple[str, ...] = ()
    response_size_range: Optional[SizeRange] = None

    def is_empty(self) -> bool:
        return (
            not self.status_codes
            and self.status_code_range is None
            and self.time_range is None
            and not self.methods
            and self.response_size_range is None
        )


@dataclass(frozen=True)
class SearchCriteria:
    """Substring matchers; blank fields match everything"""
    ip: str = ''
    url: str = ''
    user_agent: str = ''
    method: str = ''
    user: str = ''
    keyword: str = ''
    case_sensitive: bool = False

    def is_empty(self) -> bool:
        return not any(
            value.strip()
            for value in (self.ip, self.url, self.user_agent, self.method, self.user, self.keyword)
        )


@dataclass(frozen=True)
class FilterStats:
    total: int
    filtered: int
    percentage: float


class ExportState(Enum):
    IDLE = 'idle'
    PREPARING = 'preparing'
    WRITING = 'writing'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (ExportState.COMPLETED, ExportState.CANCELLED, ExportState.FAILED)


@dataclass(frozen=True)
class ExportProgress:
    state: ExportState
    percent: float
    message: str
    rows_written: int = 0


@dataclass(frozen=True)
class ExportResult:
    state: ExportState
    written_path: Optional[str] = None
    file_size: int = 0
    rows_written: int = 0
    truncated_rows: int = 0
    warnings: Tuple[str, ...] = ()
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.state is ExportState.COMPLETED
