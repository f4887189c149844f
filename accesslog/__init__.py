"""Access Log Analyzer package"""

from .patterns import VERSION, COMBINED_LOG_PATTERN, BOT_SIGNATURES
from .models import (
    ExportProgress,
    ExportResult,
    ExportState,
    FilterCriteria,
    FilterStats,
    LogEntry,
    ParseError,
    ParseResult,
    SearchCriteria,
    SizeRange,
    Statistics,
    StatusCodeRange,
    TimeRange,
)
from .errors import AccessLogError, ExportDestinationError, LineParseError, LogFileError
from .cancel import CancelToken
from .config import AnalyzerConfig
from .analyzer import FilterOutcome, LogAnalyzer
from .output import print_export_result, print_report

__all__ = [
    'VERSION', 'COMBINED_LOG_PATTERN', 'BOT_SIGNATURES',
    'LogAnalyzer', 'FilterOutcome', 'AnalyzerConfig', 'CancelToken',
    'LogEntry', 'ParseError', 'ParseResult', 'Statistics',
    'FilterCriteria', 'StatusCodeRange', 'TimeRange', 'SizeRange', 'SearchCriteria', 'FilterStats',
    'ExportState', 'ExportProgress', 'ExportResult',
    'AccessLogError', 'LogFileError', 'ExportDestinationError', 'LineParseError',
    'print_report', 'print_export_result',
]
