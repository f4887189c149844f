"""Access Log Analyzer - Core analysis engine"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .bots import BotDetector, Signatures
from .cancel import CancelToken
from .config import AnalyzerConfig
from .exporter import ProgressCallback as ExportProgressCallback
from .exporter import XLSXExporter
from .filters import filter_entries, filter_stats, validate_criteria
from .models import (
    ExportResult,
    FilterCriteria,
    FilterStats,
    LogEntry,
    ParseResult,
    SearchCriteria,
    Statistics,
)
from .parser import LogParser, ProgressCallback
from .search import search_entries
from .stats import StatisticsCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterOutcome:
    matched: List[LogEntry]
    stats: FilterStats


class LogAnalyzer:
    """Main entry point bundling parse, aggregate, filter, search and export.

    Holds only configuration; every call takes its inputs explicitly, so one
    analyzer can serve several files at once.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()

    def parse(self, filepath: Union[str, Path], progress: Optional[ProgressCallback] = None,
              cancel: Optional[CancelToken] = None) -> ParseResult:
        parser = LogParser(
            error_sample_cap=self.config.error_sample_cap,
            progress_interval=self.config.progress_interval,
        )
        return parser.parse_file(filepath, progress=progress, cancel=cancel)

    def validate_format(self, filepath: Union[str, Path]) -> bool:
        return LogParser().validate_format(filepath)

    def bot_detector(self, bot_signatures: Optional[Signatures] = None) -> BotDetector:
        signatures = bot_signatures
        if signatures is None and self.config.bot_signatures is not None:
            signatures = self.config.bot_signatures
        return BotDetector(signatures=signatures, extra_signatures=self.config.extra_bot_signatures)

    def aggregate(self, entries: Sequence[LogEntry],
                  bot_signatures: Optional[Signatures] = None) -> Statistics:
        logger.debug("Aggregating %d entries", len(entries))
        calculator = StatisticsCalculator(
            top_n=self.config.top_n,
            bot_detector=self.bot_detector(bot_signatures),
        )
        return calculator.calculate(entries)

    def validate(self, criteria: FilterCriteria) -> List[str]:
        return validate_criteria(criteria)

    def filter(self, entries: Sequence[LogEntry], criteria: Optional[FilterCriteria]) -> FilterOutcome:
        matched = filter_entries(entries, criteria)
        return FilterOutcome(matched=matched, stats=filter_stats(entries, matched))

    def search(self, entries: Sequence[LogEntry], criteria: Optional[SearchCriteria]) -> List[LogEntry]:
        return search_entries(entries, criteria)

    def export(self, entries: Sequence[LogEntry], statistics: Optional[Statistics],
               destination: Union[str, Path],
               progress: Optional[ExportProgressCallback] = None,
               cancel: Optional[CancelToken] = None) -> ExportResult:
        exporter = XLSXExporter(
            max_rows=self.config.max_export_rows,
            progress_interval=self.config.progress_interval,
        )
        return exporter.export(entries, statistics, destination, progress=progress, cancel=cancel)

    def analyze_file(self, filepath: Union[str, Path],
                     progress: Optional[ProgressCallback] = None) -> Tuple[ParseResult, Statistics]:
        result = self.parse(filepath, progress=progress)
        return result, self.aggregate(result.entries)

    def generate_report(self, result: ParseResult, stats: Statistics,
                        filter_result: Optional[FilterStats] = None) -> dict:
        report = {
            'parse': result.summary(),
            'statistics': stats.to_dict(),
        }
        if filter_result is not None:
            report['filter'] = {
                'total': filter_result.total,
                'filtered': filter_result.filtered,
                'percentage': filter_result.percentage,
            }
        return report
