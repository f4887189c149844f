"""Access Log Analyzer - Single-pass statistics aggregation"""

import logging
from collections import Counter
from typing import Dict, Iterable, Optional, Set

from .bots import BotDetector, Signatures
from .models import (
    BotStats,
    IPStat,
    LogEntry,
    PathStat,
    Statistics,
    StatusCodeDistribution,
    UserAgentStat,
)
from .patterns import DEFAULT_TOP_N
from .topn import TopNHeap

logger = logging.getLogger(__name__)


class _IPAccumulator:
    __slots__ = ('count', 'total_bytes', 'paths')

    def __init__(self):
        self.count = 0
        self.total_bytes = 0
        self.paths: Set[str] = set()


class _PathAccumulator:
    __slots__ = ('count', 'total_bytes', 'errors')

    def __init__(self):
        self.count = 0
        self.total_bytes = 0
        self.errors = 0


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


class StatisticsCalculator:
    """Computes Statistics over an entry snapshot in one pass.

    Per-key counts are exact; only the ranked lists are bounded, each by a
    TopNHeap of size ``top_n``.
    """

    def __init__(self, top_n: int = DEFAULT_TOP_N, bot_detector: Optional[BotDetector] = None):
        self.top_n = top_n
        self.bot_detector = bot_detector or BotDetector()

    def calculate(self, entries: Iterable[LogEntry]) -> Statistics:
        total = 0
        total_bytes = 0
        error_count = 0
        start_time = None
        end_time = None

        ips: Dict[str, _IPAccumulator] = {}
        paths: Dict[str, _PathAccumulator] = {}
        details: Counter = Counter()
        methods: Counter = Counter()
        hours: Counter = Counter()

        bot_requests = 0
        bot_agents: Counter = Counter()
        bot_types: Counter = Counter()
        # classification is a pure function of the user-agent string
        categories: Dict[str, Optional[str]] = {}

        for entry in entries:
            total += 1
            size = entry.response_bytes
            total_bytes += size

            ip_acc = ips.get(entry.ip)
            if ip_acc is None:
                ip_acc = ips[entry.ip] = _IPAccumulator()
            ip_acc.count += 1
            ip_acc.total_bytes += size
            ip_acc.paths.add(entry.path)

            path_acc = paths.get(entry.path)
            if path_acc is None:
                path_acc = paths[entry.path] = _PathAccumulator()
            path_acc.count += 1
            path_acc.total_bytes += size
            if entry.is_error:
                path_acc.errors += 1
                error_count += 1

            details[entry.status_code] += 1
            methods[entry.method] += 1
            hours[entry.timestamp.hour] += 1

            if start_time is None or entry.timestamp < start_time:
                start_time = entry.timestamp
            if end_time is None or entry.timestamp > end_time:
                end_time = entry.timestamp

            ua = entry.user_agent
            if ua in categories:
                category = categories[ua]
            else:
                category = categories[ua] = self.bot_detector.classify(ua)
            if category is not None:
                bot_requests += 1
                bot_agents[ua] += 1
                bot_types[category] += 1

        stats = Statistics(
            total_requests=total,
            unique_ips=len(ips),
            unique_paths=len(paths),
            total_bytes=total_bytes,
            average_response_size=total_bytes / total if total else 0.0,
            top_ips=self._top_ips(ips),
            top_paths=self._top_paths(paths),
            status_codes=self._status_distribution(details),
            bot_stats=BotStats(
                total=total,
                bot_requests=bot_requests,
                human_requests=total - bot_requests,
                bot_percentage=_percent(bot_requests, total),
                top_user_agents=self._top_user_agents(bot_agents, total),
                bot_types=dict(bot_types),
            ),
            start_time=start_time,
            end_time=end_time,
            method_distribution=dict(methods),
            hourly_distribution={hour: hours[hour] for hour in sorted(hours)},
            error_count=error_count,
            error_rate=_percent(error_count, total),
        )

        logger.info(
            "Statistics: %d requests, %d unique IPs, %d unique paths, %d bot requests",
            stats.total_requests, stats.unique_ips, stats.unique_paths, bot_requests,
        )
        return stats

    def _top_ips(self, ips: Dict[str, _IPAccumulator]):
        heap = TopNHeap(self.top_n)
        for ip, acc in ips.items():
            heap.push(ip, acc.count)
        return tuple(
            IPStat(
                ip=ip,
                count=count,
                total_bytes=ips[ip].total_bytes,
                unique_path_count=len(ips[ip].paths),
            )
            for ip, count in heap.results()
        )

    def _top_paths(self, paths: Dict[str, _PathAccumulator]):
        heap = TopNHeap(self.top_n)
        for path, acc in paths.items():
            heap.push(path, acc.count)
        return tuple(
            PathStat(
                path=path,
                count=count,
                average_bytes=paths[path].total_bytes / count,
                error_rate=_percent(paths[path].errors, count),
            )
            for path, count in heap.results()
        )

    def _top_user_agents(self, agents: Counter, total: int):
        heap = TopNHeap(self.top_n)
        heap.push_all(agents)
        return tuple(
            UserAgentStat(user_agent=ua, count=count, percentage=_percent(count, total))
            for ua, count in heap.results()
        )

    @staticmethod
    def _status_distribution(details: Counter) -> StatusCodeDistribution:
        buckets = Counter()
        for code, count in details.items():
            buckets[code // 100] += count
        return StatusCodeDistribution(
            success=buckets[2],
            redirection=buckets[3],
            client_error=buckets[4],
            server_error=buckets[5],
            details={code: details[code] for code in sorted(details)},
        )


def aggregate(entries: Iterable[LogEntry], bot_signatures: Optional[Signatures] = None,
              extra_bot_signatures: Optional[Signatures] = None,
              top_n: int = DEFAULT_TOP_N) -> Statistics:
    """Compute Statistics.

    ``bot_signatures`` replaces the built-in signature list and
    ``extra_bot_signatures`` extends it.
    """
    detector = BotDetector(signatures=bot_signatures, extra_signatures=extra_bot_signatures)
    return StatisticsCalculator(top_n=top_n, bot_detector=detector).calculate(entries)
