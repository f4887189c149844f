"""Access Log Analyzer - Combined Log Format parser"""

import logging
import re
import sys
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .cancel import CancelToken
from .errors import LineParseError, LogFileError
from .models import LogEntry, ParseError, ParseResult
from .patterns import (
    ABSENT,
    COMBINED_LOG_PATTERN,
    DEFAULT_ERROR_SAMPLE_CAP,
    DEFAULT_PROGRESS_INTERVAL,
    MONTHS,
    TIMESTAMP_PATTERN,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]

LINE_RE = re.compile(COMBINED_LOG_PATTERN)
TIMESTAMP_RE = re.compile(TIMESTAMP_PATTERN)
DIGITS_RE = re.compile(r'[0-9]+\Z')

MB = 1024 * 1024


@lru_cache(maxsize=64)
def _zone(sign: str, hours: int, minutes: int) -> timezone:
    offset = timedelta(hours=hours, minutes=minutes)
    return timezone(-offset if sign == '-' else offset)


def parse_timestamp(value: str) -> datetime:
    """Parse ``day/Mon/year:HH:MM:SS zone`` keeping the zone offset.

    Raises ValueError when the value is malformed or the zone is missing.
    """
    m = TIMESTAMP_RE.match(value.strip())
    if not m:
        raise ValueError(f"invalid timestamp {value!r}")

    month = MONTHS.get(m.group('month').lower())
    if month is None:
        raise ValueError(f"unknown month {m.group('month')!r}")

    tz = _zone(m.group('sign'), int(m.group('tz_hours')), int(m.group('tz_minutes')))
    return datetime(
        int(m.group('year')), month, int(m.group('day')),
        int(m.group('hour')), int(m.group('minute')), int(m.group('second')),
        tzinfo=tz,
    )


def _field(value: Optional[str]) -> str:
    if value is None or value == ABSENT:
        return ''
    if '\\' in value:
        value = value.replace('\\"', '"').replace('\\\\', '\\')
    return value


def _peak_memory_bytes() -> int:
    # ru_maxrss is kilobytes on Linux and bytes on macOS; no equivalent on Windows
    if sys.platform == 'win32':
        return 0
    import resource
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    return peak if sys.platform == 'darwin' else peak * 1024


class LogParser:
    """Streams Combined Log Format lines into LogEntry records.

    Failures are per line: a bad line is counted, sampled (up to
    ``error_sample_cap`` samples) and skipped.
    """

    def __init__(self, error_sample_cap: int = DEFAULT_ERROR_SAMPLE_CAP,
                 progress_interval: int = DEFAULT_PROGRESS_INTERVAL):
        self.error_sample_cap = max(0, error_sample_cap)
        self.progress_interval = max(1, progress_interval)

    def parse_line(self, line: str, line_number: int) -> LogEntry:
        line = line.rstrip('\r\n')
        m = LINE_RE.match(line)
        if not m:
            raise LineParseError('line does not match Combined Log Format')

        tokens = _field(m.group('request')).split()
        if len(tokens) != 3:
            raise LineParseError(
                f"request field must have exactly three tokens, got {len(tokens)}"
            )
        method, path, protocol = tokens

        try:
            timestamp = parse_timestamp(m.group('timestamp'))
        except ValueError as e:
            raise LineParseError(str(e)) from None

        status = m.group('status')
        if not DIGITS_RE.match(status):
            raise LineParseError(f"invalid status code {status!r}")

        size = m.group('size')
        if size == ABSENT:
            response_bytes = 0
        elif DIGITS_RE.match(size):
            response_bytes = int(size)
        else:
            raise LineParseError(f"invalid response size {size!r}")

        return LogEntry(
            line_number=line_number,
            ip=m.group('ip'),
            user=_field(m.group('user')),
            timestamp=timestamp,
            method=method,
            path=path,
            protocol=protocol,
            status_code=int(status),
            response_bytes=response_bytes,
            referer=_field(m.group('referer')),
            user_agent=_field(m.group('user_agent')),
            raw=line,
        )

    def parse_stream(self, lines: Iterable[Union[bytes, str]], total_bytes: int = 0,
                     progress: Optional[ProgressCallback] = None,
                     cancel: Optional[CancelToken] = None) -> ParseResult:
        """Parse an iterable of raw lines (bytes are decoded as UTF-8)"""
        start = time.perf_counter()
        entries: List[LogEntry] = []
        samples: List[ParseError] = []
        total = 0
        errors = 0
        consumed = 0
        cancelled = False
        last_percent = 0.0

        for line_number, raw in enumerate(lines, 1):
            if cancel is not None and cancel.cancelled:
                cancelled = True
                break

            consumed += len(raw)
            text = raw.decode('utf-8', errors='replace') if isinstance(raw, bytes) else raw
            text = text.rstrip('\r\n')
            if not text.strip():
                continue

            total += 1
            try:
                entries.append(self.parse_line(text, line_number))
            except LineParseError as e:
                errors += 1
                if len(samples) < self.error_sample_cap:
                    samples.append(ParseError(line_number=line_number, line=text, reason=e.reason))
                logger.debug("Line %d rejected: %s", line_number, e.reason)

            if progress is not None and line_number % self.progress_interval == 0:
                if total_bytes:
                    last_percent = max(last_percent, min(99.0, consumed / total_bytes * 100))
                progress(last_percent, f"Parsed {total:,} lines")

        elapsed = time.perf_counter() - start
        size = total_bytes or consumed
        throughput = (size / MB) / elapsed if elapsed > 0 else 0.0

        if progress is not None and not cancelled:
            progress(100.0, f"Parsed {total:,} lines")

        if errors:
            logger.warning("%d of %d lines could not be parsed", errors, total)

        return ParseResult(
            entries=tuple(entries),
            total_lines=total,
            parsed_lines=len(entries),
            error_lines=errors,
            error_samples=tuple(samples),
            parse_time_ms=elapsed * 1000,
            memory_bytes=_peak_memory_bytes(),
            throughput_mbps=throughput,
            file_size=size,
            cancelled=cancelled,
        )

    def parse_file(self, filepath: Union[str, Path],
                   progress: Optional[ProgressCallback] = None,
                   cancel: Optional[CancelToken] = None) -> ParseResult:
        path = Path(filepath)
        if not path.exists():
            raise LogFileError(path, 'file not found')
        if not path.is_file():
            raise LogFileError(path, 'not a regular file')

        logger.info("Parsing %s", path)
        try:
            file_size = path.stat().st_size
            with open(path, 'rb') as f:
                result = self.parse_stream(f, total_bytes=file_size, progress=progress, cancel=cancel)
        except OSError as e:
            raise LogFileError(path, e.strerror or str(e)) from e

        logger.info(
            "Parsed %s: %d lines, %d entries, %d errors in %.0f ms (%.2f MB/s)%s",
            path, result.total_lines, result.parsed_lines, result.error_lines,
            result.parse_time_ms, result.throughput_mbps,
            ' [cancelled]' if result.cancelled else '',
        )
        return result

    def validate_format(self, filepath: Union[str, Path], sample_lines: int = 100) -> bool:
        """True when at least 80% of the first non-blank lines parse"""
        path = Path(filepath)
        checked = 0
        valid = 0
        try:
            with open(path, 'rb') as f:
                for line_number, raw in enumerate(f, 1):
                    text = raw.decode('utf-8', errors='replace').rstrip('\r\n')
                    if not text.strip():
                        continue
                    checked += 1
                    try:
                        self.parse_line(text, line_number)
                        valid += 1
                    except LineParseError:
                        pass
                    if checked >= sample_lines:
                        break
        except OSError as e:
            raise LogFileError(path, e.strerror or str(e)) from e

        if checked == 0:
            return False
        return valid / checked >= 0.8


def parse_file(filepath: Union[str, Path], error_sample_cap: int = DEFAULT_ERROR_SAMPLE_CAP,
               progress: Optional[ProgressCallback] = None,
               cancel: Optional[CancelToken] = None) -> ParseResult:
    return LogParser(error_sample_cap=error_sample_cap).parse_file(
        filepath, progress=progress, cancel=cancel
    )
