"""Access Log Analyzer - Structured filtering"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from .models import (
    FilterCriteria,
    FilterStats,
    LogEntry,
    SearchCriteria,
    SizeRange,
    StatusCodeRange,
    TimeRange,
)
from .search import search_entries

Predicate = Callable[[LogEntry], bool]

MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 599

STATUS_CODE_RANGES = {
    'success': StatusCodeRange(200, 299),
    'redirect': StatusCodeRange(300, 399),
    'client_error': StatusCodeRange(400, 499),
    'server_error': StatusCodeRange(500, 599),
    'all_errors': StatusCodeRange(400, 599),
}


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # Naive bounds are taken as UTC so they compare with offset-aware timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_criteria(criteria: FilterCriteria) -> List[str]:
    """Return every structural problem in ``criteria``; empty means valid"""
    errors = []

    for code in criteria.status_codes:
        if not MIN_STATUS_CODE <= code <= MAX_STATUS_CODE:
            errors.append(f"Status code {code} must be between {MIN_STATUS_CODE} and {MAX_STATUS_CODE}")

    rng = criteria.status_code_range
    if rng is not None:
        if not MIN_STATUS_CODE <= rng.min <= MAX_STATUS_CODE:
            errors.append(f"Minimum status code must be between {MIN_STATUS_CODE} and {MAX_STATUS_CODE}")
        if not MIN_STATUS_CODE <= rng.max <= MAX_STATUS_CODE:
            errors.append(f"Maximum status code must be between {MIN_STATUS_CODE} and {MAX_STATUS_CODE}")
        if rng.min > rng.max:
            errors.append("Minimum status code cannot be greater than maximum")

    tr = criteria.time_range
    if tr is not None:
        start, end = _aware(tr.start), _aware(tr.end)
        if start is not None and end is not None and start > end:
            errors.append("Start time cannot be later than end time")

    sr = criteria.response_size_range
    if sr is not None:
        if sr.min is not None and sr.min < 0:
            errors.append("Minimum response size cannot be negative")
        if sr.max is not None and sr.max < 0:
            errors.append("Maximum response size cannot be negative")
        if sr.min is not None and sr.max is not None and sr.min > sr.max:
            errors.append("Minimum response size cannot be greater than maximum")

    return errors


def _predicates(criteria: FilterCriteria) -> List[Predicate]:
    """One closure per populated criterion, built once per filter call"""
    checks: List[Predicate] = []

    if criteria.status_codes:
        codes = frozenset(criteria.status_codes)
        checks.append(lambda e: e.status_code in codes)

    if criteria.status_code_range is not None:
        lo, hi = criteria.status_code_range.min, criteria.status_code_range.max
        checks.append(lambda e: lo <= e.status_code <= hi)

    if criteria.time_range is not None:
        start, end = _aware(criteria.time_range.start), _aware(criteria.time_range.end)
        if start is not None:
            checks.append(lambda e: e.timestamp >= start)
        if end is not None:
            checks.append(lambda e: e.timestamp <= end)

    if criteria.methods:
        methods = frozenset(criteria.methods)
        checks.append(lambda e: e.method in methods)

    if criteria.response_size_range is not None:
        smin, smax = criteria.response_size_range.min, criteria.response_size_range.max
        if smin is not None:
            checks.append(lambda e: e.response_bytes >= smin)
        if smax is not None:
            checks.append(lambda e: e.response_bytes <= smax)

    return checks


def filter_entries(entries: Sequence[LogEntry], criteria: Optional[FilterCriteria]) -> List[LogEntry]:
    """Entries satisfying every populated criterion, in input order.

    Ranges are assumed to have passed ``validate_criteria``; an inverted range
    simply matches nothing.
    """
    if criteria is None or criteria.is_empty():
        return list(entries)

    checks = _predicates(criteria)
    if len(checks) == 1:
        check = checks[0]
        return [e for e in entries if check(e)]
    return [e for e in entries if all(check(e) for check in checks)]


def filter_stats(original: Sequence[LogEntry], matched: Sequence[LogEntry]) -> FilterStats:
    total = len(original)
    filtered = len(matched)
    percentage = filtered / total * 100 if total else 0.0
    return FilterStats(total=total, filtered=filtered, percentage=round(percentage, 2))


def filter_and_search(entries: Sequence[LogEntry], filter_criteria: Optional[FilterCriteria],
                      search_criteria: Optional[SearchCriteria]) -> List[LogEntry]:
    """Apply the structured filter first, then the text search"""
    return search_entries(filter_entries(entries, filter_criteria), search_criteria)


def status_range(name: str) -> StatusCodeRange:
    try:
        return STATUS_CODE_RANGES[name]
    except KeyError:
        raise ValueError(
            f"Unknown status range {name!r}; choose from {', '.join(STATUS_CODE_RANGES)}"
        ) from None


def build_criteria(status_codes: Iterable[int] = (), status_code_range: Optional[StatusCodeRange] = None,
                   start: Optional[datetime] = None, end: Optional[datetime] = None,
                   methods: Iterable[str] = (), min_size: Optional[int] = None,
                   max_size: Optional[int] = None) -> FilterCriteria:
    """Assemble FilterCriteria from loose optional values, leaving unset parts empty"""
    return FilterCriteria(
        status_codes=tuple(status_codes),
        status_code_range=status_code_range,
        time_range=TimeRange(start, end) if start is not None or end is not None else None,
        methods=tuple(m.upper() for m in methods),
        response_size_range=SizeRange(min_size, max_size)
        if min_size is not None or max_size is not None else None,
    )
