"""Access Log Analyzer - Substring search"""

import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .models import LogEntry, SearchCriteria

Accessor = Callable[[LogEntry], str]

FIELD_ACCESSORS: Dict[str, Accessor] = {
    'ip': lambda e: e.ip,
    'user': lambda e: e.user,
    'method': lambda e: e.method,
    'url': lambda e: e.path,
    'protocol': lambda e: e.protocol,
    'referer': lambda e: e.referer,
    'user_agent': lambda e: e.user_agent,
}

KEYWORD_FIELDS = ('ip', 'user', 'method', 'url', 'protocol', 'referer', 'user_agent')

# criteria attribute -> entry field, checked in this order
CRITERIA_FIELDS = (
    ('ip', 'ip'),
    ('url', 'url'),
    ('user_agent', 'user_agent'),
    ('method', 'method'),
    ('user', 'user'),
)


def _fold(value: str, case_sensitive: bool) -> str:
    return value if case_sensitive else value.lower()


def _field_matcher(accessor: Accessor, term: str, case_sensitive: bool,
                   skip_empty: bool = False) -> Callable[[LogEntry], bool]:
    if case_sensitive:
        if skip_empty:
            return lambda e: not accessor(e) or term in accessor(e)
        return lambda e: term in accessor(e)
    if skip_empty:
        return lambda e: not accessor(e) or term in accessor(e).lower()
    return lambda e: term in accessor(e).lower()


def _keyword_matcher(term: str, case_sensitive: bool) -> Callable[[LogEntry], bool]:
    accessors = [FIELD_ACCESSORS[name] for name in KEYWORD_FIELDS]

    def match(entry: LogEntry) -> bool:
        for accessor in accessors:
            value = accessor(entry)
            if value and term in (value if case_sensitive else value.lower()):
                return True
        return False

    return match


def search_entries(entries: Sequence[LogEntry], criteria: Optional[SearchCriteria]) -> List[LogEntry]:
    """Entries matching every non-blank field of ``criteria``, in input order"""
    if criteria is None or criteria.is_empty():
        return list(entries)

    cs = criteria.case_sensitive
    matchers = []
    for attr, field_name in CRITERIA_FIELDS:
        term = getattr(criteria, attr)
        if not term.strip():
            continue
        # an entry without an authenticated user is not excluded by the user term
        matchers.append(_field_matcher(
            FIELD_ACCESSORS[field_name], _fold(term, cs), cs, skip_empty=(attr == 'user')
        ))
    if criteria.keyword.strip():
        matchers.append(_keyword_matcher(_fold(criteria.keyword, cs), cs))

    return [e for e in entries if all(m(e) for m in matchers)]


def match_spans(text: str, term: str, case_sensitive: bool = False) -> List[Tuple[int, int]]:
    """Non-overlapping (start, end) spans of ``term`` in ``text``, literal match"""
    if not term or not term.strip():
        return []
    flags = 0 if case_sensitive else re.IGNORECASE
    return [m.span() for m in re.finditer(re.escape(term), text, flags)]


def highlight_match(text: str, term: str, case_sensitive: bool = False,
                    open_tag: str = '<mark>', close_tag: str = '</mark>') -> str:
    """Wrap each literal occurrence of ``term`` in ``text`` with the given tags"""
    spans = match_spans(text, term, case_sensitive)
    if not spans:
        return text
    parts = []
    pos = 0
    for start, end in spans:
        parts.append(text[pos:start])
        parts.append(f"{open_tag}{text[start:end]}{close_tag}")
        pos = end
    parts.append(text[pos:])
    return ''.join(parts)


def search_stats(total: int, results: int) -> Dict[str, float]:
    percentage = results / total * 100 if total else 0.0
    return {'total': total, 'results': results, 'percentage': round(percentage, 2)}
