"""Access Log Analyzer - Bot user-agent detection"""

from typing import Dict, Iterable, Mapping, Optional, Union

from .patterns import ABSENT, BOT_SIGNATURES, CUSTOM_BOT_CATEGORY

Signatures = Union[Mapping[str, str], Iterable[str]]


def default_signatures() -> Dict[str, str]:
    """Built-in table of lowercase token -> category, in match priority order"""
    table = {}
    for category, tokens in BOT_SIGNATURES.items():
        for token in tokens:
            table.setdefault(token.lower(), category)
    return table


def _as_table(signatures: Signatures) -> Dict[str, str]:
    if isinstance(signatures, Mapping):
        return {token.lower(): category for token, category in signatures.items() if token}
    if isinstance(signatures, str):
        signatures = [signatures]
    return {token.lower(): CUSTOM_BOT_CATEGORY for token in signatures if token}


class BotDetector:
    """Classifies user-agents by case-insensitive substring match.

    ``signatures`` replaces the built-in table, ``extra_signatures`` extends
    it. Either may be a mapping of token -> category or a plain list of
    tokens (category ``custom``). Tokens are tried in insertion order, so
    add specific tokens before generic ones.
    """

    def __init__(self, signatures: Optional[Signatures] = None,
                 extra_signatures: Optional[Signatures] = None):
        self._table = default_signatures() if signatures is None else _as_table(signatures)
        if extra_signatures:
            for token, category in _as_table(extra_signatures).items():
                self._table.setdefault(token, category)

    @property
    def signatures(self) -> Dict[str, str]:
        return dict(self._table)

    def add_signature(self, token: str, category: str = CUSTOM_BOT_CATEGORY):
        self._table[token.lower()] = category

    def remove_signature(self, token: str):
        self._table.pop(token.lower(), None)

    def classify(self, user_agent: str) -> Optional[str]:
        """Return the bot category, or None for human traffic"""
        if not user_agent or user_agent == ABSENT:
            return None
        lowered = user_agent.lower()
        for token, category in self._table.items():
            if token in lowered:
                return category
        return None

    def is_bot(self, user_agent: str) -> bool:
        return self.classify(user_agent) is not None
