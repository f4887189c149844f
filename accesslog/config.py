"""Access Log Analyzer - Configuration"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple

from .patterns import (
    DEFAULT_ERROR_SAMPLE_CAP,
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_TOP_N,
    MAX_EXCEL_ROWS,
)

ENV_PREFIX = 'ACCESSLOG_'

# Smallest accepted value for each integer setting
MINIMUMS = {
    'error_sample_cap': 0,
    'top_n': 0,
    'max_export_rows': 2,
    'progress_interval': 1,
}


@dataclass(frozen=True)
class AnalyzerConfig:
    """Tunables shared by the parser, aggregator and exporter"""
    error_sample_cap: int = DEFAULT_ERROR_SAMPLE_CAP
    top_n: int = DEFAULT_TOP_N
    # None keeps the built-in signature table
    bot_signatures: Optional[Tuple[str, ...]] = None
    extra_bot_signatures: Tuple[str, ...] = field(default_factory=tuple)
    max_export_rows: int = MAX_EXCEL_ROWS
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    log_level: str = 'WARNING'

    def __post_init__(self):
        for name, minimum in MINIMUMS.items():
            value = getattr(self, name)
            if value < minimum:
                raise ValueError(f"{name} must be at least {minimum}, got {value}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'AnalyzerConfig':
        env = os.environ if environ is None else environ
        config = cls()
        overrides = {}

        for name, minimum in MINIMUMS.items():
            var = ENV_PREFIX + _env_name(name)
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            try:
                value = int(raw)
            except ValueError:
                raise ValueError(f"{var} must be an integer, got {raw!r}") from None
            if value < minimum:
                raise ValueError(f"{var} must be at least {minimum}, got {value}")
            overrides[name] = value

        signatures = env.get(ENV_PREFIX + 'BOT_SIGNATURES')
        if signatures:
            overrides['extra_bot_signatures'] = tuple(
                token.strip() for token in signatures.split(',') if token.strip()
            )

        level = env.get(ENV_PREFIX + 'LOG_LEVEL')
        if level:
            overrides['log_level'] = level.upper()

        return replace(config, **overrides)

    def with_overrides(self, **kwargs) -> 'AnalyzerConfig':
        """Apply the non-None keyword arguments"""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})


def _env_name(name: str) -> str:
    return {
        'error_sample_cap': 'ERROR_SAMPLES',
        'top_n': 'TOP_N',
        'max_export_rows': 'MAX_EXPORT_ROWS',
        'progress_interval': 'PROGRESS_INTERVAL',
    }[name]
