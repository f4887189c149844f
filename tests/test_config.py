import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from accesslog.config import AnalyzerConfig
from accesslog.log import LOGGER_NAME, setup_logging


def test_defaults():
    config = AnalyzerConfig()
    assert config.error_sample_cap == 10
    assert config.top_n == 10
    assert config.bot_signatures is None
    assert config.extra_bot_signatures == ()
    assert config.max_export_rows == 1_048_576
    assert config.log_level == 'WARNING'


def test_from_env():
    config = AnalyzerConfig.from_env({
        'ACCESSLOG_ERROR_SAMPLES': '25',
        'ACCESSLOG_TOP_N': '5',
        'ACCESSLOG_MAX_EXPORT_ROWS': '1000',
        'ACCESSLOG_BOT_SIGNATURES': 'acme, partnerbot ,,',
        'ACCESSLOG_LOG_LEVEL': 'debug',
    })
    assert config.error_sample_cap == 25
    assert config.top_n == 5
    assert config.max_export_rows == 1000
    assert config.extra_bot_signatures == ('acme', 'partnerbot')
    assert config.log_level == 'DEBUG'


def test_from_env_ignores_blank_values():
    assert AnalyzerConfig.from_env({'ACCESSLOG_TOP_N': '  '}) == AnalyzerConfig()


def test_from_env_rejects_non_integer():
    with pytest.raises(ValueError) as exc:
        AnalyzerConfig.from_env({'ACCESSLOG_TOP_N': 'ten'})
    assert 'ACCESSLOG_TOP_N' in str(exc.value)


@pytest.mark.parametrize('var, value', [
    ('ACCESSLOG_TOP_N', '-1'),
    ('ACCESSLOG_ERROR_SAMPLES', '-5'),
    ('ACCESSLOG_MAX_EXPORT_ROWS', '1'),
    ('ACCESSLOG_MAX_EXPORT_ROWS', '0'),
    ('ACCESSLOG_PROGRESS_INTERVAL', '0'),
])
def test_from_env_rejects_out_of_range(var, value):
    with pytest.raises(ValueError) as exc:
        AnalyzerConfig.from_env({var: value})
    assert var in str(exc.value)
    assert 'at least' in str(exc.value)


def test_from_env_accepts_lower_bounds():
    config = AnalyzerConfig.from_env({
        'ACCESSLOG_TOP_N': '0',
        'ACCESSLOG_ERROR_SAMPLES': '0',
        'ACCESSLOG_MAX_EXPORT_ROWS': '2',
        'ACCESSLOG_PROGRESS_INTERVAL': '1',
    })
    assert (config.top_n, config.error_sample_cap) == (0, 0)
    assert (config.max_export_rows, config.progress_interval) == (2, 1)


@pytest.mark.parametrize('kwargs', [
    {'top_n': -1},
    {'error_sample_cap': -1},
    {'max_export_rows': 1},
    {'progress_interval': 0},
])
def test_constructor_rejects_out_of_range(kwargs):
    with pytest.raises(ValueError) as exc:
        AnalyzerConfig(**kwargs)
    assert next(iter(kwargs)) in str(exc.value)


def test_overrides_are_range_checked():
    with pytest.raises(ValueError):
        AnalyzerConfig().with_overrides(error_sample_cap=-1)


def test_overrides_skip_none():
    config = AnalyzerConfig().with_overrides(top_n=3, log_level=None)
    assert config.top_n == 3
    assert config.log_level == 'WARNING'


def test_setup_logging_installs_single_rich_handler():
    console = Console(file=None, force_terminal=False)
    setup_logging('info', console=console)
    logger = setup_logging('debug', console=console)

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
    assert logging.getLogger('accesslog.parser').getEffectiveLevel() == logging.DEBUG
