import json

import pytest
from openpyxl import load_workbook

import main as cli

from conftest import generate_lines


@pytest.fixture
def log_file(write_log):
    lines, _ = generate_lines(80)
    return write_log(lines + ['broken line'])


def run(monkeypatch, *argv):
    monkeypatch.setattr('sys.argv', ['main.py', *map(str, argv)])
    cli.main()


def test_json_report(monkeypatch, capsys, log_file):
    run(monkeypatch, log_file, '-j')
    report = json.loads(capsys.readouterr().out)

    assert report['parse']['parsed_lines'] == 80
    assert report['parse']['error_lines'] == 1
    assert report['statistics']['total_requests'] == 80
    assert 'filter' not in report


def test_filters_apply_before_statistics(monkeypatch, capsys, log_file):
    run(monkeypatch, log_file, '-j', '--status-range', 'client_error', '--method', 'get')
    report = json.loads(capsys.readouterr().out)

    details = report['statistics']['status_codes']['details']
    assert all(400 <= int(code) <= 499 for code in details)
    assert report['filter']['total'] == 80
    assert report['filter']['filtered'] == report['statistics']['total_requests']


def test_rich_report(monkeypatch, capsys, log_file):
    run(monkeypatch, log_file)
    out = capsys.readouterr().out
    assert 'ACCESS LOG ANALYZER REPORT' in out
    assert 'TOP IPs' in out
    assert 'PARSE ERRORS' in out


def test_writes_json_and_xlsx(monkeypatch, capsys, log_file, tmp_path):
    report_path = tmp_path / 'report.json'
    xlsx_path = tmp_path / 'out' / 'report.xlsx'
    run(monkeypatch, log_file, '-j', '-o', report_path, '-x', xlsx_path)

    assert json.loads(report_path.read_text())['statistics']['total_requests'] == 80
    assert load_workbook(xlsx_path)['Log Entries'].max_row == 81


def test_invalid_filter_exits(monkeypatch, capsys, log_file):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '--min-size', '10', '--max-size', '5')
    assert exc.value.code == 1
    assert 'Minimum response size cannot be greater than maximum' in capsys.readouterr().err


def test_missing_file_exits(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, tmp_path / 'missing.log', '-j')
    assert exc.value.code == 1
    assert 'missing.log' in capsys.readouterr().err


def test_bad_export_destination_exits(monkeypatch, capsys, log_file, tmp_path):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '-j', '-x', tmp_path / 'report.csv')
    assert exc.value.code == 1


@pytest.mark.parametrize('value', ['4xx', '400', 'a-b'])
def test_bad_status_range_is_a_usage_error(monkeypatch, log_file, value):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '--status-range', value)
    assert exc.value.code == 2


def test_status_range_argument():
    assert cli._status_range('400-499').min == 400
    assert cli._status_range('server_error').max == 599


def test_bad_env_config_exits(monkeypatch, capsys, log_file):
    monkeypatch.setenv('ACCESSLOG_TOP_N', 'many')
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '-j')
    assert exc.value.code == 1


@pytest.mark.parametrize('var, value', [
    ('ACCESSLOG_TOP_N', '-1'),
    ('ACCESSLOG_MAX_EXPORT_ROWS', '1'),
    ('ACCESSLOG_PROGRESS_INTERVAL', '0'),
])
def test_out_of_range_env_config_exits(monkeypatch, capsys, log_file, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '-j')
    assert exc.value.code == 1
    assert var in capsys.readouterr().err


def test_negative_error_samples_flag_exits(monkeypatch, capsys, log_file):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, log_file, '-j', '--error-samples', '-1')
    assert exc.value.code == 1
    assert 'error_sample_cap' in capsys.readouterr().err
