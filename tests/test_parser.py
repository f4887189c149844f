from datetime import datetime, timedelta, timezone

import pytest

from accesslog.cancel import CancelToken
from accesslog.errors import LineParseError, LogFileError
from accesslog.parser import LogParser, parse_file, parse_timestamp

from conftest import SAMPLE_LINE, generate_lines, make_line


def test_parses_reference_line(write_log):
    result = parse_file(write_log([SAMPLE_LINE]))

    assert result.total_lines == 1
    assert result.parsed_lines == 1
    assert result.error_lines == 0
    entry = result.entries[0]
    assert entry.ip == '192.168.1.100'
    assert entry.method == 'GET'
    assert entry.path == '/index.html'
    assert entry.protocol == 'HTTP/1.1'
    assert entry.status_code == 200
    assert entry.response_bytes == 1024
    assert entry.user_agent == 'Mozilla/5.0'
    assert entry.referer == ''
    assert entry.user == ''
    assert entry.line_number == 1
    assert entry.raw == SAMPLE_LINE


def test_round_trip_synthetic_lines(write_log):
    lines, fields = generate_lines(300)
    result = parse_file(write_log(lines))

    assert result.parsed_lines == 300
    for entry, record in zip(result.entries, fields):
        assert entry.status_code == record['status']
        assert entry.response_bytes == record['size']
        assert entry.method == record['method']
        assert entry.path == record['path']
        assert entry.ip == record['ip']
        assert entry.timestamp == record['when']


def test_line_numbers_increase(write_log):
    lines, _ = generate_lines(50)
    result = parse_file(write_log(lines))
    numbers = [e.line_number for e in result.entries]
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == len(numbers)


def test_timestamp_keeps_offset():
    ts = parse_timestamp('10/Oct/2000:13:55:36 -0700')
    assert ts.utcoffset() == timedelta(hours=-7)
    assert ts == datetime(2000, 10, 10, 20, 55, 36, tzinfo=timezone.utc)


@pytest.mark.parametrize('value', [
    '10/Oct/2000:13:55:36',
    '10/Foo/2000:13:55:36 +0000',
    '2000-10-10 13:55:36 +0000',
])
def test_bad_timestamps_rejected(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_dash_size_is_zero_and_user_kept():
    entry = LogParser().parse_line(make_line(size=None, user='frank'), 1)
    assert entry.response_bytes == 0
    assert entry.user == 'frank'


def test_query_string_retained():
    entry = LogParser().parse_line(make_line(path='/search?q=a+b&page=2'), 1)
    assert entry.path == '/search?q=a+b&page=2'


def test_common_log_format_line_accepted():
    line = '127.0.0.1 - - [01/Jan/2024:10:00:00 +0000] "GET / HTTP/1.0" 304 -'
    entry = LogParser().parse_line(line, 1)
    assert entry.status_code == 304
    assert entry.user_agent == ''


def test_escaped_quotes_in_user_agent():
    line = make_line(user_agent='Agent \\"quoted\\" name')
    entry = LogParser().parse_line(line, 1)
    assert entry.user_agent == 'Agent "quoted" name'


def test_extra_fields_after_user_agent_ignored():
    entry = LogParser().parse_line(make_line(user_agent='curl/8.0') + ' 1234 "vhost"', 1)
    assert entry.user_agent == 'curl/8.0'


@pytest.mark.parametrize('tail', [
    '"http://a"b" "Googlebot/2.1"',
    '"http://a/"',
    'trailing junk',
])
def test_broken_referer_and_user_agent_rejected(tail):
    line = f'10.0.0.1 - - [01/Jan/2024:10:00:00 +0000] "GET / HTTP/1.1" 200 10 {tail}'
    with pytest.raises(LineParseError) as exc:
        LogParser().parse_line(line, 1)
    assert 'does not match' in exc.value.reason


def test_broken_referer_counted_as_error(write_log):
    good = make_line(user_agent='Googlebot/2.1')
    bad = '10.0.0.1 - - [01/Jan/2024:10:00:00 +0000] "GET / HTTP/1.1" 200 10 "http://a"b" "Googlebot/2.1"'
    result = parse_file(write_log([good, bad]))
    assert result.parsed_lines == 1
    assert result.error_lines == 1
    assert result.error_samples[0].line_number == 2


@pytest.mark.parametrize('line, reason', [
    ('not a log line', 'does not match'),
    (make_line(method='GET /two', path='tokens', protocol='HTTP/1.1 extra'), 'three tokens'),
    ('1.1.1.1 - - [01/Jan/2024:10:00:00] "GET / HTTP/1.1" 200 1 "-" "-"', 'timestamp'),
    (make_line(status='2OO'), 'status'),
    (make_line(size='12kb'), 'size'),
])
def test_invalid_lines(line, reason):
    with pytest.raises(LineParseError) as exc:
        LogParser().parse_line(line, 1)
    assert reason in exc.value.reason


def test_errors_counted_exactly_but_samples_capped(write_log):
    good, _ = generate_lines(5)
    bad = [f'garbage line {i}' for i in range(25)]
    result = parse_file(write_log(good + bad))

    assert result.total_lines == 30
    assert result.parsed_lines == 5
    assert result.error_lines == 25
    assert len(result.error_samples) == 10
    assert result.error_samples[0].line_number == 6
    assert result.error_samples[0].line == 'garbage line 0'


def test_error_sample_cap_is_configurable(write_log):
    result = parse_file(write_log(['bad'] * 8), error_sample_cap=3)
    assert result.error_lines == 8
    assert len(result.error_samples) == 3


def test_blank_lines_skipped_but_numbered(write_log):
    lines, _ = generate_lines(2)
    result = parse_file(write_log([lines[0], '', '   ', lines[1]]))

    assert result.total_lines == 2
    assert result.error_lines == 0
    assert [e.line_number for e in result.entries] == [1, 4]


def test_missing_file_raises(tmp_path):
    with pytest.raises(LogFileError) as exc:
        parse_file(tmp_path / 'missing.log')
    assert 'missing.log' in str(exc.value)
    assert exc.value.reason == 'file not found'


def test_directory_is_not_a_log(tmp_path):
    with pytest.raises(LogFileError):
        parse_file(tmp_path)


def test_empty_file(tmp_path):
    path = tmp_path / 'empty.log'
    path.write_bytes(b'')
    result = parse_file(path)
    assert result.total_lines == 0
    assert result.entries == ()
    assert result.success_rate == 0.0


def test_metadata_reported(write_log):
    lines, _ = generate_lines(100)
    path = write_log(lines)
    result = parse_file(path)

    assert result.file_size == path.stat().st_size
    assert result.parse_time_ms >= 0
    assert result.throughput_mbps >= 0
    assert result.memory_bytes >= 0
    assert result.cancelled is False


def test_progress_reported_and_finishes(write_log):
    lines, _ = generate_lines(50)
    seen = []
    parser = LogParser(progress_interval=10)
    parser.parse_file(write_log(lines), progress=lambda pct, msg: seen.append(pct))

    assert len(seen) == 6
    assert seen == sorted(seen)
    assert seen[-1] == 100.0


def test_cancel_stops_between_lines(write_log):
    lines, _ = generate_lines(100)
    token = CancelToken()

    def progress(percent, message):
        token.cancel()

    parser = LogParser(progress_interval=10)
    result = parser.parse_file(write_log(lines), progress=progress, cancel=token)

    assert result.cancelled is True
    assert result.parsed_lines == 10
    assert result.total_lines == 10


def test_parse_stream_accepts_text():
    lines, _ = generate_lines(3)
    result = LogParser().parse_stream(lines + ['oops'])
    assert result.parsed_lines == 3
    assert result.error_lines == 1


def test_invalid_utf8_is_a_line_error_not_a_crash(tmp_path):
    path = tmp_path / 'binary.log'
    path.write_bytes(SAMPLE_LINE.encode() + b'\n\xff\xfe\x00garbage\n')
    result = parse_file(path)
    assert result.parsed_lines == 1
    assert result.error_lines == 1


def test_validate_format(write_log):
    lines, _ = generate_lines(20)
    assert LogParser().validate_format(write_log(lines)) is True
    assert LogParser().validate_format(write_log(['nope'] * 20, name='other.log')) is False
