import random
from datetime import datetime, timedelta, timezone

import pytest

from accesslog.models import LogEntry

BASE_TIME = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

SAMPLE_LINE = (
    '192.168.1.100 - - [01/Jan/2024:10:00:00 +0000] '
    '"GET /index.html HTTP/1.1" 200 1024 "-" "Mozilla/5.0"'
)


def make_line(ip='10.0.0.1', user='-', when=BASE_TIME, method='GET', path='/',
              protocol='HTTP/1.1', status=200, size=512, referer='-', user_agent='Mozilla/5.0'):
    """Render one Combined Log Format line"""
    stamp = when.strftime('%d/%b/%Y:%H:%M:%S %z')
    size_field = '-' if size is None else str(size)
    return (
        f'{ip} - {user} [{stamp}] "{method} {path} {protocol}" '
        f'{status} {size_field} "{referer}" "{user_agent}"'
    )


def make_entry(line_number=1, ip='10.0.0.1', user='', when=BASE_TIME, method='GET', path='/',
               protocol='HTTP/1.1', status=200, size=512, referer='', user_agent='Mozilla/5.0'):
    return LogEntry(
        line_number=line_number,
        ip=ip,
        user=user,
        timestamp=when,
        method=method,
        path=path,
        protocol=protocol,
        status_code=status,
        response_bytes=size,
        referer=referer,
        user_agent=user_agent,
        raw='',
    )


def generate_lines(count, seed=7):
    """Deterministic synthetic traffic; returns (lines, fields) in the same order"""
    rng = random.Random(seed)
    ips = [f'10.0.{i // 256}.{i % 256}' for i in range(40)]
    paths = ['/', '/index.html', '/api/users', '/api/orders?id=7', '/login', '/static/app.js']
    methods = ['GET', 'GET', 'GET', 'POST', 'PUT', 'DELETE']
    statuses = [200, 200, 200, 201, 204, 301, 304, 400, 403, 404, 500, 503]
    agents = ['Mozilla/5.0', 'Googlebot/2.1', 'curl/7.68.0', 'python-requests/2.31']

    lines, fields = [], []
    for i in range(count):
        record = dict(
            ip=rng.choice(ips),
            when=BASE_TIME + timedelta(seconds=i * 7),
            method=rng.choice(methods),
            path=rng.choice(paths),
            status=rng.choice(statuses),
            size=rng.randint(0, 50_000),
            user_agent=rng.choice(agents),
        )
        lines.append(make_line(**record))
        fields.append(record)
    return lines, fields


@pytest.fixture
def write_log(tmp_path):
    def _write(lines, name='access.log'):
        path = tmp_path / name
        path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
        return path
    return _write


@pytest.fixture
def mixed_entries():
    statuses = [200, 201, 403, 404, 500, 204]
    return [
        make_entry(line_number=i, status=code, ip=f'10.0.0.{i}', path=f'/p{i % 3}')
        for i, code in enumerate(statuses, 1)
    ]


@pytest.fixture
def synthetic_entries():
    lines, fields = generate_lines(200)
    return [make_entry(line_number=i, **record) for i, record in enumerate(fields, 1)]
