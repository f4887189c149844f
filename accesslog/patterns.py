"""Access Log Analyzer - Constants and patterns"""

VERSION = "1.0.0"

# Apache Combined Log Format:
#   %h %l %u %t "%r" %>s %b "%{Referer}i" "%{User-agent}i"
# A Common Log Format line (nothing after %b) also parses. Anything else after
# %b must be the two quoted fields, optionally followed by extra fields.
COMBINED_LOG_PATTERN = (
    r'^(?P<ip>\S+)\s+(?P<ident>\S+)\s+(?P<user>\S+)\s+'
    r'\[(?P<timestamp>[^\]]+)\]\s+'
    r'"(?P<request>(?:[^"\\]|\\.)*)"\s+'
    r'(?P<status>\S+)\s+(?P<size>\S+)'
    r'(?:\s+"(?P<referer>(?:[^"\\]|\\.)*)"\s+"(?P<user_agent>(?:[^"\\]|\\.)*)"(?:\s.*)?)?'
    r'\s*$'
)

# 10/Oct/2000:13:55:36 -0700
TIMESTAMP_PATTERN = (
    r'^(?P<day>\d{1,2})/(?P<month>[A-Za-z]{3})/(?P<year>\d{4})'
    r':(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})'
    r'\s+(?P<sign>[+-])(?P<tz_hours>\d{2}):?(?P<tz_minutes>\d{2})$'
)

MONTHS = {m: i for i, m in enumerate(
    ['jan', 'feb', 'mar', 'apr', 'may', 'jun',
     'jul', 'aug', 'sep', 'oct', 'nov', 'dec'], start=1
)}

ABSENT = '-'

# Bot signatures, checked in this order. Specific categories come first so a
# "Googlebot" user-agent is reported as a search engine, not a generic crawler.
BOT_SIGNATURES = {
    'search_engine': [
        'googlebot', 'bingbot', 'slurp', 'duckduckbot',
        'baiduspider', 'yandexbot', 'yandex', 'sogou', 'exabot',
        'facebot', 'ia_archiver',
    ],
    'social_media': [
        'facebookexternalhit', 'twitterbot', 'linkedinbot',
        'pinterest', 'slackbot', 'telegrambot', 'whatsapp',
        'discordbot',
    ],
    'monitoring': [
        'pingdom', 'uptimerobot', 'statuscake', 'monitor',
        'site24x7', 'newrelic', 'datadog', 'nagios',
    ],
    'seo': [
        'semrush', 'ahrefs', 'mj12bot', 'majestic',
        'screaming frog', 'seokicks', 'seoscan',
    ],
    'security_scanner': [
        'nessus', 'nikto', 'nmap', 'masscan', 'acunetix',
        'qualys', 'securityscanner', 'vulnscanner',
    ],
    'crawler': [
        'bot', 'crawler', 'spider', 'scraper', 'scraping',
        'python-requests', 'curl', 'wget', 'httpclient',
        'scrapy', 'beautifulsoup', 'mechanize', 'pycurl',
        'libwww', 'okhttp', 'go-http-client',
    ],
}

CUSTOM_BOT_CATEGORY = 'custom'

DEFAULT_TOP_N = 10
DEFAULT_ERROR_SAMPLE_CAP = 10
DEFAULT_PROGRESS_INTERVAL = 10_000

# Excel worksheet limits
MAX_EXCEL_ROWS = 1_048_576
MAX_EXCEL_CELL_CHARS = 32_767
