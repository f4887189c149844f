"""Access Log Analyzer - Exceptions"""


class AccessLogError(Exception):
    """Base class for errors raised by the analyzer."""


class LogFileError(AccessLogError):
    """The source log file cannot be opened or read."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read log file {self.path}: {reason}")


class ExportDestinationError(AccessLogError):
    """The export destination is invalid or not writable."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot write export to {self.path}: {reason}")


class LineParseError(AccessLogError):
    """A single log line could not be parsed. Recoverable."""

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason)
