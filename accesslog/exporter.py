"""Access Log Analyzer - XLSX export pipeline"""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font, PatternFill

from .cancel import CancelToken
from .errors import ExportDestinationError
from .formatter import (
    BOT_HEADERS,
    BOTS_SHEET,
    ENTRIES_SHEET,
    ENTRY_HEADERS,
    STATUS_HEADERS,
    STATUS_SHEET,
    SUMMARY_HEADERS,
    SUMMARY_SHEET,
    TOP_IP_HEADERS,
    TOP_IPS_SHEET,
    TOP_PATH_HEADERS,
    TOP_PATHS_SHEET,
    Formatter,
    consistency_warnings,
)
from .models import ExportProgress, ExportResult, ExportState, LogEntry, Statistics
from .patterns import MAX_EXCEL_CELL_CHARS, MAX_EXCEL_ROWS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ExportProgress], None]

# Share of the progress bar given to the raw entries sheet; the remaining
# sheets and the final save split the rest.
ENTRIES_WEIGHT = 90.0
SUMMARY_WEIGHT = 9.0

HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill(fill_type='solid', start_color='4472C4', end_color='4472C4')


class _Cancelled(Exception):
    pass


class XLSXExporter:
    """Streams entries and statistics into an .xlsx workbook.

    State moves Idle -> Preparing -> Writing -> Completed, Cancelled or
    Failed. The workbook is written next to the destination under a
    temporary name and only renamed into place once complete, so a
    cancelled or failed export never leaves a partial file behind.
    """

    def __init__(self, max_rows: int = MAX_EXCEL_ROWS, max_cell_chars: int = MAX_EXCEL_CELL_CHARS,
                 progress_interval: int = 1000):
        if max_rows < 2:
            raise ValueError("max_rows must leave room for the header and one entry")
        self.max_rows = max_rows
        self.max_cell_chars = max_cell_chars
        self.progress_interval = max(1, progress_interval)
        self.state = ExportState.IDLE
        self._percent = 0.0
        self._rows = 0

    @property
    def max_records(self) -> int:
        return self.max_rows - 1

    def export(self, entries: Sequence[LogEntry], statistics: Optional[Statistics],
               destination: Union[str, Path],
               progress: Optional[ProgressCallback] = None,
               cancel: Optional[CancelToken] = None) -> ExportResult:
        start = time.perf_counter()
        self._percent = 0.0
        self._rows = 0
        path = Path(destination)

        self._transition(ExportState.PREPARING, progress, 0.0, 'Preparing export')
        try:
            self._check_destination(path)
        except ExportDestinationError:
            self._transition(ExportState.FAILED, progress, self._percent, 'Destination is not writable')
            raise

        formatter = Formatter(self.max_cell_chars)
        warnings: List[str] = []

        total = len(entries)
        truncated = max(0, total - self.max_records)
        if truncated:
            warnings.append(
                f"Row count {total + 1:,} exceeds the worksheet maximum of {self.max_rows:,} rows; "
                f"output truncated to {self.max_rows:,} rows ({truncated:,} entries not exported)"
            )
            logger.warning("Export truncated: %d entries over the row limit", truncated)
        warnings.extend(consistency_warnings(total, statistics))

        logger.info("Exporting %d entries to %s", total - truncated, path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix='.xlsx.part', dir=str(path.parent))
        os.close(fd)
        tmp_path = Path(tmp_name)

        workbook = Workbook(write_only=True)
        rows_written = 0
        try:
            self._transition(ExportState.WRITING, progress, 0.0, 'Writing log entries')
            rows_written = self._write_entries(
                workbook, formatter, entries, total - truncated, progress, cancel
            )
            if statistics is not None:
                self._write_statistics(workbook, formatter, statistics, rows_written, progress, cancel)

            self._check_cancel(cancel)
            self._emit(progress, 99.0, 'Saving workbook', rows_written)
            workbook.save(str(tmp_path))
            os.replace(str(tmp_path), str(path))
        except _Cancelled:
            self._discard(workbook, tmp_path)
            self._transition(ExportState.CANCELLED, progress, self._percent, 'Export cancelled', self._rows)
            logger.info("Export to %s cancelled after %d rows", path, self._rows)
            return ExportResult(
                state=ExportState.CANCELLED,
                written_path=None,
                rows_written=self._rows,
                truncated_rows=truncated,
                warnings=(),
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        except OSError as e:
            self._discard(workbook, tmp_path)
            self._transition(ExportState.FAILED, progress, self._percent, 'Export failed', self._rows)
            raise ExportDestinationError(path, e.strerror or str(e)) from e
        except Exception:
            self._discard(workbook, tmp_path)
            self._transition(ExportState.FAILED, progress, self._percent, 'Export failed', self._rows)
            raise

        warnings.extend(formatter.warnings())
        file_size = path.stat().st_size
        self._transition(ExportState.COMPLETED, progress, 100.0, 'Export complete', rows_written)
        logger.info("Exported %d rows to %s (%d bytes, %d warnings)",
                    rows_written, path, file_size, len(warnings))

        return ExportResult(
            state=ExportState.COMPLETED,
            written_path=str(path),
            file_size=file_size,
            rows_written=rows_written,
            truncated_rows=truncated,
            warnings=tuple(warnings),
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _write_entries(self, workbook: Workbook, formatter: Formatter, entries: Sequence[LogEntry],
                       limit: int, progress: Optional[ProgressCallback],
                       cancel: Optional[CancelToken]) -> int:
        ws = workbook.create_sheet(ENTRIES_SHEET)
        ws.append(self._header(ws, ENTRY_HEADERS))

        written = 0
        for entry in entries:
            if written >= limit:
                break
            self._check_cancel(cancel)
            ws.append(self._cells(ws, formatter.entry_row(entry)))
            written += 1
            self._rows = written
            if written % self.progress_interval == 0:
                self._emit(progress, ENTRIES_WEIGHT * written / limit,
                           f"Writing log entries ({written:,}/{limit:,})", written)

        self._emit(progress, ENTRIES_WEIGHT, f"Wrote {written:,} log entries", written)
        return written

    def _write_statistics(self, workbook: Workbook, formatter: Formatter, stats: Statistics,
                          rows_written: int, progress: Optional[ProgressCallback],
                          cancel: Optional[CancelToken]):
        sheets = (
            (SUMMARY_SHEET, SUMMARY_HEADERS, formatter.summary_rows),
            (TOP_IPS_SHEET, TOP_IP_HEADERS, formatter.top_ip_rows),
            (TOP_PATHS_SHEET, TOP_PATH_HEADERS, formatter.top_path_rows),
            (STATUS_SHEET, STATUS_HEADERS, formatter.status_rows),
            (BOTS_SHEET, BOT_HEADERS, formatter.bot_rows),
        )
        step = SUMMARY_WEIGHT / len(sheets)
        for i, (title, headers, build_rows) in enumerate(sheets, 1):
            self._check_cancel(cancel)
            ws = workbook.create_sheet(title)
            ws.append(self._header(ws, headers))
            for row in build_rows(stats):
                ws.append(self._cells(ws, row))
            self._emit(progress, ENTRIES_WEIGHT + step * i, f"Wrote {title} sheet", rows_written)

    @staticmethod
    def _cells(ws, values) -> list:
        """Keep strings starting with '=' as text cells instead of formulas"""
        cells = []
        for value in values:
            if isinstance(value, str) and value.startswith('='):
                cell = WriteOnlyCell(ws, value=value)
                cell.data_type = 's'
                value = cell
            cells.append(value)
        return cells

    @staticmethod
    def _header(ws, headers) -> list:
        cells = []
        for title in headers:
            cell = WriteOnlyCell(ws, value=title)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cells.append(cell)
        return cells

    @staticmethod
    def _check_destination(path: Path):
        if path.suffix.lower() != '.xlsx':
            raise ExportDestinationError(path, 'destination must end with .xlsx')
        if path.is_dir():
            raise ExportDestinationError(path, 'destination is a directory')
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportDestinationError(path, e.strerror or str(e)) from e
        if not os.access(str(path.parent), os.W_OK):
            raise ExportDestinationError(path, 'directory is not writable')
        if path.exists() and not os.access(str(path), os.W_OK):
            raise ExportDestinationError(path, 'file is not writable')

    @staticmethod
    def _check_cancel(cancel: Optional[CancelToken]):
        if cancel is not None and cancel.cancelled:
            raise _Cancelled()

    @staticmethod
    def _discard(workbook: Workbook, tmp_path: Path):
        workbook.close()
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass

    def _emit(self, progress: Optional[ProgressCallback], percent: float, message: str,
              rows_written: int = 0):
        self._percent = max(self._percent, min(percent, 100.0))
        self._rows = max(self._rows, rows_written)
        if progress is not None:
            progress(ExportProgress(self.state, self._percent, message, rows_written))

    def _transition(self, state: ExportState, progress: Optional[ProgressCallback],
                    percent: float, message: str, rows_written: int = 0):
        logger.debug("Export state %s -> %s", self.state.value, state.value)
        self.state = state
        self._emit(progress, percent, message, rows_written)

    @staticmethod
    def estimate_file_size(record_count: int) -> int:
        """Rough compressed size: ~250 bytes per row, 50 KB overhead, ~30% after zip"""
        return int((50 * 1024 + record_count * 250) * 0.3)


def export(entries: Sequence[LogEntry], statistics: Optional[Statistics],
           destination: Union[str, Path], progress: Optional[ProgressCallback] = None,
           cancel: Optional[CancelToken] = None, max_rows: int = MAX_EXCEL_ROWS) -> ExportResult:
    return XLSXExporter(max_rows=max_rows).export(
        entries, statistics, destination, progress=progress, cancel=cancel
    )
