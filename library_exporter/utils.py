"""
Utility functions for SharePoint Library Exporter.
"""

import logging
import sys
from pathlib import Path

from .models import ExportSummary

LOG_FORMAT = '%(asctime)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_file: str = None, log_level: str = "INFO") -> logging.Logger:
    """
    Setup logging configuration

    Every record goes to stdout and, when given, is appended to log_file
    as "yyyy-MM-dd HH:mm:ss - message".

    Args:
        log_file: Optional log file path (appended to, UTF-8)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        logging.Logger: Package logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        handlers=handlers,
        force=True
    )

    # Keep HTTP client chatter out of the export log
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('library_exporter')


def ensure_extension(file_name: str, extension: str) -> str:
    """
    Append extension to file_name unless it already ends with it

    Args:
        file_name: User supplied file name
        extension: Required extension including the dot, e.g. '.xlsx'

    Returns:
        str: Normalized file name
    """
    file_name = file_name.strip()
    if not extension.startswith('.'):
        extension = f'.{extension}'
    if file_name.lower().endswith(extension.lower()):
        return file_name
    return f'{file_name}{extension}'


def print_export_summary(summary: ExportSummary, output_file: str):
    """Print a short report of an export run"""
    status = "✅ Completed" if summary.succeeded else "❌ Terminated early"

    print(f"\n📊 Export Summary ({summary.library}):")
    print(f"Status: {status}")
    print(f"Pages fetched: {summary.pages_fetched}")
    print(f"Items processed: {summary.records_fetched:,}")
    print(f"Rows written: {summary.rows_written:,}")
    if summary.records_skipped:
        print(f"Items skipped: {summary.records_skipped:,} (see log for details)")
    if summary.error:
        print(f"Error: {summary.error}")
    if summary.started_at and summary.finished_at:
        elapsed = (summary.finished_at - summary.started_at).total_seconds()
        print(f"Elapsed: {elapsed:.1f}s")
    print(f"Output file: {output_file}")
