"""
Paged export of a document library to an Excel worksheet.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List

from .exceptions import (
    ConfigurationError,
    DisconnectError,
    FetchError,
    OutputError,
    SharePointError,
    TransformError,
)
from .fetcher import BatchFetcher
from .models import DEFAULT_PAGE_SIZE, ExportSummary, OutputRow, Page, SourceRecord, TransformResult
from .sink import ExcelSink
from .transform import transform_record

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExportState(Enum):
    INIT = "init"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    APPENDING = "appending"
    DONE = "done"
    FAILED = "failed"


class LibraryExporter:
    """
    Drives the fetch / transform / append loop for one library

    Pages are requested until one comes back shorter than the page size.
    A failing record is logged and skipped; a failing fetch ends the run
    with the rows of earlier pages already written.
    """

    def __init__(self, fetcher: BatchFetcher, sink: ExcelSink, library: str,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 transformer: Callable[[SourceRecord], TransformResult] = transform_record):
        """
        Args:
            fetcher: Page source
            sink: Output worksheet
            library: Library name passed to every fetch
            page_size: Records requested per fetch
            transformer: Record to row mapping
        """
        if page_size <= 0:
            raise ConfigurationError(f"Page size must be positive, got {page_size}")

        self.fetcher = fetcher
        self.sink = sink
        self.library = library
        self.page_size = page_size
        self.transformer = transformer
        self.state = ExportState.INIT

    def run(self) -> ExportSummary:
        """
        Export the whole library

        Returns:
            ExportSummary: Counters and the terminal outcome ('done' or 'failed')

        Raises:
            OutputError: If the worksheet cannot be written
        """
        summary = ExportSummary(library=self.library, page_size=self.page_size, started_at=datetime.now())

        self.state = ExportState.INIT
        self.sink.initialize()
        logger.info("Output file initialized with headers")

        while True:
            batch_number = summary.records_fetched // self.page_size + 1

            self.state = ExportState.FETCHING
            logger.info(f"Fetching batch {batch_number} (up to {self.page_size} items)...")
            try:
                page = self.fetcher.fetch(self.library, self.page_size)
            except FetchError as e:
                logger.error(f"Error fetching batch {batch_number}: {str(e)}")
                summary.error = str(e)
                self.state = ExportState.FAILED
                break

            if not page:
                logger.info("No more items to process")
                self.state = ExportState.DONE
                break

            summary.pages_fetched += 1
            summary.page_sizes.append(len(page))

            self.state = ExportState.TRANSFORMING
            batch = self._transform_page(page)

            self.state = ExportState.APPENDING
            written = self.sink.append(batch)
            summary.records_fetched += len(page)
            summary.rows_written += written
            summary.records_skipped += len(page) - len(batch)
            logger.info(
                f"Batch {batch_number} exported: {written} rows written, "
                f"{len(page) - len(batch)} skipped ({summary.records_fetched} items processed so far)"
            )

            if len(page) < self.page_size:
                self.state = ExportState.DONE
                break

        summary.outcome = self.state.value
        summary.finished_at = datetime.now()
        return summary

    def _transform_page(self, page: Page) -> List[OutputRow]:
        batch = []
        for record in page:
            try:
                result = self.transformer(record)
            except Exception as e:
                logger.error(str(TransformError(record.name, str(e))))
                continue
            if result.ok:
                batch.append(result.row)
            else:
                logger.error(str(result.error))
        return batch


def run_export(session, site_url: str, library: str, output_file,
               page_size: int = DEFAULT_PAGE_SIZE) -> ExportSummary:
    """
    Connect, export a library and always disconnect afterwards

    Args:
        session: Remote session exposing connect / list_items / disconnect
        site_url: SharePoint site URL
        library: Library name
        output_file: Path of the .xlsx file to (over)write
        page_size: Records requested per fetch

    Returns:
        ExportSummary: Result of the run

    Raises:
        SharePointError: If connecting fails or the output cannot be written
    """
    logger.info(f"Export of '{library}' from {site_url} started at {datetime.now().strftime(TIMESTAMP_FORMAT)}")
    summary = None
    try:
        try:
            session.connect(site_url)
        except SharePointError as e:
            logger.error(f"Failed to connect to {site_url}: {str(e)}")
            raise

        exporter = LibraryExporter(BatchFetcher(session), ExcelSink(output_file), library, page_size)
        try:
            summary = exporter.run()
        except OutputError as e:
            logger.error(f"Export stopped, output could not be written: {str(e)}")
            raise
        logger.info(
            f"Exported {summary.rows_written} of {summary.records_fetched} items "
            f"({summary.records_skipped} skipped) to {output_file}"
        )
        return summary
    finally:
        _teardown(session, summary)


def _teardown(session, summary):
    try:
        session.disconnect()
    except DisconnectError as e:
        logger.warning(f"Error during disconnect: {str(e)}")
    except Exception as e:
        logger.warning(f"Unexpected error during disconnect: {str(e)}")

    finished = datetime.now().strftime(TIMESTAMP_FORMAT)
    if summary is not None and summary.succeeded:
        logger.info(f"Export completed at {finished}")
    else:
        logger.info(f"Export terminated at {finished}")
