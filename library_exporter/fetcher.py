"""
Bounded page retrieval on top of a SharePoint session.
"""

import logging

from .exceptions import ConfigurationError, FetchError
from .models import FIELD_LIST, Page, SourceRecord

logger = logging.getLogger(__name__)


class BatchFetcher:
    """Returns one page of typed library records per call"""

    def __init__(self, session, fields=FIELD_LIST):
        """
        Args:
            session: Object exposing list_items(library, page_size, fields)
            fields: Columns requested for every item
        """
        self.session = session
        self.fields = tuple(fields)

    def fetch(self, library: str, page_size: int) -> Page:
        """
        Fetch the next page of a library

        Args:
            library: Library name
            page_size: Upper bound on the number of records returned

        Returns:
            Page: Between 0 and page_size records

        Raises:
            ConfigurationError: If page_size is not positive
            FetchError: If the listing call or deserialization fails
        """
        if page_size <= 0:
            raise ConfigurationError(f"Page size must be positive, got {page_size}")

        try:
            items = self.session.list_items(library, page_size, self.fields)
            page = [SourceRecord.from_graph_item(item) for item in items]
        except Exception as e:
            raise FetchError(f"Failed to list items of '{library}': {str(e)}") from e

        if len(page) > page_size:
            raise FetchError(f"Listing returned {len(page)} items for a page size of {page_size}")

        logger.debug(f"Fetched {len(page)} items from '{library}'")
        return page
