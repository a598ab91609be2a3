"""
SharePoint Library Exporter

Exports file metadata of a SharePoint document library to an Excel worksheet,
fetching items page by page through Microsoft Graph.
"""

from .auth import SharePointAuth
from .client import SharePointSession
from .exceptions import (
    SharePointError,
    AuthenticationError,
    FetchError,
    TransformError,
    DisconnectError,
)
from .exporter import LibraryExporter, run_export
from .fetcher import BatchFetcher
from .sink import ExcelSink
from .transform import transform_record

__version__ = "1.0.0"

__all__ = [
    "SharePointAuth",
    "SharePointSession",
    "BatchFetcher",
    "ExcelSink",
    "LibraryExporter",
    "run_export",
    "transform_record",
    "SharePointError",
    "AuthenticationError",
    "FetchError",
    "TransformError",
    "DisconnectError",
]
