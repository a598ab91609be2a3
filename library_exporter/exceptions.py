"""
Custom exceptions for SharePoint Library Exporter package.
"""

from typing import Optional


class SharePointError(Exception):
    """Base exception for SharePoint-related errors."""
    pass


class AuthenticationError(SharePointError):
    """Raised when authentication or the initial site connection fails."""
    pass


class ConfigurationError(SharePointError):
    """Raised when configuration is invalid or missing."""
    pass


class APIError(SharePointError):
    """Raised when Microsoft Graph API returns an error."""
    
    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class FetchError(SharePointError):
    """Raised when a page of library items cannot be retrieved."""
    pass


class TransformError(SharePointError):
    """Raised when a single library item cannot be mapped to an output row."""
    
    def __init__(self, file_name: Optional[str], cause: str):
        if file_name:
            message = f"Error processing file {file_name}: {cause}"
        else:
            message = f"Error processing item: {cause}"
        super().__init__(message)
        self.file_name = file_name
        self.cause = cause


class DisconnectError(SharePointError):
    """Raised when the SharePoint session cannot be closed cleanly."""
    pass


class OutputError(SharePointError):
    """Raised when the output workbook cannot be written."""
    pass
