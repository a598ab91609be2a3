"""
Configuration management for SharePoint Library Exporter.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import DEFAULT_PAGE_SIZE


@dataclass
class SharePointConfig:
    """Azure AD app registration used to sign in"""
    client_id: str
    tenant_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: str = "http://localhost:8080/callback"


@dataclass
class ExportConfig:
    """What to export and where to write it"""
    site_url: Optional[str] = None
    library_name: Optional[str] = None
    log_file: Optional[str] = None
    output_file: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE

    def missing(self):
        """Names of the values that still have to be supplied"""
        return [name for name in ('site_url', 'library_name', 'log_file', 'output_file')
                if not getattr(self, name)]


class Config:
    """Configuration manager reading environment variables and an optional .env file"""

    def __init__(self, config_file: str = None):
        """
        Args:
            config_file: Optional path to a .env style file (defaults to ./.env)
        """
        self.config_file = config_file
        self._load_config()

    def _load_config(self):
        env_file = Path(self.config_file) if self.config_file else Path('.env')
        if self.config_file and not env_file.exists():
            raise ConfigurationError(f"Configuration file not found: {env_file}")
        if env_file.exists():
            load_dotenv(env_file, override=False)

    def get_sharepoint_config(self) -> SharePointConfig:
        """
        Get sign-in configuration

        Raises:
            ConfigurationError: If AZURE_CLIENT_ID is missing
        """
        client_id = os.getenv('AZURE_CLIENT_ID')
        if not client_id:
            raise ConfigurationError("AZURE_CLIENT_ID environment variable is required")

        return SharePointConfig(
            client_id=client_id,
            tenant_id=os.getenv('AZURE_TENANT_ID'),
            client_secret=os.getenv('AZURE_CLIENT_SECRET'),
            redirect_uri=os.getenv('AZURE_REDIRECT_URI', "http://localhost:8080/callback")
        )

    def get_export_config(self) -> ExportConfig:
        """
        Get export settings; values not set in the environment stay None

        Raises:
            ConfigurationError: If EXPORT_PAGE_SIZE is not a positive integer
        """
        return ExportConfig(
            site_url=os.getenv('SHAREPOINT_SITE_URL'),
            library_name=os.getenv('SHAREPOINT_LIBRARY'),
            log_file=os.getenv('EXPORT_LOG_FILE'),
            output_file=os.getenv('EXPORT_OUTPUT_FILE'),
            page_size=parse_page_size(os.getenv('EXPORT_PAGE_SIZE', DEFAULT_PAGE_SIZE)),
        )

    def validate_config(self) -> Dict[str, Any]:
        """
        Validate configuration and return status

        Returns:
            Dict[str, Any]: Validation results per section
        """
        results = {
            'sharepoint': {'valid': False, 'errors': []},
            'export': {'valid': False, 'errors': []},
        }

        try:
            self.get_sharepoint_config()
            results['sharepoint']['valid'] = True
        except ConfigurationError as e:
            results['sharepoint']['errors'].append(str(e))

        try:
            export_config = self.get_export_config()
            results['export']['valid'] = True
            for name in export_config.missing():
                results['export']['errors'].append(f"{name} not set (will be prompted)")
        except ConfigurationError as e:
            results['export']['errors'].append(str(e))

        return results


def parse_page_size(value) -> int:
    """
    Raises:
        ConfigurationError: If value is not a positive integer
    """
    try:
        page_size = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Page size must be an integer, got {value!r}")
    if page_size <= 0:
        raise ConfigurationError(f"Page size must be positive, got {page_size}")
    return page_size
