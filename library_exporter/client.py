"""
SharePoint session over Microsoft Graph: site connection and paged list item listing.
"""

import logging
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote, urlparse

import requests

from .auth import SharePointAuth
from .exceptions import APIError, AuthenticationError, ConfigurationError, DisconnectError

logger = logging.getLogger(__name__)

GRAPH_ROOT = "https://graph.microsoft.com/v1.0"
ITEM_PROPERTIES = "id,createdBy,lastModifiedBy,createdDateTime,lastModifiedDateTime"

# Sentinel stored once a library's listing has no continuation link left
_EXHAUSTED = object()


class SharePointSession:
    """One authenticated connection to a SharePoint site"""

    def __init__(self, auth: SharePointAuth, timeout: int = 60):
        """
        Args:
            auth: SharePointAuth instance used to sign in and sign requests
            timeout: Per-request timeout in seconds
        """
        self.auth = auth
        self.timeout = timeout
        self.site_id = None
        self.site_url = None
        self._http = None
        self._cursors = {}

    @property
    def connected(self) -> bool:
        return self.site_id is not None

    def connect(self, site_url: str) -> str:
        """
        Sign in (if needed) and resolve the Graph site id for a site URL

        Args:
            site_url: Site URL like https://contoso.sharepoint.com/sites/team

        Returns:
            str: Graph site id

        Raises:
            ConfigurationError: If the URL is not a SharePoint site URL
            AuthenticationError: If sign-in or site lookup fails
        """
        api_url = site_lookup_url(site_url)

        if not self.auth.is_authenticated():
            self.auth.authenticate()

        self._http = requests.Session()
        self._http.headers.update(self.auth.get_auth_headers())

        try:
            response = self._http.get(api_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise AuthenticationError(f"Connection to {site_url} failed: {str(e)}")

        if response.status_code == 404:
            raise AuthenticationError("SharePoint site not found. Check the URL and permissions.")
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Access denied to {site_url} ({response.status_code}).")
        if response.status_code != 200:
            raise AuthenticationError(f"Site lookup failed: {response.status_code}")

        try:
            site = response.json()
            self.site_id = site['id']
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(f"Unexpected site lookup response from {site_url}: {str(e)}")
        self.site_url = site_url.rstrip('/')
        self._cursors = {}
        logger.info(f"Connected to SharePoint site: {site.get('displayName', self.site_url)}")
        return self.site_id

    def list_items(self, library: str, page_size: int, fields: Sequence[str]) -> List[Dict]:
        """
        Return the next page of list items of a document library

        The Graph continuation link of the previous call is followed, so
        consecutive calls walk the library once. After the last page every
        further call returns an empty list without contacting the server.

        Args:
            library: Library (list) display name or id
            page_size: Maximum number of items to return
            fields: Column names to select from the item's fields

        Returns:
            List[Dict]: Raw listItem objects

        Raises:
            APIError: If Graph returns a non-200 response
            requests.RequestException: On transport failure
        """
        if not self.connected:
            raise AuthenticationError("Not connected. Call connect() first.")

        cursor = self._cursors.get(library)
        if cursor is _EXHAUSTED:
            return []

        if cursor is None:
            url = f"{GRAPH_ROOT}/sites/{self.site_id}/lists/{quote(library)}/items"
            params = {
                '$top': page_size,
                '$select': ITEM_PROPERTIES,
                '$expand': f"fields($select={','.join(fields)})",
            }
        else:
            url, params = cursor, None

        response = self._http.get(url, params=params, timeout=self.timeout)
        if response.status_code != 200:
            raise APIError(
                f"Listing '{library}' failed: {response.status_code}",
                response.status_code,
                _json_or_none(response),
            )

        data = response.json()
        self._cursors[library] = data.get('@odata.nextLink') or _EXHAUSTED
        return data.get('value', [])

    def disconnect(self):
        """
        Close the HTTP session and forget the token

        Raises:
            DisconnectError: If the session was never connected or cannot be closed
        """
        if self._http is None:
            raise DisconnectError("No active SharePoint connection to close")

        try:
            self._http.close()
        except Exception as e:
            raise DisconnectError(f"Failed to close SharePoint connection: {str(e)}")
        finally:
            self._http = None
            self.site_id = None
            self._cursors = {}
            self.auth.sign_out()

        logger.info(f"Disconnected from {self.site_url}")


def site_lookup_url(site_url: str) -> str:
    """
    Build the Graph URL resolving a site by host name and server-relative path

    Raises:
        ConfigurationError: If the URL is not a SharePoint site URL
    """
    parsed = urlparse((site_url or '').strip().rstrip('/'))
    if parsed.scheme != 'https' or not parsed.hostname or 'sharepoint.com' not in parsed.hostname:
        raise ConfigurationError(f"Invalid SharePoint site URL: {site_url!r}")

    site_path = parsed.path.strip('/')
    if site_path:
        return f"{GRAPH_ROOT}/sites/{parsed.hostname}:/{site_path}"
    return f"{GRAPH_ROOT}/sites/{parsed.hostname}"


def _json_or_none(response) -> Optional[dict]:
    try:
        return response.json()
    except ValueError:
        return None
