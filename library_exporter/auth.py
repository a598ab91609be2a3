"""
Interactive Microsoft Graph authentication (OAuth 2.0 authorization code + PKCE).
Supports MFA since the sign-in happens in the user's browser.
"""

import base64
import hashlib
import logging
import os
import secrets
import threading
import urllib.parse
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Dict, Tuple

import requests

from .exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

GRAPH_SCOPES = "https://graph.microsoft.com/Sites.Read.All"
LOGIN_TIMEOUT_SECONDS = 300

_RESULT_PAGE = '''
    <html>
        <body>
            <h2>{title}</h2>
            <p>{message}</p>
        </body>
    </html>
'''


def generate_pkce_pair() -> Tuple[str, str]:
    """
    Create a PKCE code verifier and its S256 challenge

    Returns:
        Tuple[str, str]: (code_verifier, code_challenge)
    """
    verifier = base64.urlsafe_b64encode(secrets.token_bytes(32)).decode('utf-8').rstrip('=')
    digest = hashlib.sha256(verifier.encode('utf-8')).digest()
    challenge = base64.urlsafe_b64encode(digest).decode('utf-8').rstrip('=')
    return verifier, challenge


class _CallbackHandler(BaseHTTPRequestHandler):
    """Receives the authorization redirect on the loopback address"""

    def do_GET(self):
        query = urllib.parse.urlparse(self.path).query
        params = urllib.parse.parse_qs(query)

        if 'code' in params:
            self.server.auth_code = params['code'][0]
            self._respond(200, "Sign-in complete", "You can close this window.")
        elif 'error' in params:
            self.server.auth_error = params.get('error_description', params['error'])[0]
            self._respond(400, "Sign-in failed", "Return to the terminal for details.")
        else:
            self.send_response(404)
            self.end_headers()

    def _respond(self, status: int, title: str, message: str):
        self.send_response(status)
        self.send_header('Content-type', 'text/html')
        self.end_headers()
        self.wfile.write(_RESULT_PAGE.format(title=title, message=message).encode('utf-8'))

    def log_message(self, format, *args):
        pass


class SharePointAuth:
    """Holds the delegated Graph access token for one interactive session"""

    def __init__(self, client_id: str = None, tenant_id: str = None,
                 redirect_uri: str = "http://localhost:8080/callback", client_secret: str = None):
        """
        Args:
            client_id: Azure AD App Registration Client ID
            tenant_id: Azure AD Tenant ID ('common' authority when omitted)
            redirect_uri: Loopback redirect URI registered for the app
            client_secret: Optional secret for confidential client registrations
        """
        self.client_id = client_id or os.getenv('AZURE_CLIENT_ID')
        self.tenant_id = tenant_id or os.getenv('AZURE_TENANT_ID')
        self.client_secret = client_secret or os.getenv('AZURE_CLIENT_SECRET')
        self.redirect_uri = redirect_uri
        self.access_token = None

        if not self.client_id:
            raise ConfigurationError("Azure Client ID is required. Set AZURE_CLIENT_ID environment variable or pass client_id parameter.")

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id or 'common'}/oauth2/v2.0"

    def authenticate(self) -> str:
        """
        Run the interactive browser sign-in and redeem the code for a token

        Returns:
            str: Access token

        Raises:
            AuthenticationError: If sign-in is refused, times out or the token request fails
        """
        verifier, challenge = generate_pkce_pair()
        params = {
            'client_id': self.client_id,
            'response_type': 'code',
            'redirect_uri': self.redirect_uri,
            'scope': f"{GRAPH_SCOPES} offline_access",
            'code_challenge': challenge,
            'code_challenge_method': 'S256',
            'prompt': 'select_account',
        }
        login_url = f"{self.authority}/authorize?{urllib.parse.urlencode(params)}"

        redirect = urllib.parse.urlparse(self.redirect_uri)
        try:
            server = HTTPServer((redirect.hostname or 'localhost', redirect.port or 80), _CallbackHandler)
        except OSError as e:
            raise AuthenticationError(f"Cannot listen on {self.redirect_uri}: {str(e)}")
        server.auth_code = None
        server.auth_error = None

        worker = threading.Thread(target=server.serve_forever, daemon=True)
        worker.start()
        try:
            logger.info("Opening browser for sign-in...")
            logger.debug(f"Authorization URL: {login_url}")
            webbrowser.open(login_url)

            waiter = threading.Event()
            for _ in range(LOGIN_TIMEOUT_SECONDS):
                if server.auth_code or server.auth_error:
                    break
                waiter.wait(1)
        finally:
            server.shutdown()
            worker.join(timeout=5)

        if server.auth_error:
            raise AuthenticationError(f"OAuth error: {server.auth_error}")
        if not server.auth_code:
            raise AuthenticationError("Authentication timeout - no response received")

        self.access_token = self._redeem_code(server.auth_code, verifier)
        logger.info("Authentication successful")
        return self.access_token

    def _redeem_code(self, auth_code: str, verifier: str) -> str:
        """Exchange the authorization code for an access token"""
        data = {
            'client_id': self.client_id,
            'grant_type': 'authorization_code',
            'code': auth_code,
            'redirect_uri': self.redirect_uri,
            'code_verifier': verifier,
            'scope': GRAPH_SCOPES,
        }
        if self.client_secret:
            data['client_secret'] = self.client_secret

        try:
            response = requests.post(f"{self.authority}/token", data=data, timeout=30)
        except requests.RequestException as e:
            raise AuthenticationError(f"Token request failed: {str(e)}")

        if response.status_code != 200:
            raise AuthenticationError(f"Token exchange failed: {response.status_code} - {response.text[:200]}")
        try:
            return response.json()['access_token']
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(f"Token response has no access token: {str(e)}")

    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def get_auth_headers(self) -> Dict[str, str]:
        """
        Get headers for authenticated Graph requests

        Raises:
            AuthenticationError: If not authenticated
        """
        if not self.access_token:
            raise AuthenticationError("Not authenticated. Call authenticate() first.")

        return {
            'Authorization': f'Bearer {self.access_token}',
            'Accept': 'application/json',
        }

    def sign_out(self):
        """Forget the access token"""
        self.access_token = None
