"""Identity Toolkit REST client for credential exchanges."""
import logging
import requests
from typing import Optional, Dict, Any
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cafeteria.config.settings import Config


class IdentityToolkitError(Exception):
    """Error answer from the Identity Toolkit API (HTTP 4xx/5xx with an error code)."""

    def __init__(self, code: str, status_code: int):
        super().__init__(f"{code} (HTTP {status_code})")
        self.code = code
        self.status_code = status_code


class IdentityToolkitClient:
    """
    Client for the Identity Toolkit ``accounts:*`` REST endpoints.

    Blocking; callers on the event loop run it in a worker thread.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the API (defaults to Config value)
            api_key: Web API key (defaults to Config value)
        """
        self.base_url = base_url or Config.IDENTITY_BASE_URL
        self.api_key = api_key or Config.IDENTITY_API_KEY
        self._logger = logging.getLogger(__name__)

        # Create session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _make_request(
        self,
        endpoint: str,
        json_data: Dict[str, Any],
        timeout: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        POST to an ``accounts:*`` endpoint.

        Args:
            endpoint: Endpoint name, e.g. "accounts:signUp"
            json_data: JSON body
            timeout: Request timeout in seconds (default 30)

        Returns:
            Response JSON as dictionary

        Raises:
            IdentityToolkitError: If the API answers with an error code
            requests.RequestException: If the request itself fails
        """
        url = f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        request_timeout = timeout if timeout is not None else 30
        response = self.session.post(
            url,
            params={"key": self.api_key},
            headers=headers,
            json=json_data,
            timeout=request_timeout,
        )
        self._logger.debug(f"Request: POST {url} -> {response.status_code}")

        if response.status_code >= 400:
            code = self._error_code(response)
            self._logger.warning(f"Identity Toolkit error on {endpoint}: {code}")
            raise IdentityToolkitError(code, response.status_code)

        try:
            return response.json()
        except ValueError as json_error:
            self._logger.error(f"Non-JSON response from POST {url}: {response.text[:200]}")
            raise requests.exceptions.RequestException(
                f"Expected JSON response but got: {response.text[:200]}"
            ) from json_error

    @staticmethod
    def _error_code(response: requests.Response) -> str:
        """Extract the error code; messages look like "WEAK_PASSWORD : Password should be ..."."""
        try:
            message = response.json().get("error", {}).get("message", "")
        except ValueError:
            message = ""
        return message.split(" ")[0] if message else f"HTTP_{response.status_code}"

    def sign_up(self, email: Optional[str] = None, password: Optional[str] = None) -> Dict[str, Any]:
        """Create an account; without email/password the account is anonymous."""
        payload: Dict[str, Any] = {"returnSecureToken": True}
        if email is not None:
            payload["email"] = email
            payload["password"] = password
        return self._make_request("accounts:signUp", payload)

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return self._make_request(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )

    def send_sign_in_link(self, email: str, continue_url: str) -> Dict[str, Any]:
        return self._make_request(
            "accounts:sendOobCode",
            {"requestType": "EMAIL_SIGNIN", "email": email, "continueUrl": continue_url},
        )

    def sign_in_with_email_link(self, email: str, oob_code: str) -> Dict[str, Any]:
        return self._make_request(
            "accounts:signInWithEmailLink",
            {"email": email, "oobCode": oob_code},
        )

    def sign_in_with_idp(self, post_body: str, request_uri: str) -> Dict[str, Any]:
        """
        Exchange an OAuth provider token for an account.

        Args:
            post_body: Form-encoded provider token, e.g. "id_token=...&providerId=google.com"
            request_uri: Redirect URI registered for the provider
        """
        return self._make_request(
            "accounts:signInWithIdp",
            {
                "postBody": post_body,
                "requestUri": request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
