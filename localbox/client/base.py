"""
Base client class providing common HTTP request functionality.
"""
from typing import Any, Dict, Optional

import requests

from localbox.exceptions import LocalboxClientError


class BaseClient:
    """
    Base client class that provides common HTTP request methods.

    Every request raises LocalboxClientError on a non-200 response so
    callers see one error type regardless of the endpoint.
    """

    def __init__(self, server_url: str = "http://localhost:8000", timeout: Optional[float] = None):
        """
        Initialize the base client.

        Args:
            server_url: The URL of the localbox server.
            timeout: Per-request timeout in seconds; None waits indefinitely.
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout

    def _check(self, endpoint: str, response: requests.Response) -> requests.Response:
        if response.status_code != 200:
            raise LocalboxClientError(
                f"Request to {endpoint} failed with status {response.status_code}",
                details={
                    "status_code": response.status_code,
                    "response_text": response.text,
                    "endpoint": endpoint,
                },
            )
        return response

    def _post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Make a POST request to the server.

        Args:
            endpoint: The API endpoint (e.g., "/sandboxes").
            data: Optional JSON data to send in the request body.

        Returns:
            The JSON response from the server.

        Raises:
            LocalboxClientError: If the request returns a non-200 status.
        """
        url = f"{self.server_url}{endpoint}"
        response = requests.post(url, json=data or {}, timeout=self.timeout)
        return self._check(endpoint, response).json()

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.server_url}{endpoint}"
        response = requests.get(url, params=params, timeout=self.timeout)
        return self._check(endpoint, response).json()

    def _get_text(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        url = f"{self.server_url}{endpoint}"
        response = requests.get(url, params=params, timeout=self.timeout)
        return self._check(endpoint, response).text

    def _delete(self, endpoint: str) -> Dict[str, Any]:
        url = f"{self.server_url}{endpoint}"
        response = requests.delete(url, timeout=self.timeout)
        return self._check(endpoint, response).json()
