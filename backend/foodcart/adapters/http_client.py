from typing import Any, Dict, Optional

import requests

from foodcart.config import settings
from foodcart.utils.log import get_logger

log = get_logger("http")

GENERIC_ERROR = "Something went wrong. Please try again."


class ServiceError(Exception):
    """
    Raised for any failed call to an external service (transport error or
    non-2xx response). `message` is the server-provided message when the
    response body carried one, suitable to show to the user verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, server_message: bool = False):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


def _extract_message(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return None


class ApiClient:
    """
    Thin JSON client over requests for one service base URL. Optional bearer
    token for authenticated services.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str = "", json: Optional[Dict] = None, params: Optional[Dict] = None) -> Any:
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, json=json, params=params, headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            log.error("%s %s failed: %s", method, url, e)
            raise ServiceError(GENERIC_ERROR) from e

        if response.status_code >= 400:
            server_msg = _extract_message(response)
            log.error("%s %s -> %s %s", method, url, response.status_code, server_msg or response.text[:200])
            raise ServiceError(
                server_msg or GENERIC_ERROR,
                status_code=response.status_code,
                server_message=server_msg is not None,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def get(self, path: str = "", params: Optional[Dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str = "", json: Optional[Dict] = None) -> Any:
        return self.request("POST", path, json=json if json is not None else {})

    def put(self, path: str = "", json: Optional[Dict] = None) -> Any:
        return self.request("PUT", path, json=json if json is not None else {})

    def delete(self, path: str = "") -> Any:
        return self.request("DELETE", path)
