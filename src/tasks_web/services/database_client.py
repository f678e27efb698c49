from typing import Any, Optional

import requests


INVALID_PATH_CHARACTERS = ".$#[]"
DEFAULT_TIMEOUT_SECONDS = 30.0


class DatabaseClient:
    """REST client of a Firebase Realtime Database.

    Nodes are addressed as ``<base_url>/<path>.json``. Transport failures and
    HTTP error statuses are raised as the ``requests`` exceptions they are;
    retrying is left to the adapters mounted on the session.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not base_url:
            raise ValueError("Database URL must be a non-empty string")
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.session = session
        self.timeout = timeout

    def get(self, path: str = "") -> Any:
        return self._request("GET", path).json()

    def create(self, path: str, value: Any) -> str:
        """Pushes ``value`` under a generated child key and returns that key."""
        return self._request("POST", path, json=value).json()["name"]

    def set(self, path: str, value: Any) -> None:
        self._request("PUT", path, json=value)

    def update(self, path: str, value: dict) -> None:
        if not isinstance(value, dict):
            raise ValueError("Update value must be a dict")
        self._request("PATCH", path, json=value)

    def delete(self, path: str) -> None:
        self._request("DELETE", path)

    def url_for(self, path: str) -> str:
        node = normalize_path(path)
        return f"{self.base_url}{node}.json" if node else f"{self.base_url}.json"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        response = self.session.request(method, self.url_for(path), timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response


def normalize_path(path: str) -> str:
    segments = [segment for segment in (path or "").split("/") if segment]
    for segment in segments:
        if any(ch in INVALID_PATH_CHARACTERS for ch in segment):
            raise ValueError(f"Invalid database path: {path!r}")
    return "/".join(segments)
