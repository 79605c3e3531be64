from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode


class ServiceClientError(RuntimeError):
    pass


@dataclass
class ServiceClient:
    base_url: str

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}{path}"
        headers = {"Content-Type": "application/json"}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")

        request = urllib.request.Request(url=url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=60) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8")
            raise ServiceClientError(f"HTTP {exc.code}: {detail}") from exc
        except urllib.error.URLError as exc:
            raise ServiceClientError(f"Connection error: {exc}") from exc

        if not body:
            return None
        return json.loads(body)

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health")

    def list_song_lists(self) -> dict[str, Any]:
        return self._request("GET", "/api/song-lists")

    def load_song_list(self, path: str) -> dict[str, Any]:
        return self._request("POST", "/api/song-lists/load", {"path": path})

    def list_sessions(self) -> dict[str, Any]:
        return self._request("GET", "/api/sessions")

    def get_session(self, session_id: str) -> dict[str, Any]:
        return self._request("GET", f"/api/sessions/{quote(session_id, safe='')}")

    def create_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/sessions", payload)

    def resolve(self, session_id: str, direction: str) -> dict[str, Any]:
        return self._request("POST", f"/api/sessions/{quote(session_id, safe='')}/resolve", {"direction": direction})

    def import_decisions(self, session_id: str, text: str, clean: bool | None = None) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/api/sessions/{quote(session_id, safe='')}/import",
            {"text": text, "clean": clean},
        )

    def export_session(self, session_id: str, kind: str, clean: bool | None = None) -> dict[str, Any]:
        params: dict[str, str] = {"kind": kind}
        if clean is not None:
            params["clean"] = "true" if clean else "false"
        return self._request("GET", f"/api/sessions/{quote(session_id, safe='')}/export?{urlencode(params)}")

    def dismiss_session(self, session_id: str) -> dict[str, Any]:
        return self._request("POST", f"/api/sessions/{quote(session_id, safe='')}/dismiss")
