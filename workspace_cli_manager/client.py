"""
Workspace service client used by the `workspace` commands.

Commands depend only on the `WorkspaceClient` protocol; `HttpWorkspaceClient`
is the JSON-over-HTTP adapter wired in by the CLI.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Dict, List, Optional, Protocol

from workspace_cli_manager import __version__
from workspace_cli_manager.models import Workspace

logger = logging.getLogger(__name__)

# (method, url, timeout_s, headers) -> response body
Fetch = Callable[[str, str, float, Dict[str, str]], bytes]


class ClientError(Exception):
    pass


class WorkspaceClient(Protocol):
    def list_workspaces(self) -> List[Workspace]: ...

    def remove_workspace(self, name: str, *, force: bool = False) -> None: ...


def _default_fetch(method: str, url: str, timeout_s: float, headers: Dict[str, str]) -> bytes:
    req = urllib.request.Request(url, headers=headers, method=method)
    with urllib.request.urlopen(req, timeout=timeout_s) as resp:
        return resp.read()


def _http_headers() -> Dict[str, str]:
    return {
        "User-Agent": f"workspace-cli-manager/{__version__}",
        "Accept": "application/json",
    }


class HttpWorkspaceClient:
    def __init__(self, base_url: str, *, timeout_s: float = 10.0, fetch: Optional[Fetch] = None) -> None:
        if not base_url:
            raise ClientError("no workspace service URL configured for this profile")
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._fetch = fetch or _default_fetch

    def _call(self, method: str, path: str) -> bytes:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            return self._fetch(method, url, self.timeout_s, _http_headers())
        except urllib.error.HTTPError as e:
            raise ClientError(f"{method} {url} failed: HTTP {e.code} {e.reason}") from e
        except (urllib.error.URLError, OSError) as e:
            raise ClientError(f"{method} {url} failed: {e}") from e

    def list_workspaces(self) -> List[Workspace]:
        body = self._call("GET", "/workspace")
        try:
            obj = json.loads(body.decode("utf-8") or "[]")
        except ValueError as e:
            raise ClientError(f"unexpected workspace list response: {e}") from e
        if isinstance(obj, dict):
            obj = obj.get("workspaces") or []
        if not isinstance(obj, list):
            raise ClientError("unexpected workspace list response: not a list")
        return [Workspace.from_json(w) for w in obj if isinstance(w, dict)]

    def remove_workspace(self, name: str, *, force: bool = False) -> None:
        query = urllib.parse.urlencode({"force": "true" if force else "false"})
        self._call("DELETE", f"/workspace/{urllib.parse.quote(name, safe='')}?{query}")
