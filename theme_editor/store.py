"""
Shopify theme store client — lists themes and files, fetches file bodies and
writes single files back through the Admin API.

Reads go through the GraphQL endpoint; writes use the REST assets endpoint
so that each file succeeds or fails on its own.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .changes import FileContent
from .errors import NotAuthenticatedError, ThemeStoreError
from .models import Theme, ThemeFile

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2026-01"
FILES_PAGE_SIZE = 250
MAX_THEME_FILES = 2000
THEMES_PAGE_SIZE = 20

_THEMES_QUERY = """
query ThemeList {
  themes(first: %d) {
    edges { node { id name role } }
  }
}
""" % THEMES_PAGE_SIZE

_FILES_QUERY = """
query ThemeFiles($themeId: ID!, $cursor: String) {
  theme(id: $themeId) {
    files(first: %d, after: $cursor) {
      edges {
        node { filename contentType size updatedAt }
        cursor
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
""" % FILES_PAGE_SIZE

_FILE_CONTENT_QUERY = """
query ThemeFileContent($themeId: ID!, $filenames: [String!]!) {
  theme(id: $themeId) {
    files(filenames: $filenames) {
      nodes {
        filename
        body {
          ... on OnlineStoreThemeFileBodyText { content }
          ... on OnlineStoreThemeFileBodyBase64 { contentBase64 }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class ShopCredentials:
    """Connected store identity.  OAuth happens elsewhere."""
    shop_domain: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.shop_domain and self.access_token)


@dataclass(frozen=True)
class WriteResult:
    success: bool
    error: Optional[str] = None


def _decode_body(body: Optional[dict]) -> str:
    if not body:
        return ""
    if body.get("content") is not None:
        return body["content"]
    encoded = body.get("contentBase64")
    if not encoded:
        return ""
    try:
        return base64.b64decode(encoded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        logger.warning("[Store] Could not decode base64 body")
        return ""


def _error_text(response: requests.Response) -> str:
    """Best-effort error message from a failed write response."""
    try:
        data = response.json()
    except ValueError:
        data = {}
    errors = data.get("errors") if isinstance(data, dict) else None
    if errors:
        return errors if isinstance(errors, str) else str(errors)
    return f"HTTP {response.status_code}"


def _graphql_error_message(errors: Any) -> str:
    """First message from a GraphQL ``errors`` value (list, dict or string)."""
    if isinstance(errors, str):
        return errors
    first = errors[0] if isinstance(errors, list) and errors else errors
    if isinstance(first, dict):
        return first.get("message") or "GraphQL error"
    return str(first) or "GraphQL error"


class ShopifyThemeStore:
    """Remote theme store bound to one shop's credentials."""

    def __init__(self, credentials: ShopCredentials,
                 api_version: str = DEFAULT_API_VERSION,
                 http: Optional[requests.Session] = None,
                 timeout: tuple[float, float] = (10, 60)):
        self.credentials = credentials
        self.api_version = api_version
        self.timeout = timeout
        self._http = http or requests.Session()

    # ── Plumbing ──

    def _require_auth(self) -> ShopCredentials:
        if not self.credentials.is_authenticated:
            raise NotAuthenticatedError("Not authenticated")
        return self.credentials

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.credentials.access_token or "",
        }

    def _admin_url(self, path: str) -> str:
        creds = self._require_auth()
        return f"https://{creds.shop_domain}/admin/api/{self.api_version}/{path}"

    def _graphql(self, query: str, variables: Optional[dict] = None,
                 what: str = "request") -> dict[str, Any]:
        url = self._admin_url("graphql.json")
        try:
            response = self._http.post(
                url, headers=self._headers(),
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("[Store] %s failed: %s", what, exc)
            raise ThemeStoreError(f"Failed to fetch {what}: {exc}") from exc

        if not response.ok:
            logger.error("[Store] %s failed with HTTP %d: %s",
                         what, response.status_code, response.text[:500])
            raise ThemeStoreError(f"Failed to fetch {what}",
                                  status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("[Store] %s returned a non-JSON body", what)
            raise ThemeStoreError(f"Failed to fetch {what}: invalid response",
                                  status_code=response.status_code) from exc
        if not isinstance(data, dict):
            raise ThemeStoreError(f"Failed to fetch {what}: invalid response",
                                  status_code=response.status_code)

        errors = data.get("errors")
        if errors:
            raise ThemeStoreError(_graphql_error_message(errors), status_code=400)
        return data.get("data") or {}

    # ── Reads ──

    def list_themes(self) -> list[Theme]:
        data = self._graphql(_THEMES_QUERY, what="themes")
        edges = (data.get("themes") or {}).get("edges") or []
        return [
            Theme(id=e["node"]["id"], name=e["node"]["name"],
                  role=str(e["node"].get("role", "")).lower())
            for e in edges
        ]

    def list_files(self, theme_id: str) -> list[ThemeFile]:
        """All files in a theme, following pagination up to ``MAX_THEME_FILES``."""
        files: list[ThemeFile] = []
        cursor: Optional[str] = None

        while True:
            data = self._graphql(
                _FILES_QUERY, {"themeId": theme_id, "cursor": cursor},
                what="theme files",
            )
            files_data = (data.get("theme") or {}).get("files")
            if not files_data:
                break

            for edge in files_data.get("edges") or []:
                node = edge["node"]
                files.append(ThemeFile(
                    filename=node["filename"],
                    content_type=node.get("contentType") or "",
                    size=int(node.get("size") or 0),
                    updated_at=node.get("updatedAt") or "",
                ))

            page_info = files_data.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or len(files) >= MAX_THEME_FILES:
                break

        logger.info("[Store] Listed %d file(s) for theme %s", len(files), theme_id)
        return files

    def get_file_contents(self, theme_id: str, filenames: list[str]) -> list[FileContent]:
        if not filenames:
            return []
        data = self._graphql(
            _FILE_CONTENT_QUERY, {"themeId": theme_id, "filenames": filenames},
            what="file content",
        )
        nodes = ((data.get("theme") or {}).get("files") or {}).get("nodes") or []
        return [FileContent(node["filename"], _decode_body(node.get("body")))
                for node in nodes]

    # ── Writes ──

    def put_file(self, theme_id: str, filename: str, content: str) -> WriteResult:
        """Write one file.  Failures are returned, not raised."""
        url = self._admin_url(f"themes/{theme_id.rsplit('/', 1)[-1]}/assets.json")
        try:
            response = self._http.put(
                url, headers=self._headers(),
                json={"asset": {"key": filename, "value": content}},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("[Store] Error pushing %s: %s", filename, exc)
            return WriteResult(success=False, error="Network error")

        if response.ok:
            return WriteResult(success=True)

        message = _error_text(response)
        logger.error("[Store] Failed to push %s: %s", filename, message)
        return WriteResult(success=False, error=message)
