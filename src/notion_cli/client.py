"""Notion REST API client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import RemoteAPIError, TransportError, error_hint

logger = logging.getLogger(__name__)

BASE_URL = "https://api.notion.com"
NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT = 30.0
PAGE_SIZE = 100


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


class NotionClient:
    """Thin wrapper around the Notion REST API.

    Every call is a single attempt; failures surface as ``TransportError``
    or ``RemoteAPIError``.
    """

    def __init__(
        self,
        token: str,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": NOTION_VERSION,
            },
            timeout=timeout,
            transport=transport,
        )

    def _send(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> httpx.Response:
        params = _drop_none(params or {})
        logger.debug("→ %s %s%s", method, self.base_url, path)
        try:
            resp = self._client.request(method, path, json=body, params=params or None, files=files)
        except httpx.TimeoutException as exc:
            raise TransportError(f"request timed out after {self.timeout:g}s", code="TIMEOUT") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"request failed: {exc}") from exc

        logger.debug("← %d %s (%d bytes)", resp.status_code, resp.reason_phrase, len(resp.content))

        if resp.status_code >= 400:
            raise self._api_error(resp)
        return resp

    @staticmethod
    def _parse(resp: httpx.Response) -> dict:
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteAPIError(
                f"invalid JSON in response: {resp.text[:200]}",
                code="invalid_response",
                status_code=resp.status_code,
            ) from exc

    def request_raw(self, method: str, path: str, body: Any = None, params: dict[str, Any] | None = None) -> bytes:
        """Send one request and return the raw response body."""
        return self._send(method, path, body=body, params=params).content

    @staticmethod
    def _api_error(resp: httpx.Response) -> RemoteAPIError:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            code = str(data.get("code") or "http_error")
            message = str(data["message"])
            return RemoteAPIError(
                f"{code}: {message}",
                code=code,
                status_code=resp.status_code,
                hint=error_hint(code, message),
            )
        return RemoteAPIError(
            f"API error: {resp.status_code} {resp.reason_phrase}",
            code="http_error",
            status_code=resp.status_code,
        )

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict:
        """Send one request and return the parsed JSON object."""
        return self._parse(self._send(method, path, body=body, params=params))

    def get(self, path: str, **params) -> dict:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Any = None) -> dict:
        return self.request("POST", path, body=body)

    def patch(self, path: str, body: Any = None) -> dict:
        return self.request("PATCH", path, body=body)

    def delete(self, path: str) -> dict:
        return self.request("DELETE", path)

    # -- users ---------------------------------------------------------------

    def me(self) -> dict:
        return self.get("/v1/users/me")

    def get_user(self, user_id: str) -> dict:
        return self.get(f"/v1/users/{user_id}")

    def list_users(self, page_size: int = PAGE_SIZE, start_cursor: str | None = None) -> dict:
        return self.get("/v1/users", page_size=page_size, start_cursor=start_cursor)

    # -- search --------------------------------------------------------------

    def search(
        self,
        query: str = "",
        object_type: str | None = None,
        page_size: int | None = None,
        start_cursor: str | None = None,
    ) -> dict:
        body: dict[str, Any] = {}
        if query:
            body["query"] = query
        if object_type:
            body["filter"] = {"value": object_type, "property": "object"}
        if page_size:
            body["page_size"] = page_size
        if start_cursor:
            body["start_cursor"] = start_cursor
        return self.post("/v1/search", body)

    # -- pages ---------------------------------------------------------------

    def get_page(self, page_id: str) -> dict:
        return self.get(f"/v1/pages/{page_id}")

    def create_page(self, body: dict) -> dict:
        return self.post("/v1/pages", body)

    def update_page(self, page_id: str, body: dict) -> dict:
        return self.patch(f"/v1/pages/{page_id}", body)

    def move_page(self, page_id: str, parent_id: str) -> dict:
        return self.post(f"/v1/pages/{page_id}/move", {"parent": {"page_id": parent_id}})

    def get_page_property(self, page_id: str, property_id: str) -> dict:
        return self.get(f"/v1/pages/{page_id}/properties/{property_id}")

    # -- blocks --------------------------------------------------------------

    def get_block(self, block_id: str) -> dict:
        return self.get(f"/v1/blocks/{block_id}")

    def get_block_children(
        self,
        block_id: str,
        page_size: int = PAGE_SIZE,
        start_cursor: str | None = None,
    ) -> dict:
        return self.get(f"/v1/blocks/{block_id}/children", page_size=page_size, start_cursor=start_cursor)

    def append_block_children(self, block_id: str, children: list[dict], after: str | None = None) -> dict:
        body: dict[str, Any] = {"children": children}
        if after:
            body["after"] = after
        return self.patch(f"/v1/blocks/{block_id}/children", body)

    def update_block(self, block_id: str, body: dict) -> dict:
        return self.patch(f"/v1/blocks/{block_id}", body)

    def delete_block(self, block_id: str) -> dict:
        return self.delete(f"/v1/blocks/{block_id}")

    # -- databases -----------------------------------------------------------

    def get_database(self, database_id: str) -> dict:
        return self.get(f"/v1/databases/{database_id}")

    def create_database(self, body: dict) -> dict:
        return self.post("/v1/databases", body)

    def update_database(self, database_id: str, body: dict) -> dict:
        return self.patch(f"/v1/databases/{database_id}", body)

    def query_database(self, database_id: str, body: dict) -> dict:
        return self.post(f"/v1/databases/{database_id}/query", body)

    # -- comments ------------------------------------------------------------

    def list_comments(
        self,
        block_id: str,
        page_size: int = PAGE_SIZE,
        start_cursor: str | None = None,
    ) -> dict:
        return self.get("/v1/comments", block_id=block_id, page_size=page_size, start_cursor=start_cursor)

    def add_comment(self, page_id: str, text: str) -> dict:
        body = {
            "parent": {"page_id": page_id},
            "rich_text": [{"text": {"content": text}}],
        }
        return self.post("/v1/comments", body)

    # -- file uploads --------------------------------------------------------

    def list_file_uploads(self) -> dict:
        return self.get("/v1/file_uploads")

    def create_file_upload(self, file_name: str, content_type: str, content_length: int) -> dict:
        body = {
            "file_name": file_name,
            "content_type": content_type,
            "content_length": content_length,
            "mode": "single_part",
        }
        return self.post("/v1/file_uploads", body)

    def send_file_upload(self, upload_id: str, file_name: str, content_type: str, data: bytes) -> dict:
        """Send file content as multipart form data."""
        logger.debug("sending %d bytes as multipart for upload %s", len(data), upload_id)
        resp = self._send(
            "POST",
            f"/v1/file_uploads/{upload_id}/send",
            files={"file": (file_name, data, content_type)},
        )
        return self._parse(resp)

    def close(self):
        self._client.close()
