"""Notion REST API client."""

import logging
from typing import Optional

import httpx

from ..errors import NotionAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.notion.com/v1"
DEFAULT_VERSION = "2022-06-28"


class NotionClient:
    """Async HTTP client for the Notion API."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        notion_version: str = DEFAULT_VERSION,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Notion client.

        Args:
            token: Integration token (e.g., secret_...)
            api_url: Base API URL
            notion_version: Value of the Notion-Version header
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.notion_version = notion_version
        self.timeout = timeout
        self.transport = transport
        self.http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "NotionClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.disconnect()

    async def connect(self):
        """Open the underlying HTTP connection pool."""
        if self.http:
            return

        self.http = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Notion-Version": self.notion_version,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self.transport,
        )
        logger.debug(f"Notion client ready ({self.api_url})")

    async def disconnect(self):
        """Close the connection pool."""
        if self.http:
            await self.http.aclose()
            self.http = None
            logger.debug("Notion client closed")

    async def request(self, method: str, path: str, body: Optional[dict] = None) -> dict:
        """
        Send a request to Notion and return the decoded JSON body.

        Args:
            method: HTTP method
            path: API path (e.g., "/databases/{id}/query")
            body: Optional JSON body

        Returns:
            Response data dictionary

        Raises:
            NotionAPIError: On transport errors and non-2xx responses
        """
        if not self.http:
            raise NotionAPIError("Notion client is not connected")

        logger.debug(f"{method} {path}")
        try:
            response = await self.http.request(method, path, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Notion request failed: {method} {path}: {e}")
            raise NotionAPIError(f"Could not reach Notion: {e}") from e

        if response.is_success:
            return response.json() if response.content else {}

        try:
            error = response.json()
        except ValueError:
            error = {}

        message = error.get("message") or response.text or "Unknown error"
        logger.error(f"Notion error {response.status_code} on {method} {path}: {message}")
        raise NotionAPIError(message, status=response.status_code, code=error.get("code"))

    async def retrieve_database(self, database_id: str) -> dict:
        """
        Get a database object (including its property schema).

        Args:
            database_id: Database ID

        Returns:
            Database dictionary
        """
        return await self.request("GET", f"/databases/{database_id}")

    async def query_database(
        self,
        database_id: str,
        filter: Optional[dict] = None,
        sorts: Optional[list[dict]] = None,
        page_size: int = 100,
        start_cursor: Optional[str] = None,
    ) -> dict:
        """
        Query one page of results from a database.

        Returns:
            Dictionary with "results", "has_more" and "next_cursor"
        """
        body: dict = {"page_size": page_size}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        if start_cursor:
            body["start_cursor"] = start_cursor

        return await self.request("POST", f"/databases/{database_id}/query", body)

    async def query_all(
        self,
        database_id: str,
        filter: Optional[dict] = None,
        sorts: Optional[list[dict]] = None,
    ) -> list[dict]:
        """Query a database following pagination until exhausted."""
        pages = []
        cursor = None

        while True:
            response = await self.query_database(
                database_id, filter=filter, sorts=sorts, start_cursor=cursor
            )
            pages.extend(response.get("results", []))

            if not response.get("has_more") or not response.get("next_cursor"):
                break
            cursor = response["next_cursor"]

        return pages

    async def update_page(self, page_id: str, properties: dict) -> dict:
        """Update page properties."""
        return await self.request("PATCH", f"/pages/{page_id}", {"properties": properties})

    async def list_block_children(self, block_id: str, page_size: int = 100) -> list[dict]:
        """
        List child blocks of a page or block.

        Returns:
            List of block dictionaries
        """
        response = await self.request(
            "GET", f"/blocks/{block_id}/children?page_size={page_size}"
        )
        return response.get("results", [])

    async def append_block_children(self, block_id: str, children: list[dict]) -> dict:
        """Append blocks to a page or block."""
        return await self.request(
            "PATCH", f"/blocks/{block_id}/children", {"children": children}
        )

    async def delete_block(self, block_id: str) -> dict:
        """Archive (delete) a block."""
        return await self.request("DELETE", f"/blocks/{block_id}")
