"""
Client for the toothbrush search server.

The server does the fuzzy matching and owns the notes on disk. This client
only wraps its two endpoints and turns every failure into a
``TransportError`` or ``DecodeError`` so a bad reply never takes the UI down.
"""

import logging
import time
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from toothbrush.errors import DecodeError, TransportError

logger = logging.getLogger(__name__)


class SearchPayload(BaseModel):
    """Body of ``POST /search``."""
    query: str
    selected_index: int = 0


class SearchResult(BaseModel):
    """Reply of ``POST /search``."""
    is_more: bool = False
    matched_basenames: List[str] = Field(default_factory=list)
    scores: List[float] = Field(default_factory=list)
    selected_content: str = ""


class DeletePayload(BaseModel):
    """Body of ``POST /delete``."""
    note_name: str


class QueryClient:
    """
    Stateless request/response wrapper around the search server.

    One ``httpx.AsyncClient`` is shared by all requests; pass your own to
    control transports and timeouts.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Server URL, e.g. ``http://localhost:38906``
            timeout: Per-request timeout in seconds
            http_client: Preconfigured client, mostly for tests
        """
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, endpoint: str, payload: BaseModel) -> httpx.Response:
        url = f"{self.base_url}/{endpoint}"
        start = time.perf_counter()
        try:
            response = await self._http.post(url, json=payload.model_dump())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{endpoint} failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{endpoint} failed: {e}") from e
        finally:
            logger.debug("post time for /%s: %.3fs", endpoint, time.perf_counter() - start)
        logger.debug("response from /%s: %s", endpoint, response.text)
        return response

    async def search(self, query: str, selected_index: int) -> SearchResult:
        """
        Ask the server for matches.

        Args:
            query: Fuzzy query, ``""`` for no filter
            selected_index: Row the user has selected; the server sends the
                preview of that row back as ``selected_content``

        Returns:
            Ranked matches, their scores, the preview and the ``is_more`` flag

        Raises:
            TransportError: If the server is unreachable or answers non-2xx
            DecodeError: If the body is not a valid search reply
        """
        payload = SearchPayload(query=query, selected_index=selected_index)
        response = await self._post("search", payload)
        try:
            return SearchResult.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(f"Malformed search reply: {e}") from e

    async def delete(self, note_name: str) -> None:
        """
        Delete a note on the server. The reply body is ignored.

        Raises:
            TransportError: If the server is unreachable or answers non-2xx
        """
        await self._post("delete", DeletePayload(note_name=note_name))
