"""Follow ``Link: <url>; rel="next"`` headers until the last page."""

import logging
from typing import Any, Generic, List, Mapping, TypeVar

from pydantic import BaseModel, Field

LOG = logging.getLogger("prbridge.adapters.pagination")

NEXT_RELATION = 'rel="next"'

T = TypeVar("T")


class PaginatedResult(BaseModel, Generic[T]):
    """All items of a paginated listing."""

    items: List[T] = Field(default_factory=list)
    pages: int = 0


def next_page(headers: Mapping[str, str] | None, base_url: str) -> str | None:
    """Path of the next page, relative to ``base_url``, or None on the last page."""
    link_header = (headers.get("Link") if headers is not None else None) or ""
    if not link_header.strip():
        return None
    for link in link_header.split(","):
        parts = [p.strip() for p in link.split(";")]
        if len(parts) < 2:
            continue
        url = parts[0]
        if NEXT_RELATION in parts[1:]:
            return url[1:-1].replace(base_url, "")
    return None


async def fetch_all(transport: Any, path: str) -> PaginatedResult[Any]:
    """GET ``path`` and every following page; concatenate the bodies."""
    result: PaginatedResult[Any] = PaginatedResult()
    url: str | None = path
    while url:
        response = await transport.get(url)
        result.items.extend(response.body or [])
        result.pages += 1
        url = next_page(response.headers, transport.base_url)
        if url:
            LOG.debug("Fetching next page %s", url)
    return result
