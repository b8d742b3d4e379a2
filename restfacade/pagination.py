"""
Pagination headers for collection responses.

Collections send RFC 5988 ``Link`` headers (first/prev/next/last) pointing
at the same request URL with the ``page`` query parameter rewritten, plus
the total item and page counts.
"""

import html
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from .config import SiteConfig

TOTAL_HEADER = "X-WC-Total"
TOTAL_PAGES_HEADER = "X-WC-TotalPages"


@dataclass(frozen=True)
class PaginationCursor:
    """Read-only view of a paged result set."""

    current_page: Optional[int]
    is_single_result: bool
    total_items: int
    total_pages: int

    @classmethod
    def from_query(cls, query: Any) -> "PaginationCursor":
        """Build a cursor from a query object or mapping.

        Understands user-style queries (``page``, ``get_results()``,
        ``get_total()``, ``total_pages``), post-style queries (``get("paged")``,
        ``is_single()``, ``found_posts``, ``max_num_pages``) and mappings
        holding the cursor fields directly.
        """
        if isinstance(query, PaginationCursor):
            return query
        if isinstance(query, Mapping):
            return cls(
                current_page=query.get("current_page"),
                is_single_result=bool(query.get("is_single_result", False)),
                total_items=int(query.get("total_items", 0)),
                total_pages=int(query.get("total_pages", 0)),
            )
        if hasattr(query, "get_results"):
            return cls(
                current_page=getattr(query, "page", None),
                is_single_result=len(query.get_results()) <= 1,
                total_items=int(query.get_total()),
                total_pages=int(query.total_pages),
            )
        return cls(
            current_page=query.get("paged"),
            is_single_result=bool(query.is_single()),
            total_items=int(query.found_posts),
            total_pages=int(query.max_num_pages),
        )


def format_link_header(rel: str, link: str, other: Optional[Mapping[str, Any]] = None) -> str:
    """Format a Link header value.

    Args:
        rel: Link relation, either a registered type or an absolute URL
        link: Target IRI for the link
        other: Other link parameters; ``title`` is quoted

    Returns:
        Header value such as ``<https://example.com/orders?page=2>; rel="next"``
    """
    header = f'<{link}>; rel="{html.escape(rel, quote=True)}"'
    for key, value in (other or {}).items():
        if key == "title":
            value = f'"{value}"'
        header += f"; {key}={value}"
    return header


def paginated_url(page: int, request_uri: str, config: SiteConfig) -> str:
    """The request URL with its ``page`` query parameter set to ``page``.

    The host is that of the site's home URL; the scheme is ``https`` on
    SSL-enabled sites, otherwise the home URL's.
    """
    parts = urlsplit(request_uri)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "page"]
    query.append(("page", str(page)))

    home = urlsplit(config.home_url)
    scheme = "https" if config.ssl_enabled else (home.scheme or "http")
    host = home.hostname or "localhost"
    return unquote(urlunsplit((scheme, host, parts.path or "/", urlencode(query), "")))


def build_pagination_headers(cursor: PaginationCursor, request_uri: str,
                             config: SiteConfig) -> List[Tuple[str, str]]:
    """Build the pagination header lines for a result set.

    Link headers are only sent for multi-item responses; the count headers
    are always sent.

    Returns:
        Header lines in emission order
    """
    page = int(cursor.current_page or 1)
    next_page = abs(page) + 1
    total_pages = cursor.total_pages
    headers: List[Tuple[str, str]] = []

    def link(rel: str, target: int) -> None:
        headers.append(("Link", format_link_header(rel, paginated_url(target, request_uri, config))))

    if not cursor.is_single_result:
        if page > 1:
            link("first", 1)
            link("prev", page - 1)

        if next_page <= total_pages:
            link("next", next_page)

        if page != total_pages:
            link("last", total_pages)

    headers.append((TOTAL_HEADER, str(cursor.total_items)))
    headers.append((TOTAL_PAGES_HEADER, str(total_pages)))
    return headers
