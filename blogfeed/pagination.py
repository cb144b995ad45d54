import math

from blogfeed.config import DEFAULT_PER_PAGE
from blogfeed.errors import ContentNotFoundError
from blogfeed.models import Pagination

LISTING_PREFIX = "/articles/page"


def plan_pagination(current_page: int, total_count: int, per_page: int = DEFAULT_PER_PAGE) -> Pagination:
    """
    Work out prev/next metadata for one listing page.

    An empty corpus plans zero pages with both flags off. Otherwise a page
    outside 1..total_pages raises ContentNotFoundError.
    """
    if per_page < 1:
        raise ValueError(f"per_page must be positive, got {per_page}")
    if total_count < 0:
        raise ValueError(f"total_count cannot be negative, got {total_count}")

    total_pages = math.ceil(total_count / per_page)

    if total_pages and not 1 <= current_page <= total_pages:
        raise ContentNotFoundError()

    return Pagination(
        current_page=current_page,
        total_pages=total_pages,
        per_page=per_page,
        total_count=total_count,
    )


def page_path(page_number: int) -> str:
    """Site path of a listing page; page 1 is the home page."""
    if page_number <= 1:
        return "/"
    return f"{LISTING_PREFIX}/{page_number}"


def page_output_path(page_number: int) -> str:
    if page_number <= 1:
        return "index.html"
    return f"{LISTING_PREFIX.lstrip('/')}/{page_number}/index.html"
