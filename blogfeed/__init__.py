"""Markdown article blog builder: pages, sitemap, RSS / JSON feeds and newsletter signups."""

from blogfeed.config import SiteConfig, load_config
from blogfeed.content import ContentRepository
from blogfeed.errors import (
    BlogfeedError,
    ContentNotFoundError,
    InvalidSignupError,
    MalformedContentError,
    UpstreamError,
)
from blogfeed.models import Article, Pagination
from blogfeed.pagination import plan_pagination

__all__ = [
    "Article",
    "BlogfeedError",
    "ContentNotFoundError",
    "ContentRepository",
    "InvalidSignupError",
    "MalformedContentError",
    "Pagination",
    "SiteConfig",
    "UpstreamError",
    "load_config",
    "plan_pagination",
]

__version__ = "0.3.0"
