from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple


ARTICLE_FIELDS = (
    "slug",
    "title",
    "description",
    "published",
    "image",
    "tags",
    "updated",
    "series",
    "series_order",
    "draft",
    "body",
)


@dataclass(frozen=True)
class Article:
    slug: str
    title: str
    published: date
    description: str = ""
    image: Optional[str] = None
    tags: Tuple[str, ...] = ()
    updated: Optional[date] = None
    series: Optional[str] = None
    series_order: Optional[int] = None
    draft: bool = False
    body: str = ""
    source_file: Optional[Path] = field(default=None, compare=False)

    @property
    def path(self) -> str:
        return f"/articles/{self.slug}"

    @property
    def last_modified(self) -> date:
        return self.updated or self.published

    def to_dict(self, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Project the article onto `fields` (all public fields when None).

        Unknown field names raise ValueError so a typo in a listing's field
        list fails the build instead of rendering blanks.
        """
        names = ARTICLE_FIELDS if fields is None else tuple(fields)
        unknown = [n for n in names if n not in ARTICLE_FIELDS]
        if unknown:
            raise ValueError(f"Unknown article field(s): {', '.join(unknown)}")
        return {n: getattr(self, n) for n in names}


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    per_page: int
    total_count: int

    @property
    def has_previous(self) -> bool:
        # An empty corpus has no neighbours whatever page was asked for.
        return self.total_pages > 0 and self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def previous_page(self) -> Optional[int]:
        return self.current_page - 1 if self.has_previous else None

    @property
    def next_page(self) -> Optional[int]:
        return self.current_page + 1 if self.has_next else None
