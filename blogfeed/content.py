import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import yaml

from blogfeed.config import DEFAULT_PER_PAGE, parse_bool
from blogfeed.errors import ContentNotFoundError, MalformedContentError
from blogfeed.models import Article

CONTENT_SUFFIXES = (".md", ".mdx")
FRONT_MATTER_FENCE = "---"
SORTABLE_FIELDS = ("published", "updated", "title", "slug")

Record = Union[Article, Dict[str, Any]]


# -----------------------
# Slugs
# -----------------------

def slugify(text: str) -> str:
    """
    Convert a name like 'Outdoor Trips' into a URL-friendly slug: 'outdoor-trips'.
    Returns "" when nothing URL-safe is left.
    """
    s = text.strip().lower()
    s = re.sub(r"[\s_]+", "-", s)
    s = re.sub(r"[^a-z0-9-]", "", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    return s


# -----------------------
# Parsing front matter
# -----------------------

def split_front_matter(text: str, source: str = "<string>") -> Tuple[dict, str]:
    """
    Split a document into (metadata, markdown body).

      ---
      title: Hello
      published: 2021-01-05
      ---
      Body text...
    """
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_FENCE:
        raise MalformedContentError(source, "missing front matter block")

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONT_MATTER_FENCE:
            end = i
            break
    if end is None:
        raise MalformedContentError(source, "front matter block is not closed")

    try:
        meta = yaml.safe_load("\n".join(lines[1:end])) or {}
    except (yaml.YAMLError, ValueError) as e:
        # out-of-range dates such as 2021-02-30 surface as ValueError
        raise MalformedContentError(source, f"invalid YAML front matter ({e})") from e
    if not isinstance(meta, dict):
        raise MalformedContentError(source, "front matter must be a mapping")

    body = "\n".join(lines[end + 1:]).strip()
    return meta, body


def _parse_date(value: Any, source: str, key: str) -> date:
    # PyYAML already turns unquoted ISO dates into date/datetime objects
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise MalformedContentError(source, f"'{key}' is not a valid ISO date: {value!r}")


def _parse_tags(value: Any, source: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        # comma-separated shorthand: "tags: vue, laravel"
        return tuple(t.strip() for t in value.split(",") if t.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(t).strip() for t in value if str(t).strip())
    raise MalformedContentError(source, f"'tags' must be a list of strings, got {type(value).__name__}")


def article_from_document(text: str, slug: str, source: str = "<string>",
                          source_file: Optional[Path] = None) -> Article:
    """Build an Article from one front-matter document. Required fields missing → MalformedContentError."""
    meta, body = split_front_matter(text, source)

    title = meta.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedContentError(source, "'title' is required")

    published_raw = meta.get("published", meta.get("pubDate"))
    if published_raw is None:
        raise MalformedContentError(source, "'published' is required")
    published = _parse_date(published_raw, source, "published")

    updated_raw = meta.get("updated", meta.get("updatedDate"))
    updated = _parse_date(updated_raw, source, "updated") if updated_raw is not None else None

    series_order = meta.get("seriesOrder", meta.get("series_order"))
    if series_order is not None:
        try:
            series_order = int(series_order)
        except (TypeError, ValueError):
            raise MalformedContentError(source, f"'seriesOrder' must be an integer: {series_order!r}")

    description = meta.get("description") or ""
    image = meta.get("image") or None
    series = meta.get("series") or None

    return Article(
        slug=slug,
        title=title.strip(),
        published=published,
        description=str(description).strip(),
        image=str(image) if image else None,
        tags=_parse_tags(meta.get("tags"), source),
        updated=updated,
        series=str(series) if series else None,
        series_order=series_order,
        draft=parse_bool(meta.get("draft", False)),
        body=body,
        source_file=source_file,
    )


def load_article(path: Path) -> Article:
    slug = slugify(path.stem)
    if not slug:
        raise MalformedContentError(str(path), "file name does not yield a URL-safe slug")
    text = path.read_text(encoding="utf-8")
    return article_from_document(text, slug, source=str(path), source_file=path)


def discover_content_files(content_root: Path) -> List[Path]:
    """All Markdown files under `content_root`, in sorted path order."""
    if not content_root.is_dir():
        raise MalformedContentError(str(content_root), "content directory does not exist")
    return sorted(
        p for p in content_root.rglob("*")
        if p.is_file() and p.suffix.lower() in CONTENT_SUFFIXES
    )


def collect_articles(content_root: Path, include_drafts: bool = False) -> List[Article]:
    """
    Parse every content file once, in discovery order.

    Draft articles are skipped unless include_drafts=True. Duplicate slugs
    are fatal because the slug is the article's URL.
    """
    articles = []
    seen = {}

    for path in discover_content_files(content_root):
        article = load_article(path)
        if article.draft and not include_drafts:
            continue
        if article.slug in seen:
            raise MalformedContentError(
                str(path), f"duplicate slug '{article.slug}' (also used by {seen[article.slug]})"
            )
        seen[article.slug] = path
        articles.append(article)

    return articles


# -----------------------
# Repository
# -----------------------

class ContentRepository:
    """
    Queryable, read-only view over the article corpus.

    Every query is an eager filter → sort → slice over the list loaded at
    construction, so results never depend on when they are iterated.
    """

    def __init__(self, articles: Iterable[Article], *, legacy_offset: bool = False):
        self._articles: Tuple[Article, ...] = tuple(articles)
        self.legacy_offset = legacy_offset

        slugs = set()
        for a in self._articles:
            if a.slug in slugs:
                raise MalformedContentError(a.slug, "duplicate slug")
            slugs.add(a.slug)

    @classmethod
    def from_directory(cls, content_root: Path, *, include_drafts: bool = False,
                       legacy_offset: bool = False) -> "ContentRepository":
        return cls(collect_articles(Path(content_root), include_drafts=include_drafts),
                   legacy_offset=legacy_offset)

    def __len__(self) -> int:
        return len(self._articles)

    @staticmethod
    def _project(articles: Sequence[Article], fields: Optional[Iterable[str]]) -> List[Record]:
        if fields is None:
            return list(articles)
        fields = tuple(fields)
        return [a.to_dict(fields) for a in articles]

    def fetch_all(self, fields: Optional[Iterable[str]] = None) -> List[Record]:
        """Every article in discovery order; projected to dicts when `fields` is given."""
        return self._project(self._articles, fields)

    def _sorted(self, field: str, direction: str) -> List[Article]:
        if field not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {field!r}; expected one of {', '.join(SORTABLE_FIELDS)}")
        if direction not in ("asc", "desc"):
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")

        if field == "updated":
            key = lambda a: a.last_modified
        else:
            key = lambda a: getattr(a, field)
        # sorted() is stable for reverse=True too: ties keep discovery order
        return sorted(self._articles, key=key, reverse=(direction == "desc"))

    def fetch_sorted(self, field: str = "published", direction: str = "desc",
                     fields: Optional[Iterable[str]] = None) -> List[Record]:
        return self._project(self._sorted(field, direction), fields)

    def page_offset(self, page_number: int, per_page: int) -> int:
        if self.legacy_offset:
            # historical rule: page 2 starts at 2 * per_page
            return page_number * per_page if page_number > 1 else 0
        return (page_number - 1) * per_page

    def fetch_page(self, page_number: int, per_page: int = DEFAULT_PER_PAGE,
                   fields: Optional[Iterable[str]] = None) -> List[Record]:
        """
        One page of the newest-first listing.

        Page numbers below 1, and pages whose slice is empty, raise
        ContentNotFoundError instead of returning an empty list.
        """
        if per_page < 1:
            raise ValueError(f"per_page must be positive, got {per_page}")
        if page_number < 1:
            raise ContentNotFoundError()

        offset = self.page_offset(page_number, per_page)
        page = self._sorted("published", "desc")[offset:offset + per_page]
        if not page:
            raise ContentNotFoundError()
        return self._project(page, fields)

    def get(self, slug: str) -> Article:
        for a in self._articles:
            if a.slug == slug:
                return a
        raise ContentNotFoundError(f"No article found for slug '{slug}'")

    def fetch_by_tag(self, tag: str) -> List[Article]:
        """Newest-first articles carrying `tag` (compared by slug, so 'Vue JS' matches 'vue-js')."""
        wanted = slugify(tag)
        matches = [a for a in self._sorted("published", "desc")
                   if any(slugify(t) == wanted for t in a.tags)]
        if not matches:
            raise ContentNotFoundError(f"No articles found for tag '{tag}'")
        return matches

    def tag_index(self) -> Dict[str, dict]:
        """
        Build a tag index:

          {
            "vuejs":   { "name": "VueJS",   "articles": [article, ...] },
            "laravel": { "name": "Laravel", "articles": [article, ...] },
          }

        Keys are slugs; "name" is the first-seen display name. Articles are
        newest first.
        """
        tag_map = {}
        for a in self._sorted("published", "desc"):
            for tag in a.tags:
                slug = slugify(tag)
                if not slug:
                    continue
                if slug not in tag_map:
                    tag_map[slug] = {"name": tag, "articles": []}
                # an article listing the same tag twice appears once
                if a not in tag_map[slug]["articles"]:
                    tag_map[slug]["articles"].append(a)
        return tag_map

    def fetch_series(self, name: str) -> List[Article]:
        """Articles in a series, by seriesOrder then publish date (unordered parts last)."""
        parts = [a for a in self._articles if a.series == name]
        if not parts:
            raise ContentNotFoundError(f"No articles found for series '{name}'")
        return sorted(
            parts,
            key=lambda a: (a.series_order is None, a.series_order or 0, a.published),
        )
