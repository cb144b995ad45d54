"""
RSS 2.0, JSON Feed v1 and sitemap emission.

Every emitter takes the article list already sorted newest first and
writes items in exactly that order, so feeds and listing pages agree. None
of them reads the clock: two runs over the same articles give identical
bytes.
"""

import html
import json
from datetime import date, datetime, timezone
from email.utils import formatdate
from typing import Iterable, List, Optional, Sequence

from blogfeed.config import SiteConfig
from blogfeed.errors import MalformedContentError
from blogfeed.models import Article

RSS_FILENAME = "rss.xml"
JSON_FEED_FILENAME = "feed.json"
SITEMAP_FILENAME = "sitemap.xml"

JSON_FEED_VERSION = "https://jsonfeed.org/version/1"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def _esc(text: str) -> str:
    return html.escape(text or "", quote=True)


def _rfc822(d: date) -> str:
    dt = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    return formatdate(dt.timestamp(), usegmt=True)


def _rfc3339(d: date) -> str:
    return f"{d.isoformat()}T00:00:00Z"


def validate_for_feed(article: Article) -> None:
    """Raise MalformedContentError when a field that is published verbatim is missing."""
    source = getattr(article, "slug", None) or "<article>"
    if not isinstance(getattr(article, "slug", None), str) or not article.slug.strip():
        raise MalformedContentError(source, "article has no slug")
    if not isinstance(getattr(article, "title", None), str) or not article.title.strip():
        raise MalformedContentError(source, "article has no title")
    if not isinstance(getattr(article, "published", None), date):
        raise MalformedContentError(source, "article has no valid published date")


def article_link(article: Article, config: SiteConfig) -> str:
    return config.absolute_url(article.path)


# -----------------------
# RSS 2.0
# -----------------------

def render_rss(articles: Sequence[Article], config: SiteConfig) -> str:
    """
    Build rss.xml. The description is both <description> and the
    <content:encoded> body (wrapped in CDATA).
    """
    for a in articles:
        validate_for_feed(a)

    site_link = config.absolute_url("/")
    feed_link = config.absolute_url(f"/{RSS_FILENAME}")

    items_xml = []
    for a in articles:
        link = article_link(a, config)
        author_xml = ""
        if config.author_name:
            author_xml += f"\n    <dc:creator>{_esc(config.author_name)}</dc:creator>"
        if config.author_email:
            who = config.author_email
            if config.author_name:
                who = f"{config.author_email} ({config.author_name})"
            author_xml += f"\n    <author>{_esc(who)}</author>"
        category_xml = "".join(f"\n    <category>{_esc(t)}</category>" for t in a.tags)

        items_xml.append(f"""  <item>
    <title>{_esc(a.title)}</title>
    <link>{_esc(link)}</link>
    <guid isPermaLink="true">{_esc(link)}</guid>
    <pubDate>{_rfc822(a.published)}</pubDate>{author_xml}{category_xml}
    <description>{_esc(a.description)}</description>
    <content:encoded><![CDATA[<p>{_esc(a.description)}</p>]]></content:encoded>
  </item>""")

    # newest publish date instead of wall-clock time keeps rebuilds byte-identical
    last_build = ""
    if articles:
        newest = max(a.published for a in articles)
        last_build = f"\n  <lastBuildDate>{_rfc822(newest)}</lastBuildDate>"

    items_block = "\n".join(items_xml)
    if items_block:
        items_block += "\n"

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" xmlns:content="http://purl.org/rss/1.0/modules/content/" xmlns:dc="http://purl.org/dc/elements/1.1/">
<channel>
  <title>{_esc(config.site_title)}</title>
  <link>{_esc(site_link)}</link>
  <description>{_esc(config.site_description)}</description>
  <language>{_esc(config.language)}</language>
  <atom:link href="{_esc(feed_link)}" rel="self" type="application/rss+xml"/>{last_build}
{items_block}</channel>
</rss>
"""


# -----------------------
# JSON Feed v1
# -----------------------

def render_json_feed(articles: Sequence[Article], config: SiteConfig) -> str:
    for a in articles:
        validate_for_feed(a)

    author = {}
    if config.author_name:
        author["name"] = config.author_name
    if config.base_url:
        author["url"] = config.absolute_url("/")

    items = []
    for a in articles:
        link = article_link(a, config)
        item = {
            "id": link,
            "url": link,
            "title": a.title,
            "summary": a.description,
            "content_text": a.description,
            "content_html": f"<p>{_esc(a.description)}</p>",
            "date_published": _rfc3339(a.published),
        }
        if a.updated:
            item["date_modified"] = _rfc3339(a.updated)
        if author:
            item["author"] = dict(author)
        if a.tags:
            item["tags"] = list(a.tags)
        if a.image:
            item["image"] = a.image
        items.append(item)

    feed = {
        "version": JSON_FEED_VERSION,
        "title": config.site_title,
        "home_page_url": config.absolute_url("/"),
        "feed_url": config.absolute_url(f"/{JSON_FEED_FILENAME}"),
        "description": config.site_description,
    }
    if author:
        feed["author"] = author
    feed["items"] = items

    return json.dumps(feed, ensure_ascii=False, indent=2) + "\n"


# -----------------------
# Sitemap
# -----------------------

def _unique(routes: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(routes))


def render_sitemap(articles: Sequence[Article], config: SiteConfig,
                   static_routes: Optional[Iterable[str]] = None) -> str:
    """
    One <url> per static route (in the order given) followed by one per
    article slug, newest first, with <lastmod> from updated/published.
    """
    for a in articles:
        validate_for_feed(a)

    routes = _unique(config.static_routes if static_routes is None else static_routes)

    entries = []
    for route in routes:
        entries.append(f"""  <url>
    <loc>{_esc(config.absolute_url(route))}</loc>
  </url>""")
    for a in articles:
        entries.append(f"""  <url>
    <loc>{_esc(article_link(a, config))}</loc>
    <lastmod>{a.last_modified.isoformat()}</lastmod>
  </url>""")

    body = "\n".join(entries)
    if body:
        body += "\n"

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="{SITEMAP_NS}">
{body}</urlset>
"""
