"""Head meta tags (description, Open Graph, Twitter card) for every rendered page."""

import html
from typing import Dict, List, Optional

from blogfeed.config import SiteConfig


def site_meta(config: SiteConfig, meta: Optional[Dict[str, str]] = None) -> List[Dict[str, str]]:
    """
    Return the meta tag list for a page.

    `meta` may override type, url, title, description and main_image; any
    key it leaves out falls back to the site-wide value from `config`.
    """
    meta = meta or {}
    page_type = meta.get("type") or "website"
    url = meta.get("url") or config.absolute_url("/")
    title = meta.get("title") or config.site_title
    description = meta.get("description") or config.site_description
    image = meta.get("main_image") or config.default_image

    tags = [
        {"hid": "description", "name": "description", "content": description},
        {"hid": "og:type", "property": "og:type", "content": page_type},
        {"hid": "og:url", "property": "og:url", "content": url},
        {"hid": "og:title", "property": "og:title", "content": title},
        {"hid": "og:description", "property": "og:description", "content": description},
        {"hid": "og:image", "property": "og:image", "content": image},
        {"hid": "twitter:url", "name": "twitter:url", "content": url},
        {"hid": "twitter:title", "name": "twitter:title", "content": title},
        {"hid": "twitter:description", "name": "twitter:description", "content": description},
        {"hid": "twitter:image", "name": "twitter:image", "content": image},
    ]
    if config.twitter_site:
        tags.append({"hid": "twitter:site", "name": "twitter:site", "content": config.twitter_site})
    tags.append({"hid": "twitter:card", "name": "twitter:card", "content": "summary_large_image"})
    return tags


def render_meta_tags(tags: List[Dict[str, str]]) -> str:
    """Serialise site_meta() output to <meta> elements, skipping tags with no content."""
    out = []
    for tag in tags:
        if not tag.get("content"):
            continue
        attr = "property" if "property" in tag else "name"
        out.append(
            f'<meta {attr}="{html.escape(tag[attr])}" content="{html.escape(tag["content"])}">'
        )
    return "\n  ".join(out)
