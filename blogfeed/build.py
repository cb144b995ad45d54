#!/usr/bin/env python3
import shutil
import sys
from pathlib import Path
from typing import Dict, Optional

from blogfeed.config import SiteConfig, get_config_path_from_args, load_config
from blogfeed.content import ContentRepository
from blogfeed.errors import BlogfeedError, ContentNotFoundError
from blogfeed.feeds import (
    JSON_FEED_FILENAME,
    RSS_FILENAME,
    SITEMAP_FILENAME,
    render_json_feed,
    render_rss,
    render_sitemap,
)
from blogfeed.models import Pagination
from blogfeed.pagination import page_output_path, plan_pagination
from blogfeed.render import (
    listing_static_routes,
    render_article_page,
    render_listing_page,
    render_tag_index_page,
    render_tag_page,
)

CSS_FILENAME = "style.css"


def build_site(config: SiteConfig, repository: Optional[ContentRepository] = None) -> Dict[str, str]:
    """
    Render every artifact in memory and return {relative output path: text}.

    Nothing touches the output directory here, so a fatal error in any
    article leaves the previously published site untouched.
    """
    if repository is None:
        repository = ContentRepository.from_directory(
            config.content_root,
            include_drafts=config.include_drafts,
            legacy_offset=config.legacy_page_offset,
        )

    if not len(repository):
        raise ContentNotFoundError("No articles found.")

    # one sorted, immutable list feeds every listing and emitter
    articles = repository.fetch_sorted("published", "desc")
    tag_index = repository.tag_index()
    total = len(articles)
    per_page = config.per_page

    artifacts = {}

    # 1. Listing pages (index.html = page 1)
    total_pages = plan_pagination(1, total, per_page).total_pages
    pages = []
    for page_number in range(1, total_pages + 1):
        try:
            pages.append(repository.fetch_page(page_number, per_page))
        except ContentNotFoundError:
            # only reachable with the legacy offset rule, which skips records
            print(f"WARNING: listing page {page_number} is empty, stopping pagination",
                  file=sys.stderr)
            break
    rendered_pages = len(pages)
    for page_number, page_articles in enumerate(pages, start=1):
        # nav links only point at pages that are written
        pagination = Pagination(page_number, rendered_pages, per_page, total)
        artifacts[page_output_path(page_number)] = render_listing_page(
            page_articles, pagination, config, tag_index
        )

    # 2. Article pages
    for article in articles:
        artifacts[f"articles/{article.slug}/index.html"] = render_article_page(article, config, tag_index)

    # 3. Tags: per-tag pages + tags.html
    for slug, data in tag_index.items():
        artifacts[f"tag/{slug}.html"] = render_tag_page(data["name"], slug, data["articles"], config, tag_index)
    artifacts["tags.html"] = render_tag_index_page(tag_index, config)

    # 4. Feeds + sitemap
    static_routes = list(config.static_routes)
    static_routes += listing_static_routes(rendered_pages)
    static_routes += [f"/tag/{slug}.html" for slug in tag_index]

    artifacts[RSS_FILENAME] = render_rss(articles, config)
    artifacts[JSON_FEED_FILENAME] = render_json_feed(articles, config)
    artifacts[SITEMAP_FILENAME] = render_sitemap(articles, config, static_routes)

    return artifacts


def copy_css(css_src: Optional[Path], output_dir: Path):
    """Copy the CSS file into the output directory as style.css."""
    if css_src is None:
        return
    if not css_src.exists():
        print(f"WARNING: CSS file not found at {css_src}", file=sys.stderr)
        return
    dest = output_dir / CSS_FILENAME
    shutil.copy2(css_src, dest)
    print(f"Copied CSS to {dest}")


def write_site(artifacts: Dict[str, str], output_dir: Path):
    output_dir.mkdir(parents=True, exist_ok=True)
    for rel_path, text in artifacts.items():
        out_path = output_dir / rel_path
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        print(f"Wrote {out_path}")


def main(argv=None):
    config_path = get_config_path_from_args(argv)

    try:
        config = load_config(config_path)
        artifacts = build_site(config)
    except BlogfeedError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    write_site(artifacts, config.output_dir)
    copy_css(config.css_path, config.output_dir)


if __name__ == "__main__":
    main()
