import html
from typing import Dict, List, Optional, Sequence

import markdown
from bs4 import BeautifulSoup

from blogfeed.config import SiteConfig
from blogfeed.content import slugify
from blogfeed.feeds import JSON_FEED_FILENAME, RSS_FILENAME
from blogfeed.meta import render_meta_tags, site_meta
from blogfeed.models import Article, Pagination
from blogfeed.pagination import page_path

MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]


# -----------------------
# HTML helpers
# -----------------------

def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def wrap_images_with_figures(html_fragment: str) -> str:
    """
    Wrap <img> in <figure class="article-figure"> with a <figcaption> holding the alt text.
    """
    soup = BeautifulSoup(html_fragment, "html.parser")

    for img in soup.find_all("img"):
        alt = img.get("alt", "").strip()

        # Skip if already inside a figure
        if img.find_parent("figure"):
            continue

        figure = soup.new_tag("figure")
        figure["class"] = "article-figure"
        img.replace_with(figure)
        figure.append(img)

        if alt:
            caption = soup.new_tag("figcaption")
            caption.string = alt
            figure.append(caption)

    return str(soup)


def format_date(d) -> str:
    return d.strftime("%B %d, %Y").replace(" 0", " ")


def render_tag_pills(tags: Sequence[str], *, link_tags: bool = True) -> str:
    if not tags:
        return ""
    pills = []
    for tag in tags:
        slug = slugify(tag)
        label = html.escape(tag)
        if link_tags and slug:
            pill = f'<li><a href="/tag/{slug}.html" class="article-tag">{label}</a></li>'
        else:
            pill = f'<li><span class="article-tag">{label}</span></li>'
        pills.append(pill)
    return f'<ul class="article-tags">{"".join(pills)}</ul>'


def render_article_summary(article: Article, *, link_tags: bool = True) -> str:
    """One listing card: linked title, date, description and tag pills."""
    iso = article.published.isoformat()
    return f"""<article id="{html.escape(article.slug)}" class="article-summary">
  <header class="article-header">
    <h2 class="article-title"><a href="{html.escape(article.path)}">{html.escape(article.title)}</a></h2>
    <time datetime="{iso}" class="article-date">{format_date(article.published)}</time>
    {render_tag_pills(article.tags, link_tags=link_tags)}
  </header>
  <p class="article-description">{html.escape(article.description)}</p>
</article>
"""


def tags_nav_html(tag_index: Dict[str, dict], active_slug: Optional[str] = None) -> str:
    links = []
    for slug, data in sorted(tag_index.items(), key=lambda kv: kv[1]["name"].lower()):
        css_class = "tag-link"
        if slug == active_slug:
            css_class += " active"
        links.append(
            f'<li><a href="/tag/{slug}.html" class="{css_class}">{html.escape(data["name"])}</a></li>'
        )
    if not links:
        return ""
    links_html = "\n          ".join(links)
    return f"""
    <nav class="tag-nav">
      <h2 class="tag-nav-title"><a href="/tags.html">Tags</a></h2>
      <ul class="tag-nav-list">
          {links_html}
      </ul>
    </nav>"""


def build_common_head_and_footer(config: SiteConfig):
    """Return extra_head_html, extra_footer_html strings."""
    extra_head_html = ""
    if config.extra_head:
        extra_head_html = "\n  " + "\n  ".join(config.extra_head)

    extra_footer_html = ""
    if config.extra_footer:
        extra_footer_html = "\n    " + "\n    ".join(config.extra_footer)

    return extra_head_html, extra_footer_html


def render_page(*, page_title: str, canonical_path: str, main_html: str, config: SiteConfig,
                tag_index: Dict[str, dict], meta: Optional[Dict[str, str]] = None,
                active_tag: Optional[str] = None) -> str:
    """Full HTML document around `main_html`."""
    site_title = html.escape(config.site_title)
    canonical = config.absolute_url(canonical_path)
    meta = dict(meta or {})
    meta.setdefault("url", canonical)
    meta_html = render_meta_tags(site_meta(config, meta))
    extra_head_html, extra_footer_html = build_common_head_and_footer(config)
    stylesheet = ""
    if config.css_path is not None:
        stylesheet = '\n  <link rel="stylesheet" href="/style.css">'

    return f"""<!DOCTYPE html>
<html lang="{html.escape(config.language)}">
<head>
  <meta charset="utf-8">
  <title>{html.escape(page_title)}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  {meta_html}
  <link rel="canonical" href="{html.escape(canonical)}">{stylesheet}
  <link rel="alternate" type="application/rss+xml" title="{site_title} – RSS" href="/{RSS_FILENAME}">
  <link rel="alternate" type="application/feed+json" title="{site_title} – JSON Feed" href="/{JSON_FEED_FILENAME}">{extra_head_html}
</head>
<body>
<div class="layout">
  <aside class="sidebar">
    <header class="site-header">
      <h1 class="site-title"><a href="/">{site_title}</a></h1>
      <p class="site-tagline">{html.escape(config.site_description)}</p>
    </header>
{tags_nav_html(tag_index, active_tag)}
  </aside>

  <main class="content">
    <div class="content-inner">
{main_html}
    </div>
  </main>
</div>

<footer class="site-footer">
  {extra_footer_html}
</footer>

</body>
</html>
"""


# -----------------------
# Page renderers
# -----------------------

def pagination_nav_html(pagination: Pagination) -> str:
    if pagination.total_pages <= 1:
        return ""
    parts = []
    if pagination.has_previous:
        parts.append(
            f'<a href="{page_path(pagination.previous_page)}" class="page-link page-prev" rel="prev">&larr; Newer</a>'
        )
    parts.append(
        f'<span class="page-status">Page {pagination.current_page} of {pagination.total_pages}</span>'
    )
    if pagination.has_next:
        parts.append(
            f'<a href="{page_path(pagination.next_page)}" class="page-link page-next" rel="next">Older &rarr;</a>'
        )
    return '<nav class="pagination">\n        ' + "\n        ".join(parts) + "\n      </nav>"


def render_listing_page(articles: Sequence[Article], pagination: Pagination, config: SiteConfig,
                        tag_index: Dict[str, dict]) -> str:
    """One page of the newest-first article listing with prev/next links."""
    articles_html = "\n".join(render_article_summary(a) for a in articles)

    if pagination.current_page > 1:
        page_title = f"{config.site_title} – Page {pagination.current_page}"
        main_heading = f'<h2 class="listing-title">Articles &ndash; page {pagination.current_page}</h2>'
    else:
        page_title = config.site_title
        main_heading = '<h2 class="listing-title">Latest articles</h2>'

    main_html = f"""      <header class="content-header">
        {main_heading}
      </header>

      {articles_html}
      {pagination_nav_html(pagination)}"""

    return render_page(
        page_title=page_title,
        canonical_path=page_path(pagination.current_page),
        main_html=main_html,
        config=config,
        tag_index=tag_index,
    )


def render_article_page(article: Article, config: SiteConfig, tag_index: Dict[str, dict]) -> str:
    content_html = wrap_images_with_figures(markdown_to_html(article.body))
    iso = article.published.isoformat()

    updated_html = ""
    if article.updated and article.updated != article.published:
        updated_html = (
            f'\n    <p class="article-updated">Updated '
            f'<time datetime="{article.updated.isoformat()}">{format_date(article.updated)}</time></p>'
        )

    main_html = f"""      <article class="article">
  <header class="article-header">
    <h2 class="article-title">{html.escape(article.title)}</h2>
    <time datetime="{iso}" class="article-date">{format_date(article.published)}</time>{updated_html}
    {render_tag_pills(article.tags)}
  </header>
  <div class="article-body">
    {content_html}
  </div>
</article>"""

    return render_page(
        page_title=f"{article.title} – {config.site_title}",
        canonical_path=article.path,
        main_html=main_html,
        config=config,
        tag_index=tag_index,
        meta={
            "type": "article",
            "title": article.title,
            "description": article.description,
            "main_image": article.image or "",
        },
    )


def render_tag_page(tag_name: str, tag_slug: str, articles: Sequence[Article], config: SiteConfig,
                    tag_index: Dict[str, dict]) -> str:
    """
    Render a page listing all articles for a given tag.
    """
    if articles:
        articles_html = "\n".join(render_article_summary(a) for a in articles)
        subtitle = "Articles with this tag, newest first."
    else:
        articles_html = "<p>No articles yet for this tag.</p>"
        subtitle = "No articles found for this tag."

    main_html = f"""      <header class="content-header">
        <h2 class="listing-title">Tag: {html.escape(tag_name)}</h2>
        <p class="content-subtitle">{subtitle}</p>
      </header>

      {articles_html}"""

    return render_page(
        page_title=f"{config.site_title} – Tag: {tag_name}",
        canonical_path=f"/tag/{tag_slug}.html",
        main_html=main_html,
        config=config,
        tag_index=tag_index,
        active_tag=tag_slug,
    )


def render_tag_index_page(tag_index: Dict[str, dict], config: SiteConfig) -> str:
    """
    Root-level tags.html: tag name + count + link to tag/<slug>.html
    """
    if tag_index:
        items = []
        for slug, data in sorted(tag_index.items(), key=lambda kv: kv[1]["name"].lower()):
            count = len(data["articles"])
            items.append(
                f'<li class="tag-index-item">'
                f'<a href="/tag/{slug}.html" class="tag-index-link">{html.escape(data["name"])}</a> '
                f'<span class="tag-index-count">({count})</span>'
                f'</li>'
            )
        tags_html = '<ul class="tag-index-list">' + "".join(items) + "</ul>"
        subtitle = "All tags used on this site."
    else:
        tags_html = "<p>No tags yet.</p>"
        subtitle = "No tags found."

    main_html = f"""      <header class="content-header">
        <h2 class="listing-title">Tags</h2>
        <p class="content-subtitle">{subtitle}</p>
      </header>

      {tags_html}"""

    return render_page(
        page_title=f"{config.site_title} – Tags",
        canonical_path="/tags.html",
        main_html=main_html,
        config=config,
        tag_index=tag_index,
    )


def listing_static_routes(total_pages: int) -> List[str]:
    """Routes of every listing page plus the tag index, for the sitemap."""
    routes = [page_path(n) for n in range(1, total_pages + 1)]
    routes.append("/tags.html")
    return routes
