from pathlib import Path

import pytest

from blogfeed.config import SiteConfig
from tests.helpers import write_article


@pytest.fixture
def site_config(tmp_path) -> SiteConfig:
    return SiteConfig(
        site_title="redfern.dev",
        site_description="Articles about JavaScript & web development.",
        site_url="https://redfern.dev/",
        author_name="Gareth Redfern",
        author_email="hello@redfern.dev",
        content_root=tmp_path / "content",
        output_dir=tmp_path / "_site",
        per_page=5,
        static_routes=("/", "/about"),
    )


@pytest.fixture
def content_dir(tmp_path) -> Path:
    """Three articles with distinct dates, written out of date order."""
    root = tmp_path / "content"
    write_article(root, "b-middle.md", "title: Middle\npublished: 2021-02-01\ntags: [vuejs]")
    write_article(root, "a-oldest.md", "title: Oldest\npublished: 2020-12-24\ndescription: First post")
    write_article(root, "c-newest.md", "title: Newest\npublished: 2021-03-15\ntags: [Laravel, vuejs]")
    return root
