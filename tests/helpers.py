from datetime import date
from pathlib import Path

from blogfeed.models import Article


def make_article(**overrides) -> Article:
    """Create a test Article."""
    defaults = dict(
        slug="setting-up-sanctum",
        title="Setting up Laravel Sanctum",
        published=date(2021, 1, 5),
        description="Authenticate a Vue SPA against a Laravel API.",
        image="https://example.com/sanctum.png",
        tags=("Laravel", "VueJS"),
        body="Install the package.\n\n![Diagram](/img/flow.png)",
    )
    defaults.update(overrides)
    return Article(**defaults)


def write_article(root: Path, name: str, front: str, body: str = "Body text.") -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{front.strip()}\n---\n{body}\n", encoding="utf-8")
    return path
