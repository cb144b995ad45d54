import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from blogfeed.errors import BlogfeedError

DEFAULT_CONFIG_FILENAME = "config.yml"
DEFAULT_PER_PAGE = 5


# -----------------------
# Config
# -----------------------

@dataclass(frozen=True)
class SiteConfig:
    """Everything the generation code needs; passed in explicitly, never read from the environment."""

    site_title: str = "Articles"
    site_description: str = ""
    site_url: str = ""
    author_name: str = ""
    author_email: str = ""
    language: str = "en"
    default_image: str = ""
    twitter_site: str = ""
    content_root: Path = Path("content/articles")
    output_dir: Path = Path("_site")
    css_path: Optional[Path] = None
    per_page: int = DEFAULT_PER_PAGE
    static_routes: Tuple[str, ...] = ("/",)
    legacy_page_offset: bool = False
    include_drafts: bool = False
    extra_head: Tuple[str, ...] = field(default_factory=tuple)
    extra_footer: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def base_url(self) -> str:
        return (self.site_url or "").rstrip("/")

    def absolute_url(self, path: str) -> str:
        """Join a site-relative path onto the base URL ("/" stays a trailing slash)."""
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"


def get_config_path_from_args(argv=None) -> Path:
    """
    Determine which config file to use.

    - If a path is passed as first argument, use that.
    - Otherwise, assume config.yml in the current directory.
    """
    args = sys.argv[1:] if argv is None else argv
    if args:
        return Path(args[0]).resolve()
    return (Path.cwd() / DEFAULT_CONFIG_FILENAME).resolve()


def _as_list(value) -> list:
    # extra_head / static_routes etc. can be a string or a list
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(x) for x in value]
    return []


def parse_bool(value) -> bool:
    # YAML may hand us a quoted "false"
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y", "on")
    return bool(value)


def config_from_mapping(data: dict, project_root: Path) -> SiteConfig:
    """Apply defaults to raw YAML data and resolve paths relative to `project_root`."""
    try:
        per_page = int(data.get("per_page", DEFAULT_PER_PAGE))
    except (TypeError, ValueError):
        raise BlogfeedError(f"per_page must be an integer, got {data.get('per_page')!r}")
    if per_page < 1:
        raise BlogfeedError(f"per_page must be positive, got {per_page}")

    css = data.get("css_path")
    static_routes = _as_list(data.get("static_routes", ["/"])) or ["/"]

    return SiteConfig(
        site_title=str(data.get("site_title", "Articles")),
        site_description=str(data.get("site_description", "")),
        site_url=str(data.get("site_url", "")),
        author_name=str(data.get("author_name", "")),
        author_email=str(data.get("author_email", "")),
        language=str(data.get("language", "en")),
        default_image=str(data.get("default_image", "")),
        twitter_site=str(data.get("twitter_site", "")),
        content_root=(project_root / data.get("content_root", "content/articles")).resolve(),
        output_dir=(project_root / data.get("output_dir", "_site")).resolve(),
        css_path=(project_root / css).resolve() if css else None,
        per_page=per_page,
        static_routes=tuple(static_routes),
        legacy_page_offset=parse_bool(data.get("legacy_page_offset", False)),
        include_drafts=parse_bool(data.get("include_drafts", False)),
        extra_head=tuple(_as_list(data.get("extra_head", []))),
        extra_footer=tuple(_as_list(data.get("extra_footer", []))),
    )


def load_config(config_path: Path) -> SiteConfig:
    """Load the YAML config file; relative paths inside it are relative to the file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise BlogfeedError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, ValueError) as e:
        # PyYAML raises a plain ValueError for out-of-range timestamps
        raise BlogfeedError(f"Invalid config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise BlogfeedError(f"Config file {config_path} must contain a mapping")

    return config_from_mapping(data, config_path.parent.resolve())
