"""Site building functionality for Folio.

This module loads a project (configuration, site data and posts), wires
the registry, template engine and router together, and writes the static
site to the output directory.

Key functions:
- load_config: Loads project configuration from folio.yaml.
- load_data: Loads site data from YAML files in the data directory.
- load_site: Builds the registry and the objects that render it.
- build_site: Renders every page and copies images into the output.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateError

from .content import ContentError, load_registry
from .entries import EntryRegistry, RegistryError
from .gallery import ImageQuery
from .layouts import GALLERY_TITLES, LayoutDispatcher
from .routing import Response, SiteRouter
from .templates import TemplateEngine
from .utils import ensure_clean_dir, normalize_url


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


DEFAULT_CONFIG = {
    "output_dir": "output",
    "content_dir": "posts",
    "images_dir": "images",
    "blog_prefix": "/blog",
    "port": 4000,
    "root_url": "",
    "gallery_titles": sorted(GALLERY_TITLES),
    "gallery_extensions": ["png"],
    "cors_origin": None,
}


@dataclass
class Site:
    """A loaded project, ready to render.

    Attributes:
        project_root: Root directory of the project.
        config: Project configuration.
        data: Global site data.
        registry: Registry of all posts.
        engine: Template engine.
        router: Router over the registry.
    """

    project_root: Path
    config: dict[str, Any]
    data: dict[str, Any]
    registry: EntryRegistry
    engine: TemplateEngine
    router: SiteRouter

    @property
    def images_dir(self) -> Path:
        return self.project_root / self.config["images_dir"]


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        registry: Registry of all built posts.
        output_dir: Directory where the site was built.
        data: Global site data dictionary.
        site: The loaded site the pages were rendered from.
    """

    registry: EntryRegistry
    output_dir: Path
    data: dict[str, Any]
    site: Site | None = None


def load_config(project_root: Path) -> dict[str, Any]:
    """Load project configuration from folio.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / "folio.yaml"
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def load_data(project_root: Path) -> dict[str, Any]:
    """Load site data from YAML files in the data directory.

    ``site.yaml`` is merged at the top level; any other file is stored
    under its stem.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing merged data from all YAML files.
    """
    data_dir = project_root / "data"
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        with open(path, encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
        if path.name == "site.yaml":
            if isinstance(payload, dict):
                data.update(payload)
        else:
            data[path.stem] = payload
    return data


def load_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
) -> Site:
    """Load a project and wire its registry, engine and router.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft posts (starting with _).
        root_url: Optional base URL overriding the configured one.

    Returns:
        The loaded Site.

    Raises:
        BuildError: If a post cannot be loaded.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    data = load_data(project_root)
    content_dir = project_root / config["content_dir"]
    blog_prefix = normalize_url(str(config["blog_prefix"]))
    gallery_titles = config.get("gallery_titles") or []

    try:
        registry = load_registry(
            content_dir,
            blog_prefix=blog_prefix,
            gallery_titles=gallery_titles,
            include_drafts=include_drafts,
        )
    except ContentError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc
    except RegistryError as exc:
        raise BuildError(content_dir, str(exc), exc) from exc

    image_query = ImageQuery(
        project_root / config["images_dir"],
        extensions=config.get("gallery_extensions") or ["png"],
    )
    engine = TemplateEngine(
        data,
        image_query,
        layouts_dir=project_root / "_layouts",
        dispatcher=LayoutDispatcher(gallery_titles),
        root_url=str(config.get("root_url") or ""),
    )
    router = SiteRouter(registry, engine, blog_prefix=blog_prefix)
    return Site(
        project_root=project_root,
        config=config,
        data=data,
        registry=registry,
        engine=engine,
        router=router,
    )


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Writes the listing page, one page per post at its url, a 404 page,
    and copies the images directory to ``assets/images``.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft posts (starting with _).
        root_url: Optional base URL to prefix links with.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing the registry, output directory, and site data.
    """
    site = load_site(project_root, include_drafts=include_drafts, root_url=root_url)
    output_dir = output_dir_override or (
        project_root / site.config.get("output_dir", "output")
    )
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    content_dir = project_root / site.config["content_dir"]
    index = _render(site, "/", content_dir)
    _write_page(output_dir, "/", index.body)
    for entry in site.registry.entries():
        response = _render(site, entry.metadata.url, entry.source or content_dir)
        _write_page(output_dir, entry.metadata.url, response.body)
    (output_dir / "404.html").write_text(
        site.router.not_found().body, encoding="utf-8"
    )

    _copy_images(site.images_dir, output_dir / "assets" / "images")
    return BuildResult(
        registry=site.registry, output_dir=output_dir, data=site.data, site=site
    )


def _render(site: Site, url: str, source_path: Path) -> Response:
    try:
        response = site.router.dispatch(url)
    except TemplateError as exc:
        raise BuildError(source_path, _format_error_message(exc), exc) from exc
    if response is None or response.status != 200:
        raise BuildError(source_path, f"No page is routed at {url}")
    return response


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "TemplateSyntaxError":
        return f"Template syntax error on line {getattr(exc, 'lineno', '?')}: {error_msg}"
    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_page(output_dir: Path, url: str, rendered: str) -> None:
    """Write a rendered page to ``<url>/index.html`` under the output directory."""
    url_path = url.strip("/")
    target_dir = output_dir / url_path
    target_dir.mkdir(parents=True, exist_ok=True)
    html_path = target_dir / "index.html"
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(rendered)


def _copy_images(images_dir: Path, target: Path) -> None:
    """Copy the project images into the output assets folder."""
    if not images_dir.exists():
        return
    for item in images_dir.rglob("*"):
        if item.is_dir():
            continue
        dest = target / item.relative_to(images_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, dest)
