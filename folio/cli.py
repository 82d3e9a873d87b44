"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.

Commands:
- new: Scaffold a new Folio project.
- build: Build the site into the output directory.
- serve: Run development server with live reload.
- post: Create a new post interactively.
- list: Print the post listing, newest first.
- show: Print the details of one post.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .build import BuildError, load_config, load_site
from .entries import PostNotFoundError
from .layouts import LayoutKind, select_layout
from .utils import normalize_url, slugify

_SCAFFOLD_FILES = {
    "folio.yaml": (
        "output_dir: output\n"
        "content_dir: posts\n"
        "images_dir: images\n"
        "blog_prefix: /blog\n"
        "port: 4000\n"
        "gallery_titles:\n"
        "  - Binary Objections\n"
    ),
    "data/site.yaml": (
        "title: My Portfolio\n"
        "description: Personal site and blog\n"
        "author: Me\n"
        "bio: I write software and sometimes about it.\n"
        "links:\n"
        "  - label: GitHub\n"
        "    url: https://github.com/\n"
    ),
    "posts/happy-new-year.md": (
        "---\n"
        "title: Happy New Year\n"
        "date: 1-1-2020\n"
        "path: /blog/happy-new-year\n"
        "---\n\n"
        "🎉 Happy New Year! 🎉\n"
    ),
    "images/.gitkeep": "",
    ".gitignore": "output/\noutput.staging/\noutput.old/\n",
}


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio portfolio and blog generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
def build(drafts: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.registry)} posts into {result.output_dir}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides folio.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides folio.yaml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    server = DevServer(project_root, http_port=port, ws_port=ws_port)
    try:
        server.start(include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None


@cli.command(name="list")
@click.option("--drafts", is_flag=True, help="Include draft posts")
def list_posts(drafts: bool):
    """Print every post, newest first."""
    project_root = Path.cwd()
    try:
        site = load_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    metadata = site.registry.list_all()
    if not metadata:
        click.echo("No posts found.")
        return
    width = max(len(item.date) for item in metadata)
    for item in metadata:
        click.echo(f"{item.date.ljust(width)}  {item.name}  {click.style(item.url, fg='cyan')}")


@cli.command()
@click.argument("post_id")
@click.option("--drafts", is_flag=True, help="Include draft posts")
def show(post_id: str, drafts: bool):
    """Print the details of the post registered as POST_ID."""
    project_root = Path.cwd()
    try:
        site = load_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    try:
        entry = site.registry.resolve(post_id)
    except PostNotFoundError as exc:
        raise click.ClickException(f"Post not found: {exc.post_id}") from None
    click.echo(f"id:     {entry.id}")
    click.echo(f"title:  {entry.metadata.name}")
    click.echo(f"date:   {entry.metadata.date}")
    click.echo(f"url:    {entry.metadata.url}")
    click.echo(f"layout: {entry.layout.value}")
    if entry.gallery:
        click.echo(f"images: {entry.gallery}")


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    config = load_config(project_root)
    content_dir = project_root / config["content_dir"]
    if not (project_root / "folio.yaml").exists():
        raise click.ClickException(
            "No folio.yaml found. Run this command from a Folio project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    gallery_titles = config.get("gallery_titles") or []
    default_layout = select_layout(title, gallery_titles)
    layout = questionary.select(
        "Layout:",
        choices=[kind.value for kind in LayoutKind],
        default=default_layout.value,
        style=_questionary_style(),
    ).ask()
    if layout is None:
        raise click.Abort()

    post_id = slugify(title)
    blog_prefix = normalize_url(str(config["blog_prefix"])).rstrip("/")
    target_path = content_dir / f"{post_id}.md"
    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(project_root)}"
        )
    try:
        existing = load_site(project_root, include_drafts=True).registry
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    if post_id in existing:
        conflicting = existing.resolve(post_id).source
        where = f": {conflicting.name}" if conflicting else ""
        raise click.ClickException(
            f"A post with id '{post_id}' already exists{where}"
        )

    today = datetime.now()
    frontmatter = {
        "title": title,
        "date": f"{today.month}-{today.day}-{today.year}",
        "path": f"{blog_prefix}/{post_id}",
        "layout": layout,
    }
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)

    content_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(f"---\n{header}---\n\n", encoding="utf-8")
    if layout == LayoutKind.GALLERY.value:
        (project_root / config["images_dir"] / post_id).mkdir(parents=True, exist_ok=True)
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _report_build_error(exc: BuildError, project_root: Path) -> None:
    """Display a user-friendly build error."""
    try:
        rel_path = exc.source_path.relative_to(project_root)
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Folio project.

    Args:
        root: Root directory for the new project.
    """
    for rel_path, content in _SCAFFOLD_FILES.items():
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_text(content, encoding="utf-8")
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("FOLIO_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        click.echo("git init failed; run it manually if you want a repository.", err=True)
