"""Folio portfolio and blog generator.

This package builds a personal portfolio and blog from Markdown posts and Jinja2 templates.
Posts are loaded once into an immutable entry registry which answers two questions:
which post lives at an identifier, and what does the listing page show.

The main entry point is the CLI module, which provides commands for scaffolding new projects,
building sites, writing posts and running the development server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
