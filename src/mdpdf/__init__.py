"""Markdown to PDF rendering."""

from .render import LayoutSettings, convert_file, default_output_path, render_markdown

__version__ = "0.1.0"

__all__ = ["LayoutSettings", "convert_file", "default_output_path", "render_markdown"]
