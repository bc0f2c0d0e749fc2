"""Display package - holds the page template renderer and context builder."""

from pwsdash.display.render import DashboardContextBuilder, TemplateRenderer

__all__ = ["DashboardContextBuilder", "TemplateRenderer"]
