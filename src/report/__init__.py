"""Report model and rendering."""

from report.models import Report
from report.render import render_text

__all__ = ["Report", "render_text"]
