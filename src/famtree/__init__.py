"""Family tree reconstruction, layout and rendering."""

__version__ = "0.1.0"
