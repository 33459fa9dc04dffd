"""Snatcher - rebuild a site's original sources from its production sourcemap."""

__version__ = "0.1.0"
