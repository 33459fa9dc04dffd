"""Filesystem helpers."""

from .paths import get_default_output_dir, resolve_destination

__all__ = ['get_default_output_dir', 'resolve_destination']
