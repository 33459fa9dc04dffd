"""Data output components."""

from .report import RunReport, write_report
from .writer import SourceWriter

__all__ = ['RunReport', 'SourceWriter', 'write_report']
