"""
Output layer: terminal rendering and result export.
"""

from .exporter import ExportError, export_results, get_exporter
from .renderer import ConsoleRenderer, should_use_color

__all__ = ['ExportError', 'export_results', 'get_exporter', 'ConsoleRenderer', 'should_use_color']
