"""
Result export backends.
Supports JSON and CSV output files.
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

from ..checker.fetcher import CheckResult


CSV_HEADER = ['URL', 'Status', 'Status Text', 'Response Time (ms)', 'Size (bytes)', 'Error']


class ExportError(Exception):
    """Custom exception for export operations."""
    pass


class Exporter:
    """Abstract base class for export formats."""

    name = ''

    def render(self, results: List[CheckResult]) -> str:
        """Render results to the export text."""
        raise NotImplementedError


class JSONExporter(Exporter):
    """Pretty-printed JSON array of results."""

    name = 'json'

    def render(self, results: List[CheckResult]) -> str:
        return json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False) + '\n'


class CSVExporter(Exporter):
    """One row per result; text fields are always quoted."""

    name = 'csv'

    def render(self, results: List[CheckResult]) -> str:
        buffer = io.StringIO()

        header_writer = csv.writer(buffer, lineterminator='\n')
        header_writer.writerow(CSV_HEADER)

        row_writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator='\n')
        for result in results:
            row_writer.writerow([
                result.url,
                result.status,
                result.status_text,
                result.response_time_ms,
                result.size_bytes,
                result.error or '',
            ])

        return buffer.getvalue()


EXPORTERS: Dict[str, Type[Exporter]] = {
    JSONExporter.name: JSONExporter,
    CSVExporter.name: CSVExporter,
}


def get_exporter(format_name: str) -> Exporter:
    """
    Look up the exporter for a format name.

    Raises:
        ExportError: If the format is not exportable
    """
    exporter_cls = EXPORTERS.get(format_name)
    if exporter_cls is None:
        raise ExportError(f"Unknown format: {format_name}")
    return exporter_cls()


def export_results(results: List[CheckResult], format_name: str,
                   output_path: Optional[str] = None) -> str:
    """
    Render results and write them to ``output_path`` when given.

    Args:
        results: Results to export
        format_name: 'json' or 'csv'
        output_path: Destination file, or None to only render

    Returns:
        The rendered export text
    """
    content = get_exporter(format_name).render(results)

    if output_path:
        try:
            path = Path(output_path)
            if path.parent != Path('.'):
                path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise ExportError(f"Cannot write {output_path}: {e}") from e

        logging.getLogger(__name__).info(f"Exported {len(results)} result(s) to {output_path}")

    return content
