"""
Terminal rendering of live check results and run summaries.
"""

import os
import sys
from typing import List, Optional, TextIO

from ..checker.fetcher import CheckResult
from ..checker.scheduler import RunSummary


COLORS = {
    'reset': '\x1b[0m',
    'red': '\x1b[31m',
    'green': '\x1b[32m',
    'yellow': '\x1b[33m',
    'magenta': '\x1b[35m',
    'cyan': '\x1b[36m',
    'gray': '\x1b[90m',
}


def should_use_color(stream: TextIO, requested: Optional[bool] = None) -> bool:
    """Decide on colour: an explicit choice wins, otherwise TTY without NO_COLOR."""
    if requested is not None:
        return requested
    if os.environ.get('NO_COLOR'):
        return False
    isatty = getattr(stream, 'isatty', None)
    return bool(isatty and isatty())


def paint(text: str, color_name: str, color: bool) -> str:
    if not color:
        return text
    return f"{COLORS[color_name]}{text}{COLORS['reset']}"


def status_color(status: int) -> str:
    if 200 <= status < 300:
        return 'green'
    if 300 <= status < 400:
        return 'yellow'
    if status >= 400:
        return 'red'
    return 'gray'


def time_color(response_time_ms: int) -> str:
    if response_time_ms < 500:
        return 'green'
    if response_time_ms < 2000:
        return 'yellow'
    return 'red'


def format_result(result: CheckResult, color: bool = False) -> str:
    """One-line summary of a result: ``[status] url (Nms)`` plus error or redirects."""
    line = f"{paint(f'[{result.status}]', status_color(result.status), color)} {result.url}"
    line += f" {paint(f'({result.response_time_ms}ms)', time_color(result.response_time_ms), color)}"

    if result.error:
        line += f" {paint(f'✗ {result.error}', 'red', color)}"
    elif result.redirects:
        line += f" {paint(f'→ {len(result.redirects)} redirect(s)', 'yellow', color)}"

    return line


def format_redirects(result: CheckResult, color: bool = False) -> List[str]:
    return [
        '    ' + paint(f"→ {hop.from_url} → {hop.to_url} ({hop.status})", 'gray', color)
        for hop in result.redirects
    ]


def format_summary(summary: RunSummary, color: bool = False) -> List[str]:
    counts = ' | '.join([
        f"Total: {summary.total}",
        paint(f"OK: {summary.successful}", 'green', color),
        paint(f"Redirects: {summary.redirects}", 'yellow', color),
        paint(f"Client Errors: {summary.client_errors}", 'red', color),
        paint(f"Server Errors: {summary.server_errors}", 'magenta', color),
        paint(f"Failed: {summary.failed}", 'gray', color),
    ])
    return [
        '',
        paint('Summary:', 'cyan', color),
        f"  {counts}",
        f"  Average response time: {round(summary.average_response_time_ms)}ms",
    ]


class ConsoleRenderer:
    """
    Prints live results and the final summary.

    In quiet mode only failing results are printed. In verbose mode each
    followed redirect gets its own line under the result.
    """

    def __init__(self, stream: Optional[TextIO] = None, color: bool = False,
                 verbose: bool = False, quiet: bool = False):
        self.stream = stream or sys.stdout
        self.color = color
        self.verbose = verbose
        self.quiet = quiet

    def _write(self, line: str = ''):
        print(line, file=self.stream, flush=True)

    def print_header(self, url_count: int):
        if not self.quiet:
            self._write(paint(f"Checking {url_count} URL(s)...", 'cyan', self.color))
            self._write()

    def print_result(self, result: CheckResult):
        if self.quiet and not result.is_failure:
            return

        self._write(format_result(result, self.color))

        if self.verbose:
            for line in format_redirects(result, self.color):
                self._write(line)

    def print_summary(self, summary: RunSummary):
        if self.quiet:
            return
        for line in format_summary(summary, self.color):
            self._write(line)

    def print_saved(self, output_path: str):
        if self.quiet:
            return
        self._write()
        self._write(paint(f"✓ Results saved to {output_path}", 'green', self.color))
