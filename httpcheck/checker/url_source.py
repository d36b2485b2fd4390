"""
URL input handling: validation of command-line URLs and URL-list files.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlparse


logger = logging.getLogger(__name__)

SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)


class URLSourceError(Exception):
    """Raised when URLs cannot be loaded."""
    pass


def is_valid_url(url: str) -> bool:
    """Check that a string is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
        # Accessing port validates it
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.hostname)


def normalize_url(line: str) -> str:
    """Assume https:// for entries that carry no scheme."""
    if not SCHEME_RE.match(line):
        return f"https://{line}"
    return line


def parse_url_lines(lines: Iterable[str]) -> List[str]:
    """
    Turn URL-list lines into URLs.

    Blank lines and lines starting with ``#`` are skipped, surrounding
    whitespace is stripped and bare hosts get an https scheme.
    """
    urls = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        urls.append(normalize_url(line))
    return urls


def read_urls_from_file(file_path: str) -> List[str]:
    """
    Read URLs from a file, one per line.

    Args:
        file_path: Path to the URL list

    Returns:
        URLs in file order

    Raises:
        URLSourceError: If the file does not exist or cannot be read
    """
    path = Path(file_path)
    if not path.is_file():
        raise URLSourceError(f"File not found: {file_path}")

    try:
        content = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise URLSourceError(f"Cannot read {file_path}: {e}") from e

    urls = parse_url_lines(content.splitlines())
    logger.debug(f"Loaded {len(urls)} URL(s) from {file_path}")
    return urls


def collect_urls(cli_urls: Iterable[str], file_path: Optional[str] = None) -> List[str]:
    """
    Gather URLs from positional arguments followed by an optional URL file.

    Positional arguments that are not absolute http(s) URLs are skipped with
    a warning. File entries are taken as-is after scheme defaulting.
    """
    urls = []
    for url in cli_urls:
        if is_valid_url(url):
            urls.append(url)
        else:
            logger.warning(f"Skipping invalid URL: {url}")

    if file_path:
        urls.extend(read_urls_from_file(file_path))

    return urls
