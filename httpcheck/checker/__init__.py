"""
URL checking core components.
"""

from .fetcher import URLChecker, CheckRequest, CheckResult, RedirectHop
from .scheduler import CheckScheduler, RunSummary, summarize
from .url_source import URLSourceError, collect_urls, read_urls_from_file, is_valid_url

__all__ = [
    'URLChecker', 'CheckRequest', 'CheckResult', 'RedirectHop',
    'CheckScheduler', 'RunSummary', 'summarize',
    'URLSourceError', 'collect_urls', 'read_urls_from_file', 'is_valid_url'
]
