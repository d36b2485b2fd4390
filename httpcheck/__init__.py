"""
httpcheck

Command-line HTTP status checker: response codes, timings and redirect
chains for many URLs at once.
"""

__version__ = "1.0.0"
__description__ = "Check HTTP status, response time and redirects for a list of URLs"
