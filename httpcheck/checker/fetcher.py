"""
URL check engine: single-URL HTTP checks with retries and redirect following.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .. import __version__
from ..utils.logger import get_checker_logger


DEFAULT_USER_AGENT = f"httpcheck/{__version__}"

REDIRECT_STATUSES = (301, 302, 307, 308)

STATUS_TEXTS = {
    200: 'OK',
    201: 'Created',
    204: 'No Content',
    301: 'Moved Permanently',
    302: 'Found',
    304: 'Not Modified',
    307: 'Temporary Redirect',
    308: 'Permanent Redirect',
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    405: 'Method Not Allowed',
    429: 'Too Many Requests',
    500: 'Internal Server Error',
    502: 'Bad Gateway',
    503: 'Service Unavailable',
    504: 'Gateway Timeout',
}


def status_text_for(status: int) -> str:
    """Look up the reason phrase for a status code."""
    return STATUS_TEXTS.get(status, 'Unknown')


def merge_headers(defaults: Dict[str, str], overrides: Dict[str, str]) -> Dict[str, str]:
    """Merge request headers, letting overrides replace defaults case-insensitively."""
    override_keys = {key.lower() for key in overrides}
    merged = {key: value for key, value in defaults.items() if key.lower() not in override_keys}
    merged.update(overrides)
    return merged


def flatten_headers(headers) -> Dict[str, str]:
    """
    Collapse a response multidict into a plain dict.

    Repeated fields (e.g. several Set-Cookie lines) are joined with ", "
    under the first spelling of the name.
    """
    flat: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for key, value in headers.items():
        name = names.setdefault(key.lower(), key)
        if name in flat:
            flat[name] = f"{flat[name]}, {value}"
        else:
            flat[name] = value
    return flat


def find_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup on a plain dict."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


@dataclass(frozen=True)
class CheckRequest:
    """Everything needed to check one URL."""
    url: str
    method: str = 'GET'
    headers: Dict[str, str] = field(default_factory=dict)
    timeout_ms: int = 10000
    max_retries: int = 1
    follow_redirects: bool = True
    max_redirects: int = 10
    retry_delay: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def total_attempts(self) -> int:
        # max_retries counts every attempt, including the first
        return max(1, self.max_retries)

    def request_headers(self) -> Dict[str, str]:
        defaults = {
            'User-Agent': self.user_agent,
            'Accept': '*/*',
            'Connection': 'close',
        }
        return merge_headers(defaults, self.headers)


@dataclass(frozen=True)
class RedirectHop:
    """One followed redirect."""
    from_url: str
    to_url: str
    status: int

    def to_dict(self) -> dict:
        return {'from': self.from_url, 'to': self.to_url, 'status': self.status}


@dataclass(frozen=True)
class CheckResult:
    """Terminal outcome of checking one URL, including its redirect chain."""
    url: str
    status: int
    status_text: str
    response_time_ms: int
    size_bytes: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    redirects: Tuple[RedirectHop, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_failure(self) -> bool:
        return self.status == 0 or self.status >= 400

    @property
    def status_class(self) -> str:
        """Bucket name used by summaries and metrics."""
        if self.status == 0:
            return 'failed'
        if self.status < 200:
            # 1xx never ends a check in practice; kept out of every bucket
            return 'informational'
        if self.status < 300:
            return 'success'
        if self.status < 400:
            return 'redirect'
        if self.status < 500:
            return 'client_error'
        return 'server_error'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the export representation."""
        return {
            'url': self.url,
            'status': self.status,
            'statusText': self.status_text,
            'responseTime': self.response_time_ms,
            'size': self.size_bytes,
            'headers': dict(self.headers),
            'redirects': [hop.to_dict() for hop in self.redirects],
            'error': self.error,
        }


@dataclass
class HopOutcome:
    """Result of fetching a single hop after retries."""
    url: str
    status: int
    status_text: str
    elapsed_ms: int
    size_bytes: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


class URLChecker:
    """
    Checks URLs over HTTP(S) with per-attempt timeouts, linear retry backoff
    and bounded redirect following.
    """

    def __init__(self, concurrency: int = 5, monitor=None,
                 session: Optional[ClientSession] = None):
        self.concurrency = concurrency
        self.monitor = monitor

        self.logger = get_checker_logger(__name__)

        self.session: Optional[ClientSession] = session
        self._owns_session = session is None

        self.stats = {
            'checks': 0,
            'attempts': 0,
            'retries': 0,
            'redirects_followed': 0,
            'failed_attempts': 0,
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Open the shared HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(
                    limit=self.concurrency,
                    force_close=True,
                ),
                auto_decompress=False,
            )
            self._owns_session = True
            self.logger.debug("URLChecker session started")

    async def close(self):
        """Close the shared HTTP session if this checker opened it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            self.logger.debug("URLChecker session closed")

    async def check_url(self, request: CheckRequest) -> CheckResult:
        """
        Check one URL, following its redirect chain.

        Args:
            request: The URL and check settings

        Returns:
            CheckResult for the initial URL. Failures are reported through
            ``status == 0`` and ``error``; this method does not raise.
        """
        if self.session is None:
            await self.start()

        self.stats['checks'] += 1

        current_url = request.url
        redirects: List[RedirectHop] = []
        total_ms = 0

        while True:
            hop = await self._fetch_with_retries(current_url, request)
            total_ms += hop.elapsed_ms

            if hop.error is not None:
                break

            location = find_header(hop.headers, 'Location')
            if not (request.follow_redirects
                    and hop.status in REDIRECT_STATUSES
                    and location):
                break

            if len(redirects) >= request.max_redirects:
                self.logger.log_url_event(
                    logging.DEBUG, request.url,
                    f"Redirect limit ({request.max_redirects}) reached at {current_url}"
                )
                break

            try:
                next_url = urljoin(current_url, location)
            except ValueError as e:
                self.logger.log_url_event(
                    logging.INFO, request.url,
                    f"Invalid redirect location {location!r} from {current_url}: {e}"
                )
                hop = HopOutcome(
                    url=current_url,
                    status=0,
                    status_text='Error',
                    elapsed_ms=0,
                    error=f"Invalid redirect location {location!r}: {e}",
                )
                break

            redirects.append(RedirectHop(from_url=current_url, to_url=next_url, status=hop.status))
            self.stats['redirects_followed'] += 1
            if self.monitor:
                self.monitor.record_redirect()
            self.logger.log_url_event(
                logging.DEBUG, request.url,
                f"Following {hop.status} redirect {current_url} -> {next_url}"
            )
            current_url = next_url

        result = CheckResult(
            url=request.url,
            status=hop.status,
            status_text=hop.status_text,
            response_time_ms=total_ms,
            size_bytes=hop.size_bytes,
            headers=hop.headers,
            redirects=tuple(redirects),
            error=hop.error,
        )

        if self.monitor:
            self.monitor.record_check(result)

        return result

    async def _fetch_with_retries(self, url: str, request: CheckRequest) -> HopOutcome:
        """Fetch one hop, retrying failed attempts with linear backoff."""
        attempts = request.total_attempts
        attempt = 1

        while True:
            outcome = await self._attempt(url, request)
            if outcome.error is None or attempt >= attempts:
                if outcome.error is not None:
                    self.logger.log_url_event(
                        logging.INFO, request.url,
                        f"Giving up on {url} after {attempt} attempt(s): {outcome.error}"
                    )
                return outcome

            delay = request.retry_delay * attempt
            self.logger.log_url_event(
                logging.INFO, request.url,
                f"Attempt {attempt}/{attempts} for {url} failed ({outcome.error}), "
                f"retrying in {delay:.1f}s"
            )
            self.stats['retries'] += 1
            if self.monitor:
                self.monitor.record_retry()

            await self._backoff(delay)
            attempt += 1

    async def _backoff(self, delay: float):
        await asyncio.sleep(delay)

    async def _attempt(self, url: str, request: CheckRequest) -> HopOutcome:
        """Perform a single request and read the complete body."""
        self.stats['attempts'] += 1
        if self.monitor:
            self.monitor.record_attempt()

        timeout = ClientTimeout(total=request.timeout_ms / 1000)
        start_time = time.perf_counter()

        try:
            async with self.session.request(
                request.method,
                url,
                headers=request.request_headers(),
                timeout=timeout,
                allow_redirects=False,
            ) as response:
                body = await response.read()
                elapsed_ms = int((time.perf_counter() - start_time) * 1000)

                self.logger.debug(
                    f"{request.method} {url}: {response.status} ({len(body)} bytes, {elapsed_ms}ms)"
                )

                return HopOutcome(
                    url=url,
                    status=response.status,
                    status_text=status_text_for(response.status),
                    elapsed_ms=elapsed_ms,
                    size_bytes=len(body),
                    headers=flatten_headers(response.headers),
                )

        except asyncio.TimeoutError:
            self.stats['failed_attempts'] += 1
            self.logger.debug(f"Timeout after {request.timeout_ms}ms: {url}")
            return HopOutcome(
                url=url,
                status=0,
                status_text='Timeout',
                elapsed_ms=request.timeout_ms,
                error='Request timeout',
            )

        except (ClientError, OSError, ValueError) as e:
            self.stats['failed_attempts'] += 1
            error_msg = str(e) or e.__class__.__name__
            self.logger.debug(f"Request error for {url}: {error_msg}")

        except Exception as e:
            self.stats['failed_attempts'] += 1
            error_msg = f"Unexpected error: {e}"
            self.logger.error(f"Unexpected error checking {url}: {e}", exc_info=True)

        return HopOutcome(
            url=url,
            status=0,
            status_text='Error',
            elapsed_ms=int((time.perf_counter() - start_time) * 1000),
            error=error_msg,
        )

    def get_stats(self) -> Dict[str, int]:
        """Get checker statistics."""
        return self.stats.copy()
