"""Pytest configuration and fixtures."""

import asyncio
import logging
import socket

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer


async def ok_handler(request):
    return web.Response(text="hello world")


async def not_found_handler(request):
    return web.Response(status=404, text="missing")


async def server_error_handler(request):
    return web.Response(status=503, text="down")


async def redirect_handler(request):
    return web.Response(status=302, headers={'Location': '/ok'})


async def relative_redirect_handler(request):
    # Resolved against /nested/relative -> /nested/target
    return web.Response(status=301, headers={'Location': 'target'})


async def nested_target_handler(request):
    return web.Response(status=200, text="nested")


async def loop_handler(request):
    n = int(request.match_info['n'])
    return web.Response(status=302, headers={'Location': f'/loop/{n + 1}'})


async def chain_handler(request):
    n = int(request.match_info['n'])
    if n == 0:
        return web.Response(text="end of chain")
    return web.Response(status=307, headers={'Location': f'/chain/{n - 1}'})


async def no_location_handler(request):
    return web.Response(status=302)


async def redirect_to_missing_handler(request):
    return web.Response(status=308, headers={'Location': '/not-found'})


async def bad_location_handler(request):
    return web.Response(status=302, headers={'Location': 'http://[bad'})


async def redirect_to_handler(request):
    return web.Response(status=302, headers={'Location': request.query['target']})


async def slow_redirect_handler(request):
    await asyncio.sleep(0.5)
    return web.Response(status=302, headers={'Location': '/slow'})


async def cookies_handler(request):
    response = web.Response(text="cookies")
    response.set_cookie('first', '1')
    response.set_cookie('second', '2')
    return response


async def slow_handler(request):
    await asyncio.sleep(1)
    return web.Response(text="slow")


async def echo_handler(request):
    return web.Response(
        text=request.method,
        headers={
            'X-Seen-User-Agent': request.headers.get('User-Agent', ''),
            'X-Seen-Accept': request.headers.get('Accept', ''),
            'X-Seen-Custom': request.headers.get('X-Custom', ''),
        },
    )


def make_flaky_handler(slow_calls: int):
    """Handler that is too slow for the first ``slow_calls`` requests."""
    state = {'calls': 0}

    async def handler(request):
        state['calls'] += 1
        if state['calls'] <= slow_calls:
            await asyncio.sleep(1)
        return web.Response(text="recovered")

    return handler


def build_app() -> web.Application:
    app = web.Application()
    app.router.add_route('*', '/ok', ok_handler)
    app.router.add_get('/not-found', not_found_handler)
    app.router.add_get('/server-error', server_error_handler)
    app.router.add_get('/redirect', redirect_handler)
    app.router.add_get('/nested/relative', relative_redirect_handler)
    app.router.add_get('/nested/target', nested_target_handler)
    app.router.add_get('/loop/{n}', loop_handler)
    app.router.add_get('/chain/{n}', chain_handler)
    app.router.add_get('/no-location', no_location_handler)
    app.router.add_get('/redirect-to-missing', redirect_to_missing_handler)
    app.router.add_get('/slow', slow_handler)
    app.router.add_get('/bad-location', bad_location_handler)
    app.router.add_get('/redirect-to', redirect_to_handler)
    app.router.add_get('/slow-redirect', slow_redirect_handler)
    app.router.add_get('/cookies', cookies_handler)
    app.router.add_route('*', '/echo', echo_handler)
    app.router.add_get('/flaky', make_flaky_handler(slow_calls=1))
    return app


@pytest_asyncio.fixture
async def http_server():
    """Local HTTP server with the routes above."""
    server = TestServer(build_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def url_for(http_server):
    """Build an absolute URL on the test server."""
    def build(path: str) -> str:
        return str(http_server.make_url(path))
    return build


@pytest.fixture
def refused_url():
    """URL on a local port with nothing listening."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/"


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
