"""Tests for the HTTP and in-memory fetchers."""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from stillframe.bridge.http_fetcher import FetchError, HttpFetcher, MappingFetcher


def _response(
    status: int = 200, content: bytes = b"body", headers: dict | None = None
) -> MagicMock:
    response = MagicMock()
    response.__enter__.return_value = response
    response.status_code = status
    response.headers = headers or {}
    response.iter_content.return_value = iter([content])
    return response


class _SlowDripHandler(BaseHTTPRequestHandler):
    """Sends an 8-byte body one byte every 0.3 seconds."""

    def do_GET(self) -> None:
        self.send_response(200)
        self.send_header("Content-Length", "8")
        self.end_headers()
        for _ in range(8):
            self.wfile.write(b"x")
            self.wfile.flush()
            time.sleep(0.3)

    def log_message(self, format: str, *args) -> None:
        pass


@pytest.fixture
def slow_server() -> Iterator[str]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SlowDripHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/slow"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.get.return_value = _response()
    return session


class TestResolveUrl:
    def test_http_passthrough(self, session):
        fetcher = HttpFetcher(session)
        assert fetcher.resolve_url("https://x.test/a.png") == "https://x.test/a.png"
        assert fetcher.resolve_url("http://x.test/a.png") == "http://x.test/a.png"

    def test_ipfs_rewritten(self, session):
        fetcher = HttpFetcher(session, ipfs_gateway="https://gw.test/ipfs")
        assert fetcher.resolve_url("ipfs://bafy/img.png") == "https://gw.test/ipfs/bafy/img.png"
        assert fetcher.resolve_url("ipfs://ipfs/bafy") == "https://gw.test/ipfs/bafy"

    def test_arweave_rewritten(self, session):
        fetcher = HttpFetcher(session, arweave_gateway="https://ar.test/")
        assert fetcher.resolve_url("ar://tx123") == "https://ar.test/tx123"

    @pytest.mark.parametrize("uri", ["ftp://x/y", "file:///etc/passwd", "data:,hi", "x"])
    def test_unsupported_scheme(self, session, uri: str):
        with pytest.raises(FetchError, match="Unsupported"):
            HttpFetcher(session).resolve_url(uri)


class TestHttpFetch:
    def test_returns_body_and_passes_timeout(self, session):
        fetcher = HttpFetcher(session, user_agent="test-agent")
        assert fetcher.fetch("https://x.test/a", timeout=3.0) == b"body"
        session.get.assert_called_once_with(
            "https://x.test/a",
            headers={"User-Agent": "test-agent"},
            timeout=3.0,
            stream=True,
        )

    @pytest.mark.parametrize("status", [301, 404, 500])
    def test_non_2xx_raises(self, session, status: int):
        session.get.return_value = _response(status)
        with pytest.raises(FetchError, match=str(status)):
            HttpFetcher(session).fetch("https://x.test/a", timeout=1.0)

    def test_transport_error_wrapped(self, session):
        session.get.side_effect = requests.ConnectTimeout("slow")
        with pytest.raises(FetchError) as exc_info:
            HttpFetcher(session).fetch("https://x.test/a", timeout=1.0)
        assert isinstance(exc_info.value.__cause__, requests.ConnectTimeout)

    def test_oversized_body_rejected(self, session):
        session.get.return_value = _response(content=b"x" * 11)
        with pytest.raises(FetchError, match="limit"):
            HttpFetcher(session, max_bytes=10).fetch("https://x.test/a", timeout=1.0)

    def test_declared_length_over_limit_rejected_before_reading(self, session):
        response = _response(headers={"Content-Length": "11"})
        session.get.return_value = response
        with pytest.raises(FetchError, match="limit"):
            HttpFetcher(session, max_bytes=10).fetch("https://x.test/a", timeout=1.0)
        response.iter_content.assert_not_called()

    def test_streamed_body_stops_at_limit(self, session):
        response = _response()
        response.iter_content.return_value = iter([b"x" * 6, b"x" * 6, b"never"])
        session.get.return_value = response
        with pytest.raises(FetchError, match="limit"):
            HttpFetcher(session, max_bytes=10).fetch("https://x.test/a", timeout=1.0)

    def test_pieces_concatenated(self, session):
        response = _response()
        response.iter_content.return_value = iter([b"ab", b"", b"cd"])
        session.get.return_value = response
        assert HttpFetcher(session).fetch("https://x.test/a", timeout=1.0) == b"abcd"

    def test_deadline_covers_whole_body(self, session, monkeypatch: pytest.MonkeyPatch):
        response = _response()
        response.iter_content.return_value = iter([b"a", b"b", b"c"])
        session.get.return_value = response
        ticks = itertools.count()
        monkeypatch.setattr(
            "stillframe.bridge.http_fetcher.time.monotonic",
            lambda: 100.0 + 0.4 * next(ticks),
        )
        with pytest.raises(FetchError, match="deadline"):
            HttpFetcher(session).fetch("https://x.test/a", timeout=0.5)

    def test_mid_stream_error_wrapped(self, session):
        response = _response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError(
            "reset"
        )
        session.get.return_value = response
        with pytest.raises(FetchError, match="failed"):
            HttpFetcher(session).fetch("https://x.test/a", timeout=1.0)

    def test_response_closed_on_error(self, session):
        response = _response(status=500)
        session.get.return_value = response
        with pytest.raises(FetchError):
            HttpFetcher(session).fetch("https://x.test/a", timeout=1.0)
        response.__exit__.assert_called_once()

    def test_unsupported_scheme_never_hits_network(self, session):
        with pytest.raises(FetchError):
            HttpFetcher(session).fetch("gopher://x", timeout=1.0)
        session.get.assert_not_called()


class TestSlowServer:
    def test_slow_drip_exceeds_whole_fetch_timeout(self, slow_server: str):
        with pytest.raises(FetchError):
            HttpFetcher().fetch(slow_server, timeout=0.5)


class TestMappingFetcher:
    def test_returns_and_records(self):
        fetcher = MappingFetcher({"a": b"1"})
        assert fetcher.fetch("a", timeout=1.0) == b"1"
        assert fetcher.calls == ["a"]

    def test_missing_key(self):
        with pytest.raises(FetchError):
            MappingFetcher({}).fetch("a", timeout=1.0)

    def test_exception_value_raised(self):
        fetcher = MappingFetcher({"a": TimeoutError("t")})
        with pytest.raises(TimeoutError):
            fetcher.fetch("a", timeout=1.0)
