"""Fetcher backends: HTTP retrieval via requests, plus an in-memory map.

Bridge boundary
---------------
``RetrievalVerifier`` depends only on the ``Fetcher`` protocol.  This
module provides the production backend (``HttpFetcher``) and a
deterministic in-memory backend (``MappingFetcher``) for demos and tests.

Supported URI schemes for ``HttpFetcher``:

- ``http://`` and ``https://``: fetched directly
- ``ipfs://<cid>[/path]``: rewritten onto the configured IPFS gateway
- ``ar://<tx-id>``: rewritten onto the configured Arweave gateway

Anything else raises ``FetchError``; the verifier records it as a failed
candidate and moves on.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

import requests

from stillframe import __version__

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Raised when a candidate location cannot be retrieved."""


class HttpFetcher:
    """Fetch candidate content over HTTP(S) within a per-call deadline.

    The body is streamed.  *timeout* bounds the whole fetch, not just each
    socket read: the deadline and the size cap are checked after every
    piece, so a slow-drip server or an oversized body is cut off early.

    Parameters
    ----------
    session:
        A ``requests.Session`` to reuse connections.  A new one is
        created if not provided.
    ipfs_gateway, arweave_gateway:
        Base URLs that ``ipfs://`` and ``ar://`` URIs are rewritten onto.
    user_agent:
        Value of the ``User-Agent`` header.
    max_bytes:
        Responses larger than this are rejected.
    chunk_size:
        Bytes requested per streamed read.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        ipfs_gateway: str = "https://ipfs.io/ipfs/",
        arweave_gateway: str = "https://arweave.net/",
        user_agent: str = f"stillframe/{__version__}",
        max_bytes: int = 64 * 1024 * 1024,
        chunk_size: int = 8192,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._ipfs_gateway = ipfs_gateway.rstrip("/") + "/"
        self._arweave_gateway = arweave_gateway.rstrip("/") + "/"
        self._headers = {"User-Agent": user_agent}
        self._max_bytes = max_bytes
        self._chunk_size = chunk_size

    def resolve_url(self, uri: str) -> str:
        """Map a candidate URI onto the HTTP(S) URL that serves it."""
        if uri.startswith(("http://", "https://")):
            return uri
        if uri.startswith("ipfs://"):
            return self._ipfs_gateway + uri.removeprefix("ipfs://").removeprefix("ipfs/")
        if uri.startswith("ar://"):
            return self._arweave_gateway + uri.removeprefix("ar://")
        raise FetchError(f"Unsupported URI scheme: {uri!r}")

    def fetch(self, uri: str, *, timeout: float) -> bytes:
        """Return the body served at *uri*.

        Raises
        ------
        FetchError
            On an unsupported scheme, a transport error, a non-2xx status,
            an oversized body, or when the whole fetch outlasts *timeout*.
        """
        url = self.resolve_url(uri)
        deadline = time.monotonic() + timeout
        try:
            with self._session.get(
                url, headers=self._headers, timeout=timeout, stream=True
            ) as response:
                if not 200 <= response.status_code < 300:
                    raise FetchError(f"GET {url} returned HTTP {response.status_code}")
                declared = response.headers.get("Content-Length")
                if declared is not None and declared.isdigit():
                    if int(declared) > self._max_bytes:
                        raise FetchError(
                            f"GET {url} declares {declared} bytes "
                            f"(limit {self._max_bytes})"
                        )
                body = bytearray()
                for piece in response.iter_content(chunk_size=self._chunk_size):
                    body += piece
                    if len(body) > self._max_bytes:
                        raise FetchError(
                            f"GET {url} body over the limit of {self._max_bytes} bytes"
                        )
                    if time.monotonic() > deadline:
                        raise FetchError(f"GET {url} exceeded the {timeout}s deadline")
        except requests.RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc

        logger.debug("Fetched %d bytes from %s", len(body), url)
        return bytes(body)


class MappingFetcher:
    """In-memory fetcher backed by a ``uri -> bytes`` mapping.

    A value that is an exception instance is raised instead of returned,
    which simulates an unreachable or timed-out location.  Every call is
    recorded in ``calls`` in order.
    """

    def __init__(self, mapping: Mapping[str, bytes | Exception]) -> None:
        self._mapping = dict(mapping)
        self.calls: list[str] = []

    def fetch(self, uri: str, *, timeout: float) -> bytes:
        self.calls.append(uri)
        if uri not in self._mapping:
            raise FetchError(f"No content for {uri!r}")
        value = self._mapping[uri]
        if isinstance(value, Exception):
            raise value
        return value
