"""Bridges to external capabilities (content retrieval)."""

from stillframe.bridge.http_fetcher import FetchError, HttpFetcher, MappingFetcher

__all__ = ["FetchError", "HttpFetcher", "MappingFetcher"]
