"""Stillframe: durable preservation and verified retrieval of a single image.

- Compressed thumbnail held in an append-only, size-bounded chunk store
- Ordered artist and collector source lists
- Fail-closed, first-match SHA-256 verification across mutable locations
- Direct / verified display modes gated by an injected writer capability
"""

__version__ = "0.1.0"
__description__ = (
    "Durable chunked thumbnail storage and digest-verified source retrieval"
)

from stillframe.core.preserver import ArtifactPreserver

__all__ = ["ArtifactPreserver", "__version__"]
