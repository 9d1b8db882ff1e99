"""Retrieval verifier: the trust anchor for displayed content.

Walks the candidate list in priority order, fetches each location, and
accepts the first whose SHA-256 digest equals the expected digest.
Verification is content-addressed: stale, offline or adversarial
candidates cannot affect the outcome as long as one live candidate
serves exactly the expected bytes.

Fail-closed rules
-----------------
- An empty or unset expected digest accepts nothing and fetches nothing.
- Exhausting the candidates raises ``NoVerifiedSourceAvailableError``;
  there is never a fallback to unverified content.

Speculative mode (``max_workers > 1``) fetches candidates concurrently
but still returns the lowest-index verified candidate: candidate *i* is
only accepted after every candidate below *i* has completed and failed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol, runtime_checkable

from stillframe.core.hasher import normalize_digest, sha256_hex
from stillframe.models.sources import SourceEntry
from stillframe.models.verification import (
    AttemptOutcome,
    FailureReason,
    FetchAttempt,
    VerificationResult,
)

logger = logging.getLogger(__name__)

_AttemptResult = tuple[FetchAttempt, bytes | None]


@runtime_checkable
class Fetcher(Protocol):
    """Protocol for content retrieval backends.

    Implementations must bound each call by *timeout* seconds and raise
    on any failure (including timeouts); the verifier treats every
    exception as "candidate unavailable".
    """

    def fetch(self, uri: str, *, timeout: float) -> bytes:
        ...


class NoVerifiedSourceAvailableError(RuntimeError):
    """Raised when no candidate can be accepted.

    Attributes
    ----------
    reason:
        Distinguishes a missing digest, an empty candidate list, and
        candidates that were all tried without a match.
    attempts:
        The audit trail of every candidate that was tried.
    """

    def __init__(
        self,
        reason: FailureReason,
        attempts: Sequence[FetchAttempt] = (),
        message: str = "",
    ) -> None:
        self.reason = reason
        self.attempts = list(attempts)
        super().__init__(message or _FAILURE_MESSAGES[reason])


_FAILURE_MESSAGES: dict[FailureReason, str] = {
    FailureReason.NO_EXPECTED_DIGEST: (
        "No expected digest is set; refusing to accept any candidate"
    ),
    FailureReason.NO_CANDIDATES: "No candidate sources are configured",
    FailureReason.NONE_VERIFIED: (
        "Candidate sources are configured but none served the expected content"
    ),
}


class RetrievalVerifier:
    """Selects the first candidate whose content matches the expected digest.

    Parameters
    ----------
    fetcher:
        Retrieval backend satisfying the ``Fetcher`` protocol.
    timeout_seconds:
        Per-candidate fetch timeout passed to the fetcher.
    max_workers:
        ``1`` fetches strictly one candidate at a time.  Larger values
        fetch speculatively on a thread pool of that size.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        timeout_seconds: float = 10.0,
        max_workers: int = 1,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._fetcher = fetcher
        self._timeout = timeout_seconds
        self._max_workers = max_workers

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    @property
    def is_speculative(self) -> bool:
        return self._max_workers > 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def verify(
        self,
        expected_digest: str | None,
        candidates: Iterable[SourceEntry | str],
    ) -> VerificationResult:
        """Return the lowest-index candidate serving the expected content.

        Raises
        ------
        NoVerifiedSourceAvailableError
            With ``reason`` set to why nothing was accepted.
        """
        expected = normalize_digest(expected_digest)
        uris = [c.uri if isinstance(c, SourceEntry) else c for c in candidates]

        if not expected:
            logger.warning("Verification refused: no expected digest is set.")
            raise NoVerifiedSourceAvailableError(FailureReason.NO_EXPECTED_DIGEST)
        if not uris:
            logger.warning("Verification failed: no candidate sources configured.")
            raise NoVerifiedSourceAvailableError(FailureReason.NO_CANDIDATES)

        if self.is_speculative and len(uris) > 1:
            return self._verify_speculative(expected, uris)
        return self._verify_sequential(expected, uris)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _verify_sequential(self, expected: str, uris: list[str]) -> VerificationResult:
        attempts: list[FetchAttempt] = []
        for index, uri in enumerate(uris):
            attempt, content = self._try_candidate(index, uri, expected)
            attempts.append(attempt)
            if attempt.outcome == AttemptOutcome.VERIFIED and content is not None:
                return self._accept(attempt, content, attempts)
        raise self._exhausted(attempts)

    def _verify_speculative(self, expected: str, uris: list[str]) -> VerificationResult:
        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(uris)),
            thread_name_prefix="stillframe-fetch",
        )
        try:
            futures: list[Future[_AttemptResult]] = [
                pool.submit(self._try_candidate, index, uri, expected)
                for index, uri in enumerate(uris)
            ]
            attempts: list[FetchAttempt] = []
            # Consume in index order so a faster higher-index match never wins.
            for future in futures:
                attempt, content = future.result()
                attempts.append(attempt)
                if attempt.outcome == AttemptOutcome.VERIFIED and content is not None:
                    return self._accept(attempt, content, attempts)
            raise self._exhausted(attempts)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _try_candidate(self, index: int, uri: str, expected: str) -> _AttemptResult:
        """Fetch and hash one candidate.  Never raises."""
        try:
            content = bytes(self._fetcher.fetch(uri, timeout=self._timeout))
        except Exception as exc:
            logger.warning("Candidate %d (%s) fetch failed: %s", index, uri, exc)
            return (
                FetchAttempt(
                    index=index,
                    uri=uri,
                    outcome=AttemptOutcome.FETCH_FAILED,
                    error=f"{type(exc).__name__}: {exc}",
                ),
                None,
            )

        digest = sha256_hex(content)
        if digest != expected:
            logger.debug(
                "Candidate %d (%s) digest mismatch: got %s", index, uri, digest
            )
            return (
                FetchAttempt(
                    index=index,
                    uri=uri,
                    outcome=AttemptOutcome.DIGEST_MISMATCH,
                    digest=digest,
                ),
                None,
            )

        logger.debug("Candidate %d (%s) verified.", index, uri)
        return (
            FetchAttempt(
                index=index, uri=uri, outcome=AttemptOutcome.VERIFIED, digest=digest
            ),
            content,
        )

    @staticmethod
    def _accept(
        attempt: FetchAttempt, content: bytes, attempts: list[FetchAttempt]
    ) -> VerificationResult:
        logger.info("Accepted candidate %d (%s).", attempt.index, attempt.uri)
        return VerificationResult(
            uri=attempt.uri,
            index=attempt.index,
            content=content,
            digest=attempt.digest,
            attempts=attempts,
        )

    @staticmethod
    def _exhausted(attempts: list[FetchAttempt]) -> NoVerifiedSourceAvailableError:
        logger.warning(
            "Verification failed: %d candidate(s) tried, none verified.",
            len(attempts),
        )
        return NoVerifiedSourceAvailableError(FailureReason.NONE_VERIFIED, attempts)
