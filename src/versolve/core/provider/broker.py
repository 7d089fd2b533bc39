"""Request/response boundary between the solver and a metadata provider.

The solver never calls a provider directly. It expresses each need as a
``VersionsRequest`` or ``MetadataRequest`` and the ``MetadataBroker``
answers it, either from a completed prefetch or by calling the provider
synchronously. Answers (including provider errors) are memoized for the
lifetime of one resolution, so a request is never sent twice.

Prefetching is a latency optimization only. Workers run provider calls;
all bookkeeping happens on the solver's thread, and the solver consumes
answers in its own deterministic order, so the resolution result does not
depend on the concurrency setting.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Union

from packaging.version import Version

from versolve.core.provider.base import MetadataProvider, VersionMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionsRequest:
    """Ask for the version list of ``name``."""

    name: str


@dataclass(frozen=True)
class MetadataRequest:
    """Ask for the metadata of ``name`` at ``version``."""

    name: str
    version: Version


Request = Union[VersionsRequest, MetadataRequest]


@dataclass(frozen=True)
class _Outcome:
    value: Any = None
    error: BaseException | None = None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class MetadataBroker:
    """Answers metadata requests, optionally prefetching them in a thread pool.

    Args:
        provider: The metadata provider to query.
        concurrency: Maximum number of concurrent provider calls. With 1,
            no worker threads are started and every request is answered
            synchronously when the solver needs it.
    """

    def __init__(self, provider: MetadataProvider, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self._provider = provider
        self._outcomes: dict[Request, _Outcome] = {}
        self._pending: dict[Request, Future] = {}
        self._executor: ThreadPoolExecutor | None = None
        if concurrency > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=concurrency, thread_name_prefix="versolve-prefetch"
            )

    # -- Solver-facing API --------------------------------------------------

    def versions(self, name: str) -> list[Version]:
        """Answer a ``VersionsRequest``, blocking if it is still in flight."""
        return self.answer(VersionsRequest(name))

    def metadata(self, name: str, version: Version) -> VersionMetadata:
        """Answer a ``MetadataRequest``, blocking if it is still in flight."""
        return self.answer(MetadataRequest(name, version))

    def answer(self, request: Request) -> Any:
        """Return the provider's answer to ``request``; re-raises provider errors."""
        outcome = self._outcomes.get(request)
        if outcome is None:
            future = self._pending.pop(request, None)
            if future is not None:
                outcome = self._capture(future.result)
            else:
                outcome = self._capture(lambda: self._call(request))
            self._outcomes[request] = outcome
        return outcome.unwrap()

    def prefetch(self, request: Request) -> None:
        """Start answering ``request`` in the background if a pool is configured."""
        if self._executor is None:
            return
        if request in self._outcomes or request in self._pending:
            return
        logger.debug("prefetching %s", request)
        self._pending[request] = self._executor.submit(self._call, request)

    def close(self) -> None:
        """Abandon in-flight prefetches without waiting for them."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self._pending.clear()

    # -- Internals ----------------------------------------------------------

    def _call(self, request: Request) -> Any:
        if isinstance(request, VersionsRequest):
            return self._provider.available_versions(request.name)
        return self._provider.metadata_for(request.name, request.version)

    @staticmethod
    def _capture(thunk) -> _Outcome:
        try:
            return _Outcome(value=thunk())
        except Exception as exc:  # noqa: BLE001 - re-raised by unwrap()
            return _Outcome(error=exc)
