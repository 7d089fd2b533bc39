"""Tests for MetadataBroker memoization and prefetching."""

from __future__ import annotations

import threading

import pytest
from packaging.version import Version

from versolve.core.provider import (
    InMemoryProvider,
    MetadataBroker,
    MetadataRequest,
    PackageNotFound,
    VersionMetadata,
    VersionsRequest,
)
from versolve.core.provider.base import MetadataProvider


class BlockingProvider(MetadataProvider):
    """Provider whose lookups wait until the test releases them."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.started = threading.Event()

    def available_versions(self, name: str) -> list[Version]:
        self.started.set()
        self.release.wait(timeout=5)
        return [Version("1.0")]

    def metadata_for(self, name: str, version: Version) -> VersionMetadata:
        return VersionMetadata(version=version)


class TestMemoization:
    """Each request reaches the provider at most once."""

    def test_answers_are_memoized(self) -> None:
        provider = InMemoryProvider({"a": {"1.0": ["b"]}})
        broker = MetadataBroker(provider)
        assert broker.versions("a") == [Version("1.0")]
        assert broker.versions("a") == [Version("1.0")]
        broker.metadata("a", Version("1.0"))
        broker.metadata("a", Version("1.0"))
        assert provider.calls == [("versions", "a"), ("metadata", "a", "1.0")]

    def test_errors_are_memoized_and_reraised(self) -> None:
        provider = InMemoryProvider()
        broker = MetadataBroker(provider)
        for _ in range(2):
            with pytest.raises(PackageNotFound):
                broker.versions("ghost")
        assert provider.calls == [("versions", "ghost")]

    def test_answer_dispatches_on_request_type(self) -> None:
        broker = MetadataBroker(InMemoryProvider({"a": {"1.0": None}}))
        assert broker.answer(VersionsRequest("a")) == [Version("1.0")]
        meta = broker.answer(MetadataRequest("a", Version("1.0")))
        assert meta.version == Version("1.0")


class TestPrefetch:
    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            MetadataBroker(InMemoryProvider(), concurrency=0)

    def test_prefetch_is_noop_without_pool(self) -> None:
        provider = InMemoryProvider({"a": {"1.0": None}})
        broker = MetadataBroker(provider, concurrency=1)
        broker.prefetch(VersionsRequest("a"))
        assert provider.calls == []

    def test_prefetched_answer_is_consumed_once(self) -> None:
        provider = InMemoryProvider({"a": {"1.0": None}})
        broker = MetadataBroker(provider, concurrency=4)
        try:
            broker.prefetch(VersionsRequest("a"))
            broker.prefetch(VersionsRequest("a"))
            assert broker.versions("a") == [Version("1.0")]
            assert broker.versions("a") == [Version("1.0")]
        finally:
            broker.close()
        assert provider.calls == [("versions", "a")]

    def test_answer_waits_for_in_flight_prefetch(self) -> None:
        provider = BlockingProvider()
        broker = MetadataBroker(provider, concurrency=2)
        try:
            broker.prefetch(VersionsRequest("a"))
            assert provider.started.wait(timeout=5)
            provider.release.set()
            assert broker.versions("a") == [Version("1.0")]
        finally:
            broker.close()

    def test_close_is_idempotent(self) -> None:
        broker = MetadataBroker(InMemoryProvider(), concurrency=2)
        broker.close()
        broker.close()
        broker.prefetch(VersionsRequest("a"))
