"""Content-addressed artifact cache.

Entries are keyed by ``(name, version, fingerprint)`` where the
fingerprint identifies the target environment and index revision. Every
entry carries a SHA-256 integrity over its own fields; an entry that
fails the check, or whose fingerprint disagrees with the key it was read
under, raises ``CacheCorruption``. ``ArtifactCache`` turns that into a
cache miss so a corrupt entry is re-materialized and overwritten.

Concurrency contract: ``CacheStore.lock(key)`` is a per-key mutual
exclusion token. It is released on every exit path, including
exceptions. ``ArtifactCache.get_or_materialize`` holds it across
lookup, materialization and insert, so concurrent callers asking for the
same key trigger one materialization and all observe its entry.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Iterator

from versolve.exceptions import CacheCorruption

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keys and entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached artifact.

    Attributes:
        name: Canonical package name.
        version: Version string.
        fingerprint: Target environment / index revision fingerprint.
    """

    name: str
    version: str
    fingerprint: str

    @property
    def digest(self) -> str:
        raw = f"{self.name}=={self.version}@{self.fingerprint}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return f"{self.name}=={self.version} [{self.digest[:12]}]"


@dataclass(frozen=True)
class CacheEntry:
    """A materialized artifact recorded in the cache.

    Attributes:
        name: Canonical package name.
        version: Version string.
        fingerprint: Fingerprint the artifact was materialized for.
        location: Where the artifact lives (opaque to the cache).
        artifact: "wheel" for a fetched build, "sdist" for a local build.
        integrity: "sha256:<hex>" over the other fields.
    """

    name: str
    version: str
    fingerprint: str
    location: str
    artifact: str
    integrity: str = ""

    @staticmethod
    def _compute(name: str, version: str, fingerprint: str, location: str, artifact: str) -> str:
        payload = json.dumps(
            [name, version, fingerprint, location, artifact], separators=(",", ":")
        )
        return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @classmethod
    def seal(cls, key: CacheKey, location: str, artifact: str) -> CacheEntry:
        """Create an entry for ``key`` with its integrity filled in."""
        integrity = cls._compute(key.name, key.version, key.fingerprint, location, artifact)
        return cls(key.name, key.version, key.fingerprint, location, artifact, integrity)

    @property
    def key(self) -> CacheKey:
        return CacheKey(self.name, self.version, self.fingerprint)

    def verify(self, key: CacheKey) -> None:
        """Check integrity and that the entry belongs to ``key``.

        Raises:
            CacheCorruption: On an integrity or fingerprint mismatch.
        """
        expected = self._compute(
            self.name, self.version, self.fingerprint, self.location, self.artifact
        )
        if self.integrity != expected:
            raise CacheCorruption(key.digest, "integrity check failed")
        if self.key != key:
            raise CacheCorruption(
                key.digest,
                f"entry belongs to {self.name}=={self.version} with a different fingerprint",
            )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class _KeyLocks:
    """Lazily created per-digest locks."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, digest: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(digest, threading.Lock())
        lock.acquire()
        try:
            yield
        finally:
            lock.release()


class CacheStore(ABC):
    """Storage backend for cache entries."""

    def __init__(self) -> None:
        self._key_locks = _KeyLocks()

    @abstractmethod
    def get(self, key: CacheKey) -> CacheEntry | None:
        """Return the entry for ``key`` or None.

        Raises:
            CacheCorruption: If a stored entry fails validation.
        """

    @abstractmethod
    def put(self, key: CacheKey, entry: CacheEntry) -> None:
        """Insert or overwrite the entry for ``key``."""

    @abstractmethod
    def invalidate(self, key: CacheKey) -> None:
        """Remove the entry for ``key`` if present."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every entry; return how many were removed."""

    @contextmanager
    def lock(self, key: CacheKey) -> Iterator[None]:
        """Exclusive per-key token, released on all exit paths."""
        with self._key_locks.hold(key.digest):
            yield


class InMemoryCacheStore(CacheStore):
    """Process-local store; suitable for tests and single runs."""

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, CacheEntry] = {}
        self._guard = threading.Lock()

    def get(self, key: CacheKey) -> CacheEntry | None:
        with self._guard:
            entry = self._entries.get(key.digest)
        if entry is not None:
            entry.verify(key)
        return entry

    def put(self, key: CacheKey, entry: CacheEntry) -> None:
        with self._guard:
            self._entries[key.digest] = entry

    def invalidate(self, key: CacheKey) -> None:
        with self._guard:
            self._entries.pop(key.digest, None)

    def clear(self) -> int:
        with self._guard:
            count = len(self._entries)
            self._entries.clear()
        return count

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class FileCacheStore(CacheStore):
    """JSON entry files under ``root/entries/<aa>/<digest>.json``.

    Writes go through a temporary file and ``os.replace`` so a reader
    never sees a partial entry. The per-key lock is process-local.
    """

    _FIELDS = ("name", "version", "fingerprint", "location", "artifact", "integrity")

    def __init__(self, root: Path) -> None:
        super().__init__()
        self.root = Path(root)

    @property
    def entries_dir(self) -> Path:
        return self.root / "entries"

    def _path(self, key: CacheKey) -> Path:
        digest = key.digest
        return self.entries_dir / digest[:2] / f"{digest}.json"

    def get(self, key: CacheKey) -> CacheEntry | None:
        path = self._path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheCorruption(key.digest, f"unreadable entry: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CacheCorruption(key.digest, f"entry is not valid JSON: {exc}") from exc
        if not isinstance(data, dict) or any(
            not isinstance(data.get(name), str) for name in self._FIELDS
        ):
            raise CacheCorruption(key.digest, "entry is missing required fields")
        entry = CacheEntry(**{name: data[name] for name in self._FIELDS})
        entry.verify(key)
        return entry

    def put(self, key: CacheKey, entry: CacheEntry) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(asdict(entry), indent=2, sort_keys=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def invalidate(self, key: CacheKey) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> int:
        if not self.entries_dir.exists():
            return 0
        count = sum(1 for _ in self.entries_dir.glob("*/*.json"))
        shutil.rmtree(self.entries_dir)
        return count


# ---------------------------------------------------------------------------
# ArtifactCache: the handle passed to planners and executors
# ---------------------------------------------------------------------------


class ArtifactCache:
    """Explicitly passed cache handle with miss-on-corruption semantics."""

    def __init__(self, store: CacheStore | None = None) -> None:
        self.store = store if store is not None else InMemoryCacheStore()

    def lookup(self, key: CacheKey) -> CacheEntry | None:
        """Return the entry for ``key``; corrupt entries count as a miss."""
        try:
            return self.store.get(key)
        except CacheCorruption as exc:
            logger.warning("Ignoring corrupt cache entry for %s: %s", key, exc.reason)
            self.store.invalidate(key)
            return None

    def get_or_materialize(
        self,
        key: CacheKey,
        artifact: str,
        produce: Callable[[], str],
        refresh: bool = False,
    ) -> tuple[CacheEntry, bool]:
        """Return the entry for ``key``, materializing it at most once.

        Args:
            key: Cache key.
            artifact: Artifact kind recorded on a new entry.
            produce: Materializes the artifact and returns its location.
                Called with the key's lock held.
            refresh: Ignore an existing entry and materialize again.

        Returns:
            ``(entry, created)`` where ``created`` is True if this call ran
            ``produce``.
        """
        with self.store.lock(key):
            if not refresh:
                existing = self.lookup(key)
                if existing is not None:
                    return existing, False
            entry = CacheEntry.seal(key, produce(), artifact)
            self.store.put(key, entry)
            logger.debug("cached %s at %s", key, entry.location)
            return entry, True

    def clear(self) -> int:
        return self.store.clear()
