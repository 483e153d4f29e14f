"""
Sequential bulk import of meter exports.

Files are parsed, matched to a meter and persisted one at a time. A
pause holds the batch before the next file starts; a stop abandons the
remaining files and keeps everything already persisted.
"""

from __future__ import annotations
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Union

from . import ingest, matching
from .config import IngestConfig, default_config
from .exceptions import LoadProfileError, StoreError
from .types import FileStatus, MatchResult, MeterIdentity, ParseResult, ProfileRecord

logger = logging.getLogger(__name__)


class MeterStore(Protocol):
    """Persistence the batch needs; implemented outside this package."""

    def find_meter_by_id(self, meter_id: str) -> Optional[MeterIdentity]: ...

    def list_meter_identities(
        self, site_filter: Optional[str] = None
    ) -> List[MeterIdentity]: ...

    def upsert_profile(self, meter_id: str, record: ProfileRecord) -> None: ...


class InMemoryMeterStore:
    """Dict-backed MeterStore for tests and scripts."""

    def __init__(self, identities: Iterable[MeterIdentity] = ()) -> None:
        self.meters: Dict[str, MeterIdentity] = {}
        self.profiles: Dict[str, ProfileRecord] = {}
        for ident in identities:
            self.add_meter(ident)

    def add_meter(self, identity: MeterIdentity) -> None:
        self.meters[identity.id] = identity

    def find_meter_by_id(self, meter_id: str) -> Optional[MeterIdentity]:
        return self.meters.get(meter_id)

    def list_meter_identities(
        self, site_filter: Optional[str] = None
    ) -> List[MeterIdentity]:
        return [
            m
            for m in self.meters.values()
            if site_filter is None or m.site == site_filter
        ]

    def upsert_profile(self, meter_id: str, record: ProfileRecord) -> None:
        if meter_id not in self.meters:
            raise StoreError(f"Unknown meter {meter_id!r}")
        # last writer wins
        self.profiles[meter_id] = record


@dataclass(frozen=True)
class BatchFile:
    name: str
    content: Union[str, bytes]
    meter_id: Optional[str] = None  # set to bypass matching
    overrides: Optional[ingest.ParseOverrides] = None


@dataclass
class FileOutcome:
    name: str
    status: FileStatus
    meter_id: Optional[str] = None
    match: Optional[MatchResult] = None
    result: Optional[ParseResult] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    outcomes: List[FileOutcome] = field(default_factory=list)
    stopped: bool = False

    @property
    def counts(self) -> Dict[str, int]:
        c = Counter(o.status for o in self.outcomes)
        statuses = ("success", "failed", "needs_review", "skipped")
        return {s: c.get(s, 0) for s in statuses}

    def by_status(self, status: FileStatus) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.status == status]


# (file, parse result, ranked candidates) -> new identity, or None to skip
UnmatchedHandler = Callable[
    [BatchFile, ParseResult, List[MatchResult]], Optional[MeterIdentity]
]


class BatchIngestor:
    def __init__(
        self,
        store: MeterStore,
        *,
        config: Optional[IngestConfig] = None,
        site_filter: Optional[str] = None,
        on_unmatched: Optional[UnmatchedHandler] = None,
    ) -> None:
        self.store = store
        self.config = config or default_config()
        self.site_filter = site_filter
        self.on_unmatched = on_unmatched
        self._running = threading.Event()
        self._running.set()
        self._stop = threading.Event()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def stop(self) -> None:
        self._stop.set()

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _wait_until_runnable(self) -> bool:
        """Block while paused; False once a stop has been requested."""
        while not self._running.is_set():
            if self._stop.is_set():
                return False
            self._running.wait(self.config.batch.pause_poll_seconds)
        return not self._stop.is_set()

    def run(self, files: Sequence[BatchFile]) -> BatchResult:
        self._stop.clear()
        identities = list(self.store.list_meter_identities(self.site_filter))
        used: set[str] = set()
        result = BatchResult()

        for i, f in enumerate(files):
            if not self._wait_until_runnable():
                logger.info("Batch stopped; skipping %d files", len(files) - i)
                result.stopped = True
                result.outcomes.extend(
                    FileOutcome(rest.name, "skipped", error="batch stopped")
                    for rest in files[i:]
                )
                break
            outcome = self._process(f, identities, used)
            logger.info("%s: %s", f.name, outcome.status)
            result.outcomes.append(outcome)
        return result

    def _parse(self, f: BatchFile) -> ParseResult:
        if isinstance(f.content, bytes):
            return ingest.parse_bytes(
                f.content, config=self.config, overrides=f.overrides
            )
        return ingest.parse_text(f.content, config=self.config, overrides=f.overrides)

    def _match(
        self, f: BatchFile, parsed: ParseResult, available: List[MeterIdentity]
    ) -> Optional[MatchResult]:
        names = [f.name]
        if parsed.record.meter_name:
            names.insert(0, parsed.record.meter_name)
        found = [
            m
            for m in (
                matching.match_meter(n, available, self.config.matching) for n in names
            )
            if m is not None
        ]
        # max() keeps the first of equal scores, so the embedded name wins ties
        return max(found, key=lambda m: m.confidence) if found else None

    def _process(
        self, f: BatchFile, identities: List[MeterIdentity], used: set[str]
    ) -> FileOutcome:
        try:
            parsed = self._parse(f)
        except LoadProfileError as exc:
            logger.warning("%s: %s", f.name, exc)
            return FileOutcome(f.name, "failed", error=str(exc))

        match: Optional[MatchResult] = None
        if f.meter_id is not None:
            if self.store.find_meter_by_id(f.meter_id) is None:
                logger.warning("%s: unknown meter %s", f.name, f.meter_id)
                return FileOutcome(
                    f.name,
                    "failed",
                    result=parsed,
                    error=f"Unknown meter {f.meter_id!r}",
                )
            meter_id = f.meter_id
        else:
            available = (
                [m for m in identities if m.id not in used]
                if self.config.batch.unique_meters
                else identities
            )
            match = self._match(f, parsed, available)
            if match is not None:
                meter_id = match.meter_id
            else:
                created = None
                if self.on_unmatched is not None:
                    ranked = matching.rank_meters(
                        f.name, available, self.config.matching
                    )
                    created = self.on_unmatched(f, parsed, ranked)
                if created is None:
                    return FileOutcome(
                        f.name, "skipped", result=parsed, error="no matching meter"
                    )
                identities.append(created)
                meter_id = created.id

        try:
            self.store.upsert_profile(meter_id, parsed.record)
        except LoadProfileError as exc:
            logger.warning("%s: %s", f.name, exc)
            return FileOutcome(
                f.name,
                "failed",
                meter_id=meter_id,
                match=match,
                result=parsed,
                error=str(exc),
            )

        used.add(meter_id)
        status: FileStatus = "needs_review" if parsed.record.needs_review else "success"
        return FileOutcome(
            f.name, status, meter_id=meter_id, match=match, result=parsed
        )
