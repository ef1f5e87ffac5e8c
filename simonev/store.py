"""
Entity store: owns the schools/events snapshot.

Every operation builds a complete new Snapshot and swaps it in with a
single assignment, so readers only ever see the state before or after an
operation. Persistence is injected through ``on_change``.
"""
from __future__ import annotations
import datetime as dt
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from .matcher import match, unmatched_lines
from .models import CreditResult, DataKind, Event, EventType, Snapshot
from .scoring import BonusPolicy, credit
from .snapshot import SnapshotError, parse_snapshot
from .utils import parse_date

logger = logging.getLogger(__name__)


class EventValidationError(ValueError):
    """Raised when an event-creation payload is incomplete or malformed."""


@dataclass(frozen=True)
class UploadReport:
    event_id: str
    event_found: bool
    lines: int = 0
    matched_ids: tuple = ()
    credited_ids: tuple = ()
    already_credited_ids: tuple = ()
    unmatched: List[str] = field(default_factory=list)
    points: Dict[str, float] = field(default_factory=dict)


def _millis_id() -> str:
    return f"e{int(time.time() * 1000)}"


def validate_event_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise EventValidationError("Event payload must be a mapping")

    name = str(payload.get("name", "") or "").strip()
    if not name:
        raise EventValidationError("Nama kegiatan wajib diisi")

    date = parse_date(payload.get("date"))
    if date is None:
        raise EventValidationError(f"Tanggal tidak valid: {payload.get('date')!r}")

    try:
        etype = EventType(str(getattr(payload.get("type"), "value", payload.get("type")) or "").strip())
    except ValueError:
        raise EventValidationError(f"Tipe kegiatan tidak dikenal: {payload.get('type')!r}") from None

    weight = payload.get("weight")
    if isinstance(weight, bool):
        raise EventValidationError("Bobot poin harus berupa angka")
    try:
        weight = float(weight) if isinstance(weight, str) else weight
    except ValueError:
        raise EventValidationError(f"Bobot poin harus berupa angka: {weight!r}") from None
    if not isinstance(weight, (int, float)) or weight != weight:
        raise EventValidationError(f"Bobot poin harus berupa angka: {weight!r}")
    if weight < 0:
        raise EventValidationError("Bobot poin tidak boleh negatif")

    return {
        "name": name,
        "date": date,
        "type": etype,
        "weight": weight,
        "description": str(payload.get("description", "") or "").strip(),
    }


class EntityStore:
    def __init__(
        self,
        snapshot: Optional[Snapshot] = None,
        *,
        on_change: Optional[Callable[[Snapshot], None]] = None,
        bonus_policy: Optional[BonusPolicy] = None,
        id_factory: Callable[[], str] = _millis_id,
    ):
        self._state = snapshot if snapshot is not None else Snapshot()
        self._on_change = on_change
        self._bonus_policy = bonus_policy or BonusPolicy.from_rules()
        self._id_factory = id_factory

    @property
    def snapshot(self) -> Snapshot:
        return self._state

    @property
    def schools(self) -> tuple:
        return self._state.schools

    @property
    def events(self) -> tuple:
        return self._state.events

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._state.event_by_id(event_id)

    def _swap(self, new_state: Snapshot) -> None:
        self._state = new_state
        if self._on_change is not None:
            self._on_change(new_state)

    def _new_event_id(self) -> str:
        taken = {e.id for e in self._state.events}
        eid = self._id_factory()
        n = 1
        base = eid
        while eid in taken:
            eid = f"{base}-{n}"
            n += 1
        return eid

    def add_event(self, payload: Mapping[str, Any]) -> Event:
        """Creates an event and bumps every school's possible-event count."""
        fields = validate_event_payload(payload)
        event = Event(id=self._new_event_id(), **fields)

        state = self._state
        schools = tuple(replace(s, total_events_possible=s.total_events_possible + 1) for s in state.schools)
        self._swap(Snapshot(schools=schools, events=state.events + (event,)))

        logger.info("Event created: %s %r (%s, weight %s)", event.id, event.name, event.type.value, event.weight)
        return event

    def credit(
        self,
        event_id: str,
        matched_ids,
        data_kind: DataKind,
        submitted_on: Optional[dt.date] = None,
    ) -> CreditResult:
        state = self._state
        event = state.event_by_id(event_id)
        if event is None:
            logger.warning("Credit ignored: unknown event id %r", event_id)
            return CreditResult(schools=state.schools)

        result = credit(state.schools, event, matched_ids, DataKind(data_kind), self._bonus_policy, submitted_on)
        if result.credited_ids:
            self._swap(Snapshot(schools=result.schools, events=state.events))
        return result

    def upload(
        self,
        event_id: str,
        roster: Sequence[str],
        data_kind: DataKind,
        submitted_on: Optional[dt.date] = None,
    ) -> UploadReport:
        """Matches a roster against the directory and credits the event."""
        state = self._state
        if state.event_by_id(event_id) is None:
            logger.warning("Upload ignored: unknown event id %r", event_id)
            return UploadReport(event_id=event_id, event_found=False)

        lines = [ln.strip() for ln in roster if ln and ln.strip()]
        matched = match(lines, state.schools)
        result = self.credit(event_id, matched, data_kind, submitted_on)

        return UploadReport(
            event_id=event_id,
            event_found=True,
            lines=len(lines),
            matched_ids=tuple(s.id for s in state.schools if s.id in matched),
            credited_ids=result.credited_ids,
            already_credited_ids=result.skipped_ids,
            unmatched=unmatched_lines(lines, state.schools),
            points=result.points,
        )

    def restore(self, payload: Any) -> Snapshot:
        """
        Replaces schools and/or events from a backup payload.
        Only the fields present are replaced; counters are trusted as-is.
        Raises SnapshotError (state untouched) when the payload is malformed.
        """
        try:
            schools, events = parse_snapshot(payload)
        except SnapshotError as e:
            logger.warning("Restore rejected: %s", e)
            raise
        state = self._state
        new_state = Snapshot(
            schools=schools if schools is not None else state.schools,
            events=events if events is not None else state.events,
        )
        self._swap(new_state)
        logger.info(
            "Restore applied: schools %s, events %s",
            len(schools) if schools is not None else "unchanged",
            len(events) if events is not None else "unchanged",
        )
        return new_state

    def replace_state(self, snapshot: Snapshot) -> None:
        self._swap(snapshot)
