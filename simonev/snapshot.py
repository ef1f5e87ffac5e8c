from __future__ import annotations
import datetime as dt
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple
from .models import Event, EventType, School, SchoolType, Snapshot
from .utils import parse_date

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a backup/state payload does not have the expected shape."""


def _as_float(x: Any, default: float = 0.0, where: str = "") -> float:
    # Blank or unparseable counts as missing; NaN/Infinity never do
    if x is None or isinstance(x, bool):
        return default
    if isinstance(x, int):
        return x
    if isinstance(x, float):
        v = x
    else:
        s = str(x).replace(",", ".").strip()
        if not s:
            return default
        try:
            v = float(s)
        except ValueError:
            return default
    if not math.isfinite(v):
        raise SnapshotError(f"{where or 'value'}: not a finite number {x!r}")
    return v


def _as_int(x: Any, default: int = 0, where: str = "") -> int:
    return int(_as_float(x, float(default), where))


def _unique(ids: Iterable[Any]) -> Tuple[str, ...]:
    seen = []
    for x in ids:
        s = str(x)
        if s not in seen:
            seen.append(s)
    return tuple(seen)


def normalize_school(rec: Any, idx: int = 0) -> School:
    # Older backups have no participatedEventIds; treat as empty
    if not isinstance(rec, dict):
        raise SnapshotError(f"schools[{idx}]: expected an object, got {type(rec).__name__}")

    sid = str(rec.get("id", rec.get("npsn", "")) or "").strip()
    name = str(rec.get("name", "") or "").strip()
    if not sid:
        raise SnapshotError(f"schools[{idx}]: missing 'id'")
    if not name:
        raise SnapshotError(f"schools[{idx}]: missing 'name'")

    raw_type = str(rec.get("type", "") or "").strip().upper()
    try:
        stype = SchoolType(raw_type)
    except ValueError:
        raise SnapshotError(f"schools[{idx}]: unknown type {rec.get('type')!r}") from None

    history = rec.get("participatedEventIds")
    if history is None:
        history = []
    if not isinstance(history, list):
        raise SnapshotError(f"schools[{idx}]: 'participatedEventIds' must be a list")

    return School(
        id=sid,
        name=name,
        type=stype,
        npsn=str(rec.get("npsn", "") or "").strip(),
        province=str(rec.get("province", "") or "").strip(),
        status=str(rec.get("status", "") or "").strip(),
        total_score=_as_float(rec.get("totalScore"), 0.0, f"schools[{idx}].totalScore"),
        events_participated=_as_int(rec.get("eventsParticipated"), 0, f"schools[{idx}].eventsParticipated"),
        total_events_possible=_as_int(rec.get("totalEventsPossible"), 0, f"schools[{idx}].totalEventsPossible"),
        participated_event_ids=_unique(history),
    )


def normalize_event(rec: Any, idx: int = 0) -> Event:
    if not isinstance(rec, dict):
        raise SnapshotError(f"events[{idx}]: expected an object, got {type(rec).__name__}")

    eid = str(rec.get("id", "") or "").strip()
    if not eid:
        raise SnapshotError(f"events[{idx}]: missing 'id'")

    date = parse_date(rec.get("date"))
    if date is None:
        raise SnapshotError(f"events[{idx}]: invalid date {rec.get('date')!r}")

    try:
        etype = EventType(str(rec.get("type", "") or "").strip())
    except ValueError:
        raise SnapshotError(f"events[{idx}]: unknown type {rec.get('type')!r}") from None

    return Event(
        id=eid,
        name=str(rec.get("name", "") or "").strip(),
        date=date,
        type=etype,
        weight=_as_float(rec.get("weight"), 0.0, f"events[{idx}].weight"),
        description=str(rec.get("description", "") or "").strip(),
    )


def parse_snapshot(payload: Any) -> Tuple[Optional[Tuple[School, ...]], Optional[Tuple[Event, ...]]]:
    """
    Validates a backup payload and returns (schools, events).
    A field absent from the payload comes back as None so the caller
    only replaces what was supplied.
    """
    if not isinstance(payload, dict):
        raise SnapshotError("Format file tidak valid: expected a JSON object")

    has_schools = payload.get("schools") is not None
    has_events = payload.get("events") is not None
    if not has_schools and not has_events:
        raise SnapshotError("Format file tidak valid: neither 'schools' nor 'events' present")

    schools = None
    events = None

    if has_schools:
        raw = payload["schools"]
        if not isinstance(raw, list):
            raise SnapshotError("'schools' must be a list")
        schools = tuple(normalize_school(r, i) for i, r in enumerate(raw))

    if has_events:
        raw = payload["events"]
        if not isinstance(raw, list):
            raise SnapshotError("'events' must be a list")
        events = tuple(normalize_event(r, i) for i, r in enumerate(raw))

    return schools, events


def snapshot_to_json(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)


def load_payload(text: str | bytes) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotError(f"Gagal membaca file backup: {e}") from e


def snapshot_from_json(text: str | bytes) -> Tuple[Optional[Tuple[School, ...]], Optional[Tuple[Event, ...]]]:
    return parse_snapshot(load_payload(text))


def backup_filename(today: dt.date | None = None) -> str:
    today = today or dt.date.today()
    return f"backup-simonev-{today.isoformat()}.json"


def load_state_file(path: Path, seed_schools: Iterable[School]) -> Snapshot:
    # First start: nothing on disk yet, use the seeded directory
    if not path.exists():
        logger.info("No saved state at %s, starting from seed directory", path)
        return Snapshot(schools=tuple(seed_schools), events=())

    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise SnapshotError(f"Cannot read state file {path}: {e}") from e

    schools, events = snapshot_from_json(text)
    return Snapshot(
        schools=schools if schools is not None else tuple(seed_schools),
        events=events if events is not None else (),
    )


def save_state_file(path: Path, snapshot: Snapshot) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(snapshot_to_json(snapshot))
    tmp.replace(path)
    logger.debug("State saved to %s (%d schools, %d events)", path, len(snapshot.schools), len(snapshot.events))
