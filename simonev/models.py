"""Data models for the school participation tracker."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class SchoolType(str, Enum):
    SMAK = "SMAK"
    SMTK = "SMTK"


class EventType(str, Enum):
    SOCIALIZATION = "Socialization"
    DATA_REQUEST = "DataRequest"
    RESPONSE = "Response"


class DataKind(str, Enum):
    ATTENDANCE = "Attendance"
    SUBMISSION = "Submission"


class Tier(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NICE = "Nice"
    BAD = "Bad"


@dataclass(frozen=True)
class School:
    """A registered school and its cumulative participation counters."""
    id: str                                # NPSN, opaque for matching
    name: str
    type: SchoolType
    npsn: str = ""
    province: str = ""
    status: str = ""                       # "Negeri" / "Swasta"
    total_score: float = 0
    events_participated: int = 0
    total_events_possible: int = 0
    participated_event_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.npsn:
            object.__setattr__(self, "npsn", self.id)

    def has_participated(self, event_id: str) -> bool:
        return event_id in self.participated_event_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "npsn": self.npsn,
            "name": self.name,
            "type": self.type.value,
            "status": self.status,
            "province": self.province,
            "totalScore": self.total_score,
            "eventsParticipated": self.events_participated,
            "totalEventsPossible": self.total_events_possible,
            "participatedEventIds": list(self.participated_event_ids),
        }


@dataclass(frozen=True)
class Event:
    """An event schools can be credited for. Immutable once created."""
    id: str
    name: str
    date: dt.date
    type: EventType
    weight: float
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "weight": self.weight,
            "description": self.description,
        }


@dataclass(frozen=True)
class Snapshot:
    """Complete state of the store. Replaced wholesale, never mutated."""
    schools: Tuple[School, ...] = ()
    events: Tuple[Event, ...] = ()

    def event_by_id(self, event_id: str) -> Event | None:
        for ev in self.events:
            if ev.id == event_id:
                return ev
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schools": [s.to_dict() for s in self.schools],
            "events": [e.to_dict() for e in self.events],
        }


@dataclass(frozen=True)
class CreditResult:
    """Outcome of applying one matched roster to the schools."""
    schools: Tuple[School, ...]
    credited_ids: Tuple[str, ...] = ()
    skipped_ids: Tuple[str, ...] = ()     # already credited for this event
    points: Dict[str, float] = field(default_factory=dict)
