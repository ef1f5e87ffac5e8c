from __future__ import annotations
import datetime as dt
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence
from .models import CreditResult, DataKind, Event, School
from .utils import load_json, rules_path

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})


@dataclass(frozen=True)
class BonusPolicy:
    """
    Extra points for Submission uploads.

    A submission dated on or before event.date + fast_window_days earns
    fast_bonus; a later one, or one without a date, earns normal_bonus.
    Attendance never earns a bonus.
    """
    fast_bonus: float = 5
    normal_bonus: float = 2
    fast_window_days: int = 0

    @classmethod
    def from_rules(cls, rules: Optional[Dict[str, Any]] = None) -> "BonusPolicy":
        b = (rules if rules is not None else RULES).get("bonus", {}) or {}
        return cls(
            fast_bonus=b.get("fast", cls.fast_bonus),
            normal_bonus=b.get("normal", cls.normal_bonus),
            fast_window_days=int(b.get("fast_window_days", cls.fast_window_days)),
        )

    def bonus(self, data_kind: DataKind, event_date: dt.date, submitted_on: Optional[dt.date] = None) -> float:
        if DataKind(data_kind) is not DataKind.SUBMISSION:
            return 0
        if submitted_on is None:
            return self.normal_bonus
        deadline = event_date + dt.timedelta(days=self.fast_window_days)
        return self.fast_bonus if submitted_on <= deadline else self.normal_bonus


def credit(
    schools: Sequence[School],
    event: Event,
    matched_ids: Iterable[str],
    data_kind: DataKind,
    policy: Optional[BonusPolicy] = None,
    submitted_on: Optional[dt.date] = None,
) -> CreditResult:
    """
    Applies one event to the matched schools, at most once per school.

    Schools already holding event.id in participated_event_ids are skipped,
    which makes re-uploading the same roster a no-op for them. Returns a
    new tuple of schools; the input is never modified.
    """
    policy = policy or BonusPolicy.from_rules()
    matched = set(matched_ids)
    score_to_add = event.weight + policy.bonus(data_kind, event.date, submitted_on)

    out: List[School] = []
    credited: List[str] = []
    skipped: List[str] = []
    points: Dict[str, float] = {}

    for s in schools:
        if s.id not in matched:
            out.append(s)
            continue
        if s.has_participated(event.id):
            skipped.append(s.id)
            out.append(s)
            continue

        out.append(replace(
            s,
            total_score=s.total_score + score_to_add,
            events_participated=s.events_participated + 1,
            participated_event_ids=s.participated_event_ids + (event.id,),
        ))
        credited.append(s.id)
        points[s.id] = score_to_add

    logger.info(
        "Event %s (%s): credited %d schools (+%s each), %d already credited",
        event.id, DataKind(data_kind).value, len(credited), score_to_add, len(skipped),
    )
    return CreditResult(schools=tuple(out), credited_ids=tuple(credited), skipped_ids=tuple(skipped), points=points)
