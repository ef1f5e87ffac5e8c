from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union
import numpy as np
import pandas as pd
from .models import Event, School, SchoolType, Tier
from .tiers import classify

Category = Optional[Union[SchoolType, str]]


@dataclass(frozen=True)
class EventParticipation:
    event: Event
    counts: Dict[SchoolType, int] = field(default_factory=dict)
    total: int = 0


def filter_by_category(schools: Sequence[School], category: Category = None) -> List[School]:
    # None / "ALL" keeps everything
    if category is None or str(getattr(category, "value", category)).upper() == "ALL":
        return list(schools)
    cat = SchoolType(str(getattr(category, "value", category)).upper())
    return [s for s in schools if s.type is cat]


def rank(schools: Sequence[School], category: Category = None) -> List[School]:
    # sorted() is stable with reverse=True: equal scores keep input order
    return sorted(filter_by_category(schools, category), key=lambda s: s.total_score, reverse=True)


def top_n(schools: Sequence[School], n: int, category: Category = None) -> List[School]:
    return rank(schools, category)[:max(0, n)]


def bottom_n(schools: Sequence[School], n: int, category: Category = None) -> List[School]:
    return sorted(filter_by_category(schools, category), key=lambda s: s.total_score)[:max(0, n)]


def tier_of(school: School) -> Tier:
    return classify(school.events_participated, school.total_events_possible)


def tier_counts(schools: Sequence[School], category: Category = None) -> Dict[Tier, int]:
    counts = {t: 0 for t in Tier}
    for s in filter_by_category(schools, category):
        counts[tier_of(s)] += 1
    return counts


def average_score(schools: Sequence[School]) -> float:
    if not schools:
        return 0.0
    return float(np.mean([s.total_score for s in schools]))


def event_participation_summary(events: Sequence[Event], schools: Sequence[School]) -> List[EventParticipation]:
    """
    Per event: how many schools were credited, split by category.
    Newest events first.
    """
    rows = []
    for ev in events:
        counts = {t: 0 for t in SchoolType}
        for s in schools:
            if s.has_participated(ev.id):
                counts[s.type] += 1
        rows.append(EventParticipation(event=ev, counts=counts, total=sum(counts.values())))
    return sorted(rows, key=lambda r: r.event.date, reverse=True)


RANKING_COLUMNS = ["Peringkat", "NPSN", "Nama Sekolah", "Tipe", "Provinsi", "Status",
                   "Skor", "Partisipasi", "Rasio (%)", "Level"]


def ranking_frame(schools: Sequence[School], category: Category = None) -> pd.DataFrame:
    ranked = rank(schools, category)
    if not ranked:
        return pd.DataFrame(columns=RANKING_COLUMNS)

    df = pd.DataFrame({
        "NPSN": [s.npsn for s in ranked],
        "Nama Sekolah": [s.name for s in ranked],
        "Tipe": [s.type.value for s in ranked],
        "Provinsi": [s.province for s in ranked],
        "Status": [s.status for s in ranked],
        "Skor": [s.total_score for s in ranked],
        "Partisipasi": [f"{s.events_participated}/{s.total_events_possible}" for s in ranked],
        "Level": [tier_of(s).value for s in ranked],
    })
    part = np.array([s.events_participated for s in ranked], dtype=float)
    poss = np.array([s.total_events_possible for s in ranked], dtype=float)
    ratio = np.divide(part, poss, out=np.zeros_like(part), where=poss > 0)
    df.insert(7, "Rasio (%)", np.round(ratio * 100, 1))
    df.insert(0, "Peringkat", df.index + 1)
    return df


EVENT_COLUMNS = ["Tanggal", "Kegiatan", "Tipe", "Bobot", "SMAK", "SMTK", "Total"]


def event_summary_frame(events: Sequence[Event], schools: Sequence[School]) -> pd.DataFrame:
    rows = event_participation_summary(events, schools)
    if not rows:
        return pd.DataFrame(columns=EVENT_COLUMNS)
    return pd.DataFrame([{
        "Tanggal": r.event.date.isoformat(),
        "Kegiatan": r.event.name,
        "Tipe": r.event.type.value,
        "Bobot": r.event.weight,
        "SMAK": r.counts.get(SchoolType.SMAK, 0),
        "SMTK": r.counts.get(SchoolType.SMTK, 0),
        "Total": r.total,
    } for r in rows], columns=EVENT_COLUMNS)


def tier_frame(schools: Sequence[School], category: Category = None) -> pd.DataFrame:
    counts = tier_counts(schools, category)
    return pd.DataFrame({"Level": [t.value for t in Tier], "Jumlah Sekolah": [counts[t] for t in Tier]})
