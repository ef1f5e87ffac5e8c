from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Set
from rapidfuzz import fuzz, process
from .models import School
from .utils import norm_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Suggestion:
    line: str
    school_id: str
    school_name: str
    score: float


def _clean_lines(roster: Iterable[str]) -> List[str]:
    lines = []
    for ln in roster:
        t = str(ln or "").strip().lower()
        if t:
            lines.append(t)
    return lines


def _keys(school: School) -> List[str]:
    # An empty key would be a substring of every line
    return [k for k in (str(school.id).strip().lower(), school.name.strip().lower()) if k]


def match(roster: Sequence[str], schools: Sequence[School]) -> Set[str]:
    """
    Returns ids of schools mentioned in the roster.

    A school matches when any roster line contains its id (NPSN) or its
    name as a plain, case-insensitive substring. No tokenization and no
    punctuation normalization: "20101234 hadir" matches id 20101234, and a
    short generic name can match unrelated lines.
    """
    lines = _clean_lines(roster)
    if not lines:
        return set()

    matched: Set[str] = set()
    for school in schools:
        keys = _keys(school)
        if any(k in line for line in lines for k in keys):
            matched.add(school.id)

    logger.debug("Matched %d/%d schools from %d roster lines", len(matched), len(schools), len(lines))
    return matched


def unmatched_lines(roster: Sequence[str], schools: Sequence[School]) -> List[str]:
    """Roster lines (trimmed, original case) that no school key appears in."""
    keys = [k for s in schools for k in _keys(s)]
    out = []
    for ln in roster:
        raw = str(ln or "").strip()
        if not raw:
            continue
        low = raw.lower()
        if not any(k in low for k in keys):
            out.append(raw)
    return out


def suggest_matches(lines: Sequence[str], schools: Sequence[School], score_cutoff: float = 85) -> List[Suggestion]:
    # Informational only: never used for crediting
    if not lines or not schools:
        return []

    choices = {s.id: norm_text(s.name) for s in schools}
    by_id = {s.id: s for s in schools}

    out: List[Suggestion] = []
    for ln in lines:
        q = norm_text(ln)
        if not q:
            continue
        best = process.extractOne(q, choices, scorer=fuzz.token_set_ratio, score_cutoff=score_cutoff)
        if best is None:
            continue
        _, score, sid = best
        out.append(Suggestion(line=ln, school_id=sid, school_name=by_id[sid].name, score=round(float(score), 1)))
    return out
