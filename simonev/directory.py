from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Tuple
from .models import School
from .snapshot import SnapshotError, normalize_school
from .utils import load_json, seed_schools_path

logger = logging.getLogger(__name__)


def load_seed_schools(path: Optional[Path] = None) -> Tuple[School, ...]:
    """
    Reads the bundled school directory (NPSN, name, type, province, status).
    Counters always start at zero; duplicate NPSNs keep the first entry.
    """
    path = path or seed_schools_path()
    rows = load_json(path, [])
    if not isinstance(rows, list):
        raise SnapshotError(f"School directory {path} must be a JSON list")

    out = []
    seen = set()
    for i, r in enumerate(rows):
        if not isinstance(r, dict):
            raise SnapshotError(f"schools[{i}]: expected an object")
        school = normalize_school({
            "id": r.get("id") or r.get("npsn"),
            "npsn": r.get("npsn"),
            "name": r.get("name"),
            "type": r.get("type"),
            "province": r.get("province"),
            "status": r.get("status"),
        }, i)
        if school.id in seen:
            logger.warning("Duplicate NPSN %s in school directory, keeping first", school.id)
            continue
        seen.add(school.id)
        out.append(school)

    logger.info("Loaded %d schools from %s", len(out), path)
    return tuple(out)
