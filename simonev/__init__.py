"""
School participation tracking (SIMONEV):
- school directory and event records (entity store, backup/restore)
- roster ingest from CSV/XLSX uploads
- matching rosters to schools and crediting event scores
- tier classification, rankings and per-event breakdowns
- Excel report export and an optional AI executive summary
"""
from .models import DataKind, Event, EventType, School, SchoolType, Snapshot, Tier
from .store import EntityStore, EventValidationError, UploadReport
from .snapshot import SnapshotError, backup_filename, load_state_file, save_state_file, snapshot_to_json
from .directory import load_seed_schools
from .ingest import RosterReadError, extract_roster_tokens, parse_roster_text
from .matcher import match
from .scoring import BonusPolicy, credit
from .tiers import classify
from .aggregate import (average_score, event_participation_summary, rank, tier_counts, top_n)
from .export import export_to_excel_bytes
from .summary import executive_summary, summarize

__all__ = [
    "DataKind",
    "Event",
    "EventType",
    "School",
    "SchoolType",
    "Snapshot",
    "Tier",
    "EntityStore",
    "EventValidationError",
    "UploadReport",
    "SnapshotError",
    "backup_filename",
    "load_state_file",
    "save_state_file",
    "snapshot_to_json",
    "load_seed_schools",
    "RosterReadError",
    "extract_roster_tokens",
    "parse_roster_text",
    "match",
    "BonusPolicy",
    "credit",
    "classify",
    "average_score",
    "event_participation_summary",
    "rank",
    "tier_counts",
    "top_n",
    "export_to_excel_bytes",
    "executive_summary",
    "summarize",
]
