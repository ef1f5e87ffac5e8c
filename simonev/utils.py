import os
import re
import json
import datetime as dt
from pathlib import Path
from typing import Any, Optional
from dateutil import parser as dtparser

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

_env_dir = os.environ.get("SIMONEV_DATA_DIR")
APPDATA = os.environ.get("APPDATA")
if _env_dir:
    USER_DATA_DIR = Path(_env_dir)
elif APPDATA:
    USER_DATA_DIR = Path(APPDATA) / "Simonev" / "data"
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

DEFAULT_MODEL = "gemini-2.5-flash"


def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except Exception:
        return default


_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants


def norm_text(s: Any) -> str:
    """
    Lowercase, strip BOM/NBSP and collapse whitespace.
    Used for header detection and fuzzy hints, never for crediting.
    """
    if s is None:
        return ""
    s = str(s)
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    s = s.strip().lower()
    s = re.sub(r"\s+", " ", s).strip()
    return s


def cell_to_token(v: Any) -> str:
    # Excel hands NPSN columns back as floats (20101234.0)
    if v is None:
        return ""
    if isinstance(v, float):
        if v != v:  # NaN
            return ""
        if v.is_integer():
            return str(int(v))
    s = str(v).strip()
    if s.lower() in ("nan", "none"):
        return ""
    return s


def parse_date(s: Any) -> Optional[dt.date]:
    """
    Accepts date/datetime objects, ISO strings and the usual dd/mm/yyyy
    spellings from Indonesian spreadsheets. Returns None when unparseable.
    """
    if s is None:
        return None
    if isinstance(s, dt.datetime):
        return s.date()
    if isinstance(s, dt.date):
        return s

    txt = str(s).strip()
    if not txt:
        return None

    # yyyy-mm-dd
    if re.match(r"^\d{4}[./-]\d{1,2}[./-]\d{1,2}", txt):
        try:
            return dtparser.parse(txt, dayfirst=False).date()
        except (ValueError, OverflowError):
            return None

    try:
        return dtparser.parse(txt, dayfirst=True, fuzzy=True).date()
    except (ValueError, OverflowError):
        return None


def api_key_from_env() -> str:
    return (os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or "").strip()


def model_from_env() -> str:
    return os.environ.get("GEMINI_MODEL", DEFAULT_MODEL)


def rules_path() -> Path:
    return DEFAULT_DATA_DIR / "rules.json"


def seed_schools_path() -> Path:
    return DEFAULT_DATA_DIR / "schools.json"


def state_path() -> Path:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DATA_DIR / "state.json"
