from __future__ import annotations
import csv
import logging
from io import BytesIO, StringIO
from typing import Any, List, Optional, Sequence
import pandas as pd
from openpyxl import load_workbook
from .utils import cell_to_token, load_json, norm_text, rules_path

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})


class RosterReadError(ValueError):
    """Raised when an uploaded roster file cannot be read as a table."""


def parse_roster_text(raw: str) -> List[str]:
    # One participant token per line (pasted text or extracted column)
    if not raw:
        return []
    return [ln.strip() for ln in str(raw).splitlines() if ln.strip()]
# =========================

# Excel: first sheet as a matrix, merged cells expanded
# =========================
def _first_sheet_matrix(wb_bytes: bytes) -> List[List[Any]]:
    # Title rows are often merged across columns; every cell of a merged block gets its top-left value
    ws = load_workbook(BytesIO(wb_bytes), read_only=False, data_only=True).worksheets[0]
    matrix = [list(row) for row in ws.iter_rows(values_only=True)]

    for block in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = block.bounds
        value = matrix[min_row - 1][min_col - 1]
        for r in range(min_row - 1, min(max_row, len(matrix))):
            for c in range(min_col - 1, min(max_col, len(matrix[r]))):
                if matrix[r][c] is None or str(matrix[r][c]).strip() == "":
                    matrix[r][c] = value
    return matrix
# =========================

# CSV: tolerant read from bytes (exports from forms / other apps)
# =========================
ROSTER_DELIMITERS = ";,\t|"


def _sniff_delimiter(text: str) -> str:
    # ',' from en-US exports, ';' from id-ID locales, sometimes tabs
    head = text[:65536]
    try:
        return csv.Sniffer().sniff(head, delimiters=ROSTER_DELIMITERS).delimiter or ","
    except csv.Error:
        pass

    lines = [ln for ln in head.splitlines() if ln.strip()][:20]
    counts = {d: sum(ln.count(d) for ln in lines) for d in ROSTER_DELIMITERS}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def _frame_from_text(text: str) -> pd.DataFrame:
    return pd.read_csv(StringIO(text), header=None, sep=_sniff_delimiter(text),
                       engine="python", dtype=str, skip_blank_lines=True)


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # header=None: the header row stays in the matrix so the NPSN column can be located
    last_err: Exception | None = None

    for enc in ("utf-8-sig", "utf-8", "cp1252"):
        try:
            return _frame_from_text(data.decode(enc))
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            last_err = e
        except pd.errors.EmptyDataError:
            return pd.DataFrame()

    logger.warning("Roster CSV is not valid in any known encoding, undecodable bytes replaced")
    try:
        return _frame_from_text(data.decode("utf-8", errors="replace"))
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except pd.errors.ParserError as e:
        raise RosterReadError(f"Tidak dapat membaca CSV: {last_err or e}") from e


def _read_table(name: str, data: bytes) -> pd.DataFrame:
    low = (name or "").lower()
    if low.endswith((".csv", ".txt")):
        return _read_csv_bytes(data)

    try:
        if low.endswith((".xlsx", ".xlsm")):
            return pd.DataFrame(_first_sheet_matrix(data))
        return pd.read_excel(BytesIO(data), sheet_name=0, header=None)
    except Exception as e:
        raise RosterReadError(
            f"Gagal membaca file Excel {name!r}. Pastikan format valid (.xlsx atau .csv)."
        ) from e


def locate_roster_column(df: pd.DataFrame, keywords: Optional[Sequence[str]] = None, max_scan_rows: Optional[int] = None):
    """
    Returns (column_index, first_data_row).
    Looks for a header cell containing one of the keywords ("npsn") within
    the first rows; without one, the first column is read from the top.
    """
    keywords = [norm_text(k) for k in (keywords or RULES.get("roster_keywords", ["npsn"]))]
    n = min(len(df), int(max_scan_rows or RULES.get("header_scan_rows", 10)))

    for r in range(n):
        for c, v in enumerate(df.iloc[r].tolist()):
            t = norm_text(cell_to_token(v))
            if t and any(k in t for k in keywords):
                return c, r + 1
    return 0, 0


def extract_roster_tokens(name: str, data: bytes, keywords: Optional[Sequence[str]] = None) -> List[str]:
    """
    Reads an uploaded CSV/XLSX roster and returns the trimmed, non-empty
    values of its NPSN column (or first column when no header is found).
    """
    df = _read_table(name, data)
    if df.empty:
        return []

    col, start = locate_roster_column(df, keywords)
    tokens = []
    for v in df.iloc[start:, col].tolist():
        t = cell_to_token(v)
        if t:
            tokens.append(t)

    logger.info("Roster %s: %d tokens from column %d (data from row %d)", name, len(tokens), col + 1, start + 1)
    return tokens
