from __future__ import annotations
import pandas as pd
from io import BytesIO
from typing import Optional

LEVEL_COLORS = {
    "Excellent": "#D1FAE5",
    "Good": "#DBEAFE",
    "Nice": "#F1E4D1",
    "Bad": "#FEE2E2",
}


def export_to_excel_bytes(
    ranking_df: pd.DataFrame,
    events_df: pd.DataFrame,
    tiers_df: Optional[pd.DataFrame] = None,
) -> bytes:
    bio = BytesIO()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        ranking_df.to_excel(writer, index=False, sheet_name="Peringkat")
        events_df.to_excel(writer, index=False, sheet_name="Partisipasi Kegiatan")
        if tiers_df is not None and not tiers_df.empty:
            tiers_df.to_excel(writer, index=False, sheet_name="Ringkasan Level")

        wb = writer.book
        fmt_header = wb.add_format({"bold": True, "bg_color": "#162660", "font_color": "#FFFFFF",
                                    "border": 1, "valign": "vcenter"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 14, max_width: int = 48):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                longest = max([len(str(name))] + [len(str(v)) for v in df[name].tolist()])
                ws.set_column(col, col, max(default_width, min(max_width, longest + 2)))

        format_df_sheet("Peringkat", ranking_df)
        format_df_sheet("Partisipasi Kegiatan", events_df)
        if tiers_df is not None and not tiers_df.empty:
            format_df_sheet("Ringkasan Level", tiers_df)

        # Level badge colours in the ranking sheet
        if "Level" in ranking_df.columns and not ranking_df.empty:
            ws = writer.sheets["Peringkat"]
            j = list(ranking_df.columns).index("Level")
            for level, color in LEVEL_COLORS.items():
                ws.conditional_format(1, j, len(ranking_df), j, {
                    "type": "cell",
                    "criteria": "==",
                    "value": f'"{level}"',
                    "format": wb.add_format({"bg_color": color, "border": 1}),
                })

    return bio.getvalue()
