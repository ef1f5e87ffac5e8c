from __future__ import annotations
import datetime as dt
import logging
import streamlit as st
import pandas as pd
from simonev.models import DataKind, EventType, SchoolType, Snapshot, Tier
from simonev.store import EntityStore, EventValidationError
from simonev.snapshot import (SnapshotError, backup_filename, load_payload, load_state_file, save_state_file, snapshot_to_json)
from simonev.directory import load_seed_schools
from simonev.ingest import RosterReadError, extract_roster_tokens, parse_roster_text
from simonev.matcher import suggest_matches
from simonev.aggregate import (average_score, event_summary_frame, filter_by_category, ranking_frame, tier_counts, tier_frame, top_n)
from simonev.export import export_to_excel_bytes
from simonev.summary import executive_summary
from simonev.utils import load_json, rules_path, state_path

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

RULES = load_json(rules_path(), {})
st.set_page_config(page_title="SIMONEV - Partisipasi Sekolah", layout="wide")
st.title("Monitoring & Evaluasi Partisipasi Sekolah")
# =========================

# State
# =========================
EVENT_TYPE_LABELS = {
    EventType.SOCIALIZATION: "Sosialisasi (Absensi)",
    EventType.DATA_REQUEST: "Permintaan Data",
    EventType.RESPONSE: "Tanggapan",
}
DATA_KIND_LABELS = {DataKind.ATTENDANCE: "Absensi", DataKind.SUBMISSION: "Pengumpulan"}
CATEGORY_LABELS = {"ALL": "Semua Sekolah", "SMAK": "SMAK", "SMTK": "SMTK"}


def _persist(snapshot) -> None:
    save_state_file(state_path(), snapshot)


def _get_store() -> EntityStore:
    if "store" not in st.session_state:
        try:
            snap = load_state_file(state_path(), load_seed_schools())
        except SnapshotError as e:
            st.error(f"Data tersimpan tidak dapat dibaca ({e}). Memulai dari direktori sekolah bawaan.")
            snap = Snapshot(schools=load_seed_schools())
        st.session_state["store"] = EntityStore(snap, on_change=_persist)
    return st.session_state["store"]


store = _get_store()

tab_dash, tab_upload, tab_rank, tab_backup = st.tabs(["Dashboard", "Upload Data", "Peringkat", "Backup & Restore"])
# =========================

# Dashboard
# =========================
with tab_dash:
    snap = store.snapshot
    cat = st.radio("Kategori", list(CATEGORY_LABELS.keys()), format_func=lambda k: CATEGORY_LABELS[k], horizontal=True, key="dash_cat")
    schools = filter_by_category(snap.schools, cat)
    levels = tier_counts(schools)
    top5 = top_n(schools, 5)

    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Rata-rata Skor", round(average_score(schools)))
    with c2:
        st.metric("Sekolah Teraktif", top5[0].name if top5 else "-")
    with c3:
        st.metric("Excellent", levels[Tier.EXCELLENT])
    with c4:
        st.metric("Perlu Perhatian (Bad)", levels[Tier.BAD])

    g1, g2 = st.columns(2)
    with g1:
        st.subheader("5 Sekolah Teratas")
        if top5:
            st.bar_chart(pd.DataFrame({"Skor": [s.total_score for s in top5]}, index=[s.name for s in top5]), horizontal=True)
        else:
            st.info("Belum ada data sekolah.")
    with g2:
        st.subheader("Level Partisipasi")
        st.bar_chart(tier_frame(schools).set_index("Level"))

    st.subheader("Detail Partisipasi Per Kegiatan")
    st.caption("Jumlah sekolah yang berpartisipasi (Hadir/Mengumpulkan Data) pada setiap kegiatan.")
    ev_df = event_summary_frame(snap.events, snap.schools)
    if ev_df.empty:
        st.info("Belum ada kegiatan yang dibuat.")
    else:
        st.dataframe(ev_df, width="stretch", hide_index=True)

    st.subheader("Ringkasan Eksekutif (AI)")
    if st.button("Buat ringkasan", key="ai_summary"):
        with st.spinner("Menganalisis data..."):
            st.session_state["ai_summary_text"] = executive_summary(snap.schools, snap.events, cat)
    if st.session_state.get("ai_summary_text"):
        st.write(st.session_state["ai_summary_text"])
# =========================

# Upload: create event + roster
# =========================
with tab_upload:
    left, right = st.columns([1, 2])

    with left:
        st.subheader("1. Buat Kegiatan Baru")
        with st.form("new_event_form", clear_on_submit=True):
            name = st.text_input("Nama Kegiatan", placeholder="Ex: Sosialisasi Kurikulum Merdeka")
            d1, d2 = st.columns(2)
            with d1:
                ev_date = st.date_input("Tanggal", value=dt.date.today())
            with d2:
                weight = st.number_input("Bobot Poin", min_value=0, value=10, step=1)
            etype = st.selectbox("Tipe Kegiatan", list(EVENT_TYPE_LABELS.keys()), format_func=lambda t: EVENT_TYPE_LABELS[t])
            desc = st.text_area("Deskripsi", value="")
            if st.form_submit_button("Buat Event"):
                try:
                    ev = store.add_event({"name": name, "date": ev_date, "type": etype, "weight": weight, "description": desc})
                    st.success(f"Kegiatan '{ev.name}' berhasil dibuat! Anda sekarang dapat mengupload data.")
                except EventValidationError as e:
                    st.error(str(e))

    with right:
        st.subheader("2. Upload Data Keikutsertaan")
        events = store.events
        if not events:
            st.warning("Buat kegiatan terlebih dahulu.")
        else:
            ev_ids = [e.id for e in events]
            by_id = {e.id: e for e in events}
            sel = st.selectbox("Pilih Kegiatan", ev_ids, format_func=lambda i: f"{by_id[i].name} ({by_id[i].date.isoformat()})")
            kind = st.radio("Jenis Data", list(DATA_KIND_LABELS.keys()), format_func=lambda k: DATA_KIND_LABELS[k], horizontal=True)
            submitted_on = None
            if kind is DataKind.SUBMISSION:
                if st.checkbox("Catat tanggal pengumpulan (bonus cepat)", value=False):
                    submitted_on = st.date_input("Tanggal pengumpulan", value=dt.date.today())

            st.caption("Gunakan file Excel (.xlsx) atau CSV dengan kolom berjudul \"NPSN\". "
                       "Jika tidak ada judul, kolom pertama dibaca sebagai NPSN.")
            up = st.file_uploader("File daftar hadir / pengumpulan", type=["xlsx", "csv"], accept_multiple_files=False)
            pasted = st.text_area("...atau tempel NPSN / nama sekolah (satu per baris)", value="")

            roster: list[str] = []
            if up is not None:
                try:
                    roster = extract_roster_tokens(up.name, up.getvalue())
                    if not roster:
                        st.warning("Tidak ada data yang ditemukan di file.")
                except RosterReadError as e:
                    st.error(str(e))
            roster += parse_roster_text(pasted)
            if roster:
                st.info(f"{len(roster)} baris data ditemukan")

            if st.button("Proses Data", type="primary", disabled=not roster):
                report = store.upload(sel, roster, kind, submitted_on=submitted_on)
                if not report.event_found:
                    st.error("Kegiatan tidak ditemukan.")
                else:
                    st.success(f"Data berhasil disimpan! {len(report.credited_ids)} sekolah mendapat poin; "
                               f"{len(report.already_credited_ids)} sudah tercatat sebelumnya.")
                    if report.unmatched:
                        st.warning(f"{len(report.unmatched)} baris tidak cocok dengan sekolah mana pun.")
                        hints = suggest_matches(report.unmatched, store.schools, RULES.get("suggest_cutoff", 85))
                        if hints:
                            st.write("Kemungkinan salah ketik (tidak diberi poin):")
                            st.dataframe(pd.DataFrame([{
                                "Baris": h.line, "Mirip dengan": h.school_name, "NPSN": h.school_id, "Kemiripan": h.score
                            } for h in hints]), width="stretch", hide_index=True)
# =========================

# Ranking
# =========================
with tab_rank:
    st.subheader("Daftar Peringkat Sekolah")
    active = st.radio("Kategori", [t.value for t in SchoolType], horizontal=True, key="rank_cat")
    q = st.text_input("Cari nama sekolah", value="")
    view = ranking_frame(store.schools, active)
    if q.strip():
        view = view[view["Nama Sekolah"].astype(str).str.contains(q.strip(), case=False, na=False)]
    if view.empty:
        st.info(f"Tidak ada data sekolah untuk kategori {active}")
    else:
        st.dataframe(view, width="stretch", hide_index=True)
# =========================

# Backup / restore / report
# =========================
with tab_backup:
    st.subheader("Penyimpanan Data")
    st.caption("Unduh backup data secara berkala dan simpan di tempat aman. "
               "Upload kembali file tersebut di sini untuk memulihkan data.")

    st.download_button(
        "Download Backup",
        data=snapshot_to_json(store.snapshot).encode("utf-8"),
        file_name=backup_filename(),
        mime="application/json",
    )

    restore_file = st.file_uploader("Restore Data (.json)", type=["json"], accept_multiple_files=False, key="restore_file")
    if restore_file is not None and st.button("Pulihkan data dari file ini"):
        try:
            store.restore(load_payload(restore_file.getvalue()))
            st.success("Data berhasil dipulihkan!")
            st.rerun()
        except SnapshotError as e:
            st.error(f"Format file tidak valid. {e}")

    st.divider()
    st.subheader("Laporan Excel")
    xbytes = export_to_excel_bytes(
        ranking_frame(store.schools),
        event_summary_frame(store.events, store.schools),
        tier_frame(store.schools),
    )
    st.download_button(
        "Unduh Laporan Excel",
        data=xbytes,
        file_name=f"Laporan_Partisipasi_{dt.date.today().isoformat()}.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
