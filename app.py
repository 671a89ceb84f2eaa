# app.py
# -----------------------------------------------
# 🚗 DashTrack: shift tracker for delivery drivers (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab, psycopg2-binary (for Postgres)
# Storage: DATABASE_URL (Postgres/SQLite); falls back to a local JSON file.

import json
import os
from datetime import datetime

import streamlit as st

from config import (
    APP_TITLE,
    EngineConfig,
    TimeFormat,
    configure_logging,
    database_url,
    local_store_path,
    pick_data_dir,
    today_local,
)
from domain import Break, DisplayMode, ShiftInput
from repository import JsonFileShiftRepository, StorageError, open_repository
from report import records_to_pdf
from store import ShiftStore
from timecalc import format_minutes, format_time_of_day
from utils import (
    BackupFormatError,
    build_backup,
    editable_number,
    export_filename,
    format_breaks,
    format_money,
    parse_backup,
    parse_breaks,
    shifts_to_csv,
    shifts_to_dataframe,
)

configure_logging()
st.set_page_config(page_title=APP_TITLE, page_icon="🚗", layout="centered")

# =========================
# Configuration / persistence
# =========================
CONFIG = EngineConfig.from_env()
DATA_DIR = pick_data_dir()
DB_URL = database_url(DATA_DIR)
LOCAL_PATH = local_store_path(DATA_DIR)

# Hosting must use a real database (Render / HF Spaces / Streamlit Cloud)
if ("RENDER" in os.environ or "SPACE_ID" in os.environ or os.getenv("STREAMLIT_RUNTIME") == "cloud"):
    if DB_URL.startswith("sqlite"):
        st.error("DATABASE_URL (Postgres) is not set. Configure it in the hosting environment.")


@st.cache_resource
def get_store(url: str, fallback: str) -> ShiftStore:
    return ShiftStore(open_repository(url, fallback), CONFIG).load()


try:
    store = get_store(DB_URL, str(LOCAL_PATH))
except StorageError as e:
    st.error(f"Could not load saved shifts: {e}")
    st.stop()

if isinstance(store.repository, JsonFileShiftRepository):
    st.warning("Database unavailable: shifts are being saved to a local file.", icon="💾")


def time_options(step_min: int = 5) -> list[str]:
    return [""] + [format_time_of_day(m, CONFIG.time_format) for m in range(0, 24 * 60, step_min)]


TIME_OPTIONS = time_options()
TIME_HINT = "H:MM AM/PM" if CONFIG.time_format is TimeFormat.TWELVE_HOUR else "HH:MM"


def show_hours(minutes: int) -> str:
    return format_minutes(minutes) if minutes > 0 else "–"


# =========================
# Page
# =========================
st.title(f"🚗 {APP_TITLE}")
st.caption(f"MPG {CONFIG.mpg:g} · weeks: {CONFIG.week_start.value} · times: {TIME_HINT}")

today = today_local()

# =========================
# State helpers
# =========================
def _flash_success_if_any():
    msg = st.session_state.pop("_flash_success", None)
    if msg:
        st.success(msg)


def _reset_add_form_if_requested():
    if st.session_state.pop("_reset_add_form", False):
        for k in list(st.session_state):
            if k.startswith("new_") or k.startswith("break_"):
                st.session_state.pop(k, None)
        st.session_state["n_breaks"] = 0


_flash_success_if_any()
_reset_add_form_if_requested()
st.session_state.setdefault("n_breaks", 0)

# =========================
# ➕ Add shift
# =========================
st.subheader("➕ Add shift")
new_date = st.date_input("Date", value=today, key="new_date")
c1, c2 = st.columns(2)
new_start = c1.selectbox("Start", TIME_OPTIONS, key="new_start")
new_end = c2.selectbox("End", TIME_OPTIONS, key="new_end")
new_gross = st.text_input("Gross pay ($)", key="new_gross", placeholder="0.00")
c3, c4 = st.columns(2)
new_miles_start = c3.text_input("Miles start", key="new_miles_start", placeholder="12,345")
new_miles_end = c4.text_input("Miles end", key="new_miles_end", placeholder="12,445")
new_price = st.text_input("Price/gal ($)", key="new_price", value=f"{CONFIG.default_price_per_gal:.3f}")

st.markdown("**Breaks**")
new_breaks = []
for i in range(st.session_state["n_breaks"]):
    b1, b2 = st.columns(2)
    new_breaks.append(Break(
        start=b1.selectbox(f"Break {i + 1} start", TIME_OPTIONS, key=f"break_start_{i}"),
        end=b2.selectbox(f"Break {i + 1} end", TIME_OPTIONS, key=f"break_end_{i}"),
    ))
bc1, bc2 = st.columns(2)
if bc1.button("Add break", use_container_width=True):
    st.session_state["n_breaks"] += 1
    st.rerun()
if bc2.button("Remove last break", use_container_width=True, disabled=st.session_state["n_breaks"] == 0):
    n = st.session_state["n_breaks"] - 1
    st.session_state.pop(f"break_start_{n}", None)
    st.session_state.pop(f"break_end_{n}", None)
    st.session_state["n_breaks"] = n
    st.rerun()

raw = ShiftInput(
    date=new_date, start=new_start, end=new_end, gross=new_gross,
    miles_start=new_miles_start, miles_end=new_miles_end, price_per_gal=new_price,
    breaks=tuple(new_breaks),
)
preview = store.calculator.derive_shift(raw)

p1, p2, p3, p4 = st.columns(4)
p1.metric("Shift", show_hours(preview.shift_minutes))
p2.metric("Working", show_hours(preview.working_minutes))
p3.metric("Miles", format_money(preview.miles_driven))
p4.metric("Gallons", format_money(preview.gallons))
p5, p6, p7 = st.columns(3)
p5.metric("Gas cost", f"${format_money(preview.gas_cost)}")
p6.metric("Net profit", f"${format_money(preview.net)}")
p7.metric("Hourly (net)", format_money(preview.hourly))

for w in store.calculator.input_warnings(raw):
    st.caption(f"⚠️ {w}")
if store.has_date(new_date):
    st.caption("ℹ️ A shift is already recorded for this date.")

if st.button("Save shift", type="primary", use_container_width=True):
    if not new_start or not new_end:
        st.warning("Pick a start and an end time.")
    else:
        try:
            rec = store.add(raw)
        except StorageError as e:
            st.error(f"Could not save the shift: {e}")
        else:
            st.session_state["_reset_add_form"] = True
            st.session_state["_flash_success"] = (
                f"Saved {rec.date.isoformat()}: {show_hours(rec.working_minutes)} worked · "
                f"net ${format_money(rec.net)}"
            )
            st.rerun()

# =========================
# 📊 Summary
# =========================
st.subheader("📊 Summary")
mode = DisplayMode(st.radio(
    "Show", [m.value for m in DisplayMode], horizontal=True,
    format_func=lambda v: "Net" if v == DisplayMode.NET.value else "Gross",
))
summary = store.summary(today)
s1, s2, s3 = st.columns(3)
s1.metric("This week", format_money(summary.week.pick(mode)))
s2.metric("All time", format_money(summary.overall.pick(mode)))
s3.metric("Avg hourly", format_money(summary.average_hourly.pick(mode)))

weeks = store.weekly()
if weeks:
    st.markdown("**Weekly breakdown**")
    for wk in weeks:
        label = (f"{wk.first_day.strftime('%m/%d/%Y')} – {wk.last_day.strftime('%m/%d/%Y')} · "
                 f"${format_money(wk.net if mode is DisplayMode.NET else wk.gross)}")
        with st.expander(label, expanded=False):
            st.markdown(f"- **Shifts**: {wk.shifts}")
            st.markdown(f"- **Working time**: {show_hours(wk.working_minutes)}")
            st.markdown(f"- **Net / gross**: ${format_money(wk.net)} / ${format_money(wk.gross)}")
            st.markdown(f"- **Hourly (net)**: {format_money(wk.hourly.net)}")

# =========================
# 🗓️ Shifts
# =========================
st.subheader("🗓️ Shifts")
if len(store) == 0:
    st.info("No shifts recorded yet.")
else:
    st.dataframe(shifts_to_dataframe(store.records), use_container_width=True, hide_index=True)

    by_id = {r.id: r for r in store.records}
    chosen_id = st.selectbox(
        "Select a shift", list(by_id),
        format_func=lambda i: f"{by_id[i].date.isoformat()} · {by_id[i].start}–{by_id[i].end}",
    )
    chosen = by_id[chosen_id]

    with st.expander("✏️ Edit selected shift", expanded=False):
        e_date = st.date_input("Date", value=chosen.date, key=f"edit_date_{chosen_id}")
        e_start = st.text_input(f"Start ({TIME_HINT})", value=chosen.start, key=f"edit_start_{chosen_id}")
        e_end = st.text_input(f"End ({TIME_HINT})", value=chosen.end, key=f"edit_end_{chosen_id}")
        e_gross = st.text_input("Gross pay ($)", value=editable_number(chosen.gross),
                                key=f"edit_gross_{chosen_id}")
        e_ms = st.text_input("Miles start", value=editable_number(chosen.miles_start, thousands=True),
                             key=f"edit_ms_{chosen_id}")
        e_me = st.text_input("Miles end", value=editable_number(chosen.miles_end, thousands=True),
                             key=f"edit_me_{chosen_id}")
        e_price = st.text_input("Price/gal ($)", value=editable_number(chosen.price_per_gal),
                                key=f"edit_price_{chosen_id}")
        e_breaks = st.text_input("Breaks (start-end|start-end)", value=format_breaks(chosen.breaks),
                                 key=f"edit_breaks_{chosen_id}")
        if st.button("Save changes", use_container_width=True):
            edited = ShiftInput(
                date=e_date, start=e_start.strip(), end=e_end.strip(), gross=e_gross,
                miles_start=e_ms, miles_end=e_me, price_per_gal=e_price, breaks=parse_breaks(e_breaks),
            )
            try:
                store.edit(chosen_id, edited)
            except StorageError as e:
                st.error(f"Could not update the shift: {e}")
            else:
                st.toast("Shift updated.", icon="✅")
                st.rerun()

    if st.button("🗑️ Delete selected shift", use_container_width=True):
        try:
            store.delete(chosen_id)
        except StorageError as e:
            st.error(f"Could not delete the shift: {e}")
        else:
            st.rerun()

# =========================
# ⬇️ Export / backup
# =========================
st.subheader("⬇️ Export & backup")
d1, d2, d3 = st.columns(3)
d1.download_button(
    "CSV", data=shifts_to_csv(store.records), file_name=export_filename(today, "csv"),
    mime="text/csv", disabled=len(store) == 0, use_container_width=True,
)
d2.download_button(
    "Backup (JSON)", data=json.dumps(build_backup(store.records, datetime.now()), indent=2),
    file_name=export_filename(today, "json"), mime="application/json", use_container_width=True,
)
pdf_lines = [
    f"This week: net ${format_money(summary.week.net)} · gross ${format_money(summary.week.gross)}",
    f"All time: net ${format_money(summary.overall.net)} · gross ${format_money(summary.overall.gross)}",
    f"Average hourly: net {format_money(summary.average_hourly.net)} · gross {format_money(summary.average_hourly.gross)}",
]
d3.download_button(
    "PDF", data=records_to_pdf(store.records, f"{APP_TITLE} · {today.isoformat()}", pdf_lines),
    file_name=export_filename(today, "pdf"), mime="application/pdf",
    disabled=len(store) == 0, use_container_width=True,
)

uploaded = st.file_uploader("Restore from backup", type=["json"])
if uploaded is not None and st.button("Restore", use_container_width=True):
    try:
        incoming = parse_backup(json.loads(uploaded.getvalue().decode("utf-8")))
        result = store.restore(incoming)
    except (json.JSONDecodeError, UnicodeDecodeError, BackupFormatError) as e:
        st.error(f"Not a valid backup file: {e}")
    except StorageError as e:
        st.error(f"Restore stopped: {e}")
    else:
        st.session_state["_flash_success"] = (
            f"Restored {result.added} shift(s); skipped {result.skipped} with an existing date."
        )
        st.rerun()
