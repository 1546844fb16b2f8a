"""Episode Trimmer -- Streamlit UI.

Scan the first episode of a folder, choose the chapters to cut, then submit
the job and follow its progress.

Run with ``streamlit run episode_trimmer/ui/app.py``.
"""

from __future__ import annotations

import logging
import time

import streamlit as st

from episode_trimmer.config import get_settings
from episode_trimmer.errors import InvalidPartCount, InvalidTransition
from episode_trimmer.session.controller import SessionState
from episode_trimmer.trim_config import RangeField, parse_parts
from episode_trimmer.ui.runtime import SessionRuntime

settings = get_settings()
logging.basicConfig(level=settings.log_level)

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(page_title="Episode Trimmer", layout="centered")

if "runtime" not in st.session_state:
    # Released with the browser session; see SessionRuntime.
    st.session_state.runtime = SessionRuntime(settings)

runtime: SessionRuntime = st.session_state.runtime
session = runtime.controller
view = runtime.call(session.view)

st.title("Episode Trimmer")

# ---------------------------------------------------------------------------
# Folders + actions
# ---------------------------------------------------------------------------
col_in, col_out = st.columns(2)
input_path = col_in.text_input("Input folder", placeholder="D:\\Anime\\Season 1")
output_path = col_out.text_input("Output folder", placeholder="D:\\Anime\\Season 1 trimmed")

col_scan, col_submit = st.columns(2)
scan_clicked = col_scan.button(
    "Scan first episode",
    disabled=not input_path or view.state not in (SessionState.IDLE, SessionState.CONFIGURING),
)
submit_clicked = col_submit.button(
    "Submit trim options",
    disabled=not (input_path and output_path) or not view.editable,
)

if scan_clicked:
    with st.spinner("Scanning..."):
        runtime.run(session.scan, input_path)
    view = runtime.call(session.view)

if submit_clicked:
    with st.spinner("Submitting..."):
        runtime.run(session.submit, input_path, output_path)
    view = runtime.call(session.view)

for note in view.notifications:
    st.error(note.message)
if view.notifications and st.button("Dismiss"):
    runtime.call(session.clear_notifications)
    st.rerun()

# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------
progress = view.progress
if progress is not None:
    st.subheader("Progress")
    st.write(f"**Status:** {progress.status}")
    st.progress(min(max(progress.percent / 100, 0.0), 1.0))
    st.write(f"{progress.completed}/{progress.total} ({progress.percent:.0f}%)")

if view.is_polling:
    if st.button("Stop watching"):
        runtime.call(session.stop_polling)
        st.rerun()

# ---------------------------------------------------------------------------
# Trim options (only once a scan has produced chapters)
# ---------------------------------------------------------------------------
editable = view.editable

tracks = view.audio_tracks
if tracks:
    st.subheader("Audio track")
    indices = [t.index for t in tracks]
    labels = {t.index: t.label for t in tracks}
    current = view.config.audio_index
    chosen = st.selectbox(
        "Audio track",
        options=indices,
        index=indices.index(current) if current in indices else 0,
        format_func=lambda i: labels[i],
        disabled=not editable,
        label_visibility="collapsed",
    )
    if editable and chosen != current:
        runtime.call(session.set_audio_index, chosen)

chapters = view.chapter_labels
if chapters:
    st.subheader("Skip ranges")
    choices = ["", *chapters]

    def _select(label: str, value: str, key: str) -> str:
        # Keep labels from an older scan selectable so they are not silently replaced.
        options = choices if value in choices else [*choices, value]
        return st.selectbox(
            label,
            options=options,
            index=options.index(value),
            format_func=lambda v: v or "--Select--",
            key=key,
            disabled=not editable,
        )

    for i, skip in enumerate(view.config.skip_ranges):
        col_start, col_end, col_remove = st.columns([3, 3, 1])
        with col_start:
            start = _select(f"Start #{i + 1}", skip.start, f"start-{i}-{skip.start}")
        with col_end:
            end = _select(f"End #{i + 1}", skip.end, f"end-{i}-{skip.end}")
        if editable:
            try:
                if start != skip.start:
                    runtime.call(session.update_skip_range, i, RangeField.START, start)
                    st.rerun()
                if end != skip.end:
                    runtime.call(session.update_skip_range, i, RangeField.END, end)
                    st.rerun()
                if col_remove.button("Remove", key=f"remove-{i}"):
                    runtime.call(session.remove_skip_range, i)
                    st.rerun()
            except InvalidTransition as e:
                st.warning(str(e))

    if st.button("Add skip range", disabled=not editable):
        runtime.call(session.add_skip_range)
        st.rerun()

    if view.stale_labels:
        st.warning(f"Not in the current scan: {', '.join(view.stale_labels)}")

    parts_text = st.text_input("Parts", value=str(view.config.parts), disabled=not editable)
    if editable and parts_text != str(view.config.parts):
        try:
            runtime.call(session.set_parts, parse_parts(parts_text))
        except InvalidPartCount as e:
            st.error(str(e))

    segments = view.keep_segments
    if segments:
        kept = sum(s.duration for s in segments)
        st.caption(
            f"Keeps {len(segments)} segment(s), {kept / 60:.1f} min: "
            + ", ".join(f"{s.start:.0f}s-{s.end:.0f}s" for s in segments)
        )

# ---------------------------------------------------------------------------
# Keep the progress panel fresh while a job is being watched
# ---------------------------------------------------------------------------
if view.is_polling:
    time.sleep(settings.poll_interval_seconds)
    st.rerun()
