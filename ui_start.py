import logging

import streamlit as st

from components.ui import render_callout
from config import UPLOAD_TYPES
from demo import demo_worksheet
from ingestion import build_ingestor, ingest_into_session
from models import StudentInfo
from session_store import SessionStore

LOGGER = logging.getLogger("quizwiz")


def _render_student_form(store: SessionStore) -> None:
    with st.container(border=True):
        st.subheader("Welcome to Quiz Wiz!")
        with st.form("student_form"):
            name = st.text_input("Your Name", placeholder="Enter your name")
            submitted = st.form_submit_button("Start Worksheet", type="primary", use_container_width=True)

    if submitted:
        try:
            info = StudentInfo.started_now(name)
        except ValueError as e:
            st.toast(str(e), icon="⚠️")
            return
        store.save_student_info(info)
        LOGGER.info("Student registered", extra={"ctx": {"component": "start"}})
        st.rerun()


def _render_upload(store: SessionStore, helpers: dict) -> None:
    go_to = helpers["go_to"]
    run_with_progress = helpers["run_with_progress"]
    student = store.get_student_info()

    with st.container(border=True):
        st.subheader("Upload Worksheet")
        st.caption(f"Hi {student.name}! Take a photo of your worksheet or upload a PDF.")
        uploaded = st.file_uploader("Worksheet image or PDF", type=UPLOAD_TYPES, key="worksheet_file")

        col1, col2 = st.columns(2)
        process_clicked = col1.button("Process Worksheet", type="primary", use_container_width=True)
        demo_clicked = col2.button("Try demo worksheet", use_container_width=True)

    if demo_clicked:
        store.clear(keep_student=True)
        store.save_worksheet(demo_worksheet())
        st.toast("Demo worksheet loaded!", icon="✅")
        go_to("worksheet")

    if process_clicked:
        if uploaded is None:
            st.toast("Please upload a worksheet image", icon="⚠️")
            return

        result = ingest_into_session(
            store,
            build_ingestor(),
            uploaded.getvalue(),
            name=uploaded.name,
            mime_type=uploaded.type,
            run=run_with_progress,
        )
        if not result.ok:
            title = {
                "format": "Could not process worksheet",
                "timeout": "Processing timed out",
                "input": "Check your file",
            }.get(result.kind or "", "Failed to process worksheet")
            render_callout(title, result.error or "Please try again.", kind="error")
            return

        st.toast("Worksheet processed successfully!", icon="✅")
        go_to("worksheet")


def render_start_page(store: SessionStore, helpers: dict) -> None:
    if store.get_student_info() is None:
        _render_student_form(store)
    else:
        _render_upload(store, helpers)
