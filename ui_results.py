import logging

import streamlit as st

from components.ui import render_score_badge
from report import render_report_pdf, report_filename, score_tone, share_text, summarize
from session_store import SessionStore

LOGGER = logging.getLogger("quizwiz")

REPORT_KEY = "quiz_wizard_report_pdf"


def render_results_page(store: SessionStore, helpers: dict) -> None:
    go_to = helpers["go_to"]

    if not store.is_completed():
        st.toast("Please complete the worksheet first", icon="⚠️")
        go_to("worksheet")
        return

    worksheet = store.get_worksheet()
    student = store.get_student_info()
    if worksheet is None or student is None:
        st.toast("Missing worksheet data", icon="⚠️")
        go_to("start")
        return

    summary = summarize(worksheet)

    with st.container(border=True):
        st.markdown(f"## {student.name}")
        st.caption(f"Completed on {student.timestamp}")
        st.markdown(f"**{worksheet.title}**")
        left, right = st.columns([2, 1])
        with left:
            st.metric("Score", f"{summary.correct}/{summary.total}")
        with right:
            render_score_badge(summary.percent, score_tone(summary.percent))

        # Cached per worksheet value so reruns reuse the same bytes
        cached = st.session_state.get(REPORT_KEY)
        if not cached or cached[0] != worksheet:
            try:
                cached = (worksheet, render_report_pdf(worksheet, student))
                st.session_state[REPORT_KEY] = cached
            except (OSError, ValueError) as e:
                LOGGER.error("Report generation failed", extra={"ctx": {"component": "report", "error": type(e).__name__}})
                st.error("Failed to generate PDF")
                cached = None

        if cached:
            st.download_button(
                "Download Results",
                data=cached[1],
                file_name=report_filename(student, worksheet),
                mime="application/pdf",
                type="primary",
                use_container_width=True,
            )

        st.markdown("**Share with Teacher**")
        st.code(share_text(student, summary), language=None)

    if st.button("Start New Worksheet", key="start_new"):
        store.clear()
        st.session_state.pop(REPORT_KEY, None)
        go_to("start")
