import streamlit as st

import logging
from logging.handlers import RotatingFileHandler
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

# ============================================================
# LOGGING
# ============================================================
class KVFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        ctx = getattr(record, "ctx", None)
        if isinstance(ctx, dict) and ctx:
            keys = sorted(ctx.keys())
            kv = " ".join([f"[{k}={ctx[k]}]" for k in keys if ctx[k] is not None and ctx[k] != ""])
            if kv:
                return f"{base} {kv}"
        return base


def setup_logging() -> logging.Logger:
    logger = logging.getLogger("quizwiz")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    fmt = KVFormatter("%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    try:
        log_path = os.environ.get("QUIZWIZ_LOG_FILE", "quizwiz_app.log")
        fh = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3)
        fh.setLevel(logging.INFO)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    except OSError:
        logger.warning("File logging disabled", extra={"ctx": {"component": "startup"}})

    logger.propagate = False
    logger.info("Logging configured", extra={"ctx": {"component": "startup"}})
    return logger


LOGGER = setup_logging()

# =========================
# --- PAGE CONFIG ---
# =========================
st.set_page_config(
    page_title="Quiz Wiz",
    page_icon="🧙",
    layout="centered",
)

from components.ui import inject_styles, render_page_header, render_stepper  # noqa: E402
from config import PROCESSING_STAGES, PROCESSING_TICK_S  # noqa: E402
from session_store import SessionStore  # noqa: E402
from ui_results import render_results_page  # noqa: E402
from ui_start import render_start_page  # noqa: E402
from ui_worksheet import render_worksheet_page  # noqa: E402

STEPS = ["Student info", "Upload", "Answer", "Results"]
PAGES = ("start", "worksheet", "results")

# =========================
# --- SESSION STATE ---
# =========================
def _ss_init(k: str, v):
    if k not in st.session_state:
        st.session_state[k] = v


_ss_init("step", "start")


def go_to(step: str) -> None:
    st.session_state["step"] = step if step in PAGES else "start"
    st.rerun()


# ============================================================
# PROGRESS INDICATORS
# ============================================================
def _run_ingest_with_progress(task_fn: Callable, est_seconds: float = 12.0):
    """Run the blocking parse in a worker while stepping through the stage messages."""
    with st.status(PROCESSING_STAGES[0], expanded=True) as status:
        progress = st.progress(0)
        start = time.monotonic()

        with ThreadPoolExecutor(max_workers=1) as ex:
            fut = ex.submit(task_fn)
            while not fut.done():
                elapsed = time.monotonic() - start
                stage = min(len(PROCESSING_STAGES) - 1, int(elapsed / PROCESSING_TICK_S))
                frac = min(0.95, max(0.02, elapsed / max(1e-6, est_seconds)))
                status.update(label=PROCESSING_STAGES[stage])
                progress.progress(int(frac * 100))
                time.sleep(0.12)

            result = fut.result()

        progress.progress(100)
        if getattr(result, "ok", False):
            status.update(label="✓ Worksheet ready", state="complete", expanded=False)
        else:
            status.update(label="Could not process worksheet", state="error", expanded=False)

    return result


# ============================================================
# MAIN
# ============================================================
inject_styles()
render_page_header("Wiz", subtitle="Interactive Worksheet Genie", accent="Quiz")

store = SessionStore(st.session_state)
helpers = {
    "go_to": go_to,
    "run_with_progress": _run_ingest_with_progress,
}

page = st.session_state.get("step", "start")
if page == "worksheet":
    render_stepper(STEPS, active_index=2)
    render_worksheet_page(store, helpers)
elif page == "results":
    render_stepper(STEPS, active_index=3)
    render_results_page(store, helpers)
else:
    render_stepper(STEPS, active_index=0 if store.get_student_info() is None else 1)
    render_start_page(store, helpers)

st.caption("© Quiz Wiz Worksheet Genie")
