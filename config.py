import json
import os
from pathlib import Path
from typing import Any, Dict

import streamlit as st


def _safe_secret(key: str, default: str | None = None) -> str | None:
    try:
        value = st.secrets.get(key, None)
    except Exception:
        value = None
    if value is None or value == "":
        value = os.getenv(key, default)
    return value


def _float_setting(key: str, default: float) -> float:
    raw = _safe_secret(key)
    try:
        return float(raw) if raw not in (None, "") else float(default)
    except (TypeError, ValueError):
        return float(default)


# ============================================================
# AI PARSER
# ============================================================
MODEL_NAME = (_safe_secret("QUIZWIZ_MODEL") or "gpt-4o").strip()
AI_TEMPERATURE = 0.1
AI_MAX_TOKENS = 4000

# ============================================================
# INGESTION BACKENDS
# ============================================================
# Images go through the Supabase edge function by default, PDFs through the
# Netlify function. Either can be switched to "openai" to parse in-process.
IMAGE_BACKEND = (_safe_secret("QUIZWIZ_IMAGE_BACKEND") or "supabase").strip().lower()
PDF_BACKEND = (_safe_secret("QUIZWIZ_PDF_BACKEND") or "netlify").strip().lower()

SUPABASE_FUNCTION_NAME = "process-worksheet"
BASE_URL = (_safe_secret("QUIZWIZ_BASE_URL") or "").strip().rstrip("/")
PDF_ENDPOINT_PATH = "/.netlify/functions/process-pdf-fast"
PDF_ENDPOINT = (_safe_secret("QUIZWIZ_PDF_ENDPOINT") or f"{BASE_URL}{PDF_ENDPOINT_PATH}").strip()

PDF_TIMEOUT_MIN_S = 20.0
PDF_TIMEOUT_MAX_S = 25.0
PDF_TIMEOUT_S = min(PDF_TIMEOUT_MAX_S, max(PDF_TIMEOUT_MIN_S, _float_setting("QUIZWIZ_PDF_TIMEOUT", 22.0)))

# ============================================================
# UPLOAD LIMITS
# ============================================================
MAX_IMAGE_MB = _float_setting("MAX_IMAGE_MB", 5.0)
MAX_PDF_MB = _float_setting("MAX_PDF_MB", 2.0)
PDF_MAX_PAGES = 1
PDF_MIN_TEXT_CHARS = 50
PDF_MAX_TEXT_CHARS = 4000

UPLOAD_TYPES = ["png", "jpg", "jpeg", "webp", "pdf"]

# Simulated progress while the parser runs (one stage per tick)
PROCESSING_STAGES = [
    "Analyzing worksheet...",
    "Extracting questions...",
    "Converting to interactive format...",
    "Finalizing worksheet...",
]
PROCESSING_TICK_S = 1.0

# ============================================================
# PROMPT PACK
# ============================================================
@st.cache_data(show_spinner=False)
def _load_prompt_pack(path: str) -> Dict[str, Any]:
    prompts_path = Path(path)
    if not prompts_path.exists():
        raise FileNotFoundError(f"Missing prompts file: {prompts_path}")
    return json.loads(prompts_path.read_text(encoding="utf-8"))


PROMPTS_PATH = str(Path(__file__).resolve().parent / "prompts.json")
PROMPTS = _load_prompt_pack(PROMPTS_PATH) or {}

WORKSHEET_SCHEMA = str(PROMPTS.get("worksheet_schema", "") or "").strip()
IMAGE_SYSTEM_TPL = str(PROMPTS.get("image_system", "") or "")
IMAGE_USER_TPL = str(PROMPTS.get("image_user", "") or "")
PDF_SYSTEM_TPL = str(PROMPTS.get("pdf_system", "") or "")
PDF_USER_TPL = str(PROMPTS.get("pdf_user", "") or "")
