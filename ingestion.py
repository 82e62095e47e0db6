import base64
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import fitz
import requests
import streamlit as st
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError

from config import (
    AI_MAX_TOKENS,
    AI_TEMPERATURE,
    IMAGE_BACKEND,
    IMAGE_SYSTEM_TPL,
    IMAGE_USER_TPL,
    MAX_IMAGE_MB,
    MAX_PDF_MB,
    MODEL_NAME,
    PDF_BACKEND,
    PDF_ENDPOINT,
    PDF_MAX_PAGES,
    PDF_MAX_TEXT_CHARS,
    PDF_MIN_TEXT_CHARS,
    PDF_SYSTEM_TPL,
    PDF_TIMEOUT_S,
    PDF_USER_TPL,
    SUPABASE_FUNCTION_NAME,
    WORKSHEET_SCHEMA,
    _safe_secret,
)
from image_utils import PDF_MIME, prepare_upload
from models import MATCHING, MULTIPLE_CHOICE, QUESTION_TYPES, Worksheet
from session_store import SessionStore
from utils.json_utils import safe_parse_json, strip_code_fences

LOGGER = logging.getLogger("quizwiz")

FORMAT_NOT_RECOGNIZED = "Could not detect worksheet format"
PDF_TIMEOUT_MESSAGE = "PDF processing timed out. Try a smaller file."
GENERIC_FAILURE = "There was an error processing your worksheet. Please try again."

TYPE_ALIASES = {
    "multiple choice": "multiple-choice",
    "multiple_choice": "multiple-choice",
    "fill-in-the-blank": "fill-blank",
    "fill in the blank": "fill-blank",
    "fill_blank": "fill-blank",
    "short-answer": "text",
    "short answer": "text",
}


# ============================================================
# ERRORS
# ============================================================
class IngestionError(Exception):
    kind = "error"


class InputError(IngestionError):
    kind = "input"


class TransportError(IngestionError):
    kind = "transport"


class FormatError(IngestionError):
    kind = "format"


class IngestionTimeout(IngestionError):
    kind = "timeout"


@dataclass(frozen=True)
class IngestResult:
    worksheet: Optional[Worksheet] = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.worksheet is not None


# ============================================================
# RESPONSE NORMALIZATION
# ============================================================
def _new_id() -> str:
    return str(uuid.uuid4())


def _option_letter(index: int) -> str:
    # a..z, then aa, ab, ...
    letters = ""
    n = index
    while True:
        letters = chr(97 + n % 26) + letters
        n = n // 26 - 1
        if n < 0:
            return letters


def _normalize_options(raw_options: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw_options, list):
        return []
    entries = []
    for opt in raw_options:
        if isinstance(opt, str):
            opt = {"text": opt}
        if isinstance(opt, dict):
            entries.append((str(opt.get("id", "") or "").strip(), str(opt.get("text", "") or "")))

    # explicit ids win; blanks and repeats get the first free letter
    seen = set()
    ids: List[Optional[str]] = []
    for opt_id, _ in entries:
        if opt_id and opt_id not in seen:
            seen.add(opt_id)
            ids.append(opt_id)
        else:
            ids.append(None)

    out: List[Dict[str, Any]] = []
    letter_idx = 0
    for (_, text), opt_id in zip(entries, ids):
        if opt_id is None:
            while _option_letter(letter_idx) in seen:
                letter_idx += 1
            opt_id = _option_letter(letter_idx)
            seen.add(opt_id)
        out.append({"id": opt_id, "text": text})
    return out


def _normalize_question(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Map one parsed question onto the wire shape, or None when it cannot be answered."""
    qtype = str(raw.get("type", "") or "").strip().lower()
    qtype = TYPE_ALIASES.get(qtype, qtype)
    if qtype not in QUESTION_TYPES:
        LOGGER.warning("Question with unknown type dropped", extra={"ctx": {"component": "ingest", "type": qtype}})
        return None
    q: Dict[str, Any] = {
        "id": _new_id(),
        "type": qtype,
        "text": str(raw.get("text", "") or ""),
        "correctAnswer": raw.get("correctAnswer", ""),
    }
    if qtype in (MULTIPLE_CHOICE, MATCHING):
        q["options"] = _normalize_options(raw.get("options"))
        if not q["options"]:
            LOGGER.warning("Choice question without options dropped", extra={"ctx": {"component": "ingest", "type": qtype}})
            return None
    return q


def normalize_worksheet(raw: Any) -> Worksheet:
    """Turn the parser's worksheet object into a Worksheet with fresh ids everywhere.

    Worksheet, section and question ids are always regenerated; option ids are
    kept when present and unique, otherwise filled with the first unused
    letter (a, b, c...). Questions of an unknown type and choice questions
    without options are dropped; a worksheet left with no questions is a
    format error.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("sections"), list):
        raise FormatError("Failed to parse AI response into worksheet format")

    sections = []
    for sec in raw["sections"]:
        if not isinstance(sec, dict):
            continue
        normalized = (_normalize_question(q) for q in (sec.get("questions") or []) if isinstance(q, dict))
        sections.append({
            "id": _new_id(),
            "title": str(sec.get("title", "") or ""),
            "instructions": str(sec.get("instructions", "") or ""),
            "questions": [q for q in normalized if q is not None],
        })

    if not any(sec["questions"] for sec in sections):
        raise FormatError("No answerable questions were found in this worksheet.")

    desc = raw.get("description")
    payload = {
        "id": _new_id(),
        "title": str(raw.get("title", "") or "").strip() or "Worksheet",
        "sections": sections,
    }
    if desc is not None:
        payload["description"] = str(desc)
    try:
        return Worksheet.from_dict(payload)
    except ValueError as e:
        raise FormatError(f"Failed to parse AI response into worksheet format: {e}")


def extract_worksheet_payload(data: Any) -> Optional[Dict[str, Any]]:
    """Pull the worksheet object out of an endpoint response.

    Returns None when the response is well formed but carries no worksheet.
    """
    if isinstance(data, (bytes, bytearray)):
        data = safe_parse_json(bytes(data).decode("utf-8", errors="replace"))
    elif isinstance(data, str):
        data = safe_parse_json(data)
    if not isinstance(data, dict):
        raise FormatError("The worksheet service returned an unreadable response.")

    ws = data.get("worksheet")
    if isinstance(ws, dict):
        return ws
    if ws is None and isinstance(data.get("sections"), list):
        return data
    if data.get("error"):
        raise TransportError(str(data["error"]))
    return None


def _render_template(tpl: str, mapping: Dict[str, Any]) -> str:
    # Tokens look like: <<TOKEN_NAME>>
    out = str(tpl or "")
    for k, v in (mapping or {}).items():
        out = out.replace(f"<<{k}>>", str(v))
    return out


def _data_url_bytes(data_url: str) -> bytes:
    _, _, b64 = (data_url or "").partition(",")
    try:
        return base64.b64decode(b64, validate=False)
    except ValueError:
        raise InputError("The uploaded file could not be read.")


def extract_pdf_text(pdf_bytes: bytes, max_pages: int = PDF_MAX_PAGES) -> str:
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            pages = min(int(max_pages), doc.page_count)
            return "\n".join(doc[i].get_text("text") or "" for i in range(pages))
    except (RuntimeError, ValueError) as e:
        LOGGER.error("PDF text extraction failed", extra={"ctx": {"component": "pdf", "error": type(e).__name__}})
        raise InputError("Failed to read PDF. Please ensure it contains selectable text (not a scanned image).")


# ============================================================
# TRANSPORTS
# ============================================================
class SupabaseFunctionTransport:
    """Invokes the `process-worksheet` edge function through supabase-py."""

    def __init__(self, client_factory: Callable[[], Any], function_name: str = SUPABASE_FUNCTION_NAME):
        self.client_factory = client_factory
        self.function_name = function_name

    def parse(self, data_url: str, mime_type: str) -> Any:
        sb = self.client_factory()
        if sb is None:
            raise TransportError("Supabase is not configured (SUPABASE_URL / SUPABASE_ANON_KEY).")
        try:
            res = sb.functions.invoke(
                self.function_name,
                invoke_options={"body": {"image": data_url, "fileType": mime_type}},
            )
        except Exception as e:
            LOGGER.error(
                "Edge function call failed",
                extra={"ctx": {"component": "ingest", "transport": "supabase", "error": type(e).__name__}},
            )
            raise TransportError(getattr(e, "message", None) or str(e) or GENERIC_FAILURE)

        # supabase-py returns raw bytes, a parsed dict, or a response object depending on version
        if hasattr(res, "data") and not isinstance(res, (bytes, bytearray, dict)):
            return res.data
        return res


class HttpFunctionTransport:
    """POSTs `{image, fileType}` to a serverless function URL with a hard timeout."""

    def __init__(self, url: str, timeout_s: Optional[float] = None):
        self.url = url
        self.timeout_s = timeout_s

    def parse(self, data_url: str, mime_type: str) -> Any:
        try:
            resp = requests.post(
                self.url,
                json={"image": data_url, "fileType": mime_type},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.Timeout:
            LOGGER.warning(
                "Worksheet function timed out",
                extra={"ctx": {"component": "ingest", "transport": "http", "timeout_s": self.timeout_s}},
            )
            raise IngestionTimeout(PDF_TIMEOUT_MESSAGE)
        except requests.RequestException as e:
            LOGGER.error(
                "Worksheet function unreachable",
                extra={"ctx": {"component": "ingest", "transport": "http", "error": type(e).__name__}},
            )
            raise TransportError(f"Could not reach the worksheet service ({type(e).__name__}).")

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.ok:
            msg = data.get("error") if isinstance(data, dict) else None
            LOGGER.error(
                "Worksheet function returned an error",
                extra={"ctx": {"component": "ingest", "transport": "http", "status": resp.status_code}},
            )
            raise TransportError(str(msg or "Failed to process PDF"))
        if data is None:
            raise FormatError("The worksheet service returned an unreadable response.")
        return data


class OpenAIWorksheetTransport:
    """Does the serverless function's work in-process: prompt the model, parse its JSON."""

    def __init__(
        self,
        client_factory: Callable[[], Any],
        model: str = MODEL_NAME,
        timeout_s: Optional[float] = None,
        max_pdf_mb: float = MAX_PDF_MB,
    ):
        self.client_factory = client_factory
        self.model = model
        self.timeout_s = timeout_s
        self.max_pdf_mb = max_pdf_mb

    def _image_messages(self, data_url: str) -> List[Dict[str, Any]]:
        system = _render_template(IMAGE_SYSTEM_TPL, {"WORKSHEET_SCHEMA": WORKSHEET_SCHEMA}).strip()
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": [
                {"type": "text", "text": IMAGE_USER_TPL.strip()},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]},
        ]

    def _pdf_messages(self, data_url: str) -> List[Dict[str, Any]]:
        pdf_bytes = _data_url_bytes(data_url)
        size_mb = len(pdf_bytes) / (1024 * 1024)
        if size_mb > self.max_pdf_mb:
            raise InputError(f"PDF file too large. Please upload a file smaller than {self.max_pdf_mb:.0f}MB.")

        text = extract_pdf_text(pdf_bytes)
        if len(text.strip()) < PDF_MIN_TEXT_CHARS:
            raise InputError("Could not extract readable text from PDF. Please try an image instead.")
        if len(text) > PDF_MAX_TEXT_CHARS:
            LOGGER.info(
                "PDF text truncated",
                extra={"ctx": {"component": "pdf", "from": len(text), "to": PDF_MAX_TEXT_CHARS}},
            )
            text = text[:PDF_MAX_TEXT_CHARS] + "\n\n[Content truncated for processing]"

        system = _render_template(PDF_SYSTEM_TPL, {"WORKSHEET_SCHEMA": WORKSHEET_SCHEMA}).strip()
        user = _render_template(PDF_USER_TPL, {"PDF_TEXT": text}).strip()
        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    def parse(self, data_url: str, mime_type: str) -> Any:
        is_pdf = mime_type == PDF_MIME
        messages = self._pdf_messages(data_url) if is_pdf else self._image_messages(data_url)

        try:
            client = self.client_factory()
            if self.timeout_s is not None:
                client = client.with_options(timeout=self.timeout_s)
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=AI_TEMPERATURE,
                max_completion_tokens=AI_MAX_TOKENS,
                response_format={"type": "json_object"},
            )
        except APITimeoutError:
            raise IngestionTimeout(PDF_TIMEOUT_MESSAGE if is_pdf else "Worksheet processing timed out. Please try again.")
        except (APIConnectionError, APIStatusError) as e:
            LOGGER.error("OpenAI request failed", extra={"ctx": {"component": "openai", "error": type(e).__name__}})
            raise TransportError(getattr(e, "message", None) or "Failed to process worksheet")
        except OpenAIError as e:
            LOGGER.error("OpenAI client error", extra={"ctx": {"component": "openai", "error": type(e).__name__}})
            raise TransportError("OpenAI API key missing or invalid.")

        raw = response.choices[0].message.content or ""
        LOGGER.info("AI response received", extra={"ctx": {"component": "openai", "chars": len(raw), "pdf": is_pdf}})
        parsed = safe_parse_json(strip_code_fences(raw))
        if not isinstance(parsed, dict):
            raise FormatError("Failed to parse AI response into worksheet format")
        if isinstance(parsed.get("worksheet"), dict):
            return parsed
        return {"worksheet": parsed}


# ============================================================
# INGESTOR
# ============================================================
class WorksheetIngestor:
    def __init__(self, image_transport: Any, pdf_transport: Any, max_image_mb: float = MAX_IMAGE_MB):
        self.image_transport = image_transport
        self.pdf_transport = pdf_transport
        self.max_image_mb = max_image_mb

    def ingest(self, file_bytes: bytes, name: str = "", mime_type: Optional[str] = None) -> IngestResult:
        """Parse an uploaded worksheet. Never raises for expected failures."""
        try:
            upload = prepare_upload(file_bytes, name, mime_type, self.max_image_mb)
        except ValueError as e:
            return IngestResult(error=str(e), kind=InputError.kind)

        transport = self.pdf_transport if upload.is_pdf else self.image_transport
        ctx = {"component": "ingest", "file": name, "mime": upload.mime_type, "transport": type(transport).__name__}
        LOGGER.info("Worksheet ingestion started", extra={"ctx": ctx})

        try:
            data = transport.parse(upload.to_data_url(), upload.mime_type)
            payload = extract_worksheet_payload(data)
            if payload is None:
                LOGGER.warning("Response carried no worksheet", extra={"ctx": ctx})
                return IngestResult(error=FORMAT_NOT_RECOGNIZED, kind=FormatError.kind)
            worksheet = normalize_worksheet(payload)
        except IngestionError as e:
            LOGGER.error("Worksheet ingestion failed", extra={"ctx": {**ctx, "kind": e.kind, "error": str(e)[:120]}})
            return IngestResult(error=str(e) or GENERIC_FAILURE, kind=e.kind)

        LOGGER.info(
            "Worksheet ingestion finished",
            extra={"ctx": {**ctx, "sections": len(worksheet.sections), "questions": sum(1 for _ in worksheet.iter_questions())}},
        )
        return IngestResult(worksheet=worksheet)


def commit_ingestion(store: SessionStore, token: int, result: IngestResult) -> IngestResult:
    if not result.ok:
        return result
    if not store.is_current_ingestion(token):
        LOGGER.warning("Stale ingestion result discarded", extra={"ctx": {"component": "ingest", "token": token}})
        return IngestResult(error="A newer upload replaced this one.", kind="superseded")
    store.save_worksheet(result.worksheet)
    store.save_current_index(0)
    return result


def ingest_into_session(
    store: SessionStore,
    ingestor: WorksheetIngestor,
    file_bytes: bytes,
    name: str = "",
    mime_type: Optional[str] = None,
    run: Optional[Callable[[Callable[[], IngestResult]], IngestResult]] = None,
) -> IngestResult:
    """Reset progress, ingest, and save the worksheet if no newer upload has started.

    `run` executes the blocking parse (the page passes its progress runner);
    session reads and writes stay on the calling thread.
    """
    store.clear(keep_student=True)
    token = store.begin_ingestion()

    def task() -> IngestResult:
        return ingestor.ingest(file_bytes, name, mime_type)

    result = run(task) if run is not None else task()
    return commit_ingestion(store, token, result)


# ============================================================
# CLIENTS (CACHED)
# ============================================================
@st.cache_resource
def get_openai_client():
    return OpenAI(api_key=_safe_secret("OPENAI_API_KEY"))


@st.cache_resource
def get_supabase_client():
    url = (_safe_secret("SUPABASE_URL", "") or "").strip()
    key = (_safe_secret("SUPABASE_ANON_KEY", "") or "").strip()
    if not url or not key:
        return None
    try:
        from supabase import create_client
        return create_client(url, key)
    except Exception as e:
        LOGGER.error("Supabase client init failed", extra={"ctx": {"component": "supabase", "error": type(e).__name__}})
        return None


def build_ingestor() -> WorksheetIngestor:
    if IMAGE_BACKEND == "openai":
        image_transport = OpenAIWorksheetTransport(get_openai_client)
    else:
        image_transport = SupabaseFunctionTransport(get_supabase_client)

    if PDF_BACKEND == "openai":
        pdf_transport = OpenAIWorksheetTransport(get_openai_client, timeout_s=PDF_TIMEOUT_S)
    else:
        pdf_transport = HttpFunctionTransport(PDF_ENDPOINT, timeout_s=PDF_TIMEOUT_S)

    return WorksheetIngestor(image_transport=image_transport, pdf_transport=pdf_transport)
