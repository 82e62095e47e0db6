from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Iterable

import streamlit as st


@dataclass(frozen=True)
class StatusTone:
    name: str
    icon: str
    color: str
    background: str


STATUS_TONES = {
    "info": StatusTone("info", "ℹ️", "#1d4ed8", "#eff6ff"),
    "success": StatusTone("success", "✅", "#047857", "#ecfdf5"),
    "warning": StatusTone("warning", "⚠️", "#a16207", "#fefce8"),
    "error": StatusTone("error", "🚨", "#b91c1c", "#fef2f2"),
}

_STYLES = """
<style>
.qw-hero h1 { text-align: center; margin-bottom: 0; }
.qw-hero .qw-accent { color: #9b87f5; }
.qw-hero p { text-align: center; color: #4b5563; margin-top: 0.25rem; }
.qw-stepper { display: flex; gap: 0.5rem; justify-content: center; margin: 0.75rem 0 1.25rem; }
.qw-step { padding: 0.25rem 0.75rem; border-radius: 999px; background: #f3f4f6; color: #6b7280; font-size: 0.85rem; }
.qw-step.active { background: #9b87f5; color: #ffffff; }
.qw-step.done { background: #ede9fe; color: #5b21b6; }
.qw-feedback { padding: 1rem; border-radius: 0.75rem; margin-top: 1rem; }
.qw-feedback p { margin: 0; }
.qw-badge { font-size: 1.8rem; font-weight: 700; border-radius: 999px; width: 5rem; height: 5rem;
            display: flex; align-items: center; justify-content: center; margin-left: auto; }
</style>
"""


def _tone(kind: str) -> StatusTone:
    return STATUS_TONES.get(kind, STATUS_TONES["info"])


def inject_styles() -> None:
    st.markdown(_STYLES, unsafe_allow_html=True)


def render_page_header(title: str, subtitle: str | None = None, accent: str | None = None) -> None:
    accent_html = f"<span class='qw-accent'>{escape(accent)}</span> " if accent else ""
    subtitle_html = f"<p>{escape(subtitle)}</p>" if subtitle else ""
    st.markdown(
        f"""
        <div class="qw-hero">
          <h1>{accent_html}{escape(title)}</h1>
          {subtitle_html}
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_stepper(steps: Iterable[str], active_index: int = 0) -> None:
    items = []
    for idx, step in enumerate(steps):
        state = "active" if idx == active_index else "done" if idx < active_index else ""
        items.append(f"<span class='qw-step {state}'>{idx + 1}. {escape(step)}</span>")
    st.markdown(f"<div class='qw-stepper'>{''.join(items)}</div>", unsafe_allow_html=True)


def render_answer_feedback(is_correct: bool, correct_answer: str = "") -> None:
    tone = _tone("success" if is_correct else "error")
    headline = "Correct!" if is_correct else "Not quite right"
    detail = ""
    if not is_correct and correct_answer:
        detail = f"<p style='font-size:0.9rem;margin-top:0.25rem'>The correct answer is: <strong>{escape(correct_answer)}</strong></p>"
    st.markdown(
        f"""
        <div class="qw-feedback" style="background:{tone.background};color:{tone.color}">
          <p><strong>{tone.icon} {headline}</strong></p>
          {detail}
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_score_badge(percent: int, kind: str) -> None:
    tone = _tone(kind)
    st.markdown(
        f"<div class='qw-badge' style='background:{tone.background};color:{tone.color}'>{int(percent)}%</div>",
        unsafe_allow_html=True,
    )


def render_callout(title: str, body: str, *, kind: str = "info") -> None:
    tone = _tone(kind)
    st.markdown(
        f"""
        <div class="qw-feedback" style="background:{tone.background};color:{tone.color}">
          <p><strong>{tone.icon} {escape(title)}</strong></p>
          <p>{escape(body)}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )
