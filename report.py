"""
Scored worksheet report.

The report is laid out once as a single tall bitmap (Pillow) and then
projected onto A4 pages (reportlab): each page shows one page-height window
of the bitmap, and the window slides down by a full page until the whole
bitmap has been shown.
"""

from __future__ import annotations

import io
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from grading import format_correct_answer
from models import StudentInfo, Worksheet

LOGGER = logging.getLogger("quizwiz")

# Layout (pixels)
CONTENT_WIDTH_PX = 650
PADDING_PX = 32
CARD_PADDING_PX = 12
LINE_GAP_PX = 6
BLOCK_GAP_PX = 16

COLORS = {
    "title": (155, 135, 245),
    "heading": (26, 31, 44),
    "body": (55, 65, 81),
    "correct": (16, 185, 129),
    "incorrect": (239, 68, 68),
    "border": (229, 231, 235),
}

FONT_SIZES = {"title": 24, "score": 18, "heading": 18, "body": 14}

NOT_ANSWERED = "Not answered"


@dataclass(frozen=True)
class ScoreSummary:
    correct: int
    total: int
    percent: int


@dataclass(frozen=True)
class ReportLine:
    kind: str  # title | meta | score | section | instructions | question | answer | correct_answer
    text: str
    tone: str = "body"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize(worksheet: Optional[Worksheet]) -> ScoreSummary:
    if worksheet is None:
        return ScoreSummary(correct=0, total=0, percent=0)
    total = sum(len(s.questions) for s in worksheet.sections)
    correct = sum(1 for s in worksheet.sections for q in s.questions if q.is_correct is True)
    if total == 0:
        return ScoreSummary(correct=correct, total=0, percent=0)
    return ScoreSummary(correct=correct, total=total, percent=_round_half_up(correct / total * 100))


def score_tone(percent: int) -> str:
    if percent >= 80:
        return "success"
    if percent >= 60:
        return "warning"
    return "error"


def report_filename(student: StudentInfo, worksheet: Worksheet) -> str:
    return re.sub(r"\s+", "_", f"{student.name}_{worksheet.title}.pdf")


def share_text(student: StudentInfo, summary: ScoreSummary) -> str:
    return f"{student.name}'s completed worksheet with score: {summary.percent}%"


def _answer_text(answer) -> str:
    if isinstance(answer, tuple):
        return ", ".join(answer)
    return str(answer)


def build_report_lines(worksheet: Worksheet, student: StudentInfo) -> List[ReportLine]:
    summary = summarize(worksheet)
    lines = [
        ReportLine("title", worksheet.title, "title"),
        ReportLine("meta", f"Student: {student.name}"),
        ReportLine("meta", f"Completed: {student.timestamp}"),
        ReportLine("score", f"Score: {summary.correct}/{summary.total} ({summary.percent}%)", "title"),
    ]
    for section in worksheet.sections:
        lines.append(ReportLine("section", section.title, "heading"))
        if section.instructions:
            lines.append(ReportLine("instructions", section.instructions))
        for n, q in enumerate(section.questions, start=1):
            lines.append(ReportLine("question", f"{n}. {q.text}", "heading"))
            # empty answers print as unanswered too
            shown = _answer_text(q.user_answer) if q.user_answer else NOT_ANSWERED
            tone = "correct" if q.is_correct else "incorrect"
            lines.append(ReportLine("answer", f"Your answer: {shown}", tone))
            if not q.is_correct:
                lines.append(ReportLine("correct_answer", f"Correct answer: {format_correct_answer(q)}", "correct"))
    return lines


# ============================================================
# BITMAP LAYOUT
# ============================================================
def _font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    names = ["DejaVuSans-Bold.ttf", "Arial Bold.ttf"] if bold else ["DejaVuSans.ttf", "Arial.ttf"]
    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        return ImageFont.load_default()


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    out: List[str] = []
    for paragraph in (text or "").split("\n"):
        words = paragraph.split()
        if not words:
            out.append("")
            continue
        current = words[0]
        for word in words[1:]:
            trial = f"{current} {word}"
            if draw.textlength(trial, font=font) <= max_width:
                current = trial
            else:
                out.append(current)
                current = word
        out.append(current)
    return out


def _line_height(font) -> int:
    left, top, right, bottom = font.getbbox("Ag")
    return int(bottom - top) + LINE_GAP_PX


def render_report_image(lines: List[ReportLine]) -> Image.Image:
    """Draw the report lines top to bottom on a white bitmap sized to fit."""
    fonts = {
        "title": _font(FONT_SIZES["title"], bold=True),
        "score": _font(FONT_SIZES["score"], bold=True),
        "heading": _font(FONT_SIZES["heading"], bold=True),
        "question": _font(FONT_SIZES["body"], bold=True),
        "body": _font(FONT_SIZES["body"]),
    }
    inner_w = CONTENT_WIDTH_PX - 2 * PADDING_PX
    measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

    # (op, payload) tuples replayed onto the final canvas
    ops: List[Tuple[str, tuple]] = []
    y = PADDING_PX
    card_top: Optional[int] = None

    def close_card(bottom: int) -> None:
        nonlocal card_top
        if card_top is not None:
            ops.append(("rect", (PADDING_PX, card_top, PADDING_PX + inner_w, bottom, COLORS["border"], 1)))
            card_top = None

    for line in lines:
        if line.kind in ("section", "question", "score") and card_top is not None:
            close_card(y + CARD_PADDING_PX)
            y += CARD_PADDING_PX + BLOCK_GAP_PX

        if line.kind == "title":
            font = fonts["title"]
            for row in _wrap(measure, line.text, font, inner_w):
                x = PADDING_PX + max(0, (inner_w - measure.textlength(row, font=font)) / 2)
                ops.append(("text", (x, y, row, font, COLORS["title"])))
                y += _line_height(font)
            y += BLOCK_GAP_PX
            continue

        if line.kind == "score":
            font = fonts["score"]
            box_h = _line_height(font) + 2 * CARD_PADDING_PX
            w = measure.textlength(line.text, font=font)
            ops.append(("rect", (PADDING_PX, y, PADDING_PX + inner_w, y + box_h, COLORS["title"], 2)))
            ops.append(("text", (PADDING_PX + (inner_w - w) / 2, y + CARD_PADDING_PX, line.text, font, COLORS["heading"])))
            y += box_h + 2 * BLOCK_GAP_PX
            continue

        if line.kind == "section":
            y += BLOCK_GAP_PX // 2
            font = fonts["heading"]
            x0 = PADDING_PX
        elif line.kind == "question":
            card_top = y
            y += CARD_PADDING_PX
            font = fonts["question"]
            x0 = PADDING_PX + CARD_PADDING_PX
        elif line.kind in ("answer", "correct_answer"):
            font = fonts["body"]
            x0 = PADDING_PX + CARD_PADDING_PX
        else:
            font = fonts["body"]
            x0 = PADDING_PX

        color = COLORS.get(line.tone, COLORS["body"])
        for row in _wrap(measure, line.text, font, inner_w - 2 * (x0 - PADDING_PX)):
            ops.append(("text", (x0, y, row, font, color)))
            y += _line_height(font)
        if line.kind in ("section", "instructions", "meta"):
            y += LINE_GAP_PX

    if card_top is not None:
        close_card(y + CARD_PADDING_PX)
        y += CARD_PADDING_PX
    height = y + PADDING_PX

    img = Image.new("RGB", (CONTENT_WIDTH_PX, int(height)), (255, 255, 255))
    draw = ImageDraw.Draw(img)
    for op, payload in ops:
        if op == "rect":
            x0, y0, x1, y1, color, width = payload
            draw.rounded_rectangle((x0, y0, x1, y1), radius=8, outline=color, width=width)
        else:
            x, ty, text, font, color = payload
            draw.text((x, ty), text, font=font, fill=color)
    return img


# ============================================================
# PAGINATION
# ============================================================
def page_offsets(content_height: float, page_height: float) -> List[float]:
    """Vertical offsets at which the full content is placed on each page.

    Page one starts at 0. While content remains, the next page places the
    content at (remaining - content_height), i.e. shifted up by one more page.
    """
    offsets = [0.0]
    height_left = content_height - page_height
    while height_left > 0:
        offsets.append(height_left - content_height)
        height_left -= page_height
    return offsets


def render_pdf_pages(img: Image.Image, pagesize: Tuple[float, float] = A4) -> bytes:
    page_w, page_h = pagesize
    ratio = page_w / img.width
    draw_w = img.width * ratio
    draw_h = img.height * ratio

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    reader = ImageReader(img)
    offsets = page_offsets(draw_h, page_h)
    for position in offsets:
        # offsets are measured from the top edge; reportlab's origin is bottom-left
        c.drawImage(reader, 0, page_h - position - draw_h, width=draw_w, height=draw_h)
        c.showPage()
    c.save()
    LOGGER.info(
        "Report PDF rendered",
        extra={"ctx": {"component": "report", "pages": len(offsets), "height_px": img.height}},
    )
    return buf.getvalue()


def render_report_pdf(worksheet: Worksheet, student: StudentInfo) -> bytes:
    lines = build_report_lines(worksheet, student)
    return render_pdf_pages(render_report_image(lines))
