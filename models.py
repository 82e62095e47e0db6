"""Worksheet data model.

Every value here is a frozen dataclass. Answering a question never mutates
anything: `with_answer` returns a new question and `Worksheet.replace_question`
returns a new worksheet with that one question swapped in.

The dict form (`to_dict` / `from_dict`) uses the field names of the parsing
service's JSON contract so the same shape can round-trip through the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

MULTIPLE_CHOICE = "multiple-choice"
MATCHING = "matching"
TEXT = "text"
FILL_BLANK = "fill-blank"

QUESTION_TYPES = (MULTIPLE_CHOICE, MATCHING, TEXT, FILL_BLANK)

Answer = Union[str, Tuple[str, ...]]


def _as_answer(value: Any) -> Answer:
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    if value is None:
        return ""
    return str(value)


def _answer_to_json(value: Answer) -> Any:
    return list(value) if isinstance(value, tuple) else value


@dataclass(frozen=True)
class Option:
    id: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Option":
        return cls(id=str(data.get("id", "") or ""), text=str(data.get("text", "") or ""))


@dataclass(frozen=True)
class _QuestionBase:
    id: str
    text: str
    correct_answer: Answer
    user_answer: Optional[Answer] = None
    is_correct: Optional[bool] = None

    type = ""

    def __post_init__(self) -> None:
        if (self.user_answer is None) != (self.is_correct is None):
            raise ValueError(f"Question {self.id!r}: user_answer and is_correct must be set together.")

    @property
    def is_answered(self) -> bool:
        return self.user_answer is not None

    @property
    def accepted_answers(self) -> Tuple[str, ...]:
        if isinstance(self.correct_answer, tuple):
            return self.correct_answer
        return (self.correct_answer,)

    def with_answer(self, answer: Answer, is_correct: bool):
        return replace(self, user_answer=_as_answer(answer), is_correct=bool(is_correct))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "correctAnswer": _answer_to_json(self.correct_answer),
        }
        if self.user_answer is not None:
            out["userAnswer"] = _answer_to_json(self.user_answer)
            out["isCorrect"] = self.is_correct
        return out


@dataclass(frozen=True)
class _ChoiceQuestion(_QuestionBase):
    options: Tuple[Option, ...] = field(default_factory=tuple)

    def option_by_id(self, option_id: str) -> Optional[Option]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["options"] = [opt.to_dict() for opt in self.options]
        return out


@dataclass(frozen=True)
class MultipleChoiceQuestion(_ChoiceQuestion):
    type = MULTIPLE_CHOICE


@dataclass(frozen=True)
class MatchingQuestion(_ChoiceQuestion):
    type = MATCHING


@dataclass(frozen=True)
class TextQuestion(_QuestionBase):
    type = TEXT


@dataclass(frozen=True)
class FillBlankQuestion(_QuestionBase):
    type = FILL_BLANK


Question = Union[MultipleChoiceQuestion, MatchingQuestion, TextQuestion, FillBlankQuestion]
ChoiceQuestion = Union[MultipleChoiceQuestion, MatchingQuestion]

_QUESTION_CLASSES = {
    MULTIPLE_CHOICE: MultipleChoiceQuestion,
    MATCHING: MatchingQuestion,
    TEXT: TextQuestion,
    FILL_BLANK: FillBlankQuestion,
}


def question_from_dict(data: Dict[str, Any]) -> Question:
    qtype = str(data.get("type", "") or "").strip().lower()
    cls = _QUESTION_CLASSES.get(qtype)
    if cls is None:
        raise ValueError(f"Unknown question type: {qtype!r}")

    kwargs: Dict[str, Any] = {
        "id": str(data.get("id", "") or ""),
        "text": str(data.get("text", "") or ""),
        "correct_answer": _as_answer(data.get("correctAnswer")),
    }
    if "userAnswer" in data and data.get("userAnswer") is not None:
        kwargs["user_answer"] = _as_answer(data["userAnswer"])
        kwargs["is_correct"] = bool(data.get("isCorrect", False))
    if issubclass(cls, _ChoiceQuestion):
        raw_options = data.get("options") or []
        kwargs["options"] = tuple(Option.from_dict(o) for o in raw_options if isinstance(o, dict))
    return cls(**kwargs)


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    instructions: str
    questions: Tuple[Question, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "instructions": self.instructions,
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            id=str(data.get("id", "") or ""),
            title=str(data.get("title", "") or ""),
            instructions=str(data.get("instructions", "") or ""),
            questions=tuple(question_from_dict(q) for q in (data.get("questions") or []) if isinstance(q, dict)),
        )


@dataclass(frozen=True)
class Worksheet:
    id: str
    title: str
    sections: Tuple[Section, ...] = field(default_factory=tuple)
    description: Optional[str] = None

    def iter_questions(self) -> Iterator[Question]:
        for section in self.sections:
            yield from section.questions

    def find_question(self, question_id: str) -> Optional[Question]:
        for q in self.iter_questions():
            if q.id == question_id:
                return q
        return None

    def replace_question(self, question_id: str, new_question: Question) -> Optional["Worksheet"]:
        """Return a copy with the first question matching `question_id` swapped out.

        Returns None when no question has that id.
        """
        sections: List[Section] = []
        found = False
        for section in self.sections:
            if found:
                sections.append(section)
                continue
            questions = list(section.questions)
            for idx, q in enumerate(questions):
                if q.id == question_id:
                    questions[idx] = new_question
                    found = True
                    break
            sections.append(replace(section, questions=tuple(questions)) if found else section)
        if not found:
            return None
        return replace(self, sections=tuple(sections))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "sections": [s.to_dict() for s in self.sections],
        }
        if self.description is not None:
            out["description"] = self.description
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Worksheet":
        if not isinstance(data, dict):
            raise ValueError("Worksheet payload must be an object.")
        sections = data.get("sections")
        if not isinstance(sections, list):
            raise ValueError("Worksheet payload is missing a sections list.")
        desc = data.get("description")
        return cls(
            id=str(data.get("id", "") or ""),
            title=str(data.get("title", "") or ""),
            description=None if desc is None else str(desc),
            sections=tuple(Section.from_dict(s) for s in sections if isinstance(s, dict)),
        )


@dataclass(frozen=True)
class StudentInfo:
    name: str
    timestamp: str

    @classmethod
    def started_now(cls, name: str, now: Optional[datetime] = None) -> "StudentInfo":
        """Stamp a student with e.g. '10/17/2026 at 02:15 PM'. Blank names are rejected."""
        clean = (name or "").strip()
        if not clean:
            raise ValueError("Please enter your name")
        now = now or datetime.now()
        return cls(name=clean, timestamp=now.strftime("%m/%d/%Y at %I:%M %p"))

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudentInfo":
        return cls(name=str(data.get("name", "") or ""), timestamp=str(data.get("timestamp", "") or ""))
