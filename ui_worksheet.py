import streamlit as st

from components.ui import render_answer_feedback
from grading import format_correct_answer, option_text
from models import MatchingQuestion, MultipleChoiceQuestion
from navigation import FINISHED, FinishNotAllowed, NoWorksheetLoaded, QuizController
from session_store import SessionStore


def _answer_input(question, disabled: bool):
    key = f"answer_{question.id}"
    if isinstance(question, (MultipleChoiceQuestion, MatchingQuestion)):
        labels = {opt.id: opt.text for opt in question.options}
        return st.radio(
            "Choose an answer",
            list(labels.keys()),
            index=None,
            format_func=lambda oid: labels.get(oid, oid),
            key=key,
            disabled=disabled,
            label_visibility="collapsed",
        )
    return st.text_input(
        "Your answer",
        placeholder="Type your answer here...",
        key=key,
        disabled=disabled,
        label_visibility="collapsed",
    )


def render_worksheet_page(store: SessionStore, helpers: dict) -> None:
    go_to = helpers["go_to"]

    try:
        controller = QuizController(store)
    except NoWorksheetLoaded as e:
        st.toast(str(e), icon="⚠️")
        go_to("start")
        return

    if controller.state == FINISHED:
        go_to("results")
        return

    worksheet = store.get_worksheet()
    current, total = controller.progress()
    st.markdown(f"### {worksheet.title}")
    st.progress(current / total, text=f"Question {current} of {total}")

    question = controller.current_question()
    with st.container(border=True):
        st.markdown(f"#### {question.text}")
        answer = _answer_input(question, disabled=question.is_answered)

        if question.is_answered:
            shown = ", ".join(option_text(question, a) or a for a in question.accepted_answers)
            render_answer_feedback(bool(question.is_correct), shown or format_correct_answer(question))
            label = "See Results" if current == total else "Next Question"
            if st.button(label, type="primary", key=f"next_{question.id}"):
                if controller.advance() == FINISHED:
                    go_to("results")
                st.rerun()
        else:
            if st.button("Submit", type="primary", key=f"submit_{question.id}"):
                if answer is None or not str(answer).strip():
                    st.toast("Please provide an answer", icon="⚠️")
                else:
                    controller.submit_answer(answer)
                    st.rerun()

    if controller.can_finish_early():
        answered = store.answered_questions_count()
        if st.button(f"Finish Worksheet ({answered}/{total})", key="finish_early"):
            try:
                controller.finish_early()
            except FinishNotAllowed as e:
                st.toast(str(e), icon="⚠️")
            else:
                go_to("results")
        if answered < total:
            st.caption("You can finish now or continue answering all questions")
