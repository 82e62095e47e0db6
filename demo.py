from models import FillBlankQuestion, MatchingQuestion, Option, Section, Worksheet

_GAME_PHRASES = (
    Option("a", "¡Oh no, te deslizaste por la serpiente!"),
    Option("b", "Es mi turno."),
    Option("c", "Voy a tirar el dado."),
    Option("d", "Te moviste dos espacios."),
    Option("e", "Subí la escalera."),
)

_MATCHING = [
    ("q1", "It is my turn.", "b"),
    ("q2", "I will throw the dice.", "c"),
    ("q3", "You moved two spaces.", "d"),
    ("q4", "I climbed the ladder.", "e"),
    ("q5", "Oh no, you slid down!", "a"),
]

_BLANKS = [
    ("q6", "_______ mi turno.", "Es"),
    ("q7", "Voy a _______ el dado.", "tirar"),
    ("q8", "Te _______ dos espacios.", "moviste"),
    ("q9", "Subí la _______.", "escalera"),
    ("q10", "_______ no, te deslizaste por la serpiente.", "Oh"),
]


def demo_worksheet() -> Worksheet:
    """Spanish game-night worksheet used by the "Try demo" button."""
    return Worksheet(
        id="demo-worksheet",
        title="Spanish Game Night Worksheet!",
        description="Let's practice our Spanish game phrases!",
        sections=(
            Section(
                id="section-1",
                title="Match the English to Spanish",
                instructions="Match the sentences, fill in the blanks, and have fun!",
                questions=tuple(
                    MatchingQuestion(id=qid, text=text, correct_answer=answer, options=_GAME_PHRASES)
                    for qid, text, answer in _MATCHING
                ),
            ),
            Section(
                id="section-2",
                title="Fill in the blanks",
                instructions="Fill in the missing Spanish words:",
                questions=tuple(
                    FillBlankQuestion(id=qid, text=text, correct_answer=answer)
                    for qid, text, answer in _BLANKS
                ),
            ),
        ),
    )
