"""
Line-driven question accumulation shared by the Word and OCR parsers.

Each parser classifies its lines into events (Header, OptionLine,
AnswerKey, BodyLine) and feeds them through ``transition``. The states are
immutable; every transition returns a new state plus, when a header closes
the previous question, the state that has to be finalized.

    NoCurrentQuestion --Header--> AccumulatingBody --OptionLine--> AccumulatingOptions
           ^                           |                                |
           +------ Header / end -------+------------ Header / end ------+

A fourth option does not finalize the question. Anything after it is
ignored until the next header or the end of input.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple, Union

from app.models.question import OPTION_COUNT, Question
from app.utils.code_detection import is_code_line

logger = logging.getLogger(__name__)


# ---- events ----

@dataclass(frozen=True)
class Header:
    text: str
    marks: int = 1
    negative_marks: float = 0.0


@dataclass(frozen=True)
class OptionLine:
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class AnswerKey:
    index: int


@dataclass(frozen=True)
class BodyLine:
    raw: str


Event = Union[Header, OptionLine, AnswerKey, BodyLine]


# ---- states ----

@dataclass(frozen=True)
class NoCurrentQuestion:
    pass


@dataclass(frozen=True)
class AccumulatingBody:
    header: Header
    body: Tuple[str, ...] = ()
    correct: Optional[int] = None


@dataclass(frozen=True)
class AccumulatingOptions:
    header: Header
    body: Tuple[str, ...]
    options: Tuple[str, ...]
    correct: Optional[int] = None


State = Union[NoCurrentQuestion, AccumulatingBody, AccumulatingOptions]
OpenState = Union[AccumulatingBody, AccumulatingOptions]


def append_body_line(body: Tuple[str, ...], raw_line: str) -> Tuple[str, ...]:
    """
    Code lines (or lines indented by 2+ spaces) are kept verbatim on a new
    line; prose is trimmed and joined to the previous line with a space.
    """
    if is_code_line(raw_line) or raw_line.startswith('  '):
        return body + (raw_line,)

    text = raw_line.strip()
    if not body or not body[-1]:
        return body[:-1] + (text,)
    return body[:-1] + (f'{body[-1]} {text}',)


def _open(header: Header) -> AccumulatingBody:
    body = (header.text,) if header.text else ()
    return AccumulatingBody(header=header, body=body)


def transition(state: State, event: Event) -> Tuple[State, Optional[OpenState]]:
    """Apply one event. Returns (new_state, state_to_finalize_or_None)."""
    if isinstance(event, Header):
        finished = None if isinstance(state, NoCurrentQuestion) else state
        return _open(event), finished

    if isinstance(state, NoCurrentQuestion):
        # Preamble before the first question
        return state, None

    if isinstance(event, AnswerKey):
        return replace(state, correct=event.index), None

    if isinstance(state, AccumulatingBody):
        if isinstance(event, OptionLine):
            correct = state.correct
            if correct is None and event.is_correct:
                correct = 0
            return AccumulatingOptions(
                header=state.header,
                body=state.body,
                options=(event.text,),
                correct=correct
            ), None
        return replace(state, body=append_body_line(state.body, event.raw)), None

    # AccumulatingOptions
    if len(state.options) >= OPTION_COUNT:
        return state, None

    if isinstance(event, OptionLine):
        correct = state.correct
        if correct is None and event.is_correct:
            correct = len(state.options)
        return replace(state, options=state.options + (event.text,), correct=correct), None

    return replace(state, body=append_body_line(state.body, event.raw)), None


def finish(state: State) -> Optional[OpenState]:
    """End of input: the open question, if any, still has to be finalized."""
    if isinstance(state, NoCurrentQuestion):
        return None
    return state


def finalize(state: OpenState, render: Callable[[List[str]], str]) -> Optional[Question]:
    """
    Turn an accumulated question into a Question. ``render`` turns the body
    lines into the final question text. Questions without exactly four
    options, or with no text, are dropped.
    """
    options = getattr(state, 'options', ())
    if len(options) != OPTION_COUNT:
        logger.debug(f"Dropping question with {len(options)} options: {state.header.text[:50]}")
        return None

    text = render(list(state.body))
    if not text.strip():
        logger.debug("Dropping question with empty text")
        return None

    return Question.build(
        text=text,
        options=options,
        correct_option=state.correct if state.correct is not None else 0,
        marks=state.header.marks,
        negative_marks=state.header.negative_marks
    )


def collect_questions(events: Iterable[Event], render: Callable[[List[str]], str]) -> List[Question]:
    """Run a full event stream through the state machine."""
    questions = []
    state = NoCurrentQuestion()

    for event in events:
        state, finished = transition(state, event)
        if finished is not None:
            question = finalize(finished, render)
            if question is not None:
                questions.append(question)

    last = finish(state)
    if last is not None:
        question = finalize(last, render)
        if question is not None:
            questions.append(question)

    return questions
