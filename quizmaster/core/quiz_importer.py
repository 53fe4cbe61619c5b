"""Utilities for importing timed quizzes from a human-friendly text file.

File format: an optional header block followed by question blocks, separated
by blank lines or '---':

    TITLE: Quiz title
    TIMEPERQUESTION: seconds   (optional, defaults to 30)

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...                        (two to six options, A-F)
    CORRECT: A|B|...
    POINTS: integer            (optional, defaults to 10)

Example:

    TITLE: Warm-up
    TIMEPERQUESTION: 20

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    CORRECT: B
    POINTS: 100

Questions are played in file order. The quiz id is the file stem unless one
is passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from quizmaster.constants.quiz_constants import (
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_PER_QUESTION_SECONDS,
    MAX_OPTION_COUNT,
    MIN_OPTION_COUNT,
)
from quizmaster.core.errors import InvalidConfiguration
from quizmaster.core.models import Question, QuizConfig, QuizDefinition


class QuizImportError(InvalidConfiguration):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path
    quiz: QuizDefinition


_OPTION_ORDER = ["A", "B", "C", "D", "E", "F"][:MAX_OPTION_COUNT]
_HEADER_KEYS = ("TITLE:", "TIMEPERQUESTION:")


def load_quiz_from_file(file_path: Path, quiz_id: str | None = None) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, quiz_id=quiz_id or file_path.stem)
    return ImportedQuiz(source_path=file_path, quiz=quiz)


def parse_quiz_text(text: str, quiz_id: str) -> QuizDefinition:
    blocks = _split_blocks(text)
    title = quiz_id
    time_per_question = DEFAULT_TIME_PER_QUESTION_SECONDS

    if blocks and blocks[0].lstrip().upper().startswith(_HEADER_KEYS):
        title, time_per_question = _parse_header(blocks.pop(0), default_title=quiz_id)

    questions = [
        _parse_block(block, question_id=f"{quiz_id}-q{position + 1}", order_index=position)
        for position, block in enumerate(blocks)
    ]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    config = QuizConfig(id=quiz_id, title=title, time_per_question_seconds=time_per_question)
    return QuizDefinition(config=config, questions=tuple(questions))


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_header(block: str, default_title: str) -> tuple[str, int]:
    title = default_title
    time_per_question = DEFAULT_TIME_PER_QUESTION_SECONDS
    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()
        if upper.startswith("TITLE:"):
            title = line.split(":", 1)[1].strip() or default_title
        elif upper.startswith("TIMEPERQUESTION:"):
            time_per_question = _parse_positive_int(line, "TIMEPERQUESTION")
        else:
            raise QuizImportError(f"Unknown header line: '{line}'.")
    return title, time_per_question


def _parse_block(block: str, question_id: str, order_index: int) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    points = DEFAULT_QUESTION_POINTS
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            points = _parse_positive_int(line, "POINTS")
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")

    letters = _OPTION_ORDER[: len(options)]
    if len(options) < MIN_OPTION_COUNT or sorted(options) != letters:
        raise QuizImportError(
            f"Options must be consecutive letters starting at A, {MIN_OPTION_COUNT} to {len(_OPTION_ORDER)} of them."
        )
    option_list = tuple(options[letter].strip() for letter in letters)
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError("Each question needs a CORRECT: line.")
    if correct_letter not in letters:
        raise QuizImportError(f"CORRECT must be one of {', '.join(letters)}.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text cannot be empty.")

    return Question(
        id=question_id,
        question_text=question_text,
        options=option_list,
        correct_option_index=letters.index(correct_letter),
        points=points,
        order_index=order_index,
    )


def _parse_positive_int(line: str, key: str) -> int:
    raw_value = line.split(":", 1)[1].strip()
    try:
        parsed_value = int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{key} must be an integer.") from exc
    if parsed_value <= 0:
        raise QuizImportError(f"{key} must be a positive integer.")
    return parsed_value
