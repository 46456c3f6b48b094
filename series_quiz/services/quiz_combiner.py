"""
Quiz Combiner: merges per-video quizzes into one cumulative question list.

Output order is series position first, then the question order of each
per-video quiz. Questions are never re-sorted by type or difficulty.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from series_quiz.services.quiz_store import parse_quiz_questions
from series_quiz.services.series_positions import SeriesPosition

logger = logging.getLogger(__name__)

FULL = "full"    # stored quiz with at least one question
EMPTY = "empty"  # no stored quiz (or a quiz without questions)
ERROR = "error"  # stored quiz could not be read

# precedence order: camelCase wins when both spellings are stored
ANSWER_FIELDS = ("correctAnswer", "correct_answer")
TYPE_FIELDS = ("questionType", "question_type", "type")


@dataclass
class MemberQuiz:
    video_id: int
    title: str | None
    position: int
    status: str
    questions: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


def load_member(member: SeriesPosition, quiz_data: str | None) -> MemberQuiz:
    """Wrap one series member and its raw stored quiz into a full/empty/error result."""
    base = {"video_id": member.video_id, "title": member.title, "position": member.position}
    if quiz_data is None:
        logger.warning("No quiz found for video %s; it contributes no questions", member.video_id)
        return MemberQuiz(status=EMPTY, **base)
    try:
        questions = parse_quiz_questions(quiz_data)
    except ValueError as e:
        logger.warning("Unreadable quiz for video %s: %s", member.video_id, e)
        return MemberQuiz(status=ERROR, error=str(e), **base)
    return MemberQuiz(status=FULL if questions else EMPTY, questions=questions, **base)


def first_present(q: dict[str, Any], names: tuple[str, ...]) -> Any:
    """
    Value of the first of `names` (in the given order) present on the question.
    Null values count as absent.
    """
    for name in names:
        value = q.get(name)
        if value is not None:
            return value
    return None


def answer_to_str(answer: Any) -> str:
    if isinstance(answer, bool):
        return "true" if answer else "false"
    return str(answer)


def to_number(value: Any) -> int | float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = value
    else:
        try:
            n = float(str(value).strip())
        except ValueError:
            return None
    if isinstance(n, float) and not math.isfinite(n):
        return None
    if isinstance(n, float) and n.is_integer():
        return int(n)
    return n


def combine_question(q: dict[str, Any], member: MemberQuiz) -> dict[str, Any] | None:
    answer = first_present(q, ANSWER_FIELDS)
    if answer is None:
        logger.warning(
            "Question missing correct answer, skipping (video %s): %r",
            member.video_id,
            (q.get("question") or "")[:80],
        )
        return None

    return {
        "question": q.get("question"),
        "question_type": first_present(q, TYPE_FIELDS),
        "options": q.get("options"),
        "correct_answer": answer_to_str(answer),
        "explanation": q.get("explanation"),
        "difficulty": q.get("difficulty"),
        "video_context": {
            "video_id": str(member.video_id),
            "video_title": member.title,
            "video_number": int(member.position),
            "timestamp": to_number(q.get("timestamp")),
        },
    }


def combine_quizzes(members: list[MemberQuiz]) -> list[dict[str, Any]]:
    combined: list[dict[str, Any]] = []
    # sorted() is stable: same-position members keep arrival order
    for member in sorted(members, key=lambda m: m.position):
        for q in member.questions:
            item = combine_question(q, member)
            if item is not None:
                combined.append(item)
    return combined
