"""
Eligibility gate for cumulative quizzes.

Gates run in order and stop at the first failure:
  1. video exists, is ready and belongs to a series
  2. video has its own quiz in the requested language
  3. video is not the first of its series
  4. at least one earlier video has a quiz in the requested language

Evaluated fresh on every call; series membership and quiz availability change.
Database errors propagate, business-rule failures never raise.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from series_quiz.models.video import READY
from series_quiz.services.errors import NotPositionedError
from series_quiz.services.quiz_store import (
    OrderHintSource,
    get_series,
    get_video,
    video_ids_with_quiz,
)
from series_quiz.services.series_positions import ordered_positions, truncate_at

NOT_FOUND = "not_found"
NOT_IN_SERIES = "not_in_series"
NO_QUIZ = "no_quiz"
NOT_POSITIONED = "not_positioned"
FIRST_IN_SERIES = "first_in_series"
NO_PREVIOUS_QUIZ = "no_previous_quiz"
ELIGIBLE = "eligible"


@dataclass
class EligibilityResult:
    eligible: bool
    code: str
    reason: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _ineligible(code: str, reason: str, **details: Any) -> EligibilityResult:
    return EligibilityResult(eligible=False, code=code, reason=reason, details=details)


def check_eligibility(
    db: Session,
    video_id: int,
    language: str,
    hint_source: OrderHintSource = OrderHintSource(),
) -> EligibilityResult:
    video = get_video(db, video_id)
    if not video or video.state != READY:
        return _ineligible(NOT_FOUND, "Video not found or not ready")

    if video.series_id is None:
        return _ineligible(
            NOT_IN_SERIES,
            "This video is not part of a series. Cumulative quizzes require a video series.",
        )

    series_id = int(video.series_id)
    series = get_series(db, series_id)
    base = {"series_id": str(series_id), "series_title": series.title if series else None}

    if not video_ids_with_quiz(db, [video_id], language):
        return _ineligible(
            NO_QUIZ,
            "Generate a regular quiz for this video first before creating a cumulative quiz.",
            **base,
            has_quiz=False,
        )

    all_positions = ordered_positions(db, series_id, hint_source)
    try:
        prefix = truncate_at(all_positions, series_id, video_id)
    except NotPositionedError:
        return _ineligible(
            NOT_POSITIONED,
            "Video position could not be determined in the series",
            **base,
            has_quiz=True,
        )

    position = len(prefix)
    total = len(all_positions)
    previous_ids = [p.video_id for p in prefix[:-1]]

    if not previous_ids:
        return _ineligible(
            FIRST_IN_SERIES,
            "This is the first video in the series: no predecessor to aggregate. "
            "Cumulative quizzes require at least one previous video with a quiz.",
            **base,
            position=position,
            total_in_series=total,
            previous_videos_with_quizzes=0,
            has_quiz=True,
        )

    with_quiz = len(video_ids_with_quiz(db, previous_ids, language))
    if with_quiz == 0:
        return _ineligible(
            NO_PREVIOUS_QUIZ,
            "No previous video in this series has a quiz yet. Generate quizzes for earlier videos first.",
            **base,
            position=position,
            total_in_series=total,
            previous_videos_with_quizzes=0,
            has_quiz=True,
        )

    return EligibilityResult(
        eligible=True,
        code=ELIGIBLE,
        reason=(
            f"Cumulative quiz can be generated. This video is #{position} of {total} in the series, "
            f"with {with_quiz} previous video(s) having quizzes."
        ),
        details={
            **base,
            "position": position,
            "total_in_series": total,
            "previous_videos_with_quizzes": with_quiz,
            "has_quiz": True,
        },
    )
