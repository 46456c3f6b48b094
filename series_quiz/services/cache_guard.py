"""
Consistency check for stored cumulative quizzes.

A stored quiz is valid while the series prefix up to its anchor still has
exactly the recorded members. Edits inside an included per-video quiz are
not detected here; only membership drift is.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from series_quiz.services.quiz_store import CumulativeQuizRecord, OrderHintSource
from series_quiz.services.series_positions import positions_up_to

logger = logging.getLogger(__name__)


def is_cache_valid(
    db: Session,
    quiz: CumulativeQuizRecord,
    hint_source: OrderHintSource = OrderHintSource(),
) -> bool:
    try:
        current = positions_up_to(db, quiz.series_id, quiz.video_id, hint_source)
    except Exception:
        # fail closed: regenerate rather than serve an aggregate we cannot verify
        logger.exception("Error validating cumulative quiz for video %s", quiz.video_id)
        return False

    current_ids = sorted(p.video_id for p in current)
    stored_ids = sorted(int(x) for x in quiz.included_video_ids)
    valid = current_ids == stored_ids
    if not valid:
        logger.info(
            "Cumulative quiz for video %s is stale: series membership changed (%s -> %s)",
            quiz.video_id,
            stored_ids,
            current_ids,
        )
    return valid
