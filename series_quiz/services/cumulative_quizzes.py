"""
Cumulative quiz generation: read-through cache, consistency check, recompute, write-through.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from series_quiz.models.video import READY
from series_quiz.services import quiz_store
from series_quiz.services.cache import CUMULATIVE_QUIZ_PREFIX, Cache, cumulative_quiz_key
from series_quiz.services.cache_guard import is_cache_valid
from series_quiz.services.errors import EmptySeriesError, FeatureDisabledError, NotFoundError
from series_quiz.services.quiz_combiner import combine_quizzes, load_member
from series_quiz.services.quiz_store import CumulativeQuizRecord, OrderHintSource
from series_quiz.services.series_positions import positions_up_to

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class GenerationOptions:
    enabled: bool = True
    model: str = "gpt-4"
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    hint_source: OrderHintSource = OrderHintSource()

    @classmethod
    def from_settings(cls, s) -> "GenerationOptions":
        return cls(
            enabled=s.ai_features_enabled and s.quiz_enabled,
            model=s.default_model,
            cache_ttl_seconds=s.cumulative_quiz_cache_ttl_seconds,
            hint_source=OrderHintSource.from_settings(s),
        )


def get_cached_quiz(
    db: Session,
    cache: Cache,
    video_id: int,
    language: str,
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
) -> CumulativeQuizRecord | None:
    """Fast cache first, then the database (re-caching what it finds). No validity check."""
    key = cumulative_quiz_key(video_id, language)
    cached = cache.get(key)
    if cached:
        return CumulativeQuizRecord.from_dict(cached)

    record = quiz_store.get_cumulative_quiz(db, video_id, language)
    if record is None:
        return None
    cache.set(key, record.to_dict(), ttl_seconds)
    return record


def generate_cumulative_quiz(
    db: Session,
    cache: Cache,
    video_id: int,
    language: str,
    force_regenerate: bool = False,
    *,
    options: GenerationOptions,
) -> CumulativeQuizRecord:
    """
    Return the cumulative quiz for (video_id, language), reusing a stored one
    while its series membership is unchanged.

    Eligibility is not checked here; callers that skip check_eligibility may get
    an aggregate with few or zero questions instead of an error.
    """
    if not options.enabled:
        raise FeatureDisabledError("Quiz generation is disabled")

    started = time.perf_counter()
    logger.info("Generating cumulative quiz for video %s (language=%s, force=%s)", video_id, language, force_regenerate)

    if not force_regenerate:
        cached = get_cached_quiz(db, cache, video_id, language, options.cache_ttl_seconds)
        if cached and is_cache_valid(db, cached, options.hint_source):
            logger.info("Using cached cumulative quiz for video %s", video_id)
            return cached

    video = quiz_store.get_video(db, video_id)
    if not video or video.state != READY or video.series_id is None:
        raise NotFoundError("Video not found or not part of a series")
    series_id = int(video.series_id)

    members = positions_up_to(db, series_id, video_id, options.hint_source)
    if not members:
        raise EmptySeriesError("No videos found in series")
    logger.info("Video %s is #%d in series %s", video_id, len(members), series_id)

    member_ids = [m.video_id for m in members]
    quiz_data = quiz_store.get_individual_quiz_data(db, member_ids, language)
    loaded = [load_member(m, quiz_data.get(m.video_id)) for m in members]

    questions = combine_quizzes(loaded)
    logger.info("Combined %d questions from %d videos", len(questions), len(members))

    record = CumulativeQuizRecord(
        video_id=video_id,
        series_id=series_id,
        language=language,
        model=options.model,
        questions=questions,
        included_video_ids=member_ids,
        video_count=len(member_ids),
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        member_statuses={str(m.video_id): m.status for m in loaded},
    )

    row = quiz_store.upsert_cumulative_quiz(db, record)
    record.generated_at = row.updated_at.isoformat() if row.updated_at else None
    cache.set(cumulative_quiz_key(video_id, language), record.to_dict(), options.cache_ttl_seconds)

    logger.info(
        "Cumulative quiz saved in %dms (video=%s, series=%s)",
        record.processing_time_ms,
        video_id,
        series_id,
    )
    return record


def delete_cumulative_quiz(db: Session, cache: Cache, video_id: int, language: str) -> bool:
    deleted = quiz_store.delete_cumulative_quiz(db, video_id, language)
    cache.invalidate(cumulative_quiz_key(video_id, language))
    if deleted:
        logger.info("Deleted cumulative quiz for video %s (language=%s)", video_id, language)
    return deleted


def delete_all_cumulative_quizzes(db: Session, cache: Cache) -> int:
    count = quiz_store.delete_all_cumulative_quizzes(db)
    cache.clear(CUMULATIVE_QUIZ_PREFIX)
    logger.info("Deleted %d cumulative quiz(zes)", count)
    return count


def get_cumulative_quiz_stats(db: Session) -> dict[str, Any]:
    return quiz_store.cumulative_quiz_stats(db)
