from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from series_quiz.core.config import settings
from series_quiz.db.session import SessionLocal
from series_quiz.services.cache import get_cache
from series_quiz.services.cumulative_quizzes import GenerationOptions, generate_cumulative_quiz
from series_quiz.services.eligibility import check_eligibility
from series_quiz.services.errors import CumulativeQuizError
from series_quiz.services.jobs import append_job_result, merge_job_payload, set_job_status
from series_quiz.services.quiz_store import cumulative_quiz_exists
from series_quiz.services.series_positions import ordered_positions
from series_quiz.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="series.generate_cumulative_quizzes")
def generate_series_cumulative_quizzes(
    job_id: int,
    series_id: int,
    language: str,
    force_regenerate: bool = False,
) -> dict:
    """
    Generate cumulative quizzes for every ready video of a series, oldest first.
    Ineligible videos are skipped with their reason; existing quizzes are kept unless forced.
    """
    db: Session = SessionLocal()
    cache = get_cache()
    options = GenerationOptions.from_settings(settings)
    try:
        set_job_status(db, job_id, "running")

        positions = ordered_positions(db, series_id, options.hint_source)
        if not positions:
            raise ValueError(f"No videos found in series {series_id}")

        total = len(positions)
        merge_job_payload(
            db,
            job_id,
            {"series_id": str(series_id), "language": language, "progress": {"stage": "generate", "done": 0, "total": total}},
        )

        counts = {"generated": 0, "regenerated": 0, "existing": 0, "skipped": 0, "failed": 0}
        for done, p in enumerate(positions, start=1):
            result = {"video_id": str(p.video_id), "position": p.position}

            eligibility = check_eligibility(db, p.video_id, language, options.hint_source)
            if not eligibility.eligible:
                result.update(outcome="skipped", message=eligibility.reason)
            else:
                exists = cumulative_quiz_exists(db, p.video_id, language)
                if exists and not force_regenerate:
                    result.update(outcome="existing", message="Already exists")
                else:
                    try:
                        quiz = generate_cumulative_quiz(
                            db, cache, p.video_id, language, force_regenerate, options=options
                        )
                    except CumulativeQuizError as e:
                        result.update(outcome="failed", message=str(e))
                    else:
                        outcome = "regenerated" if exists else "generated"
                        result.update(
                            outcome=outcome,
                            message=f"{len(quiz.questions)} questions from {quiz.video_count} videos",
                        )

            counts[result["outcome"]] += 1
            append_job_result(db, job_id, result)
            merge_job_payload(db, job_id, {"progress": {"stage": "generate", "done": done, "total": total}})
            logger.info("Series %s: video %s %s", series_id, p.video_id, result["outcome"])

        merge_job_payload(db, job_id, {"summary": counts, "progress": {"stage": "done", "done": total, "total": total}})

        if counts["failed"]:
            set_job_status(db, job_id, "done", error=f"{counts['failed']} cumulative quiz(zes) failed")
        else:
            set_job_status(db, job_id, "done", error=None)
        return {"ok": True, "job_id": job_id, "series_id": str(series_id), **counts}

    except Exception as e:
        err = str(e)
        db.rollback()
        merge_job_payload(db, job_id, {"progress": {"stage": "failed"}, "error": err})
        set_job_status(db, job_id, "failed", error=err)
        raise
    finally:
        db.close()
