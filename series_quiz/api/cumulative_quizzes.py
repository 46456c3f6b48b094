from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from series_quiz.core.config import settings
from series_quiz.db.session import get_db
from series_quiz.services.cache import Cache, get_cache
from series_quiz.services.cumulative_quizzes import (
    GenerationOptions,
    delete_all_cumulative_quizzes,
    delete_cumulative_quiz,
    generate_cumulative_quiz,
    get_cached_quiz,
    get_cumulative_quiz_stats,
)
from series_quiz.services.eligibility import check_eligibility
from series_quiz.services.errors import EmptySeriesError, FeatureDisabledError, NotFoundError
from series_quiz.services.jobs import create_job
from series_quiz.services.language import normalize_language_code
from series_quiz.services.quiz_store import CumulativeQuizRecord, get_series
from series_quiz.worker.series_tasks import generate_series_cumulative_quizzes

router = APIRouter(prefix="/cumulative-quizzes", tags=["cumulative_quizzes"])


def get_generation_options() -> GenerationOptions:
    return GenerationOptions.from_settings(settings)


def _language(value: str | None) -> str:
    try:
        return normalize_language_code(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Language is required (e.g. ?language=en)")


class GenerateRequest(BaseModel):
    language: str | None = None
    force_regenerate: bool = False


class SeriesGenerateRequest(BaseModel):
    language: str | None = None
    force_regenerate: bool = False


class CumulativeQuizOut(BaseModel):
    video_id: str
    series_id: str
    language: str
    model: str
    questions: list[dict[str, Any]]
    included_video_ids: list[str]
    video_count: int
    question_count: int
    processing_time_ms: int
    member_statuses: dict[str, str]
    generated_at: str | None = None

    @classmethod
    def from_record(cls, r: CumulativeQuizRecord) -> "CumulativeQuizOut":
        return cls(
            video_id=str(r.video_id),
            series_id=str(r.series_id),
            language=r.language,
            model=r.model,
            questions=r.questions,
            included_video_ids=[str(x) for x in r.included_video_ids],
            video_count=r.video_count,
            question_count=len(r.questions),
            processing_time_ms=r.processing_time_ms,
            member_statuses=r.member_statuses,
            generated_at=r.generated_at,
        )


class CumulativeQuizResponse(BaseModel):
    ok: bool
    quiz: CumulativeQuizOut


class EligibilityResponse(BaseModel):
    video_id: str
    language: str
    eligible: bool
    code: str
    reason: str
    details: dict[str, Any]


class SeriesGenerateResponse(BaseModel):
    ok: bool
    series_id: str
    job_id: int
    task_id: str


@router.post("/generate/{video_id}", response_model=CumulativeQuizResponse)
def generate(
    video_id: int,
    req: GenerateRequest,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    options: GenerationOptions = Depends(get_generation_options),
) -> CumulativeQuizResponse:
    language = _language(req.language)
    try:
        quiz = generate_cumulative_quiz(db, cache, video_id, language, req.force_regenerate, options=options)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmptySeriesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except FeatureDisabledError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return CumulativeQuizResponse(ok=True, quiz=CumulativeQuizOut.from_record(quiz))


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
    return {"ok": True, **get_cumulative_quiz_stats(db)}


@router.get("/eligibility/{video_id}", response_model=EligibilityResponse)
def eligibility(
    video_id: int,
    language: str | None = Query(default=None),
    db: Session = Depends(get_db),
    options: GenerationOptions = Depends(get_generation_options),
) -> EligibilityResponse:
    lang = _language(language)
    result = check_eligibility(db, video_id, lang, options.hint_source)
    return EligibilityResponse(video_id=str(video_id), language=lang, **result.to_dict())


@router.get("/{video_id}", response_model=CumulativeQuizResponse)
def get_quiz(
    video_id: int,
    language: str | None = Query(default=None),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    options: GenerationOptions = Depends(get_generation_options),
) -> CumulativeQuizResponse:
    lang = _language(language)
    quiz = get_cached_quiz(db, cache, video_id, lang, options.cache_ttl_seconds)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Cumulative quiz not found. Generate a cumulative quiz first.")
    return CumulativeQuizResponse(ok=True, quiz=CumulativeQuizOut.from_record(quiz))


@router.delete("/{video_id}")
def delete_quiz(
    video_id: int,
    language: str | None = Query(default=None),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    lang = _language(language)
    if not delete_cumulative_quiz(db, cache, video_id, lang):
        raise HTTPException(status_code=404, detail="Cumulative quiz not found")
    return {"ok": True, "video_id": str(video_id), "language": lang}


@router.delete("")
def delete_all(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    count = delete_all_cumulative_quizzes(db, cache)
    return {"ok": True, "count": count}


@router.post("/series/{series_id}/generate", response_model=SeriesGenerateResponse)
def generate_for_series(
    series_id: int,
    req: SeriesGenerateRequest,
    db: Session = Depends(get_db),
    options: GenerationOptions = Depends(get_generation_options),
) -> SeriesGenerateResponse:
    language = _language(req.language)
    if not options.enabled:
        raise HTTPException(status_code=403, detail="Quiz generation is disabled")
    if not get_series(db, series_id):
        raise HTTPException(status_code=404, detail="Series not found")

    job = create_job(
        db,
        "series_cumulative_quizzes",
        {"series_id": str(series_id), "language": language, "force_regenerate": req.force_regenerate},
    )
    async_result = generate_series_cumulative_quizzes.delay(job.id, series_id, language, req.force_regenerate)
    return SeriesGenerateResponse(ok=True, series_id=str(series_id), job_id=job.id, task_id=async_result.id)
