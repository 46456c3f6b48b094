"""
Durable-store access for the cumulative quiz services.

Every function takes an open SQLAlchemy Session; errors from the database are
not caught here and propagate to the caller.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from series_quiz.models.cumulative_quiz import CumulativeQuiz
from series_quiz.models.quiz import Quiz
from series_quiz.models.series import Series
from series_quiz.models.video import Video

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderHintSource:
    namespace: str = "http://ethz.ch/video/metadata"
    field: str = "order"

    @classmethod
    def from_settings(cls, s) -> "OrderHintSource":
        return cls(namespace=s.video_metadata_namespace, field=s.video_order_field)


@dataclass
class SeriesVideo:
    id: int
    title: str | None
    order_hint: int | None
    created: datetime | None
    state: str


@dataclass
class CumulativeQuizRecord:
    video_id: int
    series_id: int
    language: str
    model: str
    questions: list[dict[str, Any]]
    included_video_ids: list[int]
    video_count: int
    processing_time_ms: int
    member_statuses: dict[str, str] = field(default_factory=dict)
    generated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CumulativeQuizRecord":
        return cls(
            video_id=int(d["video_id"]),
            series_id=int(d["series_id"]),
            language=d["language"],
            model=d["model"],
            questions=list(d.get("questions") or []),
            included_video_ids=[int(x) for x in d.get("included_video_ids") or []],
            video_count=int(d["video_count"]),
            processing_time_ms=int(d.get("processing_time_ms") or 0),
            member_statuses=dict(d.get("member_statuses") or {}),
            generated_at=d.get("generated_at"),
        )

    @classmethod
    def from_row(cls, row: CumulativeQuiz) -> "CumulativeQuizRecord":
        return cls(
            video_id=int(row.video_id),
            series_id=int(row.series_id),
            language=row.language,
            model=row.model,
            questions=json.loads(row.questions_json or "[]"),
            included_video_ids=[int(x) for x in json.loads(row.included_video_ids_json or "[]")],
            video_count=int(row.video_count),
            processing_time_ms=int(row.processing_time_ms or 0),
            member_statuses=json.loads(row.member_statuses_json or "{}"),
            generated_at=row.updated_at.isoformat() if row.updated_at else None,
        )


# ----------------------------
# Videos / series
# ----------------------------

def extract_order_hint(metadata_json: str | None, source: OrderHintSource) -> int | None:
    """
    Signed integer order hint from videos.metadata_json, or None when absent/unparseable.
    Accepts {"<namespace>": {"order": "3"}} and {"<namespace>": {"order": 3}}.
    """
    if not metadata_json:
        return None
    try:
        meta = json.loads(metadata_json)
    except json.JSONDecodeError:
        return None
    if not isinstance(meta, dict):
        return None
    ns = meta.get(source.namespace)
    if not isinstance(ns, dict):
        return None
    raw = ns.get(source.field)
    # metadata fields sometimes arrive as single-element lists
    if isinstance(raw, list):
        raw = raw[0] if len(raw) == 1 else None
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.debug("Ignoring non-integer order hint %r", raw)
        return None


def get_video(db: Session, video_id: int) -> Video | None:
    return db.query(Video).filter(Video.id == video_id).first()


def get_series(db: Session, series_id: int) -> Series | None:
    return db.query(Series).filter(Series.id == series_id).first()


def get_videos_in_series(
    db: Session,
    series_id: int,
    hint_source: OrderHintSource = OrderHintSource(),
) -> list[SeriesVideo]:
    rows = (
        db.query(Video)
        .filter(Video.series_id == series_id)
        .order_by(Video.id.asc())
        .all()
    )
    return [
        SeriesVideo(
            id=int(v.id),
            title=v.title,
            order_hint=extract_order_hint(v.metadata_json, hint_source),
            created=v.created,
            state=v.state,
        )
        for v in rows
    ]


# ----------------------------
# Per-video quizzes (read only)
# ----------------------------

def parse_quiz_questions(quiz_data: str | None) -> list[dict[str, Any]]:
    """
    Questions list from ai_quizzes.quiz_data.
    Raises ValueError when the stored payload is not a quiz object.
    """
    try:
        payload = json.loads(quiz_data or "")
    except json.JSONDecodeError as e:
        raise ValueError(f"quiz_data is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError("quiz_data must be a JSON object")
    questions = payload.get("questions") or []
    if not isinstance(questions, list):
        raise ValueError("quiz_data.questions must be a list")
    return [q for q in questions if isinstance(q, dict)]


def get_individual_quiz(db: Session, video_id: int, language: str) -> list[dict[str, Any]] | None:
    row = (
        db.query(Quiz)
        .filter(Quiz.video_id == video_id, Quiz.language == language)
        .first()
    )
    if not row:
        return None
    return parse_quiz_questions(row.quiz_data)


def get_individual_quiz_data(db: Session, video_ids: list[int], language: str) -> dict[int, str]:
    """Raw quiz_data for every video in video_ids that has a quiz in `language`."""
    if not video_ids:
        return {}
    rows = (
        db.query(Quiz.video_id, Quiz.quiz_data)
        .filter(Quiz.video_id.in_(video_ids), Quiz.language == language)
        .all()
    )
    return {int(vid): data for vid, data in rows}


def video_ids_with_quiz(db: Session, video_ids: list[int], language: str) -> set[int]:
    if not video_ids:
        return set()
    rows = (
        db.query(Quiz.video_id)
        .filter(Quiz.video_id.in_(video_ids), Quiz.language == language)
        .distinct()
        .all()
    )
    return {int(r[0]) for r in rows}


# ----------------------------
# Cumulative quizzes
# ----------------------------

def _apply_record(row: CumulativeQuiz, record: CumulativeQuizRecord) -> None:
    row.series_id = record.series_id
    row.model = record.model
    row.processing_time_ms = record.processing_time_ms
    row.questions_json = json.dumps(record.questions, ensure_ascii=False)
    row.included_video_ids_json = json.dumps(record.included_video_ids)
    row.member_statuses_json = json.dumps(record.member_statuses)
    row.video_count = record.video_count
    row.question_count = len(record.questions)


def upsert_cumulative_quiz(db: Session, record: CumulativeQuizRecord) -> CumulativeQuiz:
    """
    Insert or replace the generated fields of the row keyed by (video_id, language).
    Moderation columns are left as the admin layer set them.
    A concurrent insert of the same key is resolved by updating the winner's row.
    """
    for attempt in range(2):
        row = (
            db.query(CumulativeQuiz)
            .filter(CumulativeQuiz.video_id == record.video_id, CumulativeQuiz.language == record.language)
            .first()
        )
        if not row:
            row = CumulativeQuiz(video_id=record.video_id, language=record.language)
            db.add(row)

        _apply_record(row, record)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            continue
        db.refresh(row)
        return row
    raise RuntimeError("unreachable")


def get_cumulative_quiz(db: Session, video_id: int, language: str) -> CumulativeQuizRecord | None:
    row = (
        db.query(CumulativeQuiz)
        .filter(CumulativeQuiz.video_id == video_id, CumulativeQuiz.language == language)
        .first()
    )
    return CumulativeQuizRecord.from_row(row) if row else None


def cumulative_quiz_exists(db: Session, video_id: int, language: str) -> bool:
    return (
        db.query(CumulativeQuiz.id)
        .filter(CumulativeQuiz.video_id == video_id, CumulativeQuiz.language == language)
        .first()
        is not None
    )


def delete_cumulative_quiz(db: Session, video_id: int, language: str) -> bool:
    n = (
        db.query(CumulativeQuiz)
        .filter(CumulativeQuiz.video_id == video_id, CumulativeQuiz.language == language)
        .delete(synchronize_session=False)
    )
    db.commit()
    return n > 0


def delete_all_cumulative_quizzes(db: Session) -> int:
    n = db.query(CumulativeQuiz).delete(synchronize_session=False)
    db.commit()
    return int(n)


def cumulative_quiz_stats(db: Session) -> dict[str, Any]:
    total, total_series, avg_videos, avg_questions = db.query(
        func.count(CumulativeQuiz.id),
        func.count(func.distinct(CumulativeQuiz.series_id)),
        func.avg(CumulativeQuiz.video_count),
        func.avg(CumulativeQuiz.question_count),
    ).one()
    return {
        "total_quizzes": int(total or 0),
        "total_series": int(total_series or 0),
        "avg_videos_per_quiz": float(avg_videos) if avg_videos is not None else None,
        "avg_questions_per_quiz": float(avg_questions) if avg_questions is not None else None,
    }
