import json
import os
from datetime import datetime, timedelta

# must be set before series_quiz is imported: settings and the engine are built at import time
os.environ["ENV"] = "test"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from series_quiz.api.cumulative_quizzes import get_generation_options  # noqa: E402
from series_quiz.db.base import Base  # noqa: E402
from series_quiz.db.session import SessionLocal, engine, get_db  # noqa: E402
from series_quiz.main import app  # noqa: E402
from series_quiz.models import Quiz, Series, Video  # noqa: E402
from series_quiz.services.cache import get_cache  # noqa: E402
from series_quiz.services.cumulative_quizzes import GenerationOptions  # noqa: E402

METADATA_NS = "http://ethz.ch/video/metadata"
BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def cache():
    c = get_cache()
    c.clear()
    yield c
    c.clear()


@pytest.fixture()
def options():
    return GenerationOptions(model="test-model")


@pytest.fixture()
def client(db, cache, options):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_generation_options] = lambda: options
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def add_series(db):
    def _add(series_id: int, title: str = "Series"):
        s = Series(id=series_id, title=title)
        db.add(s)
        db.commit()
        return s

    return _add


@pytest.fixture()
def add_video(db):
    def _add(
        video_id: int,
        series_id: int | None,
        *,
        order=None,
        day: int = 0,
        state: str = "ready",
        title: str | None = None,
    ):
        meta = {METADATA_NS: {"order": str(order)}} if order is not None else {}
        v = Video(
            id=video_id,
            title=title or f"Video {video_id}",
            series_id=series_id,
            state=state,
            metadata_json=json.dumps(meta),
            created=BASE_TIME + timedelta(days=day),
        )
        db.add(v)
        db.commit()
        return v

    return _add


def make_questions(prefix: str, n: int) -> list[dict]:
    return [
        {
            "question": f"{prefix} question {i}",
            "type": "multiple_choice",
            "options": ["a", "b", "c", "d"],
            "correct_answer": i % 4,
            "explanation": f"{prefix} explanation {i}",
            "difficulty": "easy",
            "timestamp": 10 * i,
        }
        for i in range(1, n + 1)
    ]


@pytest.fixture()
def add_quiz(db):
    def _add(video_id: int, questions: list[dict], language: str = "en"):
        q = Quiz(
            video_id=video_id,
            language=language,
            quiz_data=json.dumps({"questions": questions}),
            model="test-model",
        )
        db.add(q)
        db.commit()
        return q

    return _add


@pytest.fixture()
def three_video_series(add_series, add_video, add_quiz):
    """
    Series 1: V1 (no quiz), V2 (2 questions), V3 (3 questions), ordered by hint.
    """
    add_series(1, "Linear Algebra")
    add_video(101, 1, order=1, day=2)
    add_video(102, 1, order=2, day=1)
    add_video(103, 1, order=3, day=0)
    add_quiz(102, make_questions("V2", 2))
    add_quiz(103, make_questions("V3", 3))
    return 1


@pytest.fixture(name="make_questions")
def make_questions_fixture():
    return make_questions
