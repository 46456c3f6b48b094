import logging
import os

from fastapi import FastAPI
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from series_quiz.api.cumulative_quizzes import router as cumulative_quizzes_router
from series_quiz.api.jobs import router as jobs_router
from series_quiz.db.session import get_db

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Series Quiz API", version="0.1.0")
app.include_router(jobs_router)
app.include_router(cumulative_quizzes_router)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db: Session | None = None
    try:
        db = next(get_db())
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False
    finally:
        if db is not None:
            db.close()

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
