import json

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from series_quiz.db.session import get_db
from series_quiz.services.jobs import get_job as load_job

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobGetResponse(BaseModel):
    ok: bool
    job_id: int
    job_type: str
    status: str
    error: str | None
    payload: dict


@router.get("/{job_id}", response_model=JobGetResponse)
def get_job(job_id: int, db: Session = Depends(get_db)) -> JobGetResponse:
    job = load_job(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    try:
        payload = json.loads(job.payload_json or "{}")
    except json.JSONDecodeError:
        payload = {}
    return JobGetResponse(
        ok=True,
        job_id=job.id,
        job_type=job.job_type,
        status=job.status,
        error=job.error,
        payload=payload if isinstance(payload, dict) else {},
    )
