import json
from typing import Any

from sqlalchemy.orm import Session

from series_quiz.models.job import Job


def _load_payload(job: Job) -> dict[str, Any]:
    try:
        base = json.loads(job.payload_json or "{}")
    except json.JSONDecodeError:
        return {}
    return base if isinstance(base, dict) else {}


def create_job(db: Session, job_type: str, payload: dict) -> Job:
    job = Job(
        job_type=job_type,
        status="queued",
        payload_json=json.dumps(payload or {}, ensure_ascii=False),
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_job(db: Session, job_id: int) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def set_job_status(db: Session, job_id: int, status: str, error: str | None = None) -> Job:
    job = db.query(Job).filter(Job.id == job_id).one()
    job.status = status
    job.error = error
    db.commit()
    db.refresh(job)
    return job


def merge_job_payload(db: Session, job_id: int, patch: dict[str, Any]) -> Job:
    """
    Merge a patch into payload_json.
    - Keeps existing keys
    - Overwrites keys present in patch
    """
    job = db.query(Job).filter(Job.id == job_id).one()
    base = _load_payload(job)
    base.update(patch or {})
    job.payload_json = json.dumps(base, ensure_ascii=False)
    db.commit()
    db.refresh(job)
    return job


def append_job_result(db: Session, job_id: int, result: dict[str, Any]) -> Job:
    """Append one per-item outcome to payload["results"]."""
    job = db.query(Job).filter(Job.id == job_id).one()
    base = _load_payload(job)
    results = base.get("results")
    if not isinstance(results, list):
        results = []
    results.append(result)
    base["results"] = results
    job.payload_json = json.dumps(base, ensure_ascii=False)
    db.commit()
    db.refresh(job)
    return job
