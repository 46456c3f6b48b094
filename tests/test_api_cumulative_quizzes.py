from series_quiz.services.cumulative_quizzes import GenerationOptions


def test_eligibility_endpoint(client, three_video_series):
    r = client.get("/cumulative-quizzes/eligibility/103", params={"language": "EN"})
    assert r.status_code == 200
    body = r.json()
    assert body["eligible"] is True
    assert body["language"] == "en"
    assert body["video_id"] == "103"
    assert body["details"]["position"] == 3

    r2 = client.get("/cumulative-quizzes/eligibility/102", params={"language": "en"})
    assert r2.status_code == 200
    assert r2.json()["eligible"] is False
    assert r2.json()["code"] == "no_previous_quiz"


def test_language_is_required(client, three_video_series):
    assert client.get("/cumulative-quizzes/eligibility/103").status_code == 400
    assert client.get("/cumulative-quizzes/103", params={"language": "  "}).status_code == 400
    assert client.post("/cumulative-quizzes/generate/103", json={}).status_code == 400


def test_generate_and_fetch(client, three_video_series):
    r = client.post("/cumulative-quizzes/generate/103", json={"language": "en"})
    assert r.status_code == 200
    quiz = r.json()["quiz"]
    assert quiz["video_id"] == "103"
    assert quiz["series_id"] == "1"
    assert quiz["included_video_ids"] == ["101", "102", "103"]
    assert quiz["video_count"] == 3
    assert quiz["question_count"] == 5

    g = client.get("/cumulative-quizzes/103", params={"language": "en"})
    assert g.status_code == 200
    assert g.json()["quiz"]["questions"] == quiz["questions"]


def test_missing_quiz_is_404(client, three_video_series):
    r = client.get("/cumulative-quizzes/103", params={"language": "en"})
    assert r.status_code == 404


def test_generate_for_unknown_video_is_404(client):
    r = client.post("/cumulative-quizzes/generate/999", json={"language": "en"})
    assert r.status_code == 404


def test_generate_when_disabled_is_403(client, three_video_series):
    from series_quiz.api.cumulative_quizzes import get_generation_options
    from series_quiz.main import app

    app.dependency_overrides[get_generation_options] = lambda: GenerationOptions(enabled=False)
    r = client.post("/cumulative-quizzes/generate/103", json={"language": "en"})
    assert r.status_code == 403


def test_delete_and_bulk_delete(client, three_video_series):
    client.post("/cumulative-quizzes/generate/102", json={"language": "en"})
    client.post("/cumulative-quizzes/generate/103", json={"language": "en"})

    d = client.delete("/cumulative-quizzes/103", params={"language": "en"})
    assert d.status_code == 200
    assert client.delete("/cumulative-quizzes/103", params={"language": "en"}).status_code == 404
    assert client.get("/cumulative-quizzes/103", params={"language": "en"}).status_code == 404

    bulk = client.delete("/cumulative-quizzes")
    assert bulk.status_code == 200
    assert bulk.json()["count"] == 1


def test_stats_endpoint(client, three_video_series):
    client.post("/cumulative-quizzes/generate/103", json={"language": "en"})

    r = client.get("/cumulative-quizzes/stats")
    assert r.status_code == 200
    body = r.json()
    assert body["total_quizzes"] == 1
    assert body["avg_questions_per_quiz"] == 5


def test_series_generation_job(client, db, three_video_series):
    r = client.post("/cumulative-quizzes/series/1/generate", json={"language": "en"})
    assert r.status_code == 200
    job_id = r.json()["job_id"]

    # the task ran eagerly in its own session
    db.expire_all()
    g = client.get(f"/jobs/{job_id}")
    assert g.status_code == 200
    job = g.json()
    assert job["status"] == "done"
    outcomes = {res["video_id"]: res["outcome"] for res in job["payload"]["results"]}
    assert outcomes == {"101": "skipped", "102": "skipped", "103": "generated"}

    assert client.get("/cumulative-quizzes/103", params={"language": "en"}).status_code == 200


def test_series_generation_for_unknown_series_is_404(client):
    r = client.post("/cumulative-quizzes/series/77/generate", json={"language": "en"})
    assert r.status_code == 404


def test_unknown_job_is_404(client):
    assert client.get("/jobs/12345").status_code == 404
