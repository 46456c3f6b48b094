import json

import pytest

from series_quiz.models import CumulativeQuiz, Quiz, Video
from series_quiz.services.cache import cumulative_quiz_key
from series_quiz.services.cumulative_quizzes import (
    GenerationOptions,
    delete_all_cumulative_quizzes,
    delete_cumulative_quiz,
    generate_cumulative_quiz,
    get_cached_quiz,
    get_cumulative_quiz_stats,
)
from series_quiz.services.errors import FeatureDisabledError, NotFoundError
from series_quiz.services.quiz_store import get_cumulative_quiz


def _without_timing(record):
    d = record.to_dict()
    d.pop("processing_time_ms")
    d.pop("generated_at")
    return d


def test_end_to_end_series_scenario(db, cache, options, three_video_series):
    quiz = generate_cumulative_quiz(db, cache, 103, "en", options=options)

    assert quiz.video_id == 103
    assert quiz.series_id == 1
    assert quiz.model == "test-model"
    assert quiz.included_video_ids == [101, 102, 103]
    assert quiz.video_count == 3
    assert len(quiz.questions) == 5
    assert [q["video_context"]["video_id"] for q in quiz.questions] == ["102", "102", "103", "103", "103"]
    assert [q["video_context"]["video_number"] for q in quiz.questions] == [2, 2, 3, 3, 3]
    assert quiz.questions[0]["question"] == "V2 question 1"
    assert quiz.member_statuses == {"101": "empty", "102": "full", "103": "full"}


def test_generation_is_persisted_and_cached(db, cache, options, three_video_series):
    quiz = generate_cumulative_quiz(db, cache, 103, "en", options=options)

    stored = get_cumulative_quiz(db, 103, "en")
    assert stored is not None
    assert stored.included_video_ids == quiz.included_video_ids
    assert stored.questions == quiz.questions
    assert stored.video_count == len(stored.included_video_ids)

    cached = cache.get(cumulative_quiz_key(103, "en"))
    assert cached["included_video_ids"] == [101, 102, 103]


def test_cached_quiz_is_reused_while_membership_holds(db, cache, options, three_video_series, make_questions):
    first = generate_cumulative_quiz(db, cache, 103, "en", options=options)

    # a content edit in an included quiz does not trigger regeneration
    db.query(Quiz).filter(Quiz.video_id == 103).update({"quiz_data": json.dumps({"questions": make_questions("X", 1)})})
    db.commit()

    again = generate_cumulative_quiz(db, cache, 103, "en", options=options)
    assert again.questions == first.questions

    forced = generate_cumulative_quiz(db, cache, 103, "en", force_regenerate=True, options=options)
    assert len(forced.questions) == 3


def test_membership_drift_triggers_regeneration(db, cache, options, three_video_series, add_video, add_quiz, make_questions):
    generate_cumulative_quiz(db, cache, 103, "en", options=options)

    add_video(104, 1, order=2, day=5)  # same hint as 102, created later: lands between 102 and 103
    add_quiz(104, make_questions("V4", 1))

    quiz = generate_cumulative_quiz(db, cache, 103, "en", options=options)

    assert quiz.included_video_ids == [101, 102, 104, 103]
    assert len(quiz.questions) == 6
    assert quiz.questions[2]["video_context"] == {
        "video_id": "104",
        "video_title": "Video 104",
        "video_number": 3,
        "timestamp": 10,
    }


def test_forced_regeneration_is_idempotent(db, cache, options, three_video_series):
    a = generate_cumulative_quiz(db, cache, 103, "en", force_regenerate=True, options=options)
    b = generate_cumulative_quiz(db, cache, 103, "en", force_regenerate=True, options=options)

    assert _without_timing(a) == _without_timing(b)
    assert db.query(CumulativeQuiz).count() == 1


def test_regeneration_keeps_moderation_flags(db, cache, options, three_video_series):
    generate_cumulative_quiz(db, cache, 103, "en", options=options)
    db.query(CumulativeQuiz).update({"approved": True, "flagged": True, "flag_count": 2})
    db.commit()

    generate_cumulative_quiz(db, cache, 103, "en", force_regenerate=True, options=options)
    db.expire_all()

    row = db.query(CumulativeQuiz).one()
    assert (row.approved, row.edited_by_human, row.flagged, row.flag_count) == (True, False, True, 2)


def test_anchor_need_not_be_last_video(db, cache, options, three_video_series):
    quiz = generate_cumulative_quiz(db, cache, 102, "en", options=options)

    assert quiz.included_video_ids == [101, 102]
    assert len(quiz.questions) == 2


def test_skipping_eligibility_gives_degraded_result(db, cache, options, three_video_series):
    # first video: ineligible, but generate itself does not re-check
    quiz = generate_cumulative_quiz(db, cache, 101, "en", options=options)

    assert quiz.included_video_ids == [101]
    assert quiz.questions == []


def test_unreadable_member_quiz_is_tolerated(db, cache, options, three_video_series):
    db.query(Quiz).filter(Quiz.video_id == 102).update({"quiz_data": "not json"})
    db.commit()

    quiz = generate_cumulative_quiz(db, cache, 103, "en", options=options)

    assert quiz.member_statuses["102"] == "error"
    assert len(quiz.questions) == 3


def test_unknown_video(db, cache, options):
    with pytest.raises(NotFoundError):
        generate_cumulative_quiz(db, cache, 42, "en", options=options)


def test_video_without_series(db, cache, options, add_video):
    add_video(1, None)

    with pytest.raises(NotFoundError):
        generate_cumulative_quiz(db, cache, 1, "en", options=options)


def test_video_not_ready(db, cache, options, three_video_series):
    db.query(Video).filter(Video.id == 103).update({"state": "processing"})
    db.commit()

    with pytest.raises(NotFoundError):
        generate_cumulative_quiz(db, cache, 103, "en", options=options)


def test_stale_record_for_unpositioned_anchor_is_not_served(db, cache, options, three_video_series):
    generate_cumulative_quiz(db, cache, 103, "en", options=options)
    db.query(Video).filter(Video.id == 103).update({"state": "failed"})
    db.commit()

    with pytest.raises(NotFoundError):
        generate_cumulative_quiz(db, cache, 103, "en", options=options)


def test_disabled_generation(db, cache, three_video_series):
    with pytest.raises(FeatureDisabledError):
        generate_cumulative_quiz(db, cache, 103, "en", options=GenerationOptions(enabled=False))


def test_options_from_settings():
    from series_quiz.core.config import Settings

    s = Settings(quiz_enabled=False, default_model="m1", cumulative_quiz_cache_ttl_seconds=60)
    opts = GenerationOptions.from_settings(s)

    assert opts.enabled is False
    assert opts.model == "m1"
    assert opts.cache_ttl_seconds == 60
    assert opts.hint_source.field == "order"


def test_large_ids_survive_storage_and_cache(db, cache, options, add_series, add_video, add_quiz, make_questions):
    big = 2**53 + 1
    add_series(big)
    add_video(big, big, order=1)
    add_video(big + 2, big, order=2)
    add_quiz(big, make_questions("A", 1))

    generate_cumulative_quiz(db, cache, big + 2, "en", options=options)
    cache.clear()

    record = get_cached_quiz(db, cache, big + 2, "en")
    assert record.series_id == big
    assert record.included_video_ids == [big, big + 2]
    assert record.questions[0]["video_context"]["video_id"] == str(big)


def test_get_cached_quiz_falls_back_to_database(db, cache, options, three_video_series):
    generate_cumulative_quiz(db, cache, 103, "en", options=options)
    key = cumulative_quiz_key(103, "en")
    cache.invalidate(key)

    record = get_cached_quiz(db, cache, 103, "en")

    assert record is not None
    assert record.included_video_ids == [101, 102, 103]
    assert cache.has(key)
    assert get_cached_quiz(db, cache, 103, "de") is None


def test_delete_removes_row_and_cache_entry(db, cache, options, three_video_series):
    generate_cumulative_quiz(db, cache, 103, "en", options=options)

    assert delete_cumulative_quiz(db, cache, 103, "en") is True
    assert not cache.has(cumulative_quiz_key(103, "en"))
    assert get_cached_quiz(db, cache, 103, "en") is None
    assert delete_cumulative_quiz(db, cache, 103, "en") is False


def test_delete_all_only_clears_cumulative_keys(db, cache, options, three_video_series):
    generate_cumulative_quiz(db, cache, 102, "en", options=options)
    generate_cumulative_quiz(db, cache, 103, "en", options=options)
    cache.set("summary:103:en", {"text": "keep me"}, 60)

    assert delete_all_cumulative_quizzes(db, cache) == 2
    assert db.query(CumulativeQuiz).count() == 0
    assert not cache.has(cumulative_quiz_key(103, "en"))
    assert cache.get("summary:103:en") == {"text": "keep me"}


def test_stats(db, cache, options, three_video_series):
    assert get_cumulative_quiz_stats(db)["total_quizzes"] == 0

    generate_cumulative_quiz(db, cache, 102, "en", options=options)
    generate_cumulative_quiz(db, cache, 103, "en", options=options)

    stats = get_cumulative_quiz_stats(db)
    assert stats["total_quizzes"] == 2
    assert stats["total_series"] == 1
    assert stats["avg_videos_per_quiz"] == pytest.approx(2.5)
    assert stats["avg_questions_per_quiz"] == pytest.approx(3.5)
