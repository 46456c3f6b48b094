"""
Series Position Resolver.

Orders the ready videos of a series by
  1) the integer order hint from video metadata (missing hint sorts last),
  2) creation time, ascending,
  3) video id, for a stable result when both keys tie.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from series_quiz.models.video import READY
from series_quiz.services.errors import NotPositionedError
from series_quiz.services.quiz_store import OrderHintSource, SeriesVideo, get_videos_in_series

_MISSING_CREATED = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SeriesPosition:
    video_id: int
    title: str | None
    position: int  # 1-based


def _created_key(created: datetime | None) -> datetime:
    if created is None:
        return _MISSING_CREATED
    # sqlite hands back naive datetimes; compare everything as UTC
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def _sort_key(v: SeriesVideo) -> tuple:
    return (
        v.order_hint is None,
        v.order_hint if v.order_hint is not None else 0,
        _created_key(v.created),
        v.id,
    )


def order_videos(videos: list[SeriesVideo]) -> list[SeriesPosition]:
    ready = [v for v in videos if v.state == READY]
    ready.sort(key=_sort_key)
    return [SeriesPosition(video_id=v.id, title=v.title, position=i) for i, v in enumerate(ready, start=1)]


def ordered_positions(
    db: Session,
    series_id: int,
    hint_source: OrderHintSource = OrderHintSource(),
) -> list[SeriesPosition]:
    """All ready videos of the series, in series order."""
    return order_videos(get_videos_in_series(db, series_id, hint_source))


def truncate_at(positions: list[SeriesPosition], series_id: int, anchor_video_id: int) -> list[SeriesPosition]:
    for i, p in enumerate(positions):
        if p.video_id == anchor_video_id:
            return positions[: i + 1]
    raise NotPositionedError(series_id, anchor_video_id)


def positions_up_to(
    db: Session,
    series_id: int,
    anchor_video_id: int,
    hint_source: OrderHintSource = OrderHintSource(),
) -> list[SeriesPosition]:
    """
    Prefix of the series order ending at (and including) the anchor video.
    Raises NotPositionedError if the anchor is not among the ready videos.
    """
    return truncate_at(ordered_positions(db, series_id, hint_source), series_id, anchor_video_id)
