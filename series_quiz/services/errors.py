class CumulativeQuizError(ValueError):
    """Base for business-rule failures raised by the cumulative quiz services."""


class NotFoundError(CumulativeQuizError):
    pass


class NotPositionedError(NotFoundError):
    """The anchor video is not part of the resolved series order (usually: no longer ready)."""

    def __init__(self, series_id: int, video_id: int):
        super().__init__(f"Video {video_id} is not positioned in series {series_id}")
        self.series_id = series_id
        self.video_id = video_id


class EmptySeriesError(CumulativeQuizError):
    pass


class FeatureDisabledError(CumulativeQuizError):
    pass
