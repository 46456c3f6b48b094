from series_quiz.db.base_class import Base  # noqa: F401

# Import all the models here so that Base has them registered
# This file should NOT be imported by models.
from series_quiz.models.series import Series  # noqa: F401
from series_quiz.models.video import Video  # noqa: F401
from series_quiz.models.quiz import Quiz  # noqa: F401
from series_quiz.models.cumulative_quiz import CumulativeQuiz  # noqa: F401
from series_quiz.models.job import Job  # noqa: F401
