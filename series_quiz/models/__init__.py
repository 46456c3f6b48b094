from series_quiz.models.series import Series
from series_quiz.models.video import Video
from series_quiz.models.quiz import Quiz
from series_quiz.models.cumulative_quiz import CumulativeQuiz
from series_quiz.models.job import Job

__all__ = ["Series", "Video", "Quiz", "CumulativeQuiz", "Job"]
