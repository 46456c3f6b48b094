from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from series_quiz.db.base_class import Base


class CumulativeQuiz(Base):
    __tablename__ = "ai_cumulative_quizzes"

    id = Column(Integer, primary_key=True, index=True)

    # anchor: the video this cumulative quiz is viewed from
    video_id = Column(BigInteger, nullable=False, index=True)
    series_id = Column(BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False, index=True)

    model = Column(String(50), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    questions_json = Column(Text, nullable=False)            # JSON list of combined questions
    included_video_ids_json = Column(Text, nullable=False)   # JSON list of member ids, resolver order
    member_statuses_json = Column(Text, nullable=True)       # JSON {"<video_id>": "full|empty|error"}
    video_count = Column(Integer, nullable=False)
    question_count = Column(Integer, nullable=False, default=0)

    # moderation, same shape as the per-video quizzes; written by the admin layer only
    approved = Column(Boolean, nullable=False, default=False)
    edited_by_human = Column(Boolean, nullable=False, default=False)
    flagged = Column(Boolean, nullable=False, default=False)
    flag_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("video_id", "language", name="uq_cumulative_quiz_video_lang"),
        CheckConstraint("video_count > 0", name="ck_cumulative_quiz_video_count"),
    )
