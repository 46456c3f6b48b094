from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, UniqueConstraint, func

from series_quiz.db.base_class import Base


class Quiz(Base):
    """Per-video quiz produced by the generation pipeline; only read here."""

    __tablename__ = "ai_quizzes"

    id = Column(Integer, primary_key=True, index=True)
    video_id = Column(BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False, default="en")

    # JSON string: {"questions": [{"question": ..., "correct_answer": ...}, ...]}
    quiz_data = Column(Text, nullable=False)
    model = Column(String(50), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("video_id", "language", name="uq_ai_quizzes_video_lang"),
    )
