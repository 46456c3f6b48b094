from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from series_quiz.db.base_class import Base

READY = "ready"


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)

    series_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("series.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # waiting | processing | ready | failed; only ready videos take part in series ordering
    state: Mapped[str] = mapped_column(String(32), nullable=False, default=READY)

    # JSON string: {"<namespace>": {"order": "3", ...}, ...}
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    series = relationship("Series", backref="videos")
