from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from series_quiz.db.base_class import Base


class Series(Base):
    __tablename__ = "series"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
