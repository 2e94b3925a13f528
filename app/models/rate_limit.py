from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class RateLimit(Base):
    __tablename__ = "rate_limits"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)  # ratelimit:{category}:{identifier}
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reset_at: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch ms
