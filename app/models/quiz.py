from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from app.core.time import utcnow
from app.models.base import Base


class QuizSession(Base):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(12), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="Expo Quiz")

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )

    # OPEN пока NULL, после end_session больше не меняется
    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
    )

    questions: Mapped[List["Question"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Question.order_no",
    )
    participants: Mapped[List["Participant"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
    )

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_no: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..N внутри сессии

    question_text: Mapped[str] = mapped_column(Text, nullable=False)

    # варианты ответа: ["...", "...", ...]
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    correct_index: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    session: Mapped["QuizSession"] = relationship(back_populates="questions")

    __table_args__ = (UniqueConstraint("session_id", "order_no", name="uq_question_session_order"),)


class BankQuestion(Base):
    """Шаблон вопроса без сессии; в сессию попадает копией."""

    __tablename__ = "question_bank"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    correct_index: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Participant(Base):
    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # имена не уникальны даже внутри одной сессии
    display_name: Mapped[str] = mapped_column(String(30), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    session: Mapped["QuizSession"] = relationship(back_populates="participants")


class Answer(Base):
    __tablename__ = "answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )

    answer_index: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    answered_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # один ответ на вопрос от участника; проверяет только база
    __table_args__ = (UniqueConstraint("participant_id", "question_id", name="uq_answer_participant_question"),)
