from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import dialect_insert
from app.core.time import utcnow
from app.models.quiz import Participant, QuizSession
from app.services.codes import generate_code, normalize_code
from app.services.errors import ExhaustedRetries, NotFound, SessionEnded


logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 5


@dataclass
class SessionSummary:
    session: QuizSession
    participant_count: int


def ensure_open(quiz_session: QuizSession) -> None:
    if quiz_session.ended_at is not None:
        raise SessionEnded()


async def create_session(
    session: AsyncSession,
    *,
    title: Optional[str] = None,
    code_factory: Callable[[], str] | None = None,
) -> QuizSession:
    """
    Создаёт сессию с уникальным коротким кодом.

    Коллизия кода — ожидаемая ситуация: INSERT ... ON CONFLICT (code) DO NOTHING
    не вернёт строку, и мы пробуем новый код, до CREATE_ATTEMPTS раз, потом
    ExhaustedRetries.
    """
    make_code = code_factory or (lambda: generate_code(settings.SESSION_CODE_LENGTH))
    title = (title or "").strip() or settings.DEFAULT_SESSION_TITLE
    insert = dialect_insert(session)

    for attempt in range(1, CREATE_ATTEMPTS + 1):
        code = make_code()
        quiz_session = await session.scalar(
            insert(QuizSession)
            .values(code=code, title=title, created_at=utcnow())
            .on_conflict_do_nothing(index_elements=[QuizSession.code])
            .returning(QuizSession)
        )
        if quiz_session is None:
            logger.warning(
                "Session code %s already taken. Retry %d/%d...",
                code, attempt, CREATE_ATTEMPTS,
            )
            continue

        await session.commit()
        logger.info("Session %s created (id=%s)", quiz_session.code, quiz_session.id)
        return quiz_session

    raise ExhaustedRetries()


async def load_session(session: AsyncSession, code: str) -> QuizSession:
    # populate_existing: ended_at мог поменяться в другой сессии БД
    normalized = normalize_code(code)
    quiz_session = await session.scalar(
        select(QuizSession)
        .where(QuizSession.code == normalized)
        .execution_options(populate_existing=True)
    )
    if not quiz_session:
        raise NotFound("Session not found")
    return quiz_session


async def load_session_by_id(session: AsyncSession, session_id: int) -> QuizSession:
    quiz_session = await session.get(QuizSession, session_id, populate_existing=True)
    if not quiz_session:
        raise NotFound("Session not found")
    return quiz_session


async def end_session(session: AsyncSession, code: str) -> QuizSession:
    """Идемпотентно: уже завершённая сессия возвращается как есть."""
    quiz_session = await load_session(session, code)
    if quiz_session.ended_at is not None:
        return quiz_session

    # условный UPDATE: при гонке двух end выигрывает первый, ended_at не перезаписывается
    await session.execute(
        update(QuizSession)
        .where(QuizSession.id == quiz_session.id, QuizSession.ended_at.is_(None))
        .values(ended_at=utcnow())
    )
    await session.commit()
    await session.refresh(quiz_session)
    logger.info("Session %s ended at %s", quiz_session.code, quiz_session.ended_at)
    return quiz_session


async def list_sessions(session: AsyncSession, limit: int = 20) -> list[SessionSummary]:
    rows = await session.execute(
        select(QuizSession, func.count(Participant.id))
        .outerjoin(Participant, Participant.session_id == QuizSession.id)
        .group_by(QuizSession.id)
        .order_by(QuizSession.created_at.desc(), QuizSession.id.desc())
        .limit(limit)
    )
    return [SessionSummary(session=s, participant_count=count) for s, count in rows.all()]
