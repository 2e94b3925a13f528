from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.time import utcnow
from app.models.quiz import Participant, QuizSession
from app.services.errors import NotFound, ValidationError
from app.services.sessions import ensure_open, load_session


logger = logging.getLogger(__name__)

NAME_MIN_LEN = 2
NAME_MAX_LEN = 30


def clean_display_name(display_name: str | None) -> str:
    """Слишком короткое имя — ошибка, слишком длинное молча обрезаем."""
    name = (display_name or "").strip()
    if len(name) < NAME_MIN_LEN:
        raise ValidationError("Display name is too short")
    return name[:NAME_MAX_LEN].rstrip()


async def join(
    session: AsyncSession,
    *,
    code: str,
    display_name: str,
) -> tuple[QuizSession, Participant]:
    quiz_session = await load_session(session, code)
    ensure_open(quiz_session)
    name = clean_display_name(display_name)

    # дубли имён не проверяем намеренно
    participant = Participant(session_id=quiz_session.id, display_name=name, joined_at=utcnow())
    session.add(participant)
    await session.commit()
    await session.refresh(participant)

    logger.info("Participant %s joined session %s", participant.id, quiz_session.code)
    return quiz_session, participant


async def get_participant(session: AsyncSession, participant_id: int) -> Participant:
    participant = await session.get(Participant, participant_id)
    if not participant:
        raise NotFound("Participant not found")
    return participant
