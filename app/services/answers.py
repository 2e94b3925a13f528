from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import dialect_insert
from app.core.time import utcnow
from app.models.quiz import Answer, Question
from app.services.errors import DuplicateAnswer, InvalidSession, NotFound
from app.services.participants import get_participant
from app.services.sessions import ensure_open, load_session_by_id


logger = logging.getLogger(__name__)


def grade(question: Question, answer_index: int) -> tuple[bool, int]:
    # индекс вне диапазона вариантов — просто неверный ответ, не ошибка
    is_correct = answer_index == question.correct_index
    return is_correct, (question.points if is_correct else 0)


async def submit_answer(
    session: AsyncSession,
    *,
    participant_id: int,
    session_id: int,
    question_id: int,
    answer_index: int,
) -> Answer:
    """
    Принимает ответ участника ровно один раз.

    Порядок проверок: вопрос -> принадлежность сессии -> сессия открыта -> участник.
    Повтор ловит UNIQUE (participant_id, question_id) в базе через
    INSERT ... ON CONFLICT DO NOTHING, а не проверка "есть ли уже ответ":
    две параллельные отправки не пройдут обе.
    Первый ответ остаётся как есть, повторно ничего не пересчитывается.
    """
    question = await session.get(Question, question_id)
    if not question:
        raise NotFound("Question not found")
    if question.session_id != session_id:
        raise InvalidSession()

    quiz_session = await load_session_by_id(session, session_id)
    ensure_open(quiz_session)

    participant = await get_participant(session, participant_id)
    if participant.session_id != session_id:
        raise InvalidSession("Participant does not belong to this session")

    is_correct, points_earned = grade(question, answer_index)

    insert = dialect_insert(session)
    answer = await session.scalar(
        insert(Answer)
        .values(
            session_id=session_id,
            participant_id=participant_id,
            question_id=question_id,
            answer_index=answer_index,
            is_correct=is_correct,
            points_earned=points_earned,
            answered_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=[Answer.participant_id, Answer.question_id])
        .returning(Answer)
    )
    await session.commit()

    if answer is None:
        logger.info(
            "Duplicate answer rejected: participant=%s question=%s",
            participant_id, question_id,
        )
        raise DuplicateAnswer()
    return answer


async def list_answered_question_ids(
    session: AsyncSession,
    *,
    session_id: int,
    participant_id: int,
) -> set[int]:
    rows = await session.execute(
        select(Answer.question_id).where(
            Answer.session_id == session_id,
            Answer.participant_id == participant_id,
        )
    )
    return set(rows.scalars().all())
