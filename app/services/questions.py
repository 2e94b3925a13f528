from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.time import utcnow
from app.models.quiz import BankQuestion, Question, QuizSession
from app.services.codes import normalize_code
from app.services.errors import NotFound, ValidationError
from app.services.sessions import ensure_open


logger = logging.getLogger(__name__)

DEFAULT_POINTS = 100


def validate_question(
    text: str | None,
    options: Sequence[str] | None,
    correct_index: int,
    points: int,
) -> tuple[str, list[str], int]:
    """Чистим текст/варианты и проверяем инварианты вопроса.

    Пустые варианты отбрасываются до проверки "минимум 2". correct_index
    указывает в присланный список и пересчитывается на очищенный; указывать
    на пустой вариант нельзя.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Question text is required")

    if options is None or isinstance(options, str):
        raise ValidationError("Options must be a list")
    stripped = ["" if opt is None else str(opt).strip() for opt in options]
    cleaned = [opt for opt in stripped if opt]
    if len(cleaned) < 2:
        raise ValidationError("At least 2 options are required")

    if isinstance(correct_index, bool) or not isinstance(correct_index, int):
        raise ValidationError("correct_index must be an integer")
    if correct_index < 0 or correct_index >= len(stripped):
        raise ValidationError("correct_index is out of range")
    if not stripped[correct_index]:
        raise ValidationError("correct_index points to an empty option")
    # сколько непустых вариантов стоит до правильного
    correct_index = sum(1 for opt in stripped[:correct_index] if opt)

    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError("points must be a non-negative integer")

    return text, cleaned, correct_index


def _next_order_no(session_id: int):
    # max+1 считается внутри самого INSERT, а не в питоне
    q = aliased(Question)
    return (
        select(func.coalesce(func.max(q.order_no), 0) + 1)
        .where(q.session_id == session_id)
        .scalar_subquery()
    )


async def _lock_open_session(session: AsyncSession, code: str) -> QuizSession:
    # FOR UPDATE сериализует параллельные добавления в одну сессию (sqlite это игнорирует,
    # там запись и так однопоточная)
    quiz_session = await session.scalar(
        select(QuizSession)
        .where(QuizSession.code == normalize_code(code))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if not quiz_session:
        raise NotFound("Session not found")
    ensure_open(quiz_session)
    return quiz_session


async def _append_question(
    session: AsyncSession,
    session_id: int,
    *,
    text: str,
    options: list[str],
    correct_index: int,
    points: int,
) -> Question:
    question = await session.scalar(
        insert(Question)
        .values(
            session_id=session_id,
            order_no=_next_order_no(session_id),
            question_text=text,
            options=options,
            correct_index=correct_index,
            points=points,
        )
        .returning(Question)
    )
    assert question is not None
    return question


async def add_question(
    session: AsyncSession,
    *,
    code: str,
    text: str,
    options: Sequence[str],
    correct_index: int,
    points: int = DEFAULT_POINTS,
) -> Question:
    text, cleaned, correct_index = validate_question(text, options, correct_index, points)
    quiz_session = await _lock_open_session(session, code)

    question = await _append_question(
        session,
        quiz_session.id,
        text=text,
        options=cleaned,
        correct_index=correct_index,
        points=points,
    )
    await session.commit()
    logger.info("Question #%d added to session %s", question.order_no, quiz_session.code)
    return question


async def import_from_bank(
    session: AsyncSession,
    *,
    code: str,
    bank_ids: Iterable[int],
) -> int:
    """
    Копирует вопросы из банка в конец сессии в порядке bank_ids.

    Банк не меняется. Неизвестные и повторные id пропускаются;
    если не нашлось ни одного — NotFound.
    """
    ids = list(dict.fromkeys(bank_ids))
    if not ids:
        raise ValidationError("Select at least one bank question")

    quiz_session = await _lock_open_session(session, code)

    rows = await session.execute(select(BankQuestion).where(BankQuestion.id.in_(ids)))
    by_id = {bq.id: bq for bq in rows.scalars().all()}
    selected = [by_id[i] for i in ids if i in by_id]
    if not selected:
        raise NotFound("Bank questions not found")

    for bq in selected:
        await _append_question(
            session,
            quiz_session.id,
            text=bq.question_text,
            options=list(bq.options),
            correct_index=bq.correct_index,
            points=bq.points,
        )
    await session.commit()

    logger.info("Imported %d bank question(s) into session %s", len(selected), quiz_session.code)
    return len(selected)


async def list_questions(session: AsyncSession, session_id: int) -> list[Question]:
    rows = await session.execute(
        select(Question)
        .where(Question.session_id == session_id)
        .order_by(Question.order_no)
    )
    return list(rows.scalars().all())


# ---------- банк вопросов ----------
async def add_to_bank(
    session: AsyncSession,
    *,
    text: str,
    options: Sequence[str],
    correct_index: int,
    points: int = DEFAULT_POINTS,
) -> BankQuestion:
    text, cleaned, correct_index = validate_question(text, options, correct_index, points)
    bq = BankQuestion(
        question_text=text,
        options=cleaned,
        correct_index=correct_index,
        points=points,
        created_at=utcnow(),
    )
    session.add(bq)
    await session.commit()
    await session.refresh(bq)
    return bq


async def delete_from_bank(session: AsyncSession, bank_id: int) -> None:
    bq = await session.get(BankQuestion, bank_id)
    if not bq:
        raise NotFound("Bank question not found")
    await session.delete(bq)
    await session.commit()


async def list_bank(session: AsyncSession) -> list[BankQuestion]:
    rows = await session.execute(
        select(BankQuestion).order_by(BankQuestion.created_at.desc(), BankQuestion.id.desc())
    )
    return list(rows.scalars().all())
