from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.security import organizer_flag, require_organizer
from app.schemas.quiz import (
    ImportIn,
    ImportOut,
    LeaderboardRowOut,
    PublicQuestionOut,
    QuestionIn,
    QuestionOut,
    SessionCreate,
    SessionOut,
    SessionSummaryOut,
)
from app.services import leaderboard as leaderboard_service
from app.services import questions as question_service
from app.services import sessions as session_service


router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_organizer)],
)
async def create_session(
    body: SessionCreate | None = None,
    session: AsyncSession = Depends(get_session),
):
    return await session_service.create_session(session, title=body.title if body else None)


@router.get("", response_model=list[SessionSummaryOut], dependencies=[Depends(require_organizer)])
async def list_sessions(
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    summaries = await session_service.list_sessions(session, limit=limit)
    return [
        SessionSummaryOut(
            **SessionOut.model_validate(s.session).model_dump(),
            participant_count=s.participant_count,
        )
        for s in summaries
    ]


@router.get("/{code}", response_model=SessionOut)
async def get_session_by_code(code: str, session: AsyncSession = Depends(get_session)):
    return await session_service.load_session(session, code)


@router.post("/{code}/end", response_model=SessionOut, dependencies=[Depends(require_organizer)])
async def end_session(code: str, session: AsyncSession = Depends(get_session)):
    return await session_service.end_session(session, code)


@router.get("/{code}/questions", response_model=None)
async def list_questions(
    code: str,
    is_admin: bool = Depends(organizer_flag),
    session: AsyncSession = Depends(get_session),
):
    quiz_session = await session_service.load_session(session, code)
    questions = await question_service.list_questions(session, quiz_session.id)
    # правильный ответ видит только организатор
    schema = QuestionOut if is_admin else PublicQuestionOut
    return [schema.model_validate(q) for q in questions]


@router.post(
    "/{code}/questions",
    response_model=QuestionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_organizer)],
)
async def add_question(code: str, body: QuestionIn, session: AsyncSession = Depends(get_session)):
    return await question_service.add_question(
        session,
        code=code,
        text=body.question,
        options=body.options,
        correct_index=body.correct_index,
        points=body.points,
    )


@router.post(
    "/{code}/questions/import",
    response_model=ImportOut,
    dependencies=[Depends(require_organizer)],
)
async def import_questions(code: str, body: ImportIn, session: AsyncSession = Depends(get_session)):
    count = await question_service.import_from_bank(session, code=code, bank_ids=body.bank_ids)
    return ImportOut(count=count)


@router.get("/{code}/leaderboard", response_model=list[LeaderboardRowOut])
async def get_leaderboard(
    code: str,
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    quiz_session = await session_service.load_session(session, code)
    return await leaderboard_service.compute_leaderboard(session, quiz_session.id, limit=limit)
