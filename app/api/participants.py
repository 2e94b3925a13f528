from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import rate_limited
from app.core.config import settings
from app.core.db import get_session
from app.core.security import (
    PARTICIPANT_COOKIE_NAME,
    ParticipantIdentity,
    create_participant_token,
    require_participant,
    set_auth_cookie,
)
from app.schemas.quiz import AnsweredOut, JoinIn, JoinOut, ParticipantMe, ParticipantOut, SessionOut
from app.services import answers as answer_service
from app.services import participants as participant_service


router = APIRouter(prefix="/participants", tags=["participants"])


@router.post("/join", response_model=JoinOut, dependencies=[Depends(rate_limited("join"))])
async def join(body: JoinIn, response: Response, session: AsyncSession = Depends(get_session)):
    quiz_session, participant = await participant_service.join(
        session, code=body.code, display_name=body.name
    )

    token = create_participant_token(participant.id, quiz_session.id, quiz_session.code)
    set_auth_cookie(
        response,
        PARTICIPANT_COOKIE_NAME,
        token,
        settings.PARTICIPANT_TOKEN_EXP_MINUTES * 60,
    )
    return JoinOut(
        session=SessionOut.model_validate(quiz_session),
        participant=ParticipantOut.model_validate(participant),
        token=token,
    )


@router.get("/me", response_model=ParticipantMe)
async def me(identity: ParticipantIdentity = Depends(require_participant)):
    return ParticipantMe(
        participant_id=identity.participant_id,
        session_id=identity.session_id,
        session_code=identity.session_code,
    )


@router.get("/me/answers", response_model=AnsweredOut)
async def my_answers(
    identity: ParticipantIdentity = Depends(require_participant),
    session: AsyncSession = Depends(get_session),
):
    # чтобы вернувшийся участник продолжил с первого неотвеченного вопроса
    ids = await answer_service.list_answered_question_ids(
        session,
        session_id=identity.session_id,
        participant_id=identity.participant_id,
    )
    return AnsweredOut(question_ids=sorted(ids))
