from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import rate_limited
from app.core.db import get_session
from app.core.security import ParticipantIdentity, require_participant
from app.schemas.quiz import AnswerIn, AnswerOut
from app.services.answers import submit_answer


router = APIRouter(prefix="/answers", tags=["answers"])


@router.post(
    "",
    response_model=AnswerOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("answer"))],
)
async def submit(
    body: AnswerIn,
    identity: ParticipantIdentity = Depends(require_participant),
    session: AsyncSession = Depends(get_session),
):
    # участник и сессия берутся только из токена, не из тела запроса
    return await submit_answer(
        session,
        participant_id=identity.participant_id,
        session_id=identity.session_id,
        question_id=body.question_id,
        answer_index=body.answer_index,
    )
