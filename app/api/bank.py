from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.core.security import require_organizer
from app.schemas.quiz import INT32_MAX, BankQuestionOut, QuestionIn
from app.services import questions as question_service


router = APIRouter(prefix="/bank", tags=["bank"], dependencies=[Depends(require_organizer)])


@router.get("", response_model=list[BankQuestionOut])
async def list_bank(session: AsyncSession = Depends(get_session)):
    return await question_service.list_bank(session)


@router.post("", response_model=BankQuestionOut, status_code=status.HTTP_201_CREATED)
async def add_to_bank(body: QuestionIn, session: AsyncSession = Depends(get_session)):
    return await question_service.add_to_bank(
        session,
        text=body.question,
        options=body.options,
        correct_index=body.correct_index,
        points=body.points,
    )


@router.delete("/{bank_id}")
async def delete_from_bank(
    bank_id: int = Path(ge=1, le=INT32_MAX),
    session: AsyncSession = Depends(get_session),
):
    await question_service.delete_from_bank(session, bank_id)
    return {"success": True}
