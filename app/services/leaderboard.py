from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Integer, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.quiz import Answer, Participant


@dataclass
class LeaderboardRow:
    participant_id: int
    display_name: str
    total_points: int
    correct_count: int
    last_answer_at: datetime


async def compute_leaderboard(
    session: AsyncSession,
    session_id: int,
    limit: int = 20,
) -> list[LeaderboardRow]:
    """
    Таблица лидеров считается заново из answers на каждый запрос, своего состояния нет.

    Ничья по очкам: выше тот, кто раньше дал последний ответ, дальше по id участника.
    """
    total_points = func.coalesce(func.sum(Answer.points_earned), 0)
    correct_count = func.coalesce(func.sum(case((Answer.is_correct, 1), else_=0)), 0)
    last_answer_at = func.max(Answer.answered_at)

    rows = await session.execute(
        select(
            Participant.id,
            Participant.display_name,
            total_points.cast(Integer).label("total_points"),
            correct_count.cast(Integer).label("correct_count"),
            last_answer_at.label("last_answer_at"),
        )
        .join(Answer, Answer.participant_id == Participant.id)
        .where(Answer.session_id == session_id)
        .group_by(Participant.id, Participant.display_name)
        .order_by(total_points.desc(), last_answer_at.asc(), Participant.id.asc())
        .limit(limit)
    )

    return [
        LeaderboardRow(
            participant_id=pid,
            display_name=name,
            total_points=int(points),
            correct_count=int(correct),
            last_answer_at=last_at,
        )
        for pid, name, points, correct, last_at in rows.all()
    ]
