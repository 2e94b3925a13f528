from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


# колонки Integer = int4 в Postgres, больше не влезет
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]
DbId = Annotated[int, Field(ge=1, le=INT32_MAX)]


class SessionCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)


class SessionOut(BaseModel):
    id: int
    code: str
    title: str
    created_at: datetime
    ended_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class SessionSummaryOut(SessionOut):
    participant_count: int


class QuestionIn(BaseModel):
    question: str
    options: list[str]
    correct_index: Int32 = 0
    points: Int32 = 100


class PublicQuestionOut(BaseModel):
    """Вопрос для участника: без правильного ответа."""

    id: int
    order_no: int
    question: str = Field(validation_alias="question_text")
    options: list[str]
    points: int

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class QuestionOut(PublicQuestionOut):
    correct_index: int


class BankQuestionOut(BaseModel):
    id: int
    question: str = Field(validation_alias="question_text")
    options: list[str]
    correct_index: int
    points: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ImportIn(BaseModel):
    bank_ids: list[DbId]


class ImportOut(BaseModel):
    count: int


class JoinIn(BaseModel):
    code: str
    name: str


class ParticipantOut(BaseModel):
    id: int
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class JoinOut(BaseModel):
    session: SessionOut
    participant: ParticipantOut
    token: str


class ParticipantMe(BaseModel):
    authenticated: bool = True
    participant_id: int
    session_id: int
    session_code: str


class AnsweredOut(BaseModel):
    question_ids: list[int]


class AnswerIn(BaseModel):
    question_id: DbId
    answer_index: Int32


class AnswerOut(BaseModel):
    id: int
    question_id: int
    answer_index: int
    is_correct: bool
    points_earned: int
    answered_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaderboardRowOut(BaseModel):
    participant_id: int
    display_name: str
    total_points: int
    correct_count: int
    last_answer_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginIn(BaseModel):
    passcode: str = ""
