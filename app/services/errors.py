from __future__ import annotations


class QuizError(Exception):
    """Бизнес-ошибка ядра: API мапит её в HTTP по status_code/code."""

    code = "QUIZ_ERROR"
    status_code = 400
    default_message = "Quiz error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(QuizError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid input"


class NotFound(QuizError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class SessionEnded(QuizError):
    code = "SESSION_ENDED"
    status_code = 409
    default_message = "Session has already ended"


class InvalidSession(QuizError):
    code = "INVALID_SESSION"
    status_code = 400
    default_message = "Question does not belong to this session"


class DuplicateAnswer(QuizError):
    code = "DUPLICATE_ANSWER"
    status_code = 409
    default_message = "Answer already submitted"


class ExhaustedRetries(QuizError):
    code = "EXHAUSTED_RETRIES"
    status_code = 503
    default_message = "Could not generate a unique session code"


class RateLimited(QuizError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or f"Too many requests. Try again in {retry_after} seconds.")
