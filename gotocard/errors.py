"""Error kinds surfaced by the recommendation pipeline."""


class RecommendationError(Exception):
    """Base error. `code` is what API callers see."""

    code = "error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"status": "error", "code": self.code, "message": self.message}


class NotFoundError(RecommendationError):
    code = "not_found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InvalidInputError(RecommendationError):
    """Malformed spending record. Skipped at the aggregation boundary."""

    code = "invalid_input"


class TransientIOError(RecommendationError):
    """Store unreachable or generation budget exceeded. Safe to retry."""

    code = "transient_io"
    retryable = True
