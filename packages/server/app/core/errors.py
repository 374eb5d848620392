"""
Engine error taxonomy.

Each kind is an HTTPException so service code can raise it directly and the
API layer renders it through one handler:

    {"error": {"code": "DEADLINE_PASSED", "message": "...", "status": 409}}
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from evalengine_shared.schemas.common import ErrorBody, ErrorResponse


class EngineError(HTTPException):
    code = "ENGINE_ERROR"
    status_code = 400
    default_message = "Evaluation engine error"

    def __init__(self, message: str | None = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class InvalidWindow(EngineError):
    code = "INVALID_WINDOW"
    status_code = 422
    default_message = "The end of the window must be after its start"


class EmptyRoster(EngineError):
    code = "EMPTY_ROSTER"
    status_code = 422
    default_message = "The selected area has no teachers to evaluate"


class DuplicateAssignment(EngineError):
    code = "DUPLICATE_ASSIGNMENT"
    status_code = 409
    default_message = "An assignment for this area, period and window already exists"


class IncompleteScoring(EngineError):
    code = "INCOMPLETE_SCORING"
    status_code = 422
    default_message = "Rate every item before submitting."


class InvalidScore(EngineError):
    code = "INVALID_SCORE"
    status_code = 422
    default_message = "Scores must reference catalog sub-criteria with a mark of 0, 0.5 or 1"


class DeadlinePassed(EngineError):
    code = "DEADLINE_PASSED"
    status_code = 409
    default_message = "This evaluation window has closed."


class IllegalTransition(EngineError):
    code = "ILLEGAL_TRANSITION"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class NotFound(EngineError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class UnknownArea(NotFound):
    code = "UNKNOWN_AREA"
    default_message = "The selected area does not exist"


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(code=exc.code, message=exc.message, status=exc.status_code)
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())
