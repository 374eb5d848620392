from enum import Enum
from pydantic import BaseModel

class EvaluationType(str, Enum):
    SELF_EVALUATION = "SelfEvaluation"
    SUPERVISOR_TO_SUBJECT = "SupervisorToSubject"
    PEER_TO_SUBJECT = "PeerToSubject"

class TaskStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"

# No transition leaves one of these
TERMINAL_STATUSES: frozenset["TaskStatus"] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.EXPIRED, TaskStatus.CANCELLED}
)

class AssignmentStatus(str, Enum):
    OPEN = "Open"
    CLOSED = "Closed"

class PersonRole(str, Enum):
    SUBJECT = "subject"
    SUPERVISOR = "supervisor"
    PEER = "peer"

class IncidentCategory(str, Enum):
    EVALUATION_EXPIRED = "evaluation expired"
    BELOW_THRESHOLD = "evaluation below threshold"

class IncidentStatus(str, Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"

# Sub-criterion marks
ALLOWED_MARKS: frozenset[float] = frozenset({0.0, 0.5, 1.0})

SCORE_SCALE = 20
APPROVAL_THRESHOLD = 11.0

class ErrorBody(BaseModel):
    code: str
    message: str
    status: int

class ErrorResponse(BaseModel):
    error: ErrorBody
