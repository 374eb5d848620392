# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .area import Area  # noqa: F401
from .person import Person  # noqa: F401
from .criterion import Criterion, Subcriterion, EvaluationTypeCriterion  # noqa: F401
from .assignment import Assignment  # noqa: F401
from .evaluation_task import EvaluationTask  # noqa: F401
from .score_detail import ScoreDetail  # noqa: F401
from .incident import Incident  # noqa: F401
from .notification import Notification  # noqa: F401
