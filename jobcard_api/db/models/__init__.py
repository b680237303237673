"""
ORM models for the job-card workflow: plans, job cards, the transition log,
QA reports, rejections and material requests.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .production import (  # noqa: F401
    ProductionPlan,
    JobCard,
    StepTransition,
)
from .quality import (  # noqa: F401
    QAReport,
    Rejection,
)
from .materials import (  # noqa: F401
    MaterialRequest,
)
