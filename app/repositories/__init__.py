"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.repositories.submission_repository import SubmissionRepository
from app.repositories.dashboard_repository import DashboardRepository

__all__ = [
    "FormRepository",
    "QuestionRepository",
    "SubmissionRepository",
    "DashboardRepository",
]
