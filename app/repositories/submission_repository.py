from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select

from app.models.submission import Submission
from app.repositories.base import BaseRepository


class SubmissionRepository(BaseRepository):
    """Append-only access to the ``submissions`` table."""

    async def create(self, **kwargs: Any) -> Submission:
        """Insert a submission; id and ``created_at`` default server-side."""
        return await self._add(Submission(**kwargs), refresh=True)

    async def get_by_id(self, submission_id: UUID) -> Optional[Submission]:
        return await self._one_or_none(
            select(Submission).where(Submission.id == submission_id)
        )
