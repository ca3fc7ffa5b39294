from typing import Any, List
from uuid import UUID

from sqlalchemy import case, func, select

from app.models.form import Form
from app.models.submission import Submission
from app.repositories.base import BaseRepository


class DashboardRepository(BaseRepository):
    """The two read aggregations behind the owner dashboard."""

    async def get_kpis(self, owner_id: UUID) -> Any:
        """Return ``total_forms``, ``active_forms`` and ``total_submissions``.

        Submissions are counted in a scalar subquery so that the form
        counts are not multiplied by the join.
        """
        submissions_subq = (
            select(func.count(Submission.id))
            .join(Form, Form.id == Submission.form_id)
            .where(Form.owner_id == owner_id)
            .scalar_subquery()
        )
        query = select(
            func.count(Form.id).label("total_forms"),
            func.count(case((Form.is_active.is_(True), Form.id))).label(
                "active_forms"
            ),
            submissions_subq.label("total_submissions"),
        ).where(Form.owner_id == owner_id)
        return (await self._db.execute(query)).one()

    async def get_forms_with_submission_counts(self, owner_id: UUID) -> List[Any]:
        """Return each owned form with its number of submissions, newest first."""
        query = (
            select(
                Form.id,
                Form.client_name,
                Form.subdomain,
                Form.score_threshold,
                Form.is_active,
                func.count(Submission.id).label("submission_count"),
            )
            .outerjoin(Submission, Submission.form_id == Form.id)
            .where(Form.owner_id == owner_id)
            .group_by(Form.id)
            .order_by(Form.created_at.desc())
        )
        return list((await self._db.execute(query)).all())
