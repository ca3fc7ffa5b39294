from typing import Any, Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import selectinload

from app.models.form import Form
from app.models.question import Question
from app.repositories.base import BaseRepository


def _with_tree(query):
    """Eager-load questions and their options (both relationship-ordered)."""
    return query.options(
        selectinload(Form.questions).selectinload(Question.answer_options)
    ).execution_options(populate_existing=True)


class FormRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``forms`` table."""

    async def get_owned(self, form_id: UUID, owner_id: UUID) -> Optional[Form]:
        """Return a form only if it belongs to *owner_id*."""
        return await self._one_or_none(
            select(Form).where(Form.id == form_id, Form.owner_id == owner_id)
        )

    async def get_owned_with_questions(
        self, form_id: UUID, owner_id: UUID
    ) -> Optional[Form]:
        """Return an owned form with its ordered question/option tree."""
        return await self._one_or_none(
            _with_tree(
                select(Form).where(Form.id == form_id, Form.owner_id == owner_id)
            )
        )

    async def get_active_by_subdomain(self, subdomain: str) -> Optional[Form]:
        """Public lookup: an *active* form with its tree, or ``None``."""
        return await self._one_or_none(
            _with_tree(
                select(Form).where(
                    Form.subdomain == subdomain,
                    Form.is_active.is_(True),
                )
            )
        )

    async def get_sheet_target(self, form_id: UUID) -> Optional[Any]:
        """Return ``(id, google_sheet_url)`` for a form, or ``None`` if missing."""
        result = await self._db.execute(
            select(Form.id, Form.google_sheet_url).where(Form.id == form_id)
        )
        return result.one_or_none()

    async def subdomain_taken(
        self, subdomain: str, exclude_form_id: Optional[UUID] = None
    ) -> bool:
        """Return ``True`` if another form already uses *subdomain*."""
        condition = Form.subdomain == subdomain
        if exclude_form_id is not None:
            condition = condition & (Form.id != exclude_form_id)
        result = await self._db.execute(select(exists().where(condition)))
        return bool(result.scalar())

    async def create(self, **kwargs: Any) -> Form:
        """Insert a new form and return the model instance."""
        return await self._add(Form(**kwargs))

    async def delete(self, form: Form) -> None:
        """Delete a form; the database cascades to its children."""
        await self._db.delete(form)
