from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import delete

from app.models.answer_option import AnswerOption
from app.models.question import Question
from app.repositories.base import BaseRepository


class QuestionRepository(BaseRepository):
    """Queries against ``questions`` and their ``answer_options``."""

    async def delete_for_form(self, form_id: UUID) -> int:
        """Delete every question of a form; options go with them (FK cascade).

        Returns the number of questions removed.
        """
        result = await self._db.execute(
            delete(Question).where(Question.form_id == form_id)
        )
        return result.rowcount or 0

    async def create(
        self,
        *,
        form_id: UUID,
        question_text: str,
        question_type: str,
        order_index: int,
        options: List[Dict[str, Any]],
    ) -> Question:
        """Insert one question with its options, in list order."""
        return await self._add(
            Question(
                form_id=form_id,
                question_text=question_text,
                question_type=question_type,
                order_index=order_index,
                answer_options=[
                    AnswerOption(
                        option_text=opt["option_text"],
                        points=opt["points"],
                        order_index=position,
                    )
                    for position, opt in enumerate(options)
                ],
            )
        )
