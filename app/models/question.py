from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base
from app.schemas.common import QuestionType

QUESTION_TYPE_CHECK_CLAUSE: str = (
    f"question_type IN ({', '.join(repr(t.value) for t in QuestionType)})"
)


class Question(Base):
    """One single-choice question of a form.

    ``order_index`` drives presentation order.  Deleting a question from
    the editor never renumbers its siblings, so the sequence may have
    gaps (and, after re-adding, repeats; ties keep stored order).
    """

    __tablename__ = "questions"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    form_id = Column(
        UUID(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_text = Column(Text, nullable=False)
    question_type = Column(
        String(20), nullable=False, server_default=QuestionType.single_choice.value
    )
    order_index = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    form = relationship("Form", back_populates="questions")
    answer_options = relationship(
        "AnswerOption",
        back_populates="question",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AnswerOption.order_index",
    )

    __table_args__ = (
        Index("idx_questions_form_order", "form_id", "order_index"),
        CheckConstraint(QUESTION_TYPE_CHECK_CLAUSE, name="ck_question_type"),
    )
