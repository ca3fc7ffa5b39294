from sqlalchemy import Column, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class AnswerOption(Base):
    """Selectable answer worth ``points`` (zero or negative allowed)."""

    __tablename__ = "answer_options"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    question_id = Column(
        UUID(as_uuid=True),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    option_text = Column(Text, nullable=False)
    points = Column(Integer, nullable=False, server_default=text("0"))
    order_index = Column(Integer, nullable=False, server_default=text("0"))

    question = relationship("Question", back_populates="answer_options")

    __table_args__ = (
        Index("idx_answer_options_question_order", "question_id", "order_index"),
    )
