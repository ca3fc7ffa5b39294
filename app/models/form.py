from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class Form(Base):
    """A tenant's branded lead-qualification questionnaire.

    Reachable publicly through its unique ``subdomain`` slug while
    ``is_active``.  Respondents whose total score reaches
    ``score_threshold`` are sent to ``redirect_good_url``, everyone else
    to ``redirect_bad_url``.  Questions, options and submissions are
    removed with the form (``ON DELETE CASCADE``).
    """

    __tablename__ = "forms"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    owner_id = Column(UUID(as_uuid=True), nullable=False)
    client_name = Column(String(200), nullable=False)
    subdomain = Column(String(63), nullable=False)
    score_threshold = Column(Integer, nullable=False, server_default=text("60"))
    redirect_good_url = Column(Text, nullable=False)
    redirect_bad_url = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    google_sheet_url = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    questions = relationship(
        "Question",
        back_populates="form",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Question.order_index",
    )
    submissions = relationship(
        "Submission",
        back_populates="form",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("uq_forms_subdomain", "subdomain", unique=True),
        Index("idx_forms_owner", "owner_id"),
        CheckConstraint(
            "subdomain ~ '^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$'",
            name="ck_forms_subdomain_slug",
        ),
    )
