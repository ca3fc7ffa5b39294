from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class Submission(Base):
    """Append-only record of one respondent's scored answer set.

    ``submitted_data`` maps question text to the chosen option text and
    ``utm_params`` holds the campaign parameters captured when the form
    was opened.  Rows are never updated; inserting one is what triggers
    the spreadsheet forwarder.
    """

    __tablename__ = "submissions"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    form_id = Column(
        UUID(as_uuid=True),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    calculated_score = Column(Integer, nullable=False)
    submitted_data = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    utm_params = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    form = relationship("Form", back_populates="submissions")

    __table_args__ = (
        Index("idx_submissions_form_created", "form_id", "created_at"),
    )
