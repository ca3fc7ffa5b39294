from datetime import datetime, timezone

from sqlalchemy import event

from app.models.form import Form
from app.models.submission import Submission


# Auto updated_at
@event.listens_for(Form, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)


# Submissions are append-only fact rows
@event.listens_for(Submission, "before_update")
def block_submission_update(mapper, connection, target):
    raise ValueError("Submissions are immutable once recorded")
