import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header

from app.core.config import settings
from app.core.exceptions import WebhookAuthError
from app.schemas.submission import ForwardResult, SubmissionWebhookPayload
from app.services.submission_forwarder import SubmissionForwarder
from app.api.deps import get_submission_forwarder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(None),
) -> None:
    """Reject calls without the shared secret; an unset secret rejects everything."""
    if not settings.WEBHOOK_SECRET or not x_webhook_secret:
        raise WebhookAuthError()
    if not secrets.compare_digest(x_webhook_secret, settings.WEBHOOK_SECRET):
        raise WebhookAuthError()


@router.post(
    "/submissions",
    response_model=ForwardResult,
    dependencies=[Depends(verify_webhook_secret)],
)
async def forward_submission(
    payload: SubmissionWebhookPayload,
    forwarder: SubmissionForwarder = Depends(get_submission_forwarder),
) -> ForwardResult:
    """Forward one submission row, as sent by a database insert webhook.

    Unlike the inline path, failures are returned to the caller.
    """
    logger.info("Webhook forward for submission %s", payload.record.id)
    return await forwarder.forward(payload.record)
