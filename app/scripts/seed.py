"""Demo data seeder: one owner, one active form, two questions.

Scoring scenario (threshold 60):
    Q1  A = 30, B = 10
    Q2  C = 40, D = 0
    A + C = 70 -> qualified, B + D = 10 -> unqualified.

Usage:
    python -m app.scripts.seed
"""

import asyncio
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.security import create_access_token
from app.models import Form
from app.repositories.form_repository import FormRepository
from app.repositories.question_repository import QuestionRepository
from app.schemas.form import AnswerOptionIn, FormTreeIn, QuestionIn
from app.services.form_service import FormService
from app.services.form_sync_service import FormSyncService

DEMO_OWNER_ID = UUID("00000000-0000-4000-8000-000000000001")
DEMO_SUBDOMAIN = "demo"

DEMO_FORM = FormTreeIn(
    client_name="Demo Client",
    subdomain=DEMO_SUBDOMAIN,
    score_threshold=60,
    redirect_good_url="https://example.com/welcome",
    redirect_bad_url="https://example.com/thanks",
    is_active=True,
    questions=[
        QuestionIn(
            question_text="What is your monthly budget?",
            answer_options=[
                AnswerOptionIn(option_text="A", points=30),
                AnswerOptionIn(option_text="B", points=10),
            ],
        ),
        QuestionIn(
            question_text="When do you plan to start?",
            answer_options=[
                AnswerOptionIn(option_text="C", points=40),
                AnswerOptionIn(option_text="D", points=0),
            ],
        ),
    ],
)


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        print("Seeding demo form")

        # Re-runnable: the form's subtree and submissions cascade away
        await session.execute(delete(Form).where(Form.subdomain == DEMO_SUBDOMAIN))
        await session.commit()

        service = FormService(FormSyncService())
        form = await service.create_form(
            DEMO_FORM,
            DEMO_OWNER_ID,
            FormRepository(session),
            QuestionRepository(session),
        )
        print(f"Created form {form.id} at subdomain '{form.subdomain}'")
        for question in form.questions:
            options = ", ".join(
                f"{o.option_text}={o.points}" for o in question.answer_options
            )
            print(f"  [{question.order_index}] {question.question_text} ({options})")

    await engine.dispose()

    token = create_access_token(DEMO_OWNER_ID, email="owner@example.com", expires_minutes=24 * 60)
    print("Owner bearer token (24h):")
    print(token)


if __name__ == "__main__":
    asyncio.run(seed())
