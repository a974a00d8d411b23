"""Shared fixtures: a seeded SQLite store on a temporary file."""

from datetime import datetime

import pytest_asyncio

from analyst.common.database import create_engine, create_session_factory, init_models
from analyst.common.models import User


def _seed_users():
    users = []

    # India: 12 users
    for i in range(12):
        users.append(
            User(
                id=i + 1,
                first_name=f"Asha{i}",
                last_name="Kumar",
                email=f"asha{i}@example.in",
                gender="Female" if i % 2 == 0 else "Male",
                job_title="Software Engineer" if i < 4 else "Data Analyst",
                device="Android 11" if i % 2 == 0 else "iPhone 13",
                car="Toyota Corolla" if i < 5 else "Honda Civic",
                language="Hindi",
                country="India",
                created_at=datetime(2024, 1, i + 1),
            )
        )

    # Brazil: 3 users
    for offset, (device, car) in enumerate(
        [("Android 10", "Ford Focus"), ("Android 12", "Ford Fiesta"), ("iOS 16", "Tesla Model 3")]
    ):
        users.append(
            User(
                id=13 + offset,
                first_name=f"Bruno{offset}",
                last_name="Silva",
                email=f"bruno{offset}@example.br",
                gender="Male",
                job_title="Product Manager",
                device=device,
                car=car,
                language="Portuguese",
                country="Brazil",
                created_at=datetime(2025, 2, offset + 1),
            )
        )

    # Germany: 2 users with gaps
    users.append(
        User(
            id=16,
            first_name="Greta",
            last_name="Muller",
            email="greta@example.de",
            gender="Female",
            job_title=None,
            device=None,
            car=None,
            language="German",
            country="Germany",
            created_at=datetime(2025, 3, 1),
        )
    )
    users.append(
        User(
            id=17,
            first_name="Hans",
            last_name="Becker",
            email="hans_100%@example.de",
            gender="Male",
            job_title="Mechanic",
            device="Feature phone X2",
            car="Volkswagen Golf",
            language="German",
            country="Germany",
            created_at=datetime(2025, 3, 2),
        )
    )
    return users


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'analyst_test.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = create_session_factory(engine)
    async with factory() as session:
        session.add_all(_seed_users())
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def empty_session_factory(engine):
    return create_session_factory(engine)
