#!/usr/bin/env python3
"""Seed consultant accounts and the default label catalog.

Usage:
    python scripts/seed_consultants.py

Creates (if absent):
    - Users: CONS0001JOR Jorge, CONS0002JOS Jose, CONS0003TON Toño (consultor)
    - Labels: Urgente, Importante, Pendiente, Resuelto, Seguimiento

Existing users are left untouched, so the script is safe to re-run. When
JWT_SECRET_KEY is set, a one-hour dev token is printed for each consultant.
"""

from __future__ import annotations

import asyncio
import uuid

from src.authz.classifier import classify
from src.config import Settings
from src.gateway.middleware.auth import encode_token
from src.infra.db import create_db_engine, create_session_factory
from src.infra.identity.store import PgIdentityStore
from src.infra.labels.store import PgLabelStore
from src.labels.catalog import LabelCatalog
from src.shared.types import User

CONSULTANTS = (
    ("CONS0001JOR", "Jorge"),
    ("CONS0002JOS", "Jose"),
    ("CONS0003TON", "Toño"),
)


async def main() -> None:
    settings = Settings.from_env()
    engine = create_db_engine(settings.database_url, command_timeout=settings.db_command_timeout)
    session_factory = create_session_factory(engine)
    identity = PgIdentityStore(session_factory=session_factory)
    catalog = LabelCatalog(PgLabelStore(session_factory=session_factory))

    try:
        for business_id, display_name in CONSULTANTS:
            user = await identity.get_user_by_business_id(business_id)
            if user is not None:
                print(f"Consultant already exists: {business_id} (id={user.user_id})")
            else:
                user = User(
                    user_id=uuid.uuid4(),
                    business_id=business_id,
                    display_name=display_name,
                    role=classify(business_id),
                )
                await identity.put_user(user)
                print(f"Created consultant: {business_id} {display_name} (id={user.user_id})")
            if settings.jwt_secret:
                token = encode_token(
                    user_id=user.user_id,
                    secret=settings.jwt_secret,
                    role=classify(business_id).value,
                )
                print(f"  token: {token}")

        labels = await catalog.seed_defaults()
        print(f"Label catalog: {', '.join(label.name for label in labels)}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
