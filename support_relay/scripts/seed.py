#!/usr/bin/env python3
"""
Seed a demo support session.

Creates session 00000000-0000-0000-0000-000000000001 with one question and
its answer. Running it again leaves an existing demo session untouched.

Usage:
    python -m support_relay.scripts.seed
"""
from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from support_relay.config import get_settings
from support_relay.infrastructure.database import close_db, get_session_factory, init_db
from support_relay.infrastructure.logging import setup_logging
from support_relay.models import ChatSession, Message

logger = logging.getLogger("seed")

DEMO_SESSION_ID = UUID("00000000-0000-0000-0000-000000000001")

DEMO_MESSAGES = [
    ("user", "How long is the return window?"),
    (
        "assistant",
        "You can return any item within 30 days of delivery for a full refund. "
        "Items should be unused and in their original packaging.",
    ),
]


async def seed() -> bool:
    """Insert the demo session. Returns False when it already exists."""
    factory = get_session_factory()
    async with factory() as db:
        existing = await db.get(ChatSession, DEMO_SESSION_ID)
        if existing is not None:
            logger.info(
                "Demo session already present",
                extra={"service": "seed", "session_id": str(DEMO_SESSION_ID)},
            )
            return False

        db.add(ChatSession(id=DEMO_SESSION_ID, meta={"source": "seed"}))
        await db.flush()
        for role, content in DEMO_MESSAGES:
            db.add(Message(session_id=DEMO_SESSION_ID, role=role, content=content))
            # Distinct created_at values keep the pair ordered
            await db.flush()
        await db.commit()

    logger.info(
        "Demo session seeded",
        extra={"service": "seed", "session_id": str(DEMO_SESSION_ID)},
    )
    return True


async def _run() -> None:
    await init_db()
    try:
        await seed()
    finally:
        await close_db()


def main() -> None:
    settings = get_settings()
    setup_logging(log_level=settings.log_level, debug_namespaces=settings.debug_namespaces)
    asyncio.run(_run())


if __name__ == "__main__":
    main()
