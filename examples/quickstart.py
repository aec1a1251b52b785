#!/usr/bin/env python3
"""Quickstart - Auth Tables on SQLite Through the spine-auth Adapter.

================================================================================
WHAT THIS SHOWS
================================================================================

An auth framework describes its tables as logical models::

    user     ─ email (unique, required), name (required), emailVerified
    session  ─ userId → user_id, token (unique), deletedAt (soft delete)

The adapter turns framework calls into SQLAlchemy statements::

    adapter.find_many("user", [{"field": "email", "operator": "ends_with",
                                "value": "@example.com"}])
        ↓
    SELECT ... FROM user WHERE user.email LIKE '%@example.com' ESCAPE '\\'

and ``create_schema`` diffs the same models against the live database,
writing Alembic revisions and SQLAlchemy entity modules for any drift.


================================================================================
RUN IT
================================================================================

::

    python examples/quickstart.py

Artifacts land in a temporary directory which is printed at the end.
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from spine_auth import AdapterSettings, build_metadata, create_adapter, create_auth_engine
from spine_auth.core.logging import configure_logging

TABLES = {
    "user": {
        "modelName": "user",
        "fields": {
            "email": {"type": "string", "required": True, "unique": True},
            "name": {"type": "string", "required": True},
            "emailVerified": {"type": "boolean", "defaultValue": False, "fieldName": "email_verified"},
        },
    },
    "session": {
        "modelName": "session",
        "fields": {
            "userId": {"type": "string", "required": True, "fieldName": "user_id"},
            "token": {"type": "string", "required": True, "unique": True},
            "deletedAt": {"type": "date", "fieldName": "deleted_at"},
        },
    },
}


async def main(workdir: Path) -> None:
    engine = create_auth_engine(f"sqlite+aiosqlite:///{workdir / 'auth.db'}")
    settings = AdapterSettings(output_dir=str(workdir / "generated"), soft_delete_models=["session"])
    adapter = create_adapter(engine, TABLES, settings)

    # 1. Plan and write the schema artifacts
    changelog = await adapter.create_schema(file=str(workdir / "changelog.txt"))
    changelog.write()
    print(changelog.code)

    async with engine.begin() as conn:
        await conn.run_sync(build_metadata(adapter.registry).create_all)

    # 2. CRUD in logical terms
    alice = await adapter.create("user", {"email": "alice@example.com", "name": "Alice"})
    await adapter.create("user", {"email": "bob@other.org", "name": "Bob"})
    print("created:", alice)

    found = await adapter.find_many(
        "user", [{"field": "email", "operator": "ends_with", "value": "@example.com"}]
    )
    print("example.com users:", [u["name"] for u in found])

    # 3. Related writes in one transaction
    async def sign_in(tx):
        await tx.update("user", [{"field": "id", "value": alice["id"]}], {"emailVerified": True})
        return await tx.create("session", {"userId": alice["id"], "token": "tok-1"})

    session = await adapter.run_in_transaction(sign_in)

    # 4. Soft delete hides the session without removing the row
    await adapter.delete("session", [{"field": "id", "value": session["id"]}])
    print("live sessions:", await adapter.count("session"))

    await engine.dispose()
    print(f"artifacts: {workdir}")


if __name__ == "__main__":
    configure_logging(level="WARNING", json_format=False)
    asyncio.run(main(Path(tempfile.mkdtemp(prefix="spine-auth-"))))
