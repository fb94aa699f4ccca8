"""Create the Parley tables in the configured Postgres database.

Usage: python backend/scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

from parley.infra import postgres
from parley.infra import store

SCHEMA_PATH = Path(store.__file__).resolve().parent / "schema.sql"


async def init_db() -> None:
	sql = SCHEMA_PATH.read_text(encoding="utf-8")
	pool = await postgres.get_pool()
	try:
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(sql)
	finally:
		await postgres.close_pool()
	print(f"Schema applied from {SCHEMA_PATH.name}.")


if __name__ == "__main__":
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	asyncio.run(init_db())
