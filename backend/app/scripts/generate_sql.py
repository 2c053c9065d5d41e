"""Write the SQL emitted by each repository method to ``<output>/<name>.sql``.

Run against a scratch database: sampled methods execute for real.

    python -m app.scripts.generate_sql --output sql --database-url sqlite+aiosqlite:///scratch.db --create-schema
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.core.database import Base
from app.core.sql_samples import collect_sql, render_sql_file
from app.repositories.memory import MemoryRepository
import app.models  # noqa: F401

REPOSITORIES = {
    "memory.repository": MemoryRepository,
}
logger = logging.getLogger(__name__)


async def generate(engine: AsyncEngine, output_dir: Path, create_schema: bool = False) -> list[Path]:
    if create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, repository_cls in REPOSITORIES.items():
        queries = await collect_sql(repository_cls, engine)
        path = output_dir / f"{name}.sql"
        path.write_text(render_sql_file(repository_cls.__name__, queries), encoding="utf-8")
        logger.info("sql_samples wrote %s (%s methods)", path, len(queries))
        written.append(path)
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--output", default="sql", help="directory for the generated .sql files")
    # No default: sampled methods commit, so never fall back to the app database.
    parser.add_argument("--database-url", required=True, help="scratch database to sample against")
    parser.add_argument("--create-schema", action="store_true", help="create tables before sampling")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    async def _run() -> None:
        engine = create_async_engine(args.database_url)
        try:
            await generate(engine, Path(args.output), create_schema=args.create_schema)
        finally:
            await engine.dispose()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
