"""
Worker entrypoint for scheduled jobs and maintenance commands.

Usage: python -m app.worker <command>
    collect             Run one collection cycle over all active employers
    init-db             Create missing tables
    seed-departments    Insert the default department taxonomy
    backfill-locations  Build location rows for jobs that have none
"""
import asyncio
import logging
import sys

from app import database
from app.exceptions import ConfigurationError
from app.services.department_classifier import DepartmentCache, seed_departments
from app.services.job_collector import collect_all_jobs
from app.services.job_store import backfill_job_locations

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

COMMANDS = ("collect", "init-db", "seed-departments", "backfill-locations")


async def worker_main(command: str) -> int:
    try:
        if command == "collect":
            summary = await collect_all_jobs(cache=DepartmentCache())
            for failed in summary.failed:
                logger.warning(f"{failed.employer_name}: {failed.status} {failed.error or ''}")
            return 1 if summary.failed else 0

        if command == "init-db":
            await database.init_db()
            logger.info("Database tables created")
            return 0

        async with database.AsyncSessionLocal() as db:
            if command == "seed-departments":
                created = await seed_departments(db)
                logger.info(f"Seeded {created} departments")
            else:
                processed = await backfill_job_locations(db)
                logger.info(f"Backfilled locations for {processed} jobs")
        return 0
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    finally:
        await database.engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        print(f"Usage: python -m app.worker <{'|'.join(COMMANDS)}>")
        exit(1)
    exit(asyncio.run(worker_main(sys.argv[1])))
