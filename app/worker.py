"""
ARQ worker: background task definitions.
Run with: python -m app.worker
"""
import logging
from datetime import datetime, timezone

from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.models.logs import PipelineRun
from app.services.soil.cache import DatabaseSoilCache

logger = logging.getLogger(__name__)


# ── Job functions ─────────────────────────────────────────────────────────────


async def purge_expired_soil_cache(ctx: dict, session_factory=None) -> int:
    """Delete expired soil summaries from the soil_cache table. Runs daily at 03:15."""
    logger.info("purge_expired_soil_cache: starting")
    started_at = datetime.now(timezone.utc)
    session_factory = session_factory or AsyncSessionLocal

    async with session_factory() as db:
        pipeline = PipelineRun(
            pipeline_name="soil_cache_purge",
            status="running",
            started_at=started_at,
        )
        db.add(pipeline)
        await db.commit()
        await db.refresh(pipeline)

        try:
            removed = await DatabaseSoilCache(db).purge_expired()

            finished_at = datetime.now(timezone.utc)
            pipeline.status = "success"
            pipeline.finished_at = finished_at
            pipeline.duration_ms = int((finished_at - started_at).total_seconds() * 1000)
            pipeline.records_processed = removed
            await db.commit()

        except Exception as exc:
            logger.exception("purge_expired_soil_cache: unexpected error")
            await db.rollback()
            finished_at = datetime.now(timezone.utc)
            pipeline.status = "failed"
            pipeline.finished_at = finished_at
            pipeline.duration_ms = int((finished_at - started_at).total_seconds() * 1000)
            pipeline.error_message = str(exc)
            await db.commit()
            raise

    logger.info("purge_expired_soil_cache: complete, %d expired entries removed", removed)
    return removed


# ── Worker settings ───────────────────────────────────────────────────────────


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [purge_expired_soil_cache]
    cron_jobs = [
        cron(purge_expired_soil_cache, hour=3, minute=15),  # Daily 3:15am UTC
    ]
    on_startup = None
    on_shutdown = None


if __name__ == "__main__":
    from arq import run_worker

    run_worker(WorkerSettings)
