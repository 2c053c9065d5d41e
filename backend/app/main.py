import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
from app.api.memories import router as memories_router
from app.core.config import settings
from app.core.rate_limit import limiter
from app.jobs.workers import run_daily_memories_job, run_memories_cleanup_job

logger = logging.getLogger(__name__)

app = FastAPI(title="Memories", version="1.0.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
scheduler = AsyncIOScheduler()


def _allowed_origins() -> list[str]:
    origins = [settings.FRONTEND_URL.rstrip("/")]
    if settings.FRONTEND_URLS:
        extra = [item.strip().rstrip("/") for item in settings.FRONTEND_URLS.split(",") if item.strip()]
        origins.extend(extra)
    return list(dict.fromkeys(origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(memories_router)


@app.on_event("startup")
async def start_scheduler() -> None:
    scheduler.add_job(
        run_daily_memories_job,
        "cron",
        hour=settings.MEMORIES_JOB_HOUR,
        minute=0,
        id="daily_memories_job",
        replace_existing=True,
    )
    scheduler.add_job(
        run_memories_cleanup_job,
        "cron",
        hour=settings.MEMORY_CLEANUP_HOUR,
        minute=settings.MEMORY_CLEANUP_MINUTE,
        id="memories_cleanup_job",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Memories schedulers started")


@app.on_event("shutdown")
async def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/health")
async def health():
    return {"status": "ok"}
