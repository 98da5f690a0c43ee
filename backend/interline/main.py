import logging
from contextlib import asynccontextmanager
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from interline.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "interline.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from interline.routers import search
from interline.services.cache_service import cache_service
from interline.services.cache_warmup import warm_popular_routes
from interline.services.exchange_rate_client import exchange_rate_client
from interline.services.search_orchestrator import search_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers = [p.name for p in search_orchestrator.providers if p.api_key]
    logger.info(f"Interline search starting, providers configured: {providers or 'none'}")

    # Startup: background scheduler
    scheduler = None
    if settings.scheduler_enabled:
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger

            scheduler = AsyncIOScheduler()

            async def _run_cache_warmup():
                try:
                    await warm_popular_routes()
                except Exception as e:
                    logger.error(f"Cache warm-up failed: {e}")

            scheduler.add_job(
                _run_cache_warmup,
                IntervalTrigger(hours=settings.warmup_interval_hours),
                id="cache_warmup",
                next_run_time=datetime.now(),
            )
            scheduler.start()
            logger.info("Background scheduler started")
        except Exception as e:
            logger.error(f"Scheduler failed to start: {e}")

    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    for provider in search_orchestrator.providers:
        try:
            await provider.close()
        except Exception as e:
            logger.warning(f"Failed to close provider {provider.name}: {e}")
    await exchange_rate_client.close()
    await cache_service.close()
    logger.info("Clients closed")


app = FastAPI(
    title="Interline",
    description="Multi-provider flight search with virtual interlining",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search.router, prefix="/api/search", tags=["search"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "interline"}
