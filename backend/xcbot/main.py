"""
FastAPI app entrypoint.

Serves the Threema Gateway callback and runs the XContest polling job in-process.
"""
import logging
import threading
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI

from xcbot import __version__
from xcbot.api.routes import threema
from xcbot.config import settings
from xcbot.core.constants import XCONTEST_JOB_ID
from xcbot.core.logging_config import configure_logging
from xcbot.db.session import init_db
from xcbot.scheduler.xcontest_job import run_xcontest_job
from xcbot.services import identity, notifier

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_json)
    # Unreachable store is fatal: let it raise
    init_db()

    # Single-flight: a tick never overlaps with the previous one; missed runs collapse into one
    _scheduler.add_job(
        run_xcontest_job,
        "interval",
        seconds=settings.xcontest_interval_seconds,
        id=XCONTEST_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler

    def startup_background():
        try:
            run_xcontest_job()
            logger.info("XContest tick on startup; next tick in %ss", settings.xcontest_interval_seconds)
        except Exception as e:
            logger.warning("XContest tick on startup failed: %s", e, exc_info=True)

    threading.Thread(target=startup_background, daemon=True).start()
    logger.info("xc-bot v%s ready on %s", __version__, settings.server_listen)
    yield
    _scheduler.shutdown(wait=False)
    identity.shutdown()
    notifier.shutdown()


app = FastAPI(title="xc-bot", version=__version__, lifespan=lifespan)

app.include_router(threema.router, tags=["threema"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
