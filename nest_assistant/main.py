import asyncio
import os

from fastapi import FastAPI

from nest_assistant import __version__
from nest_assistant.config import settings
from nest_assistant.logging_config import get_logger, setup_logging
from nest_assistant.routers import webhook
from nest_assistant.services.router_service import utc_now

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Nest Assistant",
    description="Message router between WhatsApp and the Nest answering model",
    version=__version__,
)

app.include_router(webhook.router)

sweeper_logger = get_logger("dedup_sweeper")
_dedup_sweeper_task: asyncio.Task | None = None


def _is_dedup_sweeper_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.dedup_sweeper_enabled


async def _dedup_sweeper_loop() -> None:
    interval_seconds = max(settings.dedup_sweep_interval_seconds, 0.1)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            store = webhook.get_message_router().store
            purged = store.purge_expired(utc_now())
            if purged:
                sweeper_logger.info("Dedup entries expired", extra={"context": {"purged": purged}})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            sweeper_logger.error(
                "Dedup sweeper loop failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def start_router() -> None:
    global _dedup_sweeper_task
    message_router = webhook.get_message_router()
    logger.info(
        "Nest Assistant started",
        extra={"context": {"watermark": message_router.watermark.isoformat()}},
    )
    if not _is_dedup_sweeper_enabled():
        return
    if _dedup_sweeper_task is None or _dedup_sweeper_task.done():
        _dedup_sweeper_task = asyncio.create_task(_dedup_sweeper_loop())
        sweeper_logger.info("Dedup sweeper started")


@app.on_event("shutdown")
async def stop_dedup_sweeper() -> None:
    global _dedup_sweeper_task
    if _dedup_sweeper_task is None:
        return
    _dedup_sweeper_task.cancel()
    try:
        await _dedup_sweeper_task
    except asyncio.CancelledError:
        pass
    _dedup_sweeper_task = None


@app.get("/health")
async def health():
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))
