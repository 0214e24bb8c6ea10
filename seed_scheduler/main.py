# seed_scheduler/main.py
import asyncio
import logging

import uvicorn
from fastapi import FastAPI

from .api_client import ControllerClient
from .background import SchedulerService
from .config import load_settings
from .leader import make_elector

settings = load_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("seed_scheduler")

app = FastAPI(title="Seed Scheduler")

client = ControllerClient.from_settings(settings)
service = SchedulerService.from_settings(settings, client, make_elector(settings))
_runner = None


@app.on_event("startup")
async def startup_event():
    global _runner
    _runner = asyncio.create_task(service.run())
    logger.info("Scheduler service started (strategy=%s, workers=%d)", settings.strategy.value, settings.workers)


@app.on_event("shutdown")
async def shutdown_event():
    service.stop()
    if _runner is not None:
        await _runner


@app.get("/scheduler/health")
async def health():
    return {"status": "ok"}


@app.get("/scheduler/status")
async def status():
    queue = service.queue
    return {
        "leader": service.is_leader,
        "identity": settings.leader_election.identity,
        "strategy": settings.strategy.value,
        "queued": len(queue) if queue is not None and service.is_leader else 0,
        "utilization": service.utilization.snapshot(),
    }


if __name__ == "__main__":
    uvicorn.run("seed_scheduler.main:app", host="0.0.0.0", port=9000, log_level="info")
