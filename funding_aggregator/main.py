"""
Funding Rate Aggregator - FastAPI Application

Serves the persisted funding tables and, unless disabled, runs the table
cycles in the same process.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from funding_aggregator import __version__
from funding_aggregator.api.dependencies import services
from funding_aggregator.api.routes import tables, tasks
from funding_aggregator.config import settings
from funding_aggregator.tasks.scheduler import TaskScheduler
from funding_aggregator.utils.logger import clamp_external_logger_levels, logger


API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: start the task scheduler when ``run_scheduler_with_api`` is set
    Shutdown: stop it again
    """
    logger.info("Starting Funding Rate Aggregator API...")

    scheduler = None
    if settings.run_scheduler_with_api:
        scheduler = TaskScheduler()
        await scheduler.start()
        services.set_scheduler(scheduler)
    clamp_external_logger_levels()

    logger.info(f"🚀 Funding Rate Aggregator API started on port {settings.service_port}")

    try:
        yield
    finally:
        logger.info("Shutting down Funding Rate Aggregator API...")
        if scheduler is not None:
            await scheduler.shutdown()
            services.set_scheduler(None)
        logger.info("👋 Funding Rate Aggregator API stopped")


app = FastAPI(
    title="Funding Rate Aggregator",
    description="Perpetual funding rates across centralized exchanges",
    version=__version__,
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc)
        }
    )


app.include_router(tables.router, prefix=API_PREFIX, tags=["Funding Tables"])
app.include_router(tasks.router, prefix=API_PREFIX, tags=["Background Tasks"])


@app.get("/ping")
async def ping():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    # Run with: python -m funding_aggregator.main
    uvicorn.run(
        "funding_aggregator.main:app",
        host=settings.service_host,
        port=settings.service_port,
        log_level=settings.log_level.lower()
    )
