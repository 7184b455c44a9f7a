import logging

import uvicorn
from fastapi import FastAPI

from config.settings import UVICORN_CONFIG
from server.api.rest.dependencies import shutdown_dependencies
from server.api_router import api_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Watchlist Picker", description="Personal watchlist with weighted 'pick something to watch'")

app.include_router(api_router)


@app.on_event("shutdown")
async def shutdown_event():
    """Release storage pools on shutdown."""
    await shutdown_dependencies()
    logger.info("watchlist service stopped")


if __name__ == "__main__":
    uvicorn.run("server.main:app", **UVICORN_CONFIG)
