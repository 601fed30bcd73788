#!/usr/bin/env python
"""FastAPI server for the Reelsmith web interface."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_studio
from api.routers import audio, core, preview, render, scenes, script
from services.media_engine import MediaEngineError
from utils.config import load_config, setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    studio = get_studio()
    try:
        await studio.load(engine=False)
    except Exception as e:
        logger.warning(f"Could not load audio libraries: {e}")
    try:
        await studio.pipeline.engine.load()
    except MediaEngineError as e:
        logger.warning(f"Media engine unavailable, rendering disabled: {e}")
    yield
    await studio.close()


app = FastAPI(title="Reelsmith API", version="1.0.0", lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],  # Vite default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(script.router)
app.include_router(scenes.router)
app.include_router(audio.router)
app.include_router(preview.router)
app.include_router(render.router)


def run(host: str = "0.0.0.0", port: int = 8000) -> None:
    import uvicorn

    config = load_config()
    setup_logging(config["log_level"])
    uvicorn.run(app, host=host, port=port, log_level=config["log_level"].lower())


if __name__ == "__main__":
    run()
