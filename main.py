import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config, CONFIG_DIR
from routes import practice, drills, modules  # Import routers
from utils.errors import PracticeError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def configure_logging(config=None) -> None:
    """Configure root logging once from [logging].level."""
    if config is None:
        config = load_config()
    level_name = str(config.get("logging", {}).get("level", "INFO")).upper()
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: init config, logging and DB
    configure_logging(load_config())  # Ensures config exists
    init_db()
    yield

app = FastAPI(
    title="MathDrill",
    description="Adaptive practice and drill engine for speed maths",
    lifespan=lifespan,
)

# Include routers
app.include_router(practice.router, prefix="/practice", tags=["practice"])
app.include_router(drills.router, prefix="/drills", tags=["drills"])
app.include_router(modules.router, prefix="/modules", tags=["modules"])

@app.exception_handler(PracticeError)
async def practice_error_handler(request: Request, exc: PracticeError):
    logging.getLogger(__name__).info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="MathDrill App")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()
    if args.init:
        configure_logging(load_config())  # Ensures config is copied if missing
        init_db()
        print(f"DB initialized and config copied to {CONFIG_DIR}")
        sys.exit(0)
    # Run server
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level="info")
