from contextlib import asynccontextmanager
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from dinner_planner.config import get_api_key, get_host, get_log_level, get_model, get_port
from dinner_planner.logging import configure_logging, get_logger
from app.routers import planner

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("startup: model=%s api_key_set=%s", get_model(), bool(get_api_key()))
    yield


app = FastAPI(title="Weekly Dinner Planner", lifespan=lifespan)

app.mount("/static", StaticFiles(directory=Path(__file__).parent / "static"), name="static")

app.include_router(planner.router)


def run() -> None:
    """Entry point for the `dinner-planner` command."""
    import uvicorn

    uvicorn.run(app, host=get_host(), port=get_port(), log_level=get_log_level().lower())
