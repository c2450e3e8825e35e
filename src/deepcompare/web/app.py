"""FastAPI dashboard API for deepcompare."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..core.constants import MODEL_CATALOG
from .routes import compare, history, metrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    coordinator = getattr(app.state, "coordinator", None)
    if coordinator is not None:
        await coordinator.aclose()


app = FastAPI(title="deepcompare", docs_url=None, redoc_url=None, lifespan=lifespan)

# Include route modules
app.include_router(compare.router)
app.include_router(metrics.router)
app.include_router(history.router)


@app.get("/")
async def index():
    """Available models and entry points."""
    return {
        "name": "deepcompare",
        "models": [{"id": model_id, "name": name} for model_id, name in MODEL_CATALOG],
        "endpoints": {
            "start": "/compare/start",
            "stop": "/compare/stop",
            "reset": "/compare/reset",
            "state": "/compare/state",
            "progress": "/compare/progress",
            "metrics": "/metrics",
            "history": "/history",
        },
    }
