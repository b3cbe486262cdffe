"""
Inspector service: a thin HTTP adapter around InspectorRuntime.

The task queue POSTs one Task per request to /tasks. A 2xx answer means the
task is done and its messages are published; anything else means the queue
should redeliver it.

Run an inspector with:
    python -m inspector.hostname
"""

import logging
import sys

import uvicorn
from api.error_handlers import register_error_handlers
from config import settings
from fastapi import APIRouter, Depends, FastAPI, Request
from inspector.base import Inspector
from inspector.runtime import InspectorRuntime
from messaging.task_queue import HTTPTaskQueue
from models import Task, TaskResult

logger = logging.getLogger(__name__)

router = APIRouter()


def get_runtime(request: Request) -> InspectorRuntime:
    return request.app.state.runtime


@router.post("/tasks", response_model=TaskResult)
def handle_task(task: Task, runtime: InspectorRuntime = Depends(get_runtime)):
    """Runs the inspector on one task. Returns what it produced (empty if it declined)."""
    result = runtime.handle_task(task)
    return result if result is not None else TaskResult()


@router.get("/health")
def health():
    return {"status": "ok"}


def create_inspector_app(runtime: InspectorRuntime) -> FastAPI:
    app = FastAPI(title=f"Inspector: {runtime.author}", version="1.0.0")
    app.state.runtime = runtime
    app.include_router(router)
    register_error_handlers(app)
    return app


def run(inspector: Inspector, port: int = 8001) -> None:
    """Start an inspector service configured from the environment."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
    )
    runtime = InspectorRuntime(
        inspector,
        author=settings.inspector_author,
        queue=HTTPTaskQueue(timeout=settings.queue_timeout_seconds),
        content_queue_url=settings.content_queue_url,
        attribute_queue_url=settings.attribute_queue_url,
    )
    logger.info("Starting inspector %s on port %d", runtime.author, port)
    uvicorn.run(create_inspector_app(runtime), host="0.0.0.0", port=port)
