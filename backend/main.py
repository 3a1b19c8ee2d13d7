from contextlib import asynccontextmanager
from typing import Optional
import logging
import uuid

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import database
import lifecycle
import renegotiation
from errors import LifecycleError, RateLimited
from logging_setup import setup_logging
from models import (
    AttentionList,
    QuickRescheduleRequest,
    RenegotiationOptions,
    RenegotiationRequest,
    RenegotiationResult,
    Task,
    TaskCreate,
    TaskUpdate,
    TransitionResult,
)
from rate_limiter import RateLimiter
from supportive_copy import ERROR_MESSAGES

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    setup_logging(config.LOG_LEVEL)
    database.init_db()
    logger.info("habitloop backend ready db=%s", database.DATABASE_PATH)
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

tasks_rate_limiter = RateLimiter(config.TASKS_RATE_WINDOW_SECONDS, config.TASKS_RATE_LIMIT)
renegotiation_rate_limiter = RateLimiter(
    config.RENEGOTIATION_RATE_WINDOW_SECONDS, config.RENEGOTIATION_RATE_LIMIT
)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(_request, exc: LifecycleError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


def get_caller_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity as resolved by the upstream auth layer; trusted as given."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=ERROR_MESSAGES["caller_required"])
    return x_user_id.strip()


def get_tasks_rate_limiter() -> RateLimiter:
    return tasks_rate_limiter


def get_renegotiation_rate_limiter() -> RateLimiter:
    return renegotiation_rate_limiter


def check_rate_limit(limiter: RateLimiter, caller_id: str) -> None:
    if limiter.is_limited(caller_id):
        logger.info("Rate limited caller=%s", caller_id)
        raise RateLimited(ERROR_MESSAGES["rate_limited"])


@app.get("/tasks")
def get_tasks(caller_id: str = Depends(get_caller_id)) -> list[Task]:
    return database.get_tasks_db(caller_id)


@app.post("/tasks", status_code=201)
def create_task(
    task_data: TaskCreate,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_tasks_rate_limiter),
) -> Task:
    check_rate_limit(limiter, caller_id)
    return database.create_task_db(
        str(uuid.uuid4()),
        caller_id,
        task_data.title,
        category=task_data.category,
        priority=task_data.priority,
        due_date=task_data.due_date,
        due_time=task_data.due_time,
        is_recurring=task_data.is_recurring,
        recurrence_rule=task_data.recurrence_rule,
    )


@app.post("/tasks/{task_id}/complete")
def complete_task(
    task_id: str,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_tasks_rate_limiter),
) -> TransitionResult:
    check_rate_limit(limiter, caller_id)
    return lifecycle.complete_task(caller_id, task_id)


@app.patch("/tasks/{task_id}")
def update_task(
    task_id: str,
    task_data: TaskUpdate,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_tasks_rate_limiter),
) -> TransitionResult:
    check_rate_limit(limiter, caller_id)
    return lifecycle.transition_task(caller_id, task_id, task_data.status)


@app.get("/renegotiations")
def get_renegotiations(
    patterns: bool = False,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_renegotiation_rate_limiter),
) -> AttentionList:
    """Overdue tasks that could use attention, most days past due first.
    ?patterns=true also lists the pattern analysis of each task that shows one.
    """
    check_rate_limit(limiter, caller_id)
    return renegotiation.tasks_needing_attention(caller_id, include_patterns=patterns)


@app.get("/renegotiations/options")
def get_renegotiation_options(
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_renegotiation_rate_limiter),
) -> RenegotiationOptions:
    """Actions and reasons to offer, with their labels."""
    check_rate_limit(limiter, caller_id)
    return renegotiation.renegotiation_options()


@app.post("/renegotiations", status_code=201)
def create_renegotiation(
    request: RenegotiationRequest,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_renegotiation_rate_limiter),
) -> RenegotiationResult:
    check_rate_limit(limiter, caller_id)
    return renegotiation.renegotiate(caller_id, request)


@app.post("/renegotiations/quick-reschedule")
def quick_reschedule(
    request: QuickRescheduleRequest,
    caller_id: str = Depends(get_caller_id),
    limiter: RateLimiter = Depends(get_renegotiation_rate_limiter),
) -> RenegotiationResult:
    check_rate_limit(limiter, caller_id)
    return renegotiation.quick_reschedule(
        caller_id, request.task_id, request.due_date, request.reason_code
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
