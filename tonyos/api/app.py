"""FastAPI web application for TonyOS."""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from tonyos.api.task_models import (
    BrainDumpRequest,
    BrainDumpResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    TaskCreateRequest,
    TaskListResponse,
    TaskResponse,
    TaskUpdateRequest,
)
from tonyos.database.database import check_connection, get_db, init_db
from tonyos.database.repository import TaskRepository
from tonyos.engine.ranking import TaskOrder, next_best_task, present_tasks
from tonyos.engine.scoring import annotate_task
from tonyos.integrations.openai_client import (
    AIError,
    AINotConfiguredError,
    AIResponseParseError,
    OpenAIClient,
)
from tonyos.models.constants import (
    BRAIN_DUMP_DEFAULT_BUCKET,
    CHAT_CONTEXT_TASK_LIMIT,
    CREATE_DEFAULT_BUCKET,
)
from tonyos.models.task_factory import create_task_base, normalize_bucket, task_from_candidate

load_dotenv()

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def _is_production() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


def _error_detail(action: str, error: Exception) -> str:
    """Build a 500 detail; the error message is hidden in production."""
    if _is_production():
        return f"Failed to {action}"
    return f"Failed to {action}: {str(error)}"


def _cors_origins() -> list:
    origins = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborators once at process start."""
    init_db()
    app.state.ai_client = OpenAIClient()
    app.state.started_at = time.monotonic()
    logger.info(f"TonyOS API {API_VERSION} started")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="TonyOS API",
    description="Personal task tracking with scoring, brain-dump parsing and a prioritization assistant",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def get_task_repository(db: Session = Depends(get_db)) -> TaskRepository:
    """Task repository bound to the request's database session."""
    return TaskRepository(db)


def get_ai_client(request: Request) -> OpenAIClient:
    """OpenAI client built at startup."""
    return request.app.state.ai_client


def _ai_http_error(error: AIError) -> HTTPException:
    """Map a language-model failure to the HTTP error returned to the caller."""
    if isinstance(error, AINotConfiguredError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    if isinstance(error, AIResponseParseError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": str(error), "raw": error.raw},
        )
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))


@app.get("/health", response_model=HealthResponse)
def health(request: Request, db: Session = Depends(get_db)):
    """Health check endpoint (verifies the database connection)."""
    try:
        check_connection(db)
    except Exception as e:
        logger.error(f"Health check failed: {type(e).__name__}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")

    started_at = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        uptime_seconds=round(uptime, 3),
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    order: TaskOrder = Query(TaskOrder.DEFAULT, description="default (bucket/priority/due date) or score"),
    repository: TaskRepository = Depends(get_task_repository),
):
    """List all tasks, annotated with scores and ranked."""
    try:
        tasks = present_tasks(repository.get_all(), order=order)
    except Exception as e:
        logger.error(f"Failed to list tasks: {type(e).__name__}: {str(e)}")
        raise HTTPException(status_code=500, detail=_error_detail("list tasks", e))
    return TaskListResponse(tasks=tasks, count=len(tasks))


@app.get("/tasks/next", response_model=TaskResponse)
def get_next_task(repository: TaskRepository = Depends(get_task_repository)):
    """The single open task with the highest composite score."""
    task = next_best_task(repository.get_all())
    if task is None:
        raise HTTPException(status_code=404, detail="No open tasks")
    return TaskResponse(task=task)


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, repository: TaskRepository = Depends(get_task_repository)):
    """Get a single task."""
    task = repository.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse(task=annotate_task(task))


@app.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(request: TaskCreateRequest, repository: TaskRepository = Depends(get_task_repository)):
    """Create a new task (status open, bucket defaults to later, priority to 3)."""
    task = create_task_base(
        title=request.title,
        description=request.description,
        area=request.area,
        bucket=request.bucket,
        priority=request.priority,
        due_date=request.due_date,
        estimated_minutes=request.estimated_minutes,
        leverage_score=request.leverage_score,
        urgency_score=request.urgency_score,
        risk_score=request.risk_score,
        friction_score=request.friction_score,
        default_bucket=CREATE_DEFAULT_BUCKET,
    )
    try:
        created = repository.create(task)
    except Exception as e:
        raise HTTPException(status_code=500, detail=_error_detail("create task", e))
    return TaskResponse(task=annotate_task(created))


@app.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    repository: TaskRepository = Depends(get_task_repository),
):
    """Update any subset of a task's fields."""
    try:
        task = repository.update_fields(task_id, request.changed_fields())
    except Exception as e:
        raise HTTPException(status_code=500, detail=_error_detail("update task", e))
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse(task=annotate_task(task))


@app.patch("/tasks/{task_id}/complete", response_model=TaskResponse)
def complete_task(task_id: str, repository: TaskRepository = Depends(get_task_repository)):
    """Mark a task as done."""
    try:
        task = repository.complete(task_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=_error_detail("complete task", e))
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse(task=annotate_task(task))


@app.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, repository: TaskRepository = Depends(get_task_repository)):
    """Delete a task."""
    try:
        deleted = repository.delete(task_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=_error_detail("delete task", e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/chat", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    repository: TaskRepository = Depends(get_task_repository),
    ai_client: OpenAIClient = Depends(get_ai_client),
):
    """Ask the prioritization assistant about the current task list."""
    if not ai_client.is_configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OPENAI_API_KEY not configured")

    recent = repository.get_recent(CHAT_CONTEXT_TASK_LIMIT)
    context = [task.model_dump(mode="json") for task in present_tasks(recent, order=TaskOrder.SCORE)]
    try:
        answer = ai_client.prioritization_advice(request.prompt, context)
    except AIError as e:
        raise _ai_http_error(e) from e
    return ChatResponse(response=answer)


@app.post("/brain-dump", response_model=BrainDumpResponse, status_code=status.HTTP_201_CREATED)
def brain_dump(
    request: BrainDumpRequest,
    repository: TaskRepository = Depends(get_task_repository),
    ai_client: OpenAIClient = Depends(get_ai_client),
):
    """Turn free text into tasks and store them in one transaction."""
    if not ai_client.is_configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OPENAI_API_KEY not configured")

    default_bucket = normalize_bucket(request.default_bucket, BRAIN_DUMP_DEFAULT_BUCKET)
    default_area = (request.default_area or "").strip() or None

    try:
        candidates = ai_client.extract_tasks(request.text, default_bucket, default_area)
    except AIError as e:
        raise _ai_http_error(e) from e

    tasks = []
    for candidate in candidates:
        task = task_from_candidate(candidate, default_bucket, default_area)
        if task is not None:
            tasks.append(task)
    if len(tasks) < len(candidates):
        logger.info(f"Brain dump skipped {len(candidates) - len(tasks)} candidates without a title")

    try:
        created = repository.create_many(tasks)
    except Exception as e:
        raise HTTPException(status_code=500, detail=_error_detail("store brain dump tasks", e))

    scored = [annotate_task(task) for task in created]
    return BrainDumpResponse(tasks=scored, count=len(scored))
