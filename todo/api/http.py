"""HTTP API (FastAPI) over the TaskService."""
from todo.domain.errors import (
    DecodeError,
    DomainError,
    EncodingError,
    LockCancelledError,
    StorageError,
    TaskAlreadyDoneError,
    TaskBlockedError,
    TaskNotFoundError,
    TaskValidationError,
)
from todo.domain.task import TaskId
from todo.domain.query import TaskQuery
from todo.domain.collection import parse_date
from todo.services.task_service import AddTaskInput, TaskService
from todo.services.alerts import AlertScanner
from todo.adapters.system.notifiers import NoOpNotifier
from todo.api.schemas import AlertOut, MarkDoneOut, StatsOut, TaskCreate, TaskOut, TaskUpdate
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[DomainError], int] = {
    TaskValidationError: status.HTTP_400_BAD_REQUEST,
    TaskNotFoundError: status.HTTP_404_NOT_FOUND,
    TaskAlreadyDoneError: status.HTTP_409_CONFLICT,
    TaskBlockedError: status.HTTP_409_CONFLICT,
    LockCancelledError: status.HTTP_503_SERVICE_UNAVAILABLE,
    DecodeError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    EncodingError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

api_router = APIRouter(tags=["tasks"])


def status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_service(request: Request) -> TaskService:
    return request.app.state.service


def get_scanner(request: Request) -> AlertScanner:
    return request.app.state.scanner


@api_router.get("/tasks", response_model=list[TaskOut])
def list_tasks(
    show_all: bool = Query(False, alias="all"),
    grep: Optional[str] = None,
    tags: Optional[str] = None,
    sort: Optional[str] = None,
    before: Optional[str] = None,
    after: Optional[str] = None,
    priority: Optional[int] = None,
    ready: bool = False,
    service: TaskService = Depends(get_service),
):
    query = TaskQuery.from_params(
        show_all=show_all, grep=grep, tags=tags, sort=sort,
        before=before, after=after, priority=priority, only_ready=ready,
    )
    return [TaskOut.model_validate(t) for t in service.query_tasks(query)]


@api_router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreate, service: TaskService = Depends(get_service)):
    created = service.add_task(AddTaskInput(
        title=payload.title,
        description=payload.description,
        due=parse_date(payload.due, "due") if payload.due else None,
        priority=payload.priority,
        tags=tuple(payload.tags),
        repeat=payload.repeat,
        depends_on=tuple(payload.depends_on),
    ))
    return TaskOut.model_validate(created)


@api_router.get("/tasks/{task_id}", response_model=TaskOut)
def get_task(task_id: int, service: TaskService = Depends(get_service)):
    return TaskOut.model_validate(service.get_task(TaskId(task_id)))


@api_router.put("/tasks/{task_id}", response_model=TaskOut)
def update_task(task_id: int, payload: TaskUpdate, service: TaskService = Depends(get_service)):
    return TaskOut.model_validate(service.update_task(TaskId(task_id), payload.to_input()))


@api_router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, service: TaskService = Depends(get_service)):
    service.delete_task_by_id(TaskId(task_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_router.post("/tasks/{task_id}/done", response_model=MarkDoneOut)
def mark_done(task_id: int, service: TaskService = Depends(get_service)):
    return MarkDoneOut.from_result(service.mark_done_by_id(TaskId(task_id)))


@api_router.get("/stats", response_model=StatsOut)
def stats(service: TaskService = Depends(get_service)):
    return StatsOut.from_stats(service.stats())


@api_router.get("/alerts", response_model=list[AlertOut])
def alerts(
    ahead: float = Query(24.0, gt=0, description="lookahead window in hours"),
    service: TaskService = Depends(get_service),
    scanner: AlertScanner = Depends(get_scanner),
):
    found = scanner.scan(service.list_all(), service.clock.now(), timedelta(hours=ahead))
    return [AlertOut.from_alert(a) for a in found]


@api_router.get("/health")
def health():
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}


def create_app(service: TaskService, scanner: AlertScanner | None = None) -> FastAPI:
    app = FastAPI(title="todo", version="1.0")
    app.state.service = service
    app.state.scanner = scanner or AlertScanner(NoOpNotifier(), service.clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        code = status_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, code, exc)
        return JSONResponse(status_code=code, content={"error": type(exc).__name__, "detail": str(exc)})

    app.include_router(api_router)
    return app
