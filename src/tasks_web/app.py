from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from tasks_web.config.settings import load_settings
from tasks_web.services.task_service import TaskNotFoundError, TaskService, TaskServiceError
from tasks_web.state.app_state import AppState


class TaskPayload(BaseModel):
    title: str
    description: str = ""


class TaskRenamePayload(BaseModel):
    title: str


class TaskCompletionPayload(BaseModel):
    completed: bool


def _task_service(request: Request) -> TaskService:
    state: AppState = request.app.state.tasks
    return TaskService(state.database())


def _http_error(exc: TaskServiceError) -> HTTPException:
    if isinstance(exc, TaskNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def create_app(state: Optional[AppState] = None) -> FastAPI:
    state = state or AppState(settings=load_settings())
    app = FastAPI(title="Tasks Web API", version="1.0.0")
    app.state.tasks = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(state.settings.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "database": state.database().base_url}

    @app.get("/tasks")
    def list_tasks(include_completed: bool = True, tasks: TaskService = Depends(_task_service)) -> List[Dict]:
        return tasks.list_tasks(include_completed=include_completed)

    @app.post("/tasks", status_code=status.HTTP_201_CREATED)
    def create_task(payload: TaskPayload, tasks: TaskService = Depends(_task_service)) -> Dict[str, str]:
        try:
            task_id = tasks.create_task(**payload.model_dump())
            return {"id": task_id}
        except TaskServiceError as exc:
            raise _http_error(exc) from exc

    @app.get("/tasks/{task_id}")
    def get_task(task_id: str, tasks: TaskService = Depends(_task_service)) -> Dict:
        try:
            return tasks.get_task(task_id)
        except TaskServiceError as exc:
            raise _http_error(exc) from exc

    @app.patch("/tasks/{task_id}")
    def rename_task(
        task_id: str,
        payload: TaskRenamePayload,
        tasks: TaskService = Depends(_task_service),
    ) -> Dict[str, str]:
        try:
            tasks.rename_task(task_id, payload.title)
            return {"status": "updated"}
        except TaskServiceError as exc:
            raise _http_error(exc) from exc

    @app.patch("/tasks/{task_id}/completed")
    def set_task_completed(
        task_id: str,
        payload: TaskCompletionPayload,
        tasks: TaskService = Depends(_task_service),
    ) -> Dict[str, str]:
        try:
            tasks.set_task_completed(task_id, payload.completed)
            return {"status": "updated"}
        except TaskServiceError as exc:
            raise _http_error(exc) from exc

    @app.delete("/tasks/{task_id}")
    def delete_task(task_id: str, tasks: TaskService = Depends(_task_service)) -> Dict[str, str]:
        try:
            tasks.delete_task(task_id)
            return {"status": "deleted"}
        except TaskServiceError as exc:
            raise _http_error(exc) from exc

    return app
