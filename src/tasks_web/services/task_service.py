from datetime import datetime, timezone
from typing import Dict, List

from tasks_web.services.database_client import DatabaseClient, normalize_path


TASKS_PATH = "tasks"


class TaskServiceError(Exception):
    pass


class TaskNotFoundError(TaskServiceError):
    pass


class TaskService:
    def __init__(self, db: DatabaseClient) -> None:
        self.db = db

    def _task_path(self, task_id: str) -> str:
        if not task_id or "/" in task_id:
            raise TaskServiceError(f"Invalid task id: {task_id!r}")
        try:
            return normalize_path(f"{TASKS_PATH}/{task_id}")
        except ValueError as exc:
            raise TaskServiceError(f"Invalid task id: {task_id!r}") from exc

    def list_tasks(self, include_completed: bool = True) -> List[Dict]:
        nodes = self.db.get(TASKS_PATH) or {}
        results: List[Dict] = []
        for task_id, data in nodes.items():
            if not isinstance(data, dict):
                continue
            if not include_completed and data.get("completed"):
                continue
            results.append({**data, "id": task_id})
        results.sort(key=lambda row: row.get("created_at") or "")
        return results

    def get_task(self, task_id: str) -> Dict:
        data = self.db.get(self._task_path(task_id))
        if not isinstance(data, dict):
            raise TaskNotFoundError(f"Task {task_id} not found.")
        return {**data, "id": task_id}

    def create_task(self, *, title: str, description: str = "") -> str:
        title = title.strip()
        if not title:
            raise TaskServiceError("Task title must not be blank.")
        return self.db.create(
            TASKS_PATH,
            {
                "title": title,
                "description": description,
                "completed": False,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
        )

    def rename_task(self, task_id: str, title: str) -> None:
        title = title.strip()
        if not title:
            raise TaskServiceError("Task title must not be blank.")
        self.get_task(task_id)
        self.db.update(self._task_path(task_id), {"title": title})

    def set_task_completed(self, task_id: str, completed: bool) -> None:
        self.get_task(task_id)
        self.db.update(self._task_path(task_id), {"completed": completed})

    def delete_task(self, task_id: str) -> None:
        self.get_task(task_id)
        self.db.delete(self._task_path(task_id))
