"""API client for the Deku Task Tracker."""

from typing import Any, Dict, List, Optional

import httpx

from deku_tracker.models.task import Task
from deku_tracker.utils.exceptions import (
    InvalidOperationError,
    NetworkError,
    TaskNotFoundError,
    ValidationError,
)
from deku_tracker.utils.logger import get_logger

logger = get_logger(__name__)


class TrackerClient:
    """HTTP client for the tracker API; raises the tracker's own exceptions."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TrackerClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an HTTP request and translate error statuses."""
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            raise NetworkError(f"{self.base_url}{path}", str(e), original_error=e)

        if response.is_success:
            return response

        detail = self._error_detail(response)
        message = detail.get("message") or response.text[:200]
        details = detail.get("details") or {}

        if response.status_code == 404:
            raise TaskNotFoundError(details.get("id", ""), role=details.get("role", "task"))
        if response.status_code == 409:
            raise InvalidOperationError(details.get("operation", method), message, entity_id=details.get("id"))
        if response.status_code in (400, 422):
            raise ValidationError(message, error_code=detail.get("error_code"), details=details)

        raise NetworkError(f"{self.base_url}{path}", message, status_code=response.status_code)

    @staticmethod
    def _error_detail(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        detail = body.get("detail") if isinstance(body, dict) else None
        if isinstance(detail, dict):
            return detail
        if isinstance(detail, str):
            return {"message": detail}
        return {}

    # ------------------------------------------------------------------
    # Task operations
    # ------------------------------------------------------------------

    def list_tasks(self, order: Optional[str] = None) -> List[Task]:
        params = {"order": order} if order else None
        response = self.request("GET", "/api/tasks", params=params)
        return [Task.from_dict(item) for item in response.json()]

    def get_schedule(self) -> List[Dict[str, Any]]:
        """Tasks with overdue/dueText evaluated by the server."""
        return self.request("GET", "/api/tasks/schedule").json()

    def get_task(self, entity_id: str) -> Task:
        data = self.request("GET", f"/api/tasks/{entity_id}").json()
        return Task.from_dict(data, parent_id=data.get("parentId"))

    def add_task(self, text: str, cycle: Optional[str] = None) -> Task:
        response = self.request("POST", "/api/tasks", json={"text": text, "cycle": cycle})
        return Task.from_dict(response.json())

    def add_subtask(self, parent_id: str, text: str, cycle: Optional[str] = None) -> Task:
        response = self.request(
            "POST", f"/api/tasks/{parent_id}/subtask", json={"text": text, "cycle": cycle}
        )
        return Task.from_dict(response.json(), parent_id=parent_id)

    def set_completion(self, entity_id: str, completed: bool) -> None:
        self.request("PATCH", f"/api/tasks/{entity_id}/status", json={"complete": completed})

    def delete(self, entity_id: str) -> None:
        self.request("DELETE", f"/api/tasks/{entity_id}")
        logger.debug(f"Deleted {entity_id} via API")
