"""
Scheduler Client for the external Cronicle scheduler service.

Recurring report jobs do not run their own timer. Each recurring job is
registered as a scheduler event that calls back into the owning service on
its cron expression. This module wraps the scheduler's REST API: creating,
updating and looking up events, plus an upsert that combines the three.

Architecture:
    The SchedulerClient forwards the caller's Bearer token (JWT) and talks to
    the scheduler through a single REST endpoint, selecting the operation by
    HTTP method. All requests are logged on failure.

Example:
    ```python
    from common.scheduler_client import create_scheduler_client

    client = create_scheduler_client("https://scheduler.example.com/api")

    client.upsert_schedule(
        auth_token="jwt_token",
        job_name="report_6f1c...",
        app_name="report_delivery",
        url="https://api.example.com/api/v1/scheduled-reports/6f1c.../trigger",
        method="POST",
        cron_exp="0 9 * * 1",  # Mondays at 9 AM
    )
    ```

Error Handling:
    All methods raise requests.exceptions.RequestException on failure, which
    should be caught and handled appropriately by calling code.
"""

from typing import Any

from loguru import logger
import requests


class SchedulerClient:
    """
    Client for the Cronicle scheduler REST API.

    Note:
        Each call is a blocking HTTP request with a 30 second timeout. Async
        callers should run it in a worker thread.
    """

    def __init__(self, scheduler_url: str) -> None:
        """
        Initialize the scheduler client.

        Args:
            scheduler_url: Base URL for the scheduler API endpoint, usually
                BaseServiceSettings.SCHEDULER_API_URL.

        Raises:
            ValueError: If scheduler_url is empty or None.
        """
        if not scheduler_url:
            raise ValueError("scheduler_url cannot be empty")
        self.scheduler_url = scheduler_url.rstrip("/")

    def _make_request(
        self,
        method: str,
        auth_token: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send one authenticated request to the scheduler API.

        Raises:
            requests.exceptions.HTTPError: Non-2xx response.
            requests.exceptions.RequestException: Connection errors and timeouts.
        """
        headers = {
            "Authorization": f"Bearer {auth_token}",
            "Content-Type": "application/json",
        }

        response = requests.request(
            method=method,
            url=self.scheduler_url,
            headers=headers,
            params=params,
            json=json_data,
            timeout=30,
        )

        try:
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as http_err:
            logger.error(f"HTTP error from scheduler API: {http_err}")
            logger.error(f"Response status code: {response.status_code}")
            raise
        except requests.exceptions.RequestException as req_err:
            logger.error(f"Request exception: {req_err}")
            raise

    @staticmethod
    def _event_config(
        job_name: str,
        app_name: str,
        url: str,
        method: str,
        cron_exp: str,
        status: str,
        headers: dict[str, str] | None,
        body: dict[str, Any] | None,
    ) -> dict[str, Any]:
        return {
            "job_name": job_name,
            "app_name": app_name,
            "url": url,
            "method": method.upper(),
            "cron_exp": cron_exp,
            "status": status,
            "header": headers or {},
            "body": body or {},
        }

    def create_schedule(
        self,
        auth_token: str,
        job_name: str,
        app_name: str,
        url: str,
        method: str,
        cron_exp: str,
        status: str = "active",
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Register a new scheduler event.

        Args:
            auth_token: JWT from the user session.
            job_name: Unique event name, e.g. "report_<job id>".
            app_name: Owning application, used for grouping.
            url: Callback URL invoked on every tick.
            method: "GET" or "POST".
            cron_exp: Five-field cron expression, e.g. "0 8 * * 1".
            status: "active" or "inactive". Only active events fire.
            headers: Extra headers sent with the callback.
            body: JSON body sent with POST callbacks.

        Returns:
            Scheduler response, e.g. {"message": ..., "event_id": {"code": 0, "id": ...}}
        """
        job_config = self._event_config(job_name, app_name, url, method, cron_exp, status, headers, body)
        return self._make_request("POST", auth_token, json_data=job_config)

    def update_schedule(
        self,
        auth_token: str,
        job_name: str,
        app_name: str,
        url: str,
        method: str,
        cron_exp: str,
        status: str = "active",
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Replace the configuration of the event identified by job_name and app_name."""
        params = {"job_name": job_name, "app_name": app_name}
        job_config = self._event_config(job_name, app_name, url, method, cron_exp, status, headers, body)
        return self._make_request("PUT", auth_token, params=params, json_data=job_config)

    def get_schedules(
        self,
        auth_token: str,
        job_name: str | None = None,
        app_name: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """
        Look up scheduler events.

        Returns:
            Scheduler response with the matching events under "scheduler_details".
        """
        params = {}
        if job_name:
            params["job_name"] = job_name
        if app_name:
            params["app_name"] = app_name
        if limit is not None:
            params["limit"] = str(limit)
        return self._make_request("GET", auth_token, params=params)

    def upsert_schedule(
        self,
        auth_token: str,
        job_name: str,
        app_name: str,
        url: str,
        method: str,
        cron_exp: str,
        status: str = "active",
        headers: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """
        Create the event, or update it when one with job_name already exists.

        Returns:
            ("created" | "updated", scheduler response)
        """
        try:
            existing = self.get_schedules(auth_token, job_name=job_name, app_name=app_name, limit=1)
            exists = bool(existing.get("scheduler_details"))
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not fetch existing schedule {job_name}: {e}")
            exists = False

        if exists:
            response = self.update_schedule(
                auth_token, job_name, app_name, url, method, cron_exp, status, headers, body
            )
            return "updated", response
        response = self.create_schedule(
            auth_token, job_name, app_name, url, method, cron_exp, status, headers, body
        )
        return "created", response


def create_scheduler_client(scheduler_url: str) -> SchedulerClient:
    """Create a SchedulerClient for the given API URL."""
    return SchedulerClient(scheduler_url)
