"""
Tests for scheduler client and recurring job registration.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from common.config.settings import ReportDeliveryServiceSettings
from common.scheduler_client import SchedulerClient
from services.report_delivery_service.services.trigger_registration import (
    event_name,
    register_job_trigger,
    trigger_url,
)

WEEKLY = {"kind": "recurring", "cron_expression": "0 9 * * 1", "timezone": "UTC"}


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def settings():
    return ReportDeliveryServiceSettings(
        SCHEDULER_API_URL="http://scheduler.local/api/",
        REPORT_DELIVERY_SERVICE_URL="https://reports.example.com/",
    )


class TestSchedulerClient:
    def test_empty_url_rejected(self):
        with pytest.raises(ValueError):
            SchedulerClient("")

    def test_upsert_creates_missing_event(self):
        client = SchedulerClient("http://scheduler.local/api/")
        with patch("common.scheduler_client.requests.request") as mock_request:
            mock_request.side_effect = [
                _response({"scheduler_details": []}),
                _response({"message": "created"}),
            ]

            operation, _ = client.upsert_schedule(
                "tok", "report_1", "report_delivery", "http://cb", "post", "0 9 * * 1"
            )

        assert operation == "created"
        get_call, post_call = mock_request.call_args_list
        assert get_call.kwargs["method"] == "GET"
        assert get_call.kwargs["url"] == "http://scheduler.local/api"
        assert post_call.kwargs["method"] == "POST"
        assert post_call.kwargs["headers"]["Authorization"] == "Bearer tok"
        assert post_call.kwargs["json"]["method"] == "POST"
        assert post_call.kwargs["json"]["cron_exp"] == "0 9 * * 1"

    def test_upsert_updates_existing_event(self):
        client = SchedulerClient("http://scheduler.local/api")
        with patch("common.scheduler_client.requests.request") as mock_request:
            mock_request.side_effect = [
                _response({"scheduler_details": [{"job_name": "report_1"}]}),
                _response({"message": "updated"}),
            ]

            operation, _ = client.upsert_schedule(
                "tok", "report_1", "report_delivery", "http://cb", "POST", "0 9 * * 1", status="inactive"
            )

        assert operation == "updated"
        put_call = mock_request.call_args_list[1]
        assert put_call.kwargs["method"] == "PUT"
        assert put_call.kwargs["params"] == {"job_name": "report_1", "app_name": "report_delivery"}
        assert put_call.kwargs["json"]["status"] == "inactive"

    def test_http_error_propagates(self):
        client = SchedulerClient("http://scheduler.local/api")
        with patch("common.scheduler_client.requests.request", return_value=_response({}, 500)):
            with pytest.raises(requests.exceptions.HTTPError):
                client.create_schedule("tok", "report_1", "app", "http://cb", "POST", "0 9 * * 1")


class TestRegisterJobTrigger:
    def test_event_name_and_url(self, settings):
        assert event_name("abc") == "report_abc"
        assert trigger_url(settings, "abc") == "https://reports.example.com/api/v1/scheduled-reports/abc/trigger"

    @pytest.mark.asyncio
    async def test_one_time_job_is_not_registered(self, make_job, settings):
        with patch("common.scheduler_client.requests.request") as mock_request:
            assert await register_job_trigger(make_job(), "Bearer tok", settings) is False

        mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_authorization_skips_registration(self, make_job, settings):
        with patch("common.scheduler_client.requests.request") as mock_request:
            assert await register_job_trigger(make_job(schedule=WEEKLY), None, settings) is False

        mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_recurring_job_is_registered(self, make_job, settings):
        with patch("common.scheduler_client.requests.request") as mock_request:
            mock_request.side_effect = [_response({}), _response({"message": "ok"})]

            registered = await register_job_trigger(make_job(schedule=WEEKLY), "Bearer tok", settings)

        assert registered is True
        payload = mock_request.call_args_list[1].kwargs["json"]
        assert payload["job_name"] == "report_job-1"
        assert payload["app_name"] == "report_delivery"
        assert payload["url"].endswith("/scheduled-reports/job-1/trigger")
        assert payload["status"] == "active"
        assert mock_request.call_args_list[1].kwargs["headers"]["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_scheduler_outage_is_not_fatal(self, make_job, settings):
        with patch(
            "common.scheduler_client.requests.request",
            side_effect=requests.exceptions.ConnectionError("down"),
        ):
            registered = await register_job_trigger(make_job(schedule=WEEKLY), "Bearer tok", settings)

        assert registered is False
