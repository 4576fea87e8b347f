"""
Tests for job and content models.
"""

import pytest
from pydantic import ValidationError

from services.report_delivery_service.models.content import Slide, format_metric_value
from services.report_delivery_service.models.jobs import (
    ContentBinding,
    JobCreate,
    Recipients,
    Schedule,
    ScheduleKind,
)


class TestContentBinding:
    def test_report_binding(self):
        binding = ContentBinding.report("pres-1")

        assert binding.content_id == "pres-1"

    def test_template_binding(self):
        assert ContentBinding.template("tmpl-1").content_id == "tmpl-1"

    @pytest.mark.parametrize(
        "data",
        [
            {"kind": "report"},
            {"kind": "report", "presentation_id": "p", "template_id": "t"},
            {"kind": "template", "presentation_id": "p"},
            {"kind": "template", "template_id": ""},
        ],
    )
    def test_exactly_one_reference(self, data):
        with pytest.raises(ValidationError):
            ContentBinding.model_validate(data)


class TestSchedule:
    def test_default_is_one_time(self):
        schedule = Schedule()

        assert schedule.kind == ScheduleKind.ONE_TIME
        assert not schedule.is_recurring

    def test_one_time_rejects_cron(self):
        with pytest.raises(ValidationError):
            Schedule(kind="one_time", cron_expression="0 9 * * 1")

    def test_recurring_requires_cron(self):
        with pytest.raises(ValidationError):
            Schedule(kind="recurring")

    def test_recurring_rejects_invalid_cron(self):
        with pytest.raises(ValidationError):
            Schedule(kind="recurring", cron_expression="every monday")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            Schedule(kind="recurring", cron_expression="0 9 * * 1", timezone="Nowhere/City")


class TestRecipients:
    def test_to_is_required(self):
        with pytest.raises(ValidationError):
            Recipients(to=[])

    def test_invalid_address(self):
        with pytest.raises(ValidationError):
            Recipients(to=["not-an-email"])

    def test_overlaps_are_reported_not_removed(self):
        recipients = Recipients(to=["a@example.com"], cc=["A@example.com", "b@example.com"])

        assert recipients.overlapping_addresses() == ["a@example.com"]
        assert recipients.count == 3


class TestJobCreate:
    def test_reserved_variable_name(self, report_job_config):
        report_job_config["custom_variables"] = [{"name": "report_name", "value": "x"}]

        with pytest.raises(ValidationError, match="reserved"):
            JobCreate.model_validate(report_job_config)

    def test_duplicate_variable_names(self, report_job_config):
        report_job_config["custom_variables"] = [{"name": "a"}, {"name": "a", "value": "b"}]

        with pytest.raises(ValidationError, match="duplicate"):
            JobCreate.model_validate(report_job_config)

    def test_blank_subject(self, report_job_config):
        report_job_config["email_template"]["subject"] = "  "

        with pytest.raises(ValidationError):
            JobCreate.model_validate(report_job_config)


class TestMetricDisplay:
    @pytest.mark.parametrize(
        "value,fmt,expected",
        [
            (1200, "currency", "$1,200.00"),
            (12.5, "percent", "12.5%"),
            (1500000, "number", "1,500,000"),
            (2.5, "number", "2.50"),
            ("n/a", "currency", "n/a"),
            (None, None, ""),
            (True, "number", "True"),
        ],
    )
    def test_format_metric_value(self, value, fmt, expected):
        assert format_metric_value(value, fmt) == expected

    def test_refreshed_data_wins_over_authored_value(self):
        slide = Slide.model_validate(
            {
                "id": "s",
                "elements": [
                    {"id": "m", "type": "metric", "content": {"value": 1, "data": [{"n": 9}]}}
                ],
            }
        )

        assert slide.elements[0].display_value() == "9"


class TestElementUnion:
    def test_unknown_attributes_round_trip(self):
        data = {
            "id": "s",
            "elements": [
                {
                    "id": "t",
                    "type": "text",
                    "z_index": 3,
                    "content": {"text": "hi", "font_family": "Inter"},
                }
            ],
        }

        dumped = Slide.model_validate(data).model_dump()

        assert dumped["elements"][0]["z_index"] == 3
        assert dumped["elements"][0]["content"]["font_family"] == "Inter"

    def test_unknown_element_type(self):
        with pytest.raises(ValidationError):
            Slide.model_validate({"id": "s", "elements": [{"id": "x", "type": "video"}]})
