"""
Tests for TemplateService.
"""

import pytest

from services.report_delivery_service.models.content import Slide
from services.report_delivery_service.services.template_service import TemplateService


@pytest.fixture
def template_service():
    return TemplateService()


@pytest.fixture
def slides():
    return [
        Slide.model_validate(
            {
                "id": "s1",
                "title": "Overview",
                "elements": [
                    {"id": "t", "type": "text", "content": {"text": "Line one\nLine <two>"}},
                    {"id": "m", "type": "metric", "content": {"label": "Revenue", "value": 1200, "format": "currency"}},
                    {
                        "id": "q",
                        "type": "query",
                        "columns": ["region", "total"],
                        "data": [{"region": "EU", "total": 10.5}, {"region": "US", "total": None}],
                    },
                ],
            }
        )
    ]


class TestSkeletons:
    def test_available_templates(self, template_service):
        assert template_service.available_templates() == ["dashboard", "minimal", "professional"]

    def test_unknown_template_falls_back_to_default(self, template_service):
        assert template_service.load_skeleton("nope") == template_service.load_skeleton("professional")

    def test_path_like_ids_are_ignored(self, template_service):
        assert template_service.load_skeleton("../report_slides") == template_service.load_skeleton(None)


class TestRenderSlides:
    def test_elements_are_rendered(self, template_service, slides):
        html = template_service.render_slides(slides)

        assert "Overview" in html
        assert "Line one<br>" in html
        assert "Line &lt;two&gt;" in html
        assert "$1,200.00" in html
        assert "Revenue" in html
        assert "<th" in html and "region" in html
        assert "10.50" in html

    def test_no_slides(self, template_service):
        assert template_service.render_slides([]) == ""


class TestRenderEmail:
    def test_variables_and_report_content(self, template_service, slides):
        html = template_service.render_email(
            "minimal",
            {"report_name": "Weekly <Sales>", "report_title": "Sales", "recipient_name": "Team"},
            custom_content="Hi Team,\nnumbers below",
            slides=slides,
        )

        assert "Weekly &lt;Sales&gt;" in html
        assert "Hi Team,<br>" in html
        assert 'class="report-slide"' in html
        assert "{report_content}" not in html
        assert "{email_content}" not in html

    def test_default_email_content(self, template_service):
        html = template_service.render_email("professional", {"report_name": "Digest"})

        assert "Please find the latest results of Digest below." in html

    def test_unknown_variables_stay_visible(self, template_service):
        html = template_service.render_email("minimal", {})

        assert "{report_name}" in html
