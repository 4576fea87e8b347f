"""
Tests for ContentResolver.
"""

import pytest

from services.report_delivery_service.errors import ContentNotFoundError
from services.report_delivery_service.services.content_resolver import ContentResolver
from services.report_delivery_service.services.query_refresh_service import QueryRefreshService


@pytest.fixture
def resolver(content_repository, warehouse):
    return ContentResolver(content_repository, QueryRefreshService(warehouse))


class TestResolve:
    @pytest.mark.asyncio
    async def test_report_is_used_as_authored(self, resolver, make_job, warehouse, content_repository):
        content = await resolver.resolve(make_job())

        assert content.kind == "report"
        assert content.title == "Weekly Sales"
        assert [slide.id for slide in content.slides] == ["slide-a"]
        assert content.refresh is None
        assert warehouse.queries == []
        assert content_repository.saved == []

    @pytest.mark.asyncio
    async def test_template_send_is_archived_as_snapshot(self, resolver, make_job, content_repository):
        job = make_job(content={"kind": "template", "template_id": "tmpl-1"})

        content = await resolver.resolve(job)

        assert content.kind == "template"
        assert content.title == "Signup Digest"
        assert content.refresh.refreshed_count == 1
        assert content.metric_elements[0].display_value() == "42"

        snapshot = content_repository.presentations[content.snapshot_id]
        assert snapshot.instance_type == "scheduled"
        assert snapshot.template_id == "tmpl-1"
        assert snapshot.scheduled_report_id == job.id
        assert snapshot.title == "Signup Digest - Weekly sales"
        assert len(snapshot.slide_ids) == 1
        assert snapshot.slide_ids[0] != "slide-b"
        archived = content_repository.slides[snapshot.slide_ids[0]]
        assert archived.elements[0].content.data == [{"count": 42}]

    @pytest.mark.asyncio
    async def test_template_send_leaves_template_untouched(self, resolver, make_job, content_repository):
        job = make_job(content={"kind": "template", "template_id": "tmpl-1"})

        await resolver.resolve(job)

        assert content_repository.saved == []
        assert content_repository.templates["tmpl-1"].slide_ids == ["slide-b"]
        assert content_repository.slides["slide-b"].elements[0].content.data == []

    @pytest.mark.asyncio
    async def test_each_send_gets_its_own_snapshot(self, resolver, make_job, content_repository):
        job = make_job(content={"kind": "template", "template_id": "tmpl-1"})

        first = await resolver.resolve(job)
        second = await resolver.resolve(job)

        assert first.snapshot_id != second.snapshot_id
        assert set(content_repository.presentations) >= {first.snapshot_id, second.snapshot_id}

    @pytest.mark.asyncio
    async def test_preview_is_not_archived(self, resolver, make_job, content_repository):
        job = make_job(content={"kind": "template", "template_id": "tmpl-1"})

        content = await resolver.resolve(job, archive=False)

        assert content.metric_elements[0].display_value() == "42"
        assert content.snapshot_id is None
        assert list(content_repository.presentations) == ["pres-1"]
        assert content_repository.slides["slide-b"].elements[0].content.data == []

    @pytest.mark.asyncio
    async def test_failed_refresh_still_resolves(self, content_repository, make_job, make_warehouse):
        resolver = ContentResolver(content_repository, QueryRefreshService(make_warehouse()))
        job = make_job(content={"kind": "template", "template_id": "tmpl-1"})

        content = await resolver.resolve(job)

        assert content.refresh.failed_element_ids == ["m1"]
        assert content_repository.saved == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "binding",
        [
            {"kind": "report", "presentation_id": "gone"},
            {"kind": "template", "template_id": "gone"},
        ],
    )
    async def test_missing_content(self, resolver, make_job, binding):
        with pytest.raises(ContentNotFoundError):
            await resolver.resolve(make_job(content=binding))


class TestUserRefresh:
    @pytest.mark.asyncio
    async def test_refresh_presentation_without_bound_queries(self, resolver, content_repository):
        report = await resolver.refresh_presentation("pres-1")

        assert report.refreshed_count == 0
        assert content_repository.saved == []

    @pytest.mark.asyncio
    async def test_refresh_unknown_template(self, resolver):
        with pytest.raises(ContentNotFoundError):
            await resolver.refresh_template("nope")
