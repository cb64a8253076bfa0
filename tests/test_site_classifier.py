"""Tests for website analysis and classification."""

import uuid
from unittest.mock import patch, AsyncMock

import pytest
from sqlalchemy import select

from prospectflow.core.exceptions import PersistenceError
from prospectflow.models import Lead, SiteClassification
from prospectflow.services.events import LEAD_NEEDS_DECISION
from prospectflow.services import lead_store
from prospectflow.services.site_classifier import (
    SiteSignals,
    analyze_site,
    classify_batch,
    classify_lead,
    classify_score,
    extract_signals,
    score_signals,
)
from conftest import GOOD_HTML, site_fetcher


def test_extract_signals_reads_all_tags():
    signals = extract_signals(GOOD_HTML, "https://padaria.com.br")
    assert signals == SiteSignals(
        has_title=True,
        has_meta_description=True,
        has_h1=True,
        has_viewport=True,
        has_ssl=True,
        has_noindex=False,
    )


def test_extract_signals_ignores_empty_title_and_h1():
    html = "<html><head><title>  </title></head><body><h1></h1></body></html>"
    signals = extract_signals(html, "http://example.com")
    assert signals.has_title is False
    assert signals.has_h1 is False
    assert signals.has_ssl is False


def test_extract_signals_detects_noindex_and_self_closing_meta():
    html = '<head><META NAME="Robots" CONTENT="noindex, nofollow"/><meta name="viewport" content="x"/></head>'
    signals = extract_signals(html, "https://example.com")
    assert signals.has_noindex is True
    assert signals.has_viewport is True


def test_score_is_base_plus_weights():
    assert score_signals(SiteSignals()) == 20
    assert score_signals(SiteSignals(has_title=True, has_ssl=True)) == 50
    full = SiteSignals(has_title=True, has_meta_description=True, has_h1=True, has_viewport=True, has_ssl=True)
    assert score_signals(full) == 100


@pytest.mark.parametrize("score,expected", [
    (0, SiteClassification.WEAK_SITE),
    (39, SiteClassification.WEAK_SITE),
    (40, SiteClassification.SITE_WITHOUT_SEO),
    (69, SiteClassification.SITE_WITHOUT_SEO),
    (70, SiteClassification.SITE_OK),
    (100, SiteClassification.SITE_OK),
])
def test_classify_score_thresholds(score, expected):
    assert classify_score(score) == expected


@pytest.mark.asyncio
async def test_no_website_is_no_site_without_network():
    calls = []

    class RecordingFetcher:
        async def fetch(self, url):
            calls.append(url)

    result = await analyze_site(None, RecordingFetcher())
    assert result.site_classification == SiteClassification.NO_SITE
    assert result.site_performance_score == 0
    assert result.site_active is False
    assert calls == []


@pytest.mark.asyncio
async def test_good_site_is_site_ok(fetcher):
    result = await analyze_site("https://padaria.com.br", fetcher)
    assert result.site_active is True
    assert result.site_performance_score == 100
    assert result.site_indexed is True
    assert result.site_classification == SiteClassification.SITE_OK


@pytest.mark.asyncio
async def test_bare_http_site_is_weak(fetcher):
    result = await analyze_site("http://oficina.com.br", fetcher)
    assert result.site_performance_score == 20
    assert result.site_classification == SiteClassification.WEAK_SITE


@pytest.mark.asyncio
async def test_unreachable_and_error_status_are_weak_not_raised(fetcher):
    for url in ("https://fora-do-ar.com.br", "https://nao-existe.com.br"):
        result = await analyze_site(url, fetcher)
        assert result.site_classification == SiteClassification.WEAK_SITE
        assert result.site_active is False
        assert result.site_performance_score == 0
        assert result.site_indexed is False


@pytest.mark.asyncio
async def test_classify_lead_persists_and_requests_decision(db, tenant_id, make_lead, fetcher, events):
    lead = await make_lead(tenant_id, website=None)

    result = await classify_lead(db, tenant_id, lead.id, fetcher, events)

    assert result.site_classification == SiteClassification.NO_SITE
    await db.refresh(lead)
    assert lead.site_classification == SiteClassification.NO_SITE
    assert lead.site_analysis_date is not None
    assert lead.status.value == "new"

    decisions = events.of_kind(LEAD_NEEDS_DECISION)
    assert len(decisions) == 1
    assert decisions[0].lead_id == lead.id
    assert decisions[0].payload["message_type"] == "initial"


@pytest.mark.asyncio
async def test_classify_lead_site_ok_emits_nothing(db, tenant_id, make_lead, fetcher, events):
    lead = await make_lead(tenant_id, website="https://padaria.com.br")
    result = await classify_lead(db, tenant_id, lead.id, fetcher, events)
    assert result.site_classification == SiteClassification.SITE_OK
    assert events.events == []


@pytest.mark.asyncio
async def test_classify_lead_survives_a_broken_event_queue(db, tenant_id, make_lead, fetcher):
    class BrokenQueue:
        def emit(self, event):
            raise RuntimeError("queue down")

    lead = await make_lead(tenant_id, website="http://oficina.com.br")
    result = await classify_lead(db, tenant_id, lead.id, fetcher, BrokenQueue())
    assert result.site_classification == SiteClassification.WEAK_SITE


@pytest.mark.asyncio
async def test_batch_is_idempotent(db, tenant_id, make_lead, fetcher):
    await make_lead(tenant_id, company_name="A", website="https://padaria.com.br")
    await make_lead(tenant_id, company_name="B", website="http://oficina.com.br")
    await make_lead(tenant_id, company_name="C", website=None)

    first = await classify_batch(db, tenant_id, 10, fetcher)
    assert first["analyzed"] == 2
    assert first["failures"] == []

    second = await classify_batch(db, tenant_id, 10, fetcher)
    assert second["analyzed"] == 0


@pytest.mark.asyncio
async def test_batch_respects_limit_and_tenant(db, tenant_id, make_lead):
    other_tenant = uuid.uuid4()
    for i in range(3):
        await make_lead(tenant_id, company_name=f"Lead {i}", website="https://nao-existe.com.br")
    await make_lead(other_tenant, company_name="Outro", website="https://nao-existe.com.br")

    report = await classify_batch(db, tenant_id, 2, site_fetcher({}))
    assert report["analyzed"] == 2

    result = await db.execute(select(Lead).where(Lead.tenant_id == other_tenant))
    assert result.scalar_one().site_analysis_date is None


@pytest.mark.asyncio
async def test_batch_reanalyses_a_lead_whose_website_changed(db, tenant_id, make_lead, fetcher):
    lead = await make_lead(tenant_id, website="https://padaria.com.br")
    first = await classify_batch(db, tenant_id, 10, fetcher)
    assert first["analyzed"] == 1

    await lead_store.update_lead(db, tenant_id, lead.id, {"website": "http://oficina.com.br"})

    second = await classify_batch(db, tenant_id, 10, fetcher)
    assert second["analyzed"] == 1
    await db.refresh(lead)
    assert lead.site_classification == SiteClassification.WEAK_SITE
    assert lead.site_analysis_date is not None


@pytest.mark.asyncio
async def test_batch_reports_a_failed_write_and_carries_on(db, tenant_id, make_lead, fetcher):
    broken = await make_lead(tenant_id, company_name="A", website="https://padaria.com.br", position=1)
    healthy = await make_lead(tenant_id, company_name="B", website="http://oficina.com.br", position=2)
    real_update = lead_store.update_lead

    async def failing_for_one(db, tenant_id, lead_id, fields):
        if lead_id == broken.id:
            raise PersistenceError("Failed to update lead: disk full")
        return await real_update(db, tenant_id, lead_id, fields)

    with patch("prospectflow.services.lead_store.update_lead", new=AsyncMock(side_effect=failing_for_one)):
        report = await classify_batch(db, tenant_id, 10, fetcher)

    assert report["failures"] == [{"id": str(broken.id), "error": "Failed to update lead: disk full"}]
    assert report["analyzed"] == 1
    assert report["results"][0]["id"] == str(healthy.id)

    await db.refresh(broken)
    await db.refresh(healthy)
    assert broken.site_analysis_date is None
    assert healthy.site_classification == SiteClassification.WEAK_SITE
