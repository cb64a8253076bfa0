"""Tests for tenant-scoped lead storage, board ordering and lead invariants."""

import uuid
from datetime import datetime

import pytest

from prospectflow.core.exceptions import LeadNotFoundError, LeadValidationError
from prospectflow.models import ContactLog, ContactChannel, ContactDirection, LeadSource, LeadStatus, MessageType, SiteClassification
from prospectflow.services import lead_store
from prospectflow.services.importer import import_leads


def test_compute_position():
    assert lead_store.compute_position(None, None) == 1.0
    assert lead_store.compute_position(None, 3.0) == 2.0
    assert lead_store.compute_position(3.0, None) == 4.0
    assert lead_store.compute_position(1.0, 2.0) == 1.5


@pytest.mark.asyncio
async def test_insert_appends_to_new_column(db, tenant_id):
    leads = await lead_store.insert_leads(db, tenant_id, [
        {"company_name": "Primeira"},
        {"company_name": "Segunda"},
    ], LeadSource.MANUAL)
    more = await lead_store.insert_leads(db, tenant_id, [{"company_name": "Terceira"}])

    positions = [lead.position for lead in leads + more]
    assert positions == sorted(positions)
    assert len(set(positions)) == 3
    assert all(lead.status == LeadStatus.NEW for lead in leads + more)


@pytest.mark.asyncio
async def test_insert_rejects_empty_company(db, tenant_id):
    with pytest.raises(LeadValidationError):
        await lead_store.insert_leads(db, tenant_id, [{"company_name": "  "}])


@pytest.mark.asyncio
async def test_reads_are_tenant_scoped(db, tenant_id, make_lead):
    other = uuid.uuid4()
    mine = await make_lead(tenant_id, company_name="Minha")
    theirs = await make_lead(other, company_name="Deles")

    assert [lead.id for lead in await lead_store.find_leads(db, tenant_id)] == [mine.id]
    assert await lead_store.get_lead(db, tenant_id, theirs.id) is None
    with pytest.raises(LeadNotFoundError):
        await lead_store.update_lead(db, tenant_id, theirs.id, {"notes": "x"})
    assert await lead_store.delete_leads(db, tenant_id, [theirs.id]) == 0
    assert await lead_store.get_lead(db, other, theirs.id) is not None


@pytest.mark.asyncio
async def test_find_leads_filters(db, tenant_id, make_lead):
    await make_lead(tenant_id, company_name="Padaria Central", city="Curitiba", email="a@padaria.com", position=1)
    await make_lead(tenant_id, company_name="Oficina", website="https://oficina.com.br", position=2)
    await make_lead(tenant_id, company_name="Salão", status=LeadStatus.CONTACTED,
                    site_classification=SiteClassification.WEAK_SITE, position=3)

    names = lambda leads: [lead.company_name for lead in leads]
    assert names(await lead_store.find_leads(db, tenant_id, status=LeadStatus.NEW)) == ["Padaria Central", "Oficina"]
    assert names(await lead_store.find_leads(db, tenant_id, needs_analysis=True)) == ["Oficina"]
    assert names(await lead_store.find_leads(db, tenant_id, has_email=True)) == ["Padaria Central"]
    assert names(await lead_store.find_leads(db, tenant_id, search="curitiba")) == ["Padaria Central"]
    assert names(await lead_store.find_leads(
        db, tenant_id, classification=SiteClassification.WEAK_SITE)) == ["Salão"]
    assert len(await lead_store.find_leads(db, tenant_id, limit=1)) == 1


@pytest.mark.asyncio
async def test_update_trims_company_and_rejects_empty(db, tenant_id, make_lead):
    lead = await make_lead(tenant_id)
    updated = await lead_store.update_lead(db, tenant_id, lead.id, {"company_name": "  Nova Padaria "})
    assert updated.company_name == "Nova Padaria"

    with pytest.raises(LeadValidationError):
        await lead_store.update_lead(db, tenant_id, lead.id, {"company_name": ""})
    with pytest.raises(LeadValidationError):
        await lead_store.update_lead(db, tenant_id, lead.id, {"tenant_id": uuid.uuid4()})


@pytest.mark.asyncio
async def test_update_normalizes_email_so_imports_dedupe_against_it(db, tenant_id, make_lead):
    lead = await make_lead(tenant_id)
    updated = await lead_store.update_lead(db, tenant_id, lead.id, {"email": " Contato@Padaria.com.br "})
    assert updated.email == "contato@padaria.com.br"

    result = await import_leads(db, tenant_id, [{"company_name": "Outra", "email": "contato@padaria.com.br"}])
    assert result.imported == 0
    assert result.duplicates == 1

    with pytest.raises(LeadValidationError):
        await lead_store.update_lead(db, tenant_id, lead.id, {"email": "not-an-email"})
    await db.refresh(lead)
    assert lead.email == "contato@padaria.com.br"

    cleared = await lead_store.update_lead(db, tenant_id, lead.id, {"email": ""})
    assert cleared.email is None


@pytest.mark.asyncio
async def test_website_change_queues_lead_for_reanalysis(db, tenant_id, make_lead):
    analysed = datetime.utcnow()
    lead = await make_lead(tenant_id, website="https://padaria.com.br",
                           site_classification=SiteClassification.SITE_OK, site_analysis_date=analysed)

    same = await lead_store.update_lead(db, tenant_id, lead.id, {"website": "Padaria.com.br"})
    assert same.website == "https://padaria.com.br"
    assert same.site_analysis_date == analysed

    moved = await lead_store.update_lead(db, tenant_id, lead.id, {"website": "padaria-nova.com.br"})
    assert moved.website == "https://padaria-nova.com.br"
    assert moved.site_analysis_date is None
    assert moved.site_classification == SiteClassification.SITE_OK
    assert [l.id for l in await lead_store.find_leads(db, tenant_id, needs_analysis=True)] == [lead.id]


@pytest.mark.asyncio
async def test_opting_out_pauses_automation_for_good(db, tenant_id, make_lead):
    lead = await make_lead(tenant_id)
    updated = await lead_store.update_lead(db, tenant_id, lead.id, {"opted_out": True})
    assert updated.automation_paused is True
    assert updated.opted_out_date is not None

    with pytest.raises(LeadValidationError):
        await lead_store.update_lead(db, tenant_id, lead.id, {"automation_paused": False})


@pytest.mark.asyncio
async def test_classification_cannot_be_cleared(db, tenant_id, make_lead):
    lead = await make_lead(tenant_id, site_classification=SiteClassification.NO_SITE)
    with pytest.raises(LeadValidationError):
        await lead_store.update_lead(db, tenant_id, lead.id, {"site_classification": None})


@pytest.mark.asyncio
async def test_move_lead_between_neighbours(db, tenant_id, make_lead):
    a = await make_lead(tenant_id, company_name="A", status=LeadStatus.CONTACTED, position=1.0)
    b = await make_lead(tenant_id, company_name="B", status=LeadStatus.CONTACTED, position=2.0)
    moving = await make_lead(tenant_id, company_name="C", status=LeadStatus.NEW, position=1.0)

    moved = await lead_store.move_lead(db, tenant_id, moving.id, LeadStatus.CONTACTED, index=1)
    assert moved.status == LeadStatus.CONTACTED
    assert a.position < moved.position < b.position

    first = await lead_store.move_lead(db, tenant_id, b.id, LeadStatus.CONTACTED, index=0)
    assert first.position < a.position

    appended = await lead_store.move_lead(db, tenant_id, a.id, LeadStatus.INTERESTED)
    assert appended.position == 1.0


@pytest.mark.asyncio
async def test_status_change_appends_to_destination_column(db, tenant_id, make_lead):
    await make_lead(tenant_id, company_name="Já lá", status=LeadStatus.ENGAGED, position=5.0)
    lead = await make_lead(tenant_id)
    updated = await lead_store.update_lead(db, tenant_id, lead.id, {"status": LeadStatus.ENGAGED})
    assert updated.position == 6.0


@pytest.mark.asyncio
async def test_delete_requires_ids(db, tenant_id, make_lead):
    with pytest.raises(LeadValidationError):
        await lead_store.delete_leads(db, tenant_id, [])

    lead = await make_lead(tenant_id)
    assert await lead_store.delete_leads(db, tenant_id, [lead.id]) == 1
    assert await lead_store.get_lead(db, tenant_id, lead.id) is None


@pytest.mark.asyncio
async def test_lead_stats(db, tenant_id, make_lead):
    lead = await make_lead(tenant_id, site_classification=SiteClassification.NO_SITE)
    await make_lead(tenant_id, status=LeadStatus.CONTACTED)
    await make_lead(uuid.uuid4())
    db.add(ContactLog(
        tenant_id=tenant_id, lead_id=lead.id, channel=ContactChannel.EMAIL,
        direction=ContactDirection.OUTBOUND, message_type=MessageType.INITIAL,
    ))
    await db.commit()

    stats = await lead_store.lead_stats(db, tenant_id)
    assert stats["total"] == 2
    assert stats["by_status"] == {"new": 1, "contacted": 1}
    assert stats["by_classification"] == {"no_site": 1}
    assert stats["emails_sent"] == 1
    assert stats["responses"] == 0
