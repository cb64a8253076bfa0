"""Tests for CSV parsing, validation, deduplication, maps search and social intent imports."""

import httpx
import pytest
from sqlalchemy import select, func

from prospectflow.core.exceptions import ImportValidationError, LeadValidationError
from prospectflow.models import Lead, LeadSource, LeadStatus
from prospectflow.services.events import LEAD_NEEDS_ANALYSIS
from prospectflow.services.importer import (
    city_from_address,
    import_leads,
    parse_csv,
    search_and_import,
    search_intent,
    validate_leads,
)
from prospectflow.services.normalize import normalize_email, normalize_phone, normalize_website
from prospectflow.services.search_provider import PlaceResult, SearchPage
from prospectflow.services.web_search import SOCIAL_NETWORKS, WebSearchClient


class FakeSearchClient:
    """Serves canned pages in order; records the page tokens it was asked for."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.tokens = []

    async def text_search(self, query, page_token=None):
        self.tokens.append(page_token)
        return self.pages[len(self.tokens) - 1]


def test_parse_csv_maps_portuguese_headers():
    text = "Empresa,Cidade,E-mail,Telefone,Site\nPadaria Central,Curitiba,contato@padaria.com.br,(41) 3333-4444,padaria.com.br\n"
    assert parse_csv(text) == [{
        "company_name": "Padaria Central",
        "city": "Curitiba",
        "email": "contato@padaria.com.br",
        "phone": "(41) 3333-4444",
        "website": "padaria.com.br",
    }]


def test_parse_csv_drops_rows_without_company():
    text = "empresa,email\n,semnome@x.com\nOficina,ze@oficina.com\n"
    rows = parse_csv(text)
    assert [r["company_name"] for r in rows] == ["Oficina"]


def test_parse_csv_needs_a_data_row():
    assert parse_csv("empresa,email") == []
    assert parse_csv("") == []


@pytest.mark.parametrize("raw,expected", [
    (" Contato@Padaria.com.br ", "contato@padaria.com.br"),
    ("not-an-email", None),
    ("", None),
    (None, None),
])
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


def test_normalize_phone_and_website():
    assert normalize_phone("+55 (41) 3333-4444") == "+554133334444"
    assert normalize_phone("---") is None
    assert normalize_website("Padaria.com.br") == "https://padaria.com.br"
    assert normalize_website("http://oficina.com.br") == "http://oficina.com.br"
    assert normalize_website("   ") is None


def test_normalize_website_keeps_path_case():
    assert normalize_website("HTTPS://Padaria.com.br/Cardapio?Dia=1") == "https://padaria.com.br/Cardapio?Dia=1"
    assert normalize_website("WWW.Oficina.com.br/Sobre") == "https://www.oficina.com.br/Sobre"


def test_validate_leads_reports_row_numbers():
    valid, errors = validate_leads([
        {"company_name": "Padaria", "phone": "41 3333-4444"},
        {"company_name": "  ", "email": "x@y.com"},
    ])
    assert len(valid) == 1
    assert valid[0]["whatsapp"] == "4133334444"
    assert errors == ["Row 2: Missing company name"]


@pytest.mark.asyncio
async def test_csv_row_without_company_imports_nothing(db, tenant_id):
    rows = parse_csv("empresa,email\n,contato@x.com\n")
    with pytest.raises(ImportValidationError) as exc:
        await import_leads(db, tenant_id, rows)
    assert str(exc.value) == "No valid leads found"

    count = (await db.execute(select(func.count(Lead.id)))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_invalid_rows_carry_their_errors(db, tenant_id):
    with pytest.raises(ImportValidationError) as exc:
        await import_leads(db, tenant_id, [{"email": "a@b.com"}])
    assert exc.value.errors == ["Row 1: Missing company name"]


@pytest.mark.asyncio
async def test_import_dedupes_by_email_within_tenant(db, tenant_id, make_lead):
    await make_lead(tenant_id, company_name="Existente", email="dono@padaria.com.br")

    result = await import_leads(db, tenant_id, [
        {"company_name": "Padaria Central", "email": "Dono@Padaria.com.br"},
        {"company_name": "Oficina", "email": "ze@oficina.com.br"},
        {"company_name": "Oficina de novo", "email": "ze@oficina.com.br"},
        {"company_name": "Sem email"},
        {"company_name": ""},
    ])

    assert result.imported == 2
    assert result.duplicates == 2
    assert result.errors == ["Row 5: Missing company name"]

    leads = (await db.execute(select(Lead).where(Lead.id.in_(result.lead_ids)))).scalars().all()
    assert {lead.company_name for lead in leads} == {"Oficina", "Sem email"}
    for lead in leads:
        assert lead.status == LeadStatus.NEW
        assert lead.source == LeadSource.CSV_IMPORT
        assert lead.site_classification is None


@pytest.mark.asyncio
async def test_same_email_in_another_tenant_is_not_a_duplicate(db, tenant_id, make_lead):
    import uuid
    await make_lead(uuid.uuid4(), email="dono@padaria.com.br")
    result = await import_leads(db, tenant_id, [{"company_name": "Padaria", "email": "dono@padaria.com.br"}])
    assert result.imported == 1


def test_city_from_address():
    address = "R. XV de Novembro, 100 - Centro, Curitiba - PR, 80020-310, Brasil"
    assert city_from_address(address) == "Curitiba"
    assert city_from_address("Curitiba") is None
    assert city_from_address(None) is None


@pytest.mark.asyncio
async def test_search_requires_a_query(db, tenant_id):
    with pytest.raises(LeadValidationError):
        await search_and_import(db, tenant_id, "  ", FakeSearchClient([]))


@pytest.mark.asyncio
async def test_search_imports_places_and_requests_analysis(db, tenant_id, make_lead, events):
    await make_lead(tenant_id, company_name="Já existe", website="https://padaria.com.br")
    client = FakeSearchClient([
        SearchPage(results=[
            PlaceResult("Padaria Central", "Rua A, 1 - Centro, Curitiba - PR, 80000-000, Brasil",
                        website="https://padaria.com.br"),
            PlaceResult("Oficina do Zé", "Rua B, 2 - Boqueirão, Curitiba - PR, 81000-000, Brasil",
                        phone="(41) 3333-4444"),
        ], next_page_token="page-2"),
        SearchPage(results=[
            PlaceResult("Salão Bela", None, website="https://salaobela.com.br"),
        ]),
    ])

    result = await search_and_import(db, tenant_id, "padarias em curitiba", client, events, limit=10)

    assert client.tokens == [None, "page-2"]
    assert result.imported == 2
    assert result.duplicates == 1

    leads = (await db.execute(select(Lead).where(Lead.id.in_(result.lead_ids)))).scalars().all()
    by_name = {lead.company_name: lead for lead in leads}
    assert by_name["Oficina do Zé"].source == LeadSource.GOOGLE_MAPS
    assert by_name["Oficina do Zé"].city == "Curitiba"
    assert by_name["Oficina do Zé"].notes.startswith("Endereço:")
    assert by_name["Salão Bela"].city is None

    analysis = events.of_kind(LEAD_NEEDS_ANALYSIS)
    assert [e.lead_id for e in analysis] == [by_name["Salão Bela"].id]


@pytest.mark.asyncio
async def test_search_site_filter_and_limit(db, tenant_id):
    client = FakeSearchClient([SearchPage(results=[
        PlaceResult("Com site 1", website="https://a.com.br"),
        PlaceResult("Sem site 1"),
        PlaceResult("Sem site 2"),
        PlaceResult("Sem site 3"),
    ], next_page_token="more")])

    result = await search_and_import(db, tenant_id, "oficinas", client, limit=2, site_filter="without_site")

    assert result.imported == 2
    assert client.tokens == [None]
    names = (await db.execute(select(Lead.company_name).order_by(Lead.position))).scalars().all()
    assert names == ["Sem site 1", "Sem site 2"]


@pytest.mark.asyncio
async def test_search_with_no_results_imports_nothing(db, tenant_id, events):
    result = await search_and_import(db, tenant_id, "nada", FakeSearchClient([SearchPage()]), events)
    assert result.imported == 0
    assert events.events == []


def serpapi_client(organic):
    queries = []

    def handler(request: httpx.Request) -> httpx.Response:
        queries.append(request.url.params["q"])
        return httpx.Response(200, json={"organic_results": organic})

    return WebSearchClient(api_key="serp", transport=httpx.MockTransport(handler)), queries


@pytest.mark.asyncio
async def test_intent_search_imports_social_posts(db, tenant_id):
    long_title = "Procuro agência para criar o site da minha loja de roupas em Curitiba, alguém indica alguma boa?"
    client, queries = serpapi_client([
        {"title": long_title + " Obrigada!", "link": "https://www.instagram.com/p/abc", "snippet": "Loja nova"},
        {"link": "https://www.facebook.com/groups/1/posts/2"},
    ])

    result = await search_intent(db, tenant_id, "  preciso de site  ", client)

    assert result.imported == 2
    assert queries == [f"preciso de site {SOCIAL_NETWORKS}"]
    leads = (await db.execute(select(Lead).order_by(Lead.position))).scalars().all()
    assert leads[0].company_name == (long_title + " Obrigada!")[:100]
    assert leads[0].notes == "Loja nova"
    assert leads[0].website == "https://www.instagram.com/p/abc"
    assert leads[1].company_name == "Social Lead"
    assert leads[1].notes == "Sem descrição"
    assert all(lead.source == LeadSource.SOCIAL_SEARCH for lead in leads)
    assert all(lead.status == LeadStatus.NEW for lead in leads)


@pytest.mark.asyncio
async def test_intent_search_skips_posts_already_imported(db, tenant_id):
    post = {"title": "Quero um site", "link": "https://www.linkedin.com/posts/ana_1"}
    client, _ = serpapi_client([post])

    assert (await search_intent(db, tenant_id, "site", client)).imported == 1
    again = await search_intent(db, tenant_id, "site", client)
    assert again.imported == 0
    assert again.duplicates == 1


@pytest.mark.asyncio
async def test_intent_search_needs_a_query(db, tenant_id):
    client, queries = serpapi_client([])
    with pytest.raises(LeadValidationError):
        await search_intent(db, tenant_id, " ", client)
    assert queries == []

    result = await search_intent(db, tenant_id, "nada", client)
    assert result.imported == 0
