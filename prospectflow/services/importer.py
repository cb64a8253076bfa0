"""Prospect import: CSV parsing, normalization, deduplication, maps search and social intent search."""

import csv
import io
import logging
import re
from typing import Iterable, Literal, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.exceptions import ImportValidationError, LeadValidationError
from prospectflow.models.lead import Lead, LeadSource
from prospectflow.schemas.pipeline import ImportResult
from prospectflow.services import lead_store
from prospectflow.services.events import EventQueue, PipelineEvent, LEAD_NEEDS_ANALYSIS
from prospectflow.services.normalize import normalize_email, normalize_phone, normalize_website
from prospectflow.services.search_provider import PlacesSearchClient, PlaceResult
from prospectflow.services.web_search import SOCIAL_NETWORKS, WebResult, WebSearchClient

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 60

HEADER_MAP = {
    "empresa": "company_name",
    "nome": "company_name",
    "company": "company_name",
    "company_name": "company_name",
    "razao_social": "company_name",
    "razão social": "company_name",
    "segmento": "segment",
    "segment": "segment",
    "ramo": "segment",
    "cidade": "city",
    "city": "city",
    "estado": "state",
    "state": "state",
    "uf": "state",
    "email": "email",
    "e-mail": "email",
    "telefone": "phone",
    "phone": "phone",
    "tel": "phone",
    "whatsapp": "whatsapp",
    "wpp": "whatsapp",
    "zap": "whatsapp",
    "site": "website",
    "website": "website",
    "url": "website",
}

_CITY_STATE = re.compile(r"^(?P<city>[^\d].*?)\s+-\s+[A-Z]{2}$")

_TEXT_FIELDS = ("segment", "city", "state")


def parse_csv(text: str) -> list[dict]:
    """Map a CSV export (header row first) onto lead fields. Rows without a company are dropped."""
    reader = csv.reader(io.StringIO((text or "").strip()))
    rows = list(reader)
    if len(rows) < 2:
        return []

    headers = [HEADER_MAP.get(h.strip().lower()) for h in rows[0]]
    leads = []
    for values in rows[1:]:
        lead = {}
        for field, value in zip(headers, values):
            value = value.strip().strip("'\"")
            if field and value and field not in lead:
                lead[field] = value
        if lead.get("company_name"):
            leads.append(lead)
    return leads


def validate_leads(rows: Iterable[dict]) -> tuple[list[dict], list[str]]:
    """Normalize partial leads. Returns ``(valid_rows, errors)``; errors are 1-based by row."""
    valid = []
    errors = []
    for i, row in enumerate(rows, start=1):
        company = (row.get("company_name") or "").strip()
        if not company:
            errors.append(f"Row {i}: Missing company name")
            continue

        lead = {"company_name": company}
        for field in _TEXT_FIELDS:
            value = (row.get(field) or "").strip()
            lead[field] = value or None
        lead["email"] = normalize_email(row.get("email"))
        lead["phone"] = normalize_phone(row.get("phone"))
        lead["whatsapp"] = normalize_phone(row.get("whatsapp") or row.get("phone"))
        lead["website"] = normalize_website(row.get("website"))
        lead["tags"] = list(row.get("tags") or [])
        if row.get("notes"):
            lead["notes"] = row["notes"]
        valid.append(lead)
    return valid, errors


async def _existing_values(db: AsyncSession, tenant_id: UUID, column, values: set[str]) -> set[str]:
    if not values:
        return set()
    result = await db.execute(
        select(column).where(Lead.tenant_id == tenant_id, column.in_(values))
    )
    return {row[0] for row in result.all()}


def _dedupe(rows: list[dict], key: str, existing: set[str]) -> tuple[list[dict], int]:
    """Drop rows whose ``key`` is already stored or repeats earlier in the batch."""
    seen = set(existing)
    kept = []
    duplicates = 0
    for row in rows:
        value = row.get(key)
        if value and value in seen:
            duplicates += 1
            continue
        if value:
            seen.add(value)
        kept.append(row)
    return kept, duplicates


async def _import(
    db: AsyncSession,
    tenant_id: UUID,
    rows: Iterable[dict],
    source: LeadSource,
    dedupe_by_website: bool = False,
) -> tuple[ImportResult, list[Lead]]:
    rows = list(rows)
    logger.info("Processing %d leads for tenant %s", len(rows), tenant_id)

    valid, errors = validate_leads(rows)
    if not valid:
        raise ImportValidationError("No valid leads found", errors)

    # Check-then-insert; concurrent imports of the same address can both pass.
    emails = {row["email"] for row in valid if row["email"]}
    new_rows, duplicates = _dedupe(valid, "email", await _existing_values(db, tenant_id, Lead.email, emails))

    if dedupe_by_website:
        websites = {row["website"] for row in new_rows if row["website"]}
        existing = await _existing_values(db, tenant_id, Lead.website, websites)
        new_rows, website_duplicates = _dedupe(new_rows, "website", existing)
        duplicates += website_duplicates

    inserted = await lead_store.insert_leads(db, tenant_id, new_rows, source)
    logger.info("Successfully imported %d leads (%d duplicates)", len(inserted), duplicates)

    result = ImportResult(
        imported=len(inserted),
        duplicates=duplicates,
        errors=errors,
        lead_ids=[lead.id for lead in inserted],
    )
    return result, inserted


async def import_leads(
    db: AsyncSession,
    tenant_id: UUID,
    rows: Iterable[dict],
    source: LeadSource = LeadSource.CSV_IMPORT,
) -> ImportResult:
    """Validate, deduplicate by email and insert. Zero valid rows raises ImportValidationError."""
    result, _ = await _import(db, tenant_id, rows, source)
    return result


def city_from_address(address: Optional[str]) -> Optional[str]:
    """Best-effort city from a formatted address like "Rua X, 10 - Centro, Curitiba - PR, 80000-000, Brasil"."""
    if not address:
        return None
    parts = [p.strip() for p in address.split(",")]
    if len(parts) < 3:
        return None
    for part in parts:
        match = _CITY_STATE.match(part)
        if match:
            return match.group("city")
    for part in parts:
        if " - " in part and len(part) < 40:
            city = part.split(" - ")[0].strip()
            if city:
                return city
    return parts[-3] or parts[-2] or None


def place_to_lead(place: PlaceResult) -> dict:
    notes = f"Endereço: {place.formatted_address}" if place.formatted_address else None
    return {
        "company_name": place.display_name or "Empresa sem nome",
        "website": place.website,
        "phone": place.phone,
        "city": city_from_address(place.formatted_address),
        "notes": notes,
    }


async def search_and_import(
    db: AsyncSession,
    tenant_id: UUID,
    query: Optional[str],
    search_client: PlacesSearchClient,
    events: EventQueue | None = None,
    limit: int = 10,
    site_filter: Literal["all", "with_site", "without_site"] = "all",
) -> ImportResult:
    """Find businesses with the maps provider and import them as ``google_maps`` leads.

    Deduplicates by email and by website. Every newly inserted lead with a
    website gets one "needs analysis" event; emitting never affects the result.
    """
    if not query or not query.strip():
        raise LeadValidationError("Query is required")
    query = query.strip()
    max_results = max(1, min(limit, MAX_SEARCH_RESULTS))

    rows: list[dict] = []
    page_token = None
    while True:
        page = await search_client.text_search(query, page_token)
        for place in page.results:
            has_site = bool(place.website)
            if site_filter == "with_site" and not has_site:
                continue
            if site_filter == "without_site" and has_site:
                continue
            rows.append(place_to_lead(place))
        if len(rows) >= max_results or not page.next_page_token:
            break
        page_token = page.next_page_token

    rows = rows[:max_results]
    if not rows:
        return ImportResult(imported=0, duplicates=0)

    result, inserted = await _import(db, tenant_id, rows, LeadSource.GOOGLE_MAPS, dedupe_by_website=True)

    if events is not None:
        for lead in inserted:
            if not lead.website:
                continue
            try:
                events.emit(PipelineEvent(kind=LEAD_NEEDS_ANALYSIS, tenant_id=tenant_id, lead_id=lead.id))
            except Exception as e:
                logger.error("Failed to request analysis for lead %s: %s", lead.id, e)

    return result


def social_result_to_lead(result: WebResult) -> dict:
    return {
        "company_name": (result.title or "Social Lead")[:100],
        "website": result.link,
        "notes": result.snippet or "Sem descrição",
    }


async def search_intent(
    db: AsyncSession,
    tenant_id: UUID,
    query: Optional[str],
    client: WebSearchClient,
) -> ImportResult:
    """Find social posts (LinkedIn, Instagram, Facebook) matching ``query`` and import them.

    Each organic result becomes a ``social_search`` lead. The post link is the
    lead website, so a repeated search does not import the same post twice.
    """
    if not query or not query.strip():
        raise LeadValidationError("Query is required")

    results = await client.search(f"{query.strip()} {SOCIAL_NETWORKS}")
    rows = [social_result_to_lead(r) for r in results]
    if not rows:
        return ImportResult(imported=0, duplicates=0)

    result, _ = await _import(db, tenant_id, rows, LeadSource.SOCIAL_SEARCH, dedupe_by_website=True)
    return result
