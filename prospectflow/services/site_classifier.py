"""Website quality classifier.

Fetches a company's website once, reads the HTML as text (nothing is
executed) and turns five on-page signals into a 0-100 score and a
classification. Analysis never raises: an unreachable or broken site is
itself a finding ("weak_site").
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from html.parser import HTMLParser
from typing import Optional
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.exceptions import LeadNotFoundError, PersistenceError, LeadValidationError
from prospectflow.models.lead import SiteClassification
from prospectflow.models.contact_log import MessageType
from prospectflow.schemas.pipeline import SiteAnalysis
from prospectflow.services import lead_store
from prospectflow.services.events import EventQueue, PipelineEvent, LEAD_NEEDS_DECISION

logger = logging.getLogger(__name__)

BASE_SCORE = 20
SIGNAL_WEIGHTS = {
    "has_title": 20,
    "has_meta_description": 20,
    "has_h1": 15,
    "has_viewport": 15,
    "has_ssl": 10,
}
WEAK_THRESHOLD = 40
OK_THRESHOLD = 70

NO_SITE = SiteAnalysis(
    site_active=False,
    site_performance_score=0,
    site_indexed=False,
    site_classification=SiteClassification.NO_SITE,
)
UNREACHABLE = SiteAnalysis(
    site_active=False,
    site_performance_score=0,
    site_indexed=False,
    site_classification=SiteClassification.WEAK_SITE,
)


@dataclass(frozen=True)
class SiteSignals:
    has_title: bool = False
    has_meta_description: bool = False
    has_h1: bool = False
    has_viewport: bool = False
    has_ssl: bool = False
    has_noindex: bool = False


@dataclass(frozen=True)
class FetchResult:
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class _SignalExtractor(HTMLParser):
    def __init__(self):
        super().__init__()
        self.title = ""
        self.h1_text = ""
        self.meta: dict[str, str] = {}
        self._in_title = False
        self._h1_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag == "title":
            self._in_title = True
        elif tag == "h1":
            self._h1_depth += 1
        elif tag == "meta":
            attrs = {k.lower(): (v or "") for k, v in attrs}
            name = attrs.get("name", "").strip().lower()
            if name:
                self.meta[name] = attrs.get("content", "")

    def handle_startendtag(self, tag, attrs):
        # <meta ... /> and friends
        self.handle_starttag(tag, attrs)
        if tag in ("title", "h1"):
            self.handle_endtag(tag)

    def handle_endtag(self, tag):
        if tag == "title":
            self._in_title = False
        elif tag == "h1" and self._h1_depth > 0:
            self._h1_depth -= 1

    def handle_data(self, data):
        if self._in_title:
            self.title += data.strip()
        if self._h1_depth:
            self.h1_text += data.strip()


def extract_signals(html: str, url: str) -> SiteSignals:
    extractor = _SignalExtractor()
    extractor.feed(html)
    extractor.close()
    robots = extractor.meta.get("robots", "").lower()
    return SiteSignals(
        has_title=bool(extractor.title),
        has_meta_description="description" in extractor.meta,
        has_h1=bool(extractor.h1_text),
        has_viewport="viewport" in extractor.meta,
        has_ssl=url.lower().startswith("https://"),
        has_noindex="noindex" in robots,
    )


def score_signals(signals: SiteSignals) -> int:
    score = BASE_SCORE
    for name, weight in SIGNAL_WEIGHTS.items():
        if getattr(signals, name):
            score += weight
    return score


def classify_score(score: int) -> SiteClassification:
    if score < WEAK_THRESHOLD:
        return SiteClassification.WEAK_SITE
    if score < OK_THRESHOLD:
        return SiteClassification.SITE_WITHOUT_SEO
    return SiteClassification.SITE_OK


class SiteFetcher:
    """One timed GET per call. Raises httpx.HTTPError on network failure or timeout."""

    def __init__(self, timeout: float = 15.0, user_agent: str = "ProspectFlow/1.0",
                 transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    async def fetch(self, url: str) -> FetchResult:
        async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout, transport=self.transport) as client:
            resp = await client.get(url, headers={
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
            })
            return FetchResult(status_code=resp.status_code, text=resp.text)


async def analyze_site(website: Optional[str], fetcher: SiteFetcher) -> SiteAnalysis:
    """Classify one website. ``None`` means no site and makes no network call."""
    if not website:
        return NO_SITE

    try:
        response = await fetcher.fetch(website)
    except Exception as e:
        logger.info("Site %s unreachable (%s)", website, str(e)[:100] or type(e).__name__)
        return UNREACHABLE

    if not response.ok:
        logger.info("Site %s returned status %d", website, response.status_code)
        return UNREACHABLE

    signals = extract_signals(response.text, website)
    score = score_signals(signals)
    return SiteAnalysis(
        site_active=True,
        site_performance_score=score,
        site_indexed=not signals.has_noindex,
        site_classification=classify_score(score),
    )


async def classify_lead(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    fetcher: SiteFetcher,
    events: EventQueue | None = None,
    website: str | None = None,
) -> SiteAnalysis:
    """Analyse a lead's site and persist the result with its analysis date.

    When the site is anything but ``site_ok`` a single "needs decision" event
    is emitted for the initial message; pass ``events=None`` to skip it.
    """
    lead = await lead_store.get_lead(db, tenant_id, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead not found: {lead_id}")

    target = website or lead.website
    logger.info("Analyzing site for lead %s: %s", lead_id, target)
    analysis = await analyze_site(target, fetcher)

    await lead_store.update_lead(db, tenant_id, lead_id, {
        **analysis.model_dump(),
        "site_analysis_date": datetime.utcnow(),
    })

    if events is not None and analysis.site_classification != SiteClassification.SITE_OK:
        logger.info("Requesting decision for lead %s (classification: %s)",
                    lead_id, analysis.site_classification.value)
        try:
            events.emit(PipelineEvent(
                kind=LEAD_NEEDS_DECISION,
                tenant_id=tenant_id,
                lead_id=lead_id,
                payload={"message_type": MessageType.INITIAL.value, "use_ai_personalization": True},
            ))
        except Exception as e:
            logger.error("Failed to request decision for lead %s: %s", lead_id, e)

    return analysis


async def classify_batch(
    db: AsyncSession,
    tenant_id: UUID,
    limit: int,
    fetcher: SiteFetcher,
) -> dict:
    """Analyse up to ``limit`` leads that have a website and were never analysed.

    Leads are processed one after another; a lead whose result cannot be
    stored is reported in ``failures`` and the batch carries on.
    """
    leads = await lead_store.find_leads(db, tenant_id, needs_analysis=True, limit=limit)
    logger.info("Analyzing %d sites in batch mode for tenant %s", len(leads), tenant_id)

    results = []
    failures = []
    for lead_id, website in [(lead.id, lead.website) for lead in leads]:
        analysis = await analyze_site(website, fetcher)
        try:
            await lead_store.update_lead(db, tenant_id, lead_id, {
                **analysis.model_dump(),
                "site_analysis_date": datetime.utcnow(),
            })
        except (PersistenceError, LeadNotFoundError, LeadValidationError) as e:
            logger.error("Failed to update lead %s: %s", lead_id, e)
            failures.append({"id": str(lead_id), "error": str(e)})
            continue
        results.append({"id": str(lead_id), **analysis.model_dump(mode="json")})

    return {"analyzed": len(results), "results": results, "failures": failures}
