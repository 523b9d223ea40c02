"""Sources that contribute legal information for a state.

Each source returns a ``LegalInfoPartial`` tagged with its name. A field left
as ``None`` means the source has no opinion on it.
"""

import asyncio
from datetime import date
from enum import Enum
from typing import List, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from hera.pipeline.states import STATE_CODES
from hera.schemas.records import (
    EmergencyContact,
    HealthDeptInfo,
    LegalInfoPartial,
    LegalResource,
    LegalUpdate,
    NewsArticle,
    OfficialDocument,
)
from hera.sources.base import BaseSource, text_of
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

PLANNED_PARENTHOOD_LAWS_URL = "https://www.plannedparenthood.org/learn/abortion/abortion-laws"
ACLU_URL = "https://www.aclu.org/issues/reproductive-freedom/abortion"
GUTTMACHER_URL = "https://www.guttmacher.org/state-policy"
STATE_GOV_URL = "https://www.usa.gov/states-and-territories"
KFF_URL = "https://www.kff.org/womens-health-policy"
NWLC_URL = "https://nwlc.org/state-abortion-laws"
REUTERS_URL = "https://www.reuters.com/legal/government"
NPR_URL = "https://www.npr.org/sections/health-shots"
PROPUBLICA_URL = "https://www.propublica.org/topics/abortion"

NEWS_KEYWORDS = ("abortion", "reproductive")


class StateSlugStrategy(str, Enum):
    """How a state is named in the state-government directory path.

    ``PREFIX`` is the first two letters of the lowercase name, which collides
    for several states (Maine/Maryland/Massachusetts all become "ma").
    ``POSTAL`` uses the USPS code.
    """

    PREFIX = "prefix"
    POSTAL = "postal"

    def slug(self, state: str) -> str:
        if self is StateSlugStrategy.POSTAL and state in STATE_CODES:
            return STATE_CODES[state].lower()
        return state.lower()[:2]


def state_path(state: str) -> str:
    """Lowercase, hyphenated path segment ("New York" -> "new-york")."""
    return "-".join(state.lower().split())


class LegalSource(BaseSource[LegalInfoPartial]):
    """Base for legal-information sources.

    ``is_live`` is False for sources that never touch the network; they do
    not count as evidence that live sources found something.
    """

    is_live = True

    def partial(self, **fields) -> LegalInfoPartial:
        return LegalInfoPartial(source=self.name, **fields)

    def empty_result(self, state: str) -> LegalInfoPartial:
        return self.partial()


def _list_texts(soup: BeautifulSoup, selector: str) -> List[str]:
    return [text for text in (text_of(node) for node in soup.select(selector)) if text]


class PlannedParenthoodLegalSource(LegalSource):
    """Restrictions, requirements and dated updates from the state's abortion-laws page."""

    name = "planned_parenthood"

    async def fetch(self, state: str) -> LegalInfoPartial:
        soup = await self.fetch_html(f"{PLANNED_PARENTHOOD_LAWS_URL}/{state_path(state)}")

        updates = []
        for item in soup.select(".recent-updates .update-item"):
            update_date = text_of(item.select_one(".date"))
            description = text_of(item.select_one(".description"))
            if update_date and description:
                impact = text_of(item.select_one(".impact")) or "Impact under assessment"
                updates.append(LegalUpdate(date=update_date, description=description, impact=impact))

        return self.partial(
            restrictions=_list_texts(soup, ".abortion-laws-restrictions li"),
            requirements=_list_texts(soup, ".abortion-laws-requirements li"),
            recent_updates=updates,
            source_urls=[PLANNED_PARENTHOOD_LAWS_URL],
        )


class ACLUSource(LegalSource):
    name = "aclu"

    async def fetch(self, state: str) -> LegalInfoPartial:
        soup = await self.fetch_html(f"{ACLU_URL}/state/{state_path(state)}")
        return self.partial(
            restrictions=_list_texts(soup, ".restrictions li"),
            source_urls=[ACLU_URL],
        )


class GuttmacherSource(LegalSource):
    """Policy bullet points, split into requirements ("required"/"must") and restrictions."""

    name = "guttmacher"

    async def fetch(self, state: str) -> LegalInfoPartial:
        soup = await self.fetch_html(f"{GUTTMACHER_URL}/state/{state_path(state)}")

        requirements, restrictions = [], []
        for text in _list_texts(soup, ".policy-details li"):
            if "required" in text or "must" in text:
                requirements.append(text)
            else:
                restrictions.append(text)

        return self.partial(
            requirements=requirements,
            restrictions=restrictions,
            source_urls=[GUTTMACHER_URL],
        )


class StateGovernmentSource(LegalSource):
    """Official documents and health-department contacts from the state's usa.gov page."""

    name = "state_gov"

    def __init__(self, *args, slug_strategy: StateSlugStrategy = StateSlugStrategy.PREFIX, **kwargs):
        super().__init__(*args, **kwargs)
        self.slug_strategy = StateSlugStrategy(slug_strategy)

    def page_url(self, state: str) -> str:
        return f"{STATE_GOV_URL}/{self.slug_strategy.slug(state)}"

    async def fetch(self, state: str) -> LegalInfoPartial:
        page_url = self.page_url(state)
        soup = await self.fetch_html(page_url)
        return self.partial(
            official_documents=self._documents(soup),
            health_dept_info=self._health_dept(soup),
            state_website=page_url,
        )

    @staticmethod
    def _documents(soup: BeautifulSoup) -> List[OfficialDocument]:
        documents = []
        for link in soup.select('a[href*="health"], a[href*="law"], a[href*="statutes"]'):
            href = link.get("href", "")
            title = text_of(link)
            if not (href and title and (".pdf" in href or ".gov" in href)):
                continue
            documents.append(
                OfficialDocument(
                    title=title,
                    url=urljoin(STATE_GOV_URL, href),
                    type="guidance" if "health" in href else "legislation",
                )
            )
        return documents

    @staticmethod
    def _health_dept(soup: BeautifulSoup) -> Optional[HealthDeptInfo]:
        section = soup.select_one('div:-soup-contains("Department of Health")')
        if section is None:
            return None

        website = section.select_one('a[href*="health"]')
        info = HealthDeptInfo(
            name=text_of(section.select_one("h1, h2, h3")) or None,
            website=website.get("href") if website is not None else None,
            phone=text_of(section.select_one('a[href^="tel:"]')) or None,
            email=text_of(section.select_one('a[href^="mailto:"]')) or None,
        )
        return None if info.is_empty() else info


class ReferenceLinkSource(LegalSource):
    """A source whose state page is only recorded as a reference URL once it is reachable."""

    base_url = ""

    async def fetch(self, state: str) -> LegalInfoPartial:
        await self.fetch_text(f"{self.base_url}/state/{state_path(state)}")
        return self.partial(source_urls=[self.base_url])


class KFFSource(ReferenceLinkSource):
    name = "kff"
    base_url = KFF_URL


class NWLCSource(ReferenceLinkSource):
    name = "nwlc"
    base_url = NWLC_URL


NATIONAL_LEGAL_RESOURCES = [
    LegalResource(
        name="ACLU Legal Help",
        url="https://www.aclu.org/need-legal-help",
        description="Legal assistance and resources from the American Civil Liberties Union",
    ),
    LegalResource(
        name="National Abortion Federation Hotline Fund",
        url="https://prochoice.org/patients/naf-hotline/",
        description="Financial assistance and referrals for abortion care",
    ),
    LegalResource(
        name="If/When/How Legal Helpline",
        url="https://www.reprolegalhelpline.org",
        description="Confidential legal information about self-managed abortion",
    ),
    LegalResource(
        name="Indigenous Women Rising",
        url="https://www.iwrising.org/abortion-fund",
        description="Abortion fund and resources for Indigenous communities",
    ),
    LegalResource(
        name="Women's Law Project",
        url="https://www.womenslawproject.org/",
        description="Legal advocacy and resources for women's healthcare rights",
    ),
]

STATE_LEGAL_RESOURCES = {
    "California": [
        LegalResource(
            name="ACCESS Reproductive Justice",
            url="https://accessrj.org",
            description="California's reproductive justice organization providing resources and support",
        ),
        LegalResource(
            name="California Abortion Access",
            url="https://abortion.ca.gov",
            description="Official California state abortion information and resources",
        ),
    ],
    "New York": [
        LegalResource(
            name="New York Abortion Access Fund",
            url="https://www.nyaaf.org",
            description="Financial assistance for abortion care in New York",
        ),
        LegalResource(
            name="New York Civil Liberties Union",
            url="https://www.nyclu.org/en/issues/reproductive-rights",
            description="Legal resources and advocacy for reproductive rights",
        ),
    ],
    "Texas": [
        LegalResource(
            name="Jane's Due Process",
            url="https://janesdueprocess.org",
            description="Legal help for young people seeking abortion care in Texas",
        ),
        LegalResource(
            name="Fund Texas Choice",
            url="https://fundtexaschoice.org",
            description="Travel and logistical support for abortion access",
        ),
    ],
}

NATIONAL_EMERGENCY_CONTACTS = [
    EmergencyContact(name="National Abortion Federation Hotline", phone="1-800-772-9100", available_24x7=True),
    EmergencyContact(name="Planned Parenthood Direct Support", phone="1-800-230-PLAN", available_24x7=True),
]


class StateResourcesSource(LegalSource):
    """Curated legal resources and hotlines; no network access."""

    name = "state_resources"
    is_live = False

    async def fetch(self, state: str) -> LegalInfoPartial:
        bar_association = LegalResource(
            name="State Bar Association Legal Aid",
            url=f"https://{state.lower().replace(' ', '')}.statebarfoundation.org/legal-aid",
            description="Free or low-cost legal services through the state bar association",
        )
        return self.partial(
            legal_resources=[bar_association, *NATIONAL_LEGAL_RESOURCES, *STATE_LEGAL_RESOURCES.get(state, [])],
            emergency_contacts=list(NATIONAL_EMERGENCY_CONTACTS),
        )


class NewsFeed:
    """One news listing page and how to read its articles."""

    def __init__(self, source: str, url: str, title_selector: str, keyword_filter: bool = True):
        self.source = source
        self.url = url
        self.title_selector = title_selector
        self.keyword_filter = keyword_filter

    def articles(self, soup: BeautifulSoup, state: str, today: date) -> List[NewsArticle]:
        articles = []
        for node in soup.select("article"):
            title = text_of(node.select_one(self.title_selector))
            link = node.select_one("a[href]")
            if not title or link is None:
                continue
            if self.keyword_filter and not any(word in title.lower() for word in NEWS_KEYWORDS):
                continue

            time_node = node.select_one("time")
            published = time_node.get("datetime") if time_node is not None else None
            articles.append(
                NewsArticle(
                    title=title,
                    url=urljoin(self.url, link["href"]),
                    source=self.source,
                    date=published or today.isoformat(),
                    summary=text_of(node.select_one("p")),
                    state=state,
                )
            )
        return articles


NEWS_FEEDS = (
    NewsFeed("Reuters", REUTERS_URL, "h3"),
    NewsFeed("NPR", NPR_URL, "h2"),
    NewsFeed("ProPublica", PROPUBLICA_URL, "h3, h2", keyword_filter=False),
)


class NewsSource(LegalSource):
    """Recent reproductive-health coverage from national outlets.

    Feeds are fetched concurrently; an unreachable feed only loses its own
    articles.
    """

    name = "news"

    def __init__(self, *args, feeds=NEWS_FEEDS, **kwargs):
        super().__init__(*args, **kwargs)
        self.feeds = feeds

    async def _read_feed(self, feed: NewsFeed, state: str) -> List[NewsArticle]:
        try:
            soup = await self.fetch_html(feed.url)
        except httpx.HTTPError as e:
            LOGGER.warning(f"News feed {feed.source} unavailable: {e}", extra={"state": state})
            return []
        return feed.articles(soup, state, date.today())

    async def fetch(self, state: str) -> LegalInfoPartial:
        batches = await asyncio.gather(*(self._read_feed(feed, state) for feed in self.feeds))
        return self.partial(news_articles=[article for batch in batches for article in batch])
