"""Merge per-source partial records into one record per state.

Legal information is merged field by field: scalars take the first non-empty
value in source-priority order, lists are concatenated in that order and
deduplicated on each item's natural key (first occurrence kept), and dated
lists are sorted newest first. Clinics are independent entities, so they are
only deduplicated as whole records.
"""

import re
from datetime import date, datetime
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar

from hera.schemas.records import (
    ClinicRecord,
    EmergencyContact,
    HealthDeptInfo,
    LegalInfoPartial,
    LegalInfoRecord,
    LegalUpdate,
)
from hera.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

# Source tags, highest priority first
SOURCE_PRIORITY = (
    "planned_parenthood",
    "aclu",
    "guttmacher",
    "state_gov",
    "kff",
    "nwlc",
    "state_resources",
    "news",
    "ai",
    "fallback",
)

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b. %d, %Y",
    "%d %B %Y",
    "%B %Y",
    "%b %Y",
    "%Y-%m",
    "%Y",
)


def normalize_text(value: str) -> str:
    """Collapse whitespace and case-fold."""
    return " ".join(value.split()).casefold()


def phone_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def parse_date(value: Optional[str]) -> Optional[date]:
    """Best-effort parse of the date strings sources publish; None if unrecognised."""
    if not value:
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def sort_by_date_desc(items: Sequence[T], get_date: Callable[[T], str], today: Optional[date] = None) -> List[T]:
    """Newest first; unparseable dates count as ``today``. Ties keep their order."""
    today = today or date.today()

    def key(item: T) -> date:
        return parse_date(get_date(item)) or today

    return sorted(items, key=key, reverse=True)


def dedupe(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Drop items whose key was already seen, keeping the first occurrence."""
    seen = set()
    unique = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        unique.append(item)
    return unique


def _update_key(update: LegalUpdate) -> Hashable:
    return (update.date.strip(), normalize_text(update.description))


def _contact_key(contact: EmergencyContact) -> Hashable:
    return (normalize_text(contact.name), phone_digits(contact.phone))


# Natural key per list field
LIST_KEYS: Dict[str, Callable[[object], Hashable]] = {
    "restrictions": normalize_text,
    "requirements": normalize_text,
    "recent_updates": _update_key,
    "source_urls": lambda url: url,
    "official_documents": lambda doc: doc.url,
    "legal_resources": lambda resource: resource.url,
    "news_articles": lambda article: article.url,
    "emergency_contacts": _contact_key,
}

DATED_FIELDS = {
    "recent_updates": lambda update: update.date,
    "news_articles": lambda article: article.date,
}


def source_rank(source: str) -> int:
    try:
        return SOURCE_PRIORITY.index(source)
    except ValueError:
        return len(SOURCE_PRIORITY)


def merge_list_field(name: str, lists: Iterable[Optional[list]], today: Optional[date] = None) -> list:
    """Concatenate, dedupe on the field's natural key, and date-sort where applicable."""
    combined = [item for values in lists if values for item in values]
    merged = dedupe(combined, LIST_KEYS[name])
    if name in DATED_FIELDS:
        merged = sort_by_date_desc(merged, DATED_FIELDS[name], today=today)
    return merged


def _first_non_empty(values: Iterable[Optional[str]]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value
    return None


def merge_health_dept_info(infos: Iterable[Optional[HealthDeptInfo]]) -> HealthDeptInfo:
    """Each sub-field independently takes the first non-empty value."""
    infos = [info for info in infos if info is not None]
    return HealthDeptInfo(
        name=_first_non_empty(info.name for info in infos),
        website=_first_non_empty(info.website for info in infos),
        phone=_first_non_empty(info.phone for info in infos),
        email=_first_non_empty(info.email for info in infos),
    )


def merge_legal_partials(
    state: str,
    partials: Iterable[LegalInfoPartial],
    today: Optional[date] = None,
) -> LegalInfoRecord:
    """Merge every partial for ``state`` into one record.

    Partials are ordered by source priority before merging (stable, so
    partials from the same source keep their given order).

    Args:
        state: State name the partials describe
        partials: Per-source contributions, any order
        today: Date used for entries whose date cannot be parsed

    Returns:
        The merged record; empty lists where no source contributed
    """
    ordered = sorted(partials, key=lambda p: source_rank(p.source))

    fields = {
        name: merge_list_field(name, (getattr(p, name) for p in ordered), today=today)
        for name in LIST_KEYS
    }

    record = LegalInfoRecord(
        state=state,
        state_website=_first_non_empty(p.state_website for p in ordered),
        additional_notes=_first_non_empty(p.additional_notes for p in ordered),
        health_dept_info=merge_health_dept_info(p.health_dept_info for p in ordered),
        **fields,
    )

    LOGGER.debug(
        f"Merged {len(ordered)} partials for {state}",
        extra={
            "state": state,
            "sources": [p.source for p in ordered],
            "restrictions": len(record.restrictions),
            "requirements": len(record.requirements),
        },
    )
    return record


def merge_into(base: LegalInfoRecord, addition: LegalInfoPartial, today: Optional[date] = None) -> LegalInfoRecord:
    """Union ``addition`` into ``base`` with ``base`` entries first.

    Every list in the result is a superset of the same list in ``base``.
    Scalars from ``addition`` only fill fields that ``base`` left empty.
    """
    fields = {
        name: merge_list_field(name, (getattr(base, name), getattr(addition, name)), today=today)
        for name in LIST_KEYS
    }
    return LegalInfoRecord(
        state=base.state,
        state_website=_first_non_empty((base.state_website, addition.state_website)),
        additional_notes=_first_non_empty((base.additional_notes, addition.additional_notes)),
        health_dept_info=merge_health_dept_info((base.health_dept_info, addition.health_dept_info)),
        **fields,
    )


def clinic_key(clinic: ClinicRecord) -> Hashable:
    return (normalize_text(clinic.name), normalize_text(clinic.address))


def dedupe_clinics(clinics: Iterable[ClinicRecord], state: Optional[str] = None) -> List[ClinicRecord]:
    """Whole-record dedup on normalized name and address; first occurrence wins.

    When ``state`` is given, clinics reported for another state are dropped.
    """
    clinics = list(clinics)
    if state is not None:
        wanted = normalize_text(state)
        kept = [c for c in clinics if normalize_text(c.state) == wanted]
        if len(kept) != len(clinics):
            LOGGER.info(f"Dropped {len(clinics) - len(kept)} clinics outside {state}")
        clinics = kept
    return dedupe(clinics, clinic_key)
