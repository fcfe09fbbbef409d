"""
Resolution of recognized entities to canonical values.

- Dates:          spaCy DATE/CARDINAL/EVENT entities and decade mentions in
                  the transcript -> Year ('1965') and Decade ('1960')
- Organizations:  -> organization id from the lookup table
- US states:      -> two-letter state code
- Countries:      locations not resolved as US states -> country code
"""

import re
from typing import Iterable, List, Tuple

from archive_core.database.models import NamedEntityType
from archive_core.utils.logger import setup_worker_logger

from .entities import LOCATION, ORGANIZATION, RecognizedEntity
from .lookups import EntityLookups

logger = setup_worker_logger('resolvers')

MIN_YEAR = 1500
MAX_YEAR = 2199

DATE_LABELS = {'DATE', 'CARDINAL', 'EVENT'}

_FULL_YEAR = re.compile(r"(?<![\d'$])([12]\d{3})(s?)(?![\d%])")
_SHORT_YEAR = re.compile(r"(?<![\w])'(\d{2})(s?)(?![\d\"'])")
_DECADE_IN_TEXT = re.compile(r"(?<![\d'$])([12]\d{2}0)s(?!\w)")


def _unique(values: Iterable) -> List:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def extract_year_references(text: str) -> List[str]:
    """Year ('1965') and decade ('1960s') references in a piece of text.

    Two-digit forms ('65, '60s) are read as twentieth century.
    """
    references = []
    for match in _FULL_YEAR.finditer(text):
        year = int(match.group(1))
        if MIN_YEAR <= year <= MAX_YEAR:
            references.append(match.group(1) + match.group(2))
    for match in _SHORT_YEAR.finditer(text):
        references.append(f"19{match.group(1)}{match.group(2)}")
    return references


def resolve_dates(spacy_entities: Iterable[RecognizedEntity], transcript: str) -> List[str]:
    """Distinct date references from spaCy entities plus decade mentions in the transcript."""
    references = []
    for entity in spacy_entities:
        if entity.label.upper() in DATE_LABELS:
            references += extract_year_references(entity.text)

    for match in _DECADE_IN_TEXT.finditer(transcript or ""):
        year = int(match.group(1))
        if MIN_YEAR <= year <= MAX_YEAR:
            references.append(f"{match.group(1)}s")

    return _unique(references)


def date_entities(references: Iterable[str]) -> List[Tuple[NamedEntityType, str]]:
    """Year and decade entities for date references; decades ('1960s') give only a decade."""
    entities = []
    for reference in references:
        if not re.fullmatch(r"[12]\d{3}s?", reference):
            continue
        if len(reference) == 4:
            entities.append((NamedEntityType.YEAR, reference))
        entities.append((NamedEntityType.DECADE, f"{reference[:3]}0"))
    return _unique(entities)


def resolve_organizations(entities: Iterable[RecognizedEntity], lookups: EntityLookups) -> List[str]:
    """Distinct organization ids for organization entities found in the lookup table."""
    resolved = []
    for entity in entities:
        if entity.kind != ORGANIZATION:
            continue
        org_id = lookups.organization_id(entity.text)
        if org_id:
            resolved.append(org_id)
    return _unique(resolved)


def _candidates(text: str) -> List[str]:
    """The full location text, then its last comma-separated part ('Chicago, Illinois' -> 'Illinois')."""
    candidates = [text]
    if ',' in text:
        tail = text.rsplit(',', 1)[1].strip()
        if tail:
            candidates.append(tail)
    return candidates


def resolve_us_states(
    entities: Iterable[RecognizedEntity],
    lookups: EntityLookups
) -> Tuple[List[str], List[RecognizedEntity]]:
    """Resolve location entities to state codes.

    Returns:
        (distinct state codes, location entities that did not resolve)
    """
    states = []
    unresolved = []
    for entity in entities:
        if entity.kind != LOCATION:
            continue
        alpha = None
        for candidate in _candidates(entity.text):
            alpha = lookups.state_alpha(candidate)
            if alpha:
                break
        if alpha:
            states.append(alpha)
        else:
            unresolved.append(entity)
    return _unique(states), unresolved


def resolve_countries(entities: Iterable[RecognizedEntity], lookups: EntityLookups) -> List[str]:
    """Distinct country codes for locations found in the country table."""
    codes = []
    for entity in entities:
        for candidate in _candidates(entity.text):
            code = lookups.country_code(candidate)
            if code:
                codes.append(code)
                break
    return _unique(codes)


def resolve_all(
    spacy_entities: List[RecognizedEntity],
    merged_entities: List[RecognizedEntity],
    transcript: str,
    lookups: EntityLookups
) -> List[Tuple[NamedEntityType, str]]:
    """Every canonical entity for a segment, in insertion order."""
    dates = date_entities(resolve_dates(spacy_entities, transcript))
    logger.info(f"{len(dates)} date entities resolved.")

    organizations = resolve_organizations(merged_entities, lookups)
    logger.info(f"{len(organizations)} organizational entities resolved.")

    states, unresolved = resolve_us_states(merged_entities, lookups)
    logger.info(f"{len(states)} domestic locations resolved.")

    countries = resolve_countries(unresolved, lookups)
    logger.info(f"{len(countries)} international locations resolved.")

    return (
        dates
        + [(NamedEntityType.ORGANIZATION, org) for org in organizations]
        + [(NamedEntityType.US_STATE, state) for state in states]
        + [(NamedEntityType.COUNTRY, code) for code in countries]
    )
