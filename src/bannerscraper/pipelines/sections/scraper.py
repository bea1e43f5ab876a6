"""
Scraper for Banner 9 section data.

Fetches:
- All requested terms
- All subjects and section stubs for each term
- Section details (seats, class details, attributes, meeting times)
- One course record per unique course (description, prereqs, coreqs)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ...collectors.banner_client import BannerClient, get_term_listing
from ...core.config import settings
from .aggregate import collapse_same_courses
from .details import copy_section_as_class, most_details, strip_section_details
from .errors import NoSubjectsError, NoTermsError
from .scheduler import bounded_map
from .schemas import (
    CatalogSchema,
    CollegeSchema,
    SectionDetailsSchema,
    SectionStubSchema,
    SubjectSchema,
    TermSchema,
)
from .subjects import SubjectAbbreviationTable
from .terms import scrape_term, select_terms, serialize_terms_list

logger = logging.getLogger(__name__)


def get_all_terms(
    term_ids: Optional[List[str]] = None,
    num_terms: int = settings.num_terms,
) -> List[TermSchema]:
    """
    Fetch and serialize the term listing.

    Args:
        term_ids: Optional list of term codes to keep (e.g. ["202030"])
        num_terms: How many recent terms to ask Banner for

    Returns:
        List of TermSchema objects
    """
    terms = serialize_terms_list(get_term_listing(num_terms))
    return select_terms(terms, term_ids)


def build_subject_tables(subjects: List[SubjectSchema]) -> Dict[str, SubjectAbbreviationTable]:
    """One abbreviation table per term."""
    by_term: Dict[str, List[SubjectSchema]] = {}
    for subject in subjects:
        by_term.setdefault(subject.term_id, []).append(subject)
    return {
        term_id: SubjectAbbreviationTable.from_subjects(term_subjects)
        for term_id, term_subjects in by_term.items()
    }


async def scrape_catalog(
    client: BannerClient,
    terms: List[TermSchema],
    max_concurrent: int = settings.max_concurrent_sections,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> CatalogSchema:
    """
    Scrape every section of the given terms into one catalog.

    Raises:
        NoTermsError: terms is empty
        NoSubjectsError: no term returned any subject
    """
    if not terms:
        raise NoTermsError("No terms to scrape")
    logger.info("Scraping terms %s", [term.term_id for term in terms])

    per_term = await asyncio.gather(*[scrape_term(client, term) for term in terms])

    all_stubs: List[SectionStubSchema] = []
    all_subjects: List[SubjectSchema] = []
    for stubs, subjects in per_term:
        all_stubs.extend(stubs)
        all_subjects.extend(subjects)

    subject_tables = build_subject_tables(all_subjects)
    if not any(len(table) for table in subject_tables.values()):
        raise NoSubjectsError(
            f"No subjects resolvable for terms {[term.term_id for term in terms]}"
        )
    for term in terms:
        if term.term_id not in subject_tables:
            logger.error("No subjects for term %s, prereqs will be empty", term.term_id)

    logger.info("Scraping %d sections", len(all_stubs))
    fetched = await bounded_map(
        all_stubs,
        lambda stub: most_details(client, stub),
        concurrency=max_concurrent,
        progress_callback=progress_callback,
    )
    sections: List[SectionDetailsSchema] = []
    for stub, details in zip(all_stubs, fetched):
        if details is None:
            logger.error("Dropping section %s/%s, details could not be fetched", stub.term, stub.crn)
            continue
        sections.append(details)
    logger.info("All sections scraped")

    async def fetch_course(details: SectionDetailsSchema):
        table = subject_tables.get(details.term_id) or SubjectAbbreviationTable()
        return await copy_section_as_class(client, details, table)

    classes = await collapse_same_courses(sections, fetch_course, concurrency=max_concurrent)

    return CatalogSchema(
        colleges=[
            CollegeSchema(host=settings.host, title=settings.college_title, url=settings.host)
        ],
        terms=terms,
        subjects=all_subjects,
        classes=classes,
        sections=[strip_section_details(details) for details in sections],
    )


async def scrape_catalog_async(
    terms: List[TermSchema],
    max_concurrent: int = settings.max_concurrent_sections,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> CatalogSchema:
    async with BannerClient() as client:
        return await scrape_catalog(client, terms, max_concurrent, progress_callback)


def scrape_catalog_sync(
    terms: List[TermSchema],
    max_concurrent: int = settings.max_concurrent_sections,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> CatalogSchema:
    """
    Synchronous wrapper for scrape_catalog.

    Args:
        terms: Terms to scrape (see get_all_terms)
        max_concurrent: Maximum sections fetched at once across all terms
        progress_callback: Optional callback(completed, total) for progress updates
    """
    return asyncio.run(scrape_catalog_async(terms, max_concurrent, progress_callback))


def save_catalog(catalog: CatalogSchema, output_file: Optional[Path] = None) -> Path:
    path = Path(output_file) if output_file else settings.data_dir / "catalog.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(catalog.to_json_dict(), f, indent=2, default=str)
    logger.info("Saved %d classes / %d sections to %s", len(catalog.classes), len(catalog.sections), path)
    return path
