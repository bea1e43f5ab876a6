"""
Per-term requests: session setup, paged section search, subject listing.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ...collectors.banner_client import BannerClient, BannerResponse, SessionContext
from ...core.config import settings
from .schemas import SectionStubSchema, SubjectSchema, TermSchema

logger = logging.getLogger(__name__)

TERM_SEARCH_URL = f"{settings.banner_base_url}/term/search"
SEARCH_RESULTS_URL = f"{settings.banner_base_url}/searchResults/searchResults"
SUBJECTS_URL = f"{settings.banner_base_url}/classSearch/get_subject"


def serialize_terms_list(raw_terms: List[Dict[str, Any]], host: str = settings.host) -> List[TermSchema]:
    return [TermSchema.from_api(term, host) for term in raw_terms]


def page_offsets(total_count: int, page_size: int = settings.courses_per_request) -> List[int]:
    """[0, page_size, 2 * page_size, ...] covering [0, total_count)"""
    return list(range(0, max(0, total_count), page_size))


def _search_params(term_id: str, offset: int, page_size: int) -> Dict[str, Any]:
    return {
        "txt_subject": "",
        "txt_courseNumber": "",
        "txt_term": term_id,
        "startDatepicker": "",
        "endDatepicker": "",
        "pageOffset": offset,
        "pageMaxSize": page_size,
        "sortColumn": "subjectDescription",
        "sortDirection": "asc",
    }


async def establish_session(client: BannerClient, term_id: str) -> SessionContext:
    """
    'Click continue' on the term search page to get session cookies.

    A registration-not-allowed answer is logged and scraping carries on
    with whatever cookies came back.
    """
    response = await client.post(
        TERM_SEARCH_URL + "?mode=search",
        data={
            "term": term_id,
            "studyPath": "",
            "studyPathText": "",
            "startDatepicker": "",
            "endDatepicker": "",
        },
    )
    if response.json_body().get("regAllowed") is False:
        logger.error(
            "Failed to get cookies (from clickContinue) for the term %s: %s %r",
            term_id, response.status_code, response.body,
        )
    return dict(response.cookies)


async def _search_page(
    client: BannerClient,
    term_id: str,
    cookies: SessionContext,
    offset: int,
    page_size: int,
) -> BannerResponse:
    return await client.get(
        SEARCH_RESULTS_URL,
        params=_search_params(term_id, offset, page_size),
        cookies=cookies,
    )


async def requests_sections_for_term(client: BannerClient, term_id: str) -> List[SectionStubSchema]:
    """
    Gets the section stubs for every section in a term.

    1. get the cookies
    2. get the total number of sections with a tiny page
    3. request every page of courses_per_request sections at once
    4. merge the pages in offset order
    """
    cookies = await establish_session(client, term_id)

    count_response = await _search_page(
        client, term_id, cookies, 0, settings.total_count_page_size
    )
    count_body = count_response.json_body()
    if count_body.get("success") is False:
        logger.error("Could not get sections from %s: %r", term_id, count_response.body)
    try:
        total_count = int(count_body.get("totalCount") or 0)
    except (TypeError, ValueError):
        logger.error("Bad totalCount for %s: %r", term_id, count_body.get("totalCount"))
        total_count = 0

    pages = await asyncio.gather(*[
        _search_page(client, term_id, cookies, offset, settings.courses_per_request)
        for offset in page_offsets(total_count)
    ])

    stubs: List[SectionStubSchema] = []
    for offset, page in zip(page_offsets(total_count), pages):
        body = page.json_body()
        if body.get("success") is False:
            logger.error(
                "One of the searchResults requests for %s (offset %d) was unsuccessful",
                term_id, offset,
            )
        for section in body.get("data") or []:
            stubs.append(SectionStubSchema.from_api(section))

    logger.info("Term %s: %d of %d sections listed", term_id, len(stubs), total_count)
    return stubs


async def request_subjects(client: BannerClient, term: TermSchema) -> List[SubjectSchema]:
    response = await client.get(
        SUBJECTS_URL,
        params={
            "searchTerm": "",
            "term": term.term_id,
            "offset": 1,
            "max": settings.subjects_per_request,
        },
    )
    return process_subject_list_response(response, term)


def process_subject_list_response(response: BannerResponse, term: TermSchema) -> List[SubjectSchema]:
    if response.status_code != 200:
        logger.error("Problem with request for subjects %s", response.url)
    if not isinstance(response.body, list):
        return []
    return [
        SubjectSchema(
            subject=str(subject.get("code", "")),
            text=str(subject.get("description", "")),
            term_id=term.term_id,
            host=term.host,
        )
        for subject in response.body
    ]


async def scrape_term(
    client: BannerClient, term: TermSchema
) -> Tuple[List[SectionStubSchema], List[SubjectSchema]]:
    """Sections and subjects for one term, requested concurrently."""
    sections, subjects = await asyncio.gather(
        requests_sections_for_term(client, term.term_id),
        request_subjects(client, term),
    )
    return sections, subjects


def select_terms(terms: List[TermSchema], term_ids: Optional[List[str]] = None) -> List[TermSchema]:
    if not term_ids:
        return terms
    wanted = set(term_ids)
    return [term for term in terms if term.term_id in wanted]
