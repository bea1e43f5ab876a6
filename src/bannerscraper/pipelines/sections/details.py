"""
Per-section detail fetching from the Banner searchResults endpoints.

A "section" is one offering of a course, identified by (term, crn). For each
section four requests run concurrently:
- getEnrollmentInfo      seats and waitlist counts
- getClassDetails        credits, name, campus, schedule type
- getSectionAttributes   raw attribute strings (honors detection)
- getFacultyMeetingTimes meeting blocks, retried because it is flaky

The per-course requests (description, prerequisites, corequisites) live here
too but are only issued once per unique course by the aggregator.
"""

import asyncio
import logging
import random
import re
import time
from html import unescape
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString

from ...collectors.banner_client import BannerClient, BannerResponse
from ...core.config import settings
from .errors import SeatInfoNotFoundError
from .meetings import parse_meetings
from .prereqs import build_requirement_tree
from .schemas import (
    BooleanExpr,
    ClassDetailsSchema,
    CourseSchema,
    SectionDetailsSchema,
    SectionSchema,
    SectionSeatsSchema,
    SectionStubSchema,
)
from .subjects import SubjectAbbreviationTable
from .tables import parse_first_table

logger = logging.getLogger(__name__)

SEARCH_RESULTS_URL = f"{settings.banner_base_url}/searchResults"

# field -> label shown on the getEnrollmentInfo page
SEAT_LABELS = {
    "seats_capacity": "Enrollment Maximum:",
    "seats_remaining": "Enrollment Seats Available:",
    "wait_capacity": "Waitlist Capacity:",
    "wait_remaining": "Waitlist Seats Available:",
}

MEETING_TIMES_MARKER = "fmt"


# ============================================================================
# DOM helpers
# ============================================================================


def _find_label(soup: BeautifulSoup, key: str):
    """Tag whose own text is exactly key, or None."""
    key = key.strip()
    text = soup.find(string=lambda s: isinstance(s, NavigableString) and s.strip() == key)
    return text.parent if text is not None else None


def extract_seats_from_dom(soup: BeautifulSoup, key: str) -> int:
    """
    Integer shown in the element after the label with text key.

    Raises:
        SeatInfoNotFoundError: label missing or value not a number
    """
    label = _find_label(soup, key)
    if label is None:
        raise SeatInfoNotFoundError(f'text "{key}" not found')
    value = label.find_next_sibling()
    match = re.search(r"-?\d+", value.get_text() if value is not None else "")
    if match is None:
        raise SeatInfoNotFoundError(f'no number after "{key}"')
    return int(match.group())


def extract_text_from_dom(soup: BeautifulSoup, key: str) -> Optional[str]:
    """Text node that follows the label with text key, or None."""
    label = _find_label(soup, key)
    if label is None:
        return None
    sibling = label.next_sibling
    if not isinstance(sibling, NavigableString):
        logger.warning("Expected a text node after %r, got %r", key, sibling)
        return sibling.get_text().strip() if sibling is not None else None
    return str(sibling).strip()


def _parse_credits(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = re.search(r"\d+(\.\d+)?", text)
    return int(float(match.group())) if match else None


# ============================================================================
# Serializers (response -> schema)
# ============================================================================


def serialize_seats(response: BannerResponse) -> SectionSeatsSchema:
    soup = BeautifulSoup(response.body or "", "html.parser")
    seats: Dict[str, int] = {}
    for field, label in SEAT_LABELS.items():
        try:
            value = extract_seats_from_dom(soup, label)
        except SeatInfoNotFoundError:
            logger.warning(
                'Problem when finding seat info: "%s" not found. POST %s %s. Assigning field to 0...',
                label,
                response.url,
                response.request_body,
            )
            value = 0
        if value < 0:
            logger.warning("Negative %s (%d) from POST %s, using 0", field, value, response.url)
            value = 0
        seats[field] = value
    return SectionSeatsSchema(**seats)


def serialize_class_details(response: BannerResponse) -> ClassDetailsSchema:
    soup = BeautifulSoup(response.body or "", "html.parser")

    credits_text = extract_text_from_dom(soup, "Credit Hours:")
    credits = _parse_credits(credits_text)
    if credits is None:
        logger.warning("No credit hours from POST %s %s", response.url, response.request_body)

    def by_id(element_id: str) -> Optional[str]:
        element = soup.find(id=element_id)
        return element.get_text().strip() if element is not None else None

    return ClassDetailsSchema(
        online=extract_text_from_dom(soup, "Campus:") == "Online",
        schedule_type=extract_text_from_dom(soup, "Schedule Type:"),
        subject=by_id("subject"),
        class_id=by_id("courseNumber"),
        name=by_id("courseTitle"),
        max_credits=credits,
        min_credits=credits,
    )


def serialize_attributes(response: BannerResponse) -> List[str]:
    """
    example output:
    ['Honors  GNHN', 'NUpath Natural/Designed World  NCND',
     'UG College of Science  UBSC']
    """
    soup = BeautifulSoup(response.body or "", "html.parser")
    return [element.get_text().strip() for element in soup.select(".attribute-text")]


def serialize_requirements(
    response: BannerResponse,
    subjects: SubjectAbbreviationTable,
) -> BooleanExpr:
    """Prerequisite or corequisite table -> BooleanExpr"""
    rows = parse_first_table(response.body if isinstance(response.body, str) else "")
    source = f"POST {response.url} {response.request_body}"
    return build_requirement_tree(rows, subjects, source)


def contains_honors(attributes: List[str]) -> bool:
    return any("honors" in attribute.lower() for attribute in attributes)


# ============================================================================
# Requests
# ============================================================================


async def search_results_post(client: BannerClient, endpoint: str, term_id: str, crn: str) -> BannerResponse:
    """POST .../searchResults/<endpoint> with term=...&courseReferenceNumber=..."""
    return await client.post(
        f"{SEARCH_RESULTS_URL}/{endpoint}",
        data={"term": term_id, "courseReferenceNumber": crn},
    )


async def get_seats(client: BannerClient, term_id: str, crn: str) -> SectionSeatsSchema:
    response = await search_results_post(client, "getEnrollmentInfo", term_id, crn)
    return serialize_seats(response)


async def get_class_details(client: BannerClient, term_id: str, crn: str) -> ClassDetailsSchema:
    response = await search_results_post(client, "getClassDetails", term_id, crn)
    return serialize_class_details(response)


async def get_section_attributes(client: BannerClient, term_id: str, crn: str) -> List[str]:
    response = await search_results_post(client, "getSectionAttributes", term_id, crn)
    return serialize_attributes(response)


def _retry_delay_seconds() -> float:
    """Uniform 1..max ms, so retries from many sections don't line up."""
    return (1 + round(random.random() * (settings.meeting_retry_max_delay_ms - 1))) / 1000


async def fetch_meeting_times(
    client: BannerClient,
    term_id: str,
    crn: str,
    max_retries: int = settings.meeting_max_retries,
) -> Optional[Dict[str, Any]]:
    """
    GET getFacultyMeetingTimes, retrying on a bad response.

    The endpoint sometimes answers with a spontaneous 302 to the login page
    or some other junk. Each attempt either succeeds (200 with an "fmt"
    field), or waits a random delay and tries again; after max_retries
    retries we give up and return None.
    """
    url = f"{SEARCH_RESULTS_URL}/getFacultyMeetingTimes"
    params = {"term": term_id, "courseReferenceNumber": crn}

    attempt = 0
    while True:
        response = await client.get(url, params=params, allow_redirects=False)
        body = response.json_body()
        if response.status_code == 200 and MEETING_TIMES_MARKER in body:
            return body

        if attempt >= max_retries:
            logger.error(
                "%d failed attempts to get meeting info from url: %s?term=%s&courseReferenceNumber=%s "
                "last response: %s %r",
                attempt + 1, url, term_id, crn, response.status_code, response.body,
            )
            return None

        delay = _retry_delay_seconds()
        if response.status_code == 302:
            logger.warning(
                "getFacultyMeetingTimes did a spontaneous 302 redirect to login page, "
                "trying again in %.3f seconds.", delay,
            )
        else:
            logger.warning(
                "getFacultyMeetingTimes resulted with an unknown status code: %s url: %s crn: %s "
                "response: %r trying again in %.3f seconds.",
                response.status_code, url, crn, response.body, delay,
            )
        await asyncio.sleep(delay)
        attempt += 1


async def get_meeting_times(client: BannerClient, term_id: str, crn: str):
    return parse_meetings(await fetch_meeting_times(client, term_id, crn))


async def get_description(client: BannerClient, term_id: str, crn: str) -> str:
    response = await search_results_post(client, "getCourseDescription", term_id, crn)
    body = response.body if isinstance(response.body, str) else ""
    # banner double encodes the description
    return unescape(unescape(body.strip()))


async def get_prereqs(
    client: BannerClient, term_id: str, crn: str, subjects: SubjectAbbreviationTable
) -> BooleanExpr:
    response = await search_results_post(client, "getSectionPrerequisites", term_id, crn)
    return serialize_requirements(response, subjects)


async def get_coreqs(
    client: BannerClient, term_id: str, crn: str, subjects: SubjectAbbreviationTable
) -> BooleanExpr:
    # some classes have 5 columns instead of 3, the row walk only reads by key
    response = await search_results_post(client, "getCorequisites", term_id, crn)
    return serialize_requirements(response, subjects)


# ============================================================================
# Section / course records
# ============================================================================


def section_url(term_id: str, crn: str) -> str:
    return f"{settings.classic_base_url}/bwckschd.p_disp_detail_sched?term_in={term_id}&crn_in={crn}"


async def most_details(client: BannerClient, stub: SectionStubSchema) -> SectionDetailsSchema:
    """
    Fetch everything about one section.

    The result still carries transient fields and should be passed to
    copy_section_as_class() and then strip_section_details().
    """
    term_id, crn = stub.term, stub.crn
    seats, class_details, attributes, meetings = await asyncio.gather(
        get_seats(client, term_id, crn),
        get_class_details(client, term_id, crn),
        get_section_attributes(client, term_id, crn),
        get_meeting_times(client, term_id, crn),
    )

    return SectionDetailsSchema(
        **seats.model_dump(),
        online=class_details.online,
        schedule_type=class_details.schedule_type,
        class_id=class_details.class_id,
        name=class_details.name,
        max_credits=class_details.max_credits,
        min_credits=class_details.min_credits,
        class_attributes=attributes,
        meetings=meetings,
        last_update_time=int(time.time() * 1000),
        crn=crn,
        term_id=term_id,
        # getClassDetails gives the long subject name, the stub has the code
        subject=stub.subject,
        host=settings.host,
    )


def strip_section_details(details: SectionDetailsSchema) -> SectionSchema:
    """Final section record: honors resolved, transient fields dropped."""
    data = details.model_dump(
        exclude={"class_attributes", "name", "max_credits", "min_credits"}
    )
    data["url"] = section_url(details.term_id, details.crn)
    data["honors"] = contains_honors(details.class_attributes)
    return SectionSchema(**data)


def course_from_section(
    details: SectionDetailsSchema,
    desc: str = "",
    prereqs: Optional[BooleanExpr] = None,
    coreqs: Optional[BooleanExpr] = None,
) -> CourseSchema:
    """Course record built from one of its sections; empty trees become None."""
    term_id = details.term_id
    base = settings.classic_base_url
    return CourseSchema(
        crns=[],
        class_attributes=list(details.class_attributes),
        desc=desc,
        class_id=details.class_id,
        pretty_url=(
            f"{base}/bwckctlg.p_disp_course_detail?"
            f"cat_term_in={term_id}&subj_code_in={details.subject}&crse_numb_in={details.class_id}"
        ),
        name=details.name,
        url=(
            f"{base}/bwckctlg.p_disp_listcrse?"
            f"term_in={term_id}&subj_in={details.subject}&crse_in={details.class_id}&schd_in=%"
        ),
        last_update_time=details.last_update_time,
        max_credits=details.max_credits,
        min_credits=details.min_credits,
        term_id=term_id,
        host=details.host,
        subject=details.subject,
        prereqs=None if prereqs is None or prereqs.is_empty() else prereqs,
        coreqs=None if coreqs is None or coreqs.is_empty() else coreqs,
    )


async def copy_section_as_class(
    client: BannerClient,
    details: SectionDetailsSchema,
    subjects: SubjectAbbreviationTable,
) -> CourseSchema:
    """
    Build the course record for the course a section belongs to.

    Makes the description, prerequisite and corequisite requests. crns
    starts out empty; the aggregator fills it in.
    """
    term_id, crn = details.term_id, details.crn
    description, prereqs, coreqs = await asyncio.gather(
        get_description(client, term_id, crn),
        get_prereqs(client, term_id, crn, subjects),
        get_coreqs(client, term_id, crn, subjects),
    )
    return course_from_section(details, description, prereqs, coreqs)
