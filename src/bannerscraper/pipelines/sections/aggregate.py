"""
Collapse section records into unique course records.

Sections are keyed by a structural class hash (host, term, subject, course
number). The first section seen for a hash starts the expensive course
fetch (description, prereqs, coreqs); every later one only adds its CRN.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .details import course_from_section
from .schemas import CourseSchema, SectionDetailsSchema

logger = logging.getLogger(__name__)

CourseFetcher = Callable[[SectionDetailsSchema], Awaitable[CourseSchema]]


def get_class_hash(host: str, term_id: str, subject: str, class_id: Optional[str]) -> str:
    """'neu.edu/202010/CS/2500'"""
    return "/".join([host, str(term_id), subject, str(class_id or "")])


def section_class_hash(section: SectionDetailsSchema) -> str:
    return get_class_hash(section.host, section.term_id, section.subject, section.class_id)


class CourseAggregator:
    """
    Run-scoped course table.

    The check-then-insert in add_section() never awaits, so on a single
    event loop it is atomic and at most one course fetch starts per hash.
    """

    def __init__(self, fetch_course: CourseFetcher, concurrency: Optional[int] = None):
        self.fetch_course = fetch_course
        self._semaphore = asyncio.Semaphore(concurrency) if concurrency else None
        self._pending: Dict[str, "asyncio.Future[CourseSchema]"] = {}
        self._crns: Dict[str, List[str]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    async def _fetch(self, section: SectionDetailsSchema) -> CourseSchema:
        try:
            if self._semaphore is None:
                return await self.fetch_course(section)
            async with self._semaphore:
                return await self.fetch_course(section)
        except Exception:
            logger.exception(
                "Course fetch for %s failed, keeping it without desc/prereqs/coreqs",
                section_class_hash(section),
            )
            return course_from_section(section)

    def add_section(self, section: SectionDetailsSchema) -> bool:
        """
        Record one section. Must be called from inside the event loop.

        Returns:
            True when this section was the first for its course
        """
        key = section_class_hash(section)
        first_seen = key not in self._pending
        if first_seen:
            self._pending[key] = asyncio.ensure_future(self._fetch(section))
            self._crns[key] = []
        self._crns[key].append(section.crn)
        return first_seen

    async def results(self) -> List[CourseSchema]:
        """Wait for every course fetch and attach the collected CRNs."""
        courses = await asyncio.gather(*self._pending.values())
        for key, course in zip(self._pending, courses):
            course.crns = list(self._crns[key])
        return list(courses)


async def collapse_same_courses(
    sections: List[SectionDetailsSchema],
    fetch_course: CourseFetcher,
    concurrency: Optional[int] = None,
) -> List[CourseSchema]:
    """
    Every unique course in sections, each with the CRNs of its sections.

    Args:
        sections: results of most_details(), in catalog order
        fetch_course: builds the course record from its first section
        concurrency: optional ceiling on course fetches in flight
    """
    aggregator = CourseAggregator(fetch_course, concurrency)
    for section in sections:
        aggregator.add_section(section)
    courses = await aggregator.results()
    logger.info("Collapsed %d sections into %d courses", len(sections), len(courses))
    return courses
