"""
Sections pipeline for Banner registration data.

This pipeline fetches and normalizes:
- Terms and subjects
- Sections with seats, attributes and meeting times
- Unique courses with descriptions and prerequisite trees
"""

from .schemas import (
    BooleanExpr,
    CatalogSchema,
    CourseRef,
    CourseSchema,
    MeetingSchema,
    SectionSchema,
    SectionStubSchema,
    SubjectSchema,
    TermSchema,
    ExamScoreRef,
)
from .tables import parse_table
from .prereqs import build_requirement_tree
from .subjects import SubjectAbbreviationTable
from .scheduler import bounded_map
from .aggregate import CourseAggregator, collapse_same_courses
from .scraper import get_all_terms, save_catalog, scrape_catalog, scrape_catalog_sync

__all__ = [
    # Schemas
    "BooleanExpr",
    "CatalogSchema",
    "CourseRef",
    "CourseSchema",
    "MeetingSchema",
    "SectionSchema",
    "SectionStubSchema",
    "SubjectSchema",
    "TermSchema",
    "ExamScoreRef",
    # Parsing
    "parse_table",
    "build_requirement_tree",
    "SubjectAbbreviationTable",
    # Scraping
    "bounded_map",
    "CourseAggregator",
    "collapse_same_courses",
    "get_all_terms",
    "save_catalog",
    "scrape_catalog",
    "scrape_catalog_sync",
]
