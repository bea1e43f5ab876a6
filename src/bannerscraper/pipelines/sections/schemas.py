"""
Pydantic schemas for section data from the Banner registration system.
"""

import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class CollegeSchema(BaseModel):
    """Institution the catalog was scraped from"""

    host: str
    title: str
    url: str


class TermSchema(BaseModel):
    """Schema for term data from Banner getTerms"""

    term_id: str  # code
    text: str  # description, e.g. "Spring 2020 Semester"
    host: str
    sub_college_name: Optional[str] = None  # only set for LAW / CPS terms

    @staticmethod
    def determine_sub_college_name(term_desc: str) -> str:
        """
        "Spring 2019 Semester" -> "undergraduate"
        "Spring 2019 Law Quarter" -> "LAW"
        "Spring 2019 CPS Quarter" -> "CPS"
        """
        if "CPS" in term_desc:
            return "CPS"
        if "Law" in term_desc:
            return "LAW"
        return "undergraduate"

    @classmethod
    def from_api(cls, data: dict, host: str) -> "TermSchema":
        """Create from a Banner term listing entry"""
        text = str(data.get("description", ""))
        sub_college = cls.determine_sub_college_name(text)
        if sub_college == "undergraduate":
            text = re.sub(r" (Semester|Quarter)", "", text, count=1)
            sub_college_name = None
        else:
            sub_college_name = sub_college

        return cls(
            term_id=str(data.get("code", "")),
            text=text,
            host=host,
            sub_college_name=sub_college_name,
        )


class SubjectSchema(BaseModel):
    """One subject offered in a term"""

    subject: str  # short code, e.g. "CS"
    text: str  # long name, may still carry HTML entities
    term_id: str
    host: str


class SectionStubSchema(BaseModel):
    """Section reference from the paged searchResults endpoint"""

    term: str
    crn: str  # courseReferenceNumber
    subject: str

    @classmethod
    def from_api(cls, data: dict) -> "SectionStubSchema":
        return cls(
            term=str(data.get("term", "")),
            crn=str(data.get("courseReferenceNumber", "")),
            subject=str(data.get("subject", "")),
        )


# ============================================================================
# Prerequisite / corequisite trees
# ============================================================================


class CourseRef(BaseModel):
    """Leaf pointing at a course"""

    subject: str  # short code
    class_id: str  # course number


class ExamScoreRef(BaseModel):
    """Leaf pointing at a test score requirement"""

    test: str
    score: str


class BooleanExpr(BaseModel):
    """AND/OR group of requirements"""

    type: Literal["and", "or"] = "and"
    values: List[Union["BooleanExpr", CourseRef, ExamScoreRef]] = Field(
        default_factory=list
    )

    def is_empty(self) -> bool:
        return not self.values


BooleanExpr.model_rebuild()


# ============================================================================
# Meeting times
# ============================================================================


class TimeRangeSchema(BaseModel):
    """Seconds after midnight"""

    start: int
    end: int


class MeetingSchema(BaseModel):
    """One meeting block of a section"""

    start_date: Optional[int] = None  # days since the epoch
    end_date: Optional[int] = None
    profs: List[str] = Field(default_factory=list)
    where: str = "TBA"
    type: Optional[str] = None  # e.g. "Class", "Final Exam"
    times: Dict[str, List[TimeRangeSchema]] = Field(default_factory=dict)  # weekday "0".."6"


# ============================================================================
# Sections and courses
# ============================================================================


class SectionSeatsSchema(BaseModel):
    """Seat and waitlist counts from getEnrollmentInfo"""

    seats_capacity: int = Field(0, ge=0)
    seats_remaining: int = Field(0, ge=0)
    wait_capacity: int = Field(0, ge=0)
    wait_remaining: int = Field(0, ge=0)


class ClassDetailsSchema(BaseModel):
    """Fields from getClassDetails"""

    online: bool = False
    schedule_type: Optional[str] = None  # eg. 'Lab' or 'Lecture'
    subject: Optional[str] = None  # long subject name, eg. 'Physics'
    class_id: Optional[str] = None
    name: Optional[str] = None
    max_credits: Optional[int] = None
    min_credits: Optional[int] = None


class SectionSchema(SectionSeatsSchema):
    """Final section record in the catalog"""

    crn: str
    term_id: str
    subject: str  # short code from the originating stub
    class_id: Optional[str] = None
    host: str
    url: Optional[str] = None
    online: bool = False
    honors: bool = False
    schedule_type: Optional[str] = None
    meetings: List[MeetingSchema] = Field(default_factory=list)
    last_update_time: int  # epoch milliseconds


class SectionDetailsSchema(SectionSchema):
    """
    Section record straight out of the detail fetcher.

    Carries transient fields (attributes, name, credits) needed to detect
    honors and to build the course record; strip_section_details() drops them.
    """

    class_attributes: List[str] = Field(default_factory=list)
    name: Optional[str] = None
    max_credits: Optional[int] = None
    min_credits: Optional[int] = None


class CourseSchema(BaseModel):
    """One unique course, aggregated over all of its sections"""

    crns: List[str] = Field(default_factory=list)
    class_attributes: List[str] = Field(default_factory=list)
    desc: Optional[str] = None
    class_id: Optional[str] = None
    pretty_url: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    last_update_time: int
    max_credits: Optional[int] = None
    min_credits: Optional[int] = None
    term_id: str
    host: str
    subject: str
    prereqs: Optional[BooleanExpr] = None
    coreqs: Optional[BooleanExpr] = None


class CatalogSchema(BaseModel):
    """Merged output of one scrape run"""

    colleges: List[CollegeSchema] = Field(default_factory=list)
    terms: List[TermSchema] = Field(default_factory=list)
    subjects: List[SubjectSchema] = Field(default_factory=list)
    classes: List[CourseSchema] = Field(default_factory=list)
    sections: List[SectionSchema] = Field(default_factory=list)

    def to_json_dict(self) -> Dict[str, Any]:
        """Plain dict with unset optional fields (prereqs, coreqs...) dropped"""
        return self.model_dump(exclude_none=True)
