import asyncio

from banner_samples import (
    ATTRIBUTES_HTML,
    CLASS_DETAILS_HTML,
    MEETING_BODY,
    PREREQ_HTML,
    SEATS_HTML,
)
from conftest import FakeBannerClient, html_response

from bannerscraper.collectors.banner_client import BannerResponse
from bannerscraper.pipelines.sections import details
from bannerscraper.pipelines.sections.schemas import (
    BooleanExpr,
    CourseRef,
    SectionStubSchema,
)


def section_routes(meeting_handler=None):
    return {
        "getEnrollmentInfo": lambda url, payload: html_response(SEATS_HTML),
        "getClassDetails": lambda url, payload: html_response(CLASS_DETAILS_HTML),
        "getSectionAttributes": lambda url, payload: html_response(ATTRIBUTES_HTML),
        "getFacultyMeetingTimes": meeting_handler
        or (lambda url, payload: BannerResponse(status_code=200, body=MEETING_BODY)),
    }


def test_serialize_seats():
    seats = details.serialize_seats(html_response(SEATS_HTML))
    assert seats.seats_capacity == 19
    assert seats.seats_remaining == 1
    assert seats.wait_capacity == 5
    assert seats.wait_remaining == 5


def test_missing_seat_label_defaults_to_zero(caplog):
    html = '<span class="status-bold">Enrollment Maximum:</span> <span dir="ltr"> 30 </span>'
    seats = details.serialize_seats(html_response(html))

    assert seats.seats_capacity == 30
    assert seats.seats_remaining == 0
    assert seats.wait_capacity == 0
    assert "Waitlist Capacity:" in caplog.text


def test_negative_seats_are_clamped():
    html = (
        '<span class="status-bold">Enrollment Seats Available:</span>'
        ' <span dir="ltr"> -2 </span>'
    )
    assert details.serialize_seats(html_response(html)).seats_remaining == 0


def test_serialize_class_details():
    class_details = details.serialize_class_details(html_response(CLASS_DETAILS_HTML))

    assert class_details.online is False
    assert class_details.schedule_type == "Lecture"
    assert class_details.subject == "Mathematics"
    assert class_details.class_id == "1341"
    assert class_details.name == "Calculus 1 for Sci/Engr (HON)"
    assert class_details.max_credits == 4
    assert class_details.min_credits == 4


def test_online_campus_and_missing_credits():
    html = '<span class="status-bold">Campus: </span>Online<br/>'
    class_details = details.serialize_class_details(html_response(html))
    assert class_details.online is True
    assert class_details.max_credits is None


def test_honors_detection():
    attributes = details.serialize_attributes(html_response(ATTRIBUTES_HTML))
    assert attributes == ["Honors  GNHN", "NUpath Formal/Quant Reasoning  NCFQ"]
    assert details.contains_honors(attributes)
    assert not details.contains_honors(["UG College of Science  UBSC"])
    assert not details.contains_honors([])


def test_meeting_times_gives_up_after_six_attempts(no_retry_delay, caplog):
    client = FakeBannerClient(
        {"getFacultyMeetingTimes": lambda url, payload: html_response("<html>login</html>", 302)}
    )
    result = asyncio.run(details.fetch_meeting_times(client, "202030", "10653"))

    assert result is None
    assert len(client.calls_to("getFacultyMeetingTimes")) == 6
    assert "302 redirect" in caplog.text
    assert "failed attempts" in caplog.text


def test_meeting_times_recovers_after_bad_response(no_retry_delay):
    responses = iter([
        BannerResponse(status_code=500, body="oops"),
        BannerResponse(status_code=200, body={"unexpected": True}),
        BannerResponse(status_code=200, body=MEETING_BODY),
    ])
    client = FakeBannerClient({"getFacultyMeetingTimes": lambda url, payload: next(responses)})

    result = asyncio.run(details.fetch_meeting_times(client, "202030", "10653"))

    assert result == MEETING_BODY
    assert len(client.calls) == 3


def test_most_details_merges_all_requests():
    client = FakeBannerClient(section_routes())
    stub = SectionStubSchema(term="202030", crn="10653", subject="MATH")

    record = asyncio.run(details.most_details(client, stub))

    assert record.crn == "10653"
    assert record.term_id == "202030"
    assert record.subject == "MATH"  # code from the stub, not "Mathematics"
    assert record.class_id == "1341"
    assert record.seats_capacity == 19
    assert record.class_attributes[0] == "Honors  GNHN"
    assert len(record.meetings) == 1
    assert record.meetings[0].profs == ["James Hudon"]
    assert record.last_update_time > 0
    assert {call[2]["courseReferenceNumber"] for call in client.calls} == {"10653"}


def test_most_details_with_dead_meeting_endpoint(no_retry_delay):
    client = FakeBannerClient(
        section_routes(lambda url, payload: BannerResponse(status_code=0, body=""))
    )
    stub = SectionStubSchema(term="202030", crn="10653", subject="MATH")

    record = asyncio.run(details.most_details(client, stub))

    assert record.meetings == []
    assert record.seats_capacity == 19


def test_strip_section_details():
    client = FakeBannerClient(section_routes())
    stub = SectionStubSchema(term="202030", crn="10653", subject="MATH")
    record = asyncio.run(details.most_details(client, stub))

    section = details.strip_section_details(record)
    dumped = section.model_dump()

    assert section.honors is True
    assert "class_attributes" not in dumped
    assert "name" not in dumped
    assert "max_credits" not in dumped
    assert section.url.endswith("term_in=202030&crn_in=10653")


def test_copy_section_as_class(subject_table):
    routes = section_routes()
    routes.update({
        "getCourseDescription": lambda url, payload: html_response("  Covers limits &amp;amp; derivatives.  "),
        "getSectionPrerequisites": lambda url, payload: html_response(PREREQ_HTML),
        "getCorequisites": lambda url, payload: html_response(""),
    })
    client = FakeBannerClient(routes)
    stub = SectionStubSchema(term="202030", crn="10653", subject="MATH")

    async def run():
        record = await details.most_details(client, stub)
        return record, await details.copy_section_as_class(client, record, subject_table)

    record, course = asyncio.run(run())

    assert course.crns == []
    assert course.desc == "Covers limits & derivatives."
    assert course.name == "Calculus 1 for Sci/Engr (HON)"
    assert course.prereqs == BooleanExpr(
        type="and", values=[CourseRef(subject="MATH", class_id="1241")]
    )
    assert course.coreqs is None
    assert course.last_update_time == record.last_update_time
    assert "crse_numb_in=1341" in course.pretty_url
    assert "coreqs" not in course.model_dump(exclude_none=True)


def test_retry_delay_stays_within_bounds(monkeypatch):
    monkeypatch.setattr(details.random, "random", lambda: 0.0)
    assert details._retry_delay_seconds() == 0.001
    monkeypatch.setattr(details.random, "random", lambda: 0.9999999)
    assert details._retry_delay_seconds() == 0.5


def test_retry_delay_is_spread():
    delays = {details._retry_delay_seconds() for _ in range(200)}
    assert len(delays) > 1
    assert all(0.001 <= delay <= 0.5 for delay in delays)


def test_meeting_times_logs_unknown_status_separately(no_retry_delay, caplog):
    responses = iter([
        BannerResponse(status_code=500, body="oops"),
        BannerResponse(status_code=200, body=MEETING_BODY),
    ])
    client = FakeBannerClient({"getFacultyMeetingTimes": lambda url, payload: next(responses)})

    result = asyncio.run(details.fetch_meeting_times(client, "202030", "10653"))

    assert result == MEETING_BODY
    assert "unknown status code: 500" in caplog.text
    assert "302 redirect" not in caplog.text


COREQ_3_COLUMNS = """
<table class="basePreqTable">
  <thead><tr><th>Subject</th><th>Course Number</th><th>Title</th></tr></thead>
  <tbody>
    <tr><td>Physics</td><td>1152</td><td>Physics for Engineering 2 Lab</td></tr>
  </tbody>
</table>
"""

COREQ_5_COLUMNS = """
<table class="basePreqTable">
  <thead>
    <tr><th>CRN</th><th>Subject</th><th>Course Number</th><th>Title</th><th>Section</th></tr>
  </thead>
  <tbody>
    <tr><td>30245</td><td>Physics</td><td>1152</td><td>Lab</td><td>01</td></tr>
    <tr><td>30246</td><td>Chemistry &amp; Chemical Biology</td><td>1212</td><td>Lab</td><td>02</td></tr>
  </tbody>
</table>
"""


def test_coreqs_three_column_table(subject_table):
    client = FakeBannerClient({"getCorequisites": lambda url, payload: html_response(COREQ_3_COLUMNS)})

    coreqs = asyncio.run(details.get_coreqs(client, "202030", "10653", subject_table))

    assert coreqs == BooleanExpr(type="and", values=[CourseRef(subject="PHYS", class_id="1152")])


def test_coreqs_five_column_table(subject_table):
    client = FakeBannerClient({"getCorequisites": lambda url, payload: html_response(COREQ_5_COLUMNS)})

    coreqs = asyncio.run(details.get_coreqs(client, "202030", "10653", subject_table))

    assert coreqs.values == [
        CourseRef(subject="PHYS", class_id="1152"),
        CourseRef(subject="CHEM", class_id="1212"),
    ]


def test_course_from_section_without_requirements():
    record = details.SectionDetailsSchema(
        crn="10653",
        term_id="202030",
        subject="MATH",
        class_id="1341",
        host="neu.edu",
        name="Calculus 2",
        last_update_time=1,
    )

    course = details.course_from_section(record)

    assert course.desc == ""
    assert course.prereqs is None
    assert course.coreqs is None
    assert "crse_numb_in=1341" in course.pretty_url
