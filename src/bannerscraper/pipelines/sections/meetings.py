"""
Decode getFacultyMeetingTimes responses into MeetingSchema objects.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .schemas import MeetingSchema, TimeRangeSchema

logger = logging.getLogger(__name__)

EPOCH = date(1970, 1, 1)

# Banner weekday flags -> day index (Sunday = 0)
DAY_MAPPING = {
    "sunday": "0",
    "monday": "1",
    "tuesday": "2",
    "wednesday": "3",
    "thursday": "4",
    "friday": "5",
    "saturday": "6",
}


def _parse_date(value: Optional[str]) -> Optional[int]:
    """'09/04/2019' -> days since 1970-01-01"""
    if not value:
        return None
    try:
        return (datetime.strptime(value, "%m/%d/%Y").date() - EPOCH).days
    except ValueError:
        logger.warning("Unparseable meeting date %r", value)
        return None


def _parse_time(value: Optional[str]) -> Optional[int]:
    """'1335' -> seconds after midnight"""
    if not value or len(value) != 4 or not value.isdigit():
        return None
    return int(value[:2]) * 3600 + int(value[2:]) * 60


def _prof_name(faculty: Dict[str, Any]) -> Optional[str]:
    """'Hudon, James' -> 'James Hudon'"""
    name = (faculty.get("displayName") or "").strip()
    if not name:
        return None
    if "," in name:
        last, first = name.split(",", 1)
        name = f"{first.strip()} {last.strip()}"
    return name


def _where(meeting_time: Dict[str, Any]) -> str:
    building = meeting_time.get("buildingDescription") or meeting_time.get("building")
    room = meeting_time.get("room")
    if not building:
        return "TBA"
    return f"{building} {room}" if room else building


def parse_meeting(entry: Dict[str, Any]) -> MeetingSchema:
    meeting_time = entry.get("meetingTime") or {}

    times: Dict[str, List[TimeRangeSchema]] = {}
    start = _parse_time(meeting_time.get("beginTime"))
    end = _parse_time(meeting_time.get("endTime"))
    if start is not None and end is not None:
        for flag, day in DAY_MAPPING.items():
            if meeting_time.get(flag):
                times[day] = [TimeRangeSchema(start=start, end=end)]

    profs = [name for name in map(_prof_name, entry.get("faculty") or []) if name]

    return MeetingSchema(
        start_date=_parse_date(meeting_time.get("startDate")),
        end_date=_parse_date(meeting_time.get("endDate")),
        profs=profs,
        where=_where(meeting_time),
        type=meeting_time.get("meetingTypeDescription"),
        times=times,
    )


def parse_meetings(body: Optional[Dict[str, Any]]) -> List[MeetingSchema]:
    """
    Args:
        body: decoded getFacultyMeetingTimes JSON ({"fmt": [...]}), or None
              when the request gave up

    Returns:
        Meetings in response order; [] for a missing body
    """
    if not body:
        return []
    return [parse_meeting(entry) for entry in body.get("fmt") or []]
