"""
Rebuild nested prerequisite / corequisite expressions from Banner tables.

Banner flattens the boolean tree into table rows. Every row may carry:

    and/or   operator for the current group (sticky until overridden)
    ""       left paren: a nested group starts on this row
    "1"      right paren: the current group ends on this row
    subject + coursenumber, or test + score: the row's own requirement

e.g. "A and (B or C)" arrives as

    and/or | ( | subject | coursenumber | )
           |   | Math    | 1341         |
    And    | ( | Physics | 1151         |
    Or     |   | Physics | 1161         | )
"""

import logging
from typing import List, Optional, Union

from .schemas import BooleanExpr, CourseRef, ExamScoreRef
from .subjects import SubjectAbbreviationTable
from .tables import TableRow

logger = logging.getLogger(__name__)

LEFT_PAREN_KEY = ""
RIGHT_PAREN_KEY = "1"
AND_OR_KEY = "and/or"

Requirement = Union[BooleanExpr, CourseRef, ExamScoreRef]


class RowCursor:
    """Forward-only position in the decoded rows, shared by nested groups"""

    def __init__(self, rows: List[TableRow]):
        self.rows = rows
        self.index = 0

    def done(self) -> bool:
        return self.index >= len(self.rows)

    def current(self) -> TableRow:
        return self.rows[self.index]

    def advance(self) -> None:
        self.index += 1


def _cell(row: TableRow, key: str) -> str:
    return (row.get(key) or "").strip()


def _row_requirement(
    row: TableRow,
    subjects: SubjectAbbreviationTable,
    source: str,
) -> Optional[Union[CourseRef, ExamScoreRef]]:
    """The row's own leaf, or None when the row has no usable content."""
    test, score = _cell(row, "test"), _cell(row, "score")
    if test and score:
        return ExamScoreRef(test=test, score=score)

    subject, course_number = _cell(row, "subject"), _cell(row, "coursenumber")
    if not subject:
        return None
    abbreviation = subjects.lookup(subject)
    if abbreviation is None:
        logger.warning("Can't find abbreviation for \"%s\" from %s", subject, source)
        return None
    if not course_number:
        return None
    return CourseRef(subject=abbreviation, class_id=course_number)


def parse_group(
    cursor: RowCursor,
    subjects: SubjectAbbreviationTable,
    source: str = "",
) -> BooleanExpr:
    """
    Consume rows until the current group closes (or rows run out).

    Nested groups recurse on the same cursor, so each row is read exactly once.
    """
    parsed: List[Requirement] = []
    boolean = "and"

    while not cursor.done():
        row = cursor.current()

        and_or = _cell(row, AND_OR_KEY).lower()
        if and_or in ("and", "or"):
            boolean = and_or
        elif and_or:
            logger.warning("Unknown and/or marker %r from %s", and_or, source)

        requirement = _row_requirement(row, subjects, source)

        # advance first so a row that opens a group isn't read again by it
        cursor.advance()
        if _cell(row, LEFT_PAREN_KEY):
            nested = parse_group(cursor, subjects, source)
            if requirement is not None:
                nested.values.insert(0, requirement)
            parsed.append(nested)
        elif requirement is not None:
            parsed.append(requirement)

        if _cell(row, RIGHT_PAREN_KEY):
            return BooleanExpr(type=boolean, values=parsed)

    return BooleanExpr(type=boolean, values=parsed)


def build_requirement_tree(
    rows: List[TableRow],
    subjects: SubjectAbbreviationTable,
    source: str = "",
) -> BooleanExpr:
    """Build the full expression for one section's prerequisite table."""
    return parse_group(RowCursor(rows), subjects, source)
