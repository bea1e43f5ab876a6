"""
Subject abbreviation lookup.

Banner shows prerequisites and corequisites by the subject long name, which
has to be matched back to the short subject code.
"""

import logging
from html import unescape
from typing import Dict, Iterable, Optional

from .schemas import SubjectSchema

logger = logging.getLogger(__name__)


class SubjectAbbreviationTable:
    """
    Maps decoded subject long names to short codes, e.g.

        {"Chemistry & Chemical Biology": "CHEM", ...}
    """

    def __init__(self, table: Optional[Dict[str, str]] = None):
        self.table: Dict[str, str] = dict(table or {})

    @classmethod
    def from_subjects(cls, subjects: Iterable[SubjectSchema]) -> "SubjectAbbreviationTable":
        table: Dict[str, str] = {}
        for subject in subjects:
            # eg '&amp;' --> '&'
            description = unescape(subject.text)
            existing = table.get(description)
            if existing is None:
                table[description] = subject.subject
            elif existing != subject.subject:
                logger.warning(
                    'Description has more than one subject code. Description: "%s" Codes: "%s" and "%s"',
                    description,
                    existing,
                    subject.subject,
                )
        return cls(table)

    def lookup(self, description: Optional[str]) -> Optional[str]:
        """Short code for a long name, or None when it isn't known."""
        if not description:
            return None
        return self.table.get(description.strip())

    def __len__(self) -> int:
        return len(self.table)

    def __contains__(self, description: str) -> bool:
        return self.lookup(description) is not None
