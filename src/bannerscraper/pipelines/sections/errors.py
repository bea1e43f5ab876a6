"""
Exceptions raised by the sections pipeline.
"""


class ScrapeError(Exception):
    """A scrape run could not produce a catalog."""


class NoTermsError(ScrapeError):
    """No terms were returned or selected."""


class NoSubjectsError(ScrapeError):
    """No subject could be resolved for any scraped term."""


class SeatInfoNotFoundError(LookupError):
    """A label on the getEnrollmentInfo page is missing."""
