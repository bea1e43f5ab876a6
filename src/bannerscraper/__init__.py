"""
Banner course-registration scraper.

Harvests terms, subjects, sections and prerequisite rules from a Banner 9
registration system and normalizes them into a deduplicated catalog.
"""

__version__ = "1.0.0"
