import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

# Ensure src is in python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from bannerscraper.collectors.banner_client import BannerResponse
from bannerscraper.pipelines.sections import details
from bannerscraper.pipelines.sections.schemas import SubjectSchema
from bannerscraper.pipelines.sections.subjects import SubjectAbbreviationTable

Handler = Callable[[str, Dict[str, Any]], BannerResponse]


class FakeBannerClient:
    """
    Stands in for BannerClient.

    Routes each request to the first handler whose key is a substring of the
    URL, and records (method, url, params/data, cookies) for every call.
    """

    def __init__(self, routes: Optional[Dict[str, Handler]] = None):
        self.routes: Dict[str, Handler] = dict(routes or {})
        self.calls: List[Tuple[str, str, Dict[str, Any], Optional[Dict[str, str]]]] = []

    def _dispatch(self, method: str, url: str, payload: Dict[str, Any], cookies) -> BannerResponse:
        self.calls.append((method, url, payload, cookies))
        for key, handler in self.routes.items():
            if key in url:
                return handler(url, payload)
        return BannerResponse(status_code=404, body="", url=url)

    async def get(self, url, params=None, cookies=None, allow_redirects=True) -> BannerResponse:
        return self._dispatch("GET", url, dict(params or {}), cookies)

    async def post(self, url, data=None, cookies=None) -> BannerResponse:
        return self._dispatch("POST", url, dict(data or {}), cookies)

    def calls_to(self, fragment: str):
        return [call for call in self.calls if fragment in call[1]]


def html_response(body: str, status_code: int = 200) -> BannerResponse:
    return BannerResponse(status_code=status_code, body=body)


@pytest.fixture
def fake_client() -> FakeBannerClient:
    return FakeBannerClient()


@pytest.fixture
def subject_table() -> SubjectAbbreviationTable:
    subjects = [
        SubjectSchema(subject="MATH", text="Mathematics", term_id="202030", host="neu.edu"),
        SubjectSchema(subject="PHYS", text="Physics", term_id="202030", host="neu.edu"),
        SubjectSchema(subject="CS", text="Computer Science", term_id="202030", host="neu.edu"),
        SubjectSchema(subject="CHEM", text="Chemistry &amp; Chemical Biology", term_id="202030", host="neu.edu"),
    ]
    return SubjectAbbreviationTable.from_subjects(subjects)


@pytest.fixture
def no_retry_delay(monkeypatch):
    """Meeting-time retries without the random wait."""
    monkeypatch.setattr(details, "_retry_delay_seconds", lambda: 0)
