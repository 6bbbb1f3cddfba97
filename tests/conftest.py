import os
import sys
# Ensure project root is importable for tests, regardless of runner CWD
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from typing import Any, Dict, List, Optional

import pytest

from jira_week_report.client import JiraClient


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Optional[Any] = None,
        text: str = "",
        reason: str = "",
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text
        self.reason = reason
        self.headers = headers or {}

    def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data


class FakeSession:
    """Records calls and answers them with a handler(method, url, params, json)."""

    def __init__(self, handler):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def _call(self, method, url, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "timeout": timeout})
        return self.handler(method, url, params, json)

    def get(self, url, params=None, timeout=None):
        return self._call("GET", url, params=params, timeout=timeout)

    def post(self, url, json=None, timeout=None):
        return self._call("POST", url, json=json, timeout=timeout)


BASE_URL = "https://example.atlassian.net"


def make_client(handler) -> JiraClient:
    return JiraClient(FakeSession(handler), BASE_URL, timeout=5)


def raw_worklog(wid, issue_id, author="Dev A", started="2025-10-06T10:00:00.000+0000",
                time_spent="1h", comment=None, updated=None):
    return {
        "id": str(wid),
        "issueId": str(issue_id),
        "author": {"displayName": author},
        "created": started,
        "updated": updated or started,
        "started": started,
        "timeSpent": time_spent,
        "comment": comment,
    }


def raw_issue(issue_id, key, summary="Sum", parent_summary=None, components=()):
    fields = {"summary": summary, "components": [{"name": c} for c in components]}
    if parent_summary is not None:
        fields["parent"] = {"key": "EPIC-1", "fields": {"summary": parent_summary}}
    return {"id": str(issue_id), "key": key, "fields": fields}


@pytest.fixture
def env_credentials(monkeypatch):
    """Provide the three required environment variables."""
    monkeypatch.setenv("JIRA_DOMAIN", "example.atlassian.net")
    monkeypatch.setenv("JIRA_EMAIL", "user@example.com")
    monkeypatch.setenv("JIRA_API_TOKEN", "token123")
    yield


@pytest.fixture
def no_credentials(monkeypatch):
    for name in ("JIRA_DOMAIN", "JIRA_BASE_URL", "JIRA_EMAIL", "JIRA_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    yield


# Expose utilities for tests
__all__ = ["FakeResponse", "FakeSession", "make_client", "raw_worklog", "raw_issue", "BASE_URL"]
