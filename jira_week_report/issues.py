"""
Issue metadata lookup.

Two interchangeable strategies, both producing Issue records keyed by id:

- search_issues: one JQL search ("id in (...)") for a whole batch of ids.
- IssueCache: per-id GET /issue/{id}, memoized for the lifetime of one run.

Issues that cannot be found are reported as absent (None / missing key)
rather than failing the run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .client import JiraClient, JiraHTTPError, MalformedResponseError

SEARCH_PATH = "/rest/api/3/search/jql"
ISSUE_PATH = "/rest/api/3/issue/{id}"
ISSUE_FIELDS = ["summary", "parent", "components"]


@dataclass(frozen=True)
class Issue:
    id: str
    key: str
    summary: str = ""
    parent_summary: Optional[str] = None
    components: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, raw: Any) -> "Issue":
        if not isinstance(raw, dict) or raw.get("id") is None or not raw.get("key"):
            raise MalformedResponseError(f"issue sem 'id'/'key': {raw!r}")
        f = raw.get("fields") or {}
        parent = f.get("parent") or {}
        parent_summary = (parent.get("fields") or {}).get("summary") if parent else None
        components = tuple(c.get("name", "") for c in f.get("components") or [] if isinstance(c, dict))
        return cls(
            id=str(raw["id"]),
            key=raw["key"],
            summary=f.get("summary") or "",
            parent_summary=parent_summary,
            components=components,
        )


def jql_for_ids(issue_ids: Iterable[str]) -> str:
    """Build 'id in (...)' JQL for the given ids, de-duplicated in first-seen order."""
    unique = list(dict.fromkeys(str(i) for i in issue_ids))
    return f"id in ({', '.join(unique)})"


def search_issues(client: JiraClient, issue_ids: Iterable[str], max_results: int = 100) -> Dict[str, Issue]:
    """Resolve a set of issue ids with POST /search/jql, following nextPageToken.

    Returns:
        Dict[str, Issue]: issues found, keyed by id. Ids unknown to Jira are
        simply absent from the result.
    """
    ids = list(dict.fromkeys(str(i) for i in issue_ids))
    if not ids:
        return {}
    jql = jql_for_ids(ids)
    next_token: Optional[str] = None
    found: Dict[str, Issue] = {}
    while True:
        body: Dict[str, Any] = {"jql": jql, "fields": ISSUE_FIELDS, "maxResults": max_results}
        if next_token:
            body["nextPageToken"] = next_token
        data = client.post(SEARCH_PATH, body)
        if not isinstance(data, dict) or not isinstance(data.get("issues", []), list):
            raise MalformedResponseError("search/jql: campo 'issues' ausente ou inválido")
        issues = data.get("issues", [])
        for raw in issues:
            issue = Issue.from_api(raw)
            found[issue.id] = issue
        next_token = data.get("nextPageToken")
        if not next_token or not issues:
            return found


@dataclass
class IssueCache:
    """Run-scoped memo of GET /issue/{id} results.

    Deleted or invisible issues (HTTP 404) are cached as None; any other
    HTTP failure propagates.
    """

    client: JiraClient
    _issues: Dict[str, Optional[Issue]] = field(default_factory=dict)
    fetch_count: int = 0

    def get_or_fetch(self, issue_id: str) -> Optional[Issue]:
        issue_id = str(issue_id)
        if issue_id in self._issues:
            return self._issues[issue_id]
        self.fetch_count += 1
        try:
            issue: Optional[Issue] = Issue.from_api(self.client.get(ISSUE_PATH.format(id=issue_id)))
        except JiraHTTPError as e:
            if e.status_code != 404:
                raise
            issue = None
        self._issues[issue_id] = issue
        return issue

    def resolve(self, issue_ids: Iterable[str]) -> Dict[str, Issue]:
        """Look up each id, returning only the issues that exist."""
        found: Dict[str, Issue] = {}
        for issue_id in dict.fromkeys(str(i) for i in issue_ids):
            issue = self.get_or_fetch(issue_id)
            if issue is not None:
                found[issue_id] = issue
        return found


def missing_issue_ids(issue_ids: Iterable[str], found: Dict[str, Issue]) -> List[str]:
    return [i for i in dict.fromkeys(str(x) for x in issue_ids) if i not in found]
