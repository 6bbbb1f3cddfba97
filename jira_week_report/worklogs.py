"""
Worklog retrieval.

Two steps against the Jira Cloud worklog API:

1. fetch_updated_worklog_ids: page through /worklog/updated collecting ids of
   worklogs touched in a time window.
2. fetch_worklogs: resolve ids to full records via /worklog/list in
   fixed-size batches, flattening the ADF comment into plain text.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from dateutil.parser import isoparse
from tqdm import tqdm

from .client import JiraClient, MalformedResponseError

UPDATED_PATH = "/rest/api/3/worklog/updated"
LIST_PATH = "/rest/api/3/worklog/list"
PAGE_SIZE = 100
BATCH_SIZE = 100

WorklogId = Union[int, str]


@dataclass(frozen=True)
class WorklogIdPage:
    ids: List[WorklogId]
    total: int

    @classmethod
    def from_api(cls, data: Any) -> "WorklogIdPage":
        if not isinstance(data, dict):
            raise MalformedResponseError("worklog/updated: corpo da resposta não é um objeto")
        values = data.get("values")
        total = data.get("total")
        if not isinstance(values, list) or not isinstance(total, int) or isinstance(total, bool):
            raise MalformedResponseError("worklog/updated: campos 'values'/'total' ausentes ou inválidos")
        ids = []
        for v in values:
            wid = v.get("worklogId") if isinstance(v, dict) else None
            if wid is None:
                raise MalformedResponseError(f"worklog/updated: item sem worklogId: {v!r}")
            ids.append(wid)
        return cls(ids=ids, total=total)


def flatten_comment(adf: Any) -> str:
    """Flatten an ADF comment into one line.

    Text spans of each top-level block are joined with a space, then the
    blocks are joined with a space. Missing comments give "".
    """
    if isinstance(adf, str):
        return adf
    if not isinstance(adf, dict):
        return ""
    blocks = []
    for block in adf.get("content") or []:
        if not isinstance(block, dict):
            continue
        spans = [c.get("text", "") for c in block.get("content") or [] if isinstance(c, dict) and "text" in c]
        blocks.append(" ".join(spans))
    return " ".join(blocks)


def _parse_ts(raw: Any, field: str, wid: Any) -> datetime:
    if not isinstance(raw, str) or not raw:
        raise MalformedResponseError(f"worklog {wid}: campo '{field}' ausente")
    try:
        return isoparse(raw)
    except ValueError:
        raise MalformedResponseError(f"worklog {wid}: data inválida em '{field}': {raw!r}")


@dataclass(frozen=True)
class Worklog:
    id: str
    issue_id: str
    author: str
    created: datetime
    updated: datetime
    started: datetime
    time_spent: str
    comment: str

    @classmethod
    def from_api(cls, raw: Any) -> "Worklog":
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"worklog/list: item não é um objeto: {raw!r}")
        wid = raw.get("id")
        issue_id = raw.get("issueId")
        if wid is None or issue_id is None:
            raise MalformedResponseError(f"worklog/list: item sem 'id'/'issueId': {raw!r}")
        author = raw.get("author")
        if not isinstance(author, dict):
            author = {}
        started = _parse_ts(raw.get("started"), "started", wid)
        created = _parse_ts(raw.get("created") or raw.get("started"), "created", wid)
        updated = _parse_ts(raw.get("updated") or raw.get("created") or raw.get("started"), "updated", wid)
        return cls(
            id=str(wid),
            issue_id=str(issue_id),
            author=author.get("displayName", "") or "",
            created=created,
            updated=updated,
            started=started,
            time_spent=raw.get("timeSpent") or "",
            comment=flatten_comment(raw.get("comment")),
        )


def fetch_updated_worklog_ids(client: JiraClient, since: int, until: Optional[int] = None,
                              start_at: int = 0, max_results: int = PAGE_SIZE) -> List[WorklogId]:
    """Collect ids of worklogs updated in [since, until] (epoch milliseconds).

    Pages are requested until startAt + maxResults reaches the reported
    total. The total is trusted as returned by each page.

    Raises:
        ValueError: if max_results is not positive.
    """
    if max_results <= 0:
        raise ValueError(f"tamanho de página deve ser positivo: {max_results}")
    ids: List[WorklogId] = []
    while True:
        params: Dict[str, Any] = {"since": since}
        if until is not None:
            params["until"] = until
        params["startAt"] = start_at
        params["maxResults"] = max_results
        page = WorklogIdPage.from_api(client.get(UPDATED_PATH, params=params))
        ids.extend(page.ids)
        if start_at + max_results >= page.total:
            return ids
        start_at += max_results


def chunked(items: Sequence[Any], size: Optional[int]) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of `size` items; size=None yields everything at once."""
    if not items:
        return
    if size is None:
        yield items
        return
    if size <= 0:
        raise ValueError(f"tamanho de lote deve ser positivo: {size}")
    for i in range(0, len(items), size):
        yield items[i:i + size]


def fetch_worklogs(client: JiraClient, ids: Sequence[WorklogId], batch_size: Optional[int] = BATCH_SIZE,
                   progress: bool = True) -> List[Worklog]:
    """Resolve worklog ids to records, one /worklog/list call per batch.

    Records keep the server's response order, which need not match `ids`.
    """
    logs: List[Worklog] = []
    with tqdm(total=len(ids), desc="Buscando worklogs", unit="worklog", disable=not progress) as pbar:
        for chunk in chunked(list(ids), batch_size):
            data = client.post(LIST_PATH, {"ids": list(chunk)})
            if not isinstance(data, list):
                raise MalformedResponseError("worklog/list: corpo da resposta não é uma lista")
            logs.extend(Worklog.from_api(raw) for raw in data)
            pbar.update(len(chunk))
    return logs
