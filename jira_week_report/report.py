"""
Report building and output.

- parse_duration_minutes: Jira duration literals ("1d 2h 30m") to minutes
- build_detail_rows: one row per worklog started inside the window
- build_summary_rows: total minutes per (author, issue)
- render_table / write_csv: pandas-backed console table and CSV file
"""

import csv
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .config import DEFAULT_HOURS_PER_DAY
from .issues import Issue
from .weeks import TimeWindow
from .worklogs import Worklog

DEFAULT_DAYS_PER_WEEK = 5.0
CSV_SEPARATOR = ";"
TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"

DETAIL_COLS = [
    "Autor",
    "Chave",
    "Resumo",
    "Resumo do Pai",
    "Componentes",
    "Horas Gastas",
    "Início",
    "Atualizado",
    "Comentário",
]

SUMMARY_COLS = [
    "Autor",
    "Chave",
    "Total (min)",
]

_TOKEN = re.compile(r"^(\d+(?:\.\d+)?)([wdhm])$")

IssueLookup = Callable[[str], Optional[Issue]]
Minutes = Union[int, float]


class NoWorklogsError(Exception):
    """Nothing left to report after fetching/filtering."""


def parse_duration_minutes(literal: str, hours_per_day: float = DEFAULT_HOURS_PER_DAY,
                           days_per_week: float = DEFAULT_DAYS_PER_WEEK) -> float:
    """Convert a Jira duration literal to minutes.

    Accepts whitespace-separated <number><unit> tokens with units w, d, h, m
    (e.g. "2h", "1d 4h", "1.5h"). A day is `hours_per_day` hours and a week
    `days_per_week` days. Anything unparseable yields 0.
    """
    if not isinstance(literal, str):
        return 0
    tokens = literal.strip().lower().split()
    if not tokens:
        return 0
    day = hours_per_day * 60
    per_unit = {"m": 1, "h": 60, "d": day, "w": day * days_per_week}
    total = 0.0
    for tok in tokens:
        m = _TOKEN.match(tok)
        if not m:
            return 0
        total += float(m.group(1)) * per_unit[m.group(2)]
    return total


def normalize_minutes(value: float) -> Minutes:
    """Return an int for whole minute counts, the float otherwise."""
    return int(value) if float(value).is_integer() else value


def format_hours(minutes: float) -> str:
    """Hours with two decimals and a comma decimal separator (90 -> '1,50')."""
    return f"{minutes / 60:.2f}".replace(".", ",")


def format_timestamp(dt: datetime) -> str:
    """Local date-time string, dd/mm/YYYY HH:MM:SS."""
    return dt.astimezone().strftime(TIMESTAMP_FORMAT)


def placeholder_key(issue_id: str) -> str:
    return f"#{issue_id}"


@dataclass(frozen=True)
class DetailRow:
    author: str
    issue_key: str
    summary: str
    parent_summary: str
    components: str
    hours_spent: str
    started: str
    updated: str
    comment: str

    def as_record(self) -> Dict[str, str]:
        return dict(zip(DETAIL_COLS, (
            self.author, self.issue_key, self.summary, self.parent_summary, self.components,
            self.hours_spent, self.started, self.updated, self.comment,
        )))


@dataclass(frozen=True)
class SummaryRow:
    author: str
    issue_key: str
    total_minutes: Minutes

    def as_record(self) -> Dict[str, str]:
        return dict(zip(SUMMARY_COLS, (self.author, self.issue_key, str(self.total_minutes))))


def filter_window(worklogs: Iterable[Worklog], window: TimeWindow) -> List[Worklog]:
    """Worklogs whose start lies within the window (both ends inclusive)."""
    return [wl for wl in worklogs if window.contains(wl.started)]


def build_detail_rows(worklogs: Iterable[Worklog], window: TimeWindow, lookup: IssueLookup,
                      hours_per_day: float = DEFAULT_HOURS_PER_DAY) -> List[DetailRow]:
    """Build one DetailRow per worklog started inside `window`.

    Raises:
        NoWorklogsError: if no worklog falls inside the window.
    """
    kept = filter_window(worklogs, window)
    if not kept:
        raise NoWorklogsError(f"nenhum worklog iniciado na {window.describe()}")
    rows: List[DetailRow] = []
    for wl in kept:
        issue = lookup(wl.issue_id)
        rows.append(DetailRow(
            author=wl.author,
            issue_key=issue.key if issue else placeholder_key(wl.issue_id),
            summary=issue.summary if issue else "",
            parent_summary=(issue.parent_summary or "") if issue else "",
            components=", ".join(issue.components) if issue else "",
            hours_spent=format_hours(parse_duration_minutes(wl.time_spent, hours_per_day)),
            started=format_timestamp(wl.started),
            updated=format_timestamp(wl.updated),
            comment=wl.comment,
        ))
    return rows


def build_summary_rows(worklogs: Iterable[Worklog], lookup: IssueLookup,
                       hours_per_day: float = DEFAULT_HOURS_PER_DAY) -> List[SummaryRow]:
    """Sum minutes per (author, issue id), one SummaryRow per pair in first-seen order.

    Raises:
        NoWorklogsError: if there are no worklogs at all.
    """
    totals: Dict[Tuple[str, str], float] = {}
    for wl in worklogs:
        pair = (wl.author, wl.issue_id)
        totals[pair] = totals.get(pair, 0) + parse_duration_minutes(wl.time_spent, hours_per_day)
    if not totals:
        raise NoWorklogsError("nenhum worklog encontrado no intervalo")
    rows: List[SummaryRow] = []
    for (author, issue_id), minutes in totals.items():
        issue = lookup(issue_id)
        rows.append(SummaryRow(
            author=author,
            issue_key=issue.key if issue else placeholder_key(issue_id),
            total_minutes=normalize_minutes(minutes),
        ))
    return rows


def rows_to_frame(rows: Sequence[Union[DetailRow, SummaryRow]], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Build a string-typed DataFrame with the report's column labels."""
    if columns is None:
        columns = SUMMARY_COLS if rows and isinstance(rows[0], SummaryRow) else DETAIL_COLS
    return pd.DataFrame([r.as_record() for r in rows], columns=columns, dtype=str)


def render_table(rows: Sequence[Union[DetailRow, SummaryRow]]) -> str:
    return rows_to_frame(rows).to_string(index=False)


def write_csv(rows: Sequence[Union[DetailRow, SummaryRow]], path: str) -> str:
    """Write rows as ';'-separated, fully quoted CSV. Returns the path written."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    rows_to_frame(rows).to_csv(
        path,
        sep=CSV_SEPARATOR,
        index=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
        encoding="utf-8",
    )
    return path


def default_csv_name(window: TimeWindow) -> str:
    return f"w{window.week}.csv"
