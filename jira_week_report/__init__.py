"""
jira_week_report package

Weekly Jira worklog report: fetches the worklogs of one ISO week, joins them
to their issues and emits a detail or per-author summary table and CSV.
"""

from .client import JiraClient, JiraError, JiraHTTPError, MalformedResponseError, make_session
from .config import Config, ConfigError, read_config
from .issues import Issue, IssueCache, search_issues
from .report import (
    DetailRow,
    NoWorklogsError,
    SummaryRow,
    build_detail_rows,
    build_summary_rows,
    parse_duration_minutes,
    write_csv,
)
from .weeks import TimeWindow, last_week_window, week_window
from .worklogs import Worklog, fetch_updated_worklog_ids, fetch_worklogs, flatten_comment


def main() -> None:
    """Package entrypoint. Delegates to the console script's main()."""
    from .cli import main as _main
    _main()
