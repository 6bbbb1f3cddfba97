from datetime import timedelta

import pytest

from jira_week_report import report as mod
from jira_week_report.issues import Issue
from jira_week_report.weeks import week_window
from jira_week_report.worklogs import Worklog

WINDOW = week_window(41, 2025)  # 2025-10-06 .. 2025-10-12


def wl(wid, issue_id, author="Dev A", started=None, time_spent="1h", comment=""):
    started = started or WINDOW.start + timedelta(hours=10)
    return Worklog(
        id=str(wid), issue_id=str(issue_id), author=author,
        created=started, updated=started + timedelta(minutes=5), started=started,
        time_spent=time_spent, comment=comment,
    )


ISSUES = {
    "1": Issue("1", "PROJ-1", "Login page", "Auth epic", ("web", "api")),
    "2": Issue("2", "PROJ-2", "Logout"),
}


def test_detail_rows_map_issue_fields_and_format_hours():
    rows = mod.build_detail_rows([wl(1, 1, time_spent="1h 30m", comment="done")], WINDOW, ISSUES.get)
    assert len(rows) == 1
    r = rows[0]
    assert r.author == "Dev A"
    assert r.issue_key == "PROJ-1"
    assert r.summary == "Login page"
    assert r.parent_summary == "Auth epic"
    assert r.components == "web, api"
    assert r.hours_spent == "1,50"
    assert r.started == mod.format_timestamp(WINDOW.start + timedelta(hours=10))
    assert r.updated == mod.format_timestamp(WINDOW.start + timedelta(hours=10, minutes=5))
    assert r.comment == "done"


def test_detail_rows_window_boundaries_inclusive():
    logs = [
        wl(1, 1, started=WINDOW.start),
        wl(2, 1, started=WINDOW.end),
        wl(3, 1, started=WINDOW.start - timedelta(milliseconds=1)),
        wl(4, 1, started=WINDOW.end + timedelta(milliseconds=1)),
    ]
    rows = mod.build_detail_rows(logs, WINDOW, ISSUES.get)
    assert len(rows) == 2
    assert [w.id for w in mod.filter_window(logs, WINDOW)] == ["1", "2"]


def test_detail_rows_empty_after_filter_is_fatal():
    with pytest.raises(mod.NoWorklogsError):
        mod.build_detail_rows([wl(1, 1, started=WINDOW.start - timedelta(days=1))], WINDOW, ISSUES.get)
    with pytest.raises(mod.NoWorklogsError):
        mod.build_detail_rows([], WINDOW, ISSUES.get)


def test_detail_rows_missing_issue_and_bad_duration_degrade():
    rows = mod.build_detail_rows([wl(1, 404, time_spent="soon")], WINDOW, ISSUES.get)
    r = rows[0]
    assert r.issue_key == "#404"
    assert r.summary == "" and r.parent_summary == "" and r.components == ""
    assert r.hours_spent == "0,00"


def test_detail_rows_issue_without_parent():
    r = mod.build_detail_rows([wl(1, 2)], WINDOW, ISSUES.get)[0]
    assert r.parent_summary == ""
    assert r.components == ""


def test_summary_groups_by_author_and_issue():
    logs = [
        wl(1, 1, author="Ana", time_spent="20m"),
        wl(2, 1, author="Ana", time_spent="40m"),
        wl(3, 1, author="Bruno", time_spent="1h"),
        wl(4, 2, author="Ana", time_spent="1d"),
    ]
    rows = mod.build_summary_rows(logs, ISSUES.get)
    assert rows == [
        mod.SummaryRow("Ana", "PROJ-1", 60),
        mod.SummaryRow("Bruno", "PROJ-1", 60),
        mod.SummaryRow("Ana", "PROJ-2", 480),
    ]


def test_summary_ignores_window_and_keeps_fractions():
    outside = WINDOW.start - timedelta(days=30)
    rows = mod.build_summary_rows([wl(1, 1, started=outside, time_spent="0.5m")], ISSUES.get)
    assert rows[0].total_minutes == 0.5


def test_summary_resolves_each_pair_once():
    calls = []

    def lookup(issue_id):
        calls.append(issue_id)
        return ISSUES.get(issue_id)

    mod.build_summary_rows([wl(1, 1), wl(2, 1), wl(3, 2)], lookup)
    assert calls == ["1", "2"]


def test_summary_missing_issue_uses_placeholder():
    rows = mod.build_summary_rows([wl(1, 999, time_spent="garbage")], lambda _id: None)
    assert rows == [mod.SummaryRow("Dev A", "#999", 0)]


def test_summary_empty_is_fatal():
    with pytest.raises(mod.NoWorklogsError):
        mod.build_summary_rows([], ISSUES.get)


def test_render_table_contains_headers_and_values():
    text = mod.render_table([mod.SummaryRow("Ana", "PROJ-1", 60)])
    assert "Autor" in text and "Total (min)" in text
    assert "PROJ-1" in text and "60" in text


def test_write_csv_semicolon_fully_quoted(tmp_path):
    out = tmp_path / "sub" / "w41.csv"
    rows = [mod.SummaryRow("Ana", "PROJ-1", 60), mod.SummaryRow("Bruno; Jr", "#9", 12.5)]
    mod.write_csv(rows, str(out))
    assert out.read_text(encoding="utf-8") == (
        '"Autor";"Chave";"Total (min)"\n'
        '"Ana";"PROJ-1";"60"\n'
        '"Bruno; Jr";"#9";"12.5"\n'
    )


def test_write_csv_detail_header(tmp_path):
    out = tmp_path / "d.csv"
    rows = mod.build_detail_rows([wl(1, 1, time_spent="1h 30m", comment='say "hi"')], WINDOW, ISSUES.get)
    mod.write_csv(rows, str(out))
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ";".join(f'"{c}"' for c in mod.DETAIL_COLS)
    assert '"1,50"' in lines[1]
    assert '"say ""hi"""' in lines[1]
    assert len(lines) == 2


def test_summary_pipeline_csv_is_byte_identical_across_runs(tmp_path):
    logs = [wl(1, 1, author="Ana", time_spent="20m"), wl(2, 2, author="Bruno", time_spent="2h"),
            wl(3, 1, author="Ana", time_spent="40m")]
    a, b = tmp_path / "a.csv", tmp_path / "b.csv"
    mod.write_csv(mod.build_summary_rows(logs, ISSUES.get), str(a))
    mod.write_csv(mod.build_summary_rows(logs, ISSUES.get), str(b))
    assert a.read_bytes() == b.read_bytes()


def test_default_csv_name():
    assert mod.default_csv_name(WINDOW) == "w41.csv"
