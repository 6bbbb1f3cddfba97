"""
Console entrypoint for jira-week-report.

Fetches the worklogs of one ISO week (or the previous week), joins them to
their issues and prints a detail or summary report, also saved as CSV.

Exit codes:
    2  configuration error (missing credentials, invalid week)
    3  Jira request failed or returned an unexpected body
    4  CSV file could not be written
    5  no worklogs to report
"""

import argparse
import sys
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Union

import requests
import urllib3

from .client import JiraClient, JiraError, make_session
from .config import Config, ConfigError, read_config
from .issues import Issue, IssueCache, missing_issue_ids, search_issues
from .report import (
    DetailRow,
    NoWorklogsError,
    SummaryRow,
    build_detail_rows,
    build_summary_rows,
    default_csv_name,
    filter_window,
    render_table,
    write_csv,
)
from .weeks import TimeWindow, current_iso_week, last_week_window, week_window
from .worklogs import BATCH_SIZE, PAGE_SIZE, Worklog, fetch_updated_worklog_ids, fetch_worklogs

EXIT_CONFIG = 2
EXIT_JIRA = 3
EXIT_WRITE = 4
EXIT_EMPTY = 5


def positive_int(value: str) -> int:
    """argparse type: integer greater than zero."""
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"deve ser positivo: {value}")
    return n


def non_negative_int(value: str) -> int:
    """argparse type: integer, zero or greater."""
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"não pode ser negativo: {value}")
    return n


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Relatório semanal de horas registradas no Jira (tabela + CSV).")
    p.add_argument("--week", type=int, default=None, help="Semana ISO (padrão: semana atual)")
    p.add_argument("--year", type=int, default=None, help="Ano ISO da semana (padrão: ano atual)")
    p.add_argument("--last-week", action="store_true", help="Usa a semana anterior à atual (ignora --week)")
    p.add_argument("--mode", choices=("detail", "summary"), default="detail",
                   help="detail: uma linha por worklog; summary: minutos por autor/issue (padrão: detail)")
    p.add_argument("--issues", choices=("bulk", "cached"), default=None,
                   help="Busca de issues: bulk (uma pesquisa JQL) ou cached (uma chamada por issue). "
                        "Padrão: bulk para detail, cached para summary")
    p.add_argument("--csv", default="", help="Arquivo CSV de saída (padrão: w<semana>.csv)")
    p.add_argument("--no-csv", action="store_true", help="Apenas imprime a tabela, sem gerar CSV")
    p.add_argument("--config", default="", help="Caminho para um config.ini opcional (seção [jira])")
    p.add_argument("--timeout", type=int, default=120, help="Timeout por requisição (s) (default=120)")
    p.add_argument("--page-size", type=positive_int, default=PAGE_SIZE, help="Ids por página de worklog/updated (default=100)")
    p.add_argument("--batch-size", type=non_negative_int, default=BATCH_SIZE,
                   help="Ids por chamada de worklog/list; 0 = todos de uma vez (default=100)")
    p.add_argument("--hours-per-day", type=float, default=None, help="Horas de um dia de trabalho ('1d') (default=8)")
    p.add_argument("--insecure", action="store_true", help="DESATIVA verificação SSL (NÃO RECOMENDADO)")
    p.add_argument("--verbose", action="store_true", help="Logs detalhados")
    return p.parse_args(argv)


def vprint(verbose: bool, *args, **kwargs):
    """Print arguments only when verbose is True."""
    if verbose:
        print(*args, **kwargs)


def resolve_window(args: argparse.Namespace, now: Optional[datetime] = None) -> TimeWindow:
    """Pick the report window from --last-week / --week / --year."""
    if args.last_week:
        return last_week_window(now)
    year, week = current_iso_week(now)
    return week_window(args.week if args.week is not None else week,
                       args.year if args.year is not None else year)


def collect_worklogs(client: JiraClient, window: TimeWindow, page_size: int = PAGE_SIZE,
                     batch_size: Optional[int] = BATCH_SIZE, verbose: bool = False) -> List[Worklog]:
    """Fetch every worklog updated within the window."""
    ids = fetch_updated_worklog_ids(client, window.start_ms, window.end_ms, max_results=page_size)
    print(f"Encontrados {len(ids)} worklogs atualizados")
    logs = fetch_worklogs(client, ids, batch_size=batch_size)
    vprint(verbose, f"Worklogs recebidos: {len(logs)}")
    return logs


def issue_lookup(client: JiraClient, worklogs: Sequence[Worklog], strategy: str,
                 verbose: bool = False) -> Callable[[str], Optional[Issue]]:
    """Return an issue_id -> Issue|None callable using the chosen strategy."""
    issue_ids = [wl.issue_id for wl in worklogs]
    cache = None
    if strategy == "cached":
        cache = IssueCache(client)
        found = cache.resolve(issue_ids)
    else:
        found = search_issues(client, issue_ids)
    vprint(verbose, f"Issues resolvidas: {len(found)}")
    missing = missing_issue_ids(issue_ids, found)
    if missing:
        print(f"AVISO: issues não encontradas: {', '.join(missing)}", file=sys.stderr)
    if cache is not None:
        return cache.get_or_fetch
    return found.get


def build_report(client: JiraClient, args: argparse.Namespace, cfg: Config,
                 window: TimeWindow) -> List[Union[DetailRow, SummaryRow]]:
    """Run fetch -> resolve -> aggregate for the selected mode."""
    hours_per_day = args.hours_per_day if args.hours_per_day is not None else cfg.hours_per_day
    batch_size = args.batch_size or None
    logs = collect_worklogs(client, window, page_size=args.page_size, batch_size=batch_size, verbose=args.verbose)
    strategy = args.issues or ("bulk" if args.mode == "detail" else "cached")
    if args.mode == "detail":
        in_window = filter_window(logs, window)
        lookup = issue_lookup(client, in_window, strategy, verbose=args.verbose)
        return build_detail_rows(in_window, window, lookup, hours_per_day=hours_per_day)
    lookup = issue_lookup(client, logs, strategy, verbose=args.verbose)
    return build_summary_rows(logs, lookup, hours_per_day=hours_per_day)


def fail(message: str, code: int):
    print(f"ERRO: {message}", file=sys.stderr)
    sys.exit(code)


def main(argv: Optional[Sequence[str]] = None):
    """Program entry point to orchestrate extraction and export."""
    args = parse_args(argv)
    try:
        cfg = read_config(args.config)
        window = resolve_window(args)
    except (ConfigError, ValueError) as e:
        fail(str(e), EXIT_CONFIG)

    verify_val = False if args.insecure else cfg.verify_ssl
    if not verify_val and not cfg.ca_bundle:
        sys.stderr.write("WARNING: SSL certificate verification is DISABLED. Use only for testing.\n")
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    session = make_session(cfg.email, cfg.token, verify=verify_val, ca_bundle=cfg.ca_bundle,
                           http_proxy=cfg.http_proxy, https_proxy=cfg.https_proxy)
    client = JiraClient(session, cfg.base_url, timeout=args.timeout)

    print(f"Buscando worklogs da {window.describe()} ({window.start.isoformat()} a {window.end.isoformat()})")
    vprint(args.verbose, f"since={window.start_ms} until={window.end_ms}")

    try:
        rows = build_report(client, args, cfg, window)
    except NoWorklogsError as e:
        fail(str(e), EXIT_EMPTY)
    except (JiraError, requests.RequestException) as e:
        fail(str(e), EXIT_JIRA)
    except ValueError as e:
        fail(str(e), EXIT_CONFIG)
    vprint(args.verbose, f"Requisições ao Jira: {client.request_count}")

    print()
    print(render_table(rows))

    if args.no_csv:
        return
    out_path = args.csv.strip() or default_csv_name(window)
    try:
        write_csv(rows, out_path)
    except OSError as e:
        fail(f"falha ao escrever CSV: {e}", EXIT_WRITE)
    print(f"CSV salvo em {out_path}")


if __name__ == "__main__":
    main()
