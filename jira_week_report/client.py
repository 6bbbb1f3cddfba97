"""
Authenticated Jira Cloud REST client.

Thin wrapper around a configured requests.Session:
- HTTP Basic auth (email + API token), JSON Accept/Content-Type headers
- optional proxies and SSL verification / custom CA bundle
- non-success responses raise JiraHTTPError carrying status, reason and body

No retries are attempted; a failed request aborts the run.
"""

from typing import Any, Dict, Optional

import requests

DEFAULT_TIMEOUT = 120


class JiraError(Exception):
    """Base class for errors raised while talking to Jira."""


class JiraHTTPError(JiraError):
    """A request returned a non-success HTTP status."""

    def __init__(self, method: str, url: str, status_code: int, reason: str = "", body: str = ""):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"{method} {url} falhou: {status_code} {reason} - {body}")


class MalformedResponseError(JiraError):
    """A response body did not have the expected shape."""


def make_session(email: str, token: str, verify: Optional[bool]=True, ca_bundle: Optional[str]="",
                 http_proxy: str="", https_proxy: str="") -> requests.Session:
    """Create a configured requests.Session for Jira API access.

    Applies basic auth with email/token, JSON headers, optional proxies,
    and SSL verification or custom CA bundle.

    Args:
        email: Jira account email (username).
        token: Jira API token (password).
        verify: Whether to verify SSL certs (ignored if ca_bundle provided).
        ca_bundle: Path to CA bundle to use for SSL verification.
        http_proxy: HTTP proxy URL.
        https_proxy: HTTPS proxy URL.

    Returns:
        requests.Session: Configured session instance.
    """
    s = requests.Session()
    s.auth = (email, token)
    s.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
    proxies = {}
    if http_proxy:
        proxies["http"] = http_proxy
    if https_proxy:
        proxies["https"] = https_proxy
    if proxies:
        s.proxies.update(proxies)
    s.verify = ca_bundle if ca_bundle else verify
    return s


class JiraClient:
    """Sequential GET/POST access to one Jira site."""

    def __init__(self, session: requests.Session, base_url: str, timeout: int = DEFAULT_TIMEOUT):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.request_count = 0

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self.url(path)
        self.request_count += 1
        r = self.session.get(url, params=params, timeout=self.timeout)
        return self._decode("GET", url, r)

    def post(self, path: str, body: Dict[str, Any]) -> Any:
        url = self.url(path)
        self.request_count += 1
        r = self.session.post(url, json=body, timeout=self.timeout)
        return self._decode("POST", url, r)

    @staticmethod
    def _decode(method: str, url: str, r: requests.Response) -> Any:
        if r.status_code >= 400:
            raise JiraHTTPError(method, url, r.status_code, getattr(r, "reason", "") or "", getattr(r, "text", ""))
        try:
            return r.json()
        except ValueError as e:
            raise MalformedResponseError(f"{method} {url}: resposta não é JSON válido ({e})") from e
