"""
Run configuration.

Values come from an optional config.ini ([jira] section) and fall back to
environment variables:

    JIRA_DOMAIN (or JIRA_BASE_URL), JIRA_EMAIL, JIRA_API_TOKEN
"""

import configparser
import os
from dataclasses import dataclass

DEFAULT_HOURS_PER_DAY = 8.0


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


@dataclass(frozen=True)
class Config:
    base_url: str
    email: str
    token: str
    verify_ssl: bool = True
    ca_bundle: str = ""
    http_proxy: str = ""
    https_proxy: str = ""
    hours_per_day: float = DEFAULT_HOURS_PER_DAY


def normalize_base_url(domain: str) -> str:
    """Turn 'acme.atlassian.net' or 'https://acme.atlassian.net/' into a base URL."""
    domain = domain.strip().rstrip("/")
    if not domain:
        return ""
    if "://" not in domain:
        domain = f"https://{domain}"
    return domain


def _truthy(s: str) -> bool:
    return s.strip().lower() in ("1", "true", "yes", "on")


def read_config(path: str = "") -> Config:
    """Read and validate configuration from an INI file and the environment.

    The config file is optional; any credential it leaves empty is taken
    from the environment. Raises ConfigError when domain, email or token
    cannot be determined.
    """
    cp = configparser.ConfigParser()
    if path:
        cp.read(path, encoding="utf-8")
    sec = cp["jira"] if "jira" in cp else {}

    domain = sec.get("domain", "").strip() or sec.get("base_url", "").strip()
    email  = sec.get("email", "").strip()
    token  = sec.get("api_token", "").strip()
    domain = domain or os.environ.get("JIRA_DOMAIN", "").strip() or os.environ.get("JIRA_BASE_URL", "").strip()
    email  = email or os.environ.get("JIRA_EMAIL", "").strip()
    token  = token or os.environ.get("JIRA_API_TOKEN", "").strip()

    missing = [name for name, val in (("JIRA_DOMAIN", domain), ("JIRA_EMAIL", email), ("JIRA_API_TOKEN", token)) if not val]
    if missing:
        raise ConfigError(
            "configuração ausente: " + ", ".join(missing)
            + " (defina no config.ini ou em variáveis de ambiente)"
        )

    raw_hours = sec.get("hours_per_day", "").strip()
    try:
        hours_per_day = float(raw_hours) if raw_hours else DEFAULT_HOURS_PER_DAY
    except ValueError:
        raise ConfigError(f"hours_per_day inválido: {raw_hours!r}")
    if hours_per_day <= 0:
        raise ConfigError(f"hours_per_day deve ser positivo: {raw_hours!r}")

    return Config(
        base_url=normalize_base_url(domain),
        email=email,
        token=token,
        verify_ssl=_truthy(sec.get("verify_ssl", "true")),
        ca_bundle=sec.get("ca_bundle", "").strip(),
        http_proxy=sec.get("http_proxy", "").strip(),
        https_proxy=sec.get("https_proxy", "").strip(),
        hours_per_day=hours_per_day,
    )
