"""
Configuration dataclasses for the domain finder system.

This module defines all configuration structures used throughout the system,
including provider credentials, name generation, rate limiting, retry logic,
search bounds, and logging configuration, plus loading them from
environment-style key/value pairs (``os.environ`` and an optional ``.env``).

Missing or malformed values never raise: they fall back to defaults so that
the search degrades to the mock or fail-closed path instead of crashing.
"""

import ipaddress
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import dotenv_values, find_dotenv

from .exceptions import ValidationError
from .tld_registry import DEFAULT_TLD, normalize_tld


@dataclass
class NamecheapCredentials:
    """Credentials for the Namecheap XML API."""

    api_user: str
    api_key: str
    username: str
    client_ip: str
    sandbox: bool = False

    def problems(self) -> list[str]:
        """Return the reasons these credentials are unusable (empty if usable)."""
        problems = []
        if not self.api_key or len(self.api_key) <= 10:
            problems.append("api_key missing or too short")
        if not self.api_user:
            problems.append("api_user missing")
        if not self.username:
            problems.append("username missing")
        try:
            ipaddress.ip_address(self.client_ip)
        except ValueError:
            problems.append("client_ip missing or not an IP address")
        return problems


@dataclass
class GoDaddyCredentials:
    """Credentials for the GoDaddy domains API."""

    api_key: str
    api_secret: str
    environment: str = "production"  # 'production' or 'ote'

    def problems(self) -> list[str]:
        """Return the reasons these credentials are unusable (empty if usable)."""
        problems = []
        if not self.api_key or len(self.api_key) < 10:
            problems.append("api_key missing or too short")
        elif ":" in self.api_key or any(c.isspace() for c in self.api_key):
            problems.append("api_key contains invalid characters")
        if not self.api_secret or len(self.api_secret) < 10:
            problems.append("api_secret missing or too short")
        elif any(c.isspace() for c in self.api_secret):
            problems.append("api_secret contains whitespace")
        if self.environment not in ("production", "ote"):
            problems.append(f"unknown environment {self.environment!r}")
        return problems


@dataclass
class GeneratorConfig:
    """Name generator (Gemini) configuration."""

    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    suggestions_per_round: int = 5
    timeout_seconds: float = 30.0


@dataclass
class HeuristicConfig:
    """DNS + HTTP probe configuration."""

    enabled: bool = True
    dns_timeout_seconds: float = 3.0
    probe_timeout_seconds: float = 5.0
    batch_width: int = 3
    batch_delay_seconds: float = 1.0


@dataclass
class MockConfig:
    """Deterministic mock provider configuration."""

    seed: str = "domain-finder"
    availability_rate: float = 0.3
    latency_seconds: float = 0.5


@dataclass
class RateLimitRule:
    """A single rate limit rule."""

    max_requests: int
    window_seconds: float
    min_delay_seconds: float = 0.0


@dataclass
class RateLimitConfig:
    """Rate limiting configuration per provider and globally."""

    per_provider: dict[str, RateLimitRule] = field(default_factory=dict)
    global_limit: Optional[RateLimitRule] = None


@dataclass
class RetryConfig:
    """Retry behavior for name generation."""

    max_retries: int = 1
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0


@dataclass
class SearchConfig:
    """Bounds and pacing of a search session."""

    required_available: int = 5
    max_attempts: int = 5
    max_domains_checked: int = 100
    reveal_delay_seconds: float = 0.3
    batch_size: int = 50


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    namecheap: Optional[NamecheapCredentials] = None
    godaddy: Optional[GoDaddyCredentials] = None
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    heuristic: HeuristicConfig = field(default_factory=HeuristicConfig)
    mock: MockConfig = field(default_factory=MockConfig)
    rate_limits: RateLimitConfig = field(default_factory=lambda: default_rate_limits())
    retry: RetryConfig = field(default_factory=RetryConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tld: str = DEFAULT_TLD
    language: str = "en"  # 'en' or 'de'
    simulation_mode: bool = False
    http_timeout_seconds: float = 15.0
    warnings: list[str] = field(default_factory=list)

    def has_real_credentials(self) -> bool:
        """True if at least one registrar has usable credentials."""
        if self.namecheap is not None and not self.namecheap.problems():
            return True
        if self.godaddy is not None and not self.godaddy.problems():
            return True
        return False


def default_rate_limits() -> RateLimitConfig:
    """Documented registrar limits: Namecheap 20/min, GoDaddy 60/min."""
    return RateLimitConfig(
        per_provider={
            "namecheap": RateLimitRule(max_requests=20, window_seconds=60.0),
            "godaddy": RateLimitRule(max_requests=60, window_seconds=60.0),
        },
    )


def create_default_config(
    simulation_mode: bool = False,
    language: str = "en",
    tld: str = DEFAULT_TLD,
) -> SystemConfig:
    """
    Create a configuration without any credentials.

    Args:
        simulation_mode: Force the mock provider (no real network requests)
        language: Output language ('en' or 'de')
        tld: Default TLD to search

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig(
        tld=tld,
        language=language,
        simulation_mode=simulation_mode,
    )


def _int_env(values: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(values.get(name, default))
    except (TypeError, ValueError):
        return default


def _float_env(values: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(values.get(name, default))
    except (TypeError, ValueError):
        return default


def _bool_env(values: Mapping[str, str], name: str, default: bool) -> bool:
    raw = values.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _str_env(values: Mapping[str, str], name: str) -> str:
    return (values.get(name) or "").strip()


def _read_environment(dotenv_path: Optional[str]) -> dict[str, str]:
    """Merge a .env file (if any) with the process environment; env wins."""
    path = dotenv_path or find_dotenv(usecwd=True)
    merged: dict[str, str] = {}
    if path:
        merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})
    merged.update(os.environ)
    return merged


def load_config_from_env(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[str] = None,
) -> SystemConfig:
    """
    Build a SystemConfig from environment-style key/value pairs.

    Args:
        env: Explicit mapping to read instead of the process environment
        dotenv_path: Optional .env file merged under the process environment

    Returns:
        SystemConfig; problems are recorded in ``config.warnings``
    """
    values = dict(env) if env is not None else _read_environment(dotenv_path)
    warnings: list[str] = []

    namecheap = None
    nc_user = _str_env(values, "NAMECHEAP_API_USER")
    nc_key = _str_env(values, "NAMECHEAP_API_KEY")
    if nc_user or nc_key:
        namecheap = NamecheapCredentials(
            api_user=nc_user,
            api_key=nc_key,
            username=_str_env(values, "NAMECHEAP_USERNAME") or nc_user,
            client_ip=_str_env(values, "NAMECHEAP_CLIENT_IP"),
            sandbox=_bool_env(values, "NAMECHEAP_SANDBOX", False),
        )
        for problem in namecheap.problems():
            warnings.append(f"namecheap: {problem}")

    godaddy = None
    gd_key = _str_env(values, "GODADDY_API_KEY")
    gd_secret = _str_env(values, "GODADDY_API_SECRET")
    if gd_key or gd_secret:
        godaddy = GoDaddyCredentials(
            api_key=gd_key,
            api_secret=gd_secret,
            environment=(_str_env(values, "GODADDY_ENV") or "production").lower(),
        )
        for problem in godaddy.problems():
            warnings.append(f"godaddy: {problem}")

    generator = GeneratorConfig(
        api_key=_str_env(values, "GEMINI_API_KEY") or _str_env(values, "GOOGLE_API_KEY") or None,
        model=_str_env(values, "GEMINI_MODEL") or GeneratorConfig.model,
        suggestions_per_round=_int_env(values, "SUGGESTIONS_PER_ROUND", 5),
    )

    tld = DEFAULT_TLD
    raw_tld = _str_env(values, "DOMAIN_TLD")
    if raw_tld:
        try:
            tld = normalize_tld(raw_tld)
        except ValidationError as e:
            warnings.append(f"DOMAIN_TLD: {e.message}; using .{DEFAULT_TLD}")

    language = (_str_env(values, "LANGUAGE") or "en").lower()
    if language not in ("en", "de"):
        language = "en"

    output_format = (_str_env(values, "LOG_FORMAT") or "text").lower()
    if output_format not in ("json", "text", "both"):
        output_format = "text"

    return SystemConfig(
        namecheap=namecheap,
        godaddy=godaddy,
        generator=generator,
        heuristic=HeuristicConfig(
            enabled=_bool_env(values, "HEURISTIC_ENABLED", True),
            probe_timeout_seconds=_float_env(values, "PROBE_TIMEOUT", 5.0),
        ),
        mock=MockConfig(
            seed=_str_env(values, "MOCK_SEED") or MockConfig.seed,
        ),
        retry=RetryConfig(
            max_retries=max(0, _int_env(values, "GENERATION_RETRIES", 1)),
        ),
        search=SearchConfig(
            required_available=max(1, _int_env(values, "SEARCH_REQUIRED_AVAILABLE", 5)),
            max_attempts=max(1, _int_env(values, "SEARCH_MAX_ATTEMPTS", 5)),
            max_domains_checked=max(1, _int_env(values, "SEARCH_MAX_DOMAINS_CHECKED", 100)),
            reveal_delay_seconds=max(0.0, _float_env(values, "REVEAL_DELAY_SECONDS", 0.3)),
        ),
        logging=LoggingConfig(
            level=(_str_env(values, "LOG_LEVEL") or "info").lower(),
            output_format=output_format,
        ),
        tld=tld,
        language=language,
        simulation_mode=_bool_env(values, "SIMULATION_MODE", False),
        http_timeout_seconds=_float_env(values, "HTTP_TIMEOUT", 15.0),
        warnings=warnings,
    )
