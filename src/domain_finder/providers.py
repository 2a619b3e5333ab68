"""
Availability providers for the domain finder system.

Every provider implements the same small interface: ``is_usable()`` and
``check_batch(candidates, tld)``. A provider either answers for every
candidate it was given or raises a ProviderError; it never returns partial
or guessed data.

Providers, in default priority order:
- NamecheapProvider: registrar batch API (XML), authoritative
- GoDaddyProvider: registrar bulk API (JSON), authoritative
- HeuristicProbeProvider: DNS lookup plus HTTP probe, an approximation only
- MockProvider: deterministic pseudo-random answers for demo/development,
  usable only when no real registrar credentials are configured
"""

import asyncio
import random
import xml.etree.ElementTree as ET
from abc import abstractmethod
from typing import Awaitable, Callable, Iterator, Optional, Protocol, runtime_checkable

import dns.asyncresolver
import dns.exception
import dns.resolver
import httpx

from .audit_logger import AuditLogger
from .config import (
    GoDaddyCredentials,
    HeuristicConfig,
    MockConfig,
    NamecheapCredentials,
    SystemConfig,
)
from .enums import Confidence, ProviderErrorCode, ProviderName
from .exceptions import (
    CredentialsMissing,
    MalformedResponse,
    NetworkError,
    ProviderError,
    RateLimited,
    Unauthorized,
)
from .rate_limiter import RateLimiter

MAX_BATCH_SIZE = 50

USER_AGENT = "DomainFinder/0.1 (+https://github.com/domain-finder)"


@runtime_checkable
class AvailabilityProvider(Protocol):
    """Protocol defining the interface for availability providers."""

    name: str
    confidence: Confidence

    @abstractmethod
    def is_usable(self) -> bool:
        """Return True if the provider can be called right now."""
        ...

    @abstractmethod
    async def check_batch(self, candidates: list[str], tld: str) -> dict[str, bool]:
        """
        Check availability of ``<candidate>.<tld>`` for every candidate.

        Returns:
            Mapping of every candidate to True (available) or False

        Raises:
            ProviderError: If no trustworthy answer can be produced
        """
        ...


def chunked(items: list[str], size: int) -> Iterator[list[str]]:
    """Split a list into consecutive chunks of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class RegistrarProvider:
    """
    Shared plumbing for registrar HTTP APIs.

    Handles credential checks, batching, rate limiting, HTTP status mapping,
    and completeness of the answer. Subclasses implement ``_check_chunk``.
    """

    name = ""
    confidence = Confidence.HIGH

    def __init__(
        self,
        credentials,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        logger: Optional[AuditLogger] = None,
        batch_size: int = MAX_BATCH_SIZE,
        timeout: float = 15.0,
    ) -> None:
        """
        Args:
            credentials: Provider credentials, or None if not configured
            client: Optional shared HTTP client (not closed by the provider)
            rate_limiter: Optional limiter applied before every request
            logger: Optional logger
            batch_size: Candidates per request, capped at 50
            timeout: Request timeout in seconds
        """
        self._credentials = credentials
        self._client = client
        self._owns_client = client is None
        self._rate_limiter = rate_limiter
        self._logger = logger
        self._batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))
        self._timeout = timeout
        self._usable: Optional[bool] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def credential_problems(self) -> list[str]:
        if self._credentials is None:
            return ["not configured"]
        return self._credentials.problems()

    def is_usable(self) -> bool:
        if self._usable is None:
            problems = self.credential_problems()
            self._usable = not problems
            if self._logger:
                self._logger.debug(
                    self.name,
                    "Credential check",
                    {"usable": self._usable, "problems": problems},
                )
        return self._usable

    async def check_batch(self, candidates: list[str], tld: str) -> dict[str, bool]:
        if not self.is_usable():
            raise CredentialsMissing(
                code=ProviderErrorCode.CREDENTIALS_MISSING.value,
                message=f"{self.name} credentials are not configured",
                details={"problems": self.credential_problems()},
                provider=self.name,
            )
        if not candidates:
            return {}

        answers: dict[str, bool] = {}
        for chunk in chunked(candidates, self._batch_size):
            await self._throttle()
            answers.update(await self._check_chunk(chunk, tld))

        missing = [c for c in candidates if c not in answers]
        if missing:
            raise MalformedResponse(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message=f"{self.name} response is missing {len(missing)} domain(s)",
                details={"missing": missing},
                provider=self.name,
            )
        return {c: answers[c] for c in candidates}

    @abstractmethod
    async def _check_chunk(self, chunk: list[str], tld: str) -> dict[str, bool]:
        ...

    async def _throttle(self) -> None:
        if self._rate_limiter is None:
            return
        status = await self._rate_limiter.throttle(self.name)
        if status.wait_seconds > 0 and self._logger:
            self._logger.debug(
                self.name,
                "Rate limit wait",
                {
                    "wait_seconds": round(status.wait_seconds, 3),
                    "allowed": status.allowed,
                    "reason": status.reason,
                },
            )
        if not status.allowed:
            raise RateLimited(
                code=ProviderErrorCode.RATE_LIMITED.value,
                message=f"{self.name} is cooling down: {status.reason}",
                provider=self.name,
                retry_after_seconds=status.wait_seconds,
            )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request and map transport failures and HTTP errors."""
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(
                code=ProviderErrorCode.TIMEOUT.value,
                message=f"{self.name} request timed out after {self._timeout}s",
                details={"error": str(e)},
                provider=self.name,
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                code=ProviderErrorCode.NETWORK_ERROR.value,
                message=f"{self.name} connection error: {e}",
                provider=self.name,
            )

        status = response.status_code
        if status in (401, 403):
            raise Unauthorized(
                code=ProviderErrorCode.UNAUTHORIZED.value,
                message=f"{self.name} rejected the credentials (HTTP {status})",
                details={"http_status_code": status},
                provider=self.name,
            )
        if status in (429, 503):
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if self._rate_limiter:
                self._rate_limiter.apply_adaptive_delay(self.name, status, retry_after)
            if status == 429:
                raise RateLimited(
                    code=ProviderErrorCode.RATE_LIMITED.value,
                    message=f"{self.name} rate limit exceeded (HTTP 429)",
                    details={"http_status_code": status},
                    provider=self.name,
                    retry_after_seconds=retry_after,
                )
        if status >= 400:
            raise NetworkError(
                code=ProviderErrorCode.NETWORK_ERROR.value,
                message=f"{self.name} returned HTTP {status}",
                details={"http_status_code": status},
                provider=self.name,
            )

        if self._rate_limiter:
            self._rate_limiter.record_success(self.name)
        return response

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None


class NamecheapProvider(RegistrarProvider):
    """
    Primary provider: Namecheap ``namecheap.domains.check`` (XML API).

    One GET per chunk of up to 50 domains.
    """

    name = ProviderName.NAMECHEAP.value

    PRODUCTION_URL = "https://api.namecheap.com/xml.response"
    SANDBOX_URL = "https://api.sandbox.namecheap.com/xml.response"

    # API error texts that mean "fix your credentials"
    AUTH_ERROR_HINTS = (
        "api key",
        "apikey",
        "api access",
        "invalid request ip",
        "whitelist",
        "not authorized",
        "permission",
        "apiuser",
        "username is invalid",
    )
    RATE_ERROR_HINTS = ("too many", "limit", "throttle", "exceed")

    def __init__(self, credentials: Optional[NamecheapCredentials], **kwargs) -> None:
        super().__init__(credentials, **kwargs)

    @property
    def base_url(self) -> str:
        if self._credentials is not None and self._credentials.sandbox:
            return self.SANDBOX_URL
        return self.PRODUCTION_URL

    async def _check_chunk(self, chunk: list[str], tld: str) -> dict[str, bool]:
        creds = self._credentials
        params = {
            "ApiUser": creds.api_user,
            "ApiKey": creds.api_key,
            "UserName": creds.username,
            "ClientIp": creds.client_ip,
            "Command": "namecheap.domains.check",
            "DomainList": ",".join(f"{c}.{tld}" for c in chunk),
        }
        if self._logger:
            self._logger.debug(self.name, "Checking batch", {"count": len(chunk), "tld": tld})
        response = await self._request("GET", self.base_url, params=params)
        return self.parse_response(response.text, chunk, tld)

    def parse_response(self, xml_text: str, chunk: list[str], tld: str) -> dict[str, bool]:
        """
        Parse an ApiResponse document into availability per candidate.

        Raises:
            Unauthorized, RateLimited, ProviderError: For API-level errors
            MalformedResponse: If the XML is unreadable or has no results
        """
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise MalformedResponse(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message=f"Could not parse Namecheap XML: {e}",
                details={"snippet": xml_text[:300]},
                provider=self.name,
            )

        errors = [el for el in root.iter() if _local_name(el.tag) == "Error"]
        if root.attrib.get("Status", "").upper() == "ERROR" or errors:
            self._raise_api_error(errors)

        results = [el for el in root.iter() if _local_name(el.tag) == "DomainCheckResult"]
        if not results:
            raise MalformedResponse(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message="Namecheap response has no DomainCheckResult elements",
                details={"snippet": xml_text[:300]},
                provider=self.name,
            )

        requested = set(chunk)
        suffix = f".{tld}"
        answers: dict[str, bool] = {}
        for el in results:
            domain = el.attrib.get("Domain", "").lower()
            if not domain.endswith(suffix):
                continue
            name = domain[: -len(suffix)]
            if name in requested:
                answers[name] = el.attrib.get("Available", "false").lower() == "true"
        return answers

    def _raise_api_error(self, errors: list[ET.Element]) -> None:
        messages = [
            f"{el.attrib.get('Number', '?')}:{(el.text or '').strip()}" for el in errors
        ]
        full_message = "; ".join(messages) or "unknown error"
        low = full_message.lower()

        if any(hint in low for hint in self.AUTH_ERROR_HINTS):
            raise Unauthorized(
                code=ProviderErrorCode.UNAUTHORIZED.value,
                message=f"Namecheap rejected the credentials: {full_message}",
                provider=self.name,
            )
        if any(hint in low for hint in self.RATE_ERROR_HINTS):
            raise RateLimited(
                code=ProviderErrorCode.RATE_LIMITED.value,
                message=f"Namecheap rate limit: {full_message}",
                provider=self.name,
            )
        raise ProviderError(
            code=ProviderErrorCode.API_ERROR.value,
            message=f"Namecheap API error: {full_message}",
            provider=self.name,
        )


def _local_name(tag: str) -> str:
    """Strip an XML namespace: '{ns}DomainCheckResult' -> 'DomainCheckResult'."""
    return tag.rsplit("}", 1)[-1]


class GoDaddyProvider(RegistrarProvider):
    """
    Secondary provider: GoDaddy bulk availability (JSON API).

    One POST per chunk of up to 50 domains.
    """

    name = ProviderName.GODADDY.value

    PRODUCTION_URL = "https://api.godaddy.com"
    OTE_URL = "https://api.ote-godaddy.com"

    def __init__(self, credentials: Optional[GoDaddyCredentials], **kwargs) -> None:
        super().__init__(credentials, **kwargs)

    @property
    def base_url(self) -> str:
        if self._credentials is not None and self._credentials.environment == "ote":
            return self.OTE_URL
        return self.PRODUCTION_URL

    async def _check_chunk(self, chunk: list[str], tld: str) -> dict[str, bool]:
        creds = self._credentials
        headers = {
            "Authorization": f"sso-key {creds.api_key}:{creds.api_secret}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._logger:
            self._logger.debug(self.name, "Checking batch", {"count": len(chunk), "tld": tld})
        response = await self._request(
            "POST",
            f"{self.base_url}/v1/domains/available",
            params={"checkType": "FAST"},
            headers=headers,
            json=[f"{c}.{tld}" for c in chunk],
        )
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message=f"GoDaddy response is not JSON: {e}",
                provider=self.name,
            )
        return self.parse_response(data, chunk, tld)

    def parse_response(self, data: object, chunk: list[str], tld: str) -> dict[str, bool]:
        """
        Parse the bulk availability body into availability per candidate.

        Raises:
            MalformedResponse: If the ``domains`` array is absent or invalid
        """
        if not isinstance(data, dict) or not isinstance(data.get("domains"), list):
            raise MalformedResponse(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message="GoDaddy response has no 'domains' array",
                details={"keys": sorted(data) if isinstance(data, dict) else None},
                provider=self.name,
            )

        requested = set(chunk)
        suffix = f".{tld}"
        answers: dict[str, bool] = {}
        for item in data["domains"]:
            if not isinstance(item, dict):
                continue
            domain = str(item.get("domain", "")).lower()
            available = item.get("available")
            if not domain.endswith(suffix) or not isinstance(available, bool):
                continue
            name = domain[: -len(suffix)]
            if name in requested:
                answers[name] = available
        return answers


class HeuristicProbeProvider:
    """
    Approximate availability from DNS and HTTP reachability.

    A name with no DNS answer and no reachable HTTP endpoint is reported as
    available. This is lower-confidence than a registrar answer: registered
    names without DNS records look available here.
    """

    name = ProviderName.HEURISTIC.value
    confidence = Confidence.LOW

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or HeuristicConfig()
        self._resolver = resolver
        self._client = client
        self._owns_client = client is None
        self._logger = logger
        self._sleep = sleep

    def is_usable(self) -> bool:
        return self._config.enabled

    async def check_batch(self, candidates: list[str], tld: str) -> dict[str, bool]:
        if not self.is_usable():
            raise CredentialsMissing(
                code=ProviderErrorCode.CREDENTIALS_MISSING.value,
                message="Heuristic probe is disabled",
                provider=self.name,
            )
        if not candidates:
            return {}

        answers: dict[str, bool] = {}
        dns_failures = 0
        width = max(1, self._config.batch_width)
        for index, group in enumerate(chunked(candidates, width)):
            if index > 0 and self._config.batch_delay_seconds > 0:
                await self._sleep(self._config.batch_delay_seconds)
            outcomes = await asyncio.gather(*(self._probe(f"{c}.{tld}") for c in group))
            for candidate, (available, dns_failed) in zip(group, outcomes):
                answers[candidate] = available
                dns_failures += int(dns_failed)

        if dns_failures == len(candidates):
            raise NetworkError(
                code=ProviderErrorCode.NETWORK_ERROR.value,
                message="DNS resolution failed for every candidate",
                provider=self.name,
            )
        return answers

    async def _probe(self, fqdn: str) -> tuple[bool, bool]:
        """Return (available, dns_failed) for one fully qualified name."""
        has_answer = await self._dns_has_answer(fqdn)
        if has_answer is None:
            return False, True
        if has_answer:
            return False, False
        reachable = await self._http_reachable(fqdn)
        if self._logger:
            self._logger.debug(self.name, f"{fqdn}: no DNS answer, http reachable={reachable}")
        return not reachable, False

    async def _dns_has_answer(self, fqdn: str) -> Optional[bool]:
        """True if the name resolves or exists, False if it does not, None on error."""
        try:
            resolver = self._get_resolver()
            await resolver.resolve(fqdn, "A")
            return True
        except (dns.resolver.NXDOMAIN, dns.resolver.NoNameservers):
            return False
        except dns.resolver.NoAnswer:
            # Name exists but has no A record
            return True
        except dns.exception.DNSException as e:
            if self._logger:
                self._logger.debug(self.name, f"DNS lookup failed for {fqdn}", {"error": str(e)})
            return None

    async def _http_reachable(self, fqdn: str) -> bool:
        try:
            response = await self._get_client().head(f"https://{fqdn}")
        except httpx.HTTPError:
            return False
        return response.status_code < 400

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.timeout = self._config.dns_timeout_seconds
            resolver.lifetime = self._config.dns_timeout_seconds
            self._resolver = resolver
        return self._resolver

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.probe_timeout_seconds),
                follow_redirects=False,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None


class MockProvider:
    """
    Deterministic stand-in used when no registrar credentials exist.

    The same ``<candidate>.<tld>`` and seed always give the same answer,
    roughly ``availability_rate`` of names come back available.
    """

    name = ProviderName.MOCK.value
    confidence = Confidence.LOW

    def __init__(
        self,
        config: Optional[MockConfig] = None,
        real_credentials_configured: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or MockConfig()
        self._real_credentials_configured = real_credentials_configured
        self._sleep = sleep

    def is_usable(self) -> bool:
        return not self._real_credentials_configured

    def is_available(self, candidate: str, tld: str) -> bool:
        rng = random.Random(f"{self._config.seed}:{candidate}.{tld}")
        return rng.random() < self._config.availability_rate

    async def check_batch(self, candidates: list[str], tld: str) -> dict[str, bool]:
        if not self.is_usable():
            raise CredentialsMissing(
                code=ProviderErrorCode.CREDENTIALS_MISSING.value,
                message="Mock provider is disabled while real credentials are configured",
                provider=self.name,
            )
        if self._config.latency_seconds > 0:
            await self._sleep(self._config.latency_seconds)
        return {c: self.is_available(c, tld) for c in candidates}


def build_default_providers(
    config: SystemConfig,
    rate_limiter: Optional[RateLimiter] = None,
    logger: Optional[AuditLogger] = None,
) -> list[AvailabilityProvider]:
    """
    Build the provider chain in priority order from configuration.

    In simulation mode only the mock provider is returned, so no real
    network request is ever made.
    """
    if config.simulation_mode:
        return [MockProvider(config.mock, real_credentials_configured=False)]

    if rate_limiter is None:
        rate_limiter = RateLimiter(config.rate_limits)

    return [
        NamecheapProvider(
            config.namecheap,
            rate_limiter=rate_limiter,
            logger=logger,
            batch_size=config.search.batch_size,
            timeout=config.http_timeout_seconds,
        ),
        GoDaddyProvider(
            config.godaddy,
            rate_limiter=rate_limiter,
            logger=logger,
            batch_size=config.search.batch_size,
            timeout=config.http_timeout_seconds,
        ),
        HeuristicProbeProvider(config.heuristic, logger=logger),
        MockProvider(
            config.mock,
            real_credentials_configured=config.has_real_credentials(),
        ),
    ]


async def close_providers(providers: list[AvailabilityProvider]) -> None:
    """Close any HTTP clients the providers opened."""
    for provider in providers:
        close = getattr(provider, "close", None)
        if close is not None:
            await close()
