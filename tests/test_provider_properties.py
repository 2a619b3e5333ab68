"""
Property-based tests for the availability providers.

HTTP is served by ``httpx.MockTransport`` and DNS by a fake resolver, so no
test touches the network.
"""

import asyncio
import json
import string
from typing import Callable, Optional

import dns.exception
import dns.resolver
import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_finder.config import (
    GoDaddyCredentials,
    HeuristicConfig,
    MockConfig,
    NamecheapCredentials,
    SystemConfig,
)
from domain_finder.enums import Confidence
from domain_finder.exceptions import (
    CredentialsMissing,
    MalformedResponse,
    NetworkError,
    ProviderError,
    RateLimited,
    Unauthorized,
)
from domain_finder.providers import (
    AvailabilityProvider,
    GoDaddyProvider,
    HeuristicProbeProvider,
    MockProvider,
    NamecheapProvider,
    build_default_providers,
)


NC_NS = "http://api.namecheap.com/xml.response"

NAMECHEAP_CREDS = NamecheapCredentials(
    api_user="fituser",
    api_key="0123456789abcdef",
    username="fituser",
    client_ip="203.0.113.7",
)

GODADDY_CREDS = GoDaddyCredentials(
    api_key="gd_key_0123456789",
    api_secret="gd_secret_0123456789",
)

candidate_names = st.lists(
    st.text(alphabet=string.ascii_lowercase + string.digits, min_size=3, max_size=15),
    min_size=1,
    max_size=20,
    unique=True,
)


def namecheap_xml(results: dict[str, bool], tld: str = "com") -> str:
    rows = "".join(
        f'<DomainCheckResult Domain="{name}.{tld}" Available="{str(avail).lower()}" />'
        for name, avail in results.items()
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<ApiResponse Status="OK" xmlns="{NC_NS}">'
        "<Errors />"
        f'<CommandResponse Type="namecheap.domains.check">{rows}</CommandResponse>'
        "</ApiResponse>"
    )


def namecheap_error_xml(number: str, message: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<ApiResponse Status="ERROR" xmlns="{NC_NS}">'
        f'<Errors><Error Number="{number}">{message}</Error></Errors>'
        "</ApiResponse>"
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeResolver:
    """DNS resolver double: outcome per FQDN, default NXDOMAIN."""

    def __init__(self, outcomes: Optional[dict] = None) -> None:
        self.outcomes = outcomes or {}
        self.queries: list[str] = []

    async def resolve(self, qname: str, rdtype: str = "A"):
        self.queries.append(qname)
        outcome = self.outcomes.get(qname, dns.resolver.NXDOMAIN())
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestProviderProtocol:
    """All providers satisfy the AvailabilityProvider protocol."""

    def test_every_provider_is_an_availability_provider(self) -> None:
        providers = [
            NamecheapProvider(NAMECHEAP_CREDS),
            GoDaddyProvider(GODADDY_CREDS),
            HeuristicProbeProvider(HeuristicConfig()),
            MockProvider(MockConfig()),
        ]
        for provider in providers:
            assert isinstance(provider, AvailabilityProvider)

    def test_confidence_levels(self) -> None:
        assert NamecheapProvider(NAMECHEAP_CREDS).confidence == Confidence.HIGH
        assert GoDaddyProvider(GODADDY_CREDS).confidence == Confidence.HIGH
        assert HeuristicProbeProvider().confidence == Confidence.LOW
        assert MockProvider().confidence == Confidence.LOW


class TestNamecheapProvider:
    """Namecheap XML API adapter."""

    @given(availability=st.dictionaries(
        st.text(alphabet=string.ascii_lowercase, min_size=3, max_size=12),
        st.booleans(),
        min_size=1,
        max_size=50,
    ))
    @settings(max_examples=100)
    def test_parse_returns_exact_availability(self, availability: dict[str, bool]) -> None:
        """
        *For any* DomainCheckResult set, the parsed verdicts SHALL equal the
        Available attributes for exactly the requested candidates.
        """
        provider = NamecheapProvider(NAMECHEAP_CREDS)
        chunk = list(availability)
        parsed = provider.parse_response(namecheap_xml(availability), chunk, "com")
        assert parsed == availability

    def test_check_batch_sends_one_request_per_fifty(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            domains = request.url.params["DomainList"].split(",")
            names = {d.rsplit(".", 1)[0]: d.startswith("free") for d in domains}
            return httpx.Response(200, text=namecheap_xml(names))

        candidates = [f"name{i:03d}" for i in range(120)] + ["freebie"]

        async def run() -> dict[str, bool]:
            async with mock_client(handler) as client:
                provider = NamecheapProvider(NAMECHEAP_CREDS, client=client)
                return await provider.check_batch(candidates, "com")

        result = asyncio.run(run())

        assert len(requests) == 3
        assert list(result) == candidates
        assert result["freebie"] is True
        assert result["name000"] is False
        params = requests[0].url.params
        assert params["Command"] == "namecheap.domains.check"
        assert params["ApiUser"] == "fituser"
        assert params["ClientIp"] == "203.0.113.7"
        assert requests[0].url.host == "api.namecheap.com"

    def test_sandbox_endpoint(self) -> None:
        creds = NamecheapCredentials(
            api_user="fituser",
            api_key="0123456789abcdef",
            username="fituser",
            client_ip="203.0.113.7",
            sandbox=True,
        )
        assert NamecheapProvider(creds).base_url == NamecheapProvider.SANDBOX_URL

    @pytest.mark.parametrize("status,error", [
        (401, Unauthorized),
        (403, Unauthorized),
        (429, RateLimited),
        (500, NetworkError),
        (502, NetworkError),
    ])
    def test_http_status_mapping(self, status: int, error: type) -> None:
        async def run() -> None:
            async with mock_client(lambda r: httpx.Response(status, text="")) as client:
                provider = NamecheapProvider(NAMECHEAP_CREDS, client=client)
                await provider.check_batch(["fittrack"], "com")

        with pytest.raises(error):
            asyncio.run(run())

    def test_transport_failure_is_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async def run() -> None:
            async with mock_client(handler) as client:
                await NamecheapProvider(NAMECHEAP_CREDS, client=client).check_batch(["fittrack"], "com")

        with pytest.raises(NetworkError):
            asyncio.run(run())

    def test_unparsable_xml_is_malformed(self) -> None:
        async def run() -> None:
            async with mock_client(lambda r: httpx.Response(200, text="<html>oops")) as client:
                await NamecheapProvider(NAMECHEAP_CREDS, client=client).check_batch(["fittrack"], "com")

        with pytest.raises(MalformedResponse):
            asyncio.run(run())

    def test_omitted_candidate_is_malformed(self) -> None:
        async def run() -> None:
            xml = namecheap_xml({"fittrack": True})
            async with mock_client(lambda r: httpx.Response(200, text=xml)) as client:
                provider = NamecheapProvider(NAMECHEAP_CREDS, client=client)
                await provider.check_batch(["fittrack", "gymbuddy"], "com")

        with pytest.raises(MalformedResponse) as exc_info:
            asyncio.run(run())
        assert exc_info.value.details["missing"] == ["gymbuddy"]

    def test_no_result_elements_is_malformed(self) -> None:
        provider = NamecheapProvider(NAMECHEAP_CREDS)
        with pytest.raises(MalformedResponse):
            provider.parse_response(namecheap_xml({}), ["fittrack"], "com")

    @pytest.mark.parametrize("message,error", [
        ("Parameter APIKey is invalid", Unauthorized),
        ("Invalid request IP: 203.0.113.7", Unauthorized),
        ("API access has not been enabled", Unauthorized),
        ("Too many requests", RateLimited),
        ("Request limit reached, throttled", RateLimited),
    ])
    def test_api_error_classification(self, message: str, error: type) -> None:
        provider = NamecheapProvider(NAMECHEAP_CREDS)
        with pytest.raises(error):
            provider.parse_response(namecheap_error_xml("1011102", message), ["fittrack"], "com")

    def test_other_api_errors_are_generic_provider_errors(self) -> None:
        provider = NamecheapProvider(NAMECHEAP_CREDS)
        with pytest.raises(ProviderError) as exc_info:
            provider.parse_response(
                namecheap_error_xml("2030280", "TLD is not supported"), ["fittrack"], "zz"
            )
        assert type(exc_info.value) is ProviderError
        assert exc_info.value.code == "api_error"

    def test_unusable_credentials_raise_without_request(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text=namecheap_xml({"fittrack": True}))

        short_key = NamecheapCredentials(
            api_user="fituser", api_key="short", username="fituser", client_ip="203.0.113.7"
        )

        async def run() -> None:
            async with mock_client(handler) as client:
                await NamecheapProvider(short_key, client=client).check_batch(["fittrack"], "com")

        assert not NamecheapProvider(short_key).is_usable()
        assert not NamecheapProvider(None).is_usable()
        with pytest.raises(CredentialsMissing):
            asyncio.run(run())
        assert calls == []


class TestGoDaddyProvider:
    """GoDaddy JSON API adapter."""

    def test_check_batch_posts_fqdns_with_sso_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "domains": [
                    {"domain": d.upper(), "available": d.startswith("fit"), "definitive": True}
                    for d in body
                ],
            })

        async def run() -> dict[str, bool]:
            async with mock_client(handler) as client:
                provider = GoDaddyProvider(GODADDY_CREDS, client=client)
                return await provider.check_batch(["fittrack", "gymbuddy"], "io")

        result = asyncio.run(run())

        assert result == {"fittrack": True, "gymbuddy": False}
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/domains/available"
        assert request.url.params["checkType"] == "FAST"
        assert request.headers["Authorization"] == "sso-key gd_key_0123456789:gd_secret_0123456789"
        assert json.loads(request.content) == ["fittrack.io", "gymbuddy.io"]

    def test_ote_endpoint(self) -> None:
        creds = GoDaddyCredentials(
            api_key="gd_key_0123456789", api_secret="gd_secret_0123456789", environment="ote"
        )
        assert GoDaddyProvider(creds).base_url == GoDaddyProvider.OTE_URL

    @pytest.mark.parametrize("body", [
        {"errors": []},
        {"domains": "nope"},
        ["fittrack.com"],
    ])
    def test_missing_domains_array_is_malformed(self, body) -> None:
        provider = GoDaddyProvider(GODADDY_CREDS)
        with pytest.raises(MalformedResponse):
            provider.parse_response(body, ["fittrack"], "com")

    def test_non_json_body_is_malformed(self) -> None:
        async def run() -> None:
            async with mock_client(lambda r: httpx.Response(200, text="not json")) as client:
                await GoDaddyProvider(GODADDY_CREDS, client=client).check_batch(["fittrack"], "com")

        with pytest.raises(MalformedResponse):
            asyncio.run(run())

    def test_forbidden_is_unauthorized(self) -> None:
        async def run() -> None:
            response = httpx.Response(403, json={"code": "ACCESS_DENIED"})
            async with mock_client(lambda r: response) as client:
                await GoDaddyProvider(GODADDY_CREDS, client=client).check_batch(["fittrack"], "com")

        with pytest.raises(Unauthorized):
            asyncio.run(run())

    @pytest.mark.parametrize("key,secret", [
        ("short", "gd_secret_0123456789"),
        ("gd:key_0123456789", "gd_secret_0123456789"),
        ("gd_key_0123456789", "secret with spaces"),
        ("", ""),
    ])
    def test_invalid_credentials_are_unusable(self, key: str, secret: str) -> None:
        provider = GoDaddyProvider(GoDaddyCredentials(api_key=key, api_secret=secret))
        assert not provider.is_usable()


class TestHeuristicProbeProvider:
    """DNS + HTTP heuristic."""

    def _provider(
        self,
        resolver: FakeResolver,
        handler: Callable[[httpx.Request], httpx.Response],
        sleep: Optional[SleepRecorder] = None,
    ) -> tuple[HeuristicProbeProvider, httpx.AsyncClient]:
        client = mock_client(handler)
        provider = HeuristicProbeProvider(
            HeuristicConfig(batch_width=3, batch_delay_seconds=1.0),
            resolver=resolver,
            client=client,
            sleep=sleep or SleepRecorder(),
        )
        return provider, client

    def test_verdicts_follow_dns_and_http(self) -> None:
        resolver = FakeResolver({
            "resolves.com": ["192.0.2.1"],
            "noanswer.com": dns.resolver.NoAnswer(),
            "noservers.com": dns.resolver.NoNameservers(),
            "parked.com": dns.resolver.NXDOMAIN(),
            "gone.com": dns.resolver.NXDOMAIN(),
        })

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "parked.com":
                return httpx.Response(200)
            if request.url.host == "gone.com":
                return httpx.Response(404)
            raise httpx.ConnectError("no route", request=request)

        async def run() -> dict[str, bool]:
            provider, client = self._provider(resolver, handler)
            async with client:
                return await provider.check_batch(
                    ["resolves", "noanswer", "noservers", "parked", "gone"], "com"
                )

        result = asyncio.run(run())
        assert result == {
            "resolves": False,
            "noanswer": False,
            "noservers": True,
            "parked": False,
            "gone": True,
        }

    def test_http_probe_uses_head_without_redirects(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(301, headers={"Location": "https://elsewhere.example/"})

        async def run() -> dict[str, bool]:
            provider, client = self._provider(FakeResolver(), handler)
            async with client:
                return await provider.check_batch(["moved"], "com")

        result = asyncio.run(run())
        assert result == {"moved": False}
        assert [r.method for r in seen] == ["HEAD"]
        assert seen[0].url.scheme == "https"
        assert seen[0].url.host == "moved.com"

    @given(count=st.integers(min_value=1, max_value=12))
    @settings(max_examples=30)
    def test_fan_out_is_grouped_with_delays(self, count: int) -> None:
        """
        *For any* batch size, candidates SHALL be probed in groups of three
        with one delay between consecutive groups.
        """
        sleep = SleepRecorder()
        candidates = [f"cand{i}" for i in range(count)]

        async def run() -> dict[str, bool]:
            provider, client = self._provider(
                FakeResolver(), lambda r: httpx.Response(404), sleep
            )
            async with client:
                return await provider.check_batch(candidates, "dev")

        result = asyncio.run(run())
        groups = (count + 2) // 3
        assert sleep.delays == [1.0] * (groups - 1)
        assert list(result) == candidates
        assert all(result.values())

    def test_single_dns_timeout_is_treated_as_taken(self) -> None:
        resolver = FakeResolver({"slow.com": dns.exception.Timeout()})

        async def run() -> dict[str, bool]:
            provider, client = self._provider(resolver, lambda r: httpx.Response(404))
            async with client:
                return await provider.check_batch(["slow", "free"], "com")

        assert asyncio.run(run()) == {"slow": False, "free": True}

    def test_all_dns_errors_raise_network_error(self) -> None:
        resolver = FakeResolver({
            "one.com": dns.exception.Timeout(),
            "two.com": dns.exception.DNSException(),
        })

        async def run() -> None:
            provider, client = self._provider(resolver, lambda r: httpx.Response(404))
            async with client:
                await provider.check_batch(["one", "two"], "com")

        with pytest.raises(NetworkError):
            asyncio.run(run())

    def test_disabled_probe_is_unusable(self) -> None:
        provider = HeuristicProbeProvider(HeuristicConfig(enabled=False))
        assert not provider.is_usable()
        with pytest.raises(CredentialsMissing):
            asyncio.run(provider.check_batch(["fittrack"], "com"))


class TestMockProvider:
    """Deterministic mock provider."""

    @given(names=candidate_names, seed=st.text(min_size=1, max_size=10))
    @settings(max_examples=100)
    def test_answers_are_deterministic(self, names: list[str], seed: str) -> None:
        """
        *For any* seed and candidates, two mock providers SHALL give
        identical answers.
        """
        config = MockConfig(seed=seed, latency_seconds=0.0)
        first = asyncio.run(MockProvider(config).check_batch(names, "com"))
        second = asyncio.run(MockProvider(config).check_batch(names, "com"))
        assert first == second
        assert list(first) == names

    def test_availability_rate_is_roughly_respected(self) -> None:
        provider = MockProvider(MockConfig(availability_rate=0.3, latency_seconds=0.0))
        names = [f"name{i}" for i in range(2000)]
        result = asyncio.run(provider.check_batch(names, "com"))
        ratio = sum(result.values()) / len(names)
        assert 0.25 < ratio < 0.35

    def test_latency_uses_injected_sleep(self) -> None:
        sleep = SleepRecorder()
        provider = MockProvider(MockConfig(latency_seconds=0.5), sleep=sleep)
        asyncio.run(provider.check_batch(["fittrack"], "com"))
        assert sleep.delays == [0.5]

    def test_unusable_when_real_credentials_exist(self) -> None:
        provider = MockProvider(MockConfig(), real_credentials_configured=True)
        assert not provider.is_usable()
        with pytest.raises(CredentialsMissing):
            asyncio.run(provider.check_batch(["fittrack"], "com"))


class TestDefaultChain:
    """Provider chain built from configuration."""

    def test_priority_order(self) -> None:
        providers = build_default_providers(SystemConfig(namecheap=NAMECHEAP_CREDS))
        assert [p.name for p in providers] == ["namecheap", "godaddy", "heuristic", "mock"]
        # Real credentials present: the mock must not answer
        assert not providers[-1].is_usable()

    def test_simulation_mode_uses_mock_only(self) -> None:
        providers = build_default_providers(
            SystemConfig(namecheap=NAMECHEAP_CREDS, simulation_mode=True)
        )
        assert [p.name for p in providers] == ["mock"]
        assert providers[0].is_usable()

    def test_without_credentials_mock_is_usable(self) -> None:
        providers = build_default_providers(SystemConfig())
        usable = [p.name for p in providers if p.is_usable()]
        assert usable == ["heuristic", "mock"]
