"""
Data models for the domain finder system.

This module defines the data structures that flow between the resolver,
the search controller, and the caller: verdicts, resolution results,
search sessions, progress updates, and the caller-facing result shape.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .enums import (
    CandidateStatus,
    Confidence,
    ProviderErrorCode,
    SearchOutcome,
    SearchState,
    UpdateKind,
)


def utc_now() -> str:
    """Current time as an ISO 8601 string in UTC."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AvailabilityVerdict:
    """Availability answer for one candidate in one round."""

    candidate: str
    available: bool
    provider_failed: bool = False
    provider: Optional[str] = None  # None when fail-closed
    confidence: Confidence = Confidence.LOW


@dataclass
class ProviderFailure:
    """A provider that failed during one resolution attempt."""

    provider: str
    code: str
    message: str


@dataclass
class ResolutionResult:
    """Outcome of resolving one batch of candidates through the chain."""

    verdicts: dict[str, AvailabilityVerdict]
    provider: Optional[str] = None
    failures: list[ProviderFailure] = field(default_factory=list)
    no_usable_providers: bool = False
    exhausted: bool = False

    @property
    def unauthorized(self) -> bool:
        """True if any provider rejected our credentials."""
        return any(
            f.code == ProviderErrorCode.UNAUTHORIZED.value for f in self.failures
        )

    @property
    def fail_closed(self) -> bool:
        """True if verdicts were defaulted to unavailable."""
        return self.provider is None and bool(self.verdicts)


@dataclass
class DomainResult:
    """One entry of the caller-facing result list."""

    domain: str
    available: bool

    def to_dict(self) -> dict:
        return {"domain": self.domain, "available": self.available}


@dataclass
class SearchResult:
    """
    Caller-facing result of a search.

    ``error`` is set only when ``success`` is False. A search that ends
    without any available name is still a success with outcome NO_RESULTS,
    so the caller can ask for a better description instead of showing an error.
    """

    success: bool
    outcome: SearchOutcome
    results: list[DomainResult] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    attempts: int = 0
    domains_checked: int = 0

    @property
    def available(self) -> list[str]:
        return [r.domain for r in self.results if r.available]

    @property
    def unavailable(self) -> list[str]:
        return [r.domain for r in self.results if not r.available]

    def to_dict(self) -> dict:
        """Serialize to the wire shape expected by presentation layers."""
        data = {
            "success": self.success,
            "outcome": self.outcome.value,
            "results": [r.to_dict() for r in self.results],
        }
        if not self.success and self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SearchSession:
    """
    Mutable state of one search, owned by the search controller.

    A candidate lands in at most one of ``available``/``unavailable``;
    ``attempts`` and ``domains_checked`` only grow.
    """

    description: str
    tld: str
    required_available: int
    max_attempts: int
    max_domains_checked: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    start_time: str = field(default_factory=utc_now)
    end_time: Optional[str] = None
    state: SearchState = SearchState.IDLE
    processed: set[str] = field(default_factory=set)
    available: list[str] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)
    verdicts: list[AvailabilityVerdict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    attempts: int = 0
    domains_checked: int = 0
    stopped: bool = False

    def record(self, verdict: AvailabilityVerdict) -> None:
        """Record a revealed verdict in the matching result list."""
        name = verdict.candidate
        if name in self.available or name in self.unavailable:
            raise ValueError(f"Candidate already recorded: {name}")
        if verdict.available:
            self.available.append(name)
        else:
            self.unavailable.append(name)
        self.verdicts.append(verdict)

    def results(self) -> list[DomainResult]:
        """Results in the order they were revealed."""
        return [DomainResult(v.candidate, v.available) for v in self.verdicts]


@dataclass(frozen=True)
class SearchUpdate:
    """A progress event delivered to the search consumer."""

    kind: UpdateKind
    session_id: str
    state: SearchState
    domain: Optional[str] = None
    status: Optional[CandidateStatus] = None
    provider_failed: bool = False
    message: Optional[str] = None
    result: Optional[SearchResult] = None
