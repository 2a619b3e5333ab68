"""
Enumeration types for the domain finder system.

These enums provide type-safe constants for provider names, error codes,
search states, and update kinds throughout the system.
"""

from enum import Enum


class ProviderName(Enum):
    """Availability providers in default priority order."""

    NAMECHEAP = "namecheap"
    GODADDY = "godaddy"
    HEURISTIC = "heuristic"
    MOCK = "mock"


class Confidence(Enum):
    """Confidence level of an availability verdict."""

    HIGH = "high"
    LOW = "low"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ProviderErrorCode(Enum):
    """Error codes raised by availability providers."""

    CREDENTIALS_MISSING = "credentials_missing"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"


class GenerationErrorCode(Enum):
    """Error codes raised by name generators."""

    CREDENTIALS_MISSING = "credentials_missing"
    UPSTREAM_ERROR = "upstream_error"
    TIMEOUT = "timeout"
    EMPTY_RESULT = "empty_result"
    PARSE_ERROR = "parse_error"


class SearchErrorCode(Enum):
    """Terminal error classes of a search session."""

    EMPTY_DESCRIPTION = "empty_description"
    INVALID_TLD = "invalid_tld"
    INVALID_BOUNDS = "invalid_bounds"
    GENERATION_FAILED = "generation_failed"
    PROVIDERS_UNAUTHORIZED = "providers_unauthorized"
    PROVIDERS_EXHAUSTED = "providers_exhausted"


class SearchState(Enum):
    """States of the search controller."""

    IDLE = "idle"
    GENERATING = "generating"
    CHECKING = "checking"
    DONE = "done"


class SearchOutcome(Enum):
    """How a finished search ended."""

    FOUND = "found"
    PARTIAL = "partial"
    NO_RESULTS = "no_results"
    ERROR = "error"
    CANCELLED = "cancelled"


class CandidateStatus(Enum):
    """Display status of a candidate during progressive reveal."""

    CHECKING = "checking"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class UpdateKind(Enum):
    """Kinds of progress events emitted to the search consumer."""

    STATE_CHANGED = "state_changed"
    CANDIDATE = "candidate"
    WARNING = "warning"
    ERROR = "error"
    COMPLETED = "completed"


class ProviderHealth(Enum):
    """Provider status reported by diagnostics."""

    WORKING = "working"
    ERROR = "error"
    NO_CREDENTIALS = "no_credentials"
    DISABLED = "disabled"
    UNKNOWN = "unknown"
