"""
Domain Finder - discover registrable domain names for an application idea.

This package turns a free-text description into name ideas, normalizes them
into domain candidates, and resolves their availability through a chain of
registrar APIs with heuristic and mock fallbacks that fail closed.
"""

__version__ = "0.1.0"
__author__ = "Domain Finder Team"

from domain_finder.exceptions import (
    DomainFinderError,
    ValidationError,
    ConfigurationError,
    GenerationError,
    ProviderError,
    CredentialsMissing,
    Unauthorized,
    RateLimited,
    MalformedResponse,
    NetworkError,
)
from domain_finder.enums import (
    ProviderName,
    Confidence,
    LogLevel,
    ProviderErrorCode,
    GenerationErrorCode,
    SearchErrorCode,
    SearchState,
    SearchOutcome,
    CandidateStatus,
    UpdateKind,
    ProviderHealth,
)
from domain_finder.config import (
    NamecheapCredentials,
    GoDaddyCredentials,
    GeneratorConfig,
    HeuristicConfig,
    MockConfig,
    RateLimitRule,
    RateLimitConfig,
    RetryConfig,
    SearchConfig,
    LoggingConfig,
    SystemConfig,
    create_default_config,
    load_config_from_env,
)
from domain_finder.models import (
    AvailabilityVerdict,
    ProviderFailure,
    ResolutionResult,
    DomainResult,
    SearchResult,
    SearchSession,
    SearchUpdate,
)
from domain_finder.normalizer import (
    normalize,
    normalize_candidate,
    is_valid_candidate,
)
from domain_finder.tld_registry import (
    DEFAULT_TLD,
    POPULAR_TLDS,
    TLDInfo,
    normalize_tld,
)
from domain_finder.providers import (
    AvailabilityProvider,
    NamecheapProvider,
    GoDaddyProvider,
    HeuristicProbeProvider,
    MockProvider,
    build_default_providers,
)
from domain_finder.resolver import AvailabilityResolver
from domain_finder.generator import (
    NameGenerator,
    GeminiNameGenerator,
    StaticNameGenerator,
)
from domain_finder.search_controller import (
    SearchController,
    SearchHandle,
)
from domain_finder.rate_limiter import (
    RateLimiter,
    RateLimitStatus,
)
from domain_finder.retry_manager import (
    RetryManager,
    RetryResult,
)
from domain_finder.audit_logger import (
    AuditLogger,
    LogEntry,
    create_logger,
)
from domain_finder.i18n import get_message
from domain_finder.self_test import (
    SelfTest,
    SelfTestResult,
    ProviderStatus,
    run_self_test,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Exceptions
    "DomainFinderError",
    "ValidationError",
    "ConfigurationError",
    "GenerationError",
    "ProviderError",
    "CredentialsMissing",
    "Unauthorized",
    "RateLimited",
    "MalformedResponse",
    "NetworkError",
    # Enums
    "ProviderName",
    "Confidence",
    "LogLevel",
    "ProviderErrorCode",
    "GenerationErrorCode",
    "SearchErrorCode",
    "SearchState",
    "SearchOutcome",
    "CandidateStatus",
    "UpdateKind",
    "ProviderHealth",
    # Config
    "NamecheapCredentials",
    "GoDaddyCredentials",
    "GeneratorConfig",
    "HeuristicConfig",
    "MockConfig",
    "RateLimitRule",
    "RateLimitConfig",
    "RetryConfig",
    "SearchConfig",
    "LoggingConfig",
    "SystemConfig",
    "create_default_config",
    "load_config_from_env",
    # Models
    "AvailabilityVerdict",
    "ProviderFailure",
    "ResolutionResult",
    "DomainResult",
    "SearchResult",
    "SearchSession",
    "SearchUpdate",
    # Normalizer
    "normalize",
    "normalize_candidate",
    "is_valid_candidate",
    # TLD registry
    "DEFAULT_TLD",
    "POPULAR_TLDS",
    "TLDInfo",
    "normalize_tld",
    # Providers
    "AvailabilityProvider",
    "NamecheapProvider",
    "GoDaddyProvider",
    "HeuristicProbeProvider",
    "MockProvider",
    "build_default_providers",
    # Resolver
    "AvailabilityResolver",
    # Generators
    "NameGenerator",
    "GeminiNameGenerator",
    "StaticNameGenerator",
    # Search controller
    "SearchController",
    "SearchHandle",
    # Rate limiter
    "RateLimiter",
    "RateLimitStatus",
    # Retry manager
    "RetryManager",
    "RetryResult",
    # Audit logger
    "AuditLogger",
    "LogEntry",
    "create_logger",
    # i18n
    "get_message",
    # Diagnostics
    "SelfTest",
    "SelfTestResult",
    "ProviderStatus",
    "run_self_test",
]
