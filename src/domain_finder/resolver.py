"""
Availability Resolver for the domain finder system.

Drives the availability providers in priority order. The first usable
provider that answers for the whole batch wins; any provider failure falls
through to the next provider with the same full candidate list. If nothing
answers, every candidate fails closed: reported unavailable with
``provider_failed=True``, never silently available.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .enums import Confidence, LogLevel, ProviderErrorCode
from .exceptions import ProviderError
from .models import AvailabilityVerdict, ProviderFailure, ResolutionResult
from .providers import AvailabilityProvider


class AvailabilityResolver:
    """
    Resolves availability for a batch of candidates through a provider chain.

    ``resolve`` never raises for provider reasons: failures are recorded on
    the returned ResolutionResult.
    """

    def __init__(
        self,
        providers: list[AvailabilityProvider],
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            providers: Providers in priority order (highest first)
            logger: Optional audit logger
        """
        self._providers = list(providers)
        self._logger = logger

    @property
    def providers(self) -> list[AvailabilityProvider]:
        return list(self._providers)

    def usable_providers(self) -> list[AvailabilityProvider]:
        """The chain for the next resolution, skipping unusable providers."""
        chain = []
        for provider in self._providers:
            if provider.is_usable():
                chain.append(provider)
            else:
                self._log(LogLevel.DEBUG, f"Skipping unusable provider {provider.name}")
        return chain

    async def resolve(self, candidates: list[str], tld: str) -> ResolutionResult:
        """
        Resolve availability for every candidate.

        Args:
            candidates: Normalized candidates, unique
            tld: Normalized TLD without leading dot

        Returns:
            ResolutionResult whose verdicts follow the input order
        """
        if not candidates:
            return ResolutionResult(verdicts={})

        chain = self.usable_providers()
        if not chain:
            self._log(
                LogLevel.WARN,
                "No usable availability provider; failing closed",
                {"count": len(candidates), "tld": tld},
            )
            return ResolutionResult(
                verdicts=self._fail_closed(candidates),
                no_usable_providers=True,
            )

        failures: list[ProviderFailure] = []
        for provider in chain:
            try:
                answers = await provider.check_batch(list(candidates), tld)
                self._check_coverage(provider, answers, candidates)
            except ProviderError as e:
                failures.append(ProviderFailure(provider.name, e.code, e.message))
                self._log_failure(provider, e)
                continue
            except Exception as e:
                failures.append(ProviderFailure(
                    provider.name, ProviderErrorCode.API_ERROR.value, str(e)
                ))
                self._log_failure(provider, e)
                continue

            self._log(
                LogLevel.INFO,
                f"Resolved {len(candidates)} candidate(s) via {provider.name}",
                {
                    "provider": provider.name,
                    "tld": tld,
                    "available": sum(1 for c in candidates if answers[c]),
                    "fallbacks": len(failures),
                },
            )
            verdicts = {
                c: AvailabilityVerdict(
                    candidate=c,
                    available=answers[c],
                    provider=provider.name,
                    confidence=provider.confidence,
                )
                for c in candidates
            }
            return ResolutionResult(
                verdicts=verdicts,
                provider=provider.name,
                failures=failures,
            )

        self._log(
            LogLevel.ERROR,
            "All availability providers failed; failing closed",
            {"providers": [f.provider for f in failures], "codes": [f.code for f in failures]},
        )
        return ResolutionResult(
            verdicts=self._fail_closed(candidates),
            failures=failures,
            exhausted=True,
        )

    @staticmethod
    def _fail_closed(candidates: list[str]) -> dict[str, AvailabilityVerdict]:
        return {
            c: AvailabilityVerdict(
                candidate=c,
                available=False,
                provider_failed=True,
                provider=None,
                confidence=Confidence.LOW,
            )
            for c in candidates
        }

    @staticmethod
    def _check_coverage(
        provider: AvailabilityProvider, answers: object, candidates: list[str]
    ) -> None:
        """Reject answers that skip a candidate or are not plain booleans."""
        if not isinstance(answers, dict):
            raise ProviderError(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message=f"{provider.name} returned {type(answers).__name__}, expected dict",
                provider=provider.name,
            )
        bad = [c for c in candidates if not isinstance(answers.get(c), bool)]
        if bad:
            raise ProviderError(
                code=ProviderErrorCode.MALFORMED_RESPONSE.value,
                message=f"{provider.name} gave no verdict for {len(bad)} candidate(s)",
                details={"missing": bad},
                provider=provider.name,
            )

    def _log_failure(self, provider: AvailabilityProvider, error: Exception) -> None:
        if self._logger:
            self._logger.log_error(
                "AvailabilityResolver",
                f"Provider {provider.name} failed; falling back",
                error=error,
                additional_data={"provider": provider.name},
            )

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "AvailabilityResolver", message, data)
