"""
Search Controller for the domain finder system.

Runs generate -> normalize -> resolve rounds until enough available names
are found or a safety bound is hit, and reports progress to a consumer:

    IDLE -> GENERATING -> CHECKING -> (GENERATING | DONE)

Each round's verdicts are revealed one at a time with a short, cancellable
delay: unavailable names first, then available ones, each group in
candidate order. Cancellation is cooperative; the flag is checked before
every external call and every reveal, and results of calls that finish
after cancellation are discarded.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

from .audit_logger import AuditLogger
from .config import RetryConfig, SearchConfig
from .enums import (
    CandidateStatus,
    Confidence,
    LogLevel,
    SearchErrorCode,
    SearchOutcome,
    SearchState,
    UpdateKind,
)
from .exceptions import DomainFinderError, ValidationError
from .generator import NameGenerator
from .i18n import get_message
from .models import (
    AvailabilityVerdict,
    ResolutionResult,
    SearchResult,
    SearchSession,
    SearchUpdate,
    utc_now,
)
from .normalizer import normalize
from .resolver import AvailabilityResolver
from .retry_manager import RetryManager, is_retryable_generation_error
from .tld_registry import normalize_tld

UpdateCallback = Callable[[SearchUpdate], Union[None, Awaitable[None]]]


class SearchTerminated(Exception):
    """Internal signal: the session ends with an error result."""

    def __init__(self, code: SearchErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class SearchHandle:
    """Handle to a running search: cancel it, await it, inspect its session."""

    def __init__(
        self,
        session: SearchSession,
        task: "asyncio.Task[SearchResult]",
        cancel_event: asyncio.Event,
    ) -> None:
        self._session = session
        self._task = task
        self._cancel_event = cancel_event

    @property
    def session(self) -> SearchSession:
        return self._session

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Request cooperative cancellation; safe to call repeatedly."""
        self._cancel_event.set()

    async def wait(self) -> SearchResult:
        return await self._task


class SearchController:
    """
    Drives search sessions over a name generator and an availability resolver.

    One controller can run many sessions; sessions never share state.
    """

    def __init__(
        self,
        generator: NameGenerator,
        resolver: AvailabilityResolver,
        config: Optional[SearchConfig] = None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        retry_config: Optional[RetryConfig] = None,
        language: str = "en",
    ) -> None:
        """
        Initialize the controller.

        Args:
            generator: Source of raw name suggestions
            resolver: Availability resolver over the provider chain
            config: Default bounds and reveal pacing
            logger: Optional audit logger
            sleep: Coroutine used for generation retry backoff
            retry_config: Bounded retry policy for generation
            language: Language for user-facing messages
        """
        self._generator = generator
        self._resolver = resolver
        self._config = config or SearchConfig()
        self._logger = logger
        self._retry_manager = RetryManager(retry_config or RetryConfig(), sleep=sleep)
        self._language = language

    def create_session(
        self,
        description: str,
        tld: str,
        required_available: Optional[int] = None,
        max_attempts: Optional[int] = None,
        max_domains_checked: Optional[int] = None,
    ) -> SearchSession:
        return SearchSession(
            description=description if isinstance(description, str) else "",
            tld=tld,
            required_available=(
                self._config.required_available if required_available is None else required_available
            ),
            max_attempts=self._config.max_attempts if max_attempts is None else max_attempts,
            max_domains_checked=(
                self._config.max_domains_checked if max_domains_checked is None else max_domains_checked
            ),
        )

    def start_search(
        self,
        description: str,
        tld: str,
        on_update: Optional[UpdateCallback] = None,
        required_available: Optional[int] = None,
        max_attempts: Optional[int] = None,
        max_domains_checked: Optional[int] = None,
    ) -> SearchHandle:
        """
        Start a search in its own asyncio task.

        Must be called from a running event loop.
        """
        session = self.create_session(
            description, tld, required_available, max_attempts, max_domains_checked
        )
        cancel_event = asyncio.Event()
        task = asyncio.ensure_future(self._run(session, on_update, cancel_event))
        return SearchHandle(session, task, cancel_event)

    async def run_search(
        self,
        description: str,
        tld: str,
        on_update: Optional[UpdateCallback] = None,
        required_available: Optional[int] = None,
        max_attempts: Optional[int] = None,
        max_domains_checked: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> SearchResult:
        """Run a search to completion and return its result."""
        session = self.create_session(
            description, tld, required_available, max_attempts, max_domains_checked
        )
        return await self._run(session, on_update, cancel_event or asyncio.Event())

    async def _run(
        self,
        session: SearchSession,
        on_update: Optional[UpdateCallback],
        cancel_event: asyncio.Event,
    ) -> SearchResult:
        self._log(
            LogLevel.INFO,
            "Search started",
            {
                "session_id": session.id,
                "tld": session.tld,
                "required_available": session.required_available,
                "max_attempts": session.max_attempts,
                "max_domains_checked": session.max_domains_checked,
            },
        )
        try:
            self._validate(session)
            await self._loop(session, on_update, cancel_event)
        except SearchTerminated as e:
            return await self._finish_with_error(session, on_update, e)

        if cancel_event.is_set():
            return await self._finish(session, on_update, SearchOutcome.CANCELLED)
        if len(session.available) >= session.required_available:
            outcome = SearchOutcome.FOUND
        elif session.available:
            outcome = SearchOutcome.PARTIAL
        else:
            outcome = SearchOutcome.NO_RESULTS
        return await self._finish(session, on_update, outcome)

    def _validate(self, session: SearchSession) -> None:
        if not session.description.strip():
            raise SearchTerminated(
                SearchErrorCode.EMPTY_DESCRIPTION,
                get_message("error.empty_description", self._language),
            )
        bounds = {
            "required_available": session.required_available,
            "max_attempts": session.max_attempts,
            "max_domains_checked": session.max_domains_checked,
        }
        for name, value in bounds.items():
            if value < 1:
                raise SearchTerminated(
                    SearchErrorCode.INVALID_BOUNDS,
                    get_message("error.invalid_bound", self._language, name=name, value=value),
                )
        try:
            session.tld = normalize_tld(session.tld)
        except ValidationError:
            raise SearchTerminated(
                SearchErrorCode.INVALID_TLD,
                get_message("error.invalid_tld", self._language, tld=session.tld),
            )

    def _stop_reason(self, session: SearchSession, cancel_event: asyncio.Event) -> Optional[str]:
        if cancel_event.is_set():
            return "cancelled"
        if len(session.available) >= session.required_available:
            return "required_available_reached"
        if session.attempts >= session.max_attempts:
            return "max_attempts_reached"
        if session.domains_checked >= session.max_domains_checked:
            return "max_domains_checked_reached"
        return None

    async def _loop(
        self,
        session: SearchSession,
        on_update: Optional[UpdateCallback],
        cancel_event: asyncio.Event,
    ) -> None:
        while True:
            reason = self._stop_reason(session, cancel_event)
            if reason is not None:
                self._log(
                    LogLevel.INFO,
                    f"Search stopping: {reason}",
                    {
                        "session_id": session.id,
                        "attempts": session.attempts,
                        "domains_checked": session.domains_checked,
                        "available": len(session.available),
                    },
                )
                return

            round_number = session.attempts + 1
            await self._set_state(session, SearchState.GENERATING, on_update)
            suggestions = await self._generate(session, cancel_event)
            if cancel_event.is_set():
                continue

            candidates = [c for c in normalize(suggestions) if c not in session.processed]
            session.processed.update(candidates)
            if not candidates:
                session.attempts += 1
                self._log(
                    LogLevel.INFO,
                    f"Round {round_number}: no new candidates",
                    {"session_id": session.id, "suggestions": len(suggestions)},
                )
                continue

            await self._set_state(session, SearchState.CHECKING, on_update)
            for candidate in candidates:
                await self._emit(on_update, SearchUpdate(
                    kind=UpdateKind.CANDIDATE,
                    session_id=session.id,
                    state=session.state,
                    domain=candidate,
                    status=CandidateStatus.CHECKING,
                ))

            if cancel_event.is_set():
                continue
            resolution = await self._resolver.resolve(candidates, session.tld)
            if cancel_event.is_set():
                self._log(LogLevel.DEBUG, "Discarding verdicts that arrived after cancellation")
                continue

            session.attempts += 1
            session.domains_checked += len(candidates)
            self._log(
                LogLevel.INFO,
                f"Round {round_number} resolved",
                {
                    "session_id": session.id,
                    "provider": resolution.provider,
                    "new_candidates": len(candidates),
                    "attempts": session.attempts,
                    "domains_checked": session.domains_checked,
                },
            )

            await self._report_resolution_warnings(session, resolution, on_update)
            await self._reveal(session, candidates, resolution, on_update, cancel_event)

            if cancel_event.is_set():
                continue
            if resolution.unauthorized:
                raise SearchTerminated(
                    SearchErrorCode.PROVIDERS_UNAUTHORIZED,
                    get_message("error.providers_unauthorized", self._language),
                )
            if resolution.exhausted:
                raise SearchTerminated(
                    SearchErrorCode.PROVIDERS_EXHAUSTED,
                    get_message("error.providers_exhausted", self._language),
                )

    async def _generate(self, session: SearchSession, cancel_event: asyncio.Event) -> list[str]:
        """Call the generator with bounded retry; failures end the session."""
        result = await self._retry_manager.execute_with_retry(
            lambda: self._generator.generate(session.description),
            is_retryable=is_retryable_generation_error,
            should_continue=lambda: not cancel_event.is_set(),
        )
        if cancel_event.is_set():
            return []
        if result.success:
            if result.result:
                return result.result
            self._log(
                LogLevel.ERROR,
                "Name generator returned no suggestions",
                {"session_id": session.id},
            )
            raise SearchTerminated(
                SearchErrorCode.GENERATION_FAILED,
                get_message(
                    "error.generation_failed", self._language,
                    reason=get_message("error.no_suggestions", self._language),
                ),
            )

        error = result.last_error
        reason = error.message if isinstance(error, DomainFinderError) else str(error)
        if self._logger:
            self._logger.log_error(
                "SearchController",
                "Name generation failed",
                error=error,
                additional_data={"session_id": session.id, "attempts": result.attempts},
            )
        raise SearchTerminated(
            SearchErrorCode.GENERATION_FAILED,
            get_message("error.generation_failed", self._language, reason=reason),
        )

    async def _report_resolution_warnings(
        self,
        session: SearchSession,
        resolution: ResolutionResult,
        on_update: Optional[UpdateCallback],
    ) -> None:
        messages = []
        if resolution.no_usable_providers:
            messages.append(get_message("warning.no_usable_providers", self._language))
        if resolution.provider is not None and any(
            v.confidence == Confidence.LOW for v in resolution.verdicts.values()
        ):
            messages.append(get_message(
                "warning.low_confidence", self._language, provider=resolution.provider,
            ))
        for message in messages:
            if message in session.warnings:
                continue
            session.warnings.append(message)
            self._log(LogLevel.WARN, message, {"session_id": session.id})
            await self._emit(on_update, SearchUpdate(
                kind=UpdateKind.WARNING,
                session_id=session.id,
                state=session.state,
                message=message,
            ))

    @staticmethod
    def reveal_order(
        candidates: list[str], verdicts: dict[str, AvailabilityVerdict]
    ) -> list[AvailabilityVerdict]:
        """Unavailable verdicts first, then available ones, each in candidate order."""
        ordered = [verdicts[c] for c in candidates]
        return (
            [v for v in ordered if not v.available]
            + [v for v in ordered if v.available]
        )

    async def _reveal(
        self,
        session: SearchSession,
        candidates: list[str],
        resolution: ResolutionResult,
        on_update: Optional[UpdateCallback],
        cancel_event: asyncio.Event,
    ) -> None:
        delay = self._config.reveal_delay_seconds
        for verdict in self.reveal_order(candidates, resolution.verdicts):
            if cancel_event.is_set():
                return
            if delay > 0:
                await self._pause(delay, cancel_event)
                if cancel_event.is_set():
                    return
            session.record(verdict)
            await self._emit(on_update, SearchUpdate(
                kind=UpdateKind.CANDIDATE,
                session_id=session.id,
                state=session.state,
                domain=verdict.candidate,
                status=CandidateStatus.AVAILABLE if verdict.available else CandidateStatus.UNAVAILABLE,
                provider_failed=verdict.provider_failed,
            ))

    @staticmethod
    async def _pause(delay: float, cancel_event: asyncio.Event) -> None:
        """Sleep for ``delay`` seconds or until cancellation, whichever is first."""
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _set_state(
        self,
        session: SearchSession,
        state: SearchState,
        on_update: Optional[UpdateCallback],
    ) -> None:
        session.state = state
        await self._emit(on_update, SearchUpdate(
            kind=UpdateKind.STATE_CHANGED,
            session_id=session.id,
            state=state,
        ))

    async def _finish(
        self,
        session: SearchSession,
        on_update: Optional[UpdateCallback],
        outcome: SearchOutcome,
        error: Optional[SearchTerminated] = None,
    ) -> SearchResult:
        session.stopped = True
        session.end_time = utc_now()

        if error is not None:
            message, code = error.message, error.code.value
        elif outcome == SearchOutcome.CANCELLED:
            message, code = get_message("search.cancelled", self._language), None
        else:
            message, code = None, None

        result = SearchResult(
            success=outcome not in (SearchOutcome.ERROR, SearchOutcome.CANCELLED),
            outcome=outcome,
            results=session.results(),
            error=message,
            error_code=code,
            attempts=session.attempts,
            domains_checked=session.domains_checked,
        )
        await self._set_state(session, SearchState.DONE, on_update)
        self._log(
            LogLevel.INFO,
            f"Search finished: {outcome.value}",
            {
                "session_id": session.id,
                "available": len(session.available),
                "unavailable": len(session.unavailable),
                "attempts": session.attempts,
                "domains_checked": session.domains_checked,
                "error_code": code,
            },
        )
        await self._emit(on_update, SearchUpdate(
            kind=UpdateKind.COMPLETED,
            session_id=session.id,
            state=session.state,
            message=message,
            result=result,
        ))
        return result

    async def _finish_with_error(
        self,
        session: SearchSession,
        on_update: Optional[UpdateCallback],
        error: SearchTerminated,
    ) -> SearchResult:
        self._log(
            LogLevel.ERROR,
            error.message,
            {"session_id": session.id, "error_code": error.code.value},
        )
        await self._emit(on_update, SearchUpdate(
            kind=UpdateKind.ERROR,
            session_id=session.id,
            state=session.state,
            message=error.message,
        ))
        return await self._finish(session, on_update, SearchOutcome.ERROR, error)

    async def _emit(self, on_update: Optional[UpdateCallback], update: SearchUpdate) -> None:
        """Deliver an update; a failing consumer never breaks the search."""
        if on_update is None:
            return
        try:
            outcome = on_update(update)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            if self._logger:
                self._logger.log_error(
                    "SearchController",
                    "Update callback raised",
                    error=e,
                    additional_data={"kind": update.kind.value},
                )

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, "SearchController", message, data)
