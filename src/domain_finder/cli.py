"""
Command-line interface for the domain finder system.

This module provides the main CLI entry point with commands for:
- search: Find available domain names for an application description
- providers: Show provider diagnostics (optionally with a live probe)
- tlds: List popular top-level domains

Exit codes of ``search``: 0 when available names were found (fully or
partially), 2 when none were found, 1 on error, 130 when cancelled.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger, create_logger
from .config import SystemConfig, load_config_from_env
from .enums import CandidateStatus, SearchOutcome, SearchState, UpdateKind
from .exceptions import ConfigurationError, ValidationError
from .generator import GeminiNameGenerator, NameGenerator, StaticNameGenerator
from .i18n import get_message
from .models import SearchResult, SearchUpdate
from .providers import build_default_providers, close_providers
from .resolver import AvailabilityResolver
from .search_controller import SearchController
from .self_test import run_self_test
from .tld_registry import POPULAR_TLDS, normalize_tld

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_RESULTS = 2
EXIT_CANCELLED = 130

OUTCOME_EXIT_CODES = {
    SearchOutcome.FOUND: EXIT_OK,
    SearchOutcome.PARTIAL: EXIT_OK,
    SearchOutcome.NO_RESULTS: EXIT_NO_RESULTS,
    SearchOutcome.ERROR: EXIT_ERROR,
    SearchOutcome.CANCELLED: EXIT_CANCELLED,
}


def load_cli_config(args: argparse.Namespace) -> SystemConfig:
    """Load configuration from the environment and apply CLI overrides."""
    config = load_config_from_env(dotenv_path=getattr(args, "env_file", None))

    if getattr(args, "language", None):
        config.language = args.language
    if getattr(args, "dry_run", False):
        config.simulation_mode = True
    if getattr(args, "verbose", False):
        config.logging.level = "debug"
    return config


def build_logger(config: SystemConfig, verbose: bool) -> Optional[AuditLogger]:
    """Logging goes to stderr and is only enabled with --verbose."""
    if not verbose:
        return None
    return create_logger(
        output_format=config.logging.output_format,
        level=config.logging.level,
    )


def build_generator(
    config: SystemConfig,
    names: Optional[str],
    logger: Optional[AuditLogger],
) -> NameGenerator:
    if names is not None:
        ideas = [n.strip() for n in names.split(",") if n.strip()]
        if not ideas:
            raise ConfigurationError(
                code="empty_names",
                message="--names needs at least one comma-separated name",
            )
        return StaticNameGenerator([ideas])
    return GeminiNameGenerator(config.generator, logger=logger)


class ProgressPrinter:
    """Prints search updates as they are revealed."""

    def __init__(self, tld: str, language: str, stream=None) -> None:
        self._tld = tld
        self._language = language
        self._stream = stream or sys.stdout
        self._round = 0

    def __call__(self, update: SearchUpdate) -> None:
        if update.kind == UpdateKind.STATE_CHANGED and update.state == SearchState.GENERATING:
            self._round += 1
            self._print(get_message("search.generating", self._language, round=self._round))
        elif update.kind == UpdateKind.CANDIDATE and update.status != CandidateStatus.CHECKING:
            self._print_candidate(update)
        elif update.kind in (UpdateKind.WARNING, UpdateKind.ERROR):
            self._print(f"  ! {update.message}")

    def _print_candidate(self, update: SearchUpdate) -> None:
        domain = f"{update.domain}.{self._tld}"
        if update.status == CandidateStatus.AVAILABLE:
            mark, text = "✓", get_message("status.available", self._language)
        elif update.provider_failed:
            mark, text = "?", get_message("status.unverified", self._language)
        else:
            mark, text = "✗", get_message("status.unavailable", self._language)
        self._print(f"  {mark} {domain:<32} {text}")

    def _print(self, text: str) -> None:
        print(text, file=self._stream, flush=True)


def print_summary(result: SearchResult, required: int, language: str) -> None:
    if result.outcome == SearchOutcome.FOUND:
        print(get_message("search.found", language, count=len(result.available)))
    elif result.outcome == SearchOutcome.PARTIAL:
        print(get_message(
            "search.partial", language, count=len(result.available), required=required,
        ))
    elif result.outcome == SearchOutcome.NO_RESULTS:
        print(get_message("search.no_results", language))
    elif result.error:
        print(result.error, file=sys.stderr)


async def search_domains(
    description: str,
    config: SystemConfig,
    tld: str,
    required: int,
    max_attempts: int,
    max_checked: int,
    names: Optional[str] = None,
    as_json: bool = False,
    verbose: bool = False,
) -> SearchResult:
    """Wire up generator, providers, resolver, and controller; run one search."""
    language = config.language
    logger = build_logger(config, verbose)
    generator = build_generator(config, names, logger)
    providers = build_default_providers(config, logger=logger)
    controller = SearchController(
        generator=generator,
        resolver=AvailabilityResolver(providers, logger=logger),
        config=config.search,
        logger=logger,
        retry_config=config.retry,
        language=language,
    )

    if not as_json:
        if config.simulation_mode:
            print(get_message("cli.dry_run", language))
        print(get_message("cli.results_header", language, tld=tld))

    try:
        return await controller.run_search(
            description,
            tld,
            on_update=None if as_json else ProgressPrinter(tld, language),
            required_available=required,
            max_attempts=max_attempts,
            max_domains_checked=max_checked,
        )
    finally:
        await close_providers(providers)
        close = getattr(generator, "close", None)
        if close is not None:
            await close()


def cmd_search(args: argparse.Namespace) -> int:
    """Handle the 'search' command."""
    config = load_cli_config(args)
    language = config.language

    if args.verbose:
        for warning in config.warnings:
            print(get_message("cli.config_warning", language, warning=warning), file=sys.stderr)

    tld = config.tld
    if args.tld:
        try:
            tld = normalize_tld(args.tld)
        except ValidationError:
            print(get_message("error.invalid_tld", language, tld=args.tld), file=sys.stderr)
            return EXIT_ERROR

    required = config.search.required_available if args.required is None else args.required
    try:
        result = asyncio.run(search_domains(
            description=" ".join(args.description),
            config=config,
            tld=tld,
            required=required,
            max_attempts=config.search.max_attempts if args.max_attempts is None else args.max_attempts,
            max_checked=config.search.max_domains_checked if args.max_checked is None else args.max_checked,
            names=args.names,
            as_json=args.json,
            verbose=args.verbose,
        ))
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print(get_message("search.cancelled", language), file=sys.stderr)
        return EXIT_CANCELLED

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_summary(result, required, language)

    return OUTCOME_EXIT_CODES[result.outcome]


def cmd_providers(args: argparse.Namespace) -> int:
    """Handle the 'providers' command."""
    config = load_cli_config(args)

    result = asyncio.run(run_self_test(
        config=config,
        live=args.live,
        print_output=not args.json,
        language=config.language,
    ))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    return EXIT_OK if result.success else EXIT_ERROR


def cmd_tlds(args: argparse.Namespace) -> int:
    """Handle the 'tlds' command."""
    language = args.language or "en"
    print(get_message("cli.tlds_header", language))
    for info in POPULAR_TLDS:
        print(f"  {info.label:<8} {info.description}")
    return EXIT_OK


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env-file",
        help="Path to a .env file (default: search upwards from the working directory)",
    )
    parser.add_argument(
        "--language", "-l",
        choices=["en", "de"],
        help="Output language (default: LANGUAGE or en)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging to stderr",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-finder",
        description=get_message("cli.description"),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'search' command
    search_parser = subparsers.add_parser(
        "search",
        help="Find available domain names for a description",
    )
    search_parser.add_argument(
        "description",
        nargs="+",
        help="Application description, e.g. 'fitness tracking app'",
    )
    search_parser.add_argument(
        "--tld", "-t",
        help="Top-level domain to search (default: DOMAIN_TLD or com)",
    )
    search_parser.add_argument(
        "--required", "-n",
        type=int,
        help="Number of available names to find (default: 5)",
    )
    search_parser.add_argument(
        "--max-attempts",
        type=int,
        help="Maximum generation rounds (default: 5)",
    )
    search_parser.add_argument(
        "--max-checked",
        type=int,
        help="Maximum names checked in total (default: 100)",
    )
    search_parser.add_argument(
        "--names",
        help="Comma-separated name ideas to check instead of asking the model",
    )
    search_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - mock provider only, no registrar requests",
    )
    _add_common_arguments(search_parser)
    search_parser.set_defaults(func=cmd_search)

    # 'providers' command
    providers_parser = subparsers.add_parser(
        "providers",
        help="Show availability provider status",
    )
    providers_parser.add_argument(
        "--live",
        action="store_true",
        help="Send one probe request to every usable provider",
    )
    _add_common_arguments(providers_parser)
    providers_parser.set_defaults(func=cmd_providers)

    # 'tlds' command
    tlds_parser = subparsers.add_parser(
        "tlds",
        help="List popular top-level domains",
    )
    tlds_parser.add_argument(
        "--language", "-l",
        choices=["en", "de"],
        help="Output language (default: en)",
    )
    tlds_parser.set_defaults(func=cmd_tlds)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
