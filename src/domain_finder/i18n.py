"""
Internationalization (i18n) module for the domain finder system.

Provides translations for all user-facing messages in English (en) and
German (de): candidate statuses, search progress, the one message per
terminal failure class, provider diagnostics, and CLI text.
"""

from typing import Optional


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"en", "de"})
DEFAULT_LANGUAGE = "en"


# Translation dictionary with all messages
# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Candidate statuses
    "status.available": {
        "en": "Available",
        "de": "Verfügbar",
    },
    "status.unavailable": {
        "en": "Taken",
        "de": "Belegt",
    },
    "status.unverified": {
        "en": "Could not verify (treated as taken)",
        "de": "Nicht prüfbar (als belegt gewertet)",
    },

    # Search progress
    "search.generating": {
        "en": "Generating name ideas (round {round})...",
        "de": "Namensideen werden erzeugt (Runde {round})...",
    },
    "search.found": {
        "en": "Found {count} available domain(s)",
        "de": "{count} verfügbare Domain(s) gefunden",
    },
    "search.partial": {
        "en": "Found only {count} of {required} requested available domain(s)",
        "de": "Nur {count} von {required} gewünschten Domains verfügbar",
    },
    "search.no_results": {
        "en": "No available domains found. Try a more specific description.",
        "de": "Keine verfügbaren Domains gefunden. Versuche eine genauere Beschreibung.",
    },
    "search.cancelled": {
        "en": "Search cancelled",
        "de": "Suche abgebrochen",
    },

    # Terminal errors
    "error.empty_description": {
        "en": "Please describe your application first",
        "de": "Bitte beschreibe zuerst deine Anwendung",
    },
    "error.invalid_tld": {
        "en": "'{tld}' is not a valid top-level domain",
        "de": "'{tld}' ist keine gültige Top-Level-Domain",
    },
    "error.invalid_bound": {
        "en": "{name} must be at least 1 (got {value})",
        "de": "{name} muss mindestens 1 sein (erhalten: {value})",
    },
    "error.generation_failed": {
        "en": "Could not generate name ideas: {reason}",
        "de": "Namensideen konnten nicht erzeugt werden: {reason}",
    },
    "error.no_suggestions": {
        "en": "the generator returned no suggestions",
        "de": "der Generator hat keine Vorschläge geliefert",
    },
    "error.providers_unauthorized": {
        "en": "Availability providers rejected the credentials. Please fix your API credentials.",
        "de": "Die Verfügbarkeits-Anbieter haben die Zugangsdaten abgelehnt. Bitte API-Zugangsdaten prüfen.",
    },
    "error.providers_exhausted": {
        "en": "All availability providers failed. Please try again later.",
        "de": "Alle Verfügbarkeits-Anbieter sind fehlgeschlagen. Bitte später erneut versuchen.",
    },
    "error.unknown": {
        "en": "Unexpected error: {error}",
        "de": "Unerwarteter Fehler: {error}",
    },

    # Warnings
    "warning.no_usable_providers": {
        "en": "No availability provider is usable; names are treated as taken",
        "de": "Kein Verfügbarkeits-Anbieter nutzbar; Namen werden als belegt gewertet",
    },
    "warning.low_confidence": {
        "en": "Results for this round come from {provider} and are approximate",
        "de": "Ergebnisse dieser Runde stammen von {provider} und sind nur Näherungswerte",
    },

    # Provider diagnostics
    "provider.working": {
        "en": "working",
        "de": "funktioniert",
    },
    "provider.error": {
        "en": "error",
        "de": "Fehler",
    },
    "provider.no_credentials": {
        "en": "no credentials",
        "de": "keine Zugangsdaten",
    },
    "provider.disabled": {
        "en": "disabled",
        "de": "deaktiviert",
    },
    "provider.unknown": {
        "en": "not checked",
        "de": "nicht geprüft",
    },

    # CLI
    "cli.description": {
        "en": "Find available domain names for an application description",
        "de": "Verfügbare Domainnamen für eine Anwendungsbeschreibung finden",
    },
    "cli.dry_run": {
        "en": "Dry run: using the mock provider, no real availability checks",
        "de": "Testlauf: Mock-Anbieter aktiv, keine echten Verfügbarkeitsprüfungen",
    },
    "cli.results_header": {
        "en": "Results for .{tld}:",
        "de": "Ergebnisse für .{tld}:",
    },
    "cli.providers_header": {
        "en": "Availability providers (priority order):",
        "de": "Verfügbarkeits-Anbieter (nach Priorität):",
    },
    "cli.tlds_header": {
        "en": "Popular top-level domains:",
        "de": "Beliebte Top-Level-Domains:",
    },
    "cli.config_warning": {
        "en": "Configuration warning: {warning}",
        "de": "Konfigurationswarnung: {warning}",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'status.available')
        language: Language code ('en' or 'de'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('status.available', 'de')
        'Verfügbar'
        >>> get_message('error.invalid_tld', 'en', tld='c_m')
        "'c_m' is not a valid top-level domain"
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Missing placeholder values: keep the template
            pass

    return message


def get_all_message_keys() -> set[str]:
    """Get all available message keys."""
    return set(TRANSLATIONS.keys())


def has_translation(key: str, language: str) -> bool:
    """Check if a translation exists for a key and language."""
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return False
    return language in translations


def get_missing_translations(language: str) -> set[str]:
    """Get all message keys that are missing translations for a language."""
    return {
        key for key, translations in TRANSLATIONS.items()
        if language not in translations
    }


def validate_translations() -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
        Empty sets indicate complete translations.
    """
    return {
        language: get_missing_translations(language)
        for language in SUPPORTED_LANGUAGES
    }
