"""
Property-based tests for internationalization (i18n) module.

Uses Hypothesis to check translation coverage and the fallback rules of
get_message.
"""

import re
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_finder.i18n import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TRANSLATIONS,
    get_all_message_keys,
    get_message,
    get_missing_translations,
    has_translation,
    validate_translations,
)


PACKAGE_DIR = Path(__file__).resolve().parents[1] / "src" / "domain_finder"
MESSAGE_KEY_PATTERN = re.compile(r"""get_message\(\s*["']([a-z_]+\.[a-z_]+)["']""")


class TestTranslationCoverageProperty:
    """Every key has every language."""

    def test_all_languages_have_all_translations(self) -> None:
        """
        *For any* message key, translations SHALL exist for both "de" and
        "en".
        """
        assert validate_translations() == {lang: set() for lang in SUPPORTED_LANGUAGES}

    @given(key=st.sampled_from(sorted(TRANSLATIONS)), language=st.sampled_from(sorted(SUPPORTED_LANGUAGES)))
    @settings(max_examples=100)
    def test_translations_are_non_empty(self, key: str, language: str) -> None:
        """*For any* key and language, the translation SHALL be a non-empty string."""
        assert has_translation(key, language)
        assert TRANSLATIONS[key][language].strip()

    def test_keys_used_in_code_exist(self) -> None:
        used = set()
        for path in PACKAGE_DIR.glob("*.py"):
            used.update(MESSAGE_KEY_PATTERN.findall(path.read_text(encoding="utf-8")))

        assert used, "expected get_message calls in the package"
        assert used <= get_all_message_keys()

    def test_placeholders_match_between_languages(self) -> None:
        placeholder = re.compile(r"\{(\w+)\}")
        for key, translations in TRANSLATIONS.items():
            assert set(placeholder.findall(translations["en"])) == set(
                placeholder.findall(translations["de"])
            ), key


class TestMessageFallbacks:
    """Unknown keys and languages degrade gracefully."""

    @given(key=st.text(alphabet="abcxyz._", min_size=1, max_size=20))
    @settings(max_examples=100)
    def test_unknown_key_returns_key(self, key: str) -> None:
        """*For any* key without translations, get_message SHALL return the key."""
        if key in TRANSLATIONS:
            return
        assert get_message(key, "de") == key

    @given(language=st.text(min_size=1, max_size=5))
    @settings(max_examples=100)
    def test_unknown_language_falls_back_to_default(self, language: str) -> None:
        """*For any* unsupported language, the default language SHALL be used."""
        if language in SUPPORTED_LANGUAGES:
            return
        assert get_message("status.available", language) == get_message(
            "status.available", DEFAULT_LANGUAGE
        )

    def test_formatting(self) -> None:
        assert get_message("error.invalid_tld", "en", tld="c_m") == "'c_m' is not a valid top-level domain"
        assert get_message("search.partial", "de", count=2, required=5).startswith("Nur 2 von 5")

    def test_missing_placeholder_keeps_template(self) -> None:
        assert "{tld}" in get_message("error.invalid_tld", "en", other="x")

    def test_no_missing_translations(self) -> None:
        assert get_missing_translations("en") == set()
        assert get_missing_translations("de") == set()
