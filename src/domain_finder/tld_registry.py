"""
TLD Registry - popular TLDs offered to users and TLD normalization.

Any syntactically valid TLD can be searched; the registry only lists the
suggestions shown by the CLI and provides the default.
"""

import re
from dataclasses import dataclass

import idna

from .exceptions import ValidationError
from .enums import SearchErrorCode

DEFAULT_TLD = "com"

# LDH label, must not start or end with a hyphen; punycode labels included
TLD_LABEL_PATTERN = re.compile(r"^[a-z](?:[a-z0-9-]{0,61}[a-z0-9])?$")


@dataclass(frozen=True)
class TLDInfo:
    """A TLD suggestion with a short description."""

    tld: str
    description: str

    @property
    def label(self) -> str:
        return f".{self.tld}"


POPULAR_TLDS = [
    TLDInfo(tld="com", description="Most common and widely recognized"),
    TLDInfo(tld="ai", description="Perfect for AI and tech companies"),
    TLDInfo(tld="net", description="Great for network/tech companies"),
    TLDInfo(tld="org", description="Ideal for organizations"),
    TLDInfo(tld="io", description="Popular in tech/startup space"),
    TLDInfo(tld="app", description="Perfect for applications"),
    TLDInfo(tld="dev", description="For developers and tech"),
    TLDInfo(tld="tech", description="Technology focused"),
    TLDInfo(tld="co", description="Short alternative to .com"),
    TLDInfo(tld="me", description="Personal websites"),
    TLDInfo(tld="site", description="General purpose websites"),
    TLDInfo(tld="xyz", description="Modern and flexible"),
]


def normalize_tld(value: str) -> str:
    """
    Convert a user-supplied TLD to its canonical ASCII form.

    Accepts ``"com"``, ``".COM"`` or internationalized TLDs such as
    ``".みんな"`` (IDNA-encoded to ``xn--q9jyb4c``).

    Raises:
        ValidationError: If the value is empty or not a valid TLD label
    """
    tld = (value or "").strip().lower().lstrip(".")
    if not tld:
        raise ValidationError(
            code=SearchErrorCode.INVALID_TLD.value,
            message="TLD is empty",
            details={"raw_input": value},
        )

    if any(ord(c) > 127 for c in tld):
        try:
            tld = idna.encode(tld, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=SearchErrorCode.INVALID_TLD.value,
                message=f"IDNA encoding failed: {e}",
                details={"raw_input": value},
            )

    if not TLD_LABEL_PATTERN.match(tld):
        raise ValidationError(
            code=SearchErrorCode.INVALID_TLD.value,
            message=f"Invalid TLD: {value!r}",
            details={"raw_input": value},
        )
    return tld


def is_popular_tld(tld: str) -> bool:
    """Check whether a TLD is one of the suggested popular TLDs."""
    return any(info.tld == tld for info in POPULAR_TLDS)
