"""Authority names and the forwarded-principal model.

Tokens are validated by the gateway; what reaches this service is the
caller's login and authorities in plain headers.
"""

from dataclasses import dataclass, field

ADMIN = "ROLE_ADMIN"
USER = "ROLE_USER"
ANONYMOUS = "ROLE_ANONYMOUS"
CONSORTIUM_LEAD = "CONSORTIUM_LEAD"
MEMBER = "MEMBER"

KNOWN_AUTHORITIES: frozenset[str] = frozenset(
    {ADMIN, USER, ANONYMOUS, CONSORTIUM_LEAD, MEMBER}
)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as forwarded by the gateway."""

    login: str
    authorities: frozenset[str] = field(default_factory=frozenset)

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities


def parse_authorities(raw: str | None, delimiter: str = ",") -> set[str]:
    """Split a delimited authority list, dropping blanks and whitespace."""
    if not raw:
        return set()
    return {part.strip() for part in raw.split(delimiter) if part.strip()}
