"""Single table of path exemptions for the admission checks.

One rule names every check a path prefix skips, so the site gate, the
rate limiter and the CSRF validator cannot drift apart.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from invitegen.security.policies import matches_prefix


class Bypass(StrEnum):
    SITE_GATE = "site_gate"
    CSRF = "csrf"
    RATE_LIMIT = "rate_limit"


@dataclass(frozen=True)
class ExemptionRule:
    path_prefix: str
    bypasses: frozenset[Bypass]


def _rule(prefix: str, *bypasses: Bypass) -> ExemptionRule:
    return ExemptionRule(path_prefix=prefix, bypasses=frozenset(bypasses))


DEFAULT_EXEMPTIONS: tuple[ExemptionRule, ...] = (
    # Pre-session endpoints.
    _rule("/api/auth/login", Bypass.CSRF),
    _rule("/api/auth/signup", Bypass.CSRF),
    # Signature-authenticated callbacks.
    _rule("/api/webhooks", Bypass.CSRF, Bypass.RATE_LIMIT, Bypass.SITE_GATE),
    # Public submissions and the gate itself.
    _rule("/api/rsvp", Bypass.CSRF, Bypass.SITE_GATE),
    _rule("/api/site-access", Bypass.CSRF, Bypass.SITE_GATE),
    _rule("/site-access", Bypass.SITE_GATE),
    _rule("/health", Bypass.RATE_LIMIT, Bypass.SITE_GATE),
    _rule("/api/health", Bypass.RATE_LIMIT, Bypass.SITE_GATE),
)


class ExemptionTable:
    """Answers "does this path skip that check?"."""

    def __init__(self, rules: Iterable[ExemptionRule] = DEFAULT_EXEMPTIONS) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[ExemptionRule, ...]:
        return self._rules

    def bypasses(self, path: str, check: Bypass) -> bool:
        return any(
            check in rule.bypasses and matches_prefix(path, rule.path_prefix)
            for rule in self._rules
        )
