"""
Theme resolution.

Picks the single theme a sync operates against from the themes listed for a
store. Matching is an ordered list of independent strategies; the first one
that returns a theme wins:

1. exact name match (ties broken by ``EXACT_TIE_BREAK``, then input order)
2. substring match in either direction, preferring roles by ``ROLE_PRIORITY``
3. first substring match in input order

Substring matching is best-effort: theme names are usually decorated with
prefixes or suffixes, so a match in either direction is accepted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from themesync.core.errors import ThemeNotFoundError
from themesync.core.models import ThemeCandidate, ThemeRole

logger = logging.getLogger(__name__)

# The live theme (MAIN) is deliberately last so ambiguous names never land on it.
ROLE_PRIORITY: tuple[ThemeRole, ...] = (
    ThemeRole.UNPUBLISHED,
    ThemeRole.PUBLISHED,
    ThemeRole.DEVELOPMENT,
    ThemeRole.MAIN,
)

# Only consulted when several themes carry exactly the requested name.
EXACT_TIE_BREAK: tuple[ThemeRole, ...] = (
    ThemeRole.MAIN,
    ThemeRole.PUBLISHED,
    ThemeRole.UNPUBLISHED,
    ThemeRole.DEVELOPMENT,
)

Matcher = Callable[[Sequence[ThemeCandidate], str], ThemeCandidate | None]


def _first_by_role(
    candidates: Sequence[ThemeCandidate], roles: Sequence[ThemeRole]
) -> ThemeCandidate | None:
    for role in roles:
        for candidate in candidates:
            if candidate.role == role:
                return candidate
    return None


def substring_pool(candidates: Sequence[ThemeCandidate], target_name: str) -> list[ThemeCandidate]:
    """Candidates whose name contains the target, or is contained in it."""
    return [c for c in candidates if target_name in c.name or c.name in target_name]


def match_exact(candidates: Sequence[ThemeCandidate], target_name: str) -> ThemeCandidate | None:
    """Return the theme named exactly ``target_name``, whatever its role."""
    exact = [c for c in candidates if c.name == target_name]
    if not exact:
        return None
    if len(exact) == 1:
        return exact[0]

    logger.warning(
        "%d themes are named %r; breaking the tie by role", len(exact), target_name
    )
    return _first_by_role(exact, EXACT_TIE_BREAK) or exact[0]


def match_role_priority(
    candidates: Sequence[ThemeCandidate], target_name: str
) -> ThemeCandidate | None:
    """Among substring matches, return the first one with the most preferred role."""
    return _first_by_role(substring_pool(candidates, target_name), ROLE_PRIORITY)


def match_first_available(
    candidates: Sequence[ThemeCandidate], target_name: str
) -> ThemeCandidate | None:
    """Return the first substring match in the order the API listed them."""
    pool = substring_pool(candidates, target_name)
    return pool[0] if pool else None


MATCHERS: tuple[Matcher, ...] = (
    match_exact,
    match_role_priority,
    match_first_available,
)


def resolve_theme(
    candidates: Sequence[ThemeCandidate],
    target_name: str,
    *,
    shop_domain: str | None = None,
) -> ThemeCandidate:
    """
    Select the theme to sync against.

    Args:
        candidates: Themes listed for the store, in API order
        target_name: Configured theme name
        shop_domain: Store domain, only used for diagnostics

    Returns:
        The selected theme

    Raises:
        ThemeNotFoundError: No candidate matches under any rule
    """
    for matcher in MATCHERS:
        theme = matcher(candidates, target_name)
        if theme is not None:
            logger.info(
                "Using theme %r (%s) - ID: %s [%s]",
                theme.name,
                theme.role_name,
                theme.id,
                matcher.__name__,
            )
            return theme

    logger.error(
        "Theme %r not found. Available: %s",
        target_name,
        ", ".join(f"{c.name} ({c.role_name})" for c in candidates),
    )
    raise ThemeNotFoundError(target_name, candidates, shop_domain=shop_domain)
