"""
Source locator — turn selectors into the PKGBUILD source reference.

    {branch: "next"}                  -> https://github.com/qtile/qtile#branch=next
    {fork: "alice", commit: "abc123"} -> https://github.com/alice/qtile#commit=abc123
    {path: "/src/qtile"}              -> file:///src/qtile
"""

from __future__ import annotations

import logging

from update_qtile.core.models.selectors import SelectorSet
from update_qtile.core.models.settings import Settings

logger = logging.getLogger(__name__)


def resolve_origin(selectors: SelectorSet, settings: Settings | None = None) -> str:
    """Origin URL: local path first, then fork (upstream owner by default)."""
    settings = settings or Settings()
    if selectors.path:
        return f"file://{selectors.path}"
    owner = selectors.fork or settings.upstream_owner
    return f"https://{settings.git_host}/{owner}/{settings.project_name}"


def resolve_source(selectors: SelectorSet, settings: Settings | None = None) -> str:
    """Origin plus ref qualifier, commit > tag > branch > none."""
    origin = resolve_origin(selectors, settings)

    for kind in ("commit", "tag", "branch"):
        value = getattr(selectors, kind)
        if value:
            logger.info("selected repo `%s` - %s `%s`", origin, kind, value)
            return f"{origin}#{kind}={value}"

    logger.info("selected repo `%s` - branch `master`", origin)
    return origin
