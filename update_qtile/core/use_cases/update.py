"""
Update use case — the whole pipeline from selectors to a restarted qtile.

    selectors → source reference → clear cache → clone AUR repo
              → patch PKGBUILD → build/install/restart

Fatal errors (cache, fetch, recipe, restart) end the run and are
returned in ``UpdateResult.error``; build and install failures show
up as a ``failed`` orchestration report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from update_qtile.adapters.registry import AdapterRegistry, default_registry
from update_qtile.core.engine.orchestrator import (
    BuildInstallOrchestrator,
    OrchestrationReport,
)
from update_qtile.core.errors import UpdateError
from update_qtile.core.models.selectors import SelectorSet
from update_qtile.core.models.settings import Settings
from update_qtile.core.services.confirmation import ConfirmationPort
from update_qtile.core.services.recipe_patcher import RecipePatcher
from update_qtile.core.services.repository_cache import RepositoryCache
from update_qtile.core.services.source_locator import resolve_source

logger = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    """Result of one update run."""

    source: str = ""
    working_dir: Path | None = None
    report: OrchestrationReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "source": self.source,
            "working_dir": str(self.working_dir) if self.working_dir else None,
        }
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_update(
    selectors: SelectorSet,
    settings: Settings | None = None,
    restart: bool = False,
    registry: AdapterRegistry | None = None,
    confirm: ConfirmationPort | None = None,
) -> UpdateResult:
    """Rebuild and reinstall the package from the selected source.

    Args:
        selectors: Origin and ref choices.
        settings: Effective settings (defaults when None).
        restart: Ask the running qtile to restart after install.
        registry: Adapter registry (real adapters when None).
        confirm: Answers the sudo-retry question (terminal when None).
    """
    settings = settings or Settings()
    registry = registry or default_registry(qtile_socket=settings.qtile_socket)
    working_dir = settings.working_dir

    result = UpdateResult(working_dir=working_dir)
    result.source = resolve_source(selectors, settings)

    cache = RepositoryCache(working_dir, registry, confirm=confirm)
    orchestrator = BuildInstallOrchestrator(settings, registry)
    try:
        cache.clear()
        cache.fetch(settings.aur_url)
        RecipePatcher(settings).patch(working_dir, result.source)
        result.report = orchestrator.run(working_dir, restart_requested=restart)
    except UpdateError as e:
        logger.error("%s", e)
        result.error = str(e)
        result.report = result.report or orchestrator.last_report

    return result


def clean_cache(
    settings: Settings | None = None,
    registry: AdapterRegistry | None = None,
    confirm: ConfirmationPort | None = None,
) -> Path:
    """Remove the cached checkout. Raises ``CacheError`` on failure."""
    settings = settings or Settings()
    registry = registry or default_registry(qtile_socket=settings.qtile_socket)
    RepositoryCache(settings.working_dir, registry, confirm=confirm).clear()
    return settings.working_dir
