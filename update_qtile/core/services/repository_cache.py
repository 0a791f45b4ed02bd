"""
Repository cache — the working directory holding the AUR checkout.

Each run starts from a fresh clone: ``clear()`` removes the previous
checkout (offering a sudo retry when a root-owned build left files
behind) and ``fetch()`` clones the AUR recipe repository. The upstream
qtile source is not fetched here; makepkg clones it later from the
patched ``source=`` entry.
"""

from __future__ import annotations

import logging
from pathlib import Path

from update_qtile.adapters.registry import AdapterRegistry
from update_qtile.core.errors import CacheError, FetchError
from update_qtile.core.models.action import Action
from update_qtile.core.services.confirmation import ConfirmationPort, TerminalConfirmation

logger = logging.getLogger(__name__)


class RepositoryCache:
    """Owns one cached checkout directory."""

    def __init__(
        self,
        path: Path,
        registry: AdapterRegistry,
        confirm: ConfirmationPort | None = None,
    ):
        self.path = path
        self._registry = registry
        self._confirm = confirm or TerminalConfirmation()

    def clear(self) -> None:
        """Remove the checkout if present.

        Raises:
            CacheError: Removal failed and the sudo retry was declined
                or did not succeed.
        """
        receipt = self._registry.execute_action(
            Action(
                id="cache-clear",
                adapter="filesystem",
                params={"operation": "remove", "path": str(self.path)},
            )
        )
        if receipt.status == "skipped":
            return
        if receipt.ok:
            logger.info("removed cached AUR repo %s", self.path)
            return

        logger.error("couldn't remove AUR cached repo")
        logger.error("\tError: %s", receipt.error)
        if not receipt.metadata.get("permission_denied"):
            raise CacheError(f"could not remove {self.path}: {receipt.error}")

        if not self._confirm.confirm("Would you like to try with root permissions?"):
            raise CacheError(f"permission denied removing {self.path}")

        receipt = self._registry.execute_action(
            Action(
                id="cache-clear-privileged",
                adapter="shell",
                params={"command": ["sudo", "rm", "-rf", str(self.path)], "cwd": "/"},
            )
        )
        if not receipt.ok:
            raise CacheError(f"could not run sudo: {receipt.error}")
        logger.info("removed cached AUR repo %s with root permissions", self.path)

    def fetch(self, remote_url: str, destination: Path | None = None) -> Path:
        """Clone ``remote_url`` into the cache directory.

        Raises:
            FetchError: The clone failed.
        """
        destination = destination or self.path
        logger.info("cloning AUR repo %s", remote_url)
        receipt = self._registry.execute_action(
            Action(
                id="cache-fetch",
                adapter="git",
                params={
                    "operation": "clone",
                    "url": remote_url,
                    "destination": str(destination),
                },
            )
        )
        if not receipt.ok:
            raise FetchError(
                f"AUR URL {remote_url} is unreachable, error: {receipt.error}"
            )

        head = self._registry.execute_action(
            Action(id="cache-head", adapter="git", params={"operation": "head"}),
            working_dir=destination,
        )
        if head.ok:
            logger.debug("AUR checkout at %s", head.output)
        return destination
