"""
Build/install orchestrator — makepkg, pacman, restart.

Flow:
    BUILDING → CHECK_INSTALLED → REMOVING | SKIP_REMOVAL → INSTALLING
             → RESTARTING (if requested) → DONE

Any failed phase moves to FAILED and stops; completed phases are not
rolled back. Build and install failures are recorded in the report and
logged together with the install.log path. Restart failures are
raised, since the package is already installed and only the running
session is affected.

All external output goes to ``install.log`` in the working directory,
split into sections by banner lines.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from update_qtile.adapters.registry import AdapterRegistry
from update_qtile.core.errors import (
    BuildFailure,
    InstallFailure,
    PhaseError,
    RestartFailure,
)
from update_qtile.core.models.action import Action, Receipt
from update_qtile.core.models.settings import Settings

logger = logging.getLogger(__name__)

_BANNER_RULE = "-" * 31
_GLOB_CHARS = re.compile(r"[*?[]")


class Phase(str, enum.Enum):
    BUILDING = "building"
    CHECK_INSTALLED = "check_installed"
    REMOVING = "removing"
    SKIP_REMOVAL = "skip_removal"
    INSTALLING = "installing"
    RESTARTING = "restarting"
    DONE = "done"
    FAILED = "failed"


class BuildLog:
    """Append-only install.log, recreated empty for every run."""

    def __init__(self, path: Path):
        self.path = path

    def create(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def section(self, title: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(f"\n{_BANNER_RULE} {title} {_BANNER_RULE}\n\n")

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8") if self.path.exists() else ""


@dataclass
class OrchestrationReport:
    """What happened during one build/install run."""

    log_path: Path
    phases: list[Phase] = field(default_factory=list)
    receipts: list[Receipt] = field(default_factory=list)
    package: Path | None = None
    removed: list[str] = field(default_factory=list)
    restarted: bool = False
    error: PhaseError | None = None

    @property
    def state(self) -> Phase | None:
        return self.phases[-1] if self.phases else None

    @property
    def ok(self) -> bool:
        return self.state == Phase.DONE

    def to_dict(self) -> dict:
        return {
            "state": self.state.value if self.state else None,
            "phases": [p.value for p in self.phases],
            "log_path": str(self.log_path),
            "package": str(self.package) if self.package else None,
            "removed": list(self.removed),
            "restarted": self.restarted,
            "error": str(self.error) if self.error else None,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


class BuildInstallOrchestrator:
    """Sequence build, stale-file sweep, install and restart."""

    def __init__(self, settings: Settings, registry: AdapterRegistry):
        self.settings = settings
        self.registry = registry
        self.last_report: OrchestrationReport | None = None

    def run(self, working_dir: Path, restart_requested: bool = False) -> OrchestrationReport:
        """Run every phase against a patched checkout.

        Raises:
            RestartFailure: qtile did not acknowledge the restart.
        """
        log = BuildLog(working_dir / self.settings.log_file)
        log.create()
        report = OrchestrationReport(log_path=log.path)
        self.last_report = report

        try:
            self._build(working_dir, log, report)
            if self._is_installed(working_dir, log, report):
                report.phases.append(Phase.SKIP_REMOVAL)
            else:
                self._remove_stale(working_dir, report)
            self._install(working_dir, log, report)
        except (BuildFailure, InstallFailure) as e:
            report.error = e
            report.phases.append(Phase.FAILED)
            logger.error("%s", e)
            return report

        if restart_requested:
            self._restart(working_dir, report)
        else:
            logger.info("please restart qtile")

        report.phases.append(Phase.DONE)
        return report

    # ── Phases ──────────────────────────────────────────────────

    def _build(self, working_dir: Path, log: BuildLog, report: OrchestrationReport) -> None:
        report.phases.append(Phase.BUILDING)
        logger.info("building with `makepkg`")
        log.section("building new package")

        receipt = self._dispatch(
            report,
            Action(
                id="build",
                adapter="shell",
                description="makepkg",
                params={
                    "command": ["makepkg", *self.settings.makepkg_flags],
                    "auto_confirm": True,
                },
            ),
            working_dir,
            log.path,
        )
        if not receipt.ok:
            raise BuildFailure(
                f"Qtile build failed, check in {log.path}", log_path=log.path
            )

    def _is_installed(self, working_dir: Path, log: BuildLog, report: OrchestrationReport) -> bool:
        """Whether pacman owns the package; a failed query counts as no."""
        report.phases.append(Phase.CHECK_INSTALLED)
        logger.info("removing old package")
        log.section("removing old package")

        receipt = self._dispatch(
            report,
            Action(
                id="query-installed",
                adapter="shell",
                params={"command": ["pacman", "-Qq", self.settings.package_name]},
            ),
            working_dir,
            log.path,
        )
        logger.debug("%s registered with pacman: %s", self.settings.package_name, receipt.ok)
        return receipt.ok

    def _remove_stale(self, working_dir: Path, report: OrchestrationReport) -> None:
        """Delete files a non-pacman install left behind; absent ones are skipped."""
        report.phases.append(Phase.REMOVING)
        for entry in self.settings.stale_artifacts:
            for path in self._expand_artifact(working_dir, entry, report):
                receipt = self._dispatch(
                    report,
                    Action(
                        id=f"remove-artifact:{path}",
                        adapter="filesystem",
                        params={"operation": "remove", "path": path},
                    ),
                    working_dir,
                )
                if receipt.failed:
                    raise InstallFailure(
                        f"could not remove {path}: {receipt.error}",
                        log_path=report.log_path,
                    )
                if receipt.ok:
                    report.removed.append(path)

    def _expand_artifact(
        self, working_dir: Path, entry: str, report: OrchestrationReport
    ) -> list[str]:
        if not _GLOB_CHARS.search(entry):
            return [entry]
        receipt = self._dispatch(
            report,
            Action(
                id=f"expand-artifact:{entry}",
                adapter="filesystem",
                params={"operation": "glob", "pattern": entry},
            ),
            working_dir,
        )
        if receipt.failed:
            raise InstallFailure(
                f"could not expand {entry}: {receipt.error}",
                log_path=report.log_path,
            )
        matches = receipt.metadata.get("matches", [])
        if not matches:
            logger.debug("nothing matches %s", entry)
        return matches

    def _install(self, working_dir: Path, log: BuildLog, report: OrchestrationReport) -> None:
        report.phases.append(Phase.INSTALLING)
        package = self._find_package(working_dir, report)
        report.package = package

        logger.info("installing new package")
        log.section("installing new package")
        receipt = self._dispatch(
            report,
            Action(
                id="install",
                adapter="shell",
                description="pacman -U",
                params={
                    "command": ["sudo", "pacman", "-U", str(package), "--overwrite", "*"],
                    "auto_confirm": True,
                },
            ),
            working_dir,
            log.path,
        )
        if not receipt.ok:
            raise InstallFailure(
                f"Qtile install failed, check in {log.path}", log_path=log.path
            )
        log.section("package installed successfully")

    def _find_package(self, working_dir: Path, report: OrchestrationReport) -> Path:
        receipt = self._dispatch(
            report,
            Action(
                id="find-package",
                adapter="filesystem",
                params={"operation": "glob", "pattern": self.settings.package_glob},
            ),
            working_dir,
        )
        matches = receipt.metadata.get("matches", []) if receipt.ok else []
        if not matches:
            raise InstallFailure(
                f"no package matching {self.settings.package_glob} in {working_dir}",
                log_path=report.log_path,
            )
        if len(matches) > 1:
            logger.warning("several packages built, installing %s", matches[0])
        return Path(matches[0])

    def _restart(self, working_dir: Path, report: OrchestrationReport) -> None:
        report.phases.append(Phase.RESTARTING)
        logger.info("restarting")
        receipt = self._dispatch(
            report,
            Action(
                id="restart",
                adapter="qtile",
                params={"command": "restart", "selectors": [], "args": [], "kwargs": {}},
            ),
            working_dir,
        )
        if receipt.metadata.get("transport_error") or (
            receipt.failed and "reply" not in receipt.metadata
        ):
            self._fail(report, RestartFailure(
                f"{receipt.error}\nQtile is probably not running",
                log_path=report.log_path,
            ))
        if receipt.failed or receipt.metadata.get("reply") is not None:
            self._fail(report, RestartFailure(
                "restart failed, please restart manually",
                log_path=report.log_path,
            ))
        report.restarted = True

    @staticmethod
    def _fail(report: OrchestrationReport, error: PhaseError) -> None:
        report.error = error
        report.phases.append(Phase.FAILED)
        raise error

    def _dispatch(
        self,
        report: OrchestrationReport,
        action: Action,
        working_dir: Path,
        log_file: Path | None = None,
    ) -> Receipt:
        receipt = self.registry.execute_action(action, working_dir=working_dir, log_file=log_file)
        report.receipts.append(receipt)
        return receipt
