"""Run orchestration: detect, enumerate, parse, assign, synthesize, reconcile, launch.

Collaborators (window manager backend, settings store, confirmation prompt,
Waybar launcher, notifier) are injected so every mode can be exercised
without a running compositor.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, Dict, List, Optional, Sequence

from .assignment import assign, select_monitors
from .bar import WaybarLauncher, notify
from .errors import EmptyMonitorSetError, SettingsError, WaybarManagerError
from .models import (
    AssignmentPlan,
    DisplayMode,
    GeneratedConfig,
    Monitor,
    Settings,
    WindowManagerKind,
)
from .paths import Paths
from .reconciler import ReconcileAction, ReconcileReport, reconcile
from .settings import SettingsStore, find_matches, sync_available_monitors, topology_changed
from .synthesizer import synthesize
from .template_parser import load_template
from .window_manager import WindowManagerBackend, detect_backend

logger = logging.getLogger(__name__)

# confirm(configured, connected) -> approve updating the settings
ConfirmCallback = Callable[[Sequence[str], Sequence[str]], bool]
Notifier = Callable[[str, str], bool]


class RunMode(str, Enum):
    LAUNCH = "launch"
    CHECK = "check"
    MONITORS = "monitors"


class ExitOutcome(IntEnum):
    """Process exit status of a run."""
    OK = 0
    FILE_ERRORS = 1
    FATAL = 2


@dataclass
class RunResult:
    """Everything a run decided and did, for rendering and exit status."""

    mode: RunMode
    outcome: ExitOutcome = ExitOutcome.OK
    kind: Optional[WindowManagerKind] = None
    monitors: List[Monitor] = field(default_factory=list)
    settings: Optional[Settings] = None
    matches: List[str] = field(default_factory=list)
    topology_changed: bool = False
    settings_updated: bool = False
    plan: Optional[AssignmentPlan] = None
    configs: List[GeneratedConfig] = field(default_factory=list)
    report: Optional[ReconcileReport] = None
    launched: List[str] = field(default_factory=list)
    launch_failures: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    error: Optional[WaybarManagerError] = None

    @property
    def exit_code(self) -> int:
        return int(self.outcome)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class Orchestrator:
    """Sequences one invocation of waybar-manager."""

    def __init__(
        self,
        paths: Paths,
        settings_store: Optional[SettingsStore] = None,
        detector: Callable[[], WindowManagerBackend] = detect_backend,
        confirm: Optional[ConfirmCallback] = None,
        launcher: Optional[WaybarLauncher] = None,
        notifier: Notifier = notify,
    ):
        """Initialize orchestrator.

        Args:
            paths: Filesystem layout
            settings_store: Settings persistence (default: at paths.settings_file)
            detector: Returns the backend for the running window manager
            confirm: Asks whether to update settings after a topology change;
                None means never update unless forced
            launcher: Waybar process launcher
            notifier: Desktop notification sender
        """
        self.paths = paths
        self.settings_store = settings_store or SettingsStore(paths.settings_file)
        self.detector = detector
        self.confirm = confirm
        self.launcher = launcher or WaybarLauncher()
        self.notifier = notifier

    def run(self, mode: RunMode, force_update: bool = False, launch_bar: bool = True) -> RunResult:
        """Execute one mode and report the outcome.

        Fatal errors abort the run with ExitOutcome.FATAL; per-file failures
        give ExitOutcome.FILE_ERRORS once every file has been attempted.
        """
        result = RunResult(mode=mode)
        try:
            self._run(result, force_update, launch_bar)
        except WaybarManagerError as e:
            logger.error(e.message)
            result.error = e
            result.outcome = ExitOutcome.FATAL
        return result

    def _run(self, result: RunResult, force_update: bool, launch_bar: bool) -> None:
        backend = self.detector()
        result.kind = backend.kind

        monitors = backend.enumerate()
        if not monitors:
            raise EmptyMonitorSetError(backend.kind.value)
        result.monitors = monitors

        if result.mode == RunMode.MONITORS:
            return

        settings = self.settings_store.load(create_missing=result.mode != RunMode.CHECK)
        names = [m.name for m in monitors]
        result.matches = find_matches(settings.display.available_monitors, names)

        if topology_changed(settings.display, names):
            result.topology_changed = True
            if result.mode == RunMode.LAUNCH:
                settings = self._handle_topology_change(result, settings, names, force_update)
            else:
                result.warn("Differences were detected between configured and connected monitors")
        result.settings = settings

        display = settings.display
        if display.mode == DisplayMode.SINGLE and display.preferred_monitor not in names:
            result.warn(f"Preferred monitor '{display.preferred_monitor}' not available, "
                        f"using the first one detected ({names[0]})")
        selected = select_monitors(monitors, display)

        template = load_template(self.paths.template_path(backend.kind))

        plan = assign(selected, display.preferred_monitor)
        result.plan = plan
        if plan.fallback_used:
            result.warn(f"Preferred monitor '{display.preferred_monitor}' is not connected; "
                        f"full bar assigned to {plan.full_monitor.name}")
        for a in plan.assignments:
            logger.info("Assignment: %s -> %s", a.monitor.name, a.variant.value)

        result.configs = [
            synthesize(template.variant(a.variant), a.monitor, backend.kind, self.paths.generated_dir)
            for a in plan.assignments
        ]

        result.report = reconcile(
            result.configs,
            self.paths.generated_dir,
            backend.kind,
            dry_run=result.mode == RunMode.CHECK,
        )
        if not result.report.ok:
            result.outcome = ExitOutcome.FILE_ERRORS

        if not self.paths.stylesheet.exists():
            result.warn(f"Stylesheet not found: {self.paths.stylesheet}")

        if result.mode != RunMode.LAUNCH:
            return

        if launch_bar:
            self._launch(result)

        if result.topology_changed and not result.settings_updated:
            self.notifier(
                "Waybar Manager",
                "There are configuration differences. Run 'waybar-manager check' "
                "from the terminal to review them.",
            )

    def _handle_topology_change(
        self, result: RunResult, settings: Settings, names: List[str], force_update: bool
    ) -> Settings:
        if settings.display.mode == DisplayMode.SINGLE:
            result.warn("The configured monitor is not connected; run 'waybar-manager config' to reconfigure")
            return settings

        approved = force_update or (
            self.confirm is not None and self.confirm(settings.display.available_monitors, names)
        )
        if not approved:
            result.warn("Outdated configuration: connected monitors differ from the settings")
            return settings

        updated = sync_available_monitors(settings, names)
        try:
            self.settings_store.save(updated)
        except SettingsError as e:
            result.warn(e.message)
            return settings

        result.settings_updated = True
        logger.info("Configuration updated with monitors: %s", ", ".join(names))
        return updated

    def _launch(self, result: RunResult) -> None:
        self.launcher.stop()

        for config in result.configs:
            outcome = result.report.outcome_for(config.path) if result.report else None
            if outcome is not None and outcome.action == ReconcileAction.FAILED:
                logger.warning("Not starting waybar on %s: config could not be written", config.monitor)
                continue
            try:
                self.launcher.spawn(config.path, self.paths.stylesheet)
            except OSError as e:
                logger.error("Error launching waybar on %s: %s", config.monitor, e)
                result.launch_failures[config.monitor] = str(e)
                result.outcome = max(result.outcome, ExitOutcome.FILE_ERRORS)
                continue
            logger.info("Starting waybar %s on %s", config.variant.value, config.monitor)
            result.launched.append(config.monitor)
