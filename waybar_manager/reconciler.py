"""Output reconciler: bring the generated directory in line with the desired configs.

Files whose content already matches are left alone (no write, no mtime
bump). Changed or missing files are written atomically (temp file + fsync +
rename). Generated files of the current window manager that no longer
correspond to a desired (monitor, variant) pair are deleted. Every file is
handled independently; failures are recorded, never raised.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import GeneratedConfig, VariantName, WindowManagerKind
from .synthesizer import parse_generated_name

logger = logging.getLogger(__name__)


class ReconcileAction(str, Enum):
    """What happened (or would happen, in a dry run) to one file."""
    WRITTEN = "written"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass
class FileOutcome:
    """Result for a single generated file.

    Attributes:
        path: Target file
        action: Outcome category
        monitor: Monitor the file belongs to
        variant: Variant the file holds
        reason: Failure reason (FAILED only)
    """

    path: Path
    action: ReconcileAction
    monitor: str = ""
    variant: Optional[VariantName] = None
    reason: Optional[str] = None

    def __str__(self) -> str:
        if self.action == ReconcileAction.FAILED:
            return f"  [FAILED] {self.path.name}: {self.reason}"
        return f"  [{self.action.value.upper()}] {self.path.name}"

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "path": str(self.path),
            "action": self.action.value,
            "monitor": self.monitor,
        }
        if self.variant is not None:
            result["variant"] = self.variant.value
        if self.reason:
            result["reason"] = self.reason
        return result


@dataclass
class ReconcileReport:
    """Per-file outcomes of one reconciliation."""

    outcomes: List[FileOutcome] = field(default_factory=list)
    dry_run: bool = False

    def _with(self, action: ReconcileAction) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.action == action]

    @property
    def written(self) -> List[FileOutcome]:
        return self._with(ReconcileAction.WRITTEN)

    @property
    def unchanged(self) -> List[FileOutcome]:
        return self._with(ReconcileAction.UNCHANGED)

    @property
    def deleted(self) -> List[FileOutcome]:
        return self._with(ReconcileAction.DELETED)

    @property
    def failed(self) -> List[FileOutcome]:
        return self._with(ReconcileAction.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def outcome_for(self, path: Path) -> Optional[FileOutcome]:
        for outcome in self.outcomes:
            if outcome.path == path:
                return outcome
        return None

    def summary(self) -> str:
        prefix = "would write" if self.dry_run else "written"
        removed = "would delete" if self.dry_run else "deleted"
        return (
            f"{len(self.written)} {prefix}, {len(self.unchanged)} unchanged, "
            f"{len(self.deleted)} {removed}, {len(self.failed)} failed"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _read_existing(path: Path) -> Optional[bytes]:
    """Return current file content, or None when the file does not exist."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


def write_atomic(path: Path, content: bytes) -> None:
    """Write content to path via temp file + rename.

    The temp file lives in the destination directory so the rename stays on
    one filesystem. It is removed if anything fails before the rename.
    """
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.stem}-",
        suffix=".tmp",
    )

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)

    except Exception:
        if Path(temp_path).exists():
            os.unlink(temp_path)
        raise


def _reconcile_one(config: GeneratedConfig, dry_run: bool) -> FileOutcome:
    outcome = FileOutcome(path=config.path, action=ReconcileAction.UNCHANGED,
                          monitor=config.monitor, variant=config.variant)
    try:
        existing = _read_existing(config.path)
        if existing == config.content:
            logger.info("Unchanged: %s", config.path.name)
            return outcome

        if not dry_run:
            write_atomic(config.path, config.content)
        logger.info("%s: %s -> %s", "Would write" if dry_run else "Generated",
                    config.monitor, config.path.name)
        outcome.action = ReconcileAction.WRITTEN

    except OSError as e:
        logger.error("Failed to write %s: %s", config.path, e)
        outcome.action = ReconcileAction.FAILED
        outcome.reason = str(e)

    return outcome


def _collect_stale(
    output_dir: Path, kind: WindowManagerKind, desired_keys: set, dry_run: bool
) -> List[FileOutcome]:
    outcomes: List[FileOutcome] = []

    try:
        entries = sorted(output_dir.iterdir())
    except FileNotFoundError:
        return outcomes
    except OSError as e:
        logger.error("Failed to list %s: %s", output_dir, e)
        return [FileOutcome(path=output_dir, action=ReconcileAction.FAILED, reason=str(e))]

    for path in entries:
        parsed = parse_generated_name(kind, path.name)
        if parsed is None or parsed in desired_keys:
            continue

        monitor, variant = parsed
        outcome = FileOutcome(path=path, action=ReconcileAction.DELETED, monitor=monitor, variant=variant)
        try:
            if not path.is_file():
                continue
            if not dry_run:
                path.unlink()
            logger.info("%s stale config: %s", "Would delete" if dry_run else "Deleted", path.name)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.error("Failed to delete %s: %s", path, e)
            outcome.action = ReconcileAction.FAILED
            outcome.reason = str(e)
        outcomes.append(outcome)

    return outcomes


def reconcile(
    desired: Iterable[GeneratedConfig],
    output_dir: Path,
    kind: WindowManagerKind,
    dry_run: bool = False,
) -> ReconcileReport:
    """Write changed configs and remove stale ones.

    Args:
        desired: Configs that should exist after this run
        output_dir: Generated-configs directory
        kind: Window manager whose files are managed; other kinds are untouched
        dry_run: Report what would happen without touching the filesystem

    Returns:
        Report with one outcome per written, unchanged, deleted or failed file
    """
    desired = list(desired)
    report = ReconcileReport(dry_run=dry_run)

    if not dry_run:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Each write below will fail and be reported individually
            logger.error("Failed to create %s: %s", output_dir, e)

    for config in desired:
        report.outcomes.append(_reconcile_one(config, dry_run))

    desired_keys = {config.key for config in desired}
    report.outcomes.extend(_collect_stale(output_dir, kind, desired_keys, dry_run))

    logger.info("Reconciliation: %s", report.summary())
    return report
