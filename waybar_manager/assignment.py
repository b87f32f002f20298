"""Monitor assignment policy: which monitor gets the full bar.

Policy:
- One monitor: it gets ``full`` whatever the preferred setting says.
- Several monitors: the preferred one gets ``full``, the rest ``simple``.
- Preferred monitor not connected (or unset): the first monitor in
  enumeration order gets ``full`` and the plan is flagged as a fallback.
"""

import logging
from typing import List, Sequence

from .errors import EmptyMonitorSetError
from .models import Assignment, AssignmentPlan, DisplayMode, DisplaySettings, Monitor, VariantName

logger = logging.getLogger(__name__)


def assign(monitors: Sequence[Monitor], preferred: str) -> AssignmentPlan:
    """Assign a variant to every monitor.

    Args:
        monitors: Connected monitors in enumeration order
        preferred: Preferred monitor name from the settings

    Returns:
        Plan with exactly one full assignment

    Raises:
        EmptyMonitorSetError: No monitors given
    """
    if not monitors:
        raise EmptyMonitorSetError()

    if len(monitors) == 1:
        return AssignmentPlan(
            assignments=[Assignment(monitor=monitors[0], variant=VariantName.FULL)],
            preferred=preferred,
        )

    names = [m.name for m in monitors]
    fallback_used = preferred not in names
    full_name = names[0] if fallback_used else preferred

    if fallback_used:
        logger.info(
            "Preferred monitor %r is not connected, using %s for the full bar",
            preferred, full_name,
        )

    assignments = [
        Assignment(
            monitor=m,
            variant=VariantName.FULL if m.name == full_name else VariantName.SIMPLE,
        )
        for m in monitors
    ]
    return AssignmentPlan(assignments=assignments, preferred=preferred, fallback_used=fallback_used)


def select_monitors(monitors: Sequence[Monitor], display: DisplaySettings) -> List[Monitor]:
    """Restrict the connected monitors according to the display mode.

    In single mode only the preferred monitor is kept, or the first
    connected one when the preferred monitor is missing.
    """
    if not monitors:
        raise EmptyMonitorSetError()

    if display.mode != DisplayMode.SINGLE:
        return list(monitors)

    for m in monitors:
        if m.name == display.preferred_monitor:
            return [m]

    logger.info("Preferred monitor not available, using the first one detected (%s)", monitors[0].name)
    return [monitors[0]]
