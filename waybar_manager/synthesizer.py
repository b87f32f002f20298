"""Config synthesizer: instantiate a template variant for one monitor."""

import copy
import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .errors import SubstitutionError
from .models import (
    OUTPUT_FIELD,
    SENTINEL,
    GeneratedConfig,
    Monitor,
    Variant,
    VariantName,
    WindowManagerKind,
)
from .template_parser import sentinel_count


def serialize(body: Dict[str, Any]) -> bytes:
    """Serialize a configuration object deterministically.

    Keys keep their template order; indentation and trailing newline are fixed.
    """
    return (json.dumps(body, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def generated_config_path(
    output_dir: Path, kind: WindowManagerKind, monitor: str, variant: VariantName
) -> Path:
    """Return ``<output_dir>/<kind>_<monitor>_<variant>.json``."""
    return output_dir / f"{kind.value}_{monitor}_{variant.value}.json"


def parse_generated_name(kind: WindowManagerKind, filename: str) -> Optional[Tuple[str, VariantName]]:
    """Reverse generated_config_path for one window manager kind.

    Returns:
        (monitor, variant) or None when the name belongs to another kind or
        is not a generated file
    """
    pattern = rf"^{re.escape(kind.value)}_(?P<monitor>.+)_(?P<variant>full|simple)\.json$"
    match = re.match(pattern, filename)
    if not match:
        return None
    return match.group("monitor"), VariantName(match.group("variant"))


def _substitute(value: Any, monitor: str) -> Any:
    if isinstance(value, str):
        return monitor
    return [monitor if item == SENTINEL else item for item in value]


def synthesize(
    variant: Variant, monitor: Monitor, kind: WindowManagerKind, output_dir: Path
) -> GeneratedConfig:
    """Produce the configuration file for one (monitor, variant) pair.

    Only the sentinel inside the ``output`` field is replaced; every other
    field is copied untouched.

    Raises:
        SubstitutionError: Sentinel not present in the variant
    """
    body = copy.deepcopy(variant.body)

    if sentinel_count(body.get(OUTPUT_FIELD)) != 1:
        raise SubstitutionError(variant.name.value, monitor.name)

    body[OUTPUT_FIELD] = _substitute(body[OUTPUT_FIELD], monitor.name)

    return GeneratedConfig(
        kind=kind,
        monitor=monitor.name,
        variant=variant.name,
        path=generated_config_path(output_dir, kind, monitor.name, variant.name),
        content=serialize(body),
    )
