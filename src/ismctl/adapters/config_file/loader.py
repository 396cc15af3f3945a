"""Load and validate the desired-state config file."""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ismctl.domain.model import ConfigValidationError

from .schema import RunConfigFile
from .translator import translate_run_config

if TYPE_CHECKING:
    from ismctl.domain.reconciliation import RunConfig

log = getLogger(__name__)


def _reject_duplicate_keys(pairs: list[tuple[str, object]]) -> dict[str, object]:
    result: dict[str, object] = {}
    duplicates: list[str] = []
    for key, value in pairs:
        if key in result:
            duplicates.append(key)
        result[key] = value
    if duplicates:
        raise ConfigValidationError([f"duplicate key: {key}" for key in sorted(set(duplicates))])
    return result


def parse_run_config(text: str) -> RunConfig:
    """Parse, validate and translate a JSON config document."""

    try:
        raw = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        raise ConfigValidationError([f"invalid JSON: {exc}"]) from exc

    try:
        document = RunConfigFile.model_validate(raw)
    except ValidationError as exc:
        raise ConfigValidationError(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ) from exc

    config = translate_run_config(document)
    config.validate()
    return config


def load_run_config(path: Path | str) -> RunConfig:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigValidationError([f"cannot read {config_path}: {exc}"]) from exc
    config = parse_run_config(text)
    log.info("Loaded %s targets from %s", len(config.targets), config_path)
    return config
