"""Top-level entry points."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from fertility_engine.config import EngineConfig, load_config
from fertility_engine.models import EngineMode, RawInput
from fertility_engine.orchestrator import EngineOrchestrator, OrchestrationOptions, OrchestrationSuccess

logger = logging.getLogger(__name__)


def load_raw_input(source: RawInput | Mapping[str, Any] | str | Path) -> RawInput:
    """Build a RawInput from a mapping or a JSON/YAML file.

    Parameters
    ----------
    source : RawInput | Mapping | str | Path
        An existing RawInput (returned unchanged), a mapping of fields, or
        a path to a ``.json``, ``.yaml`` or ``.yml`` file.

    Returns
    -------
    RawInput

    Raises
    ------
    FileNotFoundError
        If *source* is a path that does not exist.
    ValueError
        If the file does not contain a mapping or has an unknown suffix.
    """
    if isinstance(source, RawInput):
        return source
    if isinstance(source, Mapping):
        return RawInput.from_dict(source)

    path = Path(source)
    if not path.is_file():
        msg = f"Input file not found: {path}"
        raise FileNotFoundError(msg)
    with open(path, encoding="utf-8") as fh:
        if path.suffix == ".json":
            data = json.load(fh)
        elif path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(fh)
        else:
            msg = f"Unsupported input format {path.suffix!r}; expected .json, .yaml or .yml"
            raise ValueError(msg)
    if not isinstance(data, dict):
        msg = f"Input file {path} must contain a mapping"
        raise ValueError(msg)
    logger.debug("Loaded input snapshot from %s", path)
    return RawInput.from_dict(data)


def evaluate(
    source: RawInput | Mapping[str, Any] | str | Path,
    mode: EngineMode | str | None = None,
    options: OrchestrationOptions | None = None,
    config: EngineConfig | str | Path | dict[str, Any] | None = None,
) -> OrchestrationSuccess:
    """Evaluate one clinical snapshot end to end.

    Parameters
    ----------
    source : RawInput | Mapping | str | Path
        Input snapshot; see :func:`load_raw_input`.
    mode : EngineMode | str | None
        Engine selection mode, the configured default when ``None``.
    options : OrchestrationOptions | None
        Debug and overlay switches.
    config : EngineConfig | str | Path | dict | None
        Configuration object or anything :func:`load_config` accepts.

    Returns
    -------
    OrchestrationSuccess
        Evaluation state and engine metrics.

    Raises
    ------
    DualEngineFailure
        If both engines failed.
    """
    if not isinstance(config, EngineConfig):
        config = load_config(config)
    raw = load_raw_input(source)
    return EngineOrchestrator(config=config).evaluate(raw, mode, options)
