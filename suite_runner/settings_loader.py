"""Load run settings from YAML files."""

import asyncio
from pathlib import Path

import yaml
from pydantic import ValidationError

from suite_runner.models.config import RunConfiguration


async def load_run_configuration(path: Path) -> RunConfiguration:
    """Load and validate a run settings file.

    Args:
        path: Path to a YAML file whose keys are RunConfiguration fields

    Returns:
        Parsed run configuration

    Raises:
        FileNotFoundError: If the settings file does not exist
        ValueError: If the file is empty, not valid YAML or does not match
            the settings schema

    """
    if not path.is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")

    content = await asyncio.to_thread(path.read_text, encoding="utf-8")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        raise ValueError(f"Empty settings file: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")

    try:
        return RunConfiguration.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema in {path}: {exc}") from exc
