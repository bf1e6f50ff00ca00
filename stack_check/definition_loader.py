"""Load stack definitions from YAML files."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from stack_check.models.definition import StackDefinition


async def load_stack_definition(path: Path) -> StackDefinition:
    """Load and validate a stack definition file.

    Relative compose file paths are resolved against the directory holding
    the definition, so a definition can live next to its compose files.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Stack definition not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty stack definition: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Invalid stack definition schema in {path}: not a mapping")

    base_dir = path.parent
    compose_files = data.get("compose_files")
    if isinstance(compose_files, list):
        data["compose_files"] = [base_dir / str(file) for file in compose_files]

    try:
        return StackDefinition.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid stack definition schema in {path}: {e}") from e
