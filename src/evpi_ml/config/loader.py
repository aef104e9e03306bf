"""
Configuration loading and merging logic.

Layers, lowest priority first:
1. DEFAULT_EVPI_CONFIG (config/defaults.py)
2. A YAML file, optionally extending another through ``_base``
3. Dot-notation overrides from the CLI (simulation.n_sim=500)

The merged dict is validated by the pydantic schema.
"""

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from evpi_ml.config.defaults import DEFAULT_EVPI_CONFIG
from evpi_ml.config.schema import EVPIConfig


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """New dict with *overlay* merged into *base*; sections merge, leaves are replaced."""
    merged = dict(base)
    for key, value in overlay.items():
        both_sections = isinstance(merged.get(key), dict) and isinstance(value, dict)
        merged[key] = _deep_merge(merged[key], value) if both_sections else value
    return merged


def load_yaml(file_path: str | Path, _chain: tuple[Path, ...] = ()) -> dict[str, Any]:
    """Load a YAML config, resolving ``_base`` inheritance.

    ``_base`` names another YAML file relative to this one. It is loaded first
    and this file's values are deep-merged on top; bases may chain.

    Raises:
        FileNotFoundError: If the file (or a base) does not exist
        ValueError: If the ``_base`` chain loops back on itself
    """
    file_path = Path(file_path).resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    if file_path in _chain:
        loop = " -> ".join(str(p.name) for p in (*_chain, file_path))
        raise ValueError(f"Circular _base inheritance: {loop}")

    with open(file_path) as f:
        config_dict = yaml.safe_load(f) or {}

    base_ref = config_dict.pop("_base", None)
    if base_ref is None:
        return config_dict

    base_dict = load_yaml(file_path.parent / base_ref, (*_chain, file_path))
    return _deep_merge(base_dict, config_dict)


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: Path
) -> dict[str, Any]:
    """
    Resolve a relative ``data.infile`` against the config file's directory.

    Args:
        config_dict: Configuration dictionary
        config_file: Path to the config file

    Returns:
        Config dict with the input path resolved
    """
    resolved = copy.deepcopy(config_dict)
    data = resolved.get("data")
    if isinstance(data, dict) and isinstance(data.get("infile"), str):
        path = Path(data["infile"])
        if not path.is_absolute():
            data["infile"] = str(Path(config_file).resolve().parent / path)
    return resolved


# Keys that should always be lists
LIST_KEYS = {
    "predictors",
    "categorical",
    "values",
    "report_points",
}

# Keys that should always be strings (not parsed as int/float)
STRING_KEYS = {
    "outcome",
    "infile",
    "method",
    "solver",
}


def _set_dotted(config_dict: dict[str, Any], key_path: str, value: Any):
    """Set ``a.b.c`` in a nested dict, creating (or replacing non-dict) sections."""
    *sections, leaf = key_path.strip().split(".")
    node = config_dict
    for section in sections:
        if not isinstance(node.get(section), dict):
            node[section] = {}
        node = node[section]
    node[leaf] = value


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply CLI overrides to config dictionary (in place).

    Supports dot-notation for nested keys:
        simulation.n_sim=500 -> config_dict['simulation']['n_sim'] = 500
        thresholds.report_points=0.1,0.2 -> [0.1, 0.2]

    Later overrides win over earlier ones.

    Args:
        config_dict: Base configuration dictionary
        overrides: List of "key=value" or "nested.key=value" strings

    Returns:
        Updated config dictionary
    """
    for override in overrides:
        key_path, sep, raw = override.partition("=")
        if not sep:
            raise ValueError(f"Invalid override format: {override}. Expected 'key=value'")

        leaf = key_path.strip().rsplit(".", 1)[-1]
        value = _parse_value(
            raw.strip(),
            force_list=leaf in LIST_KEYS,
            force_string=leaf in STRING_KEYS,
        )
        _set_dotted(config_dict, key_path, value)

    return config_dict


_NONE_TOKENS = {"none", "null"}
_BOOL_TOKENS = {"true": True, "yes": True, "false": False, "no": False}


def _parse_number(token: str) -> int | float | str:
    """int if possible, else float, else the token unchanged."""
    for cast in (int, float):
        try:
            return cast(token)
        except ValueError:
            continue
    return token


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Parse an override value.

    "none"/"null" give None; "true"/"yes" and "false"/"no" give booleans
    (not for list keys, and "1"/"0" stay integers); comma-separated values
    give a list of numbers or strings; otherwise int, float or the raw string.

    Args:
        value_str: String to parse
        force_list: Always return a list (for comma-separated or single values)
        force_string: Return the string as-is (column names, paths)
    """
    if force_string:
        return value_str

    lowered = value_str.lower()
    if lowered in _NONE_TOKENS:
        return None
    if not force_list and lowered in _BOOL_TOKENS:
        return _BOOL_TOKENS[lowered]

    if force_list or "," in value_str:
        return [_parse_number(tok.strip()) for tok in value_str.split(",") if tok.strip()]

    return _parse_number(value_str)


def load_evpi_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> EVPIConfig:
    """
    Load EVPI configuration from defaults, an optional YAML file and CLI overrides.

    Args:
        config_file: Path to YAML config file (optional)
        overrides: List of CLI overrides in "key=value" format (optional)

    Returns:
        Validated EVPIConfig instance

    Raises:
        ValueError: If the merged configuration fails schema validation
    """
    config_dict = copy.deepcopy(DEFAULT_EVPI_CONFIG)

    if config_file is not None:
        config_file_path = Path(config_file)
        file_config = load_yaml(config_file_path)
        file_config = resolve_paths_relative_to_config(file_config, config_file_path)
        config_dict = _deep_merge(config_dict, file_config)

    if overrides:
        config_dict = apply_overrides(config_dict, overrides)

    try:
        return EVPIConfig(**config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid EVPI configuration:\n{e}") from e


def save_config(config: EVPIConfig, output_path: str | Path):
    """Save resolved configuration to YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode="json")

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
