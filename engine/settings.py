"""
Run settings loaded from a YAML file.

A settings file lets a team check in the options they migrate with
instead of repeating them on every invocation. Command-line flags
override values from the file.

Example::

    source_version: v4
    target_version: v5
    resources: [cloudflare_record, cloudflare_argo]
    recursive: true
    backup: true
    validate_output: true
"""

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

import yaml

from engine.exceptions import SettingsError
from engine.utils.string_utils import split_csv

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """
    Options for one migration run.

    Args:
        source_version: Schema generation migrated from
        target_version: Schema generation migrated to
        resources: Only migrate these source resource types (all when empty)
        recursive: Search sub-directories for ``.tf`` files
        backup: Keep a ``.backup`` copy of every rewritten file
        validate_output: Re-parse rendered configuration with python-hcl2
    """

    source_version: str = "v4"
    target_version: str = "v5"
    resources: List[str] = field(default_factory=list)
    recursive: bool = False
    backup: bool = True
    validate_output: bool = True

    def merged(self, **overrides: Any) -> "Settings":
        """Return a copy with every override that is not None applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def wants(self, type_name: str) -> bool:
        """True when ``type_name`` passes the resource filter."""
        return not self.resources or type_name in self.resources


SETTING_NAMES = tuple(f.name for f in fields(Settings))


def settings_from_dict(data: Optional[Dict[str, Any]]) -> Settings:
    """
    Build Settings from parsed YAML.

    Raises:
        SettingsError: On unknown keys or values of the wrong type
    """
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise SettingsError("Settings file must contain a mapping")
    unknown = sorted(set(data) - set(SETTING_NAMES))
    if unknown:
        raise SettingsError("Unknown settings", {"keys": ", ".join(unknown)})

    values = dict(data)
    resources = values.get("resources")
    if isinstance(resources, str) or resources is None:
        values["resources"] = split_csv(resources)
    elif not isinstance(resources, list):
        raise SettingsError("resources must be a list", {"value": resources})
    for name in ("recursive", "backup", "validate_output"):
        if name in values and not isinstance(values[name], bool):
            raise SettingsError(f"{name} must be true or false", {"value": values[name]})
    for name in ("source_version", "target_version"):
        if name in values:
            values[name] = str(values[name])
    return Settings(**values)


def load_settings(path: str) -> Settings:
    """
    Read settings from a YAML file.

    Args:
        path: Path to the settings file

    Returns:
        Parsed Settings

    Raises:
        SettingsError: If the file is missing, is not valid YAML or has bad keys
    """
    try:
        with open(path, "r") as file:
            data = yaml.safe_load(file)
    except OSError as e:
        raise SettingsError("Cannot read settings file", {"path": path, "error": str(e)}) from e
    except yaml.YAMLError as e:
        raise SettingsError("Settings file is not valid YAML", {"path": path}) from e
    logger.debug("Loaded settings from %s", path)
    return settings_from_dict(data)
