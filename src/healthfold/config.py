"""Configuration management for healthfold.

Handles loading and generating TOML config files that pick the output
layout and the policy for malformed records. Command-line flags override
whatever the file sets.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path

from healthfold.emit import KEY_ORDERS
from healthfold.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "healthfold.toml"

MODES = ("fixed", "schemaless")

DEFAULT_CONFIG_TEMPLATE = """\
# healthfold configuration
# Command-line flags override these values.

[export]
# "fixed": nine named columns, unknown attributes dropped (recommended).
# "schemaless": columns taken from the first record's attributes. Rows are
#   not realigned, so records with other attributes produce shifted columns.
mode = "fixed"

# Fixed mode only. false: skip records missing type/sourceName/startDate/endDate
# with a warning. true: stop the whole run at the first such record.
strict = false

# Schema-less mode only. "sorted" or "document" (source attribute order).
key_order = "sorted"

# Parse export.xml incrementally instead of loading it into memory first.
stream = false
"""


@dataclass
class ExportConfig:
    """Settings for one conversion run."""

    mode: str = "fixed"
    strict: bool = False
    key_order: str = "sorted"
    stream: bool = False

    def validate(self) -> ExportConfig:
        if self.mode not in MODES:
            raise ConfigError(f"mode must be one of {', '.join(MODES)}, got {self.mode!r}")
        if self.key_order not in KEY_ORDERS:
            raise ConfigError(
                f"key_order must be one of {', '.join(KEY_ORDERS)}, got {self.key_order!r}"
            )
        for name in ("strict", "stream"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        return self

    def override(self, **values) -> ExportConfig:
        """Return a copy with every non-None value applied."""
        changes = {k: v for k, v in values.items() if v is not None}
        return replace(self, **changes).validate()


def load_config(config_path: str | None = None) -> ExportConfig:
    """Load configuration from a TOML file.

    With no path the defaults are returned; no file is looked up implicitly.
    A path that doesn't exist falls back to defaults with a warning. Only
    the ``[export]`` table is read; unknown keys are ignored.

    Raises ConfigError if the file isn't valid TOML or a value is invalid.
    """
    if config_path is None:
        return ExportConfig()

    path = Path(config_path)
    if not path.exists():
        logger.warning(
            "Config file '%s' not found, using defaults. "
            "Run 'healthfold --init-config %s' to generate one.",
            config_path, config_path,
        )
        return ExportConfig()

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    section = raw.get("export", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[export] in {path} must be a table")

    known = {f.name for f in fields(ExportConfig)}
    for key in sorted(set(section) - known):
        logger.debug("Ignoring unknown config key export.%s", key)

    config = ExportConfig(**{k: v for k, v in section.items() if k in known})
    logger.debug("Loaded config from %s: %s", path, config)
    return config.validate()


def write_default_config(config_path: str = DEFAULT_CONFIG_PATH) -> str:
    """Write the commented default config and return its path.

    Refuses to overwrite an existing file.
    """
    path = Path(config_path)
    if path.exists():
        raise ConfigError(f"Config file already exists: {config_path}")
    path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return config_path
