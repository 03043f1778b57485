from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

SUPPORTED_DIALECTS = ("mysql", "sqlite")


@dataclass
class Settings:
    delimiter: str = ","
    value_separator: str = ";"
    encoding: str = "utf-8"
    dialect: str = "mysql"
    db_path: Path = Path("molecules.db")
    manifest_path: Path = Path("last_import.json")


def _env(name: str, default: str) -> str:
    value = os.getenv(f"MOLECULE_IMPORT_{name}")
    return value if value not in (None, "") else default


def _validate(settings: Settings) -> Settings:
    if len(settings.delimiter) != 1:
        raise ValueError(f"CSV delimiter must be a single character, got {settings.delimiter!r}")
    if not settings.value_separator:
        raise ValueError("In-cell value separator cannot be empty")
    if settings.value_separator == settings.delimiter:
        raise ValueError("In-cell value separator must differ from the CSV delimiter")
    if settings.dialect not in SUPPORTED_DIALECTS:
        raise ValueError(f"Unsupported dialect {settings.dialect!r}; expected one of {SUPPORTED_DIALECTS}")
    return settings


def load_yaml_overrides(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse YAML config at {path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {path}")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return data


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> Settings:
    """Environment (and ``.env``) first, then the YAML file, then explicit overrides."""

    settings = Settings(
        delimiter=_env("DELIMITER", ","),
        value_separator=_env("VALUE_SEPARATOR", ";"),
        encoding=_env("ENCODING", "utf-8"),
        dialect=_env("DIALECT", "mysql").lower(),
        db_path=Path(_env("DB_PATH", "molecules.db")),
        manifest_path=Path(_env("MANIFEST_PATH", "last_import.json")),
    )

    values: Dict[str, Any] = {}
    if config_path is not None:
        values.update(load_yaml_overrides(config_path))
    values.update({k: v for k, v in overrides.items() if v is not None})

    for key in ("db_path", "manifest_path"):
        if key in values:
            values[key] = Path(values[key])
    if "dialect" in values:
        values["dialect"] = str(values["dialect"]).lower()

    return _validate(replace(settings, **values))
