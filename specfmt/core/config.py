"""Wrap configuration, atomic span families and `.specfmt.yml` loading."""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import yaml  # type: ignore[import-not-found]
from jsonschema import Draft202012Validator  # type: ignore[import-not-found]
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as ModelValidationError

from .errors import ConfigError

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
SCHEMA_PATH = PACKAGE_ROOT / "schemas" / "specfmt-config.schema.json"
SPAN_FAMILIES_PATH = PACKAGE_ROOT / "schemas" / "span-families.yml"
CONFIG_NAMES = (".specfmt.yml", ".specfmt.yaml")
FAMILY_LISTS = ("span_families", "extra_span_families")

DEFAULT_WIDTH = 100
DEFAULT_TAB_WIDTH = 4

logger = logging.getLogger("specfmt.config")


class ScopeMode(str, Enum):
    FULL = "full"
    DIFF_SCOPED = "diff-scoped"


class SpanFamily(BaseModel):
    """A delimiter pair whose enclosed run must never be split across lines."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    open: str = Field(min_length=1)
    close: str = Field(min_length=1)
    escape: str | None = Field(None, min_length=1, max_length=1)
    quotes: str = ""
    match_run: bool = False
    follow: str | None = Field(
        None, description="Pattern the character after the opener must match"
    )

    @model_validator(mode="after")
    def _check_delimiters(self) -> "SpanFamily":
        if self.match_run and (
            len(set(self.open)) != 1 or len(set(self.close)) != 1
        ):
            raise ValueError(
                f"span family {self.name}: match_run needs single-character delimiters"
            )
        if self.follow is not None:
            try:
                re.compile(self.follow)
            except re.error as exc:
                raise ValueError(
                    f"span family {self.name}: invalid follow pattern: {exc}"
                ) from exc
        return self

    def follows(self, char: str) -> bool:
        if self.follow is None:
            return True
        return bool(char) and re.fullmatch(self.follow, char) is not None


@lru_cache(maxsize=1)
def _schema_validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def _error_location(payload: Any, path: Sequence[Any]) -> str:
    """Render a schema error path, naming the span family it points into."""
    if not path:
        return "top level"
    head, *rest = path
    where = str(head)
    if head in FAMILY_LISTS and rest and isinstance(rest[0], int):
        index = rest.pop(0)
        entry = payload[head][index]
        name = entry.get("name") if isinstance(entry, dict) else None
        where = f"{head}[{index}]" + (f" ({name})" if name else "")
    return ".".join([where, *(str(part) for part in rest)])


def _schema_errors(payload: Any, source: Path) -> list[str]:
    errors = sorted(
        _schema_validator().iter_errors(payload),
        key=lambda error: [str(part) for part in error.path],
    )
    return [
        f"{source}: {_error_location(payload, list(error.path))}: {error.message}"
        for error in errors
    ]


def load_config_payload(path: Path) -> dict[str, Any]:
    """Read a YAML config file and validate it against the packaged JSON schema."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config {path} is not valid YAML: {exc}") from exc
    errors = _schema_errors(data, path)
    if errors:
        raise ConfigError(f"Config {path} is invalid:\n" + "\n".join(errors))
    return data


def _families_from(entries: Iterable[Mapping[str, Any]]) -> tuple[SpanFamily, ...]:
    families = []
    for index, entry in enumerate(entries):
        try:
            families.append(SpanFamily(**entry))
        except ModelValidationError as exc:
            label = entry.get("name") or f"#{index}"
            raise ConfigError(f"Invalid span family {label}: {exc}") from exc
    return tuple(families)


@lru_cache(maxsize=1)
def default_span_families() -> tuple[SpanFamily, ...]:
    """Built-in families, shipped as data next to the config schema."""
    payload = load_config_payload(SPAN_FAMILIES_PATH)
    return _families_from(payload.get("span_families", []))


class WrapConfig(BaseModel):
    """Immutable settings for one formatting run."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(DEFAULT_WIDTH, ge=1)
    tab_width: int = Field(DEFAULT_TAB_WIDTH, ge=1)
    mode: ScopeMode = ScopeMode.DIFF_SCOPED
    span_families: tuple[SpanFamily, ...] = Field(
        default_factory=default_span_families
    )

    @property
    def diff_scoped(self) -> bool:
        return self.mode is ScopeMode.DIFF_SCOPED


def find_config_file(*directories: Path) -> Path | None:
    """Return the first `.specfmt.yml`/`.specfmt.yaml` found in `directories`."""
    for directory in directories:
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def build_config(
    payload: Mapping[str, Any] | None = None, **overrides: Any
) -> WrapConfig:
    """Merge a validated config payload with explicit overrides.

    Overrides whose value is ``None`` are ignored so CLI flags that were not given
    fall through to the file, and then to the model defaults.
    """
    payload = dict(payload or {})
    values: dict[str, Any] = {}
    for key in ("width", "tab_width", "mode"):
        if key in payload:
            values[key] = payload[key]

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    try:
        if "span_families" not in values:
            families = (
                _families_from(payload["span_families"])
                if "span_families" in payload
                else default_span_families()
            )
            families += _families_from(payload.get("extra_span_families", []))
            values["span_families"] = families
        config = WrapConfig(**values)
    except ModelValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    logger.debug(
        "config: width=%s tab_width=%s mode=%s families=%s",
        config.width,
        config.tab_width,
        config.mode.value,
        ",".join(family.name for family in config.span_families),
    )
    return config
