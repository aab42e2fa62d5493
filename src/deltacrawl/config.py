"""Crawler settings.

Values are read, highest priority first, from explicit overrides, a config
file (Java-style ``config.properties`` or YAML), ``DELTACRAWL_*`` environment
variables and a ``.env`` file.
"""

import logging
import re
from pathlib import Path
from typing import Annotated, Any

import httpx
import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from deltacrawl.exceptions import ConfigurationError
from deltacrawl.models import FilterConfig

logger = logging.getLogger(__name__)

# Separates items of list-valued settings (paths, extensions, replace pairs)
LIST_DELIMITER = "|"

# Separates the oldPath|newPath pairs of pathsToReplace
REPLACE_DELIMITER = "*"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

DEFAULT_EXTENSIONS = [
    "htm", "html", "xml", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "pdf", "txt", "odm", "odp", "ods", "odt", "rtf", "java",
]

DEFAULT_MAX_FILE_SIZE = 16 * 1024 * 1024

# Keys used in config.properties, mapped to field names
PROPERTY_KEYS = {
    "paths": "paths",
    "solrURI": "solr_uri",
    "contentType": "content_type",
    "debug": "debug",
    "extensions": "extensions",
    "maxFileSize": "max_file_size",
    "pathsToReplace": "paths_to_replace",
    "deltaFile": "delta_file",
    "sinkTimeout": "sink_timeout",
}

OPTIONAL_SETTINGS = [
    "content_type", "debug", "extensions", "max_file_size", "paths_to_replace",
]


class Settings(BaseSettings):
    # Crawl roots and target
    paths: Annotated[list[str], NoDecode]
    solr_uri: str

    # Push options
    content_type: str = DEFAULT_CONTENT_TYPE
    sink_timeout: float | None = 120.0

    # Filtering
    extensions: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS)
    )
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, ge=0)
    paths_to_replace: Annotated[list[tuple[str, str]], NoDecode] = Field(default_factory=list)

    # State
    delta_file: Path = Path("files.delta")

    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DELTACRAWL_",
        extra="ignore",
        frozen=True,
    )

    @field_validator("paths", "extensions", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(LIST_DELIMITER) if part.strip()]
        return value

    @field_validator("paths")
    @classmethod
    def _require_paths(cls, value: list[str]) -> list[str]:
        paths = [p.strip() for p in value if p.strip()]
        if not paths:
            raise ValueError("No paths found to crawl")
        return paths

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lstrip(".").lower()
            if ext and ext not in normalized:
                normalized.append(ext)
        return normalized

    @field_validator("solr_uri")
    @classmethod
    def _check_solr_uri(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("No Solr URI found")
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"Malformed Solr URI {value!r}: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"Solr URI must be an absolute http(s) URI, got {value!r}")
        return value.rstrip("/")

    @field_validator("paths_to_replace", mode="before")
    @classmethod
    def _split_replace_pairs(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return list(value.items())
        if isinstance(value, str):
            pairs = []
            for chunk in value.split(REPLACE_DELIMITER):
                if not chunk.strip():
                    continue
                parts = chunk.split(LIST_DELIMITER)
                if len(parts) != 2:
                    raise ValueError(
                        f"Expected oldPath{LIST_DELIMITER}newPath, got {chunk!r}"
                    )
                pairs.append((parts[0], parts[1]))
            return pairs
        return value

    @field_validator("paths_to_replace")
    @classmethod
    def _require_match_text(cls, value: list[tuple[str, str]]) -> list[tuple[str, str]]:
        for old, _ in value:
            if not old:
                raise ValueError("Path to replace must not be empty")
        return value

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            extensions=frozenset(self.extensions),
            max_file_size=self.max_file_size,
            remap_table=tuple(self.paths_to_replace),
        )


_PROPERTY_LINE = re.compile(r"^((?:\\.|[^\\=:\s])+)\s*[=:]?\s*(.*)$")
_PROPERTY_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)")
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(text: str) -> str:
    def replace(match: re.Match) -> str:
        token = match.group(1)
        if len(token) == 5:
            return chr(int(token[1:], 16))
        return _ESCAPES.get(token, token)

    return _PROPERTY_ESCAPE.sub(replace, text)


def read_properties(path: Path) -> dict[str, str]:
    """Parse a Java .properties file into a flat dict (comments, escapes, continuations)."""
    values: dict[str, str] = {}
    pending = ""

    with open(path, encoding="utf-8") as f:
        lines = [raw.rstrip("\r\n") for raw in f]

    for raw in lines + [""]:
        line = raw.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        logical, pending = pending + line, ""
        match = _PROPERTY_LINE.match(logical)
        if match:
            values[_unescape(match.group(1))] = _unescape(match.group(2))

    return values


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a config file and map its keys onto Settings field names."""
    path = Path(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Expected a mapping at the top of {path}")
    else:
        raw = read_properties(path)

    return {PROPERTY_KEYS.get(key, key): value for key, value in raw.items()}


def _describe(error: ValidationError, source: str) -> str:
    problems = []
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"]) or "settings"
        if item["type"] == "missing":
            problems.append(
                f"Property {name} wasn't found in {source}. "
                "This value is mandatory for this application."
            )
        else:
            problems.append(f"Invalid value for {name}: {item['msg']}")
    return " ".join(problems)


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Build validated Settings or raise ConfigurationError."""
    values: dict[str, Any] = {}
    source = "the environment"

    if config_file is not None:
        path = Path(config_file)
        try:
            values = read_config_file(path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Couldn't read {path}. ({e})") from e
        source = path.name

    values.update(overrides)

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(_describe(e, source)) from e

    for name in OPTIONAL_SETTINGS:
        if name not in settings.model_fields_set:
            logger.info(f"Property {name} wasn't found in {source}. Default property will be used.")

    for old, new in settings.paths_to_replace:
        logger.debug(f"Replacing path {old} with {new}.")

    return settings
