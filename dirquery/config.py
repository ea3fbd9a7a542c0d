from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from dirquery.contract_store import core_contracts
from dirquery.core.errors import ConfigError
from dirquery.fs.text import MAX_TEXT_BYTES, TEXT_EXTENSIONS


CONFIG_ENV = "DIRQUERY_CONFIG"
PREVIEW_CHARS = 500


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine knobs loaded from the user's YAML config file.

    allowed_roots only applies to the HTTP API; the CLI may query any directory
    the invoking user can read.
    """

    max_text_bytes: int = MAX_TEXT_BYTES
    preview_chars: int = PREVIEW_CHARS
    text_extensions: Tuple[str, ...] = tuple(sorted(TEXT_EXTENSIONS))
    allowed_roots: Tuple[str, ...] = ("~",)
    source: Optional[str] = field(default=None, compare=False)


def default_config_path() -> Path:
    """
    Default per-user config location.

    - If XDG_CONFIG_HOME is set, use it.
    - Else use ~/.config
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if isinstance(base, str) and base.strip():
        return Path(base).expanduser() / "dirquery" / "config.yml"
    return Path("~/.config").expanduser() / "dirquery" / "config.yml"


def config_from_dict(raw: Dict[str, Any], *, source: Optional[str] = None) -> EngineConfig:
    errors = core_contracts().validate("config.schema.json", raw)
    if errors:
        raise ConfigError(code="config.invalid", message="Config does not validate against config.schema.json", data={"errors": errors, "source": source})

    base = EngineConfig()
    exts = raw.get("text_extensions")
    roots = raw.get("allowed_roots")
    return EngineConfig(
        max_text_bytes=int(raw.get("max_text_bytes", base.max_text_bytes)),
        preview_chars=int(raw.get("preview_chars", base.preview_chars)),
        text_extensions=tuple(sorted({str(x).lower().lstrip(".") for x in exts})) if exts is not None else base.text_extensions,
        allowed_roots=tuple(str(x) for x in roots) if roots is not None else base.allowed_roots,
        source=source,
    )


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Resolve and load the engine config.

    Order: explicit path, then $DIRQUERY_CONFIG, then the XDG default.
    A missing default file yields built-in defaults; a missing explicit file is an error.
    """
    explicit = path or os.environ.get(CONFIG_ENV) or None
    p = Path(explicit).expanduser() if explicit else default_config_path()
    if not p.exists():
        if explicit:
            raise ConfigError(code="config.missing", message=f"Config file not found: {p}", data={"path": str(p)})
        return EngineConfig()

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(code="config.invalid_yaml", message=f"Config is not valid YAML: {p}", data={"error": str(e)}) from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(code="config.invalid", message="Config must be a YAML mapping", data={"path": str(p)})
    return config_from_dict(raw, source=str(p))


def render_default_config() -> str:
    # Keep in sync with contracts/schemas/config.schema.json.
    base = EngineConfig()
    return (
        "# dirquery engine config\n\n"
        "# Text search never reads files larger than this (bytes).\n"
        f"max_text_bytes: {base.max_text_bytes}\n\n"
        "# Characters of matching content kept as a preview.\n"
        f"preview_chars: {base.preview_chars}\n\n"
        "# Extensions text search is allowed to read.\n"
        f"text_extensions: [{', '.join(base.text_extensions)}]\n\n"
        "# Directories the HTTP API may query.\n"
        "allowed_roots:\n"
        "  - \"~\"\n"
    )
