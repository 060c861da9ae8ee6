# === FILE: virgo/config.py ===
"""
Loading and validation of the request options shared by one fetch run.
Pydantic describes the schema and checks the data.
"""
from __future__ import annotations

import errno
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["FetchOptions", "load_options", "DEFAULT_CONFIG"]

# RFC 7230 token
METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class FetchOptions(BaseModel):
    """Request-shaping options for one dispatch run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: str = Field("GET", min_length=1, description="HTTP method for every request.")
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers, applied after User-Agent/Cookie so they can override them.",
    )
    body: bytes = Field(b"", description="Request body sent with every request.")
    user_agent: str = Field("", description="User-Agent header, empty means unset.")
    cookie: str = Field("", description="Cookie header, empty means unset.")
    timeout_ms: int = Field(60000, gt=0, description="Per-request timeout in milliseconds.")
    concurrency: int = Field(8, ge=1, description="Number of concurrent workers.")
    follow_redirects: bool = Field(False, description="Follow HTTP 30x responses.")

    @field_validator("method")
    def _method_token(cls, v: str) -> str:
        method = v.strip().upper()
        if not METHOD_RE.match(method):
            raise ValueError(f"not an HTTP method token: {v!r}")
        return method

    @field_validator("headers", mode="before")
    def _headers_to_str(cls, v: Any) -> Any:
        # YAML happily produces ints and bools as header values
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @property
    def timeout(self) -> float:
        """Timeout in seconds, the unit the transport works with."""
        return self.timeout_ms / 1000

    def with_timeout(self, timeout_ms: int) -> FetchOptions:
        """Return a copy where only the timeout is replaced."""
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")
        return self.model_copy(update={"timeout_ms": timeout_ms})


DEFAULT_CONFIG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_options(path: Union[str, Path, None]) -> FetchOptions:
    """
    Read YAML or JSON and return validated FetchOptions.

    With ``path=None`` the default config is used when it exists, otherwise
    the built-in defaults. An explicit path that does not exist raises
    FileNotFoundError.
    """
    if path is None:
        if not DEFAULT_CONFIG.exists():
            return FetchOptions()
        path_obj = DEFAULT_CONFIG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return FetchOptions(**data)
