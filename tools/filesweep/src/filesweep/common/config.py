from __future__ import annotations

import base64
import binascii
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, BeforeValidator, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_RETENTION_DAYS = 180


def _reject_bool(v: Any) -> Any:
    # YAML yes/true would otherwise coerce to 1
    if isinstance(v, bool):
        raise ValueError("must be an integer number of days, not a boolean")
    return v


RetentionDays = Annotated[int, BeforeValidator(_reject_bool), Field(ge=0)]


class LoggingCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    path: Path = Path("./logs/filesweep.log")
    max_bytes: int = Field(default=64 * 1024, gt=0)
    backups: int = Field(default=5, ge=0)


class RuleCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    pattern: str = Field(min_length=1)
    retention_days: RetentionDays


class EmailCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    smtp_host: str = Field(min_length=1)
    port: int = Field(default=587, ge=1, le=65535)
    from_address: str = Field(min_length=1)
    to_address: str = Field(min_length=1)
    credential: str  # base64 of the plaintext SMTP password
    use_tls: bool = True
    timeout_s: float | None = None

    def decoded_credential(self) -> str:
        try:
            return base64.b64decode(self.credential, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ConfigError(f"email.credential is not valid base64 text: {e}") from e


class AppCfg(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    root_path: Path
    rules: list[RuleCfg] = Field(default_factory=list)
    default_retention_days: RetentionDays = DEFAULT_RETENTION_DAYS
    email: EmailCfg

    @field_validator("root_path", mode="before")
    @classmethod
    def _root_not_blank(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("must not be empty")
        return v.strip() if isinstance(v, str) else v


def _element_fields(el: ET.Element) -> dict[str, Any]:
    # attributes and leaf children are interchangeable: <email port="25"/> == <email><port>25</port></email>
    fields: dict[str, Any] = dict(el.attrib)
    for child in el:
        fields[child.tag] = (child.text or "").strip()
    return fields


def _xml_to_dict(text: str) -> dict[str, Any]:
    root = ET.fromstring(text)
    data: dict[str, Any] = {}
    for child in root:
        if child.tag == "rules":
            data["rules"] = [_element_fields(r) for r in child if r.tag == "rule"]
        elif child.tag == "email":
            data["email"] = _element_fields(child)
        else:
            data[child.tag] = (child.text or "").strip()
    return data


def _describe(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "<root>"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)


def parse_config(text: str, fmt: Literal["yaml", "xml"] = "yaml") -> AppCfg:
    try:
        if fmt == "xml":
            data = _xml_to_dict(text)
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, ET.ParseError) as e:
        raise ConfigError(f"malformed {fmt} config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config must be a mapping, got {type(data).__name__}")

    try:
        return AppCfg.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config: {_describe(e)}") from e


def load_config(path: Path) -> AppCfg:
    if not path.is_file():
        raise ConfigError(f"config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    fmt: Literal["yaml", "xml"] = "xml" if path.suffix.lower() == ".xml" else "yaml"
    return parse_config(text, fmt)
