from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from filesweep.common.config import AppCfg, load_config, parse_config
from filesweep.common.errors import ConfigError

YAML_CFG = """
root_path: /srv/share
rules:
  - pattern: "logs/*"
    retention_days: 30
  - pattern: "tmp/*"
    retention_days: 0
email:
  smtp_host: smtp.example.com
  port: 2525
  from_address: sweeper@example.com
  to_address: ops@example.com
  credential: aHVudGVyMg==
"""

XML_CFG = """<?xml version="1.0"?>
<filesweep>
  <root_path>/srv/share</root_path>
  <email smtp_host="smtp.example.com" port="2525" credential="aHVudGVyMg==">
    <from_address>sweeper@example.com</from_address>
    <to_address>ops@example.com</to_address>
  </email>
  <rules>
    <rule pattern="logs/*" retention_days="30" />
    <rule pattern="tmp/*" retention_days="0" />
  </rules>
</filesweep>
"""


def write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_yaml_config_loads(tmp_path: Path) -> None:
    cfg = load_config(write(tmp_path, "c.yaml", YAML_CFG))
    assert cfg.root_path == Path("/srv/share")
    assert [(r.pattern, r.retention_days) for r in cfg.rules] == [("logs/*", 30), ("tmp/*", 0)]
    assert cfg.default_retention_days == 180
    assert cfg.email.port == 2525
    assert cfg.email.use_tls is True
    assert cfg.email.decoded_credential() == "hunter2"


def test_xml_and_yaml_are_equivalent(tmp_path: Path) -> None:
    from_yaml = load_config(write(tmp_path, "c.yaml", YAML_CFG))
    from_xml = load_config(write(tmp_path, "c.xml", XML_CFG))
    assert from_xml == from_yaml


def test_config_is_immutable() -> None:
    cfg = parse_config(YAML_CFG)
    with pytest.raises(ValidationError):
        cfg.root_path = Path("/elsewhere")  # type: ignore[misc]


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text,fmt",
    [
        ("root_path: [unclosed", "yaml"),
        ("<filesweep><root_path>", "xml"),
        ("- just\n- a list\n", "yaml"),
    ],
)
def test_malformed_documents(text: str, fmt: str) -> None:
    with pytest.raises(ConfigError):
        parse_config(text, fmt)  # type: ignore[arg-type]


@pytest.mark.parametrize("days", ["-1", "1.5", "soon", "true", "yes"])
def test_rule_days_must_be_non_negative_integer(days: str) -> None:
    text = YAML_CFG.replace("retention_days: 30", f"retention_days: {days}")
    with pytest.raises(ConfigError, match="retention_days"):
        parse_config(text)


def test_missing_email_section_is_reported() -> None:
    with pytest.raises(ConfigError, match="email"):
        parse_config("root_path: /srv\nrules: []\n")


def test_bad_base64_credential() -> None:
    cfg = parse_config(YAML_CFG.replace("aHVudGVyMg==", "not base64!!"))
    with pytest.raises(ConfigError, match="base64"):
        cfg.email.decoded_credential()


def test_credential_must_decode_to_text() -> None:
    cfg = parse_config(YAML_CFG.replace("aHVudGVyMg==", "/w=="))
    with pytest.raises(ConfigError):
        cfg.email.decoded_credential()


def test_example_configs_are_valid() -> None:
    configs = Path(__file__).resolve().parents[1] / "configs"
    yaml_cfg = load_config(configs / "filesweep.example.yaml")
    xml_cfg = load_config(configs / "filesweep.example.xml")
    assert isinstance(yaml_cfg, AppCfg)
    assert yaml_cfg == xml_cfg


@pytest.mark.parametrize("root", ['""', '"   "', "null"])
def test_blank_yaml_root_path_is_rejected(root: str) -> None:
    with pytest.raises(ConfigError, match="root_path"):
        parse_config(YAML_CFG.replace("root_path: /srv/share", f"root_path: {root}"))


def test_blank_xml_root_path_is_rejected() -> None:
    text = XML_CFG.replace("<root_path>/srv/share</root_path>", "<root_path>  </root_path>")
    with pytest.raises(ConfigError, match="root_path"):
        parse_config(text, "xml")


def test_root_path_is_stripped() -> None:
    cfg = parse_config(XML_CFG.replace("<root_path>/srv/share</root_path>", "<root_path>\n  /srv/share\n</root_path>"), "xml")
    assert cfg.root_path == Path("/srv/share")


def test_boolean_default_days_is_rejected() -> None:
    with pytest.raises(ConfigError, match="default_retention_days"):
        parse_config(YAML_CFG + "default_retention_days: true\n")


def test_numeric_strings_still_load_for_xml_attributes() -> None:
    cfg = parse_config(XML_CFG, "xml")
    assert [r.retention_days for r in cfg.rules] == [30, 0]


@pytest.mark.parametrize(
    "old,new,field",
    [
        ("root_path: /srv/share", "root_path: /srv/share\ndefault_retention_day: 30", "default_retention_day"),
        ("    retention_days: 30", "    retention_days: 30\n    retention: 5", "retention"),
        ("  port: 2525", "  port: 2525\n  pasword: x", "pasword"),
    ],
)
def test_unknown_keys_are_rejected(old: str, new: str, field: str) -> None:
    with pytest.raises(ConfigError, match=field):
        parse_config(YAML_CFG.replace(old, new))
