from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterable

from filesweep.common.config import DEFAULT_RETENTION_DAYS, AppCfg


@dataclass(frozen=True)
class RetentionRule:
    pattern: str
    retention_days: int
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # fnmatchcase semantics: case-sensitive, '*' also crosses '/'
        object.__setattr__(self, "_regex", re.compile(fnmatch.translate(self.pattern)))

    def matches(self, rel_path: str) -> bool:
        return self._regex.match(rel_path) is not None


def as_rel_posix(rel: PurePath | str) -> str:
    if isinstance(rel, PurePath):
        return rel.as_posix()
    return rel.replace("\\", "/")


class RuleTable:
    """Ordered rules; the first pattern matching a path wins, else the default applies."""

    def __init__(self, rules: Iterable[RetentionRule], default_days: int = DEFAULT_RETENTION_DAYS) -> None:
        self.rules: tuple[RetentionRule, ...] = tuple(rules)
        self.default_days = default_days

    @classmethod
    def from_config(cls, cfg: AppCfg) -> "RuleTable":
        return cls(
            (RetentionRule(r.pattern, r.retention_days) for r in cfg.rules),
            default_days=cfg.default_retention_days,
        )

    def match(self, rel_path: PurePath | str) -> RetentionRule | None:
        key = as_rel_posix(rel_path)
        for rule in self.rules:
            if rule.matches(key):
                return rule
        return None

    def retention_for(self, rel_path: PurePath | str) -> int:
        rule = self.match(rel_path)
        return rule.retention_days if rule else self.default_days

    def __len__(self) -> int:
        return len(self.rules)
