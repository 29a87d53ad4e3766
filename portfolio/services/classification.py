"""Keyword rules that derive display metadata for a certification badge.

Each table is an ordered tuple of rules; the first rule that matches wins and
the table's default applies otherwise. Keywords match case-insensitively on
token boundaries, so ``git`` matches "GitHub Foundations" through its own rule
but never "Digital Skills".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True, slots=True)
class KeywordRule:
    value: str
    name_keywords: tuple[str, ...] = ()
    issuer_keywords: tuple[str, ...] = ()
    name_requires: tuple[str, ...] = ()

    def matches(self, name: str, issuer: str) -> bool:
        hit = any(contains_keyword(name, keyword) for keyword in self.name_keywords) or any(
            contains_keyword(issuer, keyword) for keyword in self.issuer_keywords
        )
        return hit and all(contains_keyword(name, keyword) for keyword in self.name_requires)


@dataclass(frozen=True, slots=True)
class RuleTable:
    rules: tuple[KeywordRule, ...]
    default: str

    def resolve(self, name: str, issuer: str) -> str:
        for rule in self.rules:
            if rule.matches(name, issuer):
                return rule.value
        return self.default


@dataclass(frozen=True, slots=True)
class ClassificationRules:
    category: RuleTable
    level: RuleTable
    color: RuleTable


@dataclass(frozen=True, slots=True)
class Classification:
    category: str
    level: str
    color: str


_MICROSOFT = {"name_keywords": ("azure",), "issuer_keywords": ("microsoft",)}

CATEGORY_RULES = RuleTable(
    rules=(
        KeywordRule("Cloud", name_keywords=("aws", "amazon web services")),
        KeywordRule("Security", name_requires=("security",), **_MICROSOFT),
        KeywordRule("Productivity", name_requires=("365",), **_MICROSOFT),
        KeywordRule("Cloud", **_MICROSOFT),
        KeywordRule("Infrastructure", name_keywords=("terraform",), issuer_keywords=("hashicorp",)),
        KeywordRule("DevOps", name_keywords=("github", "git")),
        KeywordRule("Virtualization", name_keywords=("vmware",)),
        KeywordRule("Security", name_keywords=("security",)),
        KeywordRule("DevOps", name_keywords=("kubernetes", "docker")),
    ),
    default="General",
)

LEVEL_RULES = RuleTable(
    rules=(
        KeywordRule("Practitioner", name_keywords=("practitioner",)),
        KeywordRule("Associate", name_keywords=("associate",)),
        KeywordRule("Professional", name_keywords=("professional", "expert")),
        KeywordRule("Architect", name_keywords=("architect",)),
        KeywordRule("Specialty", name_keywords=("specialty",)),
        KeywordRule("Foundational", name_keywords=("foundation", "foundations", "foundational")),
    ),
    default="Fundamental",
)

COLOR_RULES = RuleTable(
    rules=(
        KeywordRule("from-orange-500 to-orange-600", issuer_keywords=("amazon", "aws", "amazon web services")),
        KeywordRule("from-blue-500 to-blue-600", issuer_keywords=("microsoft",)),
        KeywordRule("from-purple-500 to-purple-600", issuer_keywords=("hashicorp",)),
        KeywordRule("from-green-500 to-green-600", issuer_keywords=("vmware",)),
        KeywordRule("from-gray-700 to-gray-900", issuer_keywords=("github",)),
        KeywordRule("from-blue-400 to-blue-500", issuer_keywords=("google",)),
    ),
    default="from-gray-500 to-gray-600",
)

DEFAULT_RULES = ClassificationRules(category=CATEGORY_RULES, level=LEVEL_RULES, color=COLOR_RULES)


def classify(name: str, issuer: str, rules: ClassificationRules = DEFAULT_RULES) -> Classification:
    return Classification(
        category=rules.category.resolve(name, issuer),
        level=rules.level.resolve(name, issuer),
        color=rules.color.resolve(name, issuer),
    )


def contains_keyword(text: str, keyword: str) -> bool:
    return _keyword_pattern(keyword).search(text) is not None


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword.lower())}(?![a-z0-9])", re.IGNORECASE)
