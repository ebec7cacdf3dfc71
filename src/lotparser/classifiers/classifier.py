"""Deterministic keyword classifier for auction items."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ..core.models import ItemCategory, ItemCondition
from .rules import CATEGORY_RULES, CONDITION_RULES, CategoryRule, ConditionRule, load_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """Category and condition assigned to an item."""

    category: ItemCategory = ItemCategory.OTHER
    condition: ItemCondition = ItemCondition.UNKNOWN
    confidence: float = 0.0
    matched_keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Score:
    label: ItemCategory | ItemCondition
    priority: int
    matched: list[str]

    @property
    def score(self) -> int:
        return len(self.matched)

    @property
    def longest(self) -> int:
        return max(len(kw) for kw in self.matched)


def _keyword_pattern(keyword: str) -> re.Pattern:
    """Word-boundary pattern for a keyword, allowing a plural suffix."""
    body = r"\s+".join(re.escape(part) for part in keyword.split())
    return re.compile(rf"(?<![a-z0-9]){body}(?:e?s)?(?![a-z0-9])")


class KeywordClassifier:
    """
    Assign category and condition by keyword scoring.

    Each rule scores the number of its distinct keywords found in the
    item text. The highest score wins; ties go to the longest matched
    keyword, then to the earlier rule. No match is a valid outcome
    (other / unknown, confidence 0).
    """

    def __init__(
        self,
        category_rules: list[CategoryRule] | None = None,
        condition_rules: list[ConditionRule] | None = None,
    ):
        self.category_rules = sorted(category_rules or CATEGORY_RULES, key=lambda r: r.priority)
        self.condition_rules = sorted(condition_rules or CONDITION_RULES, key=lambda r: r.priority)
        self._patterns: dict[str, re.Pattern] = {}
        for rule in [*self.category_rules, *self.condition_rules]:
            for keyword in rule.keywords:
                if keyword not in self._patterns:
                    self._patterns[keyword] = _keyword_pattern(keyword)

    @classmethod
    def from_file(cls, path: Path) -> "KeywordClassifier":
        """Create a classifier from a JSON rules file."""
        rules = load_rules(path)
        return cls(category_rules=rules.categories, condition_rules=rules.conditions)

    def classify(self, name: str, description: str | None = None) -> Classification:
        """
        Classify an item from its name and description.

        Args:
            name: Item name
            description: Item description, if any

        Returns:
            Classification with confidence in [0, 1]
        """
        text = f"{name} {description or ''}".lower()

        category_scores = self._score(text, [(r.category, r.priority, r.keywords) for r in self.category_rules])
        condition_scores = self._score(text, [(r.condition, r.priority, r.keywords) for r in self.condition_rules])

        category_winner = self._pick(category_scores)
        condition_winner = self._pick(condition_scores)

        if category_winner is None:
            return Classification(
                condition=condition_winner.label if condition_winner else ItemCondition.UNKNOWN,
                matched_keywords=list(condition_winner.matched) if condition_winner else [],
            )

        total = sum(s.score for s in category_scores)
        share = category_winner.score / total
        confidence = round(share * (1 - 0.5 ** category_winner.score), 3)

        matched = list(category_winner.matched)
        if condition_winner:
            matched.extend(kw for kw in condition_winner.matched if kw not in matched)

        logger.debug(
            f"Classified {name!r} as {category_winner.label.value} "
            f"(score {category_winner.score}, confidence {confidence})"
        )

        return Classification(
            category=category_winner.label,
            condition=condition_winner.label if condition_winner else ItemCondition.UNKNOWN,
            confidence=confidence,
            matched_keywords=matched,
        )

    def _score(self, text: str, rules: list[tuple]) -> list[_Score]:
        scores = []
        for label, priority, keywords in rules:
            matched = []
            for keyword in keywords:
                if keyword not in matched and self._patterns[keyword].search(text):
                    matched.append(keyword)
            if matched:
                scores.append(_Score(label=label, priority=priority, matched=matched))
        return scores

    @staticmethod
    def _pick(scores: list[_Score]) -> _Score | None:
        if not scores:
            return None
        return min(scores, key=lambda s: (-s.score, -s.longest, s.priority))
