"""Item classification by keyword rules."""

from .classifier import Classification, KeywordClassifier
from .rules import CATEGORY_RULES, CONDITION_RULES, CategoryRule, ConditionRule, RuleSet, load_rules

__all__ = [
    "CATEGORY_RULES",
    "CONDITION_RULES",
    "CategoryRule",
    "Classification",
    "ConditionRule",
    "KeywordClassifier",
    "RuleSet",
    "load_rules",
]
