"""Keyword rules for category and condition classification.

Rules are evaluated as ordered lists: list position is the tie-break
priority when two categories score the same.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from ..core.models import ItemCategory, ItemCondition

logger = logging.getLogger(__name__)


def _clean_keywords(value: list[str]) -> list[str]:
    keywords = [" ".join(kw.lower().split()) for kw in value]
    if not all(keywords):
        raise ValueError("Keywords must not be blank")
    return keywords


class CategoryRule(BaseModel):
    """Keywords that vote for one category."""

    category: ItemCategory
    keywords: list[str] = Field(..., min_length=1)
    priority: int = Field(default=0, ge=0, description="Lower wins ties")

    @field_validator("keywords")
    @classmethod
    def lower_keywords(cls, value: list[str]) -> list[str]:
        return _clean_keywords(value)


class ConditionRule(BaseModel):
    """Keywords that vote for one condition."""

    condition: ItemCondition
    keywords: list[str] = Field(..., min_length=1)
    priority: int = Field(default=0, ge=0)

    @field_validator("keywords")
    @classmethod
    def lower_keywords(cls, value: list[str]) -> list[str]:
        return _clean_keywords(value)


class RuleSet(BaseModel):
    """Both rule lists, as stored in a rules file."""

    categories: list[CategoryRule]
    conditions: list[ConditionRule]


def _ordered(rules: list) -> list:
    return [rule.model_copy(update={"priority": idx}) for idx, rule in enumerate(rules)]


_CATEGORY_KEYWORDS: list[tuple[ItemCategory, list[str]]] = [
    (ItemCategory.SILVER, [
        "sterling", "silver", "silverplate", "flatware", "hollowware",
        "tea set", "candelabra", "serving piece",
    ]),
    (ItemCategory.JEWELRY, [
        "jewelry", "ring", "necklace", "bracelet", "earring", "brooch",
        "pendant", "gold", "diamond", "gemstone",
    ]),
    (ItemCategory.COINS, [
        "coin", "numismatic", "currency", "proof", "commemorative",
        "gold coin", "silver coin",
    ]),
    (ItemCategory.STAMPS, ["stamp", "philatelic", "postage", "first day cover", "postmark", "album"]),
    (ItemCategory.GLASS, [
        "glass", "crystal", "cut glass", "pressed glass", "blown glass",
        "stained glass", "depression glass", "carnival glass", "art glass", "vase",
    ]),
    (ItemCategory.CHINA, [
        "china", "dinnerware", "plate", "bowl", "teacup", "teapot", "saucer",
        "platter", "tureen", "gravy boat", "ming",
    ]),
    (ItemCategory.CERAMICS, [
        "ceramic", "porcelain", "stoneware", "earthenware", "terracotta",
        "faience", "majolica", "capodimonte", "capidimonte",
    ]),
    (ItemCategory.POTTERY, ["pottery", "crock", "jug", "redware", "salt glaze", "art pottery"]),
    (ItemCategory.ART, [
        "painting", "print", "lithograph", "etching", "drawing", "framed",
        "sculpture", "statue", "canvas", "watercolor", "oil painting", "serigraph",
    ]),
    (ItemCategory.BOOKS, [
        "book", "volume", "edition", "manuscript", "atlas", "encyclopedia",
        "novel", "hardcover", "paperback",
    ]),
    (ItemCategory.LINENS, [
        "linen", "tablecloth", "napkin", "doily", "runner", "bedding",
        "quilt", "blanket", "textile", "fabric",
    ]),
    (ItemCategory.MUSICAL, [
        "musical", "instrument", "piano", "guitar", "violin", "trumpet",
        "saxophone", "drum", "sheet music", "music box",
    ]),
    (ItemCategory.TOYS, [
        "toy", "doll", "action figure", "game", "puzzle", "teddy bear",
        "train set", "lego", "vintage toy", "lionel",
    ]),
    (ItemCategory.COLLECTIBLES, [
        "collectible", "limited edition", "trading card", "figurine", "model",
        "diecast", "precious moments", "danbury mint", "enesco", "lladro",
    ]),
    (ItemCategory.MEMORABILIA, [
        "memorabilia", "autograph", "signed", "poster", "program", "pennant", "ticket stub",
    ]),
    (ItemCategory.ELECTRONICS, [
        "electronic", "computer", "phone", "camera", "stereo", "radio",
        "television", "gadget", "sewing machine",
    ]),
    (ItemCategory.TOOLS, [
        "tool", "drill", "saw", "hammer", "wrench", "pliers", "vintage tool",
        "woodworking", "machinist", "grinder",
    ]),
    (ItemCategory.FURNITURE, [
        "table", "chair", "desk", "cabinet", "dresser", "sofa", "lamp", "bench",
        "ottoman", "bookcase", "sideboard", "chest", "console", "barstool", "shelves",
    ]),
    (ItemCategory.CLOTHING, [
        "dress", "shirt", "pants", "jacket", "coat", "shoes", "hat", "scarf",
        "vintage clothing", "designer",
    ]),
    (ItemCategory.ANTIQUES, [
        "antique", "victorian", "edwardian", "georgian", "art deco",
        "art nouveau", "mid century", "mcm",
    ]),
    (ItemCategory.VINTAGE, [
        "vintage", "brass", "cherub", "andirons", "bookend", "dolphin", "copper", "bronze",
    ]),
]

_CONDITION_KEYWORDS: list[tuple[ItemCondition, list[str]]] = [
    (ItemCondition.MINT, ["mint", "pristine", "perfect", "new"]),
    (ItemCondition.EXCELLENT, ["excellent", "near mint", "superb"]),
    (ItemCondition.VERY_GOOD, ["very good", "vg", "great"]),
    (ItemCondition.GOOD, ["good", "nice", "decent"]),
    (ItemCondition.FAIR, ["fair", "acceptable", "wear"]),
    (ItemCondition.POOR, ["poor", "damaged", "broken", "torn"]),
    (ItemCondition.RESTORATION, ["restored", "repaired", "refinished"]),
    (ItemCondition.PARTS, ["parts", "repair", "incomplete", "as-is"]),
]

CATEGORY_RULES: list[CategoryRule] = [
    CategoryRule(category=category, keywords=keywords, priority=idx)
    for idx, (category, keywords) in enumerate(_CATEGORY_KEYWORDS)
]

CONDITION_RULES: list[ConditionRule] = [
    ConditionRule(condition=condition, keywords=keywords, priority=idx)
    for idx, (condition, keywords) in enumerate(_CONDITION_KEYWORDS)
]


def load_rules(path: Path) -> RuleSet:
    """
    Load category and condition rules from a JSON file.

    The file holds ``{"categories": [...], "conditions": [...]}``. List
    order sets the tie-break priority; explicit ``priority`` values in the
    file are ignored.

    Raises:
        ValueError: If the file is not valid JSON or fails validation
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Rules file {path} is not valid JSON: {e}") from e

    rules = RuleSet.model_validate(raw)
    logger.info(
        f"Loaded {len(rules.categories)} category and {len(rules.conditions)} "
        f"condition rules from {path}"
    )
    return RuleSet(
        categories=_ordered(rules.categories),
        conditions=_ordered(rules.conditions),
    )
