"""Tests for the keyword classifier."""

import json

import pytest

from lotparser.classifiers import KeywordClassifier, load_rules
from lotparser.core.models import ItemCategory, ItemCondition


class TestKeywordClassifier:
    """Test cases for KeywordClassifier."""

    def setup_method(self):
        """Setup test fixtures."""
        self.classifier = KeywordClassifier()

    def test_clear_winner(self):
        """Test that the category with most distinct keywords wins."""
        result = self.classifier.classify("Sterling Silver Tea Set")

        assert result.category == ItemCategory.SILVER
        assert result.condition == ItemCondition.UNKNOWN
        assert result.matched_keywords == ["sterling", "silver", "tea set"]
        # all matches agree, score 3: 1.0 * (1 - 0.5 ** 3)
        assert result.confidence == 0.875

    def test_no_match_falls_back(self):
        """Test that text without keywords is other / unknown / 0."""
        result = self.classifier.classify("Box of assorted items")

        assert result.category == ItemCategory.OTHER
        assert result.condition == ItemCondition.UNKNOWN
        assert result.confidence == 0.0
        assert result.matched_keywords == []

    def test_tie_goes_to_longest_keyword(self):
        """Test that "victorian" beats "teapot" on an equal score."""
        result = self.classifier.classify("Victorian Teapot")

        assert result.category == ItemCategory.ANTIQUES
        assert result.confidence == 0.25

    def test_tie_of_equal_length_goes_to_priority(self):
        """Test that "doll" (toys) beats "lamp" (furniture) by rule order."""
        result = self.classifier.classify("Doll Lamp")

        assert result.category == ItemCategory.TOYS

    def test_plural_suffixes(self):
        assert self.classifier.classify("Two Dolls").category == ItemCategory.TOYS
        assert self.classifier.classify("Drinking Glasses").category == ItemCategory.GLASS
        assert self.classifier.classify("Pair of Brass Andirons").category == ItemCategory.VINTAGE

    def test_word_boundaries(self):
        """Test that keywords inside other words do not match."""
        result = self.classifier.classify("Sawdust String")

        assert result.category == ItemCategory.OTHER

    def test_description_counts(self):
        result = self.classifier.classify("Lot 12", "antique oak sideboard with mirror")

        assert result.category == ItemCategory.FURNITURE

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Near mint coin", ItemCondition.EXCELLENT),
            ("Chair in very good condition", ItemCondition.VERY_GOOD),
            ("Damaged doll", ItemCondition.POOR),
            ("Refinished dresser", ItemCondition.RESTORATION),
            ("Radio for parts", ItemCondition.PARTS),
        ],
    )
    def test_conditions(self, text, expected):
        assert self.classifier.classify(text).condition == expected

    def test_deterministic(self):
        first = self.classifier.classify("Oak Dresser, good condition")
        second = self.classifier.classify("Oak Dresser, good condition")

        assert first == second


class TestRulesFile:
    """Test cases for loading rules from JSON."""

    def test_load_rules(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "categories": [
                {"category": "tools", "keywords": ["Widget"]},
                {"category": "toys", "keywords": ["widget", "yo-yo"]},
            ],
            "conditions": [{"condition": "good", "keywords": ["ok"]}],
        }))

        rules = load_rules(path)
        classifier = KeywordClassifier(category_rules=rules.categories, condition_rules=rules.conditions)
        result = classifier.classify("Blue widget, ok")

        assert [r.priority for r in rules.categories] == [0, 1]
        assert rules.categories[0].keywords == ["widget"]
        # Equal score and keyword: first rule in the file wins
        assert result.category == ItemCategory.TOOLS
        assert result.condition == ItemCondition.GOOD
        assert result.confidence == 0.25

    def test_from_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "categories": [{"category": "coins", "keywords": ["token"]}],
            "conditions": [],
        }))

        classifier = KeywordClassifier.from_file(path)

        assert classifier.classify("Subway token").category == ItemCategory.COINS

    def test_unknown_category_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "categories": [{"category": "spaceships", "keywords": ["rocket"]}],
            "conditions": [],
        }))

        with pytest.raises(ValueError):
            load_rules(path)

    def test_invalid_json_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            load_rules(path)
