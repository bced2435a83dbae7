"""Tests for line amount extraction."""

import pytest

from expense_extraction.parsing.amounts import AmountExtractor, clean_name


@pytest.fixture
def extractor():
    return AmountExtractor()


class TestAmountExtractor:
    """Tests for the matcher cascade."""

    @pytest.mark.parametrize("line, name, quantity, price, unit_price, pattern", [
        ("珍奶 $45 x 2 $90", "珍奶", 2, 90.0, 45.0, "mul_sum"),
        ("珍奶 45x2", "珍奶", 2, 90.0, 45.0, "mul_sum"),
        ("雞腿便當 x 2 $198", "雞腿便當", 2, 198.0, None, "name_qty_price"),
        ("A12 鮮奶吐司 $48", "鮮奶吐司", 1, 48.0, None, "code_name_price"),
        ("2 鮪魚飯糰 $70", "鮪魚飯糰", 2, 70.0, None, "qty_name_price"),
        ("拿鐵 $65", "拿鐵", 1, 65.0, None, "name_price"),
        ("衛生紙 1,250元", "衛生紙", 1, 1250.0, None, "name_price"),
        ("蘋果 120 特價", "蘋果", 1, 120.0, None, "heuristic"),
    ])
    def test_patterns(self, extractor, line, name, quantity, price, unit_price, pattern):
        """Test each matcher on the line shape it exists for."""
        amount = extractor.extract(line)

        assert amount is not None
        assert amount.name == name
        assert amount.quantity == quantity
        assert amount.price == price
        assert amount.unit_price == unit_price
        assert amount.pattern == pattern

    def test_full_width_line(self, extractor):
        """Test that full-width digits and currency are handled."""
        amount = extractor.extract("拿鐵　＄６５")
        assert amount is not None
        assert amount.price == 65.0

    def test_rejects_transaction_numbers(self, extractor):
        """Test that long ID numbers are never read as prices."""
        assert extractor.extract("統一編號 12345678") is None

    def test_rejects_unreasonable_money(self, extractor):
        """Test that amounts at or above the limit are rejected."""
        assert extractor.extract("咖啡 25000") is None
        assert AmountExtractor(money_max=30000).extract("咖啡 25000") is not None

    def test_rejects_short_names(self, extractor):
        """Test that one-character names are rejected."""
        assert extractor.extract("a 65") is None

    def test_no_number(self, extractor):
        """Test that a line without any number gives None."""
        assert extractor.extract("拿鐵") is None
        assert extractor.extract("") is None

    def test_is_reasonable_money(self, extractor):
        """Test the plausible amount range."""
        assert extractor.is_reasonable_money(1)
        assert not extractor.is_reasonable_money(0)
        assert not extractor.is_reasonable_money(20000)
        assert not extractor.is_reasonable_money(None)


class TestCleanName:
    """Tests for item name cleanup."""

    def test_strips_bullets_and_quantity(self):
        """Test that bullets and a trailing quantity are removed."""
        assert clean_name("• 拿鐵 x 2") == "拿鐵"

    def test_strips_stars_and_punctuation(self):
        """Test that star runs and trailing punctuation are removed."""
        assert clean_name("**熱美式**:") == "熱美式"
