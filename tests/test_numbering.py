"""Tests for the receipt/invoice/transaction number generator."""

import random
import re

import pytest

from festival_fund.numbering import UniqueNumberGenerator

from tests.factories import counting_clock


NUMBER_PATTERN = re.compile(r"^[A-Z]+\d{13,}\d{3}$")


class TestUniqueNumberGenerator:
    """Tests for UniqueNumberGenerator."""

    def test_format(self):
        """Prefix, millisecond timestamp, 3-digit suffix."""
        generator = UniqueNumberGenerator()
        for prefix in ("LBC", "INV", "TXN"):
            assert NUMBER_PATTERN.match(generator.generate(prefix))

    def test_timestamp_and_suffix_layout(self):
        """Test the exact layout with a fixed clock and seeded RNG."""
        rng = random.Random(1)
        expected_suffix = random.Random(1).randint(0, 999)
        generator = UniqueNumberGenerator(clock=lambda: 1734512345.6785, rng=rng)

        number = generator.generate("TXN")

        assert number == f"TXN1734512345678{expected_suffix:03d}"

    def test_suffix_is_zero_padded(self):
        """A small random draw still yields three digits."""
        class ZeroRandom(random.Random):
            def randint(self, a, b):
                return 7

        generator = UniqueNumberGenerator(clock=lambda: 1734512345.0005, rng=ZeroRandom())
        assert generator.generate("INV").endswith("007")

    def test_numbers_differ_across_milliseconds(self):
        """Two generations 1ms apart never collide."""
        generator = UniqueNumberGenerator(clock=counting_clock(), rng=random.Random(3))
        first = generator.generate("LBC")
        second = generator.generate("LBC")
        assert first != second

    def test_numbers_differ_across_draws(self):
        """Same millisecond, different random draw."""
        draws = iter([1, 2])

        class SequenceRandom(random.Random):
            def randint(self, a, b):
                return next(draws)

        generator = UniqueNumberGenerator(clock=lambda: 1734512345.0005, rng=SequenceRandom())
        assert generator.generate("LBC") != generator.generate("LBC")

    def test_convenience_prefixes(self):
        """Default prefixes come from AppSettings."""
        generator = UniqueNumberGenerator()
        assert generator.receipt_number().startswith("LBC")
        assert generator.invoice_number().startswith("INV")
        assert generator.transaction_reference().startswith("TXN")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
