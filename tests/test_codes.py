"""Tests for verification code generation."""

import string

import pytest

from loan_pact.confirmation.codes import CODE_LENGTH, _mix, _to_base36, codes_match, generate_code


class TestMix:
    """Tests for the rolling hash."""

    def test_known_values(self) -> None:
        """Test the hash matches the classic 31-multiplier string hash."""
        assert _mix("") == 0
        assert _mix("hello") == 99162322
        assert _mix("Aa") == _mix("BB") == 2112

    def test_wraps_to_signed_32_bit(self) -> None:
        """Test overflow wraps into the signed range."""
        assert _mix("polygenelubricants") == -(2**31)


class TestBase36:
    """Tests for base-36 rendering."""

    @pytest.mark.parametrize("value, expected", [(0, "0"), (35, "Z"), (36, "10"), (2**31, "ZIK0ZK")])
    def test_render(self, value: int, expected: str) -> None:
        """Test uppercase base-36 digits."""
        assert _to_base36(value) == expected


class TestGenerateCode:
    """Tests for generate_code."""

    def test_fixed_length_padding(self) -> None:
        """Test short digests are left-padded with zeros."""
        assert generate_code("polygenelubricants", "") == "00ZIK0ZK"
        assert generate_code("", "") == "00000000"

    def test_deterministic(self) -> None:
        """Test the same inputs give the same code."""
        assert generate_code("agr-1", 1773136800000) == generate_code("agr-1", 1773136800000)

    def test_salt_changes_code(self) -> None:
        """Test codes differ between issuances."""
        assert generate_code("agr-1", 1773136800000) != generate_code("agr-1", 1773136800001)

    def test_alphabet(self) -> None:
        """Test codes use uppercase base-36 only."""
        code = generate_code("3f2a9c0e5b", 1773136800000)

        assert len(code) == CODE_LENGTH
        assert set(code) <= set(string.digits + string.ascii_uppercase)

    def test_custom_length(self) -> None:
        """Test the length can be configured."""
        assert len(generate_code("agr-1", 1, length=10)) == 10


class TestCodesMatch:
    """Tests for codes_match."""

    def test_case_insensitive_submission(self) -> None:
        """Test a lowercase submission still matches."""
        assert codes_match("00ZIK0ZK", "00zik0zk")

    def test_mismatch(self) -> None:
        """Test a wrong code does not match."""
        assert not codes_match("00ZIK0ZK", "00ZIK0ZL")
        assert not codes_match("00ZIK0ZK", "")
