"""Tests for relorch.core.errors module."""

from relorch.core.errors import ErrorCode


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        """CI jobs match on these numbers."""
        assert [int(c) for c in ErrorCode] == [0, 1, 2, 3, 4, 5, 6]

    def test_str(self) -> None:
        assert str(ErrorCode.PARTIAL_FAILURE) == "partial failure"

    def test_is_success(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.BUILD_FAILURE.is_success
