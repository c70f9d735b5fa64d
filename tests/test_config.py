"""Unit tests for timeout configuration."""

import pytest

from ftppipe.config import Timeout


class TestTimeout:
    """Tests for Timeout validation."""

    def test_defaults(self):
        """Test the default limits."""
        timeout = Timeout()
        assert (timeout.connect, timeout.read, timeout.write, timeout.operation) == (5.0, 30.0, 10.0, 60.0)

    @pytest.mark.parametrize("field", ["connect", "read", "write", "operation"])
    def test_non_positive_rejected(self, field):
        """Test that every limit must be positive."""
        with pytest.raises(ValueError, match="must be positive"):
            Timeout(**{field: 0})

    def test_operation_covers_phases(self):
        """Test that one operation must fit its slowest phase."""
        with pytest.raises(ValueError, match=r"Operation timeout \(20\) must be at least 30"):
            Timeout(operation=20)

    def test_short_limits_for_tests(self):
        """Test that small but consistent values are fine."""
        timeout = Timeout(connect=0.1, read=0.1, write=0.1, operation=0.5)
        assert timeout.operation == 0.5
