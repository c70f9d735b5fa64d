"""Unit tests for login credentials."""

import warnings

import pytest

from ftppipe.auth import ANONYMOUS, Basic, Guest


class TestBasic:
    """Tests for Basic credentials."""

    def test_login_pair(self):
        """Test the USER/PASS values."""
        assert Basic("alice", "correct-horse").login == ("alice", "correct-horse")

    def test_password_optional(self):
        """Test accounts that need no password."""
        assert Basic("ftp").login == ("ftp", None)

    def test_empty_user(self):
        """Test that a blank user is rejected."""
        with pytest.raises(ValueError):
            Basic("   ", "correct-horse")

    @pytest.mark.parametrize("user, password", [("alice\r\nDELE x", "correct-horse"), ("alice", "pw\nQUIT")])
    def test_line_breaks_rejected(self, user, password):
        """Test that credentials can't smuggle in another command."""
        with pytest.raises(ValueError, match="line breaks"):
            Basic(user, password)

    def test_short_password_warns(self):
        """Test the weak password warning."""
        with pytest.warns(UserWarning, match="shorter than 8"):
            Basic("alice", "pw")

    def test_long_password_silent(self):
        """Test that a reasonable password raises no warning."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            Basic("alice", "correct-horse")


class TestGuest:
    """Tests for anonymous logins."""

    def test_login_pair(self):
        """Test that the user is always "anonymous"."""
        assert Guest("me@example.com").login == (ANONYMOUS, "me@example.com")
        assert Guest().login == ("anonymous", "guest@")

    def test_empty_key(self):
        """Test that a blank key is rejected."""
        with pytest.raises(ValueError):
            Guest("")

    def test_line_breaks_rejected(self):
        """Test that the key can't carry a command."""
        with pytest.raises(ValueError):
            Guest("me@x\r\nDELE y")

    def test_key_without_at_warns(self):
        """Test the email-like key warning."""
        with pytest.warns(UserWarning, match="email"):
            Guest("nobody")
