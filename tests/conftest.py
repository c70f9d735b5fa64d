"""Pytest configuration and shared fixtures for FtpPipe tests."""

import pytest
from datetime import datetime, timezone


# Test constants
TEST_FTP_HOST = "ftp.example.com"
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"

# Listing lines as a typical unix server sends them
SAMPLE_LISTING = (
    "total 12\r\n"
    "drwxr-xr-x 2 user user 4096 Feb 2 2005 .\r\n"
    "drwxr-xr-x 3 user user 4096 Feb 2 2005 ..\r\n"
    "-rw-r--r-- 1 user user 100 Feb 2 2005 file\r\n"
    "drwxr-x--- 2 user staff 4096 Mar 14 09:30 docs\r\n"
    "lrwxrwxrwx 1 user user 4 Feb 2 2005 latest -> file\r\n"
)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for listings whose dates carry no year."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_listing() -> str:
    """Provide a LIST body with every kind of entry."""
    return SAMPLE_LISTING
