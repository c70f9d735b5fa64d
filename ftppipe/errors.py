from typing import List, Optional


class FtpError(Exception):
    """Base class for everything FtpPipe raises on purpose."""


class ProtocolError(FtpError):
    """
    The server said something the protocol engine could not make sense of.

    Raised for hard failures only, such as a PASV reply without an address
    tuple. Softer anomalies (a stray line, an unmapped code) are reported with
    a warning and the session carries on.
    """


class RemoteError(FtpError):
    """
    A 4xx or 5xx final reply from the server.

    Attributes:
        code: Three digit reply code, exactly as received.
        message: Text of the final reply line.
        lines: Continuation lines that preceded the final line, if any.
    """

    def __init__(self, code: int, message: str, lines: Optional[List[str]] = None) -> None:
        self.code = code
        self.message = message
        self.lines = list(lines or [])
        super().__init__(f"{code} ({message})")


class TransportError(FtpError, ConnectionError):
    """Connect, resolve, read/write or timeout failure on a channel."""


class UsageError(FtpError, ValueError):
    """The caller passed something unusable. Raised before any I/O happens."""
