from typing import Any, Awaitable, Callable, Dict, Optional, Union
from urllib.parse import urlparse

from .auth import Basic, Guest
from .config import Timeout
from .core import FtpClient

# Type definitions for clarity
HookType = Callable[..., Awaitable[Any]]
AuthType = Union[Basic, Guest]


class FtpPipe:
    """
    Async FTP factory for creating configured clients.

    Parses and checks the endpoint once, holds the shared configuration, and
    hands out FtpClient instances that all behave the same way. Each client
    owns its own control connection, so several can run side by side against
    one server.
    """

    def __init__(
        self,
        endpoint: str,
        auth: Optional[AuthType] = None,
        timeout: Optional[Timeout] = None,
        hooks: Optional[Dict[str, HookType]] = None,
        encoding: str = "utf-8",
        strict: bool = False,
    ) -> None:
        """Set up FTP connection parameters and shared configuration.

        Args:
            endpoint: FTP URL like ftp://server.com or ftp://server.com:2121
            auth: Basic credentials, Guest for anonymous access, or None
            timeout: How long to wait for connections, data and operations
            hooks: Async callbacks for "connect" and "error" events
            encoding: Text encoding for FTP protocol messages
            strict: Fail commands on unexpected reply codes instead of waiting

        Raises:
            TypeError: If endpoint isn't a string
            ValueError: If endpoint scheme is wrong or auth is of an unknown kind
        """
        if not isinstance(endpoint, str):
            raise TypeError("Endpoint must be a string.")

        # Parse the FTP URL to extract connection details
        url = urlparse(endpoint)

        if url.scheme == "ftps":
            raise ValueError("FTPS is not supported; use an 'ftp://' endpoint.")
        if url.scheme != "ftp":
            raise ValueError("Endpoint must start with 'ftp://'.")

        # Store connection info from URL
        self.endpoint: str = endpoint
        self.host: Optional[str] = url.hostname
        self.port: int = url.port or 21

        # Set up configuration with sensible defaults
        self.timeout: Timeout = timeout or Timeout()
        self.hooks: Dict[str, HookType] = hooks or {}
        self.encoding: str = encoding
        self.strict: bool = strict
        self.auth: Optional[AuthType] = auth

        # FTP only does plaintext USER/PASS here
        if self.auth is not None and not isinstance(self.auth, (Basic, Guest)):
            raise ValueError("FTP only supports Basic or Guest authentication")

    def client(self) -> FtpClient:
        """Create an FTP client using this configuration.

        Returns:
            FtpClient: Ready-to-connect client instance
        """
        return FtpClient(
            endpoint=self.endpoint,
            auth=self.auth,
            timeout=self.timeout,
            hooks=self.hooks,
            encoding=self.encoding,
            strict=self.strict,
        )
