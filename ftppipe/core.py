import asyncio
import re
import warnings
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union
from urllib.parse import urlparse

from .auth import Basic, Guest
from .config import Timeout
from .errors import FtpError, ProtocolError, TransportError, UsageError
from .listing import Entry, parse_line, parse_listing
from .reply import Category, Reply, raise_remote
from .session import ControlSession, Followup
from .transfer import DataChannelBroker, PassiveAddress, parse_passive
from .transport import Channel, open_channel

# Type definitions for clarity
T = TypeVar("T")
ClientType = TypeVar("ClientType", bound="FtpClient")
HookType = Callable[..., Awaitable[Any]]
AuthType = Union[Basic, Guest]
Payload = Union[bytes, bytearray, str]


def done(reply: Reply) -> None:
    return None


def text(value: Any, name: str) -> str:
    """Check a required string argument before it goes anywhere near the wire."""
    if value is None:
        raise UsageError(f"Expected '{name}'")
    if not isinstance(value, str):
        raise UsageError(f"Expected '{name}' as a string, got {type(value).__name__}")
    if "\r" in value or "\n" in value:
        raise UsageError(f"'{name}' cannot contain line breaks")
    return value


def command(verb: str, path: Optional[str] = None) -> str:
    if path is None:
        return verb
    return f"{verb} {text(path, 'path')}"


class FtpClient:
    """
    Async FTP client built on a pipelined control session.

    Every operation goes through one control connection. Operations may be
    started concurrently (``asyncio.gather`` and friends): their commands are
    queued and go out on the wire strictly in call order, one at a time. Each
    transfer (list, retrieve, store) opens its own passive data connection
    which lives exactly as long as that transfer.

    Failures come back as exceptions: RemoteError for 4xx/5xx replies,
    TransportError for network trouble and timeouts, ProtocolError for
    replies that make no sense, UsageError for bad arguments. Nothing is
    retried.
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
        """Set up the client. Nothing touches the network until ``connect``.

        Args:
            endpoint: Server URL like "ftp://myserver.com:2121"
            auth: Credentials for ``login``, None to log in explicitly (or not at all)
            timeout: Connect, read, write and per-operation limits
            hooks: Async callbacks; "connect" gets the greeting Reply,
                   "error" gets every FtpError before it is raised
            encoding: Text encoding for the control channel and listings
            strict: Fail a command on a reply code its handlers don't cover,
                    instead of warning and waiting for another reply

        Raises:
            ValueError: If the endpoint is not an ftp:// URL with a host
        """
        url = urlparse(endpoint)
        if url.scheme != "ftp":
            raise ValueError("Endpoint must start with 'ftp://'.")
        if not url.hostname:
            raise ValueError("Endpoint must name a host.")

        self.endpoint: str = endpoint
        self.host: str = url.hostname
        self.port: int = url.port or 21

        self.auth: Optional[AuthType] = auth
        self.timeout: Timeout = timeout or Timeout()
        self.hooks: Dict[str, HookType] = hooks or {}
        self.encoding: str = encoding
        self.strict: bool = strict

        # Connection state
        self.session: Optional[ControlSession] = None
        self.broker: Optional[DataChannelBroker] = None

    async def __aenter__(self: ClientType) -> ClientType:
        """Connect and, when credentials were given, log in.

        Returns:
            FtpClient: This same instance, ready for use

        Raises:
            FtpError: If connecting or logging in fails
        """
        await self.connect()
        if self.auth is not None:
            try:
                await self.login()
            except FtpError:
                self.close()
                raise
        return self

    async def __aexit__(self, type, value, trace) -> None:
        """Say goodbye politely if the connection is still up, then close it."""
        if self.session is None or self.session.closed:
            return
        try:
            await self.quit()
        except FtpError as error:
            warnings.warn(f"QUIT failed: {error}")
        finally:
            self.close()

    def close(self) -> None:
        """Drop the control connection. Queued commands fail with TransportError."""
        if self.session is not None:
            self.session.close()

    @property
    def connected(self) -> bool:
        return self.session is not None and not self.session.closed

    async def connect(self) -> Reply:
        """Open the control connection and wait for the server greeting.

        Returns:
            Reply: The 220 greeting, banner lines included

        Raises:
            UsageError: If this client is already connected
            TransportError: If the server can't be reached
            RemoteError: If the server greets with an error (e.g. 421)
        """
        if self.connected:
            raise UsageError("Already connected")

        channel = await self._guard(
            open_channel(
                self.host,
                self.port,
                connect=self.timeout.connect,
                write=self.timeout.write,
            )
        )
        self.session = ControlSession(channel, encoding=self.encoding, strict=self.strict)
        self.session.start()
        self.broker = DataChannelBroker(self.session, self._open_data, host=self.host)

        try:
            greeting = await self._guard(
                self.session.issue(None, {220: lambda reply: reply, Category.ERR: raise_remote})
            )
        except FtpError:
            self.close()
            raise
        await self._hook("connect", greeting)
        return greeting

    async def login(self, user: Optional[str] = None, password: Optional[str] = None) -> None:
        """Log in with USER, then PASS if the server asks for it.

        Without arguments the credentials given to the constructor are used.

        Args:
            user: Account name
            password: Password, sent only on a 331 reply

        Raises:
            UsageError: If there is no user, or the server wants a password
                        and none was given
            RemoteError: If the server rejects the login
        """
        if user is None:
            if self.auth is None:
                raise UsageError("Expected 'user'")
            user, password = self.auth.login
        user = text(user, "user")
        if password is not None:
            password = text(password, "password")
        session = self._require()

        def on_need_password(reply: Reply) -> Followup:
            if password is None:
                raise UsageError("No password")
            return Followup(f"PASS {password}", {230: done, 202: done, Category.ERR: raise_remote})

        await self._guard(
            session.issue(f"USER {user}", {230: done, 331: on_need_password, Category.ERR: raise_remote})
        )

    async def delete(self, path: str) -> None:
        """Delete a file on the server.

        Args:
            path: Remote path to delete

        Raises:
            RemoteError: If the server refuses (e.g. 550 no such file)
        """
        line = command("DELE", text(path, "path"))
        await self._guard(self._require().issue(line, {Category.OK: done, Category.ERR: raise_remote}))

    async def rename(self, old: str, new: str) -> None:
        """Rename (or move) a file on the server with RNFR followed by RNTO.

        RNTO goes out as soon as RNFR is answered with 350, ahead of anything
        else queued, so the pair can't be split by another command.

        Args:
            old: Current remote path
            new: New remote path

        Raises:
            RemoteError: If either step is refused
        """
        first = command("RNFR", text(old, "old"))
        second = command("RNTO", text(new, "new"))

        def on_pending(reply: Reply) -> Followup:
            return Followup(second, {Category.OK: done, Category.ERR: raise_remote})

        await self._guard(self._require().issue(first, {350: on_pending, Category.ERR: raise_remote}))

    async def list(self, path: Optional[str] = None) -> str:
        """Run LIST and return the raw listing text.

        Args:
            path: Remote file or directory, None for the current directory

        Returns:
            str: Listing as sent by the server, one entry per line
        """
        data = await self._receive(command("LIST", path))
        return data.decode(self.encoding, errors="replace")

    async def list_parsed(self, path: Optional[str] = None) -> List[Entry]:
        """Run LIST and parse the lines into Entry records.

        Args:
            path: Remote file or directory, None for the current directory

        Returns:
            List[Entry]: One record per file, "." and ".." left out
        """
        return parse_listing(await self.list(path))

    async def nlst(self, path: Optional[str] = None) -> str:
        """Run NLST and return the raw name list.

        Args:
            path: Remote directory, None for the current directory

        Returns:
            str: File names, one per line
        """
        data = await self._receive(command("NLST", path))
        return data.decode(self.encoding, errors="replace")

    async def namelist(self, path: Optional[str] = None) -> List[str]:
        """Run NLST and split the result into names."""
        return [name for name in re.split(r"\r?\n", await self.nlst(path)) if name]

    async def retrieve(self, path: str) -> bytes:
        """Download a file.

        Args:
            path: Remote file to fetch

        Returns:
            bytes: Complete file contents

        Raises:
            RemoteError: If the server refuses (e.g. 550 no such file)
            TransportError: If the data connection fails or stalls
        """
        return await self._receive(command("RETR", text(path, "path")))

    async def store(self, path: str, data: Payload) -> None:
        """Upload a file.

        The payload goes out only after the server answers STOR with 150, and
        the call returns once the server confirms the upload, not when the
        local write finishes.

        Args:
            path: Remote file to create or overwrite
            data: New contents; str is encoded with the client encoding

        Raises:
            UsageError: If data is missing or not bytes/str
            RemoteError: If the server refuses the upload
        """
        line = command("STOR", text(path, "path"))
        if data is None:
            raise UsageError("Expected 'data'")
        if isinstance(data, str):
            data = data.encode(self.encoding)
        elif isinstance(data, (bytes, bytearray)):
            data = bytes(data)
        else:
            raise UsageError(f"Expected 'data' as bytes or str, got {type(data).__name__}")

        self._require()
        await self._guard(self.broker.send(line, data))

    async def status(self, path: Optional[str] = None) -> List[str]:
        """Run STAT over the control channel only.

        Args:
            path: Remote file or directory, None for server status

        Returns:
            List[str]: Body lines of the multi-line reply, headline dropped
        """
        session = self._require()

        def on_status(reply: Reply) -> List[str]:
            return reply.lines[1:]

        return await self._guard(
            session.issue(
                command("STAT", path),
                {211: on_status, 212: on_status, 213: on_status, Category.ERR: raise_remote},
            )
        )

    async def stat_parsed(self, path: str) -> List[Entry]:
        """Run STAT on a path and parse the listing in the reply.

        For a file the result holds one record. For a directory the first
        record describes the directory itself (named "."), followed by one per
        entry in server order.

        Args:
            path: Remote file or directory

        Raises:
            ProtocolError: If a directory listing has no single "." line, or
                           a file line can't be parsed
        """
        lines = [line.strip() for line in await self.status(text(path, "path"))]
        lines = [line for line in lines if line]
        if not lines:
            return []

        if len(lines) == 1:
            try:
                return [parse_line(lines[0])]
            except ValueError as error:
                raise ProtocolError(str(error))

        own = [line for line in lines if line.endswith(" .")]
        if len(own) != 1:
            raise ProtocolError(f"Did not find '.' in STAT output on directory {path}")
        try:
            itself = parse_line(own[0])
        except ValueError as error:
            raise ProtocolError(str(error))
        rest = [line for line in lines if line is not own[0]]
        return [itself] + parse_listing("\n".join(rest))

    async def pasv(self) -> PassiveAddress:
        """Ask the server for a passive address without opening a connection."""
        broker = self.broker

        def on_passive(reply: Reply) -> PassiveAddress:
            return broker.locate(parse_passive(reply.message))

        return await self._guard(self._require().issue("PASV", {227: on_passive, Category.ERR: raise_remote}))

    async def quit(self) -> None:
        """Send QUIT and close the connection once the server answers."""
        session = self._require()
        try:
            await self._guard(session.issue("QUIT", {Category.OK: done, Category.ERR: raise_remote}))
        finally:
            self.close()

    def _require(self) -> ControlSession:
        if self.session is None:
            raise UsageError("Client not connected. Use within 'async with' block or call connect().")
        if self.session.closed:
            raise TransportError("Connection closed")
        return self.session

    async def _receive(self, line: str) -> bytes:
        self._require()
        return await self._guard(self.broker.receive(line))

    async def _open_data(self, host: str, port: int) -> Channel:
        return await open_channel(
            host,
            port,
            connect=self.timeout.connect,
            read=self.timeout.read,
            write=self.timeout.write,
        )

    async def _guard(self, awaitable: Awaitable[T]) -> T:
        """Run one operation under the operation timeout.

        A timeout tears the session down: the reply owed for the abandoned
        command would otherwise be taken for the next command's.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout.operation)
        except asyncio.TimeoutError:
            self.close()
            error = TransportError(f"Operation timed out after {self.timeout.operation} seconds")
            await self._hook("error", error)
            raise error from None
        except FtpError as error:
            await self._hook("error", error)
            raise

    async def _hook(self, name: str, *args: Any) -> None:
        if name not in self.hooks:
            return
        try:
            await self.hooks[name](*args)
        except Exception as error:
            warnings.warn(f"{name.capitalize()} hook failed: {error}")
