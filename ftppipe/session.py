import asyncio
import logging
import warnings
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from .errors import ProtocolError, TransportError, UsageError
from .reply import Category, Codemap, Handler, Reply, ReplyKey, ReplyLine, ReplyParser, is_reply_key, resolve
from .transport import BLOCK_SIZE, Channel

logger = logging.getLogger(__name__)


def censor(text: Optional[str]) -> Optional[str]:
    """Hide the argument of PASS so credentials never reach logs or warnings."""
    if text is not None and text[:5].upper() == "PASS ":
        return "PASS ***"
    return text


@dataclass
class Followup:
    """
    Returned from a final-reply handler to keep the command at the head of
    the queue: ``text`` is written straight away and ``codemap`` takes over
    dispatch for the replies that follow.

    This is how two-step exchanges (USER/PASS, RNFR/RNTO, PASV/LIST) hold the
    wire without letting another queued command slip in between.
    """

    text: Optional[str]
    codemap: Codemap


@dataclass
class Command:
    text: Optional[str]
    codemap: Dict[ReplyKey, Handler]
    future: asyncio.Future


class SessionState(Enum):
    """Control session state."""

    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"
    CLOSED = "closed"


class CommandQueue:
    """FIFO of pending commands. Only the head is ever on the wire."""

    def __init__(self) -> None:
        self.pending: Deque[Command] = deque()

    def __len__(self) -> int:
        return len(self.pending)

    @property
    def head(self) -> Optional[Command]:
        return self.pending[0] if self.pending else None

    def push(self, command: Command) -> bool:
        """Append a command; True when it landed at the head."""
        self.pending.append(command)
        return len(self.pending) == 1

    def pop(self) -> Optional[Command]:
        """Drop the head and return the new one, if any."""
        self.pending.popleft()
        return self.head

    def drain(self) -> List[Command]:
        commands = list(self.pending)
        self.pending.clear()
        return commands


def settle(future: asyncio.Future, result: Any = None, error: Optional[BaseException] = None) -> None:
    # A caller may have given up (cancelled) already; completion is at most once
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class ControlSession:
    """
    Binds a reply parser and a command queue to one control channel.

    Commands can be issued at any time and from any number of tasks. Their
    text goes out one at a time, in issue order, each only after the previous
    command saw its final (non-1xx) reply. Replies are matched to the head of
    the queue through its codemap.

    Handlers run synchronously inside the reader task. Whatever a handler
    returns becomes the result of the future handed out by ``issue``; if it
    raises, the exception does. A ``Followup`` keeps the command in flight.
    """

    def __init__(self, channel: Channel, encoding: str = "utf-8", strict: bool = False) -> None:
        """Wrap a connected channel. Call ``start`` before issuing commands.

        Args:
            channel: Connected control channel
            encoding: Text encoding for commands and replies
            strict: Fail (instead of warn and wait) when a final reply has no
                    handler in the current codemap
        """
        self.channel = channel
        self.encoding = encoding
        self.strict = strict
        self.parser = ReplyParser(encoding)
        self.queue = CommandQueue()
        self.group: List[str] = []
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue()
        self.reader: Optional[asyncio.Task] = None
        self.writer: Optional[asyncio.Task] = None
        self.closed = False

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.CLOSED
        return SessionState.AWAITING_REPLY if self.queue.head else SessionState.IDLE

    def start(self) -> None:
        self.reader = asyncio.ensure_future(self._read())
        self.writer = asyncio.ensure_future(self._write())

    def issue(self, text: Optional[str], codemap: Codemap) -> asyncio.Future:
        """Queue a command and hand back a future for its outcome.

        Args:
            text: Command line without CRLF, or None to only wait for a reply
                  (the server greeting)
            codemap: Handlers keyed by exact code or Category

        Returns:
            asyncio.Future: Resolves with the final handler's return value

        Raises:
            UsageError: If the codemap or text is malformed
            TransportError: If the session is already closed
        """
        if text is not None and not isinstance(text, str):
            raise UsageError(f"Command text must be a string, got {type(text).__name__}")
        codemap = self._check(codemap)
        if self.closed:
            raise TransportError("Connection closed")

        future = asyncio.get_running_loop().create_future()
        command = Command(text, codemap, future)
        if self.queue.push(command):
            self._send(text)
        return future

    def close(self) -> None:
        self._shutdown(TransportError("Connection closed"))

    @staticmethod
    def _check(codemap: Codemap) -> Dict[ReplyKey, Handler]:
        if not codemap:
            raise UsageError("Expected a non-empty codemap")
        for key, handler in codemap.items():
            if not is_reply_key(key):
                raise UsageError(f"Codemap key {key!r} is neither a reply code nor a Category")
            if not callable(handler):
                raise UsageError(f"Handler for {key!r} is not callable")
        return dict(codemap)

    def _send(self, text: Optional[str]) -> None:
        if text is None:
            return
        logger.debug("> %s", censor(text))
        self.outbox.put_nowait(text)

    async def _write(self) -> None:
        while True:
            text = await self.outbox.get()
            try:
                await self.channel.write(f"{text}\r\n".encode(self.encoding))
            except (OSError, asyncio.TimeoutError) as error:
                self._shutdown(TransportError(f"Write failed: {error}"))
                return

    async def _read(self) -> None:
        failure = TransportError("Connection closed by server")
        try:
            while True:
                data = await self.channel.read(BLOCK_SIZE)
                if not data:
                    break
                for line in self.parser.feed(data):
                    self._receive(line)
        except (OSError, asyncio.TimeoutError) as error:
            failure = TransportError(f"Read failed: {error}")
        self._shutdown(failure)

    def _receive(self, line: ReplyLine) -> None:
        logger.debug("< %s", line)
        command = self.queue.head

        if line.code is None:
            if self.group:
                # free text inside an open NNN- ... NNN group
                self.group.append(line.text)
            elif command is None:
                warnings.warn(f"Unsolicited incoming line {line.text!r}")
            else:
                warnings.warn(f"Unparsable incoming line {line.text!r}")
            return

        if command is None:
            warnings.warn(f"Unsolicited incoming line {str(line)!r}")
            return

        if not line.is_final:
            self.group.append(line.text)
            return

        reply = Reply(line.code, line.text, self.group)
        self.group = []
        self._dispatch(command, reply)

    def _dispatch(self, command: Command, reply: Reply) -> None:
        handler = resolve(command.codemap, reply.code)

        if handler is None:
            if reply.category is Category.INFO:
                return
            message = f"Unexpected reply {reply} while awaiting response to {censor(command.text)}"
            warnings.warn(message)
            if self.strict:
                self._finish(command, error=ProtocolError(message))
            return

        if reply.category is Category.INFO:
            # 1xx: still waiting for the real answer
            try:
                handler(reply)
            except Exception as error:
                settle(command.future, error=error)
            return

        try:
            result = handler(reply)
        except Exception as error:
            self._finish(command, error=error)
            return

        if isinstance(result, Followup):
            try:
                command.codemap = self._check(result.codemap)
            except UsageError as error:
                self._finish(command, error=error)
                return
            command.text = result.text
            self._send(result.text)
            return

        self._finish(command, result=result)

    def _finish(self, command: Command, result: Any = None, error: Optional[BaseException] = None) -> None:
        following = self.queue.pop()
        settle(command.future, result, error)
        if following is not None:
            self._send(following.text)

    def _shutdown(self, failure: TransportError) -> None:
        if self.closed:
            return
        self.closed = True
        # half-built state dies with the connection
        self.parser.reset()
        self.group = []
        for command in self.queue.drain():
            settle(command.future, error=failure)

        current = asyncio.current_task()
        for task in (self.reader, self.writer):
            if task is not None and task is not current:
                task.cancel()
        self.channel.close()
