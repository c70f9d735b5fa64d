import asyncio
import logging
import re
from enum import Enum
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional

from .errors import ProtocolError, TransportError
from .reply import Category, Handler, Reply, ReplyKey, raise_remote
from .session import ControlSession, Followup, settle
from .transport import BLOCK_SIZE, Channel

logger = logging.getLogger(__name__)

Connector = Callable[[str, int], Awaitable[Channel]]


class PassiveAddress(NamedTuple):
    """Where the server is listening for the next data connection."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


_PASSIVE = re.compile(r"\((\d+),(\d+),(\d+),(\d+),(\d+),(\d+)\)")


def parse_passive(message: str) -> PassiveAddress:
    """Pull ``(a,b,c,d,p1,p2)`` out of a 227 message.

    Raises:
        ProtocolError: If the tuple is missing or holds out-of-range numbers
    """
    match = _PASSIVE.search(message)
    if match is None:
        raise ProtocolError(f"Did not find (ip,port) in message {message}")
    numbers = [int(n) for n in match.groups()]
    if any(n > 255 for n in numbers):
        raise ProtocolError(f"Passive address out of range in message {message}")
    a, b, c, d, high, low = numbers
    return PassiveAddress(f"{a}.{b}.{c}.{d}", high * 256 + low)


class Direction(Enum):
    RECEIVE = "receive"
    SEND = "send"


class TransferState(Enum):
    AWAITING_PASV_REPLY = "awaiting_pasv_reply"
    AWAITING_TRANSFER_START = "awaiting_transfer_start"
    AWAITING_TRANSFER_END = "awaiting_transfer_end"
    DONE = "done"
    FAILED = "failed"


class Transfer:
    """
    One PASV handshake plus one data connection.

    Every control reply for the transfer goes through ``dispatch``, which
    switches on ``state``:

    - AWAITING_PASV_REPLY: a 227 yields the address, starts the data task and
      hands the transfer command to the session as a Followup.
    - AWAITING_TRANSFER_START (sends only): 150/125 lets the payload go out.
    - AWAITING_TRANSFER_END: the success reply confirms the transfer.

    Any error reply fails the transfer. A receive finishes once both the data
    channel hit EOF and the control channel confirmed, whichever is last. A
    send finishes on the control confirmation alone.
    """

    def __init__(
        self,
        broker: "DataChannelBroker",
        command: str,
        direction: Direction,
        payload: Optional[bytes] = None,
    ) -> None:
        self.broker = broker
        self.command = command
        self.direction = direction
        self.payload = payload
        self.state = TransferState.AWAITING_PASV_REPLY
        self.address: Optional[PassiveAddress] = None
        self.done: asyncio.Future = asyncio.get_running_loop().create_future()
        self.done.add_done_callback(self._on_done)
        self._data: Optional[bytes] = None
        self._confirmed = False
        self._started = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._channel: Optional[Channel] = None

    @property
    def codemap(self) -> Dict[ReplyKey, Handler]:
        handle = self.dispatch
        if self.state is TransferState.AWAITING_PASV_REPLY:
            return {227: handle, Category.ERR: handle}
        if self.state is TransferState.AWAITING_TRANSFER_START:
            return {150: handle, 125: handle, Category.OK: handle, Category.ERR: handle}
        return {Category.OK: handle, Category.ERR: handle}

    def start(self) -> asyncio.Future:
        control = self.broker.session.issue("PASV", self.codemap)
        control.add_done_callback(self._on_control_done)
        return self.done

    def dispatch(self, reply: Reply):
        if reply.category is Category.ERR:
            self.state = TransferState.FAILED
            raise_remote(reply)

        if self.state is TransferState.AWAITING_PASV_REPLY:
            try:
                self.address = self.broker.locate(parse_passive(reply.message))
            except ProtocolError:
                self.state = TransferState.FAILED
                raise
            logger.debug("Data connection for %r via %s", self.command, self.address)
            self._task = asyncio.ensure_future(self._run())
            if self.direction is Direction.SEND:
                self.state = TransferState.AWAITING_TRANSFER_START
            else:
                self.state = TransferState.AWAITING_TRANSFER_END
            return Followup(self.command, self.codemap)

        if self.state is TransferState.AWAITING_TRANSFER_START:
            if reply.category is not Category.INFO:
                # the payload was never sent
                self.state = TransferState.FAILED
                raise ProtocolError(f"{reply} before transfer start")
            self.state = TransferState.AWAITING_TRANSFER_END
            self._started.set()
            return None

        self.state = TransferState.DONE
        return reply

    async def _run(self) -> None:
        connecting = asyncio.ensure_future(self.broker.connector(self.address.host, self.address.port))
        try:
            channel = await connecting
        except asyncio.CancelledError:
            # the connect may have finished just as we were cancelled
            connecting.add_done_callback(self._discard)
            raise
        except (TransportError, OSError) as error:
            self._fail(error if isinstance(error, TransportError) else TransportError(str(error)))
            return
        if self.done.done():
            channel.close()
            return
        self._channel = channel

        try:
            if self.direction is Direction.RECEIVE:
                chunks: List[bytes] = []
                while True:
                    block = await channel.read(BLOCK_SIZE)
                    if not block:
                        break
                    chunks.append(block)
                channel.close()
                self._data = b"".join(chunks)
                logger.debug("Received %d bytes for %r", len(self._data), self.command)
                self._complete()
            else:
                await self._started.wait()
                await channel.write(self.payload)
                await channel.shutdown()
                logger.debug("Sent %d bytes for %r", len(self.payload), self.command)
        except (OSError, asyncio.TimeoutError) as error:
            self._fail(TransportError(f"Data connection to {self.address} failed: {error}"))

    @staticmethod
    def _discard(connecting: asyncio.Future) -> None:
        if not connecting.cancelled() and connecting.exception() is None:
            connecting.result().close()

    def _on_control_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            self._fail(TransportError(f"{self.command} cancelled"))
            return
        error = future.exception()
        if error is not None:
            self._fail(error)
            return
        self._confirmed = True
        self._complete()

    def _complete(self) -> None:
        if not self._confirmed:
            return
        if self.direction is Direction.RECEIVE:
            if self._data is None:
                return
            settle(self.done, self._data)
        else:
            settle(self.done, None)

    def _fail(self, error: BaseException) -> None:
        if self.state is not TransferState.DONE:
            self.state = TransferState.FAILED
        settle(self.done, error=error)

    def _on_done(self, future: asyncio.Future) -> None:
        # the data channel never outlives its transfer
        if self._task is not None and not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()
        if self._channel is not None:
            self._channel.close()


class DataChannelBroker:
    """
    Runs PASV handshakes over a control session and opens the matching data
    connections through ``connector``.

    Args:
        session: Control session the handshakes are issued on
        connector: Coroutine function ``(host, port) -> Channel``
        host: Control connection host, used when a server advertises 0.0.0.0
    """

    def __init__(self, session: ControlSession, connector: Connector, host: Optional[str] = None) -> None:
        self.session = session
        self.connector = connector
        self.host = host

    def locate(self, address: PassiveAddress) -> PassiveAddress:
        if address.host == "0.0.0.0" and self.host:
            return PassiveAddress(self.host, address.port)
        return address

    def receive(self, command: str) -> asyncio.Future:
        """Run ``command`` and collect everything the server sends back."""
        return Transfer(self, command, Direction.RECEIVE).start()

    def send(self, command: str, payload: bytes) -> asyncio.Future:
        """Run ``command`` and push ``payload`` once the server says 150."""
        return Transfer(self, command, Direction.SEND, payload).start()
