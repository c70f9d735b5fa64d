"""In-memory stand-ins for the network side of FtpPipe."""

import asyncio
from typing import List, Tuple, Union

from ftppipe.core import FtpClient


class FakeChannel:
    """Behaves like ftppipe.transport.Channel, minus the socket."""

    def __init__(self) -> None:
        self.incoming: "asyncio.Queue[bytes]" = asyncio.Queue()
        self.written: List[bytes] = []
        self.shut = False
        self.closed = False

    def feed(self, data: Union[bytes, str]) -> None:
        if isinstance(data, str):
            data = data.encode()
        self.incoming.put_nowait(data)

    def feed_lines(self, *lines: str) -> None:
        self.feed("".join(f"{line}\r\n" for line in lines))

    def feed_eof(self) -> None:
        self.incoming.put_nowait(b"")

    async def read(self, count: int = -1) -> bytes:
        data = await self.incoming.get()
        if not data:
            # end of stream stays ended
            self.incoming.put_nowait(b"")
        return data

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("Channel closed")
        self.written.append(bytes(data))

    async def shutdown(self) -> None:
        self.shut = True

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(b"")

    @property
    def data(self) -> bytes:
        return b"".join(self.written)

    @property
    def lines(self) -> List[str]:
        """Command lines written so far, CRLF stripped."""
        return self.data.decode().split("\r\n")[:-1]


class FakeConnector:
    """Hands out prepared data channels in order and records where they went."""

    def __init__(self, *channels: FakeChannel) -> None:
        self.channels = list(channels)
        self.calls: List[Tuple[str, int]] = []

    async def __call__(self, host: str, port: int) -> FakeChannel:
        self.calls.append((host, port))
        return self.channels.pop(0)


async def settle(rounds: int = 25) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def connected(control: FakeChannel, endpoint: str = "ftp://ftp.example.com", **kwargs) -> FtpClient:
    """A client whose connect() already saw the 220 greeting.

    ftppipe.core.open_channel must be patched to return ``control`` first.
    """
    control.feed_lines("220 Service ready")
    client = FtpClient(endpoint, **kwargs)
    await client.connect()
    return client
