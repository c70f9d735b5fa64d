import asyncio
from typing import Optional

import aioftp

from .errors import TransportError

BLOCK_SIZE = 8192


class Channel(aioftp.StreamIO):
    """
    A byte stream over one TCP connection.

    aioftp's StreamIO already gives timed ``read``/``write``/``close``; the
    data channel of a STOR also needs to tell the server "that's all", so a
    half-close is added on top.
    """

    async def shutdown(self) -> None:
        """Close the write side, leaving the read side open."""
        if self.writer.can_write_eof():
            self.writer.write_eof()
        await self.writer.drain()


async def open_channel(
    host: str,
    port: int,
    connect: Optional[float] = None,
    read: Optional[float] = None,
    write: Optional[float] = None,
) -> Channel:
    """Connect to host:port and wrap the streams as a Channel.

    Args:
        host: Hostname or dotted IPv4 address
        port: TCP port
        connect: Seconds to wait for the TCP handshake (None waits forever)
        read: Idle timeout for each read (None waits forever)
        write: Timeout for each write to drain

    Returns:
        Channel: The connected stream

    Raises:
        TransportError: If resolving or connecting fails or times out
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=connect
        )
    except asyncio.TimeoutError:
        raise TransportError(f"Connection to {host}:{port} timed out")
    except OSError as error:
        raise TransportError(f"Cannot connect to {host}:{port}: {error}")
    return Channel(reader, writer, read_timeout=read, write_timeout=write)
