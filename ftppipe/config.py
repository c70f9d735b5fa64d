from dataclasses import dataclass


@dataclass
class Timeout:
    """
    Timeout configuration for FTP sessions.

    Bounds every phase where a session can sit waiting on the network. The
    control channel itself never times out while idle: a session with nothing
    queued may wait for the caller indefinitely. Instead, each client
    operation runs under ``operation``. When that runs out, the whole
    session is torn down and every queued command fails, because a control
    channel with a reply still owed cannot be resynchronised.

    Attributes:
        connect: Time to wait for a TCP handshake, control or data.
                 Covers name resolution as well.
        read: Idle time allowed between reads on a data channel.
              A server that stops sending mid-transfer fails the transfer.
        write: Time to wait for written data to drain, on either channel.
        operation: Upper bound for one complete client operation.
                   Acts as the failsafe for replies that never come.
    """

    connect: float = 5.0  # Time to wait for TCP connection establishment
    read: float = 30.0  # Idle time allowed between data channel reads
    write: float = 10.0  # Time to wait for written data to drain
    operation: float = 60.0  # Total time limit for one client operation

    def __post_init__(self) -> None:
        """
        Validate timeout configuration after initialization.

        All values must be positive, and the operation timeout has to leave
        room for the individual phases it contains.

        Returns:
            None

        Raises:
            ValueError: If timeout values are invalid or inconsistent.
        """
        if self.connect <= 0:
            raise ValueError("Connect timeout must be positive")
        if self.read <= 0:
            raise ValueError("Read timeout must be positive")
        if self.write <= 0:
            raise ValueError("Write timeout must be positive")
        if self.operation <= 0:
            raise ValueError("Operation timeout must be positive")

        required = max(self.connect, self.read, self.write)
        if self.operation < required:
            raise ValueError(f"Operation timeout ({self.operation}) must be at least {required}")
