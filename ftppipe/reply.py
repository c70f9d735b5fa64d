import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, NoReturn, Optional, Union

from .errors import RemoteError

CRLF = b"\r\n"

# Standard reply texts, used when a server sends a bare code
codes = {
    # 1xx - "Hold on, I'm working on it"
    110: "Restart marker reply",
    120: "Service ready in n minutes",
    125: "Data connection already open; transfer starting",
    150: "File status okay; about to open data connection",
    # 2xx - "Success! Everything went great"
    200: "Command okay",
    202: "Command not implemented, superfluous at this site",
    211: "System status, or system help reply",
    212: "Directory status",
    213: "File status",
    214: "Help message",
    215: "NAME system type",
    220: "Service ready for new user",
    221: "Service closing control connection",
    225: "Data connection open; no transfer in progress",
    226: "Closing data connection",
    227: "Entering Passive Mode",
    230: "User logged in, proceed",
    250: "Requested file action okay, completed",
    257: "PATHNAME created",
    # 3xx - "I need more info from you"
    331: "User name okay, need password",
    332: "Need account for login",
    350: "Requested file action pending further information",
    # 4xx - "Something's wrong, but we can try again"
    421: "Service not available, closing control connection",
    425: "Can't open data connection",
    426: "Connection closed; transfer aborted",
    450: "Requested file action not taken",
    451: "Requested action aborted: local error in processing",
    452: "Requested action not taken; insufficient storage space",
    # 5xx - "Nope, that's not going to work"
    500: "Syntax error, command unrecognized",
    501: "Syntax error in parameters or arguments",
    502: "Command not implemented",
    503: "Bad sequence of commands",
    504: "Command not implemented for that parameter",
    530: "Not logged in",
    532: "Need account for storing files",
    550: "Requested action not taken; file unavailable",
    551: "Requested action aborted: page type unknown",
    552: "Requested file action aborted; exceeded storage allocation",
    553: "Requested action not taken; file name not allowed",
}


class Category(Enum):
    """Reply class, taken from the first digit of the code."""

    INFO = "info"
    OK = "ok"
    MORE = "more"
    ERR = "err"

    @classmethod
    def of(cls, code: int) -> "Category":
        return _CATEGORIES[code // 100]


_CATEGORIES = {
    1: Category.INFO,
    2: Category.OK,
    3: Category.MORE,
    4: Category.ERR,
    5: Category.ERR,
}


@dataclass(frozen=True)
class ReplyLine:
    """One CRLF-terminated line from the control channel."""

    code: Optional[int]
    is_final: bool
    text: str

    def __str__(self) -> str:
        if self.code is None:
            return self.text
        return f"{self.code}{' ' if self.is_final else '-'}{self.text}"


@dataclass
class Reply:
    """
    A complete reply group: the final line plus whatever continuation lines
    arrived immediately before it.

    Attributes:
        code: Code of the final line.
        message: Text of the final line.
        lines: Continuation texts in arrival order.
    """

    code: int
    message: str
    lines: List[str] = field(default_factory=list)

    @property
    def category(self) -> Category:
        return Category.of(self.code)

    def __str__(self) -> str:
        return f"{self.code} {self.message}"


ReplyKey = Union[int, Category]
Handler = Callable[[Reply], Any]
Codemap = Mapping[ReplyKey, Handler]


def is_reply_key(key: Any) -> bool:
    if isinstance(key, Category):
        return True
    return isinstance(key, int) and not isinstance(key, bool) and 100 <= key <= 599


def resolve(codemap: Codemap, code: int) -> Optional[Handler]:
    """Find the handler for a code. An exact code wins over its category."""
    handler = codemap.get(code)
    if handler is None:
        handler = codemap.get(Category.of(code))
    return handler


def raise_remote(reply: Reply) -> NoReturn:
    """Handler for error categories: turn the reply into a RemoteError."""
    raise RemoteError(reply.code, reply.message or codes.get(reply.code, ""), reply.lines)


class ReplyParser:
    """
    Splits the control channel byte stream into classified reply lines.

    Bytes are buffered until a full CRLF terminator shows up, so a line split
    across reads is only ever reported once, whole.

    "NNN text" is a final line, "NNN-text" a continuation line, and anything
    else comes back with ``code=None`` for the session to judge.
    """

    final = re.compile(r"^([1-5]\d\d)(?: +(.*))?$")
    continuation = re.compile(r"^([1-5]\d\d)-(.*)$")

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.buffer = bytearray()

    def feed(self, data: bytes) -> List[ReplyLine]:
        self.buffer.extend(data)
        lines = []
        while True:
            end = self.buffer.find(CRLF)
            if end < 0:
                break
            raw = bytes(self.buffer[:end])
            del self.buffer[: end + len(CRLF)]
            lines.append(self.classify(raw.decode(self.encoding, errors="replace")))
        return lines

    def classify(self, line: str) -> ReplyLine:
        match = self.final.match(line)
        if match:
            return ReplyLine(int(match.group(1)), True, match.group(2) or "")
        match = self.continuation.match(line)
        if match:
            return ReplyLine(int(match.group(1)), False, match.group(2))
        return ReplyLine(None, False, line)

    def reset(self) -> None:
        """Throw away a partial line. Used when the transport goes away."""
        self.buffer.clear()

