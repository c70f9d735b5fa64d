# Make sure you're running a modern Python version
import sys

if sys.version_info < (3, 9):
    raise RuntimeError("FtpPipe needs Python 3.9 or newer to work properly")

__version__ = "1.0.0"
__author__ = "Andrew Hernandez"
__email__ = "andromedeyz@hotmail.com"
__license__ = "MIT"
__description__ = "An async FTP client with a pipelined command queue and passive-mode data transfers."
__url__ = "http://github.com/ApaxPhoenix/FtpPipe"

# The main FtpPipe class - builds configured clients from one endpoint
from .ftp import FtpPipe

# The client itself - every FTP operation lives here
from .core import FtpClient

# Fine-tune how long things may take
from .config import Timeout

# Plaintext login or anonymous access
from .auth import Basic, Guest

# Everything that can go wrong, in four flavours
from .errors import (
    FtpError,
    ProtocolError,  # The server said something nonsensical
    RemoteError,  # The server said no (4xx/5xx)
    TransportError,  # The network let us down
    UsageError,  # The caller passed something unusable
)

# The protocol engine, for building commands of your own
from .reply import Category, Reply, ReplyParser, codes
from .session import ControlSession, Followup
from .transfer import DataChannelBroker, PassiveAddress
from .listing import Entry

# Everything you can import and use
__all__ = [
    # The main classes you'll work with
    "FtpPipe",
    "FtpClient",
    # Configuration options
    "Timeout",
    # Authentication types
    "Basic",
    "Guest",
    # Errors
    "FtpError",
    "ProtocolError",
    "RemoteError",
    "TransportError",
    "UsageError",
    # Protocol engine
    "Category",
    "Reply",
    "ReplyParser",
    "ControlSession",
    "Followup",
    "DataChannelBroker",
    "PassiveAddress",
    "Entry",
    "codes",
    # Package info
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    "__description__",
    "__url__",
]
