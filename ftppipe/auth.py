import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

Username = str
Password = str
GuestKey = str

ANONYMOUS = "anonymous"


@dataclass
class Basic:
    """
    Plaintext credentials for the USER/PASS exchange.

    FTP sends both values in the clear on the control channel. That is
    acceptable on trusted networks only, since nothing here encrypts the
    session.

    Attributes:
        user: Account name sent with USER.
        password: Sent with PASS if the server asks for one (331).
                  None means the account is expected to need no password.
    """

    user: Username
    password: Optional[Password] = None

    def __post_init__(self) -> None:
        """
        Validate the credentials.

        Returns:
            None

        Raises:
            ValueError: If the user name is empty or contains a line break.
        """
        if not self.user.strip():
            raise ValueError("Username cannot be empty or whitespace")

        # A CR or LF would end the command line early and inject another
        for value in (self.user, self.password or ""):
            if "\r" in value or "\n" in value:
                raise ValueError("Credentials cannot contain line breaks")

        if self.password is not None and len(self.password) < 8:
            warnings.warn(
                "Password is shorter than 8 characters. "
                "Consider using a stronger password for better security."
            )

    @property
    def login(self) -> Tuple[Username, Optional[Password]]:
        return self.user, self.password


@dataclass
class Guest:
    """
    Anonymous FTP login.

    Logs in as "anonymous". By convention the password is an identifier for
    the person connecting, usually an email address. Public servers may log
    it.

    Attributes:
        key: Identifier sent as the PASS argument.
    """

    key: GuestKey = "guest@"

    def __post_init__(self) -> None:
        """
        Validate the guest identifier.

        Returns:
            None

        Raises:
            ValueError: If the key is empty or contains a line break.
        """
        if not self.key.strip():
            raise ValueError("Guest key cannot be empty or whitespace")

        if "\r" in self.key or "\n" in self.key:
            raise ValueError("Guest key cannot contain line breaks")

        if "@" not in self.key:
            warnings.warn(
                "Guest key does not look like an email address. "
                "Some servers reject anonymous logins without one."
            )

    @property
    def login(self) -> Tuple[Username, Optional[Password]]:
        return ANONYMOUS, self.key
