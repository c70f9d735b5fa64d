import calendar
import re
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import aioftp

# Month names as ls prints them, independent of the process locale
MONTHS = {
    name: number
    for number, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}

KINDS = {"-": "f", "d": "d", "l": "l"}

TYPES = {
    "-": stat.S_IFREG,
    "d": stat.S_IFDIR,
    "l": stat.S_IFLNK,
    "b": stat.S_IFBLK,
    "c": stat.S_IFCHR,
    "p": stat.S_IFIFO,
    "s": stat.S_IFSOCK,
}

LINE = re.compile(
    r"^(?P<type>[-dlbcps])(?P<perms>[-rwxsStT]{9})\S*\s+"
    r"\d+\s+"  # links
    r"\S+\s+(?:\S+\s+)?"  # owner, optional group
    r"(?P<size>\d+)\s+"
    r"(?P<month>[A-Za-z]{3})\s+(?P<day>\d{1,2})\s+(?P<when>\d{1,2}:\d{2}|\d{4})\s+"
    r"(?P<name>.+)$"
)


# Execute slots that may carry setuid, setgid or sticky, as ls prints them.
# Lowercase means the execute bit is set as well.
SPECIAL = {
    2: ("sS", stat.S_ISUID),
    5: ("sS", stat.S_ISGID),
    8: ("tT", stat.S_ISVTX),
}


@dataclass
class Entry:
    """
    One file record from a LIST or STAT listing.

    Attributes:
        name: File name as listed
        kind: "f" for files, "d" for directories, "l" for symlinks, "?" otherwise
        size: Size in bytes
        mtime: Last modification as UNIX epoch seconds (UTC), None if unreadable
        mode: Full st_mode, file type bits included
        target: Link destination for symlinks
    """

    name: str
    kind: str
    size: int
    mtime: Optional[int]
    mode: int
    target: Optional[str] = None


def parse_time(month: str, day: str, when: str, now: Optional[datetime] = None) -> Optional[int]:
    """Turn ls-style "Feb 2 2005" or "Feb 2 13:45" into epoch seconds.

    A date without a year is taken from the current year, or the one before
    if that would put it in the future.
    """
    number = MONTHS.get(month.lower())
    if number is None:
        return None
    now = now or datetime.now(timezone.utc)
    try:
        if ":" in when:
            hour, minute = (int(part) for part in when.split(":"))
            moment = datetime(now.year, number, int(day), hour, minute, tzinfo=timezone.utc)
            if (moment - now).days > 0:
                moment = moment.replace(year=now.year - 1)
        else:
            moment = datetime(int(when), number, int(day), tzinfo=timezone.utc)
    except ValueError:
        return None
    return calendar.timegm(moment.utctimetuple())


def parse_mode(perms: str) -> int:
    """Permission bits of a 9-character "rwxr-xr-x" string, special bits included."""
    plain = list(perms)
    bits = 0
    for index, (letters, flag) in SPECIAL.items():
        if plain[index] in letters:
            bits |= flag
            plain[index] = "x" if plain[index].islower() else "-"
    return bits | aioftp.Client.parse_unix_mode("".join(plain))


def parse_line(line: str, now: Optional[datetime] = None) -> Entry:
    """Parse one unix-style listing line.

    Args:
        line: e.g. "-rw-r--r-- 1 user user 100 Feb 2 2005 file"
        now: Reference time for dates that carry no year

    Returns:
        Entry: The parsed record

    Raises:
        ValueError: If the line is not a recognisable listing line
    """
    match = LINE.match(line.rstrip("\r\n"))
    if match is None:
        raise ValueError(f"Unrecognised listing line: {line!r}")

    kind = match.group("type")
    try:
        mode = TYPES[kind] | parse_mode(match.group("perms"))
    except (KeyError, ValueError):
        raise ValueError(f"Unrecognised permissions in listing line: {line!r}")
    name = match.group("name")
    target = None
    if kind == "l" and " -> " in name:
        name, target = name.split(" -> ", 1)

    return Entry(
        name=name,
        kind=KINDS.get(kind, "?"),
        size=int(match.group("size")),
        mtime=parse_time(match.group("month"), match.group("day"), match.group("when"), now),
        mode=mode,
        target=target,
    )


def parse_listing(text: str, now: Optional[datetime] = None) -> List[Entry]:
    """Parse a whole LIST body.

    Blank lines, "total N" headers, the "." and ".." entries and anything
    unparsable are skipped.
    """
    entries = []
    for line in text.splitlines():
        if not line.strip() or line.startswith("total "):
            continue
        try:
            entry = parse_line(line, now)
        except ValueError:
            continue
        if entry.name in (".", ".."):
            continue
        entries.append(entry)
    return entries
