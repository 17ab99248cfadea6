#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:44:02 krylon>
#
# /data/code/python/devconf/codec.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.codec

(c) 2026 Benjamin Walkenhorst

Messages on the wire are plain text, one per datagram:

    COMMAND|KEY1=VALUE1|KEY2=VALUE2|FLAG

Commands and keys are case-insensitive. Segments without a '=' are not
fields; they are kept as flags (e.g. the NET_ACK in a CFG_ACK reply).
Decoding never fails.
"""

from dataclasses import dataclass, field
from typing import Final, Iterable, Mapping, Optional, Sequence, Union

sep: Final[str] = "|"
max_datagram: Final[int] = 2048

Fields = Union[Mapping[str, str], Sequence[tuple[str, str]]]


@dataclass(kw_only=True, slots=True)
class Message:
    """Message is a decoded datagram."""

    command: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    flags: list[str] = field(default_factory=list)
    raw: str = ""

    def get(self, key: str, default: str = "") -> str:
        """Return the value of field <key>, or <default>."""
        return self.fields.get(key.upper(), default)

    def first(self, *keys: str) -> str:
        """Return the first non-empty value among <keys>."""
        for k in keys:
            val = self.get(k)
            if val:
                return val
        return ""

    def has_flag(self, flag: str) -> bool:
        """Return True if the bare segment <flag> is part of the Message."""
        return flag.upper() in self.flags

    def has_prefix(self, prefix: str) -> bool:
        """Return True if the command starts with <prefix>."""
        return self.command.startswith(prefix.upper())


def encode(command: str, fields: Optional[Fields] = None, flags: Iterable[str] = ()) -> str:
    """Build a wire message.

    Fields with an empty value are left out. Field order is preserved.
    """
    parts: list[str] = [command]
    items: Iterable[tuple[str, str]]

    if fields is None:
        items = ()
    elif isinstance(fields, Mapping):
        items = fields.items()
    else:
        items = fields

    for key, val in items:
        val = val.strip() if val else ""
        if val != "":
            parts.append(f"{key}={val}")

    parts.extend(x for x in flags if x)
    return sep.join(parts)


def decode(raw: Union[str, bytes]) -> Message:
    """Parse a wire message. Malformed input yields a Message without fields."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    text: Final[str] = raw.strip()
    segments: Final[list[str]] = text.split(sep)
    msg: Message = Message(command=segments[0].strip().upper(), raw=text)

    for seg in segments[1:]:
        key, eq, val = seg.partition("=")
        key = key.strip().upper()
        if eq == "":
            if key != "":
                msg.flags.append(key)
            continue
        if key == "":
            continue
        msg.fields[key] = val.strip()

    return msg


def sanitize(text: str) -> str:
    """Make <text> safe to use as a field value."""
    return " ".join(text.replace(sep, ":").split())


# Local Variables: #
# python-indent: 4 #
# End: #
