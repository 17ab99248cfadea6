#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 20:07:19 krylon>
#
# /data/code/python/devconf/netfile.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.netfile

(c) 2026 Benjamin Walkenhorst

Section-structured configuration files, as used by systemd-networkd:

    [Match]
    Name=eth0

    [Network]
    Address=192.168.1.10/24
    DHCP=no

A Document keeps every line it was parsed from. Changes are made through
upsert(), which touches only the one line it is asked to, so everything else
survives a parse/render cycle unchanged.
"""

import re
from dataclasses import dataclass, field
from ipaddress import AddressValueError, IPv4Address, IPv4Network
from typing import Final, Optional

header_pat: Final[re.Pattern] = re.compile(r"^\s*\[([^\]]*)\]\s*$")
comment_chars: Final[tuple[str, ...]] = ("#", ";")


def prefix_to_mask(pfx: int) -> str:
    """Convert a prefix length (0-32) into a dotted netmask."""
    if not 0 <= pfx <= 32:
        raise ValueError(f"Invalid prefix length {pfx}")
    return str(IPv4Network(f"0.0.0.0/{pfx}").netmask)


def mask_to_prefix(mask: str) -> int:
    """Count the leading one-bits of a dotted netmask. Invalid masks yield 0."""
    try:
        bits: int = int(IPv4Address(mask.strip()))
    except AddressValueError:
        return 0

    cnt: int = 0
    for i in range(31, -1, -1):
        if not bits & (1 << i):
            break
        cnt += 1
    return cnt


def split_line(line: str) -> tuple[str, Optional[str]]:
    """Split a Key=Value line. Return (key, None) for anything else."""
    s: Final[str] = line.strip()
    if s == "" or s.startswith(comment_chars):
        return ("", None)
    key, eq, val = s.partition("=")
    if eq == "":
        return (key.strip(), None)
    return (key.strip(), val.strip())


@dataclass(kw_only=True, slots=True)
class Section:
    """Section is a bracket-named block of lines.

    The header of the anonymous section before the first bracket line is None.
    """

    name: Optional[str]
    header: Optional[str] = None
    lines: list[str] = field(default_factory=list)
    detached: bool = False

    def find(self, key: str) -> int:
        """Return the index of the first line setting <key>, or -1."""
        for idx, line in enumerate(self.lines):
            k, v = split_line(line)
            if v is not None and k == key:
                return idx
        return -1

    def get(self, key: str) -> str:
        """Return the value of the first line setting <key>."""
        idx: Final[int] = self.find(key)
        if idx < 0:
            return ""
        return split_line(self.lines[idx])[1] or ""

    def end(self) -> int:
        """Return the index just past the last non-blank line."""
        idx: int = len(self.lines)
        while idx > 0 and self.lines[idx - 1].strip() == "":
            idx -= 1
        return idx


@dataclass(kw_only=True, slots=True)
class Document:
    """Document is an ordered list of Sections."""

    sections: list[Section] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "Document":
        """Parse the content of a configuration file."""
        doc: Document = cls()
        cur: Section = Section(name=None)
        doc.sections.append(cur)

        for line in text.splitlines():
            m = header_pat.match(line)
            if m is not None:
                cur = Section(name=m[1].strip(), header=line)
                doc.sections.append(cur)
            else:
                cur.lines.append(line)

        if not doc.sections[0].lines:
            del doc.sections[0]

        return doc

    @classmethod
    def template(cls, iface: str) -> "Document":
        """Return the skeleton of a fresh .network file for <iface>."""
        return cls.parse(f"[Match]\nName={iface}\n\n[Network]\n")

    def section(self, name: str) -> Optional[Section]:
        """Return the first Section called <name>."""
        for sec in self.sections:
            if sec.name == name:
                return sec
        return None

    def get(self, section: str, key: str) -> str:
        """Return the value of <key> in <section>, or an empty string."""
        sec: Final[Optional[Section]] = self.section(section)
        if sec is None:
            return ""
        return sec.get(key)

    def add_section(self, name: str) -> Section:
        """Append a new, empty Section to the end of the Document."""
        sec: Final[Section] = Section(name=name, header=f"[{name}]", detached=True)
        self.sections.append(sec)
        return sec

    def upsert(self, section: str, key: str, value: str) -> bool:
        """Set <key> to <value> within <section>.

        The first line setting <key> is replaced. If there is none, a line is
        added at the end of the section. The section is appended to the
        Document if it does not exist. An empty value changes nothing.
        Return True if the Document was changed.
        """
        if value == "":
            return False

        sec: Optional[Section] = self.section(section)
        if sec is None:
            sec = self.add_section(section)

        line: Final[str] = f"{key}={value}"
        idx: Final[int] = sec.find(key)
        if idx >= 0:
            if sec.lines[idx] == line:
                return False
            sec.lines[idx] = line
        else:
            sec.lines.insert(sec.end(), line)
        return True

    def render(self) -> str:
        """Return the text of the Document, ending in exactly one newline."""
        out: list[str] = []
        for sec in self.sections:
            if sec.header is not None:
                if sec.detached and out and out[-1].strip() != "":
                    out.append("")
                out.append(sec.header)
            out.extend(sec.lines)

        while out and out[-1].strip() == "":
            out.pop()

        if not out:
            return ""
        return "\n".join(out) + "\n"


# Local Variables: #
# python-indent: 4 #
# End: #
