#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-20 09:48:02 krylon>
#
# /data/code/python/devconf/test_netfile.py
# created on 20. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.test_netfile

(c) 2026 Benjamin Walkenhorst
"""

import unittest
from typing import Final

from devconf.netfile import Document, mask_to_prefix, prefix_to_mask

sample: Final[str] = """# Managed by hand
[Match]
Name=eth0

[Network]
Address=10.0.0.5/8
DNS=10.0.0.1
LinkLocalAddressing=no

[Route]
Destination=172.16.0.0/12
Gateway=10.0.0.254
"""


class TestMask(unittest.TestCase):
    """Test netmask conversions."""

    def test_01_known_values(self) -> None:
        """Convert a few well-known masks."""
        self.assertEqual(prefix_to_mask(24), "255.255.255.0")
        self.assertEqual(prefix_to_mask(0), "0.0.0.0")
        self.assertEqual(prefix_to_mask(32), "255.255.255.255")
        self.assertEqual(prefix_to_mask(20), "255.255.240.0")
        self.assertEqual(mask_to_prefix("255.255.255.0"), 24)
        self.assertEqual(mask_to_prefix("255.255.255.128"), 25)
        self.assertEqual(mask_to_prefix("0.0.0.0"), 0)

    def test_02_all_prefixes(self) -> None:
        """Converting a prefix to a mask and back is lossless."""
        for pfx in range(33):
            self.assertEqual(mask_to_prefix(prefix_to_mask(pfx)), pfx)

    def test_03_invalid(self) -> None:
        """Invalid input."""
        self.assertEqual(mask_to_prefix("not a mask"), 0)
        self.assertEqual(mask_to_prefix(""), 0)
        self.assertEqual(mask_to_prefix("255.0.255.0"), 8)
        with self.assertRaises(ValueError):
            prefix_to_mask(33)
        with self.assertRaises(ValueError):
            prefix_to_mask(-1)


class TestDocument(unittest.TestCase):
    """Test the section-structured Document."""

    def test_01_parse_render(self) -> None:
        """A Document renders to the text it was parsed from."""
        doc: Final[Document] = Document.parse(sample)
        self.assertEqual(doc.render(), sample)
        self.assertEqual([s.name for s in doc.sections], [None, "Match", "Network", "Route"])
        self.assertEqual(doc.get("Network", "DNS"), "10.0.0.1")
        self.assertEqual(doc.get("Route", "Gateway"), "10.0.0.254")
        self.assertEqual(doc.get("Network", "Gateway"), "")
        self.assertEqual(doc.get("Link", "MTU"), "")

    def test_02_replace(self) -> None:
        """Upserting an existing key replaces that line in place."""
        doc: Final[Document] = Document.parse(sample)
        self.assertTrue(doc.upsert("Network", "DNS", "9.9.9.9"))
        text: Final[str] = doc.render()
        self.assertEqual(text, sample.replace("DNS=10.0.0.1", "DNS=9.9.9.9"))

    def test_03_append(self) -> None:
        """Upserting a new key appends it to the end of the section."""
        doc: Final[Document] = Document.parse(sample)
        doc.upsert("Network", "Gateway", "10.0.0.254")
        lines: Final[list[str]] = doc.render().splitlines()
        idx: Final[int] = lines.index("Gateway=10.0.0.254")
        self.assertEqual(lines[idx - 1], "LinkLocalAddressing=no")
        self.assertEqual(lines[idx + 1], "")
        self.assertEqual(lines[idx + 2], "[Route]")

    def test_04_new_section(self) -> None:
        """Upserting into a missing section appends the section."""
        doc: Final[Document] = Document.parse("[Match]\nName=eth1\n")
        doc.upsert("Network", "DHCP", "yes")
        self.assertEqual(doc.render(), "[Match]\nName=eth1\n\n[Network]\nDHCP=yes\n")

        empty: Final[Document] = Document.parse("")
        empty.upsert("Network", "DHCP", "no")
        self.assertEqual(empty.render(), "[Network]\nDHCP=no\n")

    def test_05_empty_value(self) -> None:
        """An empty value never changes anything."""
        doc: Final[Document] = Document.parse(sample)
        self.assertFalse(doc.upsert("Network", "DNS", ""))
        self.assertFalse(doc.upsert("Bogus", "Key", ""))
        self.assertEqual(doc.render(), sample)

    def test_06_idempotent(self) -> None:
        """Applying the same changes twice yields the same text."""
        changes: Final[list[tuple[str, str, str]]] = [
            ("Network", "Address", "192.168.1.50/24"),
            ("Network", "Gateway", "192.168.1.1"),
            ("Network", "DHCP", "no"),
            ("DHCPv4", "UseDNS", "no"),
        ]

        doc: Document = Document.parse(sample)
        for sec, key, val in changes:
            doc.upsert(sec, key, val)
        first: Final[str] = doc.render()

        doc = Document.parse(first)
        for sec, key, val in changes:
            self.assertFalse(doc.upsert(sec, key, val))
        self.assertEqual(doc.render(), first)
        self.assertEqual(first.count("Address="), 1)
        self.assertEqual(first.count("[DHCPv4]"), 1)

    def test_07_locality(self) -> None:
        """Upserting into one section leaves the others alone."""
        doc: Final[Document] = Document.parse(sample)
        before: Final[dict] = {s.name: list(s.lines) for s in doc.sections if s.name != "Network"}

        doc.upsert("Network", "Address", "172.16.1.1/16")
        doc.upsert("Network", "Gateway", "172.16.0.1")
        doc.upsert("Network", "NTP", "172.16.0.2")

        after: Final[dict] = {s.name: list(s.lines) for s in doc.sections if s.name != "Network"}
        self.assertEqual(before, after)

    def test_08_first_occurrence(self) -> None:
        """Only the first of several lines with the same key is replaced."""
        doc: Final[Document] = Document.parse("[Network]\nDNS=1.1.1.1\nDNS=8.8.8.8\n")
        doc.upsert("Network", "DNS", "9.9.9.9")
        self.assertEqual(doc.render(), "[Network]\nDNS=9.9.9.9\nDNS=8.8.8.8\n")

    def test_09_prefix_keys(self) -> None:
        """A key is not confused with a longer key that starts the same way."""
        doc: Final[Document] = Document.parse("[Network]\nDNSSEC=no\n#DNS=1.2.3.4\n")
        doc.upsert("Network", "DNS", "9.9.9.9")
        self.assertEqual(doc.render(), "[Network]\nDNSSEC=no\n#DNS=1.2.3.4\nDNS=9.9.9.9\n")


# Local Variables: #
# python-indent: 4 #
# End: #
