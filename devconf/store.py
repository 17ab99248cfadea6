#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:02:26 krylon>
#
# /data/code/python/devconf/store.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.store

(c) 2026 Benjamin Walkenhorst

Persistent state of an agent: its identifier and the DeviceRecord.
Nothing is cached in memory, every call goes to the file system.
"""

import json
import logging
import time
from pathlib import Path
from threading import Lock
from typing import Callable, Final, Optional, Union

from devconf import common
from devconf.common import DevConfError
from devconf.model import DeviceRecord


class PersistenceError(DevConfError):
    """PersistenceError indicates a failure to save the agent's state."""


def make_identifier(ms: Optional[int] = None) -> str:
    """Derive an identifier from a timestamp in milliseconds.

    The timestamp is rendered in uppercase hex, prefixed with a zero, and
    split into groups of four characters, e.g. 018B-CFE5-6800.
    """
    if ms is None:
        ms = time.time_ns() // 1_000_000
    digits: Final[str] = f"0{ms:X}"
    return "-".join(digits[i:i+4] for i in range(0, len(digits), 4))


class IdentityStore:
    """IdentityStore keeps the identifier of the device in a file.

    When a new identifier is created, it is also written to the hostname file
    as <prefix><identifier>, failing to do so is not an error.
    """

    __slots__ = [
        "clock",
        "hostname_path",
        "hostname_prefix",
        "log",
        "path",
    ]

    def __init__(self,
                 path: Union[Path, str] = "/etc/unique_ID",
                 hostname_path: Union[Path, str, None] = "/etc/hostname",
                 hostname_prefix: str = "Kan-",
                 clock: Optional[Callable[[], int]] = None) -> None:
        self.path = Path(path)
        self.hostname_path = Path(hostname_path) if hostname_path else None
        self.hostname_prefix = hostname_prefix
        self.clock = clock
        self.log = common.get_logger("store")

    def load(self) -> str:
        """Return the stored identifier, or an empty string."""
        try:
            return self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as err:
            self.log.error("Cannot read identity file %s: %s",
                           self.path,
                           err)
            return ""

    def ensure_identity(self) -> str:
        """Return the identifier of this device, creating one if necessary.

        If the new identifier cannot be saved, it is still returned, so the
        device can answer requests, but it will not be stable.
        """
        ident: str = self.load()
        if ident != "":
            return ident

        ident = make_identifier(self.clock() if self.clock is not None else None)
        self.log.info("Create new device identifier %s", ident)

        try:
            common.write_atomic(self.path, ident)
        except OSError as err:
            self.log.error("Failed to save identifier to %s: %s",
                           self.path,
                           err)
            return ident

        if self.hostname_path is not None:
            label: Final[str] = f"{self.hostname_prefix}{ident}"
            try:
                common.write_atomic(self.hostname_path, label + "\n")
            except OSError as err:
                self.log.warning("Failed to write hostname %s to %s: %s",
                                 label,
                                 self.hostname_path,
                                 err)

        return ident


class MemoryIdentityStore(IdentityStore):
    """MemoryIdentityStore keeps the identifier in memory, for testing."""

    __slots__ = ["ident"]

    def __init__(self, ident: str = "") -> None:  # pylint: disable-msg=W0231
        self.ident = ident
        self.log = common.get_logger("store")

    def load(self) -> str:
        return self.ident

    def ensure_identity(self) -> str:
        if self.ident == "":
            self.ident = make_identifier()
        return self.ident


class RecordStore:
    """RecordStore keeps the DeviceRecord in a JSON file."""

    __slots__ = [
        "lock",
        "log",
        "path",
    ]

    def __init__(self, path: Optional[Union[Path, str]] = None) -> None:
        if path is None:
            self.path = common.path.record
        else:
            self.path = Path(path)
        self.lock = Lock()
        self.log = common.get_logger("store")

    def load(self) -> Optional[DeviceRecord]:
        """Load the stored record. Return None if there is none or it cannot be parsed."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
            self.log.error("Cannot load device record from %s: %s",
                           self.path,
                           err)
            return None

        if not isinstance(data, dict):
            self.log.error("Device record in %s is not an object", self.path)
            return None
        return DeviceRecord.from_json(data)

    def save(self, rec: DeviceRecord) -> None:
        """Write <rec> to disk, replacing the previous content."""
        try:
            common.write_atomic(self.path, json.dumps(rec.to_json(), indent=2))
        except OSError as err:
            self.log.error("Failed to save device record to %s: %s",
                           self.path,
                           err)
            raise PersistenceError(f"Cannot write {self.path}: {err}") from err

    def merge_and_save(self, partial: DeviceRecord) -> DeviceRecord:
        """Overwrite the stored fields that are non-empty in <partial>."""
        with self.lock:
            existing: Final[DeviceRecord] = self.load() or DeviceRecord()
            merged: Final[DeviceRecord] = existing.merge(partial)
            self.save(merged)
            self.log.debug("Saved device record %s", merged)
            return merged


class MemoryRecordStore(RecordStore):
    """MemoryRecordStore keeps the DeviceRecord in memory, for testing."""

    __slots__ = [
        "fail",
        "rec",
    ]

    def __init__(self, rec: Optional[DeviceRecord] = None, fail: bool = False) -> None:  # noqa # pylint: disable-msg=W0231
        self.rec = rec
        self.fail = fail
        self.lock = Lock()
        self.log = common.get_logger("store")

    def load(self) -> Optional[DeviceRecord]:
        return self.rec

    def save(self, rec: DeviceRecord) -> None:
        if self.fail:
            raise PersistenceError("Saving is disabled")
        self.rec = rec


# Local Variables: #
# python-indent: 4 #
# End: #
