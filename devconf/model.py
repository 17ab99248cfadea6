#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:31:40 krylon>
#
# /data/code/python/devconf/model.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.model

(c) 2026 Benjamin Walkenhorst
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from ipaddress import AddressValueError, IPv4Address
from typing import Final

from devconf.common import DevConfError

default_port: Final[str] = "60000"


class IntentError(DevConfError):
    """IntentError indicates a NetworkIntent that cannot be sent to a device."""


def is_ipv4(s: str) -> bool:
    """Return True if <s> is a dotted-quad IPv4 address."""
    try:
        IPv4Address(s.strip())
        return True
    except AddressValueError:
        return False


@dataclass(slots=True, kw_only=True)
class DeviceRecord:
    """DeviceRecord is the small piece of state an agent keeps about itself."""

    identifier: str = ""
    ip: str = ""
    port: str = ""

    def merge(self, other: "DeviceRecord") -> "DeviceRecord":
        """Return a copy of self, with every non-empty field of <other> taking precedence."""
        return DeviceRecord(
            identifier=other.identifier or self.identifier,
            ip=other.ip or self.ip,
            port=other.port or self.port,
        )

    def to_json(self) -> dict[str, str]:
        """Return the on-disk representation of the record."""
        return {"id": self.identifier, "ip": self.ip, "port": self.port}

    @classmethod
    def from_json(cls, data: dict) -> "DeviceRecord":
        """Build a DeviceRecord from its on-disk representation. Unknown keys are ignored."""
        return cls(
            identifier=str(data.get("id") or ""),
            ip=str(data.get("ip") or ""),
            port=str(data.get("port") or ""),
        )


@dataclass(slots=True, kw_only=True)
class NetworkSnapshot:
    """NetworkSnapshot is a point-in-time view of a device's network settings."""

    ip: str = ""
    netmask: str = ""
    gateway: str = ""
    dns: str = ""
    iface: str = ""

    @property
    def complete(self) -> bool:
        """Return True if all address fields are known."""
        return all((self.ip, self.netmask, self.gateway, self.dns))

    @property
    def empty(self) -> bool:
        """Return True if none of the address fields are known."""
        return not any((self.ip, self.netmask, self.gateway, self.dns))

    def fill(self, **kwargs: str) -> None:
        """Set every field that is still empty to the value given for it."""
        for key, val in kwargs.items():
            if val and not getattr(self, key):
                setattr(self, key, val)


class Mode(Enum):
    """Mode is the addressing mode a NetworkIntent asks for."""

    Static = auto()
    DHCP = auto()


@dataclass(slots=True, kw_only=True)
class NetworkIntent:
    """NetworkIntent is a requested change to a device's network configuration.

    In Static mode, empty fields mean "leave as is", they never clear a value.
    """

    mode: Mode = Mode.Static
    ip: str = ""
    netmask: str = ""
    gateway: str = ""
    dns: str = ""

    @classmethod
    def dhcp(cls) -> "NetworkIntent":
        """Return an Intent to switch to DHCP."""
        return cls(mode=Mode.DHCP)

    @property
    def empty(self) -> bool:
        """Return True if a static Intent carries no values at all."""
        return not any((self.ip, self.netmask, self.gateway, self.dns))

    def validate(self) -> None:
        """Raise IntentError if the Intent should not be sent to a device."""
        if self.mode == Mode.DHCP:
            return
        if self.empty:
            raise IntentError("Provide at least one of IP/Netmask/Gateway/DNS")
        for label, val in (("IP", self.ip),
                           ("Netmask", self.netmask),
                           ("Gateway", self.gateway),
                           ("DNS", self.dns)):
            if val and not is_ipv4(val):
                raise IntentError(f"Invalid {label} format: {val!r}")


@dataclass(slots=True, kw_only=True)
class Device:
    """Device is an agent that answered a discovery broadcast."""

    ip: str
    identifier: str = ""
    port: str = default_port

    @property
    def port_number(self) -> int:
        """Return the port as a number, falling back to the default port."""
        try:
            p = int(self.port)
        except ValueError:
            return int(default_port)
        if 0 < p < 65536:
            return p
        return int(default_port)


@dataclass(slots=True, kw_only=True)
class CfgAck:
    """CfgAck is the interpretation of a reply to a CFG request."""

    raw: str
    identifier: str = ""
    saved: bool = True
    net_ack: bool = False
    net_nack: bool = False
    restart_ack: bool = False
    restart_nack: bool = False
    error: str = ""

    @property
    def summary(self) -> str:
        """Return a short, human-readable description of the outcome."""
        if not self.saved:
            return f"Device failed to save the configuration ({self.error or 'unknown error'})"
        if self.net_nack:
            return "Network params write failed"
        if self.net_ack and self.restart_ack:
            return "Written OK, network service restart OK"
        if self.net_ack and self.restart_nack:
            return "Written OK, but network service restart failed"
        if self.net_ack:
            return "Network params written, applied on next network restart"
        return "Saved to local config only (no network params)"


@dataclass(slots=True, kw_only=True)
class Discovery:
    """Discovery holds the replies collected during one discovery window, keyed by sender."""

    devices: dict[str, Device] = field(default_factory=dict)

    def add(self, sender: str, dev: Device) -> None:
        """Record a reply from <sender>, replacing any earlier one."""
        self.devices[sender] = dev

    def result(self) -> list[Device]:
        """Return the collected Devices."""
        return list(self.devices.values())


# Local Variables: #
# python-indent: 4 #
# End: #
