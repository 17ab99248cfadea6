#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:52:37 krylon>
#
# /data/code/python/devconf/control.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.control

(c) 2026 Benjamin Walkenhorst

This file contains the data types for requests an agent understands.
Raw datagrams are classified once, when they come in.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Final, Union

from devconf.codec import Message, decode
from devconf.model import DeviceRecord, Mode, NetworkIntent


class Cmd(Enum):
    """Cmd identifies the kind of request a client sent."""

    Discover = auto()
    Identify = auto()
    QueryNet = auto()
    Configure = auto()
    Restart = auto()
    Unknown = auto()


commands: Final[dict[str, Cmd]] = {
    "TF": Cmd.Discover,
    "GET_ID": Cmd.Identify,
    "QUERY_NET": Cmd.QueryNet,
    "QUERY": Cmd.QueryNet,
    "QRY": Cmd.QueryNet,
    "QRY_NET": Cmd.QueryNet,
    "NET": Cmd.QueryNet,
    "GET_NET": Cmd.QueryNet,
    "CFG": Cmd.Configure,
    "RESTART": Cmd.Restart,
}

dhcp_on: Final[frozenset[str]] = frozenset({"1", "YES", "TRUE"})


@dataclass(kw_only=True, slots=True)
class Request:
    """Request is a classified message from a client."""

    Tag: Cmd
    Msg: Message = field(default_factory=Message)

    @property
    def record(self) -> DeviceRecord:
        """Return the DeviceRecord fields of a CFG request."""
        return DeviceRecord(
            identifier=self.Msg.get("ID"),
            ip=self.Msg.get("IP"),
            port=self.Msg.get("PORT"),
        )

    @property
    def dhcp(self) -> bool:
        """Return True if a CFG request asks for DHCP."""
        return self.Msg.get("DHCP").upper() in dhcp_on

    @property
    def intent(self) -> NetworkIntent:
        """Return the network change a CFG request asks for."""
        if self.dhcp:
            return NetworkIntent.dhcp()
        return NetworkIntent(
            mode=Mode.Static,
            ip=self.Msg.get("IP"),
            netmask=self.Msg.get("MASK"),
            gateway=self.Msg.get("GW"),
            dns=self.Msg.get("DNS"),
        )


def classify(raw: Union[str, bytes]) -> Request:
    """Decode a datagram and find out what the client wants."""
    msg: Final[Message] = decode(raw)
    tag: Final[Cmd] = commands.get(msg.command, Cmd.Unknown)
    return Request(Tag=tag, Msg=msg)


# Local Variables: #
# python-indent: 4 #
# End: #
