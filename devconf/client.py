#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 22:31:09 krylon>
#
# /data/code/python/devconf/client.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.client

(c) 2026 Benjamin Walkenhorst

The client side of the protocol. Every call opens its own socket, sends one
request and blocks until the matching reply arrives or its Deadline passes.
Nothing is retried, that is up to the caller.
"""

import logging
import socket
import time
from dataclasses import dataclass, field
from typing import Callable, Final, Optional

from devconf import common
from devconf.codec import Message, decode, encode, max_datagram
from devconf.common import DevConfError
from devconf.config import ClientConfig, default_port
from devconf.model import (CfgAck, Device, DeviceRecord, Discovery, Mode,
                           NetworkIntent, NetworkSnapshot)

Matcher = Callable[[Message], bool]

iface_keys: Final[tuple[str, ...]] = ("IF", "IFACE", "ETH", "NIC", "DEV", "INTERFACE", "IFNAME")


class ClientError(DevConfError):
    """Base class for errors on the client side."""


class RequestTimeout(ClientError):
    """RequestTimeout indicates that no matching reply arrived in time."""


class TransportError(ClientError):
    """TransportError indicates a failure to send or receive a datagram."""


class RequestRejected(ClientError):
    """RequestRejected indicates that the device refused to carry out a request."""


@dataclass(kw_only=True, slots=True)
class Deadline:
    """Deadline is the point in time after which a call gives up."""

    expires: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        """Return a Deadline <seconds> from now."""
        return cls(expires=time.monotonic() + seconds)

    def remaining(self) -> float:
        """Return the number of seconds left, never less than zero."""
        return max(0.0, self.expires - time.monotonic())

    @property
    def expired(self) -> bool:
        """Return True if the Deadline has passed."""
        return self.remaining() <= 0.0


@dataclass(kw_only=True, slots=True)
class PendingExchange:
    """PendingExchange is a request waiting for its reply."""

    target: str
    port: int
    sent: float
    deadline: Deadline
    matcher: Matcher

    def accepts(self, peer: tuple[str, int], msg: Message) -> bool:
        """Return True if <msg> from <peer> is the reply we are waiting for."""
        return peer[0] == self.target and self.matcher(msg)


def is_net_reply(msg: Message) -> bool:
    """Match the reply to a network query."""
    return msg.has_prefix("NET")


def is_cfg_reply(msg: Message) -> bool:
    """Match the reply to a CFG request, positive or negative."""
    return msg.has_prefix("CFG_ACK") or msg.has_prefix("CFG_NACK")


def is_restart_reply(msg: Message) -> bool:
    """Match the reply to a RESTART request, positive or negative."""
    return "RESTART_ACK" in msg.raw.upper() or msg.has_prefix("RESTART_NACK")


def is_id_reply(msg: Message) -> bool:
    """Match the reply to GET_ID."""
    return msg.raw.upper().startswith("ID=")


def cfg_payload(intent: NetworkIntent) -> str:
    """Build the CFG request for a network change."""
    if intent.mode == Mode.DHCP:
        return "CFG|DHCP=1"
    return encode("CFG", [
        ("IP", intent.ip),
        ("MASK", intent.netmask),
        ("GW", intent.gateway),
        ("DNS", intent.dns),
    ])


def record_payload(rec: DeviceRecord) -> str:
    """Build the CFG request that only updates the device record."""
    return encode("CFG", [
        ("ID", rec.identifier),
        ("IP", rec.ip),
        ("PORT", rec.port),
    ])


def parse_cfg_ack(msg: Message) -> CfgAck:
    """Interpret the reply to a CFG request."""
    return CfgAck(
        raw=msg.raw,
        identifier=msg.get("ID"),
        saved=msg.has_prefix("CFG_ACK"),
        net_ack=msg.has_flag("NET_ACK"),
        net_nack=msg.has_flag("NET_NACK"),
        restart_ack=msg.has_flag("RESTART_ACK"),
        restart_nack=msg.has_flag("RESTART_NACK"),
        error=msg.get("ERR"),
    )


def parse_net_reply(msg: Message) -> NetworkSnapshot:
    """Interpret the reply to a network query."""
    return NetworkSnapshot(
        ip=msg.get("IP"),
        netmask=msg.get("MASK"),
        gateway=msg.get("GW"),
        dns=msg.get("DNS"),
        iface=msg.first(*iface_keys),
    )


@dataclass(kw_only=True, slots=True)
class Client:
    """Client finds agents on the local network and talks to them."""

    log: logging.Logger = field(default_factory=lambda: common.get_logger("client"))
    port: int = default_port
    broadcast: str = "255.255.255.255"
    discover_timeout: float = 2.0
    query_timeout: float = 2.0
    config_timeout: float = 3.0
    restart_timeout: float = 2.0

    @classmethod
    def from_config(cls, cfg: ClientConfig) -> "Client":
        """Create a Client from the given configuration."""
        return cls(
            port=cfg.port,
            broadcast=cfg.broadcast,
            discover_timeout=cfg.discover_timeout,
            query_timeout=cfg.query_timeout,
            config_timeout=cfg.config_timeout,
            restart_timeout=cfg.restart_timeout,
        )

    def _socket(self, bcast: bool = False) -> socket.socket:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as err:
            raise TransportError(f"Cannot create socket: {err}") from err
        try:
            if bcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(("", 0))
        except OSError as err:
            sock.close()
            raise TransportError(f"Cannot bind socket: {err}") from err
        return sock

    def discover(self,
                 deadline: Optional[Deadline] = None,
                 port: Optional[int] = None) -> list[Device]:
        """Broadcast a discovery request and collect the replies until <deadline>.

        Each sender is listed once, with the last reply it sent.
        """
        if deadline is None:
            deadline = Deadline.after(self.discover_timeout)
        dport: Final[int] = port or self.port
        found: Final[Discovery] = Discovery()

        with self._socket(bcast=True) as sock:
            try:
                sock.sendto(b"TF", (self.broadcast, dport))
            except OSError as err:
                raise TransportError(f"Cannot send discovery to {self.broadcast}:{dport}: {err}") from err

            while not deadline.expired:
                sock.settimeout(deadline.remaining())
                try:
                    data, peer = sock.recvfrom(max_datagram)
                except TimeoutError:
                    break
                except OSError as err:
                    self.log.error("Error receiving discovery replies: %s", err)
                    break

                msg: Message = decode(data)
                if msg.command != "TF" or not msg.fields:
                    continue

                found.add(f"{peer[0]}:{peer[1]}", Device(
                    ip=peer[0],
                    identifier=msg.get("ID"),
                    port=msg.get("PORT") or str(default_port),
                ))

        devices: Final[list[Device]] = found.result()
        self.log.debug("Discovered %d device(s)", len(devices))
        return devices

    def request(self,
                target: str,
                payload: str,
                deadline: Deadline,
                matcher: Matcher,
                port: Optional[int] = None) -> Message:
        """Send <payload> to <target> and wait for a reply that <matcher> accepts.

        Datagrams from other hosts are ignored.
        """
        try:
            addr: Final[str] = socket.gethostbyname(target)
        except OSError as err:
            raise TransportError(f"Cannot resolve {target}: {err}") from err

        xchg: Final[PendingExchange] = PendingExchange(
            target=addr,
            port=port or self.port,
            sent=time.monotonic(),
            deadline=deadline,
            matcher=matcher,
        )

        with self._socket() as sock:
            try:
                sock.sendto(payload.encode("utf-8"), (xchg.target, xchg.port))
            except OSError as err:
                raise TransportError(f"Cannot send to {target}:{xchg.port}: {err}") from err
            self.log.debug("Sent %r to %s:%d", payload, xchg.target, xchg.port)

            while True:
                if xchg.deadline.expired:
                    raise RequestTimeout(f"No reply to {payload!r} from {target}")
                sock.settimeout(xchg.deadline.remaining())
                try:
                    data, peer = sock.recvfrom(max_datagram)
                except TimeoutError:
                    raise RequestTimeout(f"No reply to {payload!r} from {target}") from None
                except OSError as err:
                    raise TransportError(f"Error receiving reply from {target}: {err}") from err

                msg: Message = decode(data)
                if xchg.accepts(peer, msg):
                    self.log.debug("Reply from %s after %.3f s: %r",
                                   target,
                                   time.monotonic() - xchg.sent,
                                   msg.raw)
                    return msg
                self.log.debug("Discard %r from %s:%d", msg.raw, peer[0], peer[1])

    def get_id(self, target: str, port: Optional[int] = None) -> str:
        """Ask <target> for its identifier."""
        msg: Final[Message] = self.request(target,
                                           "GET_ID",
                                           Deadline.after(self.query_timeout),
                                           is_id_reply,
                                           port)
        return msg.raw.partition("=")[2].strip()

    def query_net(self, target: str, port: Optional[int] = None) -> NetworkSnapshot:
        """Ask <target> for its current network parameters."""
        msg: Final[Message] = self.request(target,
                                           "QUERY_NET",
                                           Deadline.after(self.query_timeout),
                                           is_net_reply,
                                           port)
        return parse_net_reply(msg)

    def configure(self,
                  target: str,
                  intent: NetworkIntent,
                  port: Optional[int] = None) -> CfgAck:
        """Send a network configuration to <target>."""
        intent.validate()
        msg: Final[Message] = self.request(target,
                                           cfg_payload(intent),
                                           Deadline.after(self.config_timeout),
                                           is_cfg_reply,
                                           port)
        return parse_cfg_ack(msg)

    def save_record(self,
                    target: str,
                    rec: DeviceRecord,
                    port: Optional[int] = None) -> CfgAck:
        """Update the device record on <target>.

        The agent also takes a non-empty IP as a new static address.
        """
        msg: Final[Message] = self.request(target,
                                           record_payload(rec),
                                           Deadline.after(self.config_timeout),
                                           is_cfg_reply,
                                           port)
        return parse_cfg_ack(msg)

    def restart(self, target: str, port: Optional[int] = None) -> str:
        """Tell <target> to reboot. Raise RequestRejected if it refuses."""
        msg: Final[Message] = self.request(target,
                                           "RESTART",
                                           Deadline.after(self.restart_timeout),
                                           is_restart_reply,
                                           port)
        if msg.has_prefix("RESTART_NACK"):
            raise RequestRejected(msg.get("ERR") or "restart refused")
        return msg.raw


# Local Variables: #
# python-indent: 4 #
# End: #
