#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:58:14 krylon>
#
# /data/code/python/devconf/agent.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.agent

(c) 2026 Benjamin Walkenhorst

The agent runs on the device. It answers one datagram at a time, and keeps no
state between requests besides what is on disk.

Note that the protocol has neither authentication nor encryption, anyone who
can reach the port can reconfigure or reboot the device.
"""

import logging
import socket
import traceback
from dataclasses import dataclass, field
from threading import RLock, Thread
from typing import Callable, Final, Optional, Union

from devconf import common
from devconf.codec import encode, max_datagram, sanitize
from devconf.common import DevConfError
from devconf.config import AgentConfig
from devconf.control import Cmd, Request, classify
from devconf.model import DeviceRecord, Mode
from devconf.netstore import NetworkStore, default_iface
from devconf.store import IdentityStore, PersistenceError, RecordStore
from devconf.system import System

poll_interval: Final[float] = 0.5


@dataclass(kw_only=True, slots=True)
class Agent:
    """Agent answers discovery, query, configuration and restart requests."""

    log: logging.Logger = field(default_factory=lambda: common.get_logger("agent"))
    lock: RLock = field(default_factory=RLock)
    host: str = ""
    port: int = 60000
    identity: IdentityStore = field(default_factory=IdentityStore)
    records: RecordStore = field(default_factory=RecordStore)
    net: NetworkStore = field(default_factory=NetworkStore)
    reboot: Callable[[], None] = field(default_factory=lambda: System().reboot)
    sock: Optional[socket.socket] = None
    worker: Optional[Thread] = None
    _active: bool = False

    @classmethod
    def from_config(cls, cfg: AgentConfig) -> "Agent":
        """Create an Agent from the given configuration."""
        return cls(
            port=cfg.port,
            identity=IdentityStore(path=cfg.identity_file,
                                   hostname_path=cfg.hostname_file,
                                   hostname_prefix=cfg.hostname_prefix),
            records=RecordStore(cfg.record_file),
            net=NetworkStore(network_dir=cfg.network_dir,
                             route_file=cfg.route_file,
                             resolv_conf=cfg.resolv_conf,
                             iface_override=cfg.iface),
        )

    @property
    def active(self) -> bool:
        """Return the Agent's active flag."""
        with self.lock:
            return self._active

    # Request handling

    def handle(self, raw: Union[str, bytes]) -> str:
        """Process a single request and return the reply."""
        req: Final[Request] = classify(raw)

        match req.Tag:
            case Cmd.Discover:
                ident = self.identity.ensure_identity()
                return encode("TF", [("ID", ident), ("PORT", str(self.port))])
            case Cmd.Identify:
                return f"ID={self.identity.ensure_identity()}"
            case Cmd.QueryNet:
                return self._query_net()
            case Cmd.Configure:
                return self._configure(req)
            case Cmd.Restart:
                return self._restart()
            case _:
                return "UNKNOWN_CMD"

    def _query_net(self) -> str:
        snap = self.net.query_snapshot()
        iface: Final[str] = snap.iface or default_iface
        return encode("NET", [
            ("IP", snap.ip),
            ("MASK", snap.netmask),
            ("GW", snap.gateway),
            ("DNS", snap.dns),
            ("IF", iface),
            ("IFACE", iface),
        ])

    def _configure(self, req: Request) -> str:
        rec: Final[DeviceRecord] = req.record
        if rec.identifier == "":
            rec.identifier = self.identity.ensure_identity()

        try:
            self.records.merge_and_save(rec)
        except PersistenceError as err:
            self.log.error("Failed to save configuration for %s: %s",
                           rec.identifier,
                           err)
            return encode("CFG_NACK", [("ERR", "SAVE_FAILED")])

        ack: Final[list[tuple[str, str]]] = [("ID", rec.identifier)]
        intent = req.intent

        # The network service is not restarted here. New settings take effect
        # on the next restart, see System.restart_network.
        try:
            if intent.mode == Mode.DHCP:
                self.net.apply_dhcp()
            elif not intent.empty:
                self.net.apply_static(intent.ip, intent.netmask, intent.gateway, intent.dns)
            else:
                return encode("CFG_ACK", ack)
        except DevConfError as err:
            self.log.error("Failed to apply network configuration: %s", err)
            return encode("CFG_ACK", ack, ["NET_NACK"])

        return encode("CFG_ACK", ack, ["NET_ACK"])

    def _restart(self) -> str:
        try:
            self.reboot()
        except Exception as err:  # pylint: disable-msg=W0718
            self.log.error("Failed to reboot: %s: %s", err.__class__.__name__, err)
            return encode("RESTART_NACK", [("ERR", sanitize(str(err)))])
        return "RESTART_ACK"

    # Networking

    def bind(self) -> None:
        """Open the UDP socket. If port is 0, the kernel picks one."""
        sock: Final[socket.socket] = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.host, self.port))
            sock.settimeout(poll_interval)
        except OSError:
            sock.close()
            raise

        with self.lock:
            self.sock = sock
            self.port = sock.getsockname()[1]
            self._active = True
        self.log.info("Agent listening on UDP %s:%d",
                      self.host or "*",
                      self.port)

    def serve(self) -> None:
        """Answer requests until stop() is called."""
        if self.sock is None:
            self.bind()
        sock: Final[socket.socket] = self.sock  # type: ignore

        while self.active:
            try:
                data, peer = sock.recvfrom(max_datagram)
            except TimeoutError:
                continue
            except OSError as err:
                if not self.active:
                    break
                self.log.error("Error receiving datagram: %s", err)
                continue

            self._respond(sock, data, peer)

        self.log.debug("Agent is quitting.")

    def _respond(self, sock: socket.socket, data: bytes, peer: tuple[str, int]) -> None:
        self.log.debug("Received from %s:%d: %r", peer[0], peer[1], data)
        try:
            reply: str = self.handle(data)
        except Exception as err:  # noqa: F841 # pylint: disable-msg=W0718
            cname: Final[str] = err.__class__.__name__
            self.log.error("%s handling request from %s: %s\n%s",
                           cname,
                           peer[0],
                           err,
                           "\n".join(traceback.format_exception(err)))
            return

        try:
            sock.sendto(reply.encode("utf-8", errors="replace"), peer)
        except OSError as err:
            self.log.error("Error sending reply to %s:%d: %s",
                           peer[0],
                           peer[1],
                           err)
        else:
            self.log.debug("Responded to %s:%d: %r", peer[0], peer[1], reply)

    def start(self) -> None:
        """Bind the socket and serve requests in a background thread."""
        self.bind()
        self.worker = Thread(target=self.serve, name="agent", daemon=True)
        self.worker.start()

    def stop(self) -> None:
        """Stop serving requests and close the socket."""
        with self.lock:
            self._active = False
        if self.worker is not None:
            self.worker.join()
            self.worker = None
        if self.sock is not None:
            self.sock.close()
            self.sock = None


# Local Variables: #
# python-indent: 4 #
# End: #
