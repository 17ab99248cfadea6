#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 20:41:55 krylon>
#
# /data/code/python/devconf/netstore.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.netstore

(c) 2026 Benjamin Walkenhorst

The NetworkStore reads a device's current network parameters and rewrites its
systemd-networkd configuration.

Reading tries several sources, in order, and takes the first non-empty value
for each field:

1. eth*.network files in the network directory
2. any *.network file, if the first step found nothing
3. the addresses of the live interfaces (IP and netmask)
4. the default route (gateway)
5. the resolver configuration (DNS)

Writing never restarts systemd-networkd, the new settings take effect on the
next restart of the network service.
"""

import logging
import pathlib
import socket
from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import Any, Callable, Final, Optional

import psutil
from dns.exception import DNSException
from dns.resolver import Resolver

from devconf import common
from devconf.common import DevConfError
from devconf.model import NetworkSnapshot, is_ipv4
from devconf.netfile import Document, mask_to_prefix, prefix_to_mask

default_iface: Final[str] = "eth0"
managed_glob: Final[str] = "eth*.network"
any_glob: Final[str] = "*.network"
resolved_stub: Final[str] = "127.0.0.53"
# Bytes that are not UTF-8 survive a read/upsert/write cycle unchanged.
file_errors: Final[str] = "surrogateescape"

# Preferred when picking an address from the live interfaces.
wired_prefixes: Final[tuple[str, ...]] = ("eth", "enp", "ens", "eno")
# Preferred when naming the interface, also matches macOS/BSD en0 etc.
iface_prefixes: Final[tuple[str, ...]] = wired_prefixes + ("en", )


class NetworkWriteError(DevConfError):
    """NetworkWriteError indicates a failure to write a network configuration file."""


@dataclass(kw_only=True, slots=True)
class Route:
    """Route is the default route as found in the kernel's routing table."""

    iface: str
    gateway: str


def hex_to_ipv4(s: str) -> str:
    """Convert an address from /proc/net/route (little-endian hex) to dotted-quad."""
    if len(s) != 8:
        return ""
    try:
        raw: Final[bytes] = bytes.fromhex(s)
    except ValueError:
        return ""
    return str(IPv4Address(raw[::-1]))


def parse_address(val: str) -> tuple[str, str]:
    """Split an Address= value (ip/prefix or plain ip) into ip and netmask."""
    addr, _, pfx = val.strip().partition("/")
    addr = addr.strip()
    if not is_ipv4(addr):
        return ("", "")
    if pfx == "":
        return (addr, "")
    try:
        plen: int = int(pfx)
    except ValueError:
        return (addr, "")
    if 0 <= plen <= 32:
        return (addr, prefix_to_mask(plen))
    return (addr, "")


def first_ipv4(val: str) -> str:
    """Return the first IPv4 address in a whitespace-separated list."""
    for item in val.split():
        if is_ipv4(item):
            return item
    return ""


@dataclass(kw_only=True, slots=True)
class NetworkStore:
    """NetworkStore reads and writes the network configuration of the local host."""

    log: logging.Logger = field(default_factory=lambda: common.get_logger("netstore"))
    network_dir: pathlib.Path = pathlib.Path("/etc/systemd/network")
    route_file: pathlib.Path = pathlib.Path("/proc/net/route")
    resolv_conf: pathlib.Path = pathlib.Path("/etc/resolv.conf")
    resolv_upstream: pathlib.Path = pathlib.Path("/run/systemd/resolve/resolv.conf")
    iface_override: str = ""
    if_addrs: Callable[[], dict[str, list[Any]]] = psutil.net_if_addrs

    # Reading

    def default_route(self) -> Optional[Route]:
        """Look up the default route in the kernel routing table."""
        try:
            lines: list[str] = self.route_file.read_text(encoding="utf-8",
                                                         errors=file_errors).splitlines()
        except OSError as err:
            self.log.debug("Cannot read routing table %s: %s",
                           self.route_file,
                           err)
            return None

        for line in lines[1:]:
            fields = line.split()
            if len(fields) < 3:
                continue
            if fields[1] == "00000000":
                gw: str = hex_to_ipv4(fields[2])
                if gw == "0.0.0.0":
                    gw = ""
                return Route(iface=fields[0], gateway=gw)
        return None

    def ipv4_addrs(self) -> list[tuple[str, str, str]]:
        """Return (interface, address, netmask) for every non-loopback IPv4 address."""
        result: list[tuple[str, str, str]] = []
        try:
            addrs = self.if_addrs()
        except OSError as err:
            self.log.error("Cannot enumerate network interfaces: %s", err)
            return result

        for name, entries in addrs.items():
            if name == "lo":
                continue
            for entry in entries:
                if entry.family != socket.AF_INET or not entry.address:
                    continue
                if IPv4Address(entry.address).is_loopback:
                    continue
                result.append((name, entry.address, entry.netmask or ""))
        return result

    def from_interfaces(self) -> tuple[str, str]:
        """Return IP and netmask of the most plausible live interface."""
        addrs: Final[list[tuple[str, str, str]]] = self.ipv4_addrs()
        for name, addr, mask in addrs:
            if name.startswith(wired_prefixes):
                return (addr, mask)
        if addrs:
            return (addrs[0][1], addrs[0][2])
        return ("", "")

    def from_resolver(self) -> str:
        """Return the first IPv4 nameserver the system resolver is configured with."""
        servers: list[str] = self._nameservers(self.resolv_conf)
        if servers == [resolved_stub] and self.resolv_upstream.exists():
            servers = self._nameservers(self.resolv_upstream) or servers

        for srv in servers:
            if is_ipv4(srv):
                return srv
        return ""

    def _nameservers(self, fpath: pathlib.Path) -> list[str]:
        try:
            res: Final[Resolver] = Resolver(filename=str(fpath), configure=True)
        except (DNSException, ValueError) as err:
            self.log.debug("Cannot load resolver configuration from %s: %s",
                           fpath,
                           err)
            return []
        return [str(x) for x in res.nameservers]

    def from_files(self, pattern: str) -> NetworkSnapshot:
        """Return what the first matching .network file with any address info says."""
        for fpath in sorted(self.network_dir.glob(pattern)):
            try:
                doc: Document = Document.parse(fpath.read_text(encoding="utf-8", errors=file_errors))
            except OSError as err:
                self.log.debug("Cannot read %s: %s", fpath, err)
                continue

            ip, mask = parse_address(doc.get("Network", "Address") or
                                     doc.get("Address", "Address"))
            snap = NetworkSnapshot(
                ip=ip,
                netmask=mask,
                gateway=doc.get("Network", "Gateway") or doc.get("Route", "Gateway"),
                dns=first_ipv4(doc.get("Network", "DNS")),
            )
            if not snap.empty:
                self.log.debug("Read network parameters from %s", fpath)
                return snap
        return NetworkSnapshot()

    def iface_name(self) -> str:
        """Determine the name of the interface we manage."""
        if self.iface_override.strip() != "":
            return self.iface_override.strip()

        route: Final[Optional[Route]] = self.default_route()
        if route is not None and route.iface != "":
            return route.iface

        fallback: str = ""
        for name, _addr, _mask in self.ipv4_addrs():
            if name.startswith(iface_prefixes):
                return name
            if fallback == "":
                fallback = name
        return fallback

    def query_snapshot(self) -> NetworkSnapshot:
        """Assemble the current network parameters from all available sources."""
        snap: NetworkSnapshot = self.from_files(managed_glob)
        if snap.empty:
            snap = self.from_files(any_glob)

        if not (snap.ip and snap.netmask):
            ip, mask = self.from_interfaces()
            snap.fill(ip=ip, netmask=mask)

        if not snap.gateway:
            route: Final[Optional[Route]] = self.default_route()
            if route is not None:
                snap.fill(gateway=route.gateway)

        if not snap.dns:
            snap.fill(dns=self.from_resolver())

        snap.iface = self.iface_name()
        return snap

    # Writing

    def target_file(self) -> tuple[pathlib.Path, str]:
        """Pick the file to write, and the interface it configures."""
        matches: Final[list[pathlib.Path]] = sorted(self.network_dir.glob(managed_glob))
        if matches:
            fpath: pathlib.Path = matches[0]
            iface: str = ""
            try:
                text: str = fpath.read_text(encoding="utf-8", errors=file_errors)
                iface = Document.parse(text).get("Match", "Name")
            except OSError:
                pass
            if iface == "":
                iface = fpath.stem
            return (fpath, iface)

        route: Final[Optional[Route]] = self.default_route()
        iface = default_iface
        if route is not None and route.iface.startswith("eth"):
            iface = route.iface
        return (self.network_dir / f"{iface}.network", iface)

    def _write(self, fpath: pathlib.Path, doc: Document) -> None:
        try:
            common.write_atomic(fpath, doc.render())
        except OSError as err:
            self.log.error("Failed to write %s: %s", fpath, err)
            raise NetworkWriteError(f"Cannot write {fpath}: {err}") from err

    def apply_static(self, ip: str = "", mask: str = "", gw: str = "", dns: str = "") -> pathlib.Path:
        """Write a static configuration. Empty parameters leave the file as it is."""
        fpath, iface = self.target_file()

        try:
            doc: Document = Document.parse(fpath.read_text(encoding="utf-8", errors=file_errors))
        except FileNotFoundError:
            self.log.info("Create new network configuration %s for %s", fpath, iface)
            doc = Document.template(iface)
        except OSError as err:
            self.log.error("Failed to read %s: %s", fpath, err)
            raise NetworkWriteError(f"Cannot read {fpath}: {err}") from err

        addr: str = ""
        if ip != "":
            pfx: Final[int] = mask_to_prefix(mask) if mask != "" else 0
            addr = f"{ip}/{pfx}" if pfx > 0 else ip

        doc.upsert("Network", "Address", addr)
        doc.upsert("Network", "Gateway", gw)
        doc.upsert("Network", "DNS", dns)
        doc.upsert("Network", "DHCP", "no")

        self._write(fpath, doc)
        self.log.info("Wrote static network configuration to %s (Address=%s, Gateway=%s, DNS=%s)",
                      fpath,
                      addr,
                      gw,
                      dns)
        return fpath

    def apply_dhcp(self) -> pathlib.Path:
        """Replace the configuration with one that uses DHCP."""
        fpath, iface = self.target_file()
        doc: Final[Document] = Document.template(iface)
        doc.upsert("Network", "DHCP", "yes")
        self._write(fpath, doc)
        self.log.info("Wrote DHCP network configuration to %s", fpath)
        return fpath


# Local Variables: #
# python-indent: 4 #
# End: #
