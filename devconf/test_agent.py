#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-20 11:47:20 krylon>
#
# /data/code/python/devconf/test_agent.py
# created on 20. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.test_agent

(c) 2026 Benjamin Walkenhorst
"""

import json
import os
import shutil
import socket
import unittest
from datetime import datetime
from pathlib import Path
from typing import Any, Final, Optional

from devconf import common
from devconf.agent import Agent
from devconf.model import DeviceRecord, NetworkSnapshot
from devconf.netstore import NetworkStore, NetworkWriteError
from devconf.store import (IdentityStore, MemoryIdentityStore,
                           MemoryRecordStore, RecordStore)
from devconf.system import CapabilityError

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_agent_%Y%m%d_%H%M%S"))

route_eth0: Final[str] = \
    "Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\t\tMTU\tWindow\tIRTT\n" + \
    "eth0\t00000000\t0101A8C0\t0003\t0\t0\t100\t00000000\t0\t0\t0\n"


class FakeNet:
    """FakeNet stands in for the NetworkStore and remembers what it was asked to do."""

    def __init__(self, snap: Optional[NetworkSnapshot] = None, fail: bool = False) -> None:
        self.snap = snap or NetworkSnapshot()
        self.fail = fail
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def query_snapshot(self) -> NetworkSnapshot:
        """Return a copy of the canned snapshot."""
        return NetworkSnapshot(ip=self.snap.ip,
                               netmask=self.snap.netmask,
                               gateway=self.snap.gateway,
                               dns=self.snap.dns,
                               iface=self.snap.iface)

    def apply_static(self, ip: str = "", mask: str = "", gw: str = "", dns: str = "") -> Path:
        """Pretend to write a static configuration."""
        self.calls.append(("static", (ip, mask, gw, dns)))
        if self.fail:
            raise NetworkWriteError("Read-only file system")
        return Path("/nonexistent/eth0.network")

    def apply_dhcp(self) -> Path:
        """Pretend to write a DHCP configuration."""
        self.calls.append(("dhcp", ()))
        if self.fail:
            raise NetworkWriteError("Read-only file system")
        return Path("/nonexistent/eth0.network")


class FakeReboot:
    """FakeReboot counts how often a reboot was requested."""

    def __init__(self, err: Optional[Exception] = None) -> None:
        self.err = err
        self.count = 0

    def __call__(self) -> None:
        self.count += 1
        if self.err is not None:
            raise self.err


class TestAgent(unittest.TestCase):
    """Test the request handling of the Agent."""

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        shutil.rmtree(test_dir, ignore_errors=True)

    def make_agent(self, **kwargs: Any) -> Agent:
        """Create an Agent that keeps its state in memory."""
        args: dict[str, Any] = {
            "identity": MemoryIdentityStore("DEV-0001"),
            "records": MemoryRecordStore(),
            "net": FakeNet(),
            "reboot": FakeReboot(),
        }
        args.update(kwargs)
        return Agent(**args)

    def test_01_discover(self) -> None:
        """Answer discovery and identification requests."""
        agent: Final[Agent] = self.make_agent()
        self.assertEqual(agent.handle("TF"), "TF|ID=DEV-0001|PORT=60000")
        self.assertEqual(agent.handle(b"tf\n"), "TF|ID=DEV-0001|PORT=60000")
        self.assertEqual(agent.handle("GET_ID"), "ID=DEV-0001")

    def test_02_fresh_identity(self) -> None:
        """A device without an identifier creates one, and sticks to it."""
        agent: Final[Agent] = self.make_agent(identity=MemoryIdentityStore())
        reply: Final[str] = agent.handle("TF")
        self.assertTrue(reply.startswith("TF|ID=0"))
        ident: Final[str] = reply.split("|")[1].removeprefix("ID=")
        self.assertEqual(agent.handle("GET_ID"), f"ID={ident}")

    def test_03_query(self) -> None:
        """Report the network parameters."""
        agent: Agent = self.make_agent(net=FakeNet(NetworkSnapshot(ip="10.0.0.5",
                                                                   netmask="255.0.0.0",
                                                                   gateway="10.0.0.1",
                                                                   dns="10.0.0.2",
                                                                   iface="end0")))
        for cmd in ("QUERY_NET", "QUERY", "qry", "NET", "GET_NET"):
            self.assertEqual(agent.handle(cmd),
                             "NET|IP=10.0.0.5|MASK=255.0.0.0|GW=10.0.0.1|DNS=10.0.0.2|IF=end0|IFACE=end0")

        agent = self.make_agent()
        self.assertEqual(agent.handle("QUERY_NET"), "NET|IF=eth0|IFACE=eth0")

    def test_04_record_only(self) -> None:
        """A CFG request without network fields only updates the record."""
        net: Final[FakeNet] = FakeNet()
        records: Final[MemoryRecordStore] = MemoryRecordStore(
            DeviceRecord(identifier="DEV-0001", ip="10.0.0.1", port="60000"))
        agent: Final[Agent] = self.make_agent(net=net, records=records)

        self.assertEqual(agent.handle("CFG|PORT=9000"), "CFG_ACK|ID=DEV-0001")
        self.assertEqual(records.rec, DeviceRecord(identifier="DEV-0001", ip="10.0.0.1", port="9000"))
        self.assertEqual(net.calls, [])

        self.assertEqual(agent.handle("CFG"), "CFG_ACK|ID=DEV-0001")
        self.assertEqual(net.calls, [])

    def test_05_static(self) -> None:
        """A CFG request with network fields writes them."""
        net: Final[FakeNet] = FakeNet()
        records: Final[MemoryRecordStore] = MemoryRecordStore()
        agent: Final[Agent] = self.make_agent(net=net, records=records)

        self.assertEqual(agent.handle("CFG|IP=192.168.1.60|MASK=255.255.255.0|GW=192.168.1.1"),
                         "CFG_ACK|ID=DEV-0001|NET_ACK")
        self.assertEqual(net.calls, [("static", ("192.168.1.60", "255.255.255.0", "192.168.1.1", ""))])
        self.assertEqual(records.rec, DeviceRecord(identifier="DEV-0001", ip="192.168.1.60"))

        self.assertEqual(agent.handle("CFG|ID=OTHER|DNS=8.8.8.8"),
                         "CFG_ACK|ID=OTHER|NET_ACK")
        self.assertEqual(net.calls[-1], ("static", ("", "", "", "8.8.8.8")))

    def test_06_dhcp(self) -> None:
        """DHCP=1 switches to DHCP, and static fields are not written."""
        net: Final[FakeNet] = FakeNet()
        agent: Final[Agent] = self.make_agent(net=net)

        self.assertEqual(agent.handle("CFG|DHCP=1"), "CFG_ACK|ID=DEV-0001|NET_ACK")
        self.assertEqual(agent.handle("CFG|DHCP=yes|GW=10.0.0.1"), "CFG_ACK|ID=DEV-0001|NET_ACK")
        self.assertEqual(net.calls, [("dhcp", ()), ("dhcp", ())])

    def test_07_net_nack(self) -> None:
        """A failure to write the network configuration is reported."""
        records: Final[MemoryRecordStore] = MemoryRecordStore()
        agent: Final[Agent] = self.make_agent(net=FakeNet(fail=True), records=records)

        self.assertEqual(agent.handle("CFG|IP=10.0.0.9"), "CFG_ACK|ID=DEV-0001|NET_NACK")
        self.assertEqual(agent.handle("CFG|DHCP=TRUE"), "CFG_ACK|ID=DEV-0001|NET_NACK")
        self.assertIsNotNone(records.rec)

    def test_08_cfg_nack(self) -> None:
        """If the record cannot be saved, nothing else happens."""
        net: Final[FakeNet] = FakeNet()
        agent: Final[Agent] = self.make_agent(net=net, records=MemoryRecordStore(fail=True))

        self.assertEqual(agent.handle("CFG|IP=10.0.0.9|PORT=9000"), "CFG_NACK|ERR=SAVE_FAILED")
        self.assertEqual(net.calls, [])

    def test_09_restart(self) -> None:
        """Reboot on request, and report failure."""
        reboot: FakeReboot = FakeReboot()
        agent: Agent = self.make_agent(reboot=reboot)
        self.assertEqual(agent.handle("RESTART"), "RESTART_ACK")
        self.assertEqual(reboot.count, 1)

        reboot = FakeReboot(CapabilityError("Failed | to\nreboot: Access denied"))
        agent = self.make_agent(reboot=reboot)
        self.assertEqual(agent.handle("restart"),
                         "RESTART_NACK|ERR=Failed : to reboot: Access denied")
        self.assertEqual(reboot.count, 1)

    def test_10_unknown(self) -> None:
        """Anything else is answered with UNKNOWN_CMD."""
        agent: Final[Agent] = self.make_agent()
        for raw in ("HELLO", "", "|ID=1", b"\xff\xfe", "CFG_ACK|ID=1", "TFX"):
            self.assertEqual(agent.handle(raw), "UNKNOWN_CMD", raw)

    def test_11_on_disk(self) -> None:
        """Configure a device and read the configuration back, with real files."""
        folder: Final[Path] = Path(test_dir) / "device"
        (folder / "network").mkdir(parents=True)
        (folder / "route").write_text(route_eth0, encoding="utf-8")

        agent: Final[Agent] = self.make_agent(
            identity=IdentityStore(path=folder / "unique_ID",
                                   hostname_path=folder / "hostname"),
            records=RecordStore(folder / "device_config.json"),
            net=NetworkStore(network_dir=folder / "network",
                             route_file=folder / "route",
                             resolv_conf=folder / "resolv.conf",
                             resolv_upstream=folder / "upstream.conf",
                             if_addrs=dict),
        )

        reply: Final[str] = agent.handle("TF")
        ident: Final[str] = (folder / "unique_ID").read_text(encoding="utf-8")
        self.assertEqual(reply, f"TF|ID={ident}|PORT=60000")
        self.assertEqual(agent.handle("GET_ID"), f"ID={ident}")
        self.assertEqual((folder / "hostname").read_text(encoding="utf-8"), f"Kan-{ident}\n")

        self.assertEqual(agent.handle("QUERY_NET"), "NET|GW=192.168.1.1|IF=eth0|IFACE=eth0")

        self.assertEqual(
            agent.handle("CFG|IP=192.168.1.60|MASK=255.255.255.0|GW=192.168.1.1|DNS=8.8.8.8"),
            f"CFG_ACK|ID={ident}|NET_ACK")
        self.assertEqual(
            agent.handle("QUERY_NET"),
            "NET|IP=192.168.1.60|MASK=255.255.255.0|GW=192.168.1.1|DNS=8.8.8.8|IF=eth0|IFACE=eth0")

        self.assertEqual(json.loads((folder / "device_config.json").read_text(encoding="utf-8")),
                         {"id": ident, "ip": "192.168.1.60", "port": ""})
        self.assertIn("DHCP=no\n", (folder / "network" / "eth0.network").read_text(encoding="utf-8"))

        self.assertEqual(agent.handle("CFG|DHCP=1"), f"CFG_ACK|ID={ident}|NET_ACK")
        self.assertEqual(agent.handle("QUERY_NET"), "NET|GW=192.168.1.1|IF=eth0|IFACE=eth0")

    def test_12_not_utf8(self) -> None:
        """Files that are not UTF-8 do not keep the Agent from answering."""
        folder: Final[Path] = Path(test_dir) / "garbled"
        (folder / "network").mkdir(parents=True)
        (folder / "route").write_text(route_eth0, encoding="utf-8")
        (folder / "unique_ID").write_bytes(b"\xff\xfe")
        (folder / "device_config.json").write_bytes(b"\xff\xfe{}")
        netfile: Final[Path] = folder / "network" / "eth0.network"
        netfile.write_bytes(b"# caf\xe9\n[Match]\nName=eth0\n\n[Network]\nAddress=10.0.0.5/8\n")

        agent: Final[Agent] = self.make_agent(
            identity=IdentityStore(path=folder / "unique_ID",
                                   hostname_path=folder / "hostname"),
            records=RecordStore(folder / "device_config.json"),
            net=NetworkStore(network_dir=folder / "network",
                             route_file=folder / "route",
                             resolv_conf=folder / "resolv.conf",
                             resolv_upstream=folder / "upstream.conf",
                             if_addrs=dict),
        )

        reply: Final[str] = agent.handle("TF")
        self.assertTrue(reply.startswith("TF|ID=0"), reply)
        ident: Final[str] = (folder / "unique_ID").read_text(encoding="utf-8")
        self.assertEqual(reply, f"TF|ID={ident}|PORT=60000")

        self.assertEqual(agent.handle("QUERY_NET"),
                         "NET|IP=10.0.0.5|MASK=255.0.0.0|GW=192.168.1.1|IF=eth0|IFACE=eth0")

        self.assertEqual(agent.handle("CFG|PORT=9000"), f"CFG_ACK|ID={ident}")
        self.assertEqual(json.loads((folder / "device_config.json").read_text(encoding="utf-8")),
                         {"id": ident, "ip": "", "port": "9000"})

        self.assertEqual(agent.handle("CFG|IP=10.0.0.6|MASK=255.255.255.0"),
                         f"CFG_ACK|ID={ident}|NET_ACK")
        data: Final[bytes] = netfile.read_bytes()
        self.assertTrue(data.startswith(b"# caf\xe9\n"))
        self.assertIn(b"Address=10.0.0.6/24\n", data)

    def test_13_restart_other_error(self) -> None:
        """Any failure to reboot is reported, not only our own errors."""
        reboot: Final[FakeReboot] = FakeReboot(PermissionError("Operation not permitted | denied"))
        agent: Final[Agent] = self.make_agent(reboot=reboot)
        self.assertEqual(agent.handle("RESTART"),
                         "RESTART_NACK|ERR=Operation not permitted : denied")
        self.assertEqual(reboot.count, 1)


class BrokenNet(FakeNet):
    """BrokenNet fails in a way the Agent does not expect."""

    def query_snapshot(self) -> NetworkSnapshot:
        raise RuntimeError("Something unexpected happened")


class TestAgentServe(unittest.TestCase):
    """Test the Agent over a real UDP socket."""

    agent: Optional[Agent] = None

    @classmethod
    def setUpClass(cls) -> None:
        """Start an Agent on a port of the kernel's choosing."""
        common.set_basedir(test_dir)
        cls.agent = Agent(host="127.0.0.1",
                          port=0,
                          identity=MemoryIdentityStore("DEV-0002"),
                          records=MemoryRecordStore(),
                          net=BrokenNet(),
                          reboot=FakeReboot())
        cls.agent.start()

    @classmethod
    def tearDownClass(cls) -> None:
        """Stop the Agent and clean up."""
        if cls.agent is not None:
            cls.agent.stop()
        shutil.rmtree(test_dir, ignore_errors=True)

    def exchange(self, payload: str) -> str:
        """Send <payload> to the Agent and return the reply."""
        assert self.agent is not None
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(1.0)
            sock.sendto(payload.encode("utf-8"), ("127.0.0.1", self.agent.port))
            data, _ = sock.recvfrom(2048)
            return data.decode("utf-8")

    def test_01_active(self) -> None:
        """The Agent is running."""
        assert self.agent is not None
        self.assertTrue(self.agent.active)
        self.assertNotEqual(self.agent.port, 0)

    def test_02_requests(self) -> None:
        """Answer requests over the network."""
        assert self.agent is not None
        self.assertEqual(self.exchange("GET_ID"), "ID=DEV-0002")
        self.assertEqual(self.exchange("TF"), f"TF|ID=DEV-0002|PORT={self.agent.port}")
        self.assertEqual(self.exchange("WHATEVER"), "UNKNOWN_CMD")

    def test_03_failure(self) -> None:
        """An unexpected error produces no reply, and the Agent keeps running."""
        with self.assertRaises(TimeoutError):
            self.exchange("QUERY_NET")
        self.assertEqual(self.exchange("GET_ID"), "ID=DEV-0002")


# Local Variables: #
# python-indent: 4 #
# End: #
