#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 22:54:30 krylon>
#
# /data/code/python/devconf/main.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.main

(c) 2026 Benjamin Walkenhorst
"""


import argparse
import logging
import pathlib
import sys
from typing import Final, Optional, Sequence

from devconf import common
from devconf.agent import Agent
from devconf.client import Client, Deadline
from devconf.common import DevConfError
from devconf.config import Config
from devconf.model import Mode, NetworkIntent
from devconf.system import System


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    argp: argparse.ArgumentParser = argparse.ArgumentParser(prog=common.AppName.lower())
    argp.add_argument("-b", "--basedir",
                      type=pathlib.Path,
                      default=common.path.base(),
                      help="Directory to store application data in")
    argp.add_argument("-c", "--config",
                      type=pathlib.Path,
                      help="Configuration file to use instead of the one in the base directory")
    argp.add_argument("-p", "--port",
                      type=int,
                      help="UDP port the agent listens on")
    argp.add_argument("-v", "--verbose",
                      action="store_true",
                      help="Log debug messages to the terminal")
    argp.add_argument("--version",
                      action="version",
                      version=f"{common.AppName} {common.AppVersion}")

    sub = argp.add_subparsers(dest="cmd", required=True)

    sub.add_parser("agent", help="Answer requests from clients")
    sub.add_parser("apply-net", help="Restart the network service to apply a new configuration")

    p = sub.add_parser("discover", help="Find devices on the local network")
    p.add_argument("-t", "--timeout", type=float, help="Seconds to wait for replies")

    p = sub.add_parser("id", help="Ask a device for its identifier")
    p.add_argument("target")

    p = sub.add_parser("query", help="Ask a device for its network parameters")
    p.add_argument("target")

    p = sub.add_parser("config", help="Send a network configuration to a device")
    p.add_argument("target")
    p.add_argument("--dhcp", action="store_true", help="Switch the device to DHCP")
    p.add_argument("--ip", default="", help="New IP address")
    p.add_argument("--mask", default="", help="New netmask")
    p.add_argument("--gw", default="", help="New default gateway")
    p.add_argument("--dns", default="", help="New DNS server")

    p = sub.add_parser("restart", help="Reboot a device")
    p.add_argument("target")

    return argp


def run(args: argparse.Namespace, cfg: Config) -> int:
    """Carry out the command given on the command line."""
    client: Final[Client] = Client.from_config(cfg.client)

    match args.cmd:
        case "agent":
            agent = Agent.from_config(cfg.agent)
            try:
                agent.bind()
                agent.serve()
            except OSError as err:
                print(f"Cannot listen on UDP port {agent.port}: {err}", file=sys.stderr)
                return 1
            except KeyboardInterrupt:
                print("Telling Agent to stop.")
            finally:
                agent.stop()
        case "apply-net":
            System().restart_network()
        case "discover":
            deadline = Deadline.after(args.timeout) if args.timeout is not None else None
            devices = client.discover(deadline, args.port)
            for dev in sorted(devices, key=lambda d: d.ip):
                print(f"{dev.ip:<16} {dev.port:<6} {dev.identifier}")
            print(f"Found {len(devices)} device(s)")
        case "id":
            print(client.get_id(args.target, args.port))
        case "query":
            snap = client.query_net(args.target, args.port)
            for label, val in (("IP", snap.ip),
                               ("Netmask", snap.netmask),
                               ("Gateway", snap.gateway),
                               ("DNS", snap.dns),
                               ("Interface", snap.iface)):
                print(f"{label:<10} {val}")
        case "config":
            intent = NetworkIntent.dhcp() if args.dhcp else NetworkIntent(
                mode=Mode.Static,
                ip=args.ip.strip(),
                netmask=args.mask.strip(),
                gateway=args.gw.strip(),
                dns=args.dns.strip(),
            )
            ack = client.configure(args.target, intent, args.port)
            print(ack.summary)
            if not ack.saved or ack.net_nack:
                return 1
        case "restart":
            print(client.restart(args.target, args.port))

    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Parse the command line and go."""
    args = build_parser().parse_args(argv)
    common.set_basedir(args.basedir)
    if args.verbose:
        common.log_level_tty = logging.DEBUG

    try:
        cfg: Config = Config.load(args.config)
        if args.port is not None:
            cfg.agent.port = args.port
            cfg.client.port = args.port
        sys.exit(run(args, cfg))
    except DevConfError as err:
        print(f"{err.__class__.__name__}: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()

# Local Variables: #
# python-indent: 4 #
# End: #
