#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:27:03 krylon>
#
# /data/code/python/devconf/config.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.config

(c) 2026 Benjamin Walkenhorst

Settings come from three places, later ones win:

1. the defaults below
2. the [agent] and [client] tables of the configuration file
3. environment variables (UDP_PORT, IFACE_NAME)
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Final, Mapping, Optional, Union

from devconf import common
from devconf.common import DevConfError

default_port: Final[int] = 60000
truthy: Final[frozenset[str]] = frozenset({"1", "yes", "true", "on"})
falsy: Final[frozenset[str]] = frozenset({"0", "no", "false", "off"})


class ConfigError(DevConfError):
    """ConfigError indicates a broken configuration file."""


def to_bool(val: Any) -> bool:
    """Convert a TOML boolean, or a string such as it would come from the environment."""
    if isinstance(val, bool):
        return val
    if isinstance(val, str):
        s: Final[str] = val.strip().lower()
        if s in truthy:
            return True
        if s in falsy:
            return False
    raise ValueError(f"Not a boolean: {val!r}")


def _apply(obj: Any, table: Mapping[str, Any]) -> None:
    """Copy the known keys from <table> onto the dataclass <obj>, converting types."""
    for f in fields(obj):
        if f.name not in table:
            continue
        cur = getattr(obj, f.name)
        val = table[f.name]
        try:
            if isinstance(cur, Path):
                val = Path(val)
            elif isinstance(cur, bool):
                val = to_bool(val)
            elif isinstance(cur, (int, float)) and isinstance(val, bool):
                raise TypeError("boolean where a number is expected")
            elif isinstance(cur, (int, float, str)):
                val = type(cur)(val)
        except (TypeError, ValueError) as err:
            raise ConfigError(f"Invalid value for {f.name}: {val!r}") from err
        setattr(obj, f.name, val)


@dataclass(kw_only=True, slots=True)
class AgentConfig:
    """AgentConfig holds the settings of the agent."""

    port: int = default_port
    identity_file: Path = Path("/etc/unique_ID")
    hostname_file: Path = Path("/etc/hostname")
    hostname_prefix: str = "Kan-"
    record_file: Path = field(default_factory=lambda: common.path.record)
    network_dir: Path = Path("/etc/systemd/network")
    route_file: Path = Path("/proc/net/route")
    resolv_conf: Path = Path("/etc/resolv.conf")
    iface: str = ""


@dataclass(kw_only=True, slots=True)
class ClientConfig:
    """ClientConfig holds the settings of the client."""

    port: int = default_port
    broadcast: str = "255.255.255.255"
    discover_timeout: float = 2.0
    query_timeout: float = 2.0
    config_timeout: float = 3.0
    restart_timeout: float = 2.0


@dataclass(kw_only=True, slots=True)
class Config:
    """Config bundles the agent and client settings."""

    agent: AgentConfig = field(default_factory=AgentConfig)
    client: ClientConfig = field(default_factory=ClientConfig)

    @classmethod
    def load(cls,
             path: Optional[Union[str, Path]] = None,
             env: Optional[Mapping[str, str]] = None) -> "Config":
        """Load the configuration. A missing file is not an error."""
        cfg: Config = cls()
        fpath: Final[Path] = Path(path) if path is not None else common.path.config
        if env is None:
            env = os.environ

        try:
            with open(fpath, "rb") as fh:
                data: dict[str, Any] = tomllib.load(fh)
        except FileNotFoundError:
            data = {}
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as err:
            raise ConfigError(f"Cannot load configuration from {fpath}: {err}") from err

        _apply(cfg.agent, data.get("agent", {}))
        _apply(cfg.client, data.get("client", {}))

        if env.get("UDP_PORT", "") != "":
            _apply(cfg.agent, {"port": env["UDP_PORT"]})
        if env.get("IFACE_NAME", "").strip() != "":
            cfg.agent.iface = env["IFACE_NAME"].strip()

        return cfg


# Local Variables: #
# python-indent: 4 #
# End: #
