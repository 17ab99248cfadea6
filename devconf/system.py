#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:15:48 krylon>
#
# /data/code/python/devconf/system.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.system

(c) 2026 Benjamin Walkenhorst

Operations on the host system the agent runs on. Both usually require root.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Final, Sequence

from devconf import common
from devconf.common import DevConfError

cmd_timeout: Final[float] = 30.0


class CapabilityError(DevConfError):
    """CapabilityError indicates that a system operation failed."""


@dataclass(kw_only=True, slots=True)
class System:
    """System reboots the host and restarts its network service."""

    log: logging.Logger = field(default_factory=lambda: common.get_logger("system"))

    def _run(self, cmd: Sequence[str]) -> None:
        self.log.info("Run %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd,
                                  stdout=subprocess.PIPE,
                                  stderr=subprocess.STDOUT,
                                  text=True,
                                  timeout=cmd_timeout,
                                  check=False)
        except (OSError, subprocess.SubprocessError) as err:
            self.log.error("Failed to run %s: %s", cmd[0], err)
            raise CapabilityError(f"{cmd[0]}: {err}") from err

        if proc.returncode != 0:
            out: Final[str] = proc.stdout.strip()
            self.log.error("%s exited with status %d: %s",
                           " ".join(cmd),
                           proc.returncode,
                           out)
            raise CapabilityError(out or f"{cmd[0]} exited with status {proc.returncode}")

    def reboot(self) -> None:
        """Reboot the host, through systemd if it is available."""
        if shutil.which("systemctl") is not None:
            self._run(["systemctl", "reboot"])
        else:
            self._run(["reboot"])

    def restart_network(self) -> None:
        """Restart systemd-networkd, so a new configuration takes effect."""
        self._run(["systemctl", "restart", "systemd-networkd"])


# Local Variables: #
# python-indent: 4 #
# End: #
