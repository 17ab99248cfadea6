#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:20:11 krylon>
#
# /data/code/python/devconf/common.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.common

(c) 2026 Benjamin Walkenhorst
"""

import logging
import logging.handlers
import os
import pathlib
import sys
import tempfile
from threading import Lock
from typing import Final, Union

AppName: Final[str] = "DevConf"
AppVersion: Final[str] = "0.1.0"

log_level_tty: int = logging.WARNING


class DevConfError(Exception):
    """Base class for application-specific Exceptions."""


class Path:
    """Holds the paths of folders and files used by the application"""

    __base: str

    def __init__(self, root: str = os.path.expanduser(f"~/.{AppName.lower()}.d")) -> None:  # noqa
        self.__base = root

    def base(self, folder: Union[str, pathlib.Path] = "") -> pathlib.Path:
        """
        Return the base directory for application specific files.

        If path is a non-empty string, set the base directory to its value.
        """
        if str(folder) != "":
            self.__base = str(folder)
        return pathlib.Path(self.__base)

    @property
    def log(self) -> pathlib.Path:
        """Return the path to the log file"""
        return pathlib.Path(os.path.join(self.__base, f"{AppName.lower()}.log"))

    @property
    def record(self) -> pathlib.Path:
        """Return the path of the persisted device record."""
        return pathlib.Path(os.path.join(self.__base, "device_config.json"))

    @property
    def config(self) -> pathlib.Path:
        """Return the path of the configuration file"""
        return pathlib.Path(os.path.join(self.__base, f"{AppName.lower()}.toml"))


path: Path = Path(os.path.expanduser(f"~/.{AppName.lower()}.d"))

_lock: Final[Lock] = Lock()  # pylint: disable-msg=C0103
_cache: Final[dict[str, logging.Logger]] = {}  # pylint: disable-msg=C0103


def set_basedir(folder: Union[str, pathlib.Path]) -> None:
    """Set the base dir to the speficied path."""
    path.base(folder)
    init_app()


def init_app() -> None:
    """Initialize the application environment"""
    if not os.path.isdir(path.base()):
        os.makedirs(path.base(), exist_ok=True)


def write_atomic(fpath: Union[str, pathlib.Path], data: str, mode: int = 0o644) -> None:
    """Write <data> to <fpath> through a temporary file and a rename.

    A crash halfway through leaves either the old or the new content behind.
    Undecodable bytes read with errors="surrogateescape" are written back as they were.
    OSError is propagated to the caller.
    """
    target: Final[pathlib.Path] = pathlib.Path(fpath)
    folder: Final[pathlib.Path] = target.parent if str(target.parent) != "" else pathlib.Path(".")
    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=folder)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def get_logger(name: str, terminal: bool = True) -> logging.Logger:
    """Create and return a logger with the given name"""
    with _lock:
        init_app()

        if name in _cache:
            return _cache[name]

        log_format = "%(asctime)s (%(name)-16s / line %(lineno)-4d) " + \
            "- %(levelname)-8s %(message)s"
        max_log_size = 4 * 2**20  # 4 MiB
        max_log_count = 10

        log_obj = logging.getLogger(name)
        log_obj.setLevel(logging.DEBUG)
        log_file_handler = logging.handlers.RotatingFileHandler(path.log,
                                                                'a',
                                                                max_log_size,
                                                                max_log_count)

        log_fmt = logging.Formatter(log_format)
        log_file_handler.setFormatter(log_fmt)
        log_obj.addHandler(log_file_handler)

        if terminal:
            log_console_handler = logging.StreamHandler(sys.stdout)
            log_console_handler.setFormatter(log_fmt)
            log_console_handler.setLevel(log_level_tty)
            log_obj.addHandler(log_console_handler)

        _cache[name] = log_obj
        return log_obj


# Local Variables: #
# python-indent: 4 #
# End: #
