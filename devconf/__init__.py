#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:14:02 krylon>
#
# /data/code/python/devconf/__init__.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the DevConf device configuration tool. It is distributed
# under the terms of the GNU General Public License 3. See the file LICENSE for
# details or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
devconf.__init__

(c) 2026 Benjamin Walkenhorst

DevConf finds devices on the local network over UDP broadcast, and reads
and changes their network configuration.
"""

# Local Variables: #
# python-indent: 4 #
# End: #
