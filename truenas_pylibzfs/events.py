# SPDX-License-Identifier: Apache-2.0
#
# Copyright 2019 Hudson River Trading LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

"""
Iteration over the kernel's pool event queue (``zpool events``).
"""

import errno
import json
import logging
import os

from ._constants import ZEVENT_NONBLOCK, ZEVENT_SEEK_END, ZFS_DEV
from ._error_translation import zfs_exception
from ._nvlist import dump_nvlist
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .bindings.libnvpair import lib as _nvlib

log = logging.getLogger(__name__)


class ZFSEventIterator(object):
    """
    Iterator for pool events.

    Every item is a dictionary with the event itself under ``event`` and
    the number of events the kernel dropped since the previous read under
    ``dropped``.

    :param ZFS zfs: the context.
    :param bool blocking: wait for new events.  Otherwise the iteration
        stops once no event is pending.
    :param bool skip_existing_events: only report events that arrive
        after the iterator was created.
    :raises OSError: if the event device could not be opened.
    """

    def __init__(self, zfs, blocking=False, skip_existing_events=False):
        self._zfs = zfs
        self._blocking = bool(blocking)
        self._fd = -1

        fd = os.open(ZFS_DEV, os.O_RDWR)
        if skip_existing_events:
            with zfs._lock:
                if _lib.zpool_events_seek(zfs._lzh, ZEVENT_SEEK_END, fd) != 0:
                    os.close(fd)
                    raise zfs_exception(
                        zfs._lzh, "zpool_events_seek() failed")
        self._fd = fd

    def __iter__(self):
        return self

    def __next__(self):
        if self._fd < 0:
            raise RuntimeError("Event file descriptor is not open")

        nvlp = _ffi.new("nvlist_t **")
        droppedp = _ffi.new("int *")
        flags = 0 if self._blocking else ZEVENT_NONBLOCK
        zfs = self._zfs
        with zfs._lock:
            if _lib.zpool_events_next(
                    zfs._lzh, nvlp, droppedp, flags, self._fd) != 0:
                err = _ffi.errno
                if err in (errno.EAGAIN, errno.EWOULDBLOCK):
                    raise StopIteration
                if err == errno.EINTR:
                    raise InterruptedError(err, os.strerror(err))
                raise zfs_exception(zfs._lzh, "zpool_events_next() failed")

        nvl = nvlp[0]
        if nvl == _ffi.NULL:
            raise StopIteration
        try:
            event = json.loads(dump_nvlist(nvl))
        finally:
            _nvlib.nvlist_free(nvl)

        dropped = droppedp[0]
        if dropped:
            log.debug("%d pool events dropped", dropped)
        return {"event": event, "dropped": dropped}

    def close(self):
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __del__(self):
        self.close()


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
