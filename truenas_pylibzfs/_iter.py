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
Drive the callback based libzfs iterators with Python callbacks.

A user callback is called as ``callback(obj, state)`` and must return
``True`` to continue or ``False`` to stop the iteration.  Every iterator
returns ``True`` if it ran to completion and ``False`` if the callback
stopped it.  An exception raised by the callback aborts the iteration
and is re-raised once libzfs has unwound.

The context lock is held while libzfs iterates and is released while
the user callback runs, so the callback may use the same context.
"""

import logging
import time

from ._constants import (
    USERSPACE_EBUSY_DELAY,
    USERSPACE_EBUSY_RETRIES,
    ZFS_ITER_SIMPLE,
)
from ._error_translation import zfs_exception
from ._userquota import struct_zfs_userquota
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import ZFSError, ZFSUserQuota

log = logging.getLogger(__name__)

ITER_RESULT_SUCCESS = 0
ITER_RESULT_IOCTL_ERROR = -1
ITER_RESULT_STOP = -2
ITER_RESULT_ERROR = -3


def check_callback(callback):
    if not callable(callback):
        raise TypeError("callback function must be callable.")


class _IterState(object):
    """
    Per-iteration state shared by the C callback and the caller.
    Methods are called with the context lock held.
    """

    def __init__(self, zfs, callback, state):
        check_callback(callback)
        self.zfs = zfs
        self.callback = callback
        self.state = state
        self.exc = None

    def invoke(self, obj):
        self.zfs._lock.release()
        try:
            result = self.callback(obj, self.state)
        finally:
            self.zfs._lock.acquire()

        if not isinstance(result, bool):
            raise TypeError("Expected boolean result from callback function.")

        return ITER_RESULT_SUCCESS if result else ITER_RESULT_STOP

    def callback_for(self, ctype, wrap, release=None):
        """
        Create the C callback for a libzfs iterator.

        :param str ctype: the C type of the callback.
        :param wrap: turns the C arguments into the object passed to the
            user callback.
        :param release: frees the native handle if ``wrap`` fails.
        """
        def _handler(handle, *args):
            try:
                try:
                    obj = wrap(handle, *args)
                except BaseException:
                    if release is not None:
                        release(handle)
                    raise
                return self.invoke(obj)
            except BaseException as e:
                self.exc = e
                return ITER_RESULT_ERROR

        return _ffi.callback(ctype, _handler, error=ITER_RESULT_ERROR)

    def result(self, ret, what):
        if self.exc is not None:
            exc, self.exc = self.exc, None
            raise exc
        if ret == ITER_RESULT_STOP:
            return False
        if ret != ITER_RESULT_SUCCESS:
            raise zfs_exception(self.zfs._lzh, what)
        return True


def _dataset_wrapper(zfs, simple):
    from .resource import resource_from_handle

    def _wrap(zhp, _arg):
        return resource_from_handle(zfs, zhp, simple)
    return _wrap


def iter_root_filesystems(zfs, callback, state=None):
    """
    Call ``callback`` for the root dataset of every imported pool.
    """
    it = _IterState(zfs, callback, state)
    cb = it.callback_for(
        "zfs_iter_f", _dataset_wrapper(zfs, False), _lib.zfs_close)

    with zfs._lock:
        ret = _lib.zfs_iter_root(zfs._lzh, cb, _ffi.NULL)
        return it.result(ret, "zfs_iter_root() failed")


def iter_filesystems(rsrc, callback, state=None, fast=False):
    """
    Call ``callback`` for every filesystem and volume that is a direct
    child of ``rsrc``.

    :param bool fast: open the children as simple handles whose
        properties are read on first use.
    """
    zfs = rsrc._zfs
    it = _IterState(zfs, callback, state)
    cb = it.callback_for(
        "zfs_iter_f", _dataset_wrapper(zfs, fast), _lib.zfs_close)
    flags = ZFS_ITER_SIMPLE if fast else 0

    with zfs._lock:
        ret = _lib.zfs_iter_filesystems_v2(rsrc._zhp, flags, cb, _ffi.NULL)
        return it.result(ret, "zfs_iter_filesystems() failed")


def iter_snapshots(rsrc, callback, state=None, fast=False,
                   min_txg=0, max_txg=0, sorted_by_txg=False):
    """
    Call ``callback`` for every snapshot of ``rsrc`` whose creation txg
    is within ``[min_txg, max_txg]``.  Zero leaves that end unbounded.

    :param bool sorted_by_txg: visit the snapshots in creation order.
    """
    zfs = rsrc._zfs
    it = _IterState(zfs, callback, state)
    cb = it.callback_for(
        "zfs_iter_f", _dataset_wrapper(zfs, fast), _lib.zfs_close)
    flags = ZFS_ITER_SIMPLE if fast else 0

    if sorted_by_txg:
        func = _lib.zfs_iter_snapshots_sorted_v2
        what = "zfs_iter_snapshots_sorted() failed"
    else:
        func = _lib.zfs_iter_snapshots_v2
        what = "zfs_iter_snapshots() failed"

    with zfs._lock:
        ret = func(rsrc._zhp, flags, cb, _ffi.NULL, min_txg, max_txg)
        return it.result(ret, what)


def iter_pools(zfs, callback, state=None):
    """
    Call ``callback`` for every imported pool.
    """
    from .pool import ZFSPool

    def _wrap(zhp, _arg):
        return ZFSPool(zfs, zhp)

    it = _IterState(zfs, callback, state)
    cb = it.callback_for("zpool_iter_f", _wrap, _lib.zpool_close)

    with zfs._lock:
        ret = _lib.zpool_iter(zfs._lzh, cb, _ffi.NULL)
        return it.result(ret, "zpool_iter() failed")


def iter_userspace(rsrc, quota_type, callback, state=None):
    """
    Call ``callback`` with a `struct_zfs_userquota` for every id that
    has a ``quota_type`` entry on ``rsrc``.

    The underlying ioctl fails with EBUSY while the dataset is being
    unmounted, so EBUSY failures are retried a bounded number of times.
    """
    if not isinstance(quota_type, ZFSUserQuota):
        raise TypeError("Not a valid ZFSUserQuota")

    def _wrap(_arg, _domain, xid, value, _default_quota):
        return struct_zfs_userquota(quota_type, xid, value)

    zfs = rsrc._zfs
    it = _IterState(zfs, callback, state)
    cb = it.callback_for("zfs_userspace_cb_t", _wrap)

    with zfs._lock:
        for tries in range(USERSPACE_EBUSY_RETRIES):
            ret = _lib.zfs_userspace(rsrc._zhp, quota_type, cb, _ffi.NULL)
            if ret != ITER_RESULT_IOCTL_ERROR:
                break
            if _lib.libzfs_errno(zfs._lzh) != ZFSError.EZFS_BUSY:
                break
            log.debug("%s: userspace busy, retrying (%d)", rsrc.name, tries)
            time.sleep(USERSPACE_EBUSY_DELAY)

        return it.result(ret, "zfs_iter_userspace() failed")


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
