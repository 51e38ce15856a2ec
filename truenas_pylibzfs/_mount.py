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
Mounting and unmounting of filesystems.

libzfs does not log mounts to the pool history, neither do we.
"""

import logging
import os

from ._constants import (
    ENCODING,
    INIT_USER_NS,
    MS_CRYPT,
    MS_DETACH,
    MS_FORCE,
    UMOUNT_NOFOLLOW,
    ZFS_CANMOUNT_OFF,
    ZFS_MAXPROPLEN,
)
from ._error_translation import zfs_exception
from .bindings import libc
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import ZFSProperty, ZFSType

log = logging.getLogger(__name__)

#: Marks an argument the caller did not pass.
NOT_SET = object()


def in_global_zone():
    """
    :return: ``True`` if this process runs in the initial user namespace.
    """
    return os.readlink("/proc/self/ns/user") == INIT_USER_NS


def check_mountable(rsrc, force):
    """
    :raises PermissionError: if the dataset is zoned and we are outside
        of a container, or if it is redacted and ``force`` is not set.
    :raises ValueError: if ``canmount`` is ``off`` and ``force`` is not set.
    """
    zfs = rsrc._zfs
    with zfs._lock:
        zoned = _lib.zfs_prop_get_int(rsrc._zhp, ZFSProperty.ZONED)
        redacted = _lib.zfs_prop_get_int(rsrc._zhp, ZFSProperty.REDACTED)
        canmount = _lib.zfs_prop_get_int(rsrc._zhp, ZFSProperty.CANMOUNT)

    if zoned and in_global_zone():
        raise PermissionError("Dataset has zone configuration.")

    if redacted and not force:
        raise PermissionError(
            "Dataset is redacted and force parameter was not specified.")

    if canmount == ZFS_CANMOUNT_OFF and not force:
        raise ValueError(
            "Dataset canmount property is set to off and force parameter "
            "was not specified")


def _mountpoint_property(rsrc):
    # zfs_mount_at() does not check the type, zfs_mount() would
    if rsrc.type != ZFSType.ZFS_TYPE_FILESYSTEM:
        raise ValueError(
            "mountpoint is required if ZFS type is not a filesystem.")

    zfs = rsrc._zfs
    buf = _ffi.new("char[]", ZFS_MAXPROPLEN)
    with zfs._lock:
        err = _lib.zfs_prop_get(
            rsrc._zhp, ZFSProperty.MOUNTPOINT, buf, ZFS_MAXPROPLEN,
            _ffi.NULL, _ffi.NULL, 0, False)
        if err:
            raise zfs_exception(zfs._lzh, "Failed to get mountpoint")

    mountpoint = _ffi.string(buf).decode(ENCODING)
    if mountpoint == "none":
        raise ValueError("Dataset mountpoint is set to none")
    if mountpoint == "legacy":
        raise ValueError("Dataset has legacy mountpoint.")
    return mountpoint


def resolve_mountpoint(rsrc, mountpoint=NOT_SET):
    """
    :param mountpoint: explicit mountpoint; the ``mountpoint`` property
        is used when it is not passed.
    :return: absolute path to mount ``rsrc`` on.
    :raises ValueError: if there is no usable mountpoint.
    """
    if mountpoint is NOT_SET:
        mountpoint = _mountpoint_property(rsrc)
    elif mountpoint is None:
        raise ValueError("mountpoint may not be set to None")
    elif not isinstance(mountpoint, str):
        raise TypeError("mountpoint must be a string")

    if not mountpoint.startswith("/"):
        raise ValueError(
            "%s: mountpoint must be an absolute path." % mountpoint)
    if mountpoint == "/":
        raise ValueError("Mounting over / is not permitted.")
    return mountpoint


def mount_options(options):
    """
    :param options: a list of options such as ``["noatime", "ro"]``.
    :return: the options as a comma separated string, ``None`` if there
        are none.  libzfs validates the options themselves.
    """
    if options is None:
        return None
    if isinstance(options, str) or not all(
            isinstance(opt, str) for opt in options):
        raise TypeError("mount_options must be a list of strings")
    return ",".join(options) or None


def mount(rsrc, mountpoint=NOT_SET, options=None, force=False,
          load_encryption_key=False):
    flags = 0
    if force:
        flags |= MS_FORCE
    if load_encryption_key:
        flags |= MS_CRYPT

    mountpoint = resolve_mountpoint(rsrc, mountpoint)
    check_mountable(rsrc, force)
    opts = mount_options(options)

    zfs = rsrc._zfs
    with zfs._lock:
        err = _lib.zfs_mount_at(
            rsrc._zhp,
            opts.encode(ENCODING) if opts else _ffi.NULL,
            flags,
            mountpoint.encode(ENCODING))
        if err:
            raise zfs_exception(zfs._lzh, "zfs_mount_at() failed")
        _lib.zfs_refresh_properties(rsrc._zhp)

    log.debug("%s: mounted on %s", rsrc.name, mountpoint)


def unmount(rsrc, mountpoint=None, force=False, lazy=False,
            unload_encryption_key=False, follow_symlinks=False,
            recursive=False):
    flags = 0
    if force:
        flags |= MS_FORCE
    if lazy:
        flags |= MS_DETACH
    if unload_encryption_key:
        flags |= MS_CRYPT
    if not follow_symlinks:
        flags |= UMOUNT_NOFOLLOW

    if recursive and mountpoint is not None:
        raise ValueError(
            "mountpoint may not be specified for recursive unmount.")

    zfs = rsrc._zfs
    with zfs._lock:
        if recursive:
            err = _lib.zfs_unmountall(rsrc._zhp, flags)
            what = "zfs_unmountall() failed"
        else:
            err = _lib.zfs_unmount(
                rsrc._zhp,
                mountpoint.encode(ENCODING) if mountpoint else _ffi.NULL,
                flags)
            what = "zfs_unmount() failed"
        if err:
            raise zfs_exception(zfs._lzh, what)
        _lib.zfs_refresh_properties(rsrc._zhp)

    log.debug("%s: unmounted", rsrc.name)


def get_mountpoint(rsrc):
    """
    :return: where ``rsrc`` is currently mounted or ``None``.
    """
    mntp = _ffi.new("char **")
    zfs = rsrc._zfs
    with zfs._lock:
        mounted = _lib.zfs_is_mounted(rsrc._zhp, mntp)

    if not mounted or mntp[0] == _ffi.NULL:
        return None
    try:
        return _ffi.string(mntp[0]).decode(ENCODING)
    finally:
        libc.lib.free(mntp[0])


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
