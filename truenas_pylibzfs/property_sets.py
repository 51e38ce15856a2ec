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
Frozen sets of `ZFSProperty` and `ZPOOLStatus` members.

The per-type property sets are taken from the libzfs property table the
first time they are accessed, so that importing this module does not
load libzfs.

Example::

    rsrc.get_properties(properties=property_sets.ZFS_SPACE_PROPERTIES)
"""

from .bindings.libzfs import lib as _lib
from .enums import ZFSProperty, ZFSType, ZPOOLStatus
from .properties import HIDDEN_PROPERTIES

__all__ = [
    "ZFS_VOLUME_PROPERTIES",
    "ZFS_VOLUME_READONLY_PROPERTIES",
    "ZFS_FILESYSTEM_PROPERTIES",
    "ZFS_FILESYSTEM_READONLY_PROPERTIES",
    "ZFS_FILESYSTEM_SNAPSHOT_PROPERTIES",
    "ZFS_FILESYSTEM_SNAPSHOT_READONLY_PROPERTIES",
    "ZFS_VOLUME_SNAPSHOT_PROPERTIES",
    "ZFS_VOLUME_SNAPSHOT_READONLY_PROPERTIES",
    "ZFS_SPACE_PROPERTIES",
    "ZPOOL_STATUS_RECOVERABLE",
    "ZPOOL_STATUS_NONRECOVERABLE",
]

ZFS_SPACE_PROPERTIES = frozenset([
    ZFSProperty.AVAILABLE,
    ZFSProperty.USEDSNAP,
    ZFSProperty.WRITTEN,
    ZFSProperty.USEDDS,
    ZFSProperty.USEDREFRESERV,
    ZFSProperty.USEDCHILD,
    ZFSProperty.USED,
])

ZPOOL_STATUS_NONRECOVERABLE = frozenset([
    ZPOOLStatus.ZPOOL_STATUS_MISSING_DEV_NR,
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_LABEL_NR,
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_POOL,
    ZPOOLStatus.ZPOOL_STATUS_VERSION_NEWER,
    ZPOOLStatus.ZPOOL_STATUS_UNSUP_FEAT_READ,
    ZPOOLStatus.ZPOOL_STATUS_FAULTED_DEV_NR,
    ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_MMP,
    ZPOOLStatus.ZPOOL_STATUS_BAD_GUID_SUM,
])

ZPOOL_STATUS_RECOVERABLE = frozenset([
    ZPOOLStatus.ZPOOL_STATUS_MISSING_DEV_R,
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_LABEL_R,
    ZPOOLStatus.ZPOOL_STATUS_FAULTED_DEV_R,
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_DATA,
    ZPOOLStatus.ZPOOL_STATUS_BAD_LOG,
    ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_WAIT,
    ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_CONTINUE,
])


def _valid_for(zfs_type, snapshot=False, readonly=False):
    out = set()
    for prop in ZFSProperty:
        if prop in HIDDEN_PROPERTIES:
            continue
        if not _lib.zfs_prop_valid_for_type(prop, zfs_type, False):
            continue
        if snapshot and not _lib.zfs_prop_valid_for_type(
                prop, ZFSType.ZFS_TYPE_SNAPSHOT, False):
            continue
        if readonly and not _lib.zfs_prop_readonly(prop):
            continue
        out.add(prop)
    return frozenset(out)


_LAZY = {
    "ZFS_VOLUME_PROPERTIES":
        (ZFSType.ZFS_TYPE_VOLUME, False, False),
    "ZFS_VOLUME_READONLY_PROPERTIES":
        (ZFSType.ZFS_TYPE_VOLUME, False, True),
    "ZFS_FILESYSTEM_PROPERTIES":
        (ZFSType.ZFS_TYPE_FILESYSTEM, False, False),
    "ZFS_FILESYSTEM_READONLY_PROPERTIES":
        (ZFSType.ZFS_TYPE_FILESYSTEM, False, True),
    "ZFS_FILESYSTEM_SNAPSHOT_PROPERTIES":
        (ZFSType.ZFS_TYPE_FILESYSTEM, True, False),
    "ZFS_FILESYSTEM_SNAPSHOT_READONLY_PROPERTIES":
        (ZFSType.ZFS_TYPE_FILESYSTEM, True, True),
    "ZFS_VOLUME_SNAPSHOT_PROPERTIES":
        (ZFSType.ZFS_TYPE_VOLUME, True, False),
    "ZFS_VOLUME_SNAPSHOT_READONLY_PROPERTIES":
        (ZFSType.ZFS_TYPE_VOLUME, True, True),
}


def __getattr__(name):
    try:
        args = _LAZY[name]
    except KeyError:
        raise AttributeError(
            "module %r has no attribute %r" % (__name__, name))

    value = _valid_for(*args)
    globals()[name] = value
    return value


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
