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
The ``zpool status`` report of an imported pool.

The report is assembled from three sources: ``zpool_get_status()`` for the
health code, the pool error log for damaged files, and a private copy of
the vdev tree for the topology.  Top-level vdevs are sorted into storage,
log, special and dedup classes the same way ``zpool status`` does; cache
devices and spares come from their own arrays on the root vdev.
"""

import logging
from collections import namedtuple

from ._constants import (
    ENCODING,
    MAXPATHLEN,
    VDEV_ALLOC_BIAS,
    VDEV_NAME_FOLLOW_LINKS,
    VDEV_NAME_PATH,
    VDEV_NAME_TYPE_ID,
    VDEV_STAT,
    VDEV_TYPE,
    ZFS_MSG_URL,
    ZPOOL_CONFIG,
    ZPOOL_ERRATA_NONE,
    ZPOOL_ERRATA_ZOL_2094_SCRUB,
    ZPOOL_ERRATA_ZOL_6845_ENCRYPTION,
    ZPOOL_ERRATA_ZOL_8308_ENCRYPTION,
    ZPOOL_STATUS_BUFLEN,
)
from ._error_translation import zfs_exception
from ._nvlist import (
    lookup_nvlist,
    lookup_nvlist_array,
    lookup_string,
    lookup_uint64,
    lookup_uint64_array,
    nvlist_dup,
    nvlist_out,
)
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import VDevState, ZPOOLStatus
from .vdev import vdev_name

log = logging.getLogger(__name__)

struct_zpool_status = namedtuple("struct_zpool_status", [
    "status",
    "reason",
    "action",
    "message",
    "corrupted_files",
    "storage_vdevs",
    "support_vdevs",
    "spares",
])

struct_support_vdev = namedtuple("struct_support_vdev", [
    "cache",
    "log",
    "special",
    "dedup",
])

struct_vdev = namedtuple("struct_vdev", [
    "name",
    "vdev_type",
    "guid",
    "state",
    "stats",
    "children",
    "top_guid",
])

struct_vdev_stats = namedtuple("struct_vdev_stats", [
    "allocated",
    "space",
    "dspace",
    "pspace",
    "rsize",
    "esize",
    "read_errors",
    "write_errors",
    "checksum_errors",
    "initialize_errors",
    "dio_verify_errors",
    "slow_ios",
    "self_healed_bytes",
])

# zpool_explain_recover() supplies the action for these
_RECOVER = object()

_MISSING_DEV_ACTION = "Attach the missing device and online it using " \
    "'zpool online'"
_ONLINE_OR_REPLACE = "Online the device using 'zpool online' or replace " \
    "the device with 'zpool replace'."

_STATUS_TEXT = {
    ZPOOLStatus.ZPOOL_STATUS_MISSING_DEV_R: (
        "One or more devices could not be opened.  Sufficient replicas "
        "exist for the pool to continue functioning in a degraded state.",
        _MISSING_DEV_ACTION),
    ZPOOLStatus.ZPOOL_STATUS_MISSING_DEV_NR: (
        "One or more devices could not be opened. There are insufficient "
        "replicas for the pool to continue functioning.",
        _MISSING_DEV_ACTION),
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_LABEL_R: (
        "One or more devices could not be used because the label is "
        "missing or invalid. Sufficient replicas exist for the pool to "
        "continue functioning in a degraded state.",
        "Replace the device using 'zpool replace'."),
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_LABEL_NR: (
        "One or more devices could not be used because the label is "
        "missing or invalid. There are insufficient replicas for the pool "
        "to continue functioning.",
        _RECOVER),
    ZPOOLStatus.ZPOOL_STATUS_FAILING_DEV: (
        "One or more devices has experienced an unrecoverable error.  An "
        "attempt was made to correct the error.  Applications are "
        "unaffected.",
        "Determine if the device needs to be replaced, and clear the "
        "errors using 'zpool clear' or replace the device with 'zpool "
        "replace'."),
    ZPOOLStatus.ZPOOL_STATUS_OFFLINE_DEV: (
        "One or more devices has been taken offline by the administrator. "
        "Sufficient replicas exist for the pool to continue functioning in "
        "a degraded state.",
        _ONLINE_OR_REPLACE),
    ZPOOLStatus.ZPOOL_STATUS_REMOVED_DEV: (
        "One or more devices have been removed. Sufficient replicas exist "
        "for the pool to continue functioning in a degraded state.",
        _ONLINE_OR_REPLACE),
    ZPOOLStatus.ZPOOL_STATUS_RESILVERING: (
        "One or more devices is currently being resilvered.  The pool will "
        "continue to function, possibly in a degraded state.",
        "Wait for the resilver to complete."),
    ZPOOLStatus.ZPOOL_STATUS_REBUILD_SCRUB: (
        "One or more devices have been sequentially resilvered, scrubbing "
        "the pool is recommended.",
        "Use 'zpool scrub' to verify all data checksums."),
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_DATA: (
        "One or more devices has experienced an error resulting in data "
        "corruption. Applications may be affected.",
        "Restore the file in question if possible.  Otherwise restore the "
        "entire pool from backup."),
    ZPOOLStatus.ZPOOL_STATUS_CORRUPT_POOL: (
        "The pool metadata is corrupted and the pool cannot be opened.",
        _RECOVER),
    ZPOOLStatus.ZPOOL_STATUS_VERSION_OLDER: (
        "The pool is formatted using a legacy on-disk format.  The pool can "
        "still be used, but some features are unavailable.",
        "Upgrade the pool using 'zpool upgrade'.  Once this is done, the "
        "pool will no longer be accessible on software that does not "
        "support feature flags."),
    ZPOOLStatus.ZPOOL_STATUS_VERSION_NEWER: (
        "The pool has been upgraded to a newer, incompatible on-disk "
        "version. The pool cannot be accessed on this system.",
        "Access the pool from a system running more recent software, or "
        "restore the pool from backup."),
    ZPOOLStatus.ZPOOL_STATUS_FEAT_DISABLED: (
        "Some supported and requested features are not enabled on the pool. "
        "The pool can still be used, but some features are unavailable.",
        "Enable all features using 'zpool upgrade'. Once this is done, the "
        "pool may no longer be accessible by software that does not support "
        "the features. See zpool-features(7) for details."),
    ZPOOLStatus.ZPOOL_STATUS_COMPATIBILITY_ERR: (
        "This pool has a compatibility list specified, but it could not be "
        "read/parsed at this time. The pool can still be used, but this "
        "should be investigated.",
        "Check the value of the 'compatibility' property against the "
        "appropriate file in /etc/zfs/compatibility.d or "
        "/usr/share/zfs/compatibility.d."),
    ZPOOLStatus.ZPOOL_STATUS_INCOMPATIBLE_FEAT: (
        "One or more features are enabled on the pool despite not being "
        "requested by the 'compatibility' property.",
        "Consider setting 'compatibility' to an appropriate value, or "
        "adding needed features to the relevant file in "
        "/etc/zfs/compatibility.d or /usr/share/zfs/compatibility.d."),
    ZPOOLStatus.ZPOOL_STATUS_UNSUP_FEAT_READ: (
        "The pool cannot be accessed on this system because it uses the "
        "following feature(s) not supported on this system:\n",
        "Access the pool from a system that supports the required "
        "feature(s), or restore the pool from backup."),
    ZPOOLStatus.ZPOOL_STATUS_UNSUP_FEAT_WRITE: (
        "The pool can only be accessed in read-only mode on this system. It "
        "cannot be accessed in read-write mode because it uses the "
        "following feature(s) not supported on this system:\n",
        "The pool cannot be accessed in read-write mode. Import the pool "
        "with \"-o readonly=on\", access the pool from a system that "
        "supports the required feature(s), or restore the pool from "
        "backup."),
    ZPOOLStatus.ZPOOL_STATUS_FAULTED_DEV_R: (
        "One or more devices are faulted in response to persistent errors. "
        "Sufficient replicas exist for the pool to continue functioning in "
        "a degraded state.",
        "Replace the faulted device, or use 'zpool clear' to mark the "
        "device repaired."),
    ZPOOLStatus.ZPOOL_STATUS_FAULTED_DEV_NR: (
        "One or more devices are faulted in response to persistent errors.  "
        "There are insufficient replicas for the pool to continue "
        "functioning.",
        "Destroy and re-create the pool from a backup source.  Manually "
        "marking the device repaired using 'zpool clear' may allow some "
        "data to be recovered."),
    ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_MMP: (
        "The pool is suspended because multihost writes failed or were "
        "delayed; another system could import the pool undetected.",
        "Make sure the pool's devices are connected, then reboot your "
        "system and import the pool or run 'zpool clear' to resume the "
        "pool."),
    ZPOOLStatus.ZPOOL_STATUS_BAD_LOG: (
        "An intent log record could not be read. Waiting for administrator "
        "intervention to fix the faulted pool.",
        "Either restore the affected device(s) and run 'zpool online', or "
        "ignore the intent log records by running 'zpool clear'."),
    ZPOOLStatus.ZPOOL_STATUS_NON_NATIVE_ASHIFT: (
        "One or more devices are configured to use a non-native block "
        "size. Expect reduced performance.",
        "Replace affected devices with devices that support the configured "
        "block size, or migrate data to a properly configured pool."),
    ZPOOLStatus.ZPOOL_STATUS_HOSTID_ACTIVE: (
        "The pool is currently imported by another system.",
        "The pool must be exported from the other system before it can be "
        "safely imported."),
    ZPOOLStatus.ZPOOL_STATUS_HOSTID_REQUIRED: (
        "The pool has the multihost property on. It cannot be safely "
        "imported when the system hostid is not set.",
        "Set a unique system hostid with the zgenhostid(8) command."),
    ZPOOLStatus.ZPOOL_STATUS_HOSTID_MISMATCH: (
        "Mismatch between pool hostid and system hostid on imported pool. "
        "This pool was previously imported into a system with a different "
        "hostid, and then was verbatim imported into this system.",
        "Export this pool on all systems on which it is imported. Then "
        "import it to correct the mismatch."),
}
_STATUS_TEXT[ZPOOLStatus.ZPOOL_STATUS_REBUILDING] = \
    _STATUS_TEXT[ZPOOLStatus.ZPOOL_STATUS_RESILVERING]
_STATUS_TEXT[ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_WAIT] = (
    "One or more devices are faulted in response to IO failures.",
    "Make sure the affected devices are connected, then run 'zpool clear'.")
_STATUS_TEXT[ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_CONTINUE] = \
    _STATUS_TEXT[ZPOOLStatus.ZPOOL_STATUS_IO_FAILURE_WAIT]

_UNSUP_FEAT = (
    ZPOOLStatus.ZPOOL_STATUS_UNSUP_FEAT_READ,
    ZPOOLStatus.ZPOOL_STATUS_UNSUP_FEAT_WRITE,
)

_ERRATA_TEXT = {
    ZPOOL_ERRATA_NONE: (None, None),
    ZPOOL_ERRATA_ZOL_2094_SCRUB: (
        None,
        "To correct the issue run 'zpool scrub'."),
    ZPOOL_ERRATA_ZOL_6845_ENCRYPTION: (
        "Existing encrypted datasets contain an on-disk incompatibility "
        "which needs to be corrected.",
        "To correct the issue backup existing encrypted datasets to new "
        "encrypted datasets and destroy the old ones. 'zfs mount -o ro' "
        "can be used to temporarily mount existing encrypted datasets "
        "readonly."),
    ZPOOL_ERRATA_ZOL_8308_ENCRYPTION: (
        "Existing encrypted snapshots and bookmarks contain an on-disk "
        "incompatibility. This may cause on-disk corruption if they are "
        "used with 'zfs recv'.",
        "To correct the issue, enable the bookmark_v2 feature. No "
        "additional action is needed if there are no encrypted snapshots "
        "or bookmarks. If preserving the encrypted snapshots and bookmarks "
        "is required, use a non-raw send to backup and restore them. "
        "Alternately, they may be removed to resolve the incompatibility."),
}

# top-level vdev classes
_STORAGE = "storage"
_LOG = "log"
_SPECIAL = VDEV_ALLOC_BIAS.SPECIAL
_DEDUP = VDEV_ALLOC_BIAS.DEDUP


def explain_recover(pool, status):
    buf = _ffi.new("char[]", ZPOOL_STATUS_BUFLEN)
    zfs = pool._zfs
    with zfs._lock:
        _lib.zpool_explain_recover(
            zfs._lzh, pool.name.encode(ENCODING), status,
            _lib.zpool_get_config(pool._zhp, _ffi.NULL),
            buf, ZPOOL_STATUS_BUFLEN)
    return _ffi.string(buf).decode(ENCODING)


def unsupported_features(pool):
    buf = _ffi.new("char[]", ZPOOL_STATUS_BUFLEN)
    zfs = pool._zfs
    with zfs._lock:
        _lib.zpool_collect_unsup_feat(
            _lib.zpool_get_config(pool._zhp, _ffi.NULL),
            buf, ZPOOL_STATUS_BUFLEN)
    return _ffi.string(buf).decode(ENCODING)


def status_text(pool, status, errata):
    """
    :return: ``(reason, action)`` for a pool status code, both ``None``
        for a healthy pool.
    """
    if status == ZPOOLStatus.ZPOOL_STATUS_ERRATA:
        reason = "Errata #%d detected." % errata
        extra, action = _ERRATA_TEXT.get(errata, (None, None))
        if extra is not None:
            reason = "%s %s" % (reason, extra)
        return reason, action

    reason, action = _STATUS_TEXT.get(status, (None, None))
    if action is _RECOVER:
        action = explain_recover(pool, status)
    if status in _UNSUP_FEAT:
        reason = "%s %s" % (reason, unsupported_features(pool))
    return reason, action


def corrupted_files(pool):
    """
    :return: a tuple with the path of every file listed in the pool's
        persistent error log.
    """
    zfs = pool._zfs
    errlog = {}
    with nvlist_out(errlog) as nvlistp:
        with zfs._lock:
            if _lib.zpool_get_errlog(pool._zhp, nvlistp) != 0:
                raise zfs_exception(zfs._lzh, "Failed to get zpool error log")

    pathlen = MAXPATHLEN * 2
    buf = _ffi.new("char[]", pathlen)
    out = []
    for entry in errlog.values():
        with zfs._lock:
            _lib.zpool_obj_to_path(
                pool._zhp,
                entry[ZPOOL_CONFIG.ERRLOG_DATASET],
                entry[ZPOOL_CONFIG.ERRLOG_OBJECT],
                buf, pathlen)
        out.append(_ffi.string(buf).decode(ENCODING))
    return tuple(out)


def vdev_class(nvl):
    """
    :return: the class of a top-level vdev or ``None`` for holes and
        indirect vdevs left behind by device removal.
    """
    if lookup_uint64(nvl, ZPOOL_CONFIG.IS_HOLE, 0):
        return None
    if lookup_uint64(nvl, ZPOOL_CONFIG.IS_LOG, 0):
        return _LOG
    if lookup_string(nvl, ZPOOL_CONFIG.TYPE) == VDEV_TYPE.INDIRECT:
        return None
    bias = lookup_string(nvl, ZPOOL_CONFIG.ALLOCATION_BIAS)
    if bias in (_SPECIAL, _DEDUP):
        return bias
    return _STORAGE


def display_type(nvl, nchildren):
    """
    raidz and dRAID vdevs carry their layout in the type shown to the
    user, e.g. ``raidz2`` or ``draid2:4d:6c:0s``.
    """
    vtype = lookup_string(nvl, ZPOOL_CONFIG.TYPE)
    if vtype == VDEV_TYPE.RAIDZ:
        return "%s%d" % (vtype, lookup_uint64(nvl, ZPOOL_CONFIG.NPARITY))
    if vtype == VDEV_TYPE.DRAID:
        return "%s%d:%dd:%dc:%ds" % (
            vtype,
            lookup_uint64(nvl, ZPOOL_CONFIG.NPARITY),
            lookup_uint64(nvl, ZPOOL_CONFIG.DRAID_NDATA),
            nchildren,
            lookup_uint64(nvl, ZPOOL_CONFIG.DRAID_NSPARES))
    return vtype


def vdev_stats(vs, has_children):
    return struct_vdev_stats(
        allocated=vs[VDEV_STAT.ALLOC],
        space=vs[VDEV_STAT.SPACE],
        dspace=vs[VDEV_STAT.DSPACE],
        pspace=vs[VDEV_STAT.PSPACE],
        rsize=vs[VDEV_STAT.RSIZE],
        esize=vs[VDEV_STAT.ESIZE],
        read_errors=vs[VDEV_STAT.READ_ERRORS],
        write_errors=vs[VDEV_STAT.WRITE_ERRORS],
        checksum_errors=vs[VDEV_STAT.CHECKSUM_ERRORS],
        initialize_errors=vs[VDEV_STAT.INITIALIZE_ERRORS],
        dio_verify_errors=vs[VDEV_STAT.DIO_VERIFY_ERRORS],
        slow_ios=None if has_children else vs[VDEV_STAT.SLOW_IOS],
        self_healed_bytes=vs[VDEV_STAT.SELF_HEALED],
    )


class _VdevWalker(object):
    """
    Converts vdev nvlists of one pool into `struct_vdev` trees.
    """

    def __init__(self, pool, get_stats, name_flags):
        self.pool = pool
        self.get_stats = get_stats
        self.name_flags = name_flags

    def vdev(self, nvl):
        children = [
            child for child in lookup_nvlist_array(nvl, ZPOOL_CONFIG.CHILDREN)
            if not lookup_uint64(child, ZPOOL_CONFIG.IS_HOLE, 0)
        ]
        vtype = display_type(nvl, len(children))
        vs = lookup_uint64_array(nvl, ZPOOL_CONFIG.VDEV_STATS)

        top_guid = None
        if vtype == VDEV_TYPE.DRAID_SPARE:
            top_guid = lookup_uint64(nvl, ZPOOL_CONFIG.TOP_GUID)

        return struct_vdev(
            name=vdev_name(self.pool, nvl, self.name_flags),
            vdev_type=vtype,
            guid=lookup_uint64(nvl, ZPOOL_CONFIG.GUID),
            state=VDevState(vs[VDEV_STAT.STATE]),
            stats=vdev_stats(vs, bool(children)) if self.get_stats else None,
            children=tuple(
                self.vdev(child) for child in children) or None,
            top_guid=top_guid,
        )

    def top_level(self, nvls, cls):
        return tuple(
            self.vdev(nvl) for nvl in nvls if vdev_class(nvl) == cls)

    def topology(self, root):
        top = lookup_nvlist_array(root, ZPOOL_CONFIG.CHILDREN)
        support = struct_support_vdev(
            cache=self.top_level(
                lookup_nvlist_array(root, ZPOOL_CONFIG.L2CACHE), _STORAGE),
            log=self.top_level(top, _LOG),
            special=self.top_level(top, _SPECIAL),
            dedup=self.top_level(top, _DEDUP),
        )
        spares = self.top_level(
            lookup_nvlist_array(root, ZPOOL_CONFIG.SPARES), _STORAGE)
        return self.top_level(top, _STORAGE), support, spares


def vdev_tree_copy(pool):
    """
    :return: a private copy of the pool's vdev tree that stays valid after
        the cached configuration is refreshed.
    """
    zfs = pool._zfs
    with zfs._lock:
        config = _lib.zpool_get_config(pool._zhp, _ffi.NULL)
        if config == _ffi.NULL:
            raise RuntimeError("%s: pool has no configuration" % pool.name)
        tree = lookup_nvlist(config, ZPOOL_CONFIG.VDEV_TREE)
        if tree is None:
            raise RuntimeError("%s: pool has no vdev tree" % pool.name)
        return nvlist_dup(tree)


def name_flags(follow_links=True, full_path=True):
    flags = VDEV_NAME_TYPE_ID
    if follow_links:
        flags |= VDEV_NAME_FOLLOW_LINKS
    if full_path:
        flags |= VDEV_NAME_PATH
    return flags


def pool_status(pool, get_stats=True, follow_links=True, full_path=True):
    """
    Build the ``zpool status`` report for ``pool``.

    :param ZFSPool pool: the pool.
    :param bool get_stats: include space and error counters per vdev.
    :param bool follow_links: resolve device links in vdev names.
    :param bool full_path: report full device paths rather than basenames.
    :rtype: struct_zpool_status
    """
    msgidp = _ffi.new("const char **")
    erratap = _ffi.new("zpool_errata_t *")
    zfs = pool._zfs
    with zfs._lock:
        status = ZPOOLStatus(
            _lib.zpool_get_status(pool._zhp, msgidp, erratap))

    message = None
    if msgidp[0] != _ffi.NULL:
        message = ZFS_MSG_URL % _ffi.string(msgidp[0]).decode(ENCODING)

    reason, action = status_text(pool, status, erratap[0])
    files = corrupted_files(pool)

    root = vdev_tree_copy(pool)
    walker = _VdevWalker(pool, get_stats, name_flags(follow_links, full_path))
    storage, support, spares = walker.topology(root)

    log.debug("%s: status %s", pool.name, status.name)
    return struct_zpool_status(
        status=status,
        reason=reason,
        action=action,
        message=message,
        corrupted_files=files,
        storage_vdevs=storage,
        support_vdevs=support,
        spares=spares,
    )


def vdev_to_dict(vdev):
    out = vdev._asdict()
    if vdev.stats is not None:
        out["stats"] = vdev.stats._asdict()
    if vdev.children is not None:
        out["children"] = tuple(vdev_to_dict(c) for c in vdev.children)
    return out


def status_to_dict(status):
    """
    Convert a `struct_zpool_status` to plain dictionaries and tuples.
    """
    out = status._asdict()
    out["storage_vdevs"] = tuple(
        vdev_to_dict(v) for v in status.storage_vdevs)
    out["support_vdevs"] = {
        key: tuple(vdev_to_dict(v) for v in vdevs)
        for key, vdevs in status.support_vdevs._asdict().items()
    }
    out["spares"] = tuple(vdev_to_dict(v) for v in status.spares)
    return out


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
