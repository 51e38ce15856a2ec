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
Python objects for imported pools.
"""

import json
import logging
import sys
from collections import namedtuple

from ._constants import (
    ENCODING,
    POOL_STATE_UNAVAIL,
    SPA_VERSION,
    ZFS_MAXPROPLEN,
    ZPOOL_DDT_PRUNE_AGE,
    ZPOOL_DDT_PRUNE_PERCENTAGE,
    ZPOOL_LOAD_REWIND_POLICY,
    ZPOOL_NO_REWIND,
    ZPOOL_PREFETCH_BRT,
    ZPOOL_PREFETCH_DDT,
)
from ._error_translation import zfs_exception
from ._nvlist import dump_nvlist, nvlist_dup, nvlist_in
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .ctypes import uint32_t
from .pool_create import (
    plan_addition,
    read_feature_file,
    supported_features,
)
from .pool_status import pool_status, status_to_dict, vdev_tree_copy
from .vdev import ZFSVdev

log = logging.getLogger(__name__)

struct_zpool_feature = namedtuple(
    "struct_zpool_feature", ["name", "guid", "description", "state"])


class ZFSPool(object):
    """
    An imported pool.

    Instances own their ``zpool_handle_t`` and are created with the
    context lock held.
    """

    def __init__(self, zfs, zhp):
        self._zfs = zfs
        self._name = _ffi.string(_lib.zpool_get_name(zhp)).decode(ENCODING)
        self._zhp = _ffi.gc(zhp, _lib.zpool_close)

    def __repr__(self):
        return "<truenas_pylibzfs.ZFSPool(name=%s)>" % self._name

    @property
    def name(self):
        return self._name

    def _audit(self, op, *args):
        sys.audit("truenas_pylibzfs.ZFSPool.%s" % op, self._name, *args)

    def _call(self, what, func, *args):
        zfs = self._zfs
        with zfs._lock:
            if func(self._zhp, *args) != 0:
                raise zfs_exception(zfs._lzh, "%s() failed" % what)

    def asdict(self, *, get_status=False):
        """
        :param bool get_status: include the `status` report as a dictionary.
        :rtype: dict
        """
        return {
            "name": self._name,
            "status": self.status(asdict=True) if get_status else None,
        }

    def root_dataset(self):
        """
        :return: the root filesystem of the pool.
        :rtype: ZFSDataset
        """
        self._audit("root_dataset")
        return self._zfs.open_resource(name=self._name)

    def root_vdev(self):
        """
        :return: the root of the vdev tree from the cached configuration,
            see `refresh_stats`.
        :rtype: ZFSVdev
        """
        self._audit("root_vdev")
        tree = vdev_tree_copy(self)
        return ZFSVdev(self, tree, tree)

    def status(self, *, asdict=False, get_stats=True, follow_links=True,
               full_path=True):
        """
        The health of the pool as reported by ``zpool status``.

        :param bool asdict: return plain dictionaries instead of
            `struct_zpool_status`.
        :param bool get_stats: include space and error counters per vdev.
        :param bool follow_links: resolve device links in vdev names.
        :param bool full_path: use full device paths in vdev names.
        """
        st = pool_status(self, get_stats, follow_links, full_path)
        return status_to_dict(st) if asdict else st

    def clear(self):
        """
        Clear device errors, the equivalent of ``zpool clear``.
        """
        self._audit("clear")
        policy = nvlist_in(
            {ZPOOL_LOAD_REWIND_POLICY: uint32_t(ZPOOL_NO_REWIND)})
        self._call("zpool_clear", _lib.zpool_clear, _ffi.NULL, policy)
        self._zfs.log_history("zpool clear %s" % self._name)

    def upgrade(self):
        """
        Enable every supported feature on the pool.
        """
        self._audit("upgrade")
        self._call("zpool_upgrade", _lib.zpool_upgrade, SPA_VERSION)
        self._zfs.log_history("zpool upgrade %s" % self._name)

    def ddt_prefetch(self):
        """
        Load the deduplication table into the ARC.
        """
        self._audit("ddt_prefetch")
        self._call("zpool_prefetch", _lib.zpool_prefetch, ZPOOL_PREFETCH_DDT)
        self._zfs.log_history("zpool prefetch -t ddt %s" % self._name)

    def prefetch(self):
        """
        Load the deduplication table, then the block reference table, into
        the ARC.  The second step is skipped if the first one fails.
        """
        self._audit("prefetch")
        self._call("zpool_prefetch", _lib.zpool_prefetch, ZPOOL_PREFETCH_DDT)
        self._call("zpool_prefetch", _lib.zpool_prefetch, ZPOOL_PREFETCH_BRT)
        self._zfs.log_history("zpool prefetch %s" % self._name)

    def ddt_prune(self, *, days=0, percentage=0):
        """
        Remove old unique entries from the deduplication table.

        :param int days: prune entries older than this many days.
        :param int percentage: prune this percentage of unique entries.
        :raises ValueError: unless exactly one of ``days`` and
            ``percentage`` is set to a valid value.
        """
        if days < 0 or percentage < 0 or percentage > 100:
            raise ValueError(
                "days must be >= 1, and percentage must be between 1 and 100")
        if days and percentage:
            raise ValueError("Only one of days or percentage should be set")
        if not days and not percentage:
            raise ValueError("Either days or percentage must be set")

        self._audit("ddt_prune", {"days": days, "percentage": percentage})
        if percentage:
            unit, value, flag = ZPOOL_DDT_PRUNE_PERCENTAGE, percentage, "-p"
        else:
            unit, value, flag = ZPOOL_DDT_PRUNE_AGE, days, "-d"

        self._call("zpool_ddt_prune", _lib.zpool_ddt_prune, unit, value)
        self._zfs.log_history("zpool ddtprune %s %d %s" % (
            flag, value, self._name))

    def attach_vdevs(self, *, topology, check_ashift=False, force=False):
        """
        Add vdevs to the pool, the equivalent of ``zpool add``.

        :param dict topology: vdev lists keyed by ``storage_vdevs``,
            ``cache_vdevs``, ``log_vdevs``, ``special_vdevs``,
            ``dedup_vdevs`` and ``spare_vdevs``.
        :param bool check_ashift: refuse vdevs whose ashift differs from
            the pool's.
        :param bool force: skip the layout checks.
        """
        nvroot = nvlist_in(plan_addition(topology, force))
        self._audit("attach_vdevs", topology)
        self._call("zpool_add", _lib.zpool_add, nvroot, bool(check_ashift))
        self._zfs.log_history("zpool add %s %s" % (
            self._name, dump_nvlist(nvroot)))

    def dump_config(self):
        """
        :return: the cached pool configuration.
        :rtype: dict
        """
        zfs = self._zfs
        with zfs._lock:
            config = _lib.zpool_get_config(self._zhp, _ffi.NULL)
            if config == _ffi.NULL:
                raise RuntimeError(
                    "%s: pool has no configuration" % self._name)
            config = nvlist_dup(config)
        return json.loads(dump_nvlist(config))

    def refresh_stats(self):
        """
        Refresh the cached configuration and statistics.

        :raises FileNotFoundError: if the pool is no longer available.
        """
        missing = _ffi.new("boolean_t *")
        zfs = self._zfs
        with zfs._lock:
            if _lib.zpool_refresh_stats(self._zhp, missing) != 0:
                raise zfs_exception(zfs._lzh, "zpool_refresh_stats() failed")
            state = _lib.zpool_get_state(self._zhp)

        if missing[0] or state == POOL_STATE_UNAVAIL:
            raise FileNotFoundError("%s: pool is unavailable" % self._name)

    def sync_pool(self):
        """
        Write all dirty data of the pool to stable storage.
        """
        self._audit("sync_pool")
        force = _ffi.new("boolean_t *", False)
        self._call("zpool_sync_one", _lib.zpool_sync_one, force)

    def get_features(self, *, asdict=False):
        """
        The state of every pool feature the kernel module knows about.

        :param bool asdict: return ``{name: {guid, description, state}}``
            instead of a tuple of `struct_zpool_feature`.
        """
        buf = _ffi.new("char[]", ZFS_MAXPROPLEN)
        out = []
        zfs = self._zfs
        for name, guid in supported_features().items():
            with zfs._lock:
                if _lib.zpool_prop_get_feature(
                        self._zhp, ("feature@%s" % name).encode(ENCODING),
                        buf, ZFS_MAXPROPLEN) != 0:
                    raise zfs_exception(
                        zfs._lzh, "zpool_prop_get_feature() failed")
            out.append(struct_zpool_feature(
                name=name,
                guid=guid,
                description=read_feature_file(guid, "description"),
                state=_ffi.string(buf).decode(ENCODING).upper()))

        if asdict:
            return {f.name: {"guid": f.guid, "description": f.description,
                             "state": f.state} for f in out}
        return tuple(out)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
