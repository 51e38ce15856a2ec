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
Vdevs of an imported pool.

A `ZFSVdev` wraps one nvlist of a private copy of the pool configuration.
Every vdev keeps a reference to its parent (the root vdev keeps the copy
itself) so the nvlist stays valid for as long as any vdev of the tree is
alive.  The tree is rebuilt from the cached pool configuration on every
`ZFSPool.root_vdev()` call.  State changes made through a vdev are not
reflected by the object: refresh the pool statistics and walk the tree
again to observe them.
"""

import sys

from ._constants import (
    ASHIFT_MAX,
    ASHIFT_MIN,
    ENCODING,
    VDEV_NAME_TYPE_ID,
    VDEV_STAT,
    VDEV_TYPE,
    ZFS_ONLINE_EXPAND,
    ZPOOL_CONFIG,
)
from ._error_translation import zfs_exception
from ._nvlist import (
    lookup_nvlist_array,
    lookup_string,
    lookup_uint64,
    lookup_uint64_array,
    nvlist_in,
)
from .bindings import libc
from .bindings.libnvpair import lib as _nvlib
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import VDevAuxState, VDevState
from .pool_create import (
    is_leaf,
    struct_vdev_create_spec,
    validate_spec,
    vdev_config,
)


_LEAF_TYPES = (VDEV_TYPE.DISK, VDEV_TYPE.FILE)


def state_to_name(state, aux):
    """
    Render a vdev state the way ``zpool status`` does.

    :param int state: a `VDevState` value.
    :param int aux: a `VDevAuxState` value.
    :rtype: str
    """
    if state in (VDevState.VDEV_STATE_CLOSED, VDevState.VDEV_STATE_OFFLINE):
        return "OFFLINE"
    if state == VDevState.VDEV_STATE_REMOVED:
        return "REMOVED"
    if state == VDevState.VDEV_STATE_CANT_OPEN:
        if aux in (VDevAuxState.VDEV_AUX_CORRUPT_DATA,
                   VDevAuxState.VDEV_AUX_BAD_LOG):
            return "FAULTED"
        if aux == VDevAuxState.VDEV_AUX_SPLIT_POOL:
            return "SPLIT"
        return "UNAVAIL"
    if state == VDevState.VDEV_STATE_FAULTED:
        return "FAULTED"
    if state == VDevState.VDEV_STATE_DEGRADED:
        return "DEGRADED"
    if state == VDevState.VDEV_STATE_HEALTHY:
        return "ONLINE"
    return "UNKNOWN"


def vdev_name(pool, nvl, flags=VDEV_NAME_TYPE_ID):
    """
    :return: the name ``zpool status`` would print for the vdev ``nvl``.
    """
    zfs = pool._zfs
    with zfs._lock:
        cname = _lib.zpool_vdev_name(zfs._lzh, pool._zhp, nvl, flags)
    if cname == _ffi.NULL:
        raise MemoryError("zpool_vdev_name() failed")
    try:
        return _ffi.string(cname).decode(ENCODING)
    finally:
        libc.lib.free(cname)


def leaf_root_config(vdev):
    """
    Wrap a single disk or file vdev in the root vdev that
    ``zpool_vdev_attach()`` expects.

    :param struct_vdev_create_spec vdev: the new device.
    :rtype: dict
    :raises TypeError: if ``vdev`` is not a vdev specification.
    :raises ValueError: if ``vdev`` is not a valid leaf specification.
    """
    if not isinstance(vdev, struct_vdev_create_spec):
        raise TypeError("vdev must be created with create_vdev_spec")
    if not is_leaf(vdev.vdev_type):
        raise ValueError(
            "Only disk or file vdevs can be attached, got \"%s\"" %
            vdev.vdev_type)
    validate_spec(vdev, "attach")
    return {
        ZPOOL_CONFIG.TYPE: VDEV_TYPE.ROOT,
        ZPOOL_CONFIG.CHILDREN: [vdev_config(vdev)],
    }


class ZFSVdev(object):
    """
    A vdev of an imported pool.

    :param pool: the `ZFSPool` the vdev belongs to.
    :param nvl: the vdev nvlist.
    :param parent: the parent `ZFSVdev`, or the object that owns the
        configuration copy for the root vdev.
    """

    def __init__(self, pool, nvl, parent=None):
        self._pool = pool
        self._nvl = nvl
        self._parent = parent
        self._type = lookup_string(nvl, ZPOOL_CONFIG.TYPE)
        self._path = lookup_string(nvl, ZPOOL_CONFIG.PATH)

    def __repr__(self):
        if self._path is None:
            return "<truenas_pylibzfs.ZFSVdev(type=%s, pool=%s)>" % (
                self._type, self._pool.name)
        return "<truenas_pylibzfs.ZFSVdev(type=%s, path=%s, pool=%s)>" % (
            self._type, self._path, self._pool.name)

    def _label(self):
        return self._path if self._path is not None else self._type

    def _audit(self, op, *args):
        sys.audit("truenas_pylibzfs.ZFSVdev.%s" % op, self._label(), *args)

    def _call(self, what, func, *args):
        zfs = self._pool._zfs
        with zfs._lock:
            if func(self._pool._zhp, *args) != 0:
                raise zfs_exception(zfs._lzh, "%s() failed" % what)

    def _leaf_path(self, action):
        if self._type not in _LEAF_TYPES:
            raise TypeError("Only disk/file vdev can be %s" % action)
        if self._path is None:
            raise ValueError("Cannot find vdev path")
        return self._path

    @property
    def type(self):
        """
        The vdev type such as ``root``, ``mirror``, ``raidz`` or ``disk``.
        """
        return self._type

    @property
    def path(self):
        """
        Device path of a leaf vdev, ``None`` for virtual vdevs.
        """
        return self._path

    @property
    def parent(self):
        return self._parent if isinstance(self._parent, ZFSVdev) else None

    def name(self):
        return vdev_name(self._pool, self._nvl)

    def guid(self):
        return lookup_uint64(self._nvl, ZPOOL_CONFIG.GUID)

    def _stats(self):
        return lookup_uint64_array(self._nvl, ZPOOL_CONFIG.VDEV_STATS)

    def status(self):
        """
        :return: the vdev state as printed by ``zpool status``, ``None``
            if the configuration carries no statistics.
        """
        vs = self._stats()
        if vs is None:
            return None
        return state_to_name(vs[VDEV_STAT.STATE], vs[VDEV_STAT.AUX])

    def size(self):
        """
        :return: the allocatable size in bytes, ``None`` if unknown.
        """
        asize = lookup_uint64(self._nvl, ZPOOL_CONFIG.ASIZE)
        ashift = lookup_uint64(self._nvl, ZPOOL_CONFIG.ASHIFT)
        if asize is None or ashift is None:
            return None
        return asize << ashift

    def children(self):
        """
        :return: a tuple of `ZFSVdev`, empty for leaf vdevs.
        """
        return tuple(
            ZFSVdev(self._pool, child, self)
            for child in lookup_nvlist_array(self._nvl, ZPOOL_CONFIG.CHILDREN))

    def disks(self):
        """
        :return: a tuple with the path of every usable disk below this vdev.
        """
        out = []
        self._collect_disks(self._nvl, out)
        return tuple(out)

    @staticmethod
    def _collect_disks(nvl, out):
        vs = lookup_uint64_array(nvl, ZPOOL_CONFIG.VDEV_STATS)
        if vs is not None and state_to_name(
                vs[VDEV_STAT.STATE], vs[VDEV_STAT.AUX]) in (
                    "UNAVAIL", "OFFLINE"):
            return

        vtype = lookup_string(nvl, ZPOOL_CONFIG.TYPE)
        if vtype == VDEV_TYPE.FILE:
            return
        if vtype == VDEV_TYPE.DISK:
            out.append(lookup_string(nvl, ZPOOL_CONFIG.PATH))
            return
        for child in lookup_nvlist_array(nvl, ZPOOL_CONFIG.CHILDREN):
            ZFSVdev._collect_disks(child, out)

    def vdev_stats(self):
        """
        :return: the error and space counters of the vdev, ``None`` if the
            configuration carries no statistics.
        :rtype: dict
        """
        vs = self._stats()
        if vs is None:
            return None
        return {
            "timestamp": vs[VDEV_STAT.TIMESTAMP],
            "state": VDevState(vs[VDEV_STAT.STATE]),
            "aux": VDevAuxState(vs[VDEV_STAT.AUX]),
            "allocated": vs[VDEV_STAT.ALLOC],
            "space": vs[VDEV_STAT.SPACE],
            "dspace": vs[VDEV_STAT.DSPACE],
            "rsize": vs[VDEV_STAT.RSIZE],
            "esize": vs[VDEV_STAT.ESIZE],
            "read_errors": vs[VDEV_STAT.READ_ERRORS],
            "write_errors": vs[VDEV_STAT.WRITE_ERRORS],
            "checksum_errors": vs[VDEV_STAT.CHECKSUM_ERRORS],
        }

    def add_ashift(self, value):
        """
        Set the ashift of this vdev in the configuration copy.

        The copy is what `size` and `asdict` read, it is never written
        back to the pool.

        :param int value: log2 of the sector size.
        :raises TypeError: if ``value`` is not an integer.
        :raises ValueError: if ``value`` is outside the range ZFS accepts.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("Argument must be an Integer")
        if not ASHIFT_MIN <= value <= ASHIFT_MAX:
            raise ValueError("ashift must be between %d and %d, got %d" % (
                ASHIFT_MIN, ASHIFT_MAX, value))
        self._audit("add_ashift", value)
        key = ZPOOL_CONFIG.ASHIFT.encode(ENCODING)
        if _nvlib.nvlist_add_uint64(self._nvl, key, value) != 0:
            raise MemoryError("nvlist_add_uint64() failed")

    def online(self, *, expand=False):
        """
        Bring the vdev online, the equivalent of ``zpool online``.

        :param bool expand: grow the vdev to use all available space.
        :return: the state the vdev ended up in.
        :rtype: VDevState
        :raises TypeError: unless the vdev is a disk or a file.
        """
        path = self._leaf_path("set to online")
        self._audit("online", {"expand": expand})
        newstate = _ffi.new("vdev_state_t *")
        self._call("zpool_vdev_online", _lib.zpool_vdev_online,
                   path.encode(ENCODING),
                   ZFS_ONLINE_EXPAND if expand else 0, newstate)
        self._pool._zfs.log_history("zpool online %s%s %s" % (
            "-e " if expand else "", self._pool.name, path))
        return VDevState(newstate[0])

    def offline(self, *, temporary=False):
        """
        Take the vdev offline, the equivalent of ``zpool offline``.

        :param bool temporary: revert to the previous state on reboot.
        :raises TypeError: unless the vdev is a disk or a file.
        """
        path = self._leaf_path("set to offline")
        self._audit("offline", {"temporary": temporary})
        self._call("zpool_vdev_offline", _lib.zpool_vdev_offline,
                   path.encode(ENCODING), bool(temporary))
        self._pool._zfs.log_history("zpool offline %s%s %s" % (
            "-t " if temporary else "", self._pool.name, path))

    def _set_aux(self, op, func, aux):
        if not isinstance(aux, VDevAuxState):
            raise TypeError("Expected VDevAuxState Enum type")
        self._audit(op, aux)
        self._call("zpool_vdev_%s" % op, func, self.guid(), int(aux))
        self._pool._zfs.log_history("zpool_vdev_%s %s %s" % (
            op, self._pool.name, self._label()))

    def degrade(self, aux):
        """
        Mark the vdev degraded.

        :param VDevAuxState aux: the reason recorded with the state.
        """
        self._set_aux("degrade", _lib.zpool_vdev_degrade, aux)

    def fault(self, aux):
        """
        Mark the vdev faulted.

        :param VDevAuxState aux: the reason recorded with the state.
        """
        self._set_aux("fault", _lib.zpool_vdev_fault, aux)

    def remove(self):
        """
        Remove the vdev from the pool, the equivalent of ``zpool remove``.
        """
        guid = "%d" % self.guid()
        self._audit("remove", guid)
        self._call("zpool_vdev_remove", _lib.zpool_vdev_remove,
                   guid.encode(ENCODING))
        self._pool._zfs.log_history("zpool remove %s %s" % (
            self._pool.name, guid))

    def detach(self):
        """
        Detach the vdev from its mirror, the equivalent of ``zpool detach``.

        :raises TypeError: unless the vdev is a disk or a file.
        """
        path = self._leaf_path("detached")
        self._audit("detach")
        self._call("zpool_vdev_detach", _lib.zpool_vdev_detach,
                   path.encode(ENCODING))
        self._pool._zfs.log_history("zpool detach %s %s" % (
            self._pool.name, path))

    def _attach_target(self):
        if self._type == VDEV_TYPE.MIRROR:
            for child in lookup_nvlist_array(self._nvl,
                                             ZPOOL_CONFIG.CHILDREN):
                path = lookup_string(child, ZPOOL_CONFIG.PATH)
                if path is not None:
                    return path
            raise RuntimeError("No leaf vdev found to attach the VDEV")
        if self._type in _LEAF_TYPES:
            return self._leaf_path("attached to")
        raise TypeError(
            "Can only attach DISK or FILE type VDEVs to MIRROR or STRIPE "
            "devices")

    def _attach(self, op, target, vdev, replacing):
        nvroot = nvlist_in(leaf_root_config(vdev))
        self._audit(op, vdev.name)
        self._call("zpool_vdev_attach", _lib.zpool_vdev_attach,
                   target.encode(ENCODING), vdev.name.encode(ENCODING),
                   nvroot, replacing, False)
        self._pool._zfs.log_history("zpool %s %s %s %s" % (
            op, self._pool.name, target, vdev.name))

    def attach(self, *, vdev):
        """
        Mirror this vdev onto a new device, the equivalent of
        ``zpool attach``.  A disk or file becomes a two-way mirror, a
        mirror gains one more side.

        :param struct_vdev_create_spec vdev: the new disk or file.
        :raises TypeError: if this vdev is neither a mirror nor a leaf.
        :raises RuntimeError: if a mirror has no child with a path.
        """
        self._attach("attach", self._attach_target(), vdev, 0)

    def replace(self, *, vdev):
        """
        Replace this device with a new one, the equivalent of
        ``zpool replace``.

        :param struct_vdev_create_spec vdev: the new disk or file.
        :raises TypeError: unless the vdev is a disk or a file.
        """
        self._attach("replace", self._leaf_path("replaced"), vdev, 1)

    def asdict(self):
        return {
            "name": self.name(),
            "type": self._type,
            "path": self._path,
            "guid": self.guid(),
            "status": self.status(),
            "size": self.size(),
            "children": [child.asdict() for child in self.children()],
        }


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
