# SPDX-License-Identifier: Apache-2.0
#
# Copyright 2015 ClusterHQ
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
Bulk operations through ``libzfs_core``.

These calls go straight to the kernel and do not need a `ZFS` context.
Operations on several entities report every failed entity at once: the
raised `ZFSCoreException` carries an ``errors`` tuple of
``(name, errno)`` pairs.
"""

import errno
import logging
import sys
import threading

from ._constants import (
    ENCODING,
    ZCP_DEFAULT_INSTRLIMIT,
    ZCP_DEFAULT_MEMLIMIT,
)
from ._nvlist import lua_nvlist_in, nvlist_in, nvlist_out
from .bindings import libzfs_core
from .bindings.libzfs import lib as _libzfs
from .enums import ZFSType
from .exceptions import ZFSCoreException

log = logging.getLogger(__name__)

#: Destroy a dataset, optionally with its descendants, their snapshots and
#: the clones of those snapshots.  Returns ``{name: errno}`` for failures.
RECURSIVE_DESTROY_LUA = """
failed = {}

function destroy(name)
    if string.find(name, "@") then
        err = zfs.sync.destroy{name, defer=defer}
    else
        err = zfs.sync.destroy(name)
    end
    if (err ~= 0) then
        failed[name] = err
    end
end

function destroy_datasets(root)
    for child in zfs.list.children(root) do
        destroy_datasets(child)
    end

    for snap in zfs.list.snapshots(root) do
        for clone in zfs.list.clones(snap) do
            destroy_datasets(clone)
        end
        destroy(snap)
    end
    destroy(root)
end

args = ...
target = args["target"]
defer = args["defer"]

if args["recursive"] then
    destroy_datasets(target)
else
    destroy(target)
end

return failed
"""

#: Snapshot a dataset and all of its descendants with the same name.
RECURSIVE_SNAPSHOT_LUA = """
succeeded = {}
failed = {}

function snapshot_recursive(root, name)
    for child in zfs.list.children(root) do
        snapshot_recursive(child, name)
    end
    local snapname = root .. "@" .. name
    err = zfs.sync.snapshot(snapname)
    if (err ~= 0) then
        failed[snapname] = err
    else
        succeeded[snapname] = err
    end
end

args = ...
snapshot_recursive(args["root"], args["name"])

results = {}
results["succeeded"] = succeeded
results["failed"] = failed
return results
"""

#: Destroy the snapshots of a dataset whose name matches a LUA pattern.
#: Returns ``{name: errno}`` for failures.
DESTROY_SNAPSHOTS_LUA = """
failed = {}

function destroy_snapshots(root)
    if recursive then
        for child in zfs.list.children(root) do
            destroy_snapshots(child)
        end
    end

    for snap in zfs.list.snapshots(root) do
        local snapname = string.sub(snap, string.find(snap, "@") + 1)
        if pattern == nil or string.match(snapname, pattern) then
            err = zfs.sync.destroy{snap, defer=defer}
            if (err ~= 0) then
                failed[snap] = err
            end
        end
    end
end

args = ...
pattern = args["pattern"]
recursive = args["recursive"]
defer = args["defer"]
destroy_snapshots(args["target"])

return failed
"""


class _CoreLibrary(object):
    """
    ``libzfs_core`` keeps its own descriptor of ``/dev/zfs``, opened by
    ``libzfs_core_init()`` before the first ``lzc_*`` call.
    """

    def __init__(self, lib):
        self._lib = lib
        self._ready = False
        self._lock = threading.Lock()

    def _open(self):
        with self._lock:
            if self._ready:
                return
            ret = self._lib.libzfs_core_init()
            if ret != 0:
                raise ZFSCoreException(ret, "libzfs_core_init() failed")
            self._ready = True

    def __getattr__(self, name):
        if not self._ready:
            self._open()
        return getattr(self._lib, name)


_ffi = libzfs_core.ffi
_lib = _CoreLibrary(libzfs_core.lib)


def _pool_of(name):
    return name.split("/", 1)[0].split("@", 1)[0]


def _check_dataset_name(name, what="dataset"):
    if not isinstance(name, str):
        raise TypeError("%r: %s name is not a string" % (name, what))
    ztype = ZFSType.ZFS_TYPE_FILESYSTEM | ZFSType.ZFS_TYPE_VOLUME
    if not _libzfs.zfs_name_valid(name.encode(ENCODING), ztype):
        raise ValueError("%s: not a valid %s name" % (name, what))


def snapshot_names_to_dict(snapshot_names):
    """
    Validate a set of snapshot names for a bulk operation.

    All snapshots must be in the same pool and no two of them may be of
    the same dataset.

    :return: ``{name: None}`` ready for `nvlist_in`.
    :raises TypeError: if a name is not a string or not a valid snapshot
        name.
    :raises ValueError: if the rules above are violated or no name was
        passed.
    """
    if isinstance(snapshot_names, (str, bytes)):
        raise TypeError("snapshot_names must be an iterable of strings")

    out = {}
    datasets = set()
    pool = None
    for snap in snapshot_names:
        if not isinstance(snap, str):
            raise TypeError("%r: item is not a string" % (snap,))
        if not _libzfs.zfs_name_valid(
                snap.encode(ENCODING), ZFSType.ZFS_TYPE_SNAPSHOT):
            raise TypeError("%s: not a valid snapshot name" % snap)

        if pool is None:
            pool = _pool_of(snap)
        elif _pool_of(snap) != pool:
            raise ValueError(
                "%s: snapshot is not within expected pool [%s]. All "
                "snapshots must reside in the same pool." % (snap, pool))

        dataset = snap.split("@", 1)[0]
        if dataset in datasets:
            raise ValueError(
                "%s: multiple snapshots of the same dataset is not "
                "permitted." % snap)
        datasets.add(dataset)
        out[snap] = None

    if not out:
        raise ValueError("At least one snapshot name must be specified")
    return out


def errors_to_tuple(errors, ret):
    """
    :return: the per-entity failures as ``((name, errno), ...)``.  If the
        kernel did not name a failed entity, ``ret`` is reported as the
        failure of the whole operation.
    """
    out = tuple((name, err) for name, err in errors.items())
    if not out:
        out = (("Operation failed", ret),)
    return out


def create_snapshots(*, snapshot_names):
    """
    Atomically create snapshots of several datasets of one pool.

    :param snapshot_names: an iterable of ``dataset@snapshot`` names.
    :raises ZFSCoreException: if any snapshot could not be created, in
        which case none was.
    """
    snaps = nvlist_in(snapshot_names_to_dict(snapshot_names))
    sys.audit("truenas_pylibzfs.lzc.create_snapshots", snapshot_names)

    errors = {}
    with nvlist_out(errors) as errlist:
        ret = _lib.lzc_snapshot(snaps, _ffi.NULL, errlist)
    if ret != 0:
        raise ZFSCoreException(
            ret, "lzc_snapshot() failed", errors=errors_to_tuple(errors, ret))


def destroy_snapshots(*, snapshot_names, defer_destroy=False):
    """
    Destroy snapshots of several datasets of one pool.

    :param snapshot_names: an iterable of ``dataset@snapshot`` names.
    :param bool defer_destroy: mark held or cloned snapshots for deferred
        destruction instead of failing.
    :raises ZFSCoreException: if any snapshot could not be destroyed.
    """
    snaps = nvlist_in(snapshot_names_to_dict(snapshot_names))
    sys.audit("truenas_pylibzfs.lzc.destroy_snapshots", snapshot_names,
              defer_destroy)

    errors = {}
    with nvlist_out(errors) as errlist:
        ret = _lib.lzc_destroy_snaps(snaps, bool(defer_destroy), errlist)
    if ret != 0:
        raise ZFSCoreException(
            ret, "lzc_destroy_snaps() failed",
            errors=errors_to_tuple(errors, ret))


def run_channel_program(*, pool_name, script, script_arguments=None,
                        instruction_limit=ZCP_DEFAULT_INSTRLIMIT,
                        memory_limit=ZCP_DEFAULT_MEMLIMIT, readonly=False):
    """
    Run a LUA channel program on a pool.

    :param str pool_name: the pool to run the program on.
    :param str script: the program text.
    :param dict script_arguments: passed to the program as its only
        argument, see `lua_nvlist_in` for the accepted types.
    :param int instruction_limit: maximum number of LUA instructions.
    :param int memory_limit: maximum memory, in bytes.
    :param bool readonly: run without syncing, the program may not modify
        the pool.
    :return: what the program returned.
    :raises ZFSCoreException: if the program could not be run or failed.
    """
    if not isinstance(pool_name, str) or not isinstance(script, str):
        raise TypeError("pool_name and script must be strings")

    args = lua_nvlist_in(script_arguments or {})
    sys.audit("truenas_pylibzfs.lzc.run_channel_program", pool_name,
              script_arguments, readonly)

    func = _lib.lzc_channel_program_nosync if readonly else \
        _lib.lzc_channel_program
    output = {}
    with nvlist_out(output) as outnvl:
        ret = func(pool_name.encode(ENCODING), script.encode(ENCODING),
                   instruction_limit, memory_limit, args, outnvl)
    if ret != 0:
        msg = "lzc_channel_program() failed"
        if output.get("error"):
            msg = "%s: %s" % (msg, output["error"])
        raise ZFSCoreException(ret, msg, name=pool_name)
    return output.get("return")


def _raise_failed(msg, target, failed):
    if failed:
        raise ZFSCoreException(
            errno.EIO, msg, name=target, errors=tuple(sorted(failed.items())))


def destroy_datasets(*, target, recursive=False, defer=False):
    """
    Destroy a dataset in a single transaction group.

    :param str target: the dataset to destroy.
    :param bool recursive: destroy all descendants, snapshots and clones
        of snapshots too.
    :param bool defer: defer the destruction of held snapshots.
    :raises ZFSCoreException: if any dataset could not be destroyed.
    """
    _check_dataset_name(target)
    failed = run_channel_program(
        pool_name=_pool_of(target),
        script=RECURSIVE_DESTROY_LUA,
        script_arguments={
            "target": target, "recursive": bool(recursive),
            "defer": bool(defer)})
    _raise_failed("failed to destroy datasets", target, failed)
    log.debug("%s: destroyed (recursive=%s)", target, recursive)


def create_recursive_snapshot(*, root, name):
    """
    Snapshot ``root`` and all of its descendants as ``<dataset>@<name>``.

    :return: the names of the new snapshots.
    :rtype: tuple
    :raises ZFSCoreException: if any snapshot could not be created.
    """
    _check_dataset_name(root)
    if not isinstance(name, str) or not name or "@" in name or "/" in name:
        raise ValueError("%r: not a valid snapshot name" % (name,))

    result = run_channel_program(
        pool_name=_pool_of(root),
        script=RECURSIVE_SNAPSHOT_LUA,
        script_arguments={"root": root, "name": name}) or {}
    _raise_failed("failed to create snapshots", root, result.get("failed"))
    return tuple(sorted(result.get("succeeded") or ()))


def destroy_snapshots_matching(*, target, pattern=None, recursive=False,
                               defer=False):
    """
    Destroy the snapshots of ``target`` whose name, the part after ``@``,
    matches the LUA pattern ``pattern``.  All snapshots are destroyed if
    no pattern is passed.

    :raises ZFSCoreException: if any snapshot could not be destroyed.
    """
    _check_dataset_name(target)
    args = {"target": target, "recursive": bool(recursive),
            "defer": bool(defer)}
    if pattern is not None:
        if not isinstance(pattern, str):
            raise TypeError("pattern must be a string")
        args["pattern"] = pattern

    failed = run_channel_program(
        pool_name=_pool_of(target),
        script=DESTROY_SNAPSHOTS_LUA,
        script_arguments=args)
    _raise_failed("failed to destroy snapshots", target, failed)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
