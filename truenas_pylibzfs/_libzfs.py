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
The `ZFS` context: a ``libzfs_handle_t`` together with the lock that
serializes every call made through it.

Each thread that does heavy work should open its own context with
`open_handle`.  Objects obtained from a context keep it alive and use
its lock.
"""

import json
import logging
import sys
import threading

from . import _iter
from ._constants import DEFAULT_HISTORY_PREFIX, ENCODING
from ._error_translation import zfs_exception
from ._history import format_record, log_history, validate_prefix
from ._nvlist import nvlist_in
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .crypto import crypto_config, crypto_props, reset_keylocation
from .enums import ZFSType
from .pool import ZFSPool
from .pool_create import create_pool, create_vdev_spec
from .properties import validate_properties, validate_user_properties
from .resource import resource_from_handle

log = logging.getLogger(__name__)

_CREATE_TYPES = (ZFSType.ZFS_TYPE_FILESYSTEM, ZFSType.ZFS_TYPE_VOLUME)
_OPEN_TYPES = (ZFSType.ZFS_TYPE_FILESYSTEM | ZFSType.ZFS_TYPE_VOLUME |
               ZFSType.ZFS_TYPE_SNAPSHOT)


def _check_name(name):
    if name is None:
        raise ValueError("\"name\" keyword argument is required")
    if not isinstance(name, str):
        raise TypeError("%r: name must be a string" % (name,))
    return name.encode(ENCODING)


class ZFS(object):
    """
    A libzfs context.

    :param bool history: write the mutating operations to the pool
        history.
    :param str history_prefix: prepended to every history record.
    :param bool mnttab_cache: let libzfs cache the mount table.
    :raises ValueError: if ``history_prefix`` is not valid.
    :raises RuntimeError: if libzfs could not be initialized.
    """

    def __init__(self, history=True, history_prefix=DEFAULT_HISTORY_PREFIX,
                 mnttab_cache=True):
        validate_prefix(history_prefix)

        lzh = _lib.libzfs_init()
        if lzh == _ffi.NULL:
            raise RuntimeError("Failed to initialize libzfs")

        self._lzh = _ffi.gc(lzh, _lib.libzfs_fini)
        self._lock = threading.Lock()
        self._history = bool(history)
        self._history_prefix = history_prefix
        self._mnttab_cache = bool(mnttab_cache)

        _lib.libzfs_print_on_error(self._lzh, False)
        _lib.libzfs_mnttab_cache(self._lzh, self._mnttab_cache)
        log.debug("libzfs context opened (history=%s, mnttab_cache=%s)",
                  self._history, self._mnttab_cache)

    def __repr__(self):
        return "<truenas_pylibzfs.ZFS(history=%s, history_prefix=%r, " \
            "mnttab_cache=%s)>" % (self._history, self._history_prefix,
                                   self._mnttab_cache)

    @property
    def history_enabled(self):
        return self._history

    @property
    def history_prefix(self):
        return self._history_prefix

    @property
    def mnttab_cache_enabled(self):
        return self._mnttab_cache

    def log_history(self, message):
        """
        Record a completed action in the pool history, unless history is
        disabled for this context.
        """
        if self._history:
            log_history(self._lzh, self._history_prefix, message)

    def create_resource(self, *, name=None, type=None, properties=None,
                        user_properties=None, crypto=None):
        """
        Create a filesystem or volume.

        :param str name: full name of the new resource.
        :param ZFSType type: ``ZFS_TYPE_FILESYSTEM`` or
            ``ZFS_TYPE_VOLUME``.
        :param properties: properties to set at creation, as a dictionary
            keyed by `ZFSProperty` or a `struct_zfs_property` record.
        :param dict user_properties: user properties to set at creation.
        :param struct_zfs_crypto_config crypto: make the resource an
            encryption root, see `resource_cryptography_config`.
        :raises TypeError: if ``type`` is not a permitted `ZFSType`.
        :raises ZFSException: if ``zfs_create()`` failed.
        """
        bname = _check_name(name)
        if not isinstance(type, ZFSType):
            raise TypeError("%r: not a valid ZFSType" % (type,))
        if type not in _CREATE_TYPES:
            raise TypeError("%s: not a permitted ZFS type." % type.name)

        props = {}
        if properties is not None:
            props.update(validate_properties(properties, type, allow_ro=True))
        if user_properties is not None:
            props.update(validate_user_properties(user_properties))

        sys.audit("truenas_pylibzfs.ZFS.create_resource", name)

        if crypto is None:
            self._create(bname, type, props)
        else:
            with crypto_props(crypto) as cprops:
                props.update(cprops)
                self._create(bname, type, props)
                if crypto.key is not None:
                    self._reset_keylocation(name, bname)
            props = dict(props, keylocation="prompt")

        if props:
            self.log_history("zfs create %s with properties: %s" % (
                name, json.dumps(props)))
        else:
            self.log_history("zfs create %s" % name)

    def _create(self, bname, zfs_type, props):
        nvl = nvlist_in(props) if props else _ffi.NULL
        with self._lock:
            if _lib.zfs_create(self._lzh, bname, zfs_type, nvl) != 0:
                raise zfs_exception(self._lzh, "zfs_create() failed")

    def _reset_keylocation(self, name, bname):
        with self._lock:
            zhp = _lib.zfs_open(self._lzh, bname, _OPEN_TYPES)
            if zhp == _ffi.NULL:
                raise zfs_exception(self._lzh, "zfs_open() failed")
            try:
                reset_keylocation(self, zhp, name)
            finally:
                _lib.zfs_close(zhp)

    def open_resource(self, *, name=None):
        """
        Open a filesystem, volume or snapshot.

        :rtype: ZFSDataset, ZFSVolume or ZFSSnapshot
        :raises ZFSException: if the resource could not be opened.
        """
        bname = _check_name(name)
        sys.audit("truenas_pylibzfs.ZFS.open_resource", name)

        with self._lock:
            zhp = _lib.zfs_open(self._lzh, bname, _OPEN_TYPES)
            if zhp == _ffi.NULL:
                raise zfs_exception(self._lzh, "zfs_open() failed")
            try:
                return resource_from_handle(self, zhp)
            except RuntimeError:
                _lib.zfs_close(zhp)
                raise RuntimeError("Unsupported ZFS type")
            except BaseException:
                _lib.zfs_close(zhp)
                raise

    def destroy_resource(self, *, name=None):
        """
        Destroy a filesystem, volume or snapshot.  Descendants are not
        destroyed, see `lzc.destroy_datasets` for recursive destruction.

        :raises ZFSException: if the resource could not be destroyed.
        """
        bname = _check_name(name)
        sys.audit("truenas_pylibzfs.ZFS.destroy_resource", name)

        with self._lock:
            zhp = _lib.zfs_open(self._lzh, bname, _OPEN_TYPES)
            if zhp == _ffi.NULL:
                raise zfs_exception(self._lzh, "zfs_open() failed")
            try:
                if _lib.zfs_destroy(zhp, False) != 0:
                    raise zfs_exception(self._lzh, "zfs_destroy() failed")
            finally:
                _lib.zfs_close(zhp)

        self.log_history("zfs destroy %s" % name)

    def open_pool(self, *, name=None):
        """
        :rtype: ZFSPool
        :raises ZFSException: if the pool is not imported.
        """
        bname = _check_name(name)
        sys.audit("truenas_pylibzfs.ZFS.open_pool", name)

        with self._lock:
            zhp = _lib.zpool_open(self._lzh, bname)
            if zhp == _ffi.NULL:
                raise zfs_exception(self._lzh, "zpool_open() failed")
            return ZFSPool(self, zhp)

    def create_pool(self, *, name=None, storage_vdevs=None, cache_vdevs=None,
                    log_vdevs=None, special_vdevs=None, dedup_vdevs=None,
                    spare_vdevs=None, properties=None,
                    filesystem_properties=None, force=False):
        """
        Create a pool, the equivalent of ``zpool create``.

        Each ``*_vdevs`` argument is a sequence of `struct_vdev_create_spec`
        as returned by `create_vdev_spec`.  ``storage_vdevs`` is required.

        :param dict properties: pool properties keyed by `ZPOOLProperty`
            or name.
        :param filesystem_properties: properties of the root filesystem.
        :param bool force: skip the checks on mixed redundancy.
        :raises ValueError: if the layout or a property is not valid.
        :raises ZFSException: if the pool could not be created.
        """
        create_pool(self, name, storage_vdevs, cache_vdevs, log_vdevs,
                    special_vdevs, dedup_vdevs, spare_vdevs, properties,
                    filesystem_properties, force)

    def destroy_pool(self, *, name=None, force=False):
        """
        Unmount every dataset of the pool and destroy it.

        :param bool force: forcibly unmount busy datasets.
        :raises ZFSException: if the pool could not be opened, unmounted or
            destroyed.
        """
        bname = _check_name(name)
        sys.audit("truenas_pylibzfs.ZFS.destroy_pool", name)

        # zpool_destroy() writes the history record itself
        log_str = _ffi.NULL
        if self._history:
            log_str = format_record(self._history_prefix,
                                    "zpool destroy %s" % name)

        with self._lock:
            zhp = _lib.zpool_open(self._lzh, bname)
            if zhp == _ffi.NULL:
                raise zfs_exception(self._lzh, "zpool_open() failed")
            try:
                if _lib.zpool_disable_datasets(zhp, bool(force)) != 0:
                    raise zfs_exception(
                        self._lzh, "zpool_disable_datasets() failed")
                if _lib.zpool_destroy(zhp, log_str) != 0:
                    raise zfs_exception(self._lzh, "zpool_destroy() failed")
            finally:
                _lib.zpool_close(zhp)

        log.debug("%s: pool destroyed", name)

    def iter_root_filesystems(self, *, callback, state=None):
        """
        Call ``callback(dataset, state)`` for the root filesystem of every
        imported pool.

        :return: ``False`` if the callback stopped the iteration.
        :rtype: bool
        """
        return _iter.iter_root_filesystems(self, callback, state)

    def iter_pools(self, *, callback, state=None):
        """
        Call ``callback(pool, state)`` for every imported pool.

        :return: ``False`` if the callback stopped the iteration.
        :rtype: bool
        """
        return _iter.iter_pools(self, callback, state)

    def resource_cryptography_config(self, *, keyformat, keylocation=None,
                                     key=None, pbkdf2iters=None):
        """
        Validate encryption settings for `create_resource`.

        :rtype: struct_zfs_crypto_config
        """
        if pbkdf2iters is None:
            return crypto_config(keyformat, keylocation, key)
        return crypto_config(keyformat, keylocation, key, pbkdf2iters)

    create_vdev_spec = staticmethod(create_vdev_spec)


def open_handle(*, history=True, history_prefix=DEFAULT_HISTORY_PREFIX,
                mnttab_cache=True):
    """
    Open a new `ZFS` context.
    """
    return ZFS(history, history_prefix, mnttab_cache)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
