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
Python objects for ZFS filesystems, volumes and snapshots.

Every object owns its ``zfs_handle_t`` and keeps the `ZFS` context it
was opened from alive.  All access to the native handle is serialized by
the context lock.
"""

import logging
import sys

from . import _iter
from . import _mount
from . import _userquota
from ._constants import ENCODING, ZFS_SET_NOMOUNT
from ._error_translation import zfs_exception
from ._nvlist import (
    dump_nvlist,
    nvlist_in,
    nvlist_out,
    nvlist_to_dict,
    user_props_to_dict,
)
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .crypto import ZFSEncrypt, crypto_info_dict, crypto_view
from .enums import ZFSProperty, ZFSType
from .properties import (
    get_properties,
    name_to_property,
    props_to_dict,
    props_to_nvlist,
    user_props_to_nvlist,
    validate_properties,
    validate_user_properties,
    zfs_name,
)

log = logging.getLogger(__name__)

_RENAME_RECURSIVE = 1 << 0
_RENAME_NOUNMOUNT = 1 << 1
_RENAME_FORCEUNMOUNT = 1 << 2


def _string(cstr):
    return _ffi.string(cstr).decode(ENCODING)


class ZFSObject(object):
    """
    Properties common to every ZFS object.

    Instances are created with the context lock held.
    """

    def __init__(self, zfs, zhp, simple=False):
        self._zfs = zfs
        self._name = _string(_lib.zfs_get_name(zhp))
        self._pool_name = _string(_lib.zfs_get_pool_name(zhp))
        self._type = ZFSType(_lib.zfs_get_type(zhp))
        self._guid = _lib.zfs_prop_get_int(zhp, ZFSProperty.GUID)
        self._createtxg = _lib.zfs_prop_get_int(zhp, ZFSProperty.CREATETXG)
        self._is_simple = simple
        self._zhp = _ffi.gc(zhp, _lib.zfs_close)

    def __repr__(self):
        return "<truenas_pylibzfs.%s(name=%s, pool=%s, type=%s)>" % (
            self.__class__.__name__, self._name, self._pool_name,
            self.type_name)

    @property
    def name(self):
        return self._name

    @property
    def pool_name(self):
        return self._pool_name

    @property
    def type(self):
        """
        The `ZFSType` of the object.
        """
        return self._type

    @property
    def type_name(self):
        """
        One of ``FILESYSTEM``, ``VOLUME``, ``SNAPSHOT`` or ``BOOKMARK``.
        """
        return self._type.name[len("ZFS_TYPE_"):]

    @property
    def guid(self):
        return self._guid

    @property
    def createtxg(self):
        return self._createtxg

    def rename(self, *, new_name, recursive=False, no_unmount=False,
               force_unmount=False):
        """
        Rename the object.

        :param str new_name: the new name, in the same pool.
        :param bool recursive: also rename the snapshots of the same name
            of all descendants.  Only valid for snapshots.
        :param bool no_unmount: do not remount file systems whose
            ``mountpoint`` changes.
        :param bool force_unmount: force unmounting file systems.
        :raises ValueError: for an invalid combination of arguments.
        :raises ZFSException: if the rename failed.
        """
        if new_name == self._name:
            raise ValueError("new_name must differ from current name.")
        if not _lib.zfs_name_valid(new_name.encode(ENCODING), self._type):
            raise ValueError("new_name is not valid for the ZFS type.")
        if no_unmount and force_unmount:
            raise ValueError(
                "Force unmount and no unmount options may not be specified "
                "simultaneously.")
        if recursive and self._type != ZFSType.ZFS_TYPE_SNAPSHOT:
            raise ValueError("Recursive is only valid for snapshot renames.")

        bits = 0
        if recursive:
            bits |= _RENAME_RECURSIVE
        if no_unmount:
            bits |= _RENAME_NOUNMOUNT
        if force_unmount:
            bits |= _RENAME_FORCEUNMOUNT
        flags = _ffi.new("renameflags_t *", [bits])

        sys.audit("truenas_pylibzfs.ZFSObject.rename", self._name, new_name)

        zfs = self._zfs
        orig_name = self._name
        with zfs._lock:
            if _lib.zfs_rename(
                    self._zhp, new_name.encode(ENCODING), flags[0]) != 0:
                raise zfs_exception(zfs._lzh, "zfs_rename() failed")

        # the rename is done even if writing the history fails
        self._name = new_name
        zfs.log_history("zfs rename %s%s%s%s -> %s" % (
            "-f " if force_unmount else "",
            "-u " if no_unmount else "",
            "-r " if recursive else "",
            orig_name, new_name))


class ZFSResource(ZFSObject):
    """
    Base class for objects that have properties.
    """

    def __init__(self, zfs, zhp, simple=False):
        super().__init__(zfs, zhp, simple)
        self._encrypted = _lib.zfs_prop_get_int(
            zhp, ZFSProperty.KEYFORMAT) != 0

    @property
    def encrypted(self):
        return self._encrypted

    def _ensure_properties(self):
        # simple handles are opened without their properties
        if self._is_simple:
            with self._zfs._lock:
                _lib.zfs_refresh_properties(self._zhp)
            self._is_simple = False

    def refresh_properties(self):
        """
        Re-read the properties of the resource from the kernel.
        """
        with self._zfs._lock:
            _lib.zfs_refresh_properties(self._zhp)
        self._is_simple = False

    def get_mountpoint(self):
        """
        :return: the path the resource is mounted on or ``None``.
        """
        return _mount.get_mountpoint(self)

    def get_properties(self, *, properties, get_source=False):
        """
        :param properties: a set of `ZFSProperty` members to read.
        :param bool get_source: also report where each value comes from.
        :rtype: struct_zfs_property
        """
        self._ensure_properties()
        return get_properties(self, properties, get_source)

    def set_properties(self, *, properties, remount=True):
        """
        Set the specified properties.

        :param properties: either a dictionary keyed by `ZFSProperty` with
            values of the form ``value`` or ``{"raw": value}``, or a
            ``struct_zfs_property`` as returned by `get_properties`.
        :param bool remount: remount or reshare the resource if changing a
            property requires it.
        :raises ValueError: if a property is readonly or not valid for
            this type of resource.
        :raises ZFSException: if libzfs failed to set the properties.
        """
        nvl = props_to_nvlist(properties, self._type)
        sys.audit("truenas_pylibzfs.ZFSResource.set_properties",
                  self._name, properties)

        zfs = self._zfs
        flags = 0 if remount else ZFS_SET_NOMOUNT
        with zfs._lock:
            if _lib.zfs_prop_set_list_flags(self._zhp, nvl, flags) != 0:
                raise zfs_exception(zfs._lzh, "zfs_set_properties() failed")

        zfs.log_history("zfs set properties %s: %s" % (
            self._name, dump_nvlist(nvl)))

    def get_user_properties(self):
        """
        :return: ``{name: value}`` of all user properties.
        :rtype: dict
        """
        self._ensure_properties()
        with self._zfs._lock:
            return user_props_to_dict(_lib.zfs_get_user_props(self._zhp))

    def set_user_properties(self, *, user_properties):
        """
        Set user properties.  Names must contain a colon, see zfsprops(7).
        User properties are removed with `inherit_property`.

        :param dict user_properties: ``{name: value}``
        """
        if not isinstance(user_properties, dict):
            raise TypeError("user_properties must be a dictionary.")
        nvl = user_props_to_nvlist(user_properties)
        sys.audit("truenas_pylibzfs.ZFSResource.set_user_properties",
                  self._name, user_properties)

        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_prop_set_list(self._zhp, nvl) != 0:
                raise zfs_exception(
                    zfs._lzh, "zfs_set_user_properties() failed")

        zfs.log_history("zfs set user properties %s: %s" % (
            self._name, dump_nvlist(nvl)))

    def inherit_property(self, *, property, received=False):
        """
        Inherit a property from the parent, or revert it to the received
        value.

        :param property: a `ZFSProperty` or the name of a user property.
        :param bool received: revert to the received value if there is one.
        """
        if isinstance(property, ZFSProperty):
            name = zfs_name(property)
        elif isinstance(property, str):
            name = property
            if ":" not in name:
                name = zfs_name(name_to_property(name))
        else:
            raise TypeError(
                "%r: expected a truenas_pylibzfs.ZFSProperty or user "
                "property name." % (property,))

        sys.audit("truenas_pylibzfs.ZFSResource.inherit_property",
                  self._name, name)

        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_prop_inherit(
                    self._zhp, name.encode(ENCODING), received) != 0:
                raise zfs_exception(zfs._lzh, "zfs_prop_inherit() failed")
            _lib.zfs_refresh_properties(self._zhp)

        zfs.log_history("zfs inherit %s%s %s" % (
            "-S " if received else "", name, self._name))

    def iter_filesystems(self, *, callback, state=None, fast=False):
        """
        Call ``callback(resource, state)`` for each child filesystem and
        volume.  The callback returns ``True`` to continue.

        :param bool fast: skip reading properties up front.
        :return: ``False`` if the callback stopped the iteration.
        """
        sys.audit("truenas_pylibzfs.ZFSResource.iter_filesystems", self._name)
        return _iter.iter_filesystems(self, callback, state, fast)

    def iter_snapshots(self, *, callback, state=None, fast=False,
                       min_transaction_group=0, max_transaction_group=0,
                       order_by_transaction_group=False):
        """
        Call ``callback(snapshot, state)`` for each snapshot.

        :param int min_transaction_group: skip older snapshots, 0 for none.
        :param int max_transaction_group: skip newer snapshots, 0 for none.
        :param bool order_by_transaction_group: visit oldest first.
        :return: ``False`` if the callback stopped the iteration.
        """
        sys.audit("truenas_pylibzfs.ZFSResource.iter_snapshots", self._name)
        return _iter.iter_snapshots(
            self, callback, state, fast, min_transaction_group,
            max_transaction_group, order_by_transaction_group)

    def crypto(self):
        """
        :return: a `ZFSCrypto` for the resource or ``None`` if it is not
            encrypted.
        """
        self._ensure_properties()
        return crypto_view(self)

    def promote(self):
        """
        Promote this clone so that it no longer depends on its origin
        snapshot.
        """
        sys.audit("truenas_pylibzfs.ZFSResource.promote", self._name)
        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_promote(self._zhp) != 0:
                raise zfs_exception(zfs._lzh, "zfs_promote() failed")

        zfs.log_history("zfs promote %s" % self._name)

    def asdict(self, *, properties=None, get_source=False,
               get_user_properties=False, get_crypto=False):
        """
        :param properties: a set of `ZFSProperty` to include.
        :param bool get_source: include the source of each property.
        :param bool get_user_properties: include user properties.
        :param bool get_crypto: include `ZFSCrypto.info` as a dictionary,
            ``None`` for unencrypted resources.
        :return: a dictionary with ``name``, ``pool``, ``type``,
            ``type_enum``, ``createtxg``, ``guid``, ``properties``,
            ``user_properties`` and ``crypto`` keys.  Items that were not
            requested are ``None``.
        """
        props = None
        if properties is not None:
            props = props_to_dict(self.get_properties(
                properties=properties, get_source=get_source))

        user_props = None
        if get_user_properties:
            user_props = self.get_user_properties()

        crypto = None
        if get_crypto:
            self._ensure_properties()
            crypto = crypto_info_dict(self)

        return {
            "name": self._name,
            "pool": self._pool_name,
            "type": self.type_name,
            "type_enum": self._type,
            "createtxg": self._createtxg,
            "guid": self._guid,
            "properties": props,
            "user_properties": user_props,
            "crypto": crypto,
        }


class ZFSDataset(ZFSResource):
    """
    A ZFS filesystem.
    """

    def mount(self, *, mountpoint=_mount.NOT_SET, mount_options=None,
              force=False, load_encryption_key=False):
        """
        Mount the filesystem.

        :param str mountpoint: where to mount, defaults to the
            ``mountpoint`` property.
        :param list mount_options: options such as ``["noatime"]``.
        :param bool force: mount even if ``canmount`` is off or the
            filesystem is redacted.
        :param bool load_encryption_key: load the key first.
        :raises PermissionError: if the filesystem is zoned.
        :raises ValueError: if there is no usable mountpoint.
        :raises ZFSException: if the mount failed.
        """
        sys.audit("truenas_pylibzfs.ZFSDataset.mount", self._name, mountpoint)
        self._ensure_properties()
        _mount.mount(self, mountpoint, mount_options, force,
                     load_encryption_key)

    def unmount(self, *, mountpoint=None, force=False, lazy=False,
                unload_encryption_key=False, follow_symlinks=False,
                recursive=False):
        """
        Unmount the filesystem.

        :param bool recursive: also unmount all descendants.
        :param bool lazy: detach now, clean up when no longer busy.
        :param bool unload_encryption_key: unload the key afterwards.
        """
        sys.audit("truenas_pylibzfs.ZFSDataset.unmount", self._name)
        _mount.unmount(self, mountpoint, force, lazy, unload_encryption_key,
                       follow_symlinks, recursive)

    def iter_userspace(self, *, quota_type, callback, state=None):
        """
        Call ``callback(struct_zfs_userquota, state)`` for each id that
        has a ``quota_type`` entry.
        """
        sys.audit("truenas_pylibzfs.ZFSDataset.iter_userspace", self._name)
        return _iter.iter_userspace(self, quota_type, callback, state)

    def set_userquotas(self, *, quotas):
        """
        Set several user, group or project quotas.

        :param quotas: an iterable of ``{"quota_type": ZFSUserQuota,
            "xid": int, "value": int}`` dictionaries.  A ``value`` of
            ``None`` or ``0`` removes the quota.
        """
        sys.audit("truenas_pylibzfs.ZFSDataset.set_userquotas",
                  self._name, quotas)
        props = _userquota.set_userquotas(self, quotas)
        if props:
            self._zfs.log_history("zfs set %s %s" % (
                " ".join("%s=%s" % item for item in props.items()),
                self._name))

    def get_encryption(self):
        """
        Deprecated, use `crypto`.
        """
        self._ensure_properties()
        return crypto_view(self, ZFSEncrypt)


class ZFSVolume(ZFSResource):
    """
    A ZFS volume.
    """


class ZFSSnapshot(ZFSResource):
    """
    A ZFS snapshot.
    """

    def get_holds(self):
        """
        :return: the tags of user holds on the snapshot.
        :rtype: tuple
        """
        holds = {}
        zfs = self._zfs
        with nvlist_out(holds) as holdsp:
            with zfs._lock:
                if _lib.zfs_get_holds(self._zhp, holdsp) != 0:
                    raise zfs_exception(zfs._lzh, "zfs_get_holds() failed")
        return tuple(holds)

    def get_clones(self):
        """
        :return: names of the clones of the snapshot.
        :rtype: tuple
        """
        self._ensure_properties()
        with self._zfs._lock:
            clones = _lib.zfs_get_clones_nvl(self._zhp)
            if clones == _ffi.NULL:
                return ()
            return tuple(nvlist_to_dict(clones))

    def clone(self, *, name, properties=None, user_properties=None):
        """
        Create a clone of the snapshot.

        :param str name: name of the new resource, in the same pool.
        :param properties: properties for the clone, as for
            `set_properties`.
        :param dict user_properties: user properties for the clone.
        """
        props = {}
        if properties:
            with self._zfs._lock:
                clone_type = ZFSType(_lib.zfs_get_underlying_type(self._zhp))
            props.update(validate_properties(properties, clone_type))
        if user_properties:
            props.update(validate_user_properties(user_properties))
        nvl = nvlist_in(props) if props else _ffi.NULL

        sys.audit("truenas_pylibzfs.ZFSSnapshot.clone", self._name, name)

        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_clone(self._zhp, name.encode(ENCODING), nvl) != 0:
                raise zfs_exception(zfs._lzh, "zfs_clone() failed")

        if props:
            zfs.log_history("zfs clone %s -> %s with properties: %s" % (
                self._name, name, dump_nvlist(nvl)))
        else:
            zfs.log_history("zfs clone %s -> %s" % (self._name, name))


_RESOURCE_TYPES = {
    ZFSType.ZFS_TYPE_FILESYSTEM: ZFSDataset,
    ZFSType.ZFS_TYPE_VOLUME: ZFSVolume,
    ZFSType.ZFS_TYPE_SNAPSHOT: ZFSSnapshot,
}


def resource_from_handle(zfs, zhp, simple=False):
    """
    Wrap ``zhp`` into the class matching its type.  Ownership of ``zhp``
    passes to the new object.  Must be called with the context lock held.

    :raises RuntimeError: if the type is not supported.
    """
    zfs_type = _lib.zfs_get_type(zhp)
    try:
        cls = _RESOURCE_TYPES[ZFSType(zfs_type)]
    except (KeyError, ValueError):
        raise RuntimeError("%d: unsupported ZFS type" % zfs_type)
    return cls(zfs, zhp, simple)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
