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
Conversion between native ZFS property values and Python objects.

Properties are read into a `struct_zfs_property` record that has one
field per `ZFSProperty` member, in the order of the property table.
Fields of properties that were not requested are ``None``.  Every
requested property is a `struct_zfs_property_data` triple::

    struct_zfs_property_data(value=..., raw=..., source=...)

``raw`` is the exact string libzfs reports, ``value`` is the same value
converted to a Python type and ``source`` (when requested) tells where
the value comes from.

Properties that libzfs reserves for internal use take up unnamed
positions in the record so that the record still mirrors the table.
"""

import logging
from collections import namedtuple

from ._constants import (
    ENCODING,
    ZAP_MAXNAMELEN,
    ZFS_MAX_DATASET_NAME_LEN,
    ZFS_MAXPROPLEN,
)
from ._nvlist import nvlist_in
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import PropertySource, ZFSProperty

log = logging.getLogger(__name__)

# Names that differ from the lowercase enum member name.
_ZFS_NAMES = {
    ZFSProperty.NORMALIZE: "normalization",
    ZFSProperty.CASESENSITIVE: "casesensitivity",
    ZFSProperty.USEDSNAP: "usedbysnapshots",
    ZFSProperty.USEDDS: "usedbydataset",
    ZFSProperty.USEDCHILD: "usedbychildren",
    ZFSProperty.USEDREFRESERV: "usedbyrefreservation",
    ZFSProperty.REFRATIO: "refcompressratio",
    ZFSProperty.SELINUX_CONTEXT: "context",
    ZFSProperty.SELINUX_FSCONTEXT: "fscontext",
    ZFSProperty.SELINUX_DEFCONTEXT: "defcontext",
    ZFSProperty.SELINUX_ROOTCONTEXT: "rootcontext",
    ZFSProperty.PREV_SNAP: "prevsnap",
    ZFSProperty.PBKDF2_SALT: "pbkdf2salt",
    ZFSProperty.PBKDF2_ITERS: "pbkdf2iters",
    ZFSProperty.ENCRYPTION_ROOT: "encryptionroot",
    ZFSProperty.KEY_GUID: "keyguid",
}

#: Properties libzfs does not show to users.
HIDDEN_PROPERTIES = frozenset([
    ZFSProperty.PREV_SNAP,
    ZFSProperty.PBKDF2_SALT,
    ZFSProperty.KEY_GUID,
    ZFSProperty.REDACTED,
])

# libzfs fails to read these when they were never set.
_MAYBE_UNSET = frozenset([
    ZFSProperty.SNAPSHOTS_CHANGED,
    ZFSProperty.ENCRYPTION_ROOT,
    ZFSProperty.KEYSTATUS,
    ZFSProperty.ORIGIN,
    ZFSProperty.REDACT_SNAPS,
])


def zfs_name(prop):
    """
    :param ZFSProperty prop: the property.
    :return: the name ``zfs get`` uses for the property.
    :rtype: str
    """
    return _ZFS_NAMES.get(prop, prop.name.lower())


_NAME_TO_PROPERTY = {zfs_name(prop): prop for prop in ZFSProperty}

struct_zfs_property = namedtuple(
    "struct_zfs_property",
    ["_" if prop in HIDDEN_PROPERTIES else zfs_name(prop)
     for prop in ZFSProperty],
    rename=True,
    defaults=(None,) * len(ZFSProperty))
struct_zfs_property.__doc__ = (
    "Properties of a ZFS resource, one field per ZFSProperty.")

struct_zfs_property_data = namedtuple(
    "struct_zfs_property_data", ["value", "raw", "source"])

struct_zfs_property_source = namedtuple(
    "struct_zfs_property_source", ["type", "value"])


def name_to_property(name):
    """
    :param str name: a property name as used by the ``zfs`` command.
    :rtype: ZFSProperty
    :raises ValueError: if ``name`` is not a known property.
    """
    try:
        return _NAME_TO_PROPERTY[name]
    except KeyError:
        raise ValueError("%s: not a valid ZFS property." % name)


def parse_value(prop, raw):
    """
    Convert the literal value of a property to a Python object.

    :param ZFSProperty prop: the property.
    :param str raw: the literal value reported by libzfs.
    :return: ``None`` for ``none``, a bool for ``mounted``, the unchanged
        string for string and index properties, otherwise a number.
    :raises ValueError: if a numeric property has a non-numeric value.
    """
    if raw == "none":
        return None

    if prop == ZFSProperty.MOUNTED:
        return raw == "yes"

    if _lib.zfs_prop_is_string(prop):
        return raw

    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        raise ValueError(
            "%s: failed to parse value [%s] as a numeric value." % (
                zfs_name(prop), raw))


def _fetch(rsrc, prop, buf, sourcep, srcbuf):
    zfs = rsrc._zfs
    with zfs._lock:
        err = _lib.zfs_prop_get(
            rsrc._zhp, prop, buf, ZFS_MAXPROPLEN, sourcep,
            srcbuf, ZFS_MAX_DATASET_NAME_LEN, True)
        if err == 0:
            return (_ffi.string(buf).decode(ENCODING),
                    int(sourcep[0]),
                    _ffi.string(srcbuf).decode(ENCODING))

    if prop in _MAYBE_UNSET:
        log.warning("%s: %s is not set, reporting none",
                    rsrc.name, zfs_name(prop))
        return "none", int(PropertySource.NONE), ""

    if not _lib.zfs_prop_valid_for_type(prop, rsrc.type, False):
        raise ValueError("%s: property is invalid for zfs type: %s" % (
            zfs_name(prop), rsrc.type.name))

    raise RuntimeError(
        "%s: failed to get property for dataset." % zfs_name(prop))


def get_properties(rsrc, properties, get_source=False):
    """
    Read the requested properties of a resource.

    :param rsrc: a `ZFSResource`; the native handle is only touched while
        its context lock is held.
    :param properties: a set of `ZFSProperty` members. Other members are
        ignored.
    :param bool get_source: also report where each value comes from.
    :rtype: struct_zfs_property
    :raises TypeError: if ``properties`` is not a set.
    :raises ValueError: if a property does not apply to the resource type.
    :raises RuntimeError: if libzfs fails to get a property.
    """
    if not isinstance(properties, (set, frozenset)):
        raise TypeError(
            "properties must be a set of truenas_pylibzfs.ZFSProperty.")

    buf = _ffi.new("char[]", ZFS_MAXPROPLEN)
    srcbuf = _ffi.new("char[]", ZFS_MAX_DATASET_NAME_LEN)
    sourcep = _ffi.new("zprop_source_t *")

    values = []
    for prop in ZFSProperty:
        if prop in HIDDEN_PROPERTIES or prop not in properties:
            values.append(None)
            continue

        raw, srctype, origin = _fetch(rsrc, prop, buf, sourcep, srcbuf)
        source = None
        if get_source:
            srctype = PropertySource(srctype)
            source = struct_zfs_property_source(
                srctype,
                origin if srctype == PropertySource.INHERITED else None)

        values.append(struct_zfs_property_data(
            parse_value(prop, raw), raw, source))

    return struct_zfs_property(*values)


def _resolve_key(key):
    if isinstance(key, ZFSProperty):
        return key
    if isinstance(key, str):
        return name_to_property(key)
    raise TypeError(
        "%r: unexpected key type. Expected a truenas_pylibzfs.ZFSProperty "
        "instance." % (key,))


def _render_value(value):
    if isinstance(value, struct_zfs_property_data):
        value = value.raw if value.raw is not None else value.value
    elif isinstance(value, dict):
        if "raw" in value:
            value = value["raw"]
        elif "value" in value:
            value = value["value"]
        else:
            raise ValueError(
                "Property entry dict must contain either a raw or value "
                "key.")

    if value is None:
        return "none"
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def _items(props):
    if isinstance(props, struct_zfs_property):
        return [(prop, value)
                for prop, value in zip(ZFSProperty, props)
                if value is not None and prop not in HIDDEN_PROPERTIES]
    if isinstance(props, dict):
        return [(_resolve_key(key), value) for key, value in props.items()]
    raise TypeError(
        "%r: unexpected properties type. Expected a dictionary or a "
        "truenas_pylibzfs.struct_zfs_property instance." % (props,))


def validate_properties(props, zfs_type, allow_ro=False):
    """
    Check properties that are about to be written and render their values.

    ``readonly`` is always placed first so that turning it off takes
    effect before the remaining properties are applied.

    :param props: a dictionary keyed by `ZFSProperty` (or property name)
        or a `struct_zfs_property` record.
    :param ZFSType zfs_type: type of the resource to be modified.
    :param bool allow_ro: accept read-only properties, used for the few
        that can be given at creation time only.
    :return: ``{name: value}`` with string values.
    :rtype: dict
    """
    items = _items(props)
    items.sort(key=lambda item: item[0] != ZFSProperty.READONLY)

    out = {}
    for prop, value in items:
        if not allow_ro and _lib.zfs_prop_readonly(prop):
            raise ValueError("%s: ZFS property is readonly." % zfs_name(prop))

        if not _lib.zfs_prop_valid_for_type(prop, zfs_type, False):
            raise ValueError("%s: property is invalid for zfs type: %s" % (
                zfs_name(prop), zfs_type.name))

        out[zfs_name(prop)] = _render_value(value)

    return out


def props_to_nvlist(props, zfs_type, allow_ro=False):
    """
    Like `validate_properties` but produce an ``nvlist_t``.
    """
    return nvlist_in(validate_properties(props, zfs_type, allow_ro))


def props_to_dict(record):
    """
    :param struct_zfs_property record: properties as read by
        `get_properties`.
    :return: the properties that were read, keyed by name. Every entry is
        a dictionary with ``value``, ``raw`` and ``source`` keys.
    :rtype: dict
    """
    out = {}
    for prop, data in zip(ZFSProperty, record):
        if data is None or prop in HIDDEN_PROPERTIES:
            continue

        source = None
        if data.source is not None:
            source = {"type": data.source.type.name,
                      "value": data.source.value}

        out[zfs_name(prop)] = {
            "value": data.value,
            "raw": data.raw,
            "source": source,
        }
    return out


def validate_user_properties(user_props):
    """
    :param dict user_props: ``{name: value}`` user properties.
    :return: ``user_props``
    :raises TypeError: if the argument is not a dictionary or contains
        non-string names or values.
    :raises ValueError: if a name is not a valid user property name.
    """
    if not isinstance(user_props, dict):
        raise TypeError("Not a dictionary.")

    for name, value in user_props.items():
        if not isinstance(name, str):
            raise TypeError("%r: user property name must be a string." %
                            (name,))
        if ":" not in name:
            raise ValueError(
                "%s: user properties must contain a colon (:) in their "
                "name." % name)
        if len(name.encode(ENCODING)) > ZAP_MAXNAMELEN:
            raise ValueError(
                "%s: property name exceeds max length of %d." % (
                    name, ZAP_MAXNAMELEN))
        if not isinstance(value, str):
            raise TypeError("%s: user property value must be a string." %
                            name)

    return user_props


def user_props_to_nvlist(user_props):
    return nvlist_in(validate_user_properties(user_props))


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
