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
Pool creation.

A pool layout is described with `create_vdev_spec` records::

    sda = create_vdev_spec(vdev_type="disk", name="/dev/sda")
    sdb = create_vdev_spec(vdev_type="disk", name="/dev/sdb")
    m = create_vdev_spec(vdev_type="mirror", children=[sda, sdb])
    lz.create_pool(name="tank", storage_vdevs=[m])

The layout is validated and turned into the root vdev nvlist that
``zpool_create()`` expects before any call into the kernel is made.
"""

import logging
import os
import re
import sys
from collections import namedtuple

from ._constants import (
    ENCODING,
    VDEV_ALLOC_BIAS,
    VDEV_DRAID_MAX_CHILDREN,
    VDEV_DRAID_MAX_SPARES,
    VDEV_TYPE,
    ZPOOL_CONFIG,
    ZPOOL_FEATURES_PATH,
)
from ._error_translation import zfs_exception
from ._nvlist import dump_nvlist, nvlist_in
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import ZFSType, ZPOOLProperty
from .properties import validate_properties

log = logging.getLogger(__name__)

struct_vdev_create_spec = namedtuple(
    "struct_vdev_create_spec", ["name", "vdev_type", "children"])
struct_vdev_create_spec.__doc__ = (
    "Vdev creation specification for use with ZFS.create_pool().")

LEAF_TYPES = ("disk", "file")
RAIDZ_TYPES = ("raidz1", "raidz2", "raidz3")
DRAID_TYPES = ("draid1", "draid2", "draid3")
VDEV_TYPES = LEAF_TYPES + ("mirror",) + RAIDZ_TYPES + DRAID_TYPES

_MIN_STORAGE_CHILDREN = {
    "mirror": 2,
    "raidz1": 2,
    "raidz2": 3,
    "raidz3": 4,
}

_DRAID_CONFIG = re.compile(r"^(\d+)d:(\d+)s$")

_VDEV_CATEGORIES = ("storage_vdevs", "cache_vdevs", "log_vdevs",
                    "special_vdevs", "dedup_vdevs", "spare_vdevs")


def _type_list():
    return ", ".join(VDEV_TYPES)


def is_leaf(vdev_type):
    return vdev_type in LEAF_TYPES


def is_virtual(vdev_type):
    return vdev_type == "mirror" or vdev_type in RAIDZ_TYPES or \
        vdev_type in DRAID_TYPES


def parity_level(vdev_type):
    """
    :return: how many devices of a vdev of this type may fail, ``0`` for
        leaves.
    :rtype: int
    """
    if is_leaf(vdev_type):
        return 0
    if vdev_type == "mirror":
        return 1
    return int(vdev_type[-1])


def parse_draid_config(name):
    """
    Parse a dRAID layout of the form ``<ndata>d:<nspares>s``.

    :return: ``(ndata, nspares)``
    :raises ValueError: if ``name`` is malformed.
    """
    match = _DRAID_CONFIG.match(name) if isinstance(name, str) else None
    if match is None:
        raise ValueError(
            "dRAID name \"%s\" is malformed; expected "
            "\"<ndata>d:<nspares>s\"" % (name,))
    return int(match.group(1)), int(match.group(2))


def draid_ngroups(ndata, parity, nchildren, nspares):
    """
    The smallest number of redundancy groups that fills a whole slice of
    the ``nchildren - nspares`` data drives.
    """
    stripe_width = ndata + parity
    data_drives = nchildren - nspares
    ngroups = 1
    while (ngroups * stripe_width) % data_drives != 0:
        ngroups += 1
    return ngroups


def validate_spec(spec, context):
    """
    Check a single vdev specification, including its children.

    :param struct_vdev_create_spec spec: the specification.
    :param str context: prefix for error messages.
    :raises TypeError: if ``spec`` is not a `struct_vdev_create_spec`.
    :raises ValueError: if the specification is inconsistent.
    """
    if not isinstance(spec, struct_vdev_create_spec):
        raise TypeError("%s: expected struct_vdev_create_spec, got %s" % (
            context, type(spec).__name__))

    name, vdev_type, children = spec
    if not isinstance(vdev_type, str):
        raise TypeError("%s: vdev_type must be a string" % context)

    if is_leaf(vdev_type):
        if not isinstance(name, str):
            raise ValueError(
                "%s: leaf vdev type \"%s\" requires a non-None \"name\" "
                "(device path)" % (context, vdev_type))
        if children is not None:
            raise ValueError(
                "%s: leaf vdev type \"%s\" must not have children" % (
                    context, vdev_type))
        return

    if not is_virtual(vdev_type):
        raise ValueError("%s: unknown vdev_type \"%s\". Must be one of: %s" %
                         (context, vdev_type, _type_list()))

    if not isinstance(children, tuple) or not children:
        raise ValueError(
            "%s: virtual vdev type \"%s\" requires a non-empty tuple of "
            "children" % (context, vdev_type))

    if vdev_type in DRAID_TYPES:
        if not isinstance(name, str):
            raise ValueError(
                "%s: dRAID vdev requires a name of the form "
                "\"<ndata>d:<nspares>s\"" % context)
        try:
            ndata, nspares = parse_draid_config(name)
        except ValueError as e:
            raise ValueError("%s: %s" % (context, e))

        parity = parity_level(vdev_type)
        nchildren = len(children)
        if ndata == 0:
            raise ValueError("%s: dRAID ndata must be > 0" % context)
        if nchildren > VDEV_DRAID_MAX_CHILDREN:
            raise ValueError(
                "%s: dRAID supports at most %d children, got %d" % (
                    context, VDEV_DRAID_MAX_CHILDREN, nchildren))
        if nspares > VDEV_DRAID_MAX_SPARES:
            raise ValueError(
                "%s: dRAID nspares %d exceeds maximum of %d" % (
                    context, nspares, VDEV_DRAID_MAX_SPARES))
        if nchildren < ndata + parity + nspares:
            raise ValueError(
                "%s: dRAID requires at least %d children (ndata=%d + "
                "parity=%d + nspares=%d), got %d" % (
                    context, ndata + parity + nspares, ndata, parity,
                    nspares, nchildren))
    elif name is not None:
        raise ValueError("%s: vdev type \"%s\" must have name=None" % (
            context, vdev_type))

    for child in children:
        validate_spec(child, context)


def create_vdev_spec(*, vdev_type=None, name=None, children=None):
    """
    Create a vdev specification for `ZFS.create_pool` and
    `ZFSPool.attach_vdevs`.

    :param str vdev_type: one of ``disk``, ``file``, ``mirror``,
        ``raidz1``, ``raidz2``, ``raidz3``, ``draid1``, ``draid2`` or
        ``draid3``.
    :param str name: the device path for ``disk`` and ``file`` vdevs, the
        ``<ndata>d:<nspares>s`` layout for dRAID, ``None`` otherwise.
    :param children: sequence of child specifications for virtual vdevs.
    :rtype: struct_vdev_create_spec
    :raises ValueError: if the specification is not valid.
    """
    if vdev_type is None:
        raise ValueError("\"vdev_type\" keyword argument is required")
    if not isinstance(vdev_type, str):
        raise TypeError("vdev_type must be a string")
    if vdev_type not in VDEV_TYPES:
        raise ValueError("Invalid vdev_type \"%s\". Must be one of: %s" % (
            vdev_type, _type_list()))
    if name is not None and not isinstance(name, str):
        raise TypeError("name must be a string or None")
    if children is not None:
        children = tuple(children)

    spec = struct_vdev_create_spec(name, vdev_type, children)
    validate_spec(spec, "create_vdev_spec")
    return spec


def _check_all_leaf(specs, context):
    for spec in specs:
        if not is_leaf(spec.vdev_type):
            raise ValueError(
                "%s: vdev must be leaf type (disk or file), got \"%s\"" % (
                    context, spec.vdev_type))


def _check_log(specs):
    for spec in specs:
        if not is_leaf(spec.vdev_type) and spec.vdev_type != "mirror":
            raise ValueError(
                "log_vdevs: log vdev must be leaf or mirror, got \"%s\"" %
                spec.vdev_type)


def _check_special_dedup(specs, context, storage_type):
    storage_parity = parity_level(storage_type)
    for spec in specs:
        if spec.vdev_type in DRAID_TYPES:
            raise ValueError(
                "%s: dRAID is not permitted for special or dedup vdevs" %
                context)
        parity = parity_level(spec.vdev_type)
        if parity < storage_parity:
            raise ValueError(
                "%s: vdev type \"%s\" (parity %d) provides less redundancy "
                "than storage type \"%s\" (parity %d)" % (
                    context, spec.vdev_type, parity, storage_type,
                    storage_parity))


def validate_topology(storage, cache=(), log=(), special=(), dedup=(),
                      spare=()):
    """
    Check the rules every pool layout must follow.

    :raises ValueError: if a rule is violated.
    """
    if not storage:
        raise ValueError("storage_vdevs must be non-empty")

    first_type = storage[0].vdev_type
    first_nchildren = None
    for spec in storage:
        nchildren = len(spec.children) if spec.children else 0
        minimum = _MIN_STORAGE_CHILDREN.get(spec.vdev_type, 0)
        if nchildren < minimum:
            raise ValueError(
                "%s vdev requires at least %d children, got %d" % (
                    spec.vdev_type, minimum, nchildren))

        if spec.vdev_type != first_type:
            raise ValueError(
                "storage_vdevs: all vdevs must share the same type; got "
                "\"%s\" and \"%s\"" % (first_type, spec.vdev_type))

        if is_virtual(spec.vdev_type):
            if first_nchildren is None:
                first_nchildren = nchildren
            elif nchildren != first_nchildren:
                raise ValueError(
                    "storage_vdevs: all \"%s\" vdevs must have the same "
                    "number of children; got %d and %d" % (
                        spec.vdev_type, first_nchildren, nchildren))

    _check_all_leaf(cache, "cache_vdevs")
    _check_all_leaf(spare, "spare_vdevs")
    _check_log(log)
    _check_special_dedup(special, "special_vdevs", first_type)
    _check_special_dedup(dedup, "dedup_vdevs", first_type)


def _normalize(specs, context):
    if specs is None:
        return ()
    if isinstance(specs, (str, bytes, dict)):
        raise TypeError("%s: vdev list must be a sequence" % context)
    specs = tuple(specs)
    for spec in specs:
        validate_spec(spec, context)
    return specs


def vdev_config(spec):
    """
    Build the configuration of one vdev.

    :param struct_vdev_create_spec spec: a validated specification.
    :return: a dictionary suitable for `nvlist_in`.
    :rtype: dict
    """
    vdev_type = spec.vdev_type
    if is_leaf(vdev_type):
        config = {
            ZPOOL_CONFIG.TYPE: vdev_type,
            ZPOOL_CONFIG.PATH: spec.name,
        }
        if vdev_type == VDEV_TYPE.DISK:
            # partitions and unreadable devices are not whole disks
            whole_disk = _lib.zfs_dev_is_whole_disk(spec.name.encode(ENCODING))
            config[ZPOOL_CONFIG.WHOLE_DISK] = 1 if whole_disk else 0
        return config

    if vdev_type == "mirror":
        config = {ZPOOL_CONFIG.TYPE: VDEV_TYPE.MIRROR}
    elif vdev_type in RAIDZ_TYPES:
        config = {
            ZPOOL_CONFIG.TYPE: VDEV_TYPE.RAIDZ,
            ZPOOL_CONFIG.NPARITY: parity_level(vdev_type),
        }
    else:
        parity = parity_level(vdev_type)
        ndata, nspares = parse_draid_config(spec.name)
        config = {
            ZPOOL_CONFIG.TYPE: VDEV_TYPE.DRAID,
            ZPOOL_CONFIG.NPARITY: parity,
            ZPOOL_CONFIG.DRAID_NDATA: ndata,
            ZPOOL_CONFIG.DRAID_NSPARES: nspares,
            ZPOOL_CONFIG.DRAID_NGROUPS: draid_ngroups(
                ndata, parity, len(spec.children), nspares),
        }

    if spec.children:
        config[ZPOOL_CONFIG.CHILDREN] = [
            vdev_config(child) for child in spec.children]
    return config


def root_vdev_config(storage, cache=(), log=(), special=(), dedup=(),
                     spare=()):
    """
    Compose the root vdev.

    Storage, log, special and dedup vdevs become children of the root in
    that order, tagged with their allocation bias.  Spares and cache
    devices are separate arrays of the root.

    :rtype: dict
    """
    children = [vdev_config(spec) for spec in storage]

    for spec in log:
        config = vdev_config(spec)
        config[ZPOOL_CONFIG.IS_LOG] = 1
        config[ZPOOL_CONFIG.ALLOCATION_BIAS] = VDEV_ALLOC_BIAS.LOG
        children.append(config)

    for specs, bias in ((special, VDEV_ALLOC_BIAS.SPECIAL),
                        (dedup, VDEV_ALLOC_BIAS.DEDUP)):
        for spec in specs:
            config = vdev_config(spec)
            config[ZPOOL_CONFIG.ALLOCATION_BIAS] = bias
            children.append(config)

    root = {ZPOOL_CONFIG.TYPE: VDEV_TYPE.ROOT}
    if children:
        root[ZPOOL_CONFIG.CHILDREN] = children
    if spare:
        root[ZPOOL_CONFIG.SPARES] = [vdev_config(spec) for spec in spare]
    if cache:
        root[ZPOOL_CONFIG.L2CACHE] = [vdev_config(spec) for spec in cache]
    return root


def plan_topology(storage_vdevs=None, cache_vdevs=None, log_vdevs=None,
                  special_vdevs=None, dedup_vdevs=None, spare_vdevs=None,
                  force=False):
    """
    Validate a complete layout and build its root vdev.

    :param bool force: skip the layout rules and only check that every
        specification is consistent on its own.
    :rtype: dict
    """
    specs = [
        _normalize(specs, context) for specs, context in zip(
            (storage_vdevs, cache_vdevs, log_vdevs, special_vdevs,
             dedup_vdevs, spare_vdevs),
            _VDEV_CATEGORIES)
    ]
    if not force:
        validate_topology(*specs)
    return root_vdev_config(*specs)


def plan_addition(topology, force=False):
    """
    Validate vdevs to add to an existing pool and build their root vdev.

    :param dict topology: vdev lists keyed by ``storage_vdevs``,
        ``cache_vdevs``, ``log_vdevs``, ``special_vdevs``, ``dedup_vdevs``
        and ``spare_vdevs``.  Any of them may be left out, but at least
        one vdev is required.
    :rtype: dict
    """
    if not isinstance(topology, dict):
        raise TypeError("topology must be a dictionary")
    unknown = set(topology) - set(_VDEV_CATEGORIES)
    if unknown:
        raise ValueError("%s: unknown vdev categories, expected one of %s" % (
            ", ".join(sorted(unknown)), ", ".join(_VDEV_CATEGORIES)))

    specs = [_normalize(topology.get(context), context)
             for context in _VDEV_CATEGORIES]
    if not any(specs):
        raise ValueError("topology must contain at least one vdev")

    storage, cache, log, special, dedup, spare = specs
    if not force:
        # the pool checks the redundancy against its existing vdevs
        if storage:
            validate_topology(storage)
        storage_type = storage[0].vdev_type if storage else "disk"
        _check_all_leaf(cache, "cache_vdevs")
        _check_all_leaf(spare, "spare_vdevs")
        _check_log(log)
        _check_special_dedup(special, "special_vdevs", storage_type)
        _check_special_dedup(dedup, "dedup_vdevs", storage_type)
    return root_vdev_config(*specs)


def read_feature_file(guid, key, path=ZPOOL_FEATURES_PATH):
    """
    :return: the stripped content of attribute ``key`` of the feature
        ``guid``, or ``None`` if there is no such attribute.
    """
    try:
        with open(os.path.join(path, guid, key)) as f:
            return f.read().strip()
    except FileNotFoundError:
        return None


def supported_features(path=ZPOOL_FEATURES_PATH):
    """
    The kernel module publishes one directory per pool feature, named by
    the feature GUID, whose ``uname`` attribute holds the short name used
    in ``feature@<name>`` properties.

    :return: ``{name: guid}`` for the features the loaded kernel module
        supports, ordered by name, empty if the module is not loaded.
    :rtype: dict
    """
    try:
        guids = os.listdir(path)
    except FileNotFoundError:
        log.debug("%s: not present, assuming no pool features", path)
        return {}

    out = {}
    for guid in guids:
        name = read_feature_file(guid, "uname", path)
        if not name:
            log.debug("%s: feature has no uname, skipping", guid)
            continue
        out[name] = guid
    return dict(sorted(out.items()))


def default_pool_properties():
    """
    :return: ``feature@<name>=enabled`` for every supported feature.
    :rtype: dict
    """
    return {"feature@%s" % name: "enabled" for name in supported_features()}


def pool_properties(props):
    """
    :param dict props: pool properties keyed by `ZPOOLProperty` or name.
    :return: ``{name: value}`` with string values.
    :raises TypeError: if ``props`` is not a dictionary or a key has the
        wrong type.
    :raises ValueError: for unknown properties.
    """
    if not isinstance(props, dict):
        raise TypeError("Pool properties must be a dictionary")

    out = {}
    for key, value in props.items():
        if isinstance(key, str):
            if key.startswith("feature@"):
                name = key
            elif _lib.zpool_name_to_prop(key.encode(ENCODING)) == \
                    ZPOOLProperty.INVAL:
                raise ValueError("\"%s\": not a valid zpool property" % key)
            else:
                name = key
        elif isinstance(key, int) and not isinstance(key, bool):
            if key < 0 or key > max(ZPOOLProperty):
                raise ValueError(
                    "%d: not a valid zpool property value" % key)
            name = _ffi.string(_lib.zpool_prop_to_name(key)).decode(ENCODING)
        else:
            raise TypeError("Pool property keys must be str or ZPOOLProperty")
        out[name] = str(value)
    return out


def create_pool(zfs, name, storage_vdevs=None, cache_vdevs=None,
                log_vdevs=None, special_vdevs=None, dedup_vdevs=None,
                spare_vdevs=None, properties=None,
                filesystem_properties=None, force=False):
    """
    Validate the layout and create the pool.

    :raises ValueError: if the layout or a property is not valid.
    :raises ZFSException: if ``zpool_create()`` failed.
    """
    if name is None:
        raise ValueError("\"name\" keyword argument is required")
    if storage_vdevs is None:
        raise ValueError("\"storage_vdevs\" is required and must be non-empty")

    root = plan_topology(storage_vdevs, cache_vdevs, log_vdevs,
                         special_vdevs, dedup_vdevs, spare_vdevs, force)

    sys.audit("truenas_pylibzfs.ZFS.create_pool", name)

    props = default_pool_properties()
    if properties is not None:
        props.update(pool_properties(properties))

    fsprops = _ffi.NULL
    if filesystem_properties is not None:
        fsprops = nvlist_in(validate_properties(
            filesystem_properties, ZFSType.ZFS_TYPE_FILESYSTEM))

    nvroot = nvlist_in(root)
    if log.isEnabledFor(logging.DEBUG):
        log.debug("%s: creating pool with %s", name, dump_nvlist(nvroot))

    with zfs._lock:
        if _lib.zpool_create(zfs._lzh, name.encode(ENCODING), nvroot,
                             nvlist_in(props), fsprops) != 0:
            raise zfs_exception(zfs._lzh, "zpool_create() failed")

    zfs.log_history("zpool create %s" % name)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
