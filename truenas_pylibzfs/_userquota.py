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
User, group and project quotas.
"""

from collections import namedtuple

from ._constants import MAXUID
from ._error_translation import zfs_exception
from ._nvlist import nvlist_in
from .bindings.libzfs import lib as _lib
from .enums import ZFS_USERQUOTA_PREFIX, ZFSUserQuota

struct_zfs_userquota = namedtuple(
    "struct_zfs_userquota", ["quota_type", "xid", "value"])

_READONLY = frozenset([
    ZFSUserQuota.USER_USED,
    ZFSUserQuota.GROUP_USED,
    ZFSUserQuota.USEROBJ_USED,
    ZFSUserQuota.GROUPOBJ_USED,
    ZFSUserQuota.PROJECT_USED,
    ZFSUserQuota.PROJECTOBJ_USED,
])

_PROJECT = frozenset([
    ZFSUserQuota.PROJECT_QUOTA,
    ZFSUserQuota.PROJECTOBJ_QUOTA,
])


def quota_property(entry):
    """
    Convert a quota dictionary into a property name and value.

    :param dict entry: ``{"quota_type": ZFSUserQuota, "xid": int,
        "value": int or None}``.  A ``value`` of ``None`` or ``0`` removes
        the quota.
    :return: e.g. ``("userquota@1000", "10737418240")``
    :rtype: tuple
    """
    if not isinstance(entry, dict):
        raise TypeError("%r: expected dictionary" % (entry,))

    for key in ("quota_type", "xid", "value"):
        if key not in entry:
            raise ValueError("%s key is required" % key)

    quota_type = entry["quota_type"]
    xid = entry["xid"]
    value = entry["value"]

    if not isinstance(quota_type, ZFSUserQuota):
        raise TypeError("Not a valid ZFSUserQuota")
    if quota_type in _READONLY:
        raise ValueError("Specified quota property is readonly.")
    if quota_type not in _PROJECT and xid > MAXUID:
        raise ValueError("Value is too large for quota type.")

    name = "%s%d" % (ZFS_USERQUOTA_PREFIX[quota_type], xid)
    return name, "none" if not value else str(value)


def set_userquotas(rsrc, quotas):
    """
    Apply all ``quotas`` to ``rsrc`` in one libzfs call.

    :return: ``{property: value}`` as applied.
    """
    props = dict(quota_property(entry) for entry in quotas)
    if not props:
        return props

    nvl = nvlist_in(props)
    zfs = rsrc._zfs
    with zfs._lock:
        if _lib.zfs_prop_set_list(rsrc._zhp, nvl) != 0:
            raise zfs_exception(zfs._lzh, "zfs_prop_set_list() failed")

    return props


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
