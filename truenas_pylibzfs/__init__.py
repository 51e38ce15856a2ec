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

'''
Python wrappers for the **libzfs** library.

A context is opened with `open_handle` and gives access to datasets,
volumes, snapshots and pools as Python objects.  Native calls made
through one context are serialized by its lock; separate contexts may
be used concurrently from separate threads.  Errors are reported as
`ZFSException` carrying the libzfs error code and description.

Bulk operations that go straight to the kernel live in the `lzc`
module.

Example::

    import truenas_pylibzfs

    lz = truenas_pylibzfs.open_handle()
    ds = lz.open_resource(name="tank/data")
    print(ds.get_mountpoint())
'''

from . import enums, lzc, property_sets
from ._libzfs import ZFS, open_handle
from .crypto import (
    ZFSCrypto,
    ZFSEncrypt,
    struct_zfs_crypto_config,
    struct_zfs_crypto_info,
)
from .enums import (
    PropertySource,
    VDevAuxState,
    VDevState,
    ZFSDOSFlag,
    ZFSError,
    ZFSProperty,
    ZFSType,
    ZFSUserQuota,
    ZPOOLProperty,
    ZPOOLStatus,
)
from .events import ZFSEventIterator
from .exceptions import ZFSCoreException, ZFSException
from .pool import ZFSPool, struct_zpool_feature
from .pool_create import create_vdev_spec, struct_vdev_create_spec
from .pool_status import (
    struct_support_vdev,
    struct_vdev,
    struct_vdev_stats,
    struct_zpool_status,
)
from .properties import (
    struct_zfs_property,
    struct_zfs_property_data,
    struct_zfs_property_source,
)
from .resource import (
    ZFSDataset,
    ZFSObject,
    ZFSResource,
    ZFSSnapshot,
    ZFSVolume,
)
from ._userquota import struct_zfs_userquota
from .vdev import ZFSVdev

__all__ = [
    'enums',
    'lzc',
    'property_sets',
    'open_handle',
    'create_vdev_spec',
    'ZFS',
    'ZFSObject',
    'ZFSResource',
    'ZFSDataset',
    'ZFSVolume',
    'ZFSSnapshot',
    'ZFSPool',
    'ZFSVdev',
    'ZFSCrypto',
    'ZFSEncrypt',
    'ZFSEventIterator',
    'ZFSException',
    'ZFSCoreException',
    'PropertySource',
    'VDevAuxState',
    'VDevState',
    'ZFSDOSFlag',
    'ZFSError',
    'ZFSProperty',
    'ZFSType',
    'ZFSUserQuota',
    'ZPOOLProperty',
    'ZPOOLStatus',
    'struct_vdev_create_spec',
    'struct_zfs_crypto_config',
    'struct_zfs_crypto_info',
    'struct_zfs_property',
    'struct_zfs_property_data',
    'struct_zfs_property_source',
    'struct_zfs_userquota',
    'struct_zpool_feature',
    'struct_zpool_status',
    'struct_support_vdev',
    'struct_vdev',
    'struct_vdev_stats',
]

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
