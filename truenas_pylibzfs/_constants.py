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
Important `libzfs` constants.
"""

ENCODING = "utf-8"

#: Maximum length of any ZFS name.
ZFS_MAX_DATASET_NAME_LEN = 256
#: Maximum length of a property value.
ZFS_MAXPROPLEN = 4096
#: Maximum length of a user property name.
ZAP_MAXNAMELEN = 256
MAXPATHLEN = 1024
#: Highest id accepted for user and group quotas.
MAXUID = 2147483647

#: History records are capped by the kernel.
PYMAXHISTORYLEN = 4096
MAX_HISTORY_PREFIX_LEN = 25
DEFAULT_HISTORY_PREFIX = "truenas-pylibzfs: "

SPA_VERSION = 5000

#: Default channel program limits
ZCP_DEFAULT_INSTRLIMIT = 10 * 1000 * 1000
ZCP_DEFAULT_MEMLIMIT = 10 * 1024 * 1024

# iteration flags
ZFS_ITER_SIMPLE = 1 << 0

# zfs_prop_set_list_flags()
ZFS_SET_NOMOUNT = 1

# zfs_canmount_type_t
ZFS_CANMOUNT_OFF = 0
ZFS_CANMOUNT_ON = 1
ZFS_CANMOUNT_NOAUTO = 2

# mount(2)/umount(2) flags as understood by libzfs
MS_FORCE = 0x00000001
MS_DETACH = 0x00000002
MS_CRYPT = 0x00000008
UMOUNT_NOFOLLOW = 0x00000008

# zpool_vdev_name() flags
VDEV_NAME_PATH = 1 << 0
VDEV_NAME_GUID = 1 << 1
VDEV_NAME_FOLLOW_LINKS = 1 << 2
VDEV_NAME_TYPE_ID = 1 << 3

# zpool_vdev_online() flags
ZFS_ONLINE_EXPAND = 0x8

# vdev_t ashift bounds
ASHIFT_MIN = 9
ASHIFT_MAX = 16

# zpool_clear() rewind policy
ZPOOL_LOAD_REWIND_POLICY = "load-rewind-policy"
ZPOOL_NO_REWIND = 1

ZPOOL_PREFETCH_NONE = 0
ZPOOL_PREFETCH_DDT = 1
ZPOOL_PREFETCH_BRT = 2

ZPOOL_DDT_PRUNE_NONE = 0
ZPOOL_DDT_PRUNE_AGE = 1
ZPOOL_DDT_PRUNE_PERCENTAGE = 2

POOL_STATE_UNAVAIL = 6

ZEVENT_NONBLOCK = 0x1
ZEVENT_SEEK_END = 2 ** 64 - 1
ZFS_DEV = "/dev/zfs"

# encryption
ZFS_KEYFORMAT_NONE = 0
ZFS_KEYFORMAT_RAW = 1
ZFS_KEYFORMAT_HEX = 2
ZFS_KEYFORMAT_PASSPHRASE = 3
ZFS_KEYSTATUS_NONE = 0
ZFS_KEYSTATUS_UNAVAILABLE = 1
ZFS_KEYSTATUS_AVAILABLE = 2
ZIO_CRYPT_OFF = 2
WRAPPING_KEY_LEN = 32
MIN_PASSPHRASE_LEN = 8
MAX_PASSPHRASE_LEN = 512
MIN_PBKDF2_ITERATIONS = 1300000
DEFAULT_PBKDF2_ITERATIONS = 1300000

# dRAID
VDEV_DRAID_MAX_CHILDREN = 255
VDEV_DRAID_MAX_SPARES = 100

#: Retry policy for zfs_userspace() racing with an unmount.
USERSPACE_EBUSY_RETRIES = 50
USERSPACE_EBUSY_DELAY = 0.1

ZPOOL_FEATURES_PATH = "/sys/module/zfs/features.pool"
ZFS_MSG_URL = "https://openzfs.github.io/openzfs-docs/msg/%s"
#: Size of the buffers for zpool_explain_recover() and friends
ZPOOL_STATUS_BUFLEN = 2048

# zpool_errata_t
ZPOOL_ERRATA_NONE = 0
ZPOOL_ERRATA_ZOL_2094_SCRUB = 1
ZPOOL_ERRATA_ZOL_2094_ASYNC_DESTROY = 2
ZPOOL_ERRATA_ZOL_6845_ENCRYPTION = 3
ZPOOL_ERRATA_ZOL_8308_ENCRYPTION = 4
#: readlink() of /proc/self/ns/user in the initial user namespace
INIT_USER_NS = "user:[4026531837]"


class ZPOOL_CONFIG:
    TYPE = "type"
    PATH = "path"
    GUID = "guid"
    TOP_GUID = "top_guid"
    WHOLE_DISK = "whole_disk"
    CHILDREN = "children"
    NPARITY = "nparity"
    DRAID_NDATA = "draid_ndata"
    DRAID_NSPARES = "draid_nspares"
    DRAID_NGROUPS = "draid_ngroups"
    IS_LOG = "is_log"
    IS_HOLE = "is_hole"
    ALLOCATION_BIAS = "alloc_bias"
    SPARES = "spares"
    L2CACHE = "l2cache"
    VDEV_STATS = "vdev_stats"
    VDEV_TREE = "vdev_tree"
    ASIZE = "asize"
    ASHIFT = "ashift"
    NOT_PRESENT = "not_present"
    FEATURE_STATS = "feature_stats"
    ERRLOG_DATASET = "dataset"
    ERRLOG_OBJECT = "object"


class VDEV_TYPE:
    ROOT = "root"
    DISK = "disk"
    FILE = "file"
    MIRROR = "mirror"
    RAIDZ = "raidz"
    DRAID = "draid"
    SPARE = "spare"
    LOG = "log"
    L2CACHE = "l2cache"
    HOLE = "hole"
    INDIRECT = "indirect"
    DRAID_SPARE = "dspare"


class VDEV_ALLOC_BIAS:
    LOG = "log"
    SPECIAL = "special"
    DEDUP = "dedup"


class VDEV_STAT:
    """
    Offsets into the ``vdev_stat_t`` array that the kernel publishes as
    ``ZPOOL_CONFIG_VDEV_STATS``.
    """
    TIMESTAMP = 0
    STATE = 1
    AUX = 2
    ALLOC = 3
    SPACE = 4
    DSPACE = 5
    RSIZE = 6
    ESIZE = 7
    OPS = 8
    BYTES = 14
    READ_ERRORS = 20
    WRITE_ERRORS = 21
    CHECKSUM_ERRORS = 22
    INITIALIZE_ERRORS = 23
    SELF_HEALED = 24
    SLOW_IOS = 34
    PSPACE = 46
    DIO_VERIFY_ERRORS = 47


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
