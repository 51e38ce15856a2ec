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
Enumerations mirrored from ``libzfs.h`` and ``sys/fs/zfs.h``.

Values must match the C definitions since they are passed straight
through to libzfs.
"""

from enum import IntEnum, IntFlag


class ZFSError(IntEnum):
    """
    From ``libzfs.h``, ``zfs_error_t``.
    """
    EZFS_SUCCESS = 0
    EZFS_NOMEM = 2000
    EZFS_BADPROP = 2001
    EZFS_PROPREADONLY = 2002
    EZFS_PROPTYPE = 2003
    EZFS_PROPNONINHERIT = 2004
    EZFS_PROPSPACE = 2005
    EZFS_BADTYPE = 2006
    EZFS_BUSY = 2007
    EZFS_EXISTS = 2008
    EZFS_NOENT = 2009
    EZFS_BADSTREAM = 2010
    EZFS_DSREADONLY = 2011
    EZFS_VOLTOOBIG = 2012
    EZFS_INVALIDNAME = 2013
    EZFS_BADRESTORE = 2014
    EZFS_BADBACKUP = 2015
    EZFS_BADTARGET = 2016
    EZFS_NODEVICE = 2017
    EZFS_BADDEV = 2018
    EZFS_NOREPLICAS = 2019
    EZFS_RESILVERING = 2020
    EZFS_BADVERSION = 2021
    EZFS_POOLUNAVAIL = 2022
    EZFS_DEVOVERFLOW = 2023
    EZFS_BADPATH = 2024
    EZFS_CROSSTARGET = 2025
    EZFS_ZONED = 2026
    EZFS_MOUNTFAILED = 2027
    EZFS_UMOUNTFAILED = 2028
    EZFS_UNSHARENFSFAILED = 2029
    EZFS_SHARENFSFAILED = 2030
    EZFS_PERM = 2031
    EZFS_NOSPC = 2032
    EZFS_FAULT = 2033
    EZFS_IO = 2034
    EZFS_INTR = 2035
    EZFS_ISSPARE = 2036
    EZFS_INVALCONFIG = 2037
    EZFS_RECURSIVE = 2038
    EZFS_NOHISTORY = 2039
    EZFS_POOLPROPS = 2040
    EZFS_POOL_NOTSUP = 2041
    EZFS_POOL_INVALARG = 2042
    EZFS_NAMETOOLONG = 2043
    EZFS_OPENFAILED = 2044
    EZFS_NOCAP = 2045
    EZFS_LABELFAILED = 2046
    EZFS_BADWHO = 2047
    EZFS_BADPERM = 2048
    EZFS_BADPERMSET = 2049
    EZFS_NODELEGATION = 2050
    EZFS_UNSHARESMBFAILED = 2051
    EZFS_SHARESMBFAILED = 2052
    EZFS_BADCACHE = 2053
    EZFS_ISL2CACHE = 2054
    EZFS_VDEVNOTSUP = 2055
    EZFS_NOTSUP = 2056
    EZFS_ACTIVE_SPARE = 2057
    EZFS_UNPLAYED_LOGS = 2058
    EZFS_REFTAG_RELE = 2059
    EZFS_REFTAG_HOLD = 2060
    EZFS_TAGTOOLONG = 2061
    EZFS_PIPEFAILED = 2062
    EZFS_THREADCREATEFAILED = 2063
    EZFS_POSTSPLIT_ONLINE = 2064
    EZFS_SCRUBBING = 2065
    EZFS_ERRORSCRUBBING = 2066
    EZFS_ERRORSCRUB_PAUSED = 2067
    EZFS_NO_SCRUB = 2068
    EZFS_DIFF = 2069
    EZFS_DIFFDATA = 2070
    EZFS_POOLREADONLY = 2071
    EZFS_SCRUB_PAUSED = 2072
    EZFS_SCRUB_PAUSED_TO_CANCEL = 2073
    EZFS_ACTIVE_POOL = 2074
    EZFS_CRYPTOFAILED = 2075
    EZFS_NO_PENDING = 2076
    EZFS_CHECKPOINT_EXISTS = 2077
    EZFS_DISCARDING_CHECKPOINT = 2078
    EZFS_NO_CHECKPOINT = 2079
    EZFS_DEVRM_IN_PROGRESS = 2080
    EZFS_VDEV_TOO_BIG = 2081
    EZFS_IOC_NOTSUPPORTED = 2082
    EZFS_TOOMANY = 2083
    EZFS_INITIALIZING = 2084
    EZFS_NO_INITIALIZE = 2085
    EZFS_WRONG_PARENT = 2086
    EZFS_TRIMMING = 2087
    EZFS_NO_TRIM = 2088
    EZFS_TRIM_NOTSUP = 2089
    EZFS_NO_RESILVER_DEFER = 2090
    EZFS_EXPORT_IN_PROGRESS = 2091
    EZFS_REBUILDING = 2092
    EZFS_VDEV_NOTSUP = 2093
    EZFS_NOT_USER_NAMESPACE = 2094
    EZFS_CKSUM = 2095
    EZFS_RESUME_EXISTS = 2096
    EZFS_SHAREFAILED = 2097
    EZFS_RAIDZ_EXPAND_IN_PROGRESS = 2098
    EZFS_ASHIFT_MISMATCH = 2099
    EZFS_UNKNOWN = 2100


class ZPOOLStatus(IntEnum):
    """
    From ``libzfs.h``, ``zpool_status_t``.
    """
    ZPOOL_STATUS_CORRUPT_CACHE = 0
    ZPOOL_STATUS_MISSING_DEV_R = 1
    ZPOOL_STATUS_MISSING_DEV_NR = 2
    ZPOOL_STATUS_CORRUPT_LABEL_R = 3
    ZPOOL_STATUS_CORRUPT_LABEL_NR = 4
    ZPOOL_STATUS_BAD_GUID_SUM = 5
    ZPOOL_STATUS_CORRUPT_POOL = 6
    ZPOOL_STATUS_CORRUPT_DATA = 7
    ZPOOL_STATUS_FAILING_DEV = 8
    ZPOOL_STATUS_VERSION_NEWER = 9
    ZPOOL_STATUS_HOSTID_MISMATCH = 10
    ZPOOL_STATUS_HOSTID_ACTIVE = 11
    ZPOOL_STATUS_HOSTID_REQUIRED = 12
    ZPOOL_STATUS_IO_FAILURE_WAIT = 13
    ZPOOL_STATUS_IO_FAILURE_CONTINUE = 14
    ZPOOL_STATUS_IO_FAILURE_MMP = 15
    ZPOOL_STATUS_BAD_LOG = 16
    ZPOOL_STATUS_ERRATA = 17
    ZPOOL_STATUS_UNSUP_FEAT_READ = 18
    ZPOOL_STATUS_UNSUP_FEAT_WRITE = 19
    ZPOOL_STATUS_FAULTED_DEV_R = 20
    ZPOOL_STATUS_FAULTED_DEV_NR = 21
    ZPOOL_STATUS_VERSION_OLDER = 22
    ZPOOL_STATUS_FEAT_DISABLED = 23
    ZPOOL_STATUS_RESILVERING = 24
    ZPOOL_STATUS_OFFLINE_DEV = 25
    ZPOOL_STATUS_REMOVED_DEV = 26
    ZPOOL_STATUS_REBUILDING = 27
    ZPOOL_STATUS_REBUILD_SCRUB = 28
    ZPOOL_STATUS_NON_NATIVE_ASHIFT = 29
    ZPOOL_STATUS_COMPATIBILITY_ERR = 30
    ZPOOL_STATUS_INCOMPATIBLE_FEAT = 31
    ZPOOL_STATUS_OK = 32


class ZFSType(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``zfs_type_t``.
    """
    ZFS_TYPE_INVALID = 0
    ZFS_TYPE_FILESYSTEM = 1 << 0
    ZFS_TYPE_SNAPSHOT = 1 << 1
    ZFS_TYPE_VOLUME = 1 << 2
    ZFS_TYPE_POOL = 1 << 3
    ZFS_TYPE_BOOKMARK = 1 << 4
    ZFS_TYPE_VDEV = 1 << 5


class ZFSDOSFlag(IntFlag):
    """
    DOS attribute bits stored in the upper half of the znode flags.
    """
    ZFS_READONLY = 0x100000000 << 0
    ZFS_HIDDEN = 0x100000000 << 1
    ZFS_SYSTEM = 0x100000000 << 2
    ZFS_ARCHIVE = 0x100000000 << 3
    ZFS_IMMUTABLE = 0x100000000 << 4
    ZFS_NOUNLINK = 0x100000000 << 5
    ZFS_APPENDONLY = 0x100000000 << 6
    ZFS_NODUMP = 0x100000000 << 7
    ZFS_SPARSE = 0x100000000 << 8
    ZFS_OFFLINE = 0x100000000 << 9


class ZFSProperty(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``zfs_prop_t``.

    Properties the library keeps for internal use only are not listed;
    the gaps in the numbering are intentional.
    """
    TYPE = 0
    CREATION = 1
    USED = 2
    AVAILABLE = 3
    REFERENCED = 4
    COMPRESSRATIO = 5
    MOUNTED = 6
    ORIGIN = 7
    QUOTA = 8
    RESERVATION = 9
    VOLSIZE = 10
    VOLBLOCKSIZE = 11
    RECORDSIZE = 12
    MOUNTPOINT = 13
    SHARENFS = 14
    CHECKSUM = 15
    COMPRESSION = 16
    ATIME = 17
    DEVICES = 18
    EXEC = 19
    SETUID = 20
    READONLY = 21
    ZONED = 22
    SNAPDIR = 23
    ACLMODE = 24
    ACLINHERIT = 25
    CREATETXG = 26
    CANMOUNT = 28
    XATTR = 30
    COPIES = 32
    VERSION = 33
    UTF8ONLY = 34
    NORMALIZE = 35
    CASESENSITIVE = 36
    VSCAN = 37
    NBMAND = 38
    SHARESMB = 39
    REFQUOTA = 40
    REFRESERVATION = 41
    GUID = 42
    PRIMARYCACHE = 43
    SECONDARYCACHE = 44
    USEDSNAP = 45
    USEDDS = 46
    USEDCHILD = 47
    USEDREFRESERV = 48
    DEFER_DESTROY = 51
    USERREFS = 52
    LOGBIAS = 53
    OBJSETID = 55
    DEDUP = 56
    MLSLABEL = 57
    SYNC = 58
    DNODESIZE = 59
    REFRATIO = 60
    WRITTEN = 61
    CLONES = 62
    LOGICALUSED = 63
    LOGICALREFERENCED = 64
    VOLMODE = 66
    FILESYSTEM_LIMIT = 67
    SNAPSHOT_LIMIT = 68
    FILESYSTEM_COUNT = 69
    SNAPSHOT_COUNT = 70
    SNAPDEV = 71
    ACLTYPE = 72
    SELINUX_CONTEXT = 73
    SELINUX_FSCONTEXT = 74
    SELINUX_DEFCONTEXT = 75
    SELINUX_ROOTCONTEXT = 76
    RELATIME = 77
    REDUNDANT_METADATA = 78
    OVERLAY = 79
    PREV_SNAP = 80
    RECEIVE_RESUME_TOKEN = 81
    ENCRYPTION = 82
    KEYLOCATION = 83
    KEYFORMAT = 84
    PBKDF2_SALT = 85
    PBKDF2_ITERS = 86
    ENCRYPTION_ROOT = 87
    KEY_GUID = 88
    KEYSTATUS = 89
    SPECIAL_SMALL_BLOCKS = 91
    REDACTED = 93
    REDACT_SNAPS = 94
    SNAPSHOTS_CHANGED = 95
    PREFETCH = 96
    VOLTHREADING = 97
    DIRECT = 98
    LONGNAME = 99
    DEFAULTUSERQUOTA = 100
    DEFAULTGROUPQUOTA = 101
    DEFAULTPROJECTQUOTA = 102
    DEFAULTUSEROBJQUOTA = 103
    DEFAULTGROUPOBJQUOTA = 104
    DEFAULTPROJECTOBJQUOTA = 105


ZFS_NUM_PROPS = 106


class ZPOOLProperty(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``zpool_prop_t``.
    """
    INVAL = -1
    NAME = 0
    SIZE = 1
    CAPACITY = 2
    ALTROOT = 3
    HEALTH = 4
    GUID = 5
    VERSION = 6
    BOOTFS = 7
    DELEGATION = 8
    AUTOREPLACE = 9
    CACHEFILE = 10
    FAILUREMODE = 11
    LISTSNAPS = 12
    AUTOEXPAND = 13
    DEDUPDITTO = 14
    DEDUPRATIO = 15
    FREE = 16
    ALLOCATED = 17
    READONLY = 18
    ASHIFT = 19
    COMMENT = 20
    EXPANDSZ = 21
    FREEING = 22
    FRAGMENTATION = 23
    LEAKED = 24
    MAXBLOCKSIZE = 25
    TNAME = 26
    MAXDNODESIZE = 27
    MULTIHOST = 28
    CHECKPOINT = 29
    LOAD_GUID = 30
    AUTOTRIM = 31
    COMPATIBILITY = 32
    BCLONEUSED = 33
    BCLONESAVED = 34
    BCLONERATIO = 35
    DEDUP_TABLE_SIZE = 36
    DEDUP_TABLE_QUOTA = 37
    DEDUPCACHED = 38
    LAST_SCRUBBED_TXG = 39


class PropertySource(IntFlag):
    """
    From ``sys/fs/zfs.h``, ``zprop_source_t``.
    """
    NONE = 0x1
    DEFAULT = 0x2
    TEMPORARY = 0x4
    LOCAL = 0x8
    INHERITED = 0x10
    RECEIVED = 0x20


class VDevState(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``vdev_state_t``.
    """
    VDEV_STATE_UNKNOWN = 0
    VDEV_STATE_CLOSED = 1
    VDEV_STATE_OFFLINE = 2
    VDEV_STATE_REMOVED = 3
    VDEV_STATE_CANT_OPEN = 4
    VDEV_STATE_FAULTED = 5
    VDEV_STATE_DEGRADED = 6
    VDEV_STATE_HEALTHY = 7


class VDevAuxState(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``vdev_aux_t``.
    """
    VDEV_AUX_NONE = 0
    VDEV_AUX_OPEN_FAILED = 1
    VDEV_AUX_CORRUPT_DATA = 2
    VDEV_AUX_NO_REPLICAS = 3
    VDEV_AUX_BAD_GUID_SUM = 4
    VDEV_AUX_TOO_SMALL = 5
    VDEV_AUX_BAD_LABEL = 6
    VDEV_AUX_VERSION_NEWER = 7
    VDEV_AUX_VERSION_OLDER = 8
    VDEV_AUX_UNSUP_FEAT = 9
    VDEV_AUX_SPARED = 10
    VDEV_AUX_ERR_EXCEEDED = 11
    VDEV_AUX_IO_FAILURE = 12
    VDEV_AUX_BAD_LOG = 13
    VDEV_AUX_EXTERNAL = 14
    VDEV_AUX_SPLIT_POOL = 15
    VDEV_AUX_BAD_ASHIFT = 16
    VDEV_AUX_EXTERNAL_PERSIST = 17
    VDEV_AUX_ACTIVE = 18
    VDEV_AUX_CHILDREN_OFFLINE = 19
    VDEV_AUX_ASHIFT_TOO_BIG = 20


class ZFSUserQuota(IntEnum):
    """
    From ``sys/fs/zfs.h``, ``zfs_userquota_prop_t``.
    """
    USER_USED = 0
    USER_QUOTA = 1
    GROUP_USED = 2
    GROUP_QUOTA = 3
    USEROBJ_USED = 4
    USEROBJ_QUOTA = 5
    GROUPOBJ_USED = 6
    GROUPOBJ_QUOTA = 7
    PROJECT_USED = 8
    PROJECT_QUOTA = 9
    PROJECTOBJ_USED = 10
    PROJECTOBJ_QUOTA = 11


#: Property name prefix for every userquota kind, indexed by ZFSUserQuota.
ZFS_USERQUOTA_PREFIX = (
    "userused@",
    "userquota@",
    "groupused@",
    "groupquota@",
    "userobjused@",
    "userobjquota@",
    "groupobjused@",
    "groupobjquota@",
    "projectused@",
    "projectquota@",
    "projectobjused@",
    "projectobjquota@",
)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
