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
Python bindings for ``libzfs``.

Enumerations of the C API are declared as plain ``int`` since their
values are mirrored by the Python enums in :mod:`truenas_pylibzfs.enums`.
"""

LIBRARY = "zfs"

CDEF = """
    #define MAXPATHLEN                  1024
    #define ZFS_MAXPROPLEN              4096
    #define ZFS_MAX_DATASET_NAME_LEN    256

    typedef struct libzfs_handle libzfs_handle_t;
    typedef struct zfs_handle zfs_handle_t;
    typedef struct zpool_handle zpool_handle_t;

    typedef int zfs_type_t;
    typedef int zfs_prop_t;
    typedef int zpool_prop_t;
    typedef int zprop_source_t;
    typedef int zfs_userquota_prop_t;
    typedef int zpool_status_t;
    typedef int zpool_errata_t;
    typedef int pool_state_t;
    typedef int zpool_prefetch_type_t;
    typedef int zpool_ddt_prune_unit_t;
    typedef int vdev_state_t;
    typedef int vdev_aux_t;
    typedef unsigned int uid_t;

    /*
     * The C definition is a struct of three one-bit fields which cffi
     * cannot pass by value.  It has the same size and calling convention
     * as a single unsigned int, so the bits are packed by the caller.
     */
    typedef struct { unsigned int flags; } renameflags_t;

    typedef int (*zfs_iter_f)(zfs_handle_t *, void *);
    typedef int (*zpool_iter_f)(zpool_handle_t *, void *);
    typedef int (*zfs_userspace_cb_t)(void *, const char *, uid_t,
        uint64_t, uint64_t);

    /* library handle */
    libzfs_handle_t *libzfs_init(void);
    void libzfs_fini(libzfs_handle_t *);
    void libzfs_mnttab_cache(libzfs_handle_t *, boolean_t);
    void libzfs_print_on_error(libzfs_handle_t *, boolean_t);
    int libzfs_errno(libzfs_handle_t *);
    const char *libzfs_error_description(libzfs_handle_t *);
    const char *libzfs_error_action(libzfs_handle_t *);

    /* datasets */
    zfs_handle_t *zfs_open(libzfs_handle_t *, const char *, int);
    void zfs_close(zfs_handle_t *);
    zfs_type_t zfs_get_type(const zfs_handle_t *);
    zfs_type_t zfs_get_underlying_type(const zfs_handle_t *);
    const char *zfs_get_name(const zfs_handle_t *);
    const char *zfs_get_pool_name(const zfs_handle_t *);
    int zfs_name_valid(const char *, zfs_type_t);

    int zfs_create(libzfs_handle_t *, const char *, zfs_type_t, nvlist_t *);
    int zfs_destroy(zfs_handle_t *, boolean_t);
    int zfs_rename(zfs_handle_t *, const char *, renameflags_t);
    int zfs_promote(zfs_handle_t *);
    int zfs_clone(zfs_handle_t *, const char *, nvlist_t *);

    /* properties */
    void zfs_refresh_properties(zfs_handle_t *);
    int zfs_prop_get(zfs_handle_t *, zfs_prop_t, char *, size_t,
        zprop_source_t *, char *, size_t, boolean_t);
    uint64_t zfs_prop_get_int(zfs_handle_t *, zfs_prop_t);
    int zfs_prop_set(zfs_handle_t *, const char *, const char *);
    int zfs_prop_set_list(zfs_handle_t *, nvlist_t *);
    int zfs_prop_set_list_flags(zfs_handle_t *, nvlist_t *, int);
    int zfs_prop_inherit(zfs_handle_t *, const char *, boolean_t);
    nvlist_t *zfs_get_user_props(zfs_handle_t *);

    boolean_t zfs_prop_readonly(zfs_prop_t);
    boolean_t zfs_prop_is_string(zfs_prop_t);
    boolean_t zfs_prop_valid_for_type(int, zfs_type_t, boolean_t);

    /* iteration */
    int zfs_iter_root(libzfs_handle_t *, zfs_iter_f, void *);
    int zfs_iter_filesystems_v2(zfs_handle_t *, int, zfs_iter_f, void *);
    int zfs_iter_snapshots_v2(zfs_handle_t *, int, zfs_iter_f, void *,
        uint64_t, uint64_t);
    int zfs_iter_snapshots_sorted_v2(zfs_handle_t *, int, zfs_iter_f,
        void *, uint64_t, uint64_t);
    int zfs_userspace(zfs_handle_t *, zfs_userquota_prop_t,
        zfs_userspace_cb_t, void *);

    /* snapshots */
    nvlist_t *zfs_get_clones_nvl(zfs_handle_t *);
    int zfs_get_holds(zfs_handle_t *, nvlist_t **);

    /* mounting */
    int zfs_mount_at(zfs_handle_t *, const char *, int, const char *);
    int zfs_unmount(zfs_handle_t *, const char *, int);
    int zfs_unmountall(zfs_handle_t *, int);
    boolean_t zfs_is_mounted(zfs_handle_t *, char **);

    /* encryption */
    int zfs_crypto_load_key(zfs_handle_t *, boolean_t, const char *);
    int zfs_crypto_unload_key(zfs_handle_t *);
    int zfs_crypto_rewrap(zfs_handle_t *, nvlist_t *, boolean_t);

    /* pools */
    zpool_handle_t *zpool_open(libzfs_handle_t *, const char *);
    void zpool_close(zpool_handle_t *);
    const char *zpool_get_name(zpool_handle_t *);
    int zpool_get_state(zpool_handle_t *);
    nvlist_t *zpool_get_config(zpool_handle_t *, nvlist_t **);
    int zpool_refresh_stats(zpool_handle_t *, boolean_t *);
    int zpool_iter(libzfs_handle_t *, zpool_iter_f, void *);
    int zpool_create(libzfs_handle_t *, const char *, nvlist_t *,
        nvlist_t *, nvlist_t *);
    int zpool_destroy(zpool_handle_t *, const char *);
    int zpool_disable_datasets(zpool_handle_t *, boolean_t);
    int zpool_add(zpool_handle_t *, nvlist_t *, boolean_t);
    int zpool_vdev_online(zpool_handle_t *, const char *, int,
        vdev_state_t *);
    int zpool_vdev_offline(zpool_handle_t *, const char *, boolean_t);
    int zpool_vdev_fault(zpool_handle_t *, uint64_t, vdev_aux_t);
    int zpool_vdev_degrade(zpool_handle_t *, uint64_t, vdev_aux_t);
    int zpool_vdev_remove(zpool_handle_t *, const char *);
    int zpool_vdev_detach(zpool_handle_t *, const char *);
    int zpool_vdev_attach(zpool_handle_t *, const char *, const char *,
        nvlist_t *, int, boolean_t);
    int zpool_clear(zpool_handle_t *, const char *, nvlist_t *);
    int zpool_upgrade(zpool_handle_t *, uint64_t);
    int zpool_prefetch(zpool_handle_t *, zpool_prefetch_type_t);
    int zpool_ddt_prune(zpool_handle_t *, zpool_ddt_prune_unit_t, uint64_t);
    int zpool_sync_one(zpool_handle_t *, void *);
    int zpool_log_history(libzfs_handle_t *, const char *);
    int zpool_prop_get_feature(zpool_handle_t *, const char *, char *,
        size_t);
    zpool_prop_t zpool_name_to_prop(const char *);
    const char *zpool_prop_to_name(zpool_prop_t);

    /* pool health */
    zpool_status_t zpool_get_status(zpool_handle_t *, const char **,
        zpool_errata_t *);
    int zpool_get_errlog(zpool_handle_t *, nvlist_t **);
    void zpool_obj_to_path(zpool_handle_t *, uint64_t, uint64_t, char *,
        size_t);
    char *zpool_vdev_name(libzfs_handle_t *, zpool_handle_t *, nvlist_t *,
        int);
    void zpool_explain_recover(libzfs_handle_t *, const char *, int,
        nvlist_t *, char *, size_t);
    void zpool_collect_unsup_feat(nvlist_t *, char *, size_t);
    boolean_t zfs_dev_is_whole_disk(const char *);

    /* events */
    int zpool_events_next(libzfs_handle_t *, nvlist_t **, int *, unsigned,
        int);
    int zpool_events_seek(libzfs_handle_t *, uint64_t, int);
"""

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
