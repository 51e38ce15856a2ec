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
Declarations from ``libzfs_core``.

Only the ioctl wrappers that take nvlists of many datasets are bound:
atomic snapshots, batched snapshot destruction and channel programs.
Everything else goes through ``libzfs``.
"""

LIBRARY = "zfs_core"

CDEF = """
    int libzfs_core_init(void);

    /* batched snapshot operations */
    int lzc_snapshot(nvlist_t *, nvlist_t *, nvlist_t **);
    int lzc_destroy_snaps(nvlist_t *, boolean_t, nvlist_t **);

    /* channel programs */
    int lzc_channel_program(const char *, const char *, uint64_t,
        uint64_t, nvlist_t *, nvlist_t **);
    int lzc_channel_program_nosync(const char *, const char *, uint64_t,
        uint64_t, nvlist_t *, nvlist_t **);
"""

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
