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
Tests for vdev specifications and pool layouts.
"""

import os
import tempfile
import unittest
from unittest import mock

from .. import pool_create
from .._constants import VDEV_ALLOC_BIAS, VDEV_TYPE, ZPOOL_CONFIG
from ..pool_create import (
    create_vdev_spec,
    draid_ngroups,
    parse_draid_config,
    plan_addition,
    plan_topology,
    pool_properties,
    struct_vdev_create_spec,
)


def _file(path):
    return create_vdev_spec(vdev_type="file", name=path)


def _group(vdev_type, n, name=None, prefix="/tmp/f"):
    return create_vdev_spec(
        vdev_type=vdev_type, name=name,
        children=[_file("%s%d" % (prefix, i)) for i in range(n)])


class TestVdevSpec(unittest.TestCase):

    def test_leaf(self):
        spec = _file("/tmp/a")
        self.assertEqual(spec, struct_vdev_create_spec("/tmp/a", "file", None))

    def test_type_required(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(name="/tmp/a")

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(vdev_type="raidz4", children=[])

    def test_leaf_without_name(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(vdev_type="disk")

    def test_leaf_with_children(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(vdev_type="file", name="/tmp/a",
                             children=[_file("/tmp/b")])

    def test_mirror_with_name(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(vdev_type="mirror", name="m",
                             children=[_file("/tmp/a"), _file("/tmp/b")])

    def test_mirror_without_children(self):
        with self.assertRaises(ValueError):
            create_vdev_spec(vdev_type="mirror")

    def test_virtual_with_empty_children(self):
        for vdev_type, name in (("mirror", None), ("raidz1", None),
                                ("draid1", "1d:0s")):
            with self.assertRaisesRegex(ValueError, "non-empty"):
                create_vdev_spec(vdev_type=vdev_type, name=name, children=[])

    def test_children_become_tuple(self):
        spec = _group("mirror", 2)
        self.assertIsInstance(spec.children, tuple)

    def test_bad_child(self):
        with self.assertRaises(TypeError):
            create_vdev_spec(vdev_type="mirror", children=["/tmp/a"])

    def test_draid(self):
        spec = _group("draid1", 5, name="2d:1s")
        self.assertEqual(spec.vdev_type, "draid1")

    def test_draid_bad_name(self):
        with self.assertRaises(ValueError):
            _group("draid1", 5, name="2:1")

    def test_draid_too_few_children(self):
        with self.assertRaises(ValueError):
            _group("draid2", 4, name="2d:1s")

    def test_draid_no_data(self):
        with self.assertRaises(ValueError):
            _group("draid1", 5, name="0d:1s")


class TestDraid(unittest.TestCase):

    def test_parse(self):
        self.assertEqual(parse_draid_config("8d:2s"), (8, 2))

    def test_parse_malformed(self):
        for name in ("8d", "d:2s", "8d:2", None):
            with self.assertRaises(ValueError):
                parse_draid_config(name)

    def test_ngroups(self):
        self.assertEqual(draid_ngroups(2, 1, 5, 1), 4)
        self.assertEqual(draid_ngroups(4, 2, 7, 1), 1)


class TestPlanTopology(unittest.TestCase):

    def test_single_file(self):
        root = plan_topology([_file("/tmp/a")])
        self.assertEqual(root[ZPOOL_CONFIG.TYPE], VDEV_TYPE.ROOT)
        self.assertEqual(root[ZPOOL_CONFIG.CHILDREN], [
            {ZPOOL_CONFIG.TYPE: "file", ZPOOL_CONFIG.PATH: "/tmp/a"}])
        self.assertNotIn(ZPOOL_CONFIG.SPARES, root)
        self.assertNotIn(ZPOOL_CONFIG.L2CACHE, root)

    def test_disk_whole_disk(self):
        with mock.patch.object(pool_create, "_lib", mock.MagicMock()) as lib:
            lib.zfs_dev_is_whole_disk.return_value = True
            root = plan_topology(
                [create_vdev_spec(vdev_type="disk", name="/dev/sda")])
        child = root[ZPOOL_CONFIG.CHILDREN][0]
        self.assertEqual(child[ZPOOL_CONFIG.WHOLE_DISK], 1)
        lib.zfs_dev_is_whole_disk.assert_called_once_with(b"/dev/sda")

    def test_raidz(self):
        root = plan_topology([_group("raidz2", 4)])
        child = root[ZPOOL_CONFIG.CHILDREN][0]
        self.assertEqual(child[ZPOOL_CONFIG.TYPE], VDEV_TYPE.RAIDZ)
        self.assertEqual(child[ZPOOL_CONFIG.NPARITY], 2)
        self.assertEqual(len(child[ZPOOL_CONFIG.CHILDREN]), 4)

    def test_draid(self):
        root = plan_topology([_group("draid1", 5, name="2d:1s")])
        child = root[ZPOOL_CONFIG.CHILDREN][0]
        self.assertEqual(child[ZPOOL_CONFIG.TYPE], VDEV_TYPE.DRAID)
        self.assertEqual(child[ZPOOL_CONFIG.DRAID_NDATA], 2)
        self.assertEqual(child[ZPOOL_CONFIG.DRAID_NSPARES], 1)
        self.assertEqual(child[ZPOOL_CONFIG.DRAID_NGROUPS], 4)

    def test_support_vdevs(self):
        root = plan_topology(
            storage_vdevs=[_group("mirror", 2)],
            cache_vdevs=[_file("/tmp/c")],
            log_vdevs=[_file("/tmp/l")],
            special_vdevs=[_group("mirror", 2, prefix="/tmp/s")],
            spare_vdevs=[_file("/tmp/sp")])
        children = root[ZPOOL_CONFIG.CHILDREN]
        self.assertEqual(len(children), 3)
        self.assertEqual(children[1][ZPOOL_CONFIG.IS_LOG], 1)
        self.assertEqual(children[1][ZPOOL_CONFIG.ALLOCATION_BIAS],
                         VDEV_ALLOC_BIAS.LOG)
        self.assertEqual(children[2][ZPOOL_CONFIG.ALLOCATION_BIAS],
                         VDEV_ALLOC_BIAS.SPECIAL)
        self.assertEqual(root[ZPOOL_CONFIG.L2CACHE][0][ZPOOL_CONFIG.PATH],
                         "/tmp/c")
        self.assertEqual(root[ZPOOL_CONFIG.SPARES][0][ZPOOL_CONFIG.PATH],
                         "/tmp/sp")

    def test_empty_storage(self):
        with self.assertRaises(ValueError):
            plan_topology([])

    def test_mixed_storage_types(self):
        with self.assertRaises(ValueError):
            plan_topology([_group("mirror", 2), _group("raidz1", 3)])

    def test_mixed_widths(self):
        with self.assertRaises(ValueError):
            plan_topology([_group("raidz1", 3), _group("raidz1", 4)])

    def test_mixed_storage_types_forced(self):
        root = plan_topology([_group("mirror", 2), _group("raidz1", 3)],
                             force=True)
        self.assertEqual(len(root[ZPOOL_CONFIG.CHILDREN]), 2)

    def test_short_mirror(self):
        with self.assertRaises(ValueError):
            plan_topology([_group("mirror", 1)])

    def test_cache_must_be_leaf(self):
        with self.assertRaises(ValueError):
            plan_topology([_file("/tmp/a")], cache_vdevs=[_group("mirror", 2)])

    def test_log_may_not_be_raidz(self):
        with self.assertRaises(ValueError):
            plan_topology([_file("/tmp/a")], log_vdevs=[_group("raidz1", 3)])

    def test_special_less_redundant(self):
        with self.assertRaises(ValueError):
            plan_topology([_group("raidz2", 4)],
                          special_vdevs=[_group("mirror", 2)])

    def test_special_draid(self):
        with self.assertRaises(ValueError):
            plan_topology([_group("mirror", 2)],
                          dedup_vdevs=[_group("draid1", 5, name="2d:1s")])

    def test_not_a_sequence(self):
        with self.assertRaises(TypeError):
            plan_topology("/tmp/a")


class TestPlanAddition(unittest.TestCase):

    def test_not_a_dict(self):
        with self.assertRaises(TypeError):
            plan_addition([_file("/tmp/a")])

    def test_unknown_category(self):
        with self.assertRaises(ValueError):
            plan_addition({"data_vdevs": [_file("/tmp/a")]})

    def test_empty(self):
        with self.assertRaises(ValueError):
            plan_addition({"cache_vdevs": []})

    def test_empty_mirror_rejected_when_forced(self):
        empty = struct_vdev_create_spec(None, "mirror", ())
        for category in ("log_vdevs", "special_vdevs", "storage_vdevs"):
            with self.assertRaisesRegex(ValueError, "non-empty"):
                plan_addition({category: [empty]}, True)

    def test_cache_only(self):
        root = plan_addition({"cache_vdevs": [_file("/tmp/c")]})
        self.assertNotIn(ZPOOL_CONFIG.CHILDREN, root)
        self.assertEqual(len(root[ZPOOL_CONFIG.L2CACHE]), 1)

    def test_special_without_storage(self):
        root = plan_addition({"special_vdevs": [_file("/tmp/s")]})
        self.assertEqual(
            root[ZPOOL_CONFIG.CHILDREN][0][ZPOOL_CONFIG.ALLOCATION_BIAS],
            VDEV_ALLOC_BIAS.SPECIAL)

    def test_spare_must_be_leaf(self):
        with self.assertRaises(ValueError):
            plan_addition({"spare_vdevs": [_group("mirror", 2)]})

    def test_forced(self):
        root = plan_addition({"spare_vdevs": [_group("mirror", 2)]},
                             force=True)
        self.assertEqual(len(root[ZPOOL_CONFIG.SPARES]), 1)


class TestPoolProperties(unittest.TestCase):

    def test_not_a_dict(self):
        with self.assertRaises(TypeError):
            pool_properties([("ashift", 12)])

    def test_feature(self):
        self.assertEqual(pool_properties({"feature@async_destroy": "enabled"}),
                         {"feature@async_destroy": "enabled"})

    def test_by_name(self):
        with mock.patch.object(pool_create, "_lib", mock.MagicMock()) as lib:
            lib.zpool_name_to_prop.return_value = 3
            self.assertEqual(pool_properties({"ashift": 12}),
                             {"ashift": "12"})

    def test_unknown_name(self):
        with mock.patch.object(pool_create, "_lib", mock.MagicMock()) as lib:
            lib.zpool_name_to_prop.return_value = -1
            with self.assertRaises(ValueError):
                pool_properties({"nosuchprop": "x"})

    def test_bad_key_type(self):
        with self.assertRaises(TypeError):
            pool_properties({1.5: "x"})


class TestSupportedFeatures(unittest.TestCase):

    def _features(self, features):
        # lay out features the way the kernel module does: one directory
        # per GUID, holding the short name and description
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        for guid, files in features.items():
            os.mkdir(os.path.join(tmp.name, guid))
            for key, value in files.items():
                with open(os.path.join(tmp.name, guid, key), "w") as f:
                    f.write(value + "\n")
        return tmp.name

    def test_missing_directory(self):
        self.assertEqual(
            pool_create.supported_features("/nonexistent/features.pool"), {})

    def test_keyed_by_uname(self):
        path = self._features({
            "org.open-zfs:large_blocks": {"uname": "large_blocks"},
            "com.delphix:async_destroy": {"uname": "async_destroy",
                                          "description": "Destroy async."},
            "com.example:nameless": {"description": "No uname."},
        })
        self.assertEqual(pool_create.supported_features(path), {
            "async_destroy": "com.delphix:async_destroy",
            "large_blocks": "org.open-zfs:large_blocks",
        })
        self.assertEqual(list(pool_create.supported_features(path)),
                         ["async_destroy", "large_blocks"])
        self.assertEqual(
            pool_create.read_feature_file(
                "com.delphix:async_destroy", "description", path),
            "Destroy async.")
        self.assertIsNone(pool_create.read_feature_file(
            "org.open-zfs:large_blocks", "description", path))

    def test_default_pool_properties(self):
        features = {"async_destroy": "com.delphix:async_destroy",
                    "large_blocks": "org.open-zfs:large_blocks"}
        with mock.patch.object(pool_create, "supported_features",
                               return_value=features):
            self.assertEqual(pool_create.default_pool_properties(), {
                "feature@async_destroy": "enabled",
                "feature@large_blocks": "enabled",
            })


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
