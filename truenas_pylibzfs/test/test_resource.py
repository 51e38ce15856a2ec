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
Tests for the dataset, volume and snapshot objects, with libzfs replaced
by mocks.
"""

import threading
import unittest
from unittest import mock

from .. import _userquota, resource
from .._constants import ZFS_SET_NOMOUNT
from ..enums import ZFSProperty, ZFSType, ZFSUserQuota


class _ResourceTestCase(unittest.TestCase):

    def setUp(self):
        ffi = mock.Mock()
        ffi.string = lambda cstr: cstr
        ffi.gc = lambda handle, destructor: handle
        ffi.new = lambda ctype, init=None: init
        for name, value in (("_lib", mock.Mock()), ("_ffi", ffi),
                            ("zfs_exception",
                             lambda lzh, msg: RuntimeError(msg)),
                            ("dump_nvlist", lambda nvl: "{}"),
                            ("nvlist_in", lambda props: dict(props))):
            patcher = mock.patch.object(resource, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.lib = resource._lib
        self.zfs = mock.Mock()
        self.zfs._lock = threading.Lock()

    def _open(self, name="tank/a", zfs_type=ZFSType.ZFS_TYPE_FILESYSTEM,
              encrypted=False):
        self.lib.zfs_get_name.return_value = name.encode()
        self.lib.zfs_get_pool_name.return_value = b"tank"
        self.lib.zfs_get_type.return_value = int(zfs_type)
        values = {ZFSProperty.GUID: 1234, ZFSProperty.CREATETXG: 56,
                  ZFSProperty.KEYFORMAT: 2 if encrypted else 0}
        self.lib.zfs_prop_get_int.side_effect = \
            lambda zhp, prop: values[prop]
        with self.zfs._lock:
            return resource.resource_from_handle(self.zfs, "zhp")


class TestResourceFromHandle(_ResourceTestCase):

    def test_types(self):
        for zfs_type, cls in (
                (ZFSType.ZFS_TYPE_FILESYSTEM, resource.ZFSDataset),
                (ZFSType.ZFS_TYPE_VOLUME, resource.ZFSVolume),
                (ZFSType.ZFS_TYPE_SNAPSHOT, resource.ZFSSnapshot)):
            self.assertIsInstance(self._open(zfs_type=zfs_type), cls)

    def test_unsupported(self):
        for zfs_type in (ZFSType.ZFS_TYPE_BOOKMARK, 0x1000):
            self.lib.zfs_get_type.return_value = int(zfs_type)
            with self.assertRaisesRegex(RuntimeError, "unsupported"):
                resource.resource_from_handle(self.zfs, "zhp")

    def test_attributes(self):
        ds = self._open(encrypted=True)
        self.assertEqual(ds.name, "tank/a")
        self.assertEqual(ds.pool_name, "tank")
        self.assertEqual(ds.type_name, "FILESYSTEM")
        self.assertEqual(ds.guid, 1234)
        self.assertEqual(ds.createtxg, 56)
        self.assertTrue(ds.encrypted)
        self.assertIn("ZFSDataset(name=tank/a", repr(ds))

    def test_asdict(self):
        d = self._open(zfs_type=ZFSType.ZFS_TYPE_VOLUME).asdict()
        self.assertEqual(d["type"], "VOLUME")
        self.assertEqual(d["type_enum"], ZFSType.ZFS_TYPE_VOLUME)
        self.assertIsNone(d["properties"])
        self.assertIsNone(d["user_properties"])
        self.assertIsNone(d["crypto"])


class TestRename(_ResourceTestCase):

    def test_rename(self):
        ds = self._open()
        self.lib.zfs_name_valid.return_value = 1
        self.lib.zfs_rename.return_value = 0
        ds.rename(new_name="tank/b", no_unmount=True)
        self.lib.zfs_rename.assert_called_once_with(
            "zhp", b"tank/b", resource._RENAME_NOUNMOUNT)
        self.assertEqual(ds.name, "tank/b")
        self.zfs.log_history.assert_called_once_with(
            "zfs rename -u tank/a -> tank/b")

    def test_invalid(self):
        ds = self._open()
        self.lib.zfs_name_valid.return_value = 1
        for kwargs in ({"new_name": "tank/a"},
                       {"new_name": "tank/b", "no_unmount": True,
                        "force_unmount": True},
                       {"new_name": "tank/b", "recursive": True}):
            with self.assertRaises(ValueError):
                ds.rename(**kwargs)
        self.lib.zfs_name_valid.return_value = 0
        with self.assertRaises(ValueError):
            ds.rename(new_name="tank/@@")
        self.assertFalse(self.lib.zfs_rename.called)

    def test_failure_keeps_name(self):
        snap = self._open("tank/a@s1", ZFSType.ZFS_TYPE_SNAPSHOT)
        self.lib.zfs_name_valid.return_value = 1
        self.lib.zfs_rename.return_value = -1
        with self.assertRaises(RuntimeError):
            snap.rename(new_name="tank/a@s2", recursive=True)
        self.assertEqual(snap.name, "tank/a@s1")
        self.assertFalse(self.zfs.log_history.called)


class TestProperties(_ResourceTestCase):

    def test_set_properties(self):
        ds = self._open()
        self.lib.zfs_prop_set_list_flags.return_value = 0
        with mock.patch.object(resource, "props_to_nvlist",
                               return_value="nvl") as to_nvlist:
            ds.set_properties(properties={ZFSProperty.ATIME: "off"},
                              remount=False)
        to_nvlist.assert_called_once_with(
            {ZFSProperty.ATIME: "off"}, ZFSType.ZFS_TYPE_FILESYSTEM)
        self.lib.zfs_prop_set_list_flags.assert_called_once_with(
            "zhp", "nvl", ZFS_SET_NOMOUNT)
        self.zfs.log_history.assert_called_once_with(
            "zfs set properties tank/a: {}")

    def test_set_user_properties(self):
        ds = self._open()
        with self.assertRaises(TypeError):
            ds.set_user_properties(user_properties=[("a:b", "c")])
        self.lib.zfs_prop_set_list.return_value = -1
        with mock.patch.object(resource, "user_props_to_nvlist",
                               return_value="nvl"):
            with self.assertRaisesRegex(RuntimeError, "user_properties"):
                ds.set_user_properties(user_properties={"a:b": "c"})

    def test_inherit(self):
        ds = self._open()
        self.lib.zfs_prop_inherit.return_value = 0
        with mock.patch.object(resource, "zfs_name",
                               lambda prop: prop.name.lower()), \
                mock.patch.object(resource, "name_to_property",
                                  lambda name: ZFSProperty[name.upper()]):
            ds.inherit_property(property=ZFSProperty.ATIME)
            ds.inherit_property(property="compression", received=True)
            ds.inherit_property(property="org:note")
        self.assertEqual(
            [c[0][1] for c in self.lib.zfs_prop_inherit.call_args_list],
            [b"atime", b"compression", b"org:note"])
        self.assertEqual(
            self.zfs.log_history.call_args_list[1],
            mock.call("zfs inherit -S compression tank/a"))
        with self.assertRaises(TypeError):
            ds.inherit_property(property=42)

    def test_simple_handle_refreshes_once(self):
        self.lib.zfs_get_name.return_value = b"tank/a"
        self.lib.zfs_get_pool_name.return_value = b"tank"
        self.lib.zfs_get_type.return_value = int(ZFSType.ZFS_TYPE_FILESYSTEM)
        self.lib.zfs_prop_get_int.return_value = 0
        ds = resource.resource_from_handle(self.zfs, "zhp", True)
        self.lib.zfs_get_user_props.return_value = "nvl"
        with mock.patch.object(resource, "user_props_to_dict",
                               return_value={"a:b": "c"}):
            self.assertEqual(ds.get_user_properties(), {"a:b": "c"})
            ds.get_user_properties()
        self.lib.zfs_refresh_properties.assert_called_once_with("zhp")


class TestDataset(_ResourceTestCase):

    def test_set_userquotas(self):
        ds = self._open()
        with mock.patch.object(_userquota, "set_userquotas",
                               return_value={"userquota@1": "10"}) as sq:
            quotas = [{"quota_type": ZFSUserQuota.USER_QUOTA, "xid": 1,
                       "value": 10}]
            ds.set_userquotas(quotas=quotas)
        sq.assert_called_once_with(ds, quotas)
        self.zfs.log_history.assert_called_once_with(
            "zfs set userquota@1=10 tank/a")

    def test_promote(self):
        ds = self._open()
        self.lib.zfs_promote.return_value = 0
        ds.promote()
        self.zfs.log_history.assert_called_once_with("zfs promote tank/a")
        self.lib.zfs_promote.return_value = -1
        with self.assertRaisesRegex(RuntimeError, "zfs_promote"):
            ds.promote()


class TestSnapshot(_ResourceTestCase):

    def test_clone(self):
        snap = self._open("tank/a@s1", ZFSType.ZFS_TYPE_SNAPSHOT)
        self.lib.zfs_clone.return_value = 0
        snap.clone(name="tank/c")
        self.lib.zfs_clone.assert_called_once_with(
            "zhp", b"tank/c", resource._ffi.NULL)
        self.zfs.log_history.assert_called_once_with(
            "zfs clone tank/a@s1 -> tank/c")

    def test_clone_with_user_properties(self):
        snap = self._open("tank/a@s1", ZFSType.ZFS_TYPE_SNAPSHOT)
        self.lib.zfs_clone.return_value = 0
        with mock.patch.object(resource, "validate_user_properties",
                               lambda props: dict(props)):
            snap.clone(name="tank/c", user_properties={"a:b": "c"})
        self.lib.zfs_clone.assert_called_once_with(
            "zhp", b"tank/c", {"a:b": "c"})

    def test_no_clones(self):
        snap = self._open("tank/a@s1", ZFSType.ZFS_TYPE_SNAPSHOT)
        self.lib.zfs_get_clones_nvl.return_value = resource._ffi.NULL
        self.assertEqual(snap.get_clones(), ())


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
