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
Tests for mounting, with libzfs replaced by mocks.
"""

import threading
import unittest
from unittest import mock

from .. import _mount
from .._constants import MS_CRYPT, MS_DETACH, MS_FORCE, UMOUNT_NOFOLLOW
from ..enums import ZFSProperty, ZFSType


def _resource(zfs_type=ZFSType.ZFS_TYPE_FILESYSTEM):
    rsrc = mock.Mock()
    rsrc.name = "tank/a"
    rsrc.type = zfs_type
    rsrc._zfs._lock = threading.Lock()
    return rsrc


class _MountTestCase(unittest.TestCase):

    def setUp(self):
        for name, value in (("_lib", mock.Mock()),
                            ("in_global_zone", lambda: True),
                            ("zfs_exception",
                             lambda lzh, msg: RuntimeError(msg))):
            patcher = mock.patch.object(_mount, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.lib = _mount._lib
        self.rsrc = _resource()

    def _int_props(self, zoned=0, redacted=0, canmount=1):
        values = {ZFSProperty.ZONED: zoned, ZFSProperty.REDACTED: redacted,
                  ZFSProperty.CANMOUNT: canmount}
        self.lib.zfs_prop_get_int.side_effect = \
            lambda zhp, prop: values[prop]

    def _mountpoint(self, value):
        def _get(zhp, prop, buf, size, *args):
            encoded = value.encode() + b"\0"
            buf[0:len(encoded)] = encoded
            return 0
        self.lib.zfs_prop_get.side_effect = _get


class TestMountpoint(_MountTestCase):

    def test_explicit(self):
        self.assertEqual(_mount.resolve_mountpoint(self.rsrc, "/mnt/a"),
                         "/mnt/a")

    def test_invalid(self):
        for mountpoint, exc in (("mnt/a", ValueError), ("/", ValueError),
                                (None, ValueError), (b"/mnt", TypeError)):
            with self.assertRaises(exc):
                _mount.resolve_mountpoint(self.rsrc, mountpoint)

    def test_property(self):
        self._mountpoint("/tank/a")
        self.assertEqual(_mount.resolve_mountpoint(self.rsrc), "/tank/a")

    def test_property_none_or_legacy(self):
        for value in ("none", "legacy"):
            self._mountpoint(value)
            with self.assertRaises(ValueError):
                _mount.resolve_mountpoint(self.rsrc)

    def test_volume_needs_mountpoint(self):
        with self.assertRaises(ValueError):
            _mount.resolve_mountpoint(_resource(ZFSType.ZFS_TYPE_VOLUME))


class TestMountOptions(unittest.TestCase):

    def test_options(self):
        self.assertIsNone(_mount.mount_options(None))
        self.assertIsNone(_mount.mount_options([]))
        self.assertEqual(_mount.mount_options(["noatime", "ro"]),
                         "noatime,ro")

    def test_invalid(self):
        with self.assertRaises(TypeError):
            _mount.mount_options("noatime")
        with self.assertRaises(TypeError):
            _mount.mount_options([1])


class TestMount(_MountTestCase):

    def test_mount(self):
        self._int_props()
        self.lib.zfs_mount_at.return_value = 0
        _mount.mount(self.rsrc, "/mnt/a", ["ro"], load_encryption_key=True)
        self.lib.zfs_mount_at.assert_called_once_with(
            self.rsrc._zhp, b"ro", MS_CRYPT, b"/mnt/a")
        self.lib.zfs_refresh_properties.assert_called_once_with(
            self.rsrc._zhp)

    def test_zoned(self):
        self._int_props(zoned=1)
        with self.assertRaises(PermissionError):
            _mount.mount(self.rsrc, "/mnt/a")

    def test_redacted(self):
        self._int_props(redacted=1)
        with self.assertRaises(PermissionError):
            _mount.mount(self.rsrc, "/mnt/a")
        self.lib.zfs_mount_at.return_value = 0
        _mount.mount(self.rsrc, "/mnt/a", force=True)
        self.assertEqual(self.lib.zfs_mount_at.call_args[0][2], MS_FORCE)

    def test_canmount_off(self):
        self._int_props(canmount=0)
        with self.assertRaises(ValueError):
            _mount.mount(self.rsrc, "/mnt/a")
        self.assertFalse(self.lib.zfs_mount_at.called)

    def test_failure(self):
        self._int_props()
        self.lib.zfs_mount_at.return_value = -1
        with self.assertRaises(RuntimeError):
            _mount.mount(self.rsrc, "/mnt/a")


class TestUnmount(_MountTestCase):

    def test_unmount(self):
        self.lib.zfs_unmount.return_value = 0
        _mount.unmount(self.rsrc, force=True, lazy=True)
        self.lib.zfs_unmount.assert_called_once_with(
            self.rsrc._zhp, _mount._ffi.NULL,
            MS_FORCE | MS_DETACH | UMOUNT_NOFOLLOW)

    def test_follow_symlinks(self):
        self.lib.zfs_unmount.return_value = 0
        _mount.unmount(self.rsrc, mountpoint="/mnt/a", follow_symlinks=True)
        self.lib.zfs_unmount.assert_called_once_with(
            self.rsrc._zhp, b"/mnt/a", 0)

    def test_recursive(self):
        self.lib.zfs_unmountall.return_value = 0
        _mount.unmount(self.rsrc, recursive=True, unload_encryption_key=True)
        self.lib.zfs_unmountall.assert_called_once_with(
            self.rsrc._zhp, MS_CRYPT | UMOUNT_NOFOLLOW)

    def test_recursive_with_mountpoint(self):
        with self.assertRaises(ValueError):
            _mount.unmount(self.rsrc, mountpoint="/mnt/a", recursive=True)


class TestGetMountpoint(_MountTestCase):

    def test_not_mounted(self):
        self.lib.zfs_is_mounted.return_value = 0
        self.assertIsNone(_mount.get_mountpoint(self.rsrc))


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
