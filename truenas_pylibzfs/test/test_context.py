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
Tests for the `ZFS` context with libzfs replaced by mocks.
"""

import json
import unittest
from contextlib import contextmanager
from unittest import mock

from .. import _libzfs
from ..bindings.libzfs import ffi as _real_ffi
from ..crypto import struct_zfs_crypto_config
from ..enums import ZFSType

_NULL = _real_ffi.NULL


class _ContextTestCase(unittest.TestCase):

    def setUp(self):
        ffi = mock.Mock()
        ffi.NULL = _NULL
        ffi.gc = lambda ptr, destructor: ptr
        for name, value in (
                ("_lib", mock.Mock()),
                ("_ffi", ffi),
                ("log_history", mock.Mock()),
                ("nvlist_in", lambda props: props),
                ("zfs_exception", lambda lzh, msg: RuntimeError(msg))):
            patcher = mock.patch.object(_libzfs, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.lib = _libzfs._lib
        self.lib.libzfs_init.return_value = mock.sentinel.lzh
        self.lib.zfs_open.return_value = mock.sentinel.zhp
        self.lib.zpool_open.return_value = mock.sentinel.zpool
        self.lib.zfs_create.return_value = 0
        self.lib.zfs_destroy.return_value = 0
        self.lib.zpool_disable_datasets.return_value = 0
        self.lib.zpool_destroy.return_value = 0


class TestOpen(_ContextTestCase):

    def test_defaults(self):
        lz = _libzfs.open_handle()
        self.assertTrue(lz.history_enabled)
        self.assertEqual(lz.history_prefix, _libzfs.DEFAULT_HISTORY_PREFIX)
        self.assertTrue(lz.mnttab_cache_enabled)
        self.lib.libzfs_print_on_error.assert_called_once_with(
            mock.sentinel.lzh, False)
        self.lib.libzfs_mnttab_cache.assert_called_once_with(
            mock.sentinel.lzh, True)

    def test_options(self):
        lz = _libzfs.open_handle(history=False, history_prefix="app: ",
                                 mnttab_cache=False)
        self.assertFalse(lz.history_enabled)
        self.assertEqual(lz.history_prefix, "app: ")
        self.lib.libzfs_mnttab_cache.assert_called_once_with(
            mock.sentinel.lzh, False)

    def test_bad_prefix(self):
        with self.assertRaises(TypeError):
            _libzfs.open_handle(history_prefix=b"app: ")
        with self.assertRaises(ValueError):
            _libzfs.open_handle(history_prefix="x" * 100)
        self.assertFalse(self.lib.libzfs_init.called)

    def test_init_failure(self):
        self.lib.libzfs_init.return_value = _NULL
        with self.assertRaises(RuntimeError):
            _libzfs.open_handle()

    def test_log_history(self):
        lz = _libzfs.open_handle(history_prefix="app: ")
        lz.log_history("zfs create tank/a")
        _libzfs.log_history.assert_called_once_with(
            mock.sentinel.lzh, "app: ", "zfs create tank/a")

    def test_log_history_disabled(self):
        lz = _libzfs.open_handle(history=False)
        lz.log_history("zfs create tank/a")
        self.assertFalse(_libzfs.log_history.called)


class TestResources(_ContextTestCase):

    def setUp(self):
        super().setUp()
        self.lz = _libzfs.open_handle()

    def test_create_requires_name(self):
        with self.assertRaises(ValueError):
            self.lz.create_resource(type=ZFSType.ZFS_TYPE_FILESYSTEM)

    def test_create_bad_type(self):
        with self.assertRaises(TypeError):
            self.lz.create_resource(name="tank/a", type="filesystem")
        with self.assertRaises(TypeError):
            self.lz.create_resource(name="tank/a@s",
                                    type=ZFSType.ZFS_TYPE_SNAPSHOT)
        self.assertFalse(self.lib.zfs_create.called)

    def test_create(self):
        self.lz.create_resource(name="tank/a",
                                type=ZFSType.ZFS_TYPE_FILESYSTEM)
        self.lib.zfs_create.assert_called_once_with(
            mock.sentinel.lzh, b"tank/a", ZFSType.ZFS_TYPE_FILESYSTEM, _NULL)
        _libzfs.log_history.assert_called_once_with(
            mock.sentinel.lzh, self.lz.history_prefix, "zfs create tank/a")

    def test_create_with_user_properties(self):
        self.lz.create_resource(name="tank/v", type=ZFSType.ZFS_TYPE_VOLUME,
                                user_properties={"org.example:owner": "me"})
        args = self.lib.zfs_create.call_args[0]
        self.assertEqual(args[3], {"org.example:owner": "me"})
        message = _libzfs.log_history.call_args[0][2]
        self.assertTrue(message.startswith(
            "zfs create tank/v with properties: "))

    def test_create_failure(self):
        self.lib.zfs_create.return_value = -1
        with self.assertRaises(RuntimeError):
            self.lz.create_resource(name="tank/a",
                                    type=ZFSType.ZFS_TYPE_FILESYSTEM)
        self.assertFalse(_libzfs.log_history.called)

    def _crypto_props(self, uri):
        @contextmanager
        def _props(config):
            yield {"encryption": "on", "keyformat": config.keyformat,
                   "keylocation": uri}
        return _props

    def test_create_encrypted_with_key(self):
        config = struct_zfs_crypto_config(
            "passphrase", None, "correct horse", 1300000)
        uri = "file:///proc/self/fd/7"
        with mock.patch.object(_libzfs, "crypto_props",
                               self._crypto_props(uri)), \
                mock.patch.object(_libzfs, "reset_keylocation") as reset:
            self.lz.create_resource(name="tank/enc",
                                    type=ZFSType.ZFS_TYPE_FILESYSTEM,
                                    crypto=config)

        props = self.lib.zfs_create.call_args[0][3]
        self.assertEqual(props["keylocation"], uri)
        reset.assert_called_once_with(self.lz, mock.sentinel.zhp, "tank/enc")
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)

        message = _libzfs.log_history.call_args[0][2]
        logged = json.loads(message.split("with properties: ", 1)[1])
        self.assertEqual(logged["keylocation"], "prompt")

    def test_create_encrypted_with_keylocation(self):
        config = struct_zfs_crypto_config(
            "raw", "file:///etc/key", None, 1300000)
        with mock.patch.object(_libzfs, "crypto_props",
                               self._crypto_props("file:///etc/key")), \
                mock.patch.object(_libzfs, "reset_keylocation") as reset:
            self.lz.create_resource(name="tank/enc",
                                    type=ZFSType.ZFS_TYPE_FILESYSTEM,
                                    crypto=config)
        self.assertFalse(reset.called)
        self.assertFalse(self.lib.zfs_open.called)

    def test_open(self):
        with mock.patch.object(_libzfs, "resource_from_handle",
                               return_value=mock.sentinel.rsrc) as wrap:
            self.assertIs(self.lz.open_resource(name="tank/a"),
                          mock.sentinel.rsrc)
        wrap.assert_called_once_with(self.lz, mock.sentinel.zhp)
        self.assertEqual(self.lib.zfs_open.call_args[0][1], b"tank/a")

    def test_open_missing(self):
        self.lib.zfs_open.return_value = _NULL
        with self.assertRaises(RuntimeError) as ctx:
            self.lz.open_resource(name="tank/none")
        self.assertEqual(str(ctx.exception), "zfs_open() failed")

    def test_open_unsupported_type(self):
        with mock.patch.object(_libzfs, "resource_from_handle",
                               side_effect=RuntimeError("16: unsupported")):
            with self.assertRaises(RuntimeError) as ctx:
                self.lz.open_resource(name="tank#b")
        self.assertEqual(str(ctx.exception), "Unsupported ZFS type")
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)

    def test_open_wrap_failure(self):
        err = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        with mock.patch.object(_libzfs, "resource_from_handle",
                               side_effect=err):
            with self.assertRaises(UnicodeDecodeError):
                self.lz.open_resource(name="tank/a")
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)

        self.lib.zfs_close.reset_mock()
        with mock.patch.object(_libzfs, "resource_from_handle",
                               side_effect=KeyboardInterrupt):
            with self.assertRaises(KeyboardInterrupt):
                self.lz.open_resource(name="tank/a")
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)

    def test_destroy(self):
        self.lz.destroy_resource(name="tank/a")
        self.lib.zfs_destroy.assert_called_once_with(mock.sentinel.zhp, False)
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)
        self.assertEqual(_libzfs.log_history.call_args[0][2],
                         "zfs destroy tank/a")

    def test_destroy_failure(self):
        self.lib.zfs_destroy.return_value = -1
        with self.assertRaises(RuntimeError):
            self.lz.destroy_resource(name="tank/a")
        self.lib.zfs_close.assert_called_once_with(mock.sentinel.zhp)
        self.assertFalse(_libzfs.log_history.called)

    def test_resource_cryptography_config(self):
        with mock.patch.object(_libzfs, "crypto_config") as cfg:
            self.lz.resource_cryptography_config(keyformat="hex",
                                                 key="00" * 32)
            cfg.assert_called_once_with("hex", None, "00" * 32)
            self.lz.resource_cryptography_config(
                keyformat="passphrase", key="correct horse",
                pbkdf2iters=2000000)
            cfg.assert_called_with("passphrase", None, "correct horse",
                                   2000000)


class TestPools(_ContextTestCase):

    def setUp(self):
        super().setUp()
        self.lz = _libzfs.open_handle()

    def test_open_pool(self):
        with mock.patch.object(_libzfs, "ZFSPool") as cls:
            self.lz.open_pool(name="tank")
        cls.assert_called_once_with(self.lz, mock.sentinel.zpool)

    def test_open_pool_missing(self):
        self.lib.zpool_open.return_value = _NULL
        with self.assertRaises(RuntimeError):
            self.lz.open_pool(name="tank")

    def test_destroy_pool(self):
        self.lz.destroy_pool(name="tank", force=True)
        self.lib.zpool_disable_datasets.assert_called_once_with(
            mock.sentinel.zpool, True)
        log_str = self.lib.zpool_destroy.call_args[0][1]
        self.assertEqual(log_str, (self.lz.history_prefix +
                                   "zpool destroy tank").encode())
        self.lib.zpool_close.assert_called_once_with(mock.sentinel.zpool)
        self.assertFalse(_libzfs.log_history.called)

    def test_destroy_pool_without_history(self):
        lz = _libzfs.open_handle(history=False)
        lz.destroy_pool(name="tank")
        self.assertIs(self.lib.zpool_destroy.call_args[0][1], _NULL)

    def test_destroy_pool_busy(self):
        self.lib.zpool_disable_datasets.return_value = -1
        with self.assertRaises(RuntimeError):
            self.lz.destroy_pool(name="tank")
        self.assertFalse(self.lib.zpool_destroy.called)
        self.lib.zpool_close.assert_called_once_with(mock.sentinel.zpool)

    def test_create_pool(self):
        with mock.patch.object(_libzfs, "create_pool") as create:
            self.lz.create_pool(name="tank", storage_vdevs=["spec"])
        create.assert_called_once_with(
            self.lz, "tank", ["spec"], None, None, None, None, None, None,
            None, False)

    def test_iterators(self):
        cb = mock.Mock()
        with mock.patch.object(_libzfs, "_iter") as it:
            self.lz.iter_pools(callback=cb, state=1)
            self.lz.iter_root_filesystems(callback=cb)
        it.iter_pools.assert_called_once_with(self.lz, cb, 1)
        it.iter_root_filesystems.assert_called_once_with(self.lz, cb, None)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
