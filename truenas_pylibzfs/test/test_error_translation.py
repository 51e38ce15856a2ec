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
Tests for the conversion of libzfs error state to `ZFSException`.
"""

import unittest
from unittest import mock

from .. import _error_translation
from .._error_translation import (
    exception_from_error,
    zfs_error_name,
    zfs_exception,
)
from ..enums import ZFSError
from ..exceptions import ZFSCoreException, ZFSException


class TestErrorNames(unittest.TestCase):

    def test_known(self):
        self.assertEqual(zfs_error_name(2007), "EZFS_BUSY")

    def test_unknown(self):
        self.assertEqual(zfs_error_name(424242), "UNKNOWN")


class TestExceptionFromError(unittest.TestCase):

    def test_description(self):
        exc = exception_from_error(
            ZFSError.EZFS_NOENT, "dataset does not exist", "", "x.py:1")
        self.assertIsInstance(exc, ZFSException)
        self.assertIsInstance(exc, RuntimeError)
        self.assertIs(exc.code, ZFSError.EZFS_NOENT)
        self.assertEqual(exc.name, "EZFS_NOENT")
        self.assertEqual(str(exc), "[EZFS_NOENT]: dataset does not exist")
        self.assertEqual(exc.location, "x.py:1")

    def test_extra(self):
        exc = exception_from_error(
            ZFSError.EZFS_BUSY, "pool is busy", "wait", "x.py:1",
            "zpool_destroy() failed")
        self.assertEqual(str(exc), "[EZFS_BUSY]: zpool_destroy() failed")
        self.assertEqual(exc.description, "pool is busy")
        self.assertEqual(exc.action, "wait")

    def test_unknown_code(self):
        exc = exception_from_error(424242, "odd", "", "x.py:1")
        self.assertEqual(exc.code, 424242)
        self.assertEqual(exc.name, "UNKNOWN")


class TestZfsException(unittest.TestCase):

    def test_reads_handle(self):
        with mock.patch.object(_error_translation, "libzfs_error",
                               return_value=(2009, "no such pool", "")):
            exc = zfs_exception(mock.sentinel.lzh, "zpool_open() failed")
        self.assertIs(exc.code, ZFSError.EZFS_NOENT)
        self.assertEqual(str(exc), "[EZFS_NOENT]: zpool_open() failed")
        self.assertTrue(exc.location.startswith("test_error_translation.py:"))


class TestCoreException(unittest.TestCase):

    def test_str(self):
        exc = ZFSCoreException(16, "lzc_snapshot() failed")
        self.assertEqual(str(exc), "[Errno 16] lzc_snapshot() failed")
        exc = ZFSCoreException(16, "failed", name="tank")
        self.assertEqual(str(exc), "[Errno 16] failed: 'tank'")
        self.assertIsNone(exc.errors)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
