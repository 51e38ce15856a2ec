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
Tests for history records.
"""

import errno
import unittest
from unittest import mock

from .. import _history
from .._constants import MAX_HISTORY_PREFIX_LEN, PYMAXHISTORYLEN
from .._history import format_record, log_history, validate_prefix


class TestPrefix(unittest.TestCase):

    def test_valid(self):
        validate_prefix("")
        validate_prefix("x" * MAX_HISTORY_PREFIX_LEN)

    def test_too_long(self):
        with self.assertRaises(ValueError):
            validate_prefix("x" * (MAX_HISTORY_PREFIX_LEN + 1))

    def test_not_a_string(self):
        with self.assertRaises(TypeError):
            validate_prefix(None)


class TestRecord(unittest.TestCase):

    def test_format(self):
        self.assertEqual(format_record("app: ", "zfs create tank/a"),
                         b"app: zfs create tank/a")

    def test_truncated(self):
        record = format_record("app: ", "x" * PYMAXHISTORYLEN)
        self.assertEqual(len(record), PYMAXHISTORYLEN - 1)
        self.assertTrue(record.startswith(b"app: x"))

    def test_truncated_on_character_boundary(self):
        # three byte characters straddling the limit
        record = format_record("app: ", "€" * PYMAXHISTORYLEN)
        self.assertLess(len(record), PYMAXHISTORYLEN)
        self.assertGreaterEqual(len(record), PYMAXHISTORYLEN - 3)
        text = record.decode("utf-8")
        self.assertEqual(text, "app: " + "€" * (len(text) - 5))


class TestLogHistory(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch.object(_history, "_lib", mock.MagicMock())
        self.lib = patcher.start()
        self.addCleanup(patcher.stop)

    def test_written(self):
        self.lib.zpool_log_history.return_value = 0
        log_history(mock.sentinel.lzh, "app: ", "zpool clear tank")
        self.lib.zpool_log_history.assert_called_once_with(
            mock.sentinel.lzh, b"app: zpool clear tank")

    def test_retry_on_eintr(self):
        self.lib.zpool_log_history.side_effect = [-1, 0]
        ffi = mock.Mock(errno=errno.EINTR)
        with mock.patch.object(_history, "_ffi", ffi):
            log_history(mock.sentinel.lzh, "app: ", "zpool clear tank")
        self.assertEqual(self.lib.zpool_log_history.call_count, 2)

    def test_failure(self):
        self.lib.zpool_log_history.return_value = -1
        ffi = mock.Mock(errno=errno.ENOSPC)
        with mock.patch.object(_history, "_ffi", ffi):
            with self.assertRaises(RuntimeError) as ctx:
                log_history(mock.sentinel.lzh, "app: ", "zpool clear tank")
        self.assertIn("completed successfully", str(ctx.exception))


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
