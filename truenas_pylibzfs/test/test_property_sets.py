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
Tests for the frozen property sets.
"""

import unittest
from unittest import mock

from .. import property_sets
from ..enums import ZFSProperty, ZFSType, ZPOOLStatus
from ..properties import HIDDEN_PROPERTIES

_FILESYSTEM = {ZFSProperty.ATIME, ZFSProperty.USED, ZFSProperty.MOUNTPOINT}
_SNAPSHOT = {ZFSProperty.USED}
_READONLY = {ZFSProperty.USED}


def _valid_for_type(prop, zfs_type, headcheck):
    if zfs_type == ZFSType.ZFS_TYPE_SNAPSHOT:
        return prop in _SNAPSHOT
    return prop in _FILESYSTEM


class TestPropertySets(unittest.TestCase):

    def setUp(self):
        lib = mock.Mock()
        lib.zfs_prop_valid_for_type.side_effect = _valid_for_type
        lib.zfs_prop_readonly.side_effect = lambda prop: prop in _READONLY
        for patcher in (mock.patch.object(property_sets, "_lib", lib),
                        mock.patch.dict(vars(property_sets))):
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_type_sets(self):
        self.assertEqual(property_sets.ZFS_FILESYSTEM_PROPERTIES,
                         frozenset(_FILESYSTEM - HIDDEN_PROPERTIES))
        self.assertEqual(property_sets.ZFS_FILESYSTEM_READONLY_PROPERTIES,
                         frozenset([ZFSProperty.USED]))
        self.assertEqual(property_sets.ZFS_FILESYSTEM_SNAPSHOT_PROPERTIES,
                         frozenset([ZFSProperty.USED]))

    def test_computed_once(self):
        first = property_sets.ZFS_VOLUME_PROPERTIES
        calls = property_sets._lib.zfs_prop_valid_for_type.call_count
        self.assertIs(property_sets.ZFS_VOLUME_PROPERTIES, first)
        self.assertEqual(
            property_sets._lib.zfs_prop_valid_for_type.call_count, calls)

    def test_unknown(self):
        with self.assertRaises(AttributeError):
            property_sets.ZFS_BOOKMARK_PROPERTIES

    def test_static_sets(self):
        self.assertIn(ZFSProperty.USEDSNAP,
                      property_sets.ZFS_SPACE_PROPERTIES)
        self.assertFalse(property_sets.ZPOOL_STATUS_RECOVERABLE &
                         property_sets.ZPOOL_STATUS_NONRECOVERABLE)
        self.assertIn(ZPOOLStatus.ZPOOL_STATUS_CORRUPT_DATA,
                      property_sets.ZPOOL_STATUS_RECOVERABLE)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
