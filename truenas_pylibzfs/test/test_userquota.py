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
Tests for user, group and project quotas.
"""

import threading
import unittest
from unittest import mock

from .. import _userquota
from .._constants import MAXUID
from ..enums import ZFSUserQuota


class TestQuotaProperty(unittest.TestCase):

    def test_quota(self):
        self.assertEqual(
            _userquota.quota_property({
                "quota_type": ZFSUserQuota.USER_QUOTA, "xid": 1000,
                "value": 10737418240}),
            ("userquota@1000", "10737418240"))
        self.assertEqual(
            _userquota.quota_property({
                "quota_type": ZFSUserQuota.GROUPOBJ_QUOTA, "xid": 0,
                "value": 5}),
            ("groupobjquota@0", "5"))

    def test_remove(self):
        for value in (None, 0):
            self.assertEqual(
                _userquota.quota_property({
                    "quota_type": ZFSUserQuota.PROJECT_QUOTA, "xid": 7,
                    "value": value}),
                ("projectquota@7", "none"))

    def test_readonly(self):
        with self.assertRaisesRegex(ValueError, "readonly"):
            _userquota.quota_property({
                "quota_type": ZFSUserQuota.USER_USED, "xid": 1,
                "value": 1})

    def test_xid_range(self):
        entry = {"quota_type": ZFSUserQuota.USER_QUOTA, "xid": MAXUID + 1,
                 "value": 1}
        with self.assertRaises(ValueError):
            _userquota.quota_property(entry)
        entry["quota_type"] = ZFSUserQuota.PROJECT_QUOTA
        self.assertEqual(_userquota.quota_property(entry)[0],
                         "projectquota@%d" % (MAXUID + 1))

    def test_malformed(self):
        with self.assertRaises(TypeError):
            _userquota.quota_property([ZFSUserQuota.USER_QUOTA, 1, 1])
        with self.assertRaisesRegex(ValueError, "xid"):
            _userquota.quota_property(
                {"quota_type": ZFSUserQuota.USER_QUOTA, "value": 1})
        with self.assertRaises(TypeError):
            _userquota.quota_property(
                {"quota_type": 1, "xid": 1, "value": 1})


class TestSetUserquotas(unittest.TestCase):

    def setUp(self):
        for name, value in (("_lib", mock.Mock()),
                            ("nvlist_in", lambda props: dict(props)),
                            ("zfs_exception",
                             lambda lzh, msg: RuntimeError(msg))):
            patcher = mock.patch.object(_userquota, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.rsrc = mock.Mock()
        self.rsrc._zfs._lock = threading.Lock()

    def test_set(self):
        _userquota._lib.zfs_prop_set_list.return_value = 0
        props = _userquota.set_userquotas(self.rsrc, [
            {"quota_type": ZFSUserQuota.USER_QUOTA, "xid": 1, "value": 10},
            {"quota_type": ZFSUserQuota.GROUP_QUOTA, "xid": 2,
             "value": None},
        ])
        expected = {"userquota@1": "10", "groupquota@2": "none"}
        self.assertEqual(props, expected)
        _userquota._lib.zfs_prop_set_list.assert_called_once_with(
            self.rsrc._zhp, expected)

    def test_empty(self):
        self.assertEqual(_userquota.set_userquotas(self.rsrc, []), {})
        self.assertFalse(_userquota._lib.zfs_prop_set_list.called)

    def test_failure(self):
        _userquota._lib.zfs_prop_set_list.return_value = -1
        with self.assertRaisesRegex(RuntimeError, "zfs_prop_set_list"):
            _userquota.set_userquotas(self.rsrc, [
                {"quota_type": ZFSUserQuota.USER_QUOTA, "xid": 1,
                 "value": 10}])


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
