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
Exceptions that can be raised by `truenas_pylibzfs` operations.

Failures of the caller's input are reported with the Python built-in
exceptions (`ValueError`, `TypeError`, `PermissionError`, ...).  The classes
below are only used for errors reported by the ZFS libraries.
"""

from .enums import ZFSError


class ZFSException(RuntimeError):
    """
    A libzfs operation failed.

    :ivar ZFSError code: the libzfs error code.
    :ivar str name: symbolic name of ``code``.
    :ivar str err_str: short human readable summary.
    :ivar str description: libzfs description of the most recent error.
    :ivar str action: libzfs suggestion of what to do about it.
    :ivar str location: where in this package the error was detected.
    """
    code = ZFSError.EZFS_UNKNOWN
    err_str = None
    name = None
    description = None
    action = None
    location = None

    def __init__(self, code, err_str, name=None, action=None,
                 description=None, location=None):
        super().__init__(err_str)
        self.code = code
        self.err_str = err_str
        self.name = name
        self.action = action
        self.description = description
        self.location = location

    def __str__(self):
        return self.err_str

    def __repr__(self):
        return "%s(%r, %r)" % (
            self.__class__.__name__, self.code, self.err_str)


class ZFSCoreException(RuntimeError):
    """
    A ``libzfs_core`` operation failed.

    :ivar int code: the overall error number.
    :ivar str msg: what failed.
    :ivar str name: the entity the operation was applied to, if any.
    :ivar errors: for operations on several entities, a tuple of
        ``(name, errno)`` pairs, otherwise ``None``.
    """

    def __init__(self, code, msg, name=None, errors=None):
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.name = name
        self.errors = errors

    def __str__(self):
        if self.name is not None:
            return "[Errno %d] %s: '%s'" % (self.code, self.msg, self.name)
        else:
            return "[Errno %d] %s" % (self.code, self.msg)

    def __repr__(self):
        return "%s(%r, %r, errors=%r)" % (
            self.__class__.__name__, self.code, self.msg, self.errors)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
