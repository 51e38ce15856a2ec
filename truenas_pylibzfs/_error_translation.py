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
Helper routines for converting the error state of a libzfs handle
to `ZFSException` instances.

libzfs keeps the code, description and suggested action of the most
recent failure in the library handle, so these helpers must be called
while the context lock that protected the failing call is still held.
"""

import os
import sys

from ._constants import ENCODING
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import ZFSError
from .exceptions import ZFSException


def zfs_error_name(code):
    """
    Return the symbolic name of a libzfs error code.

    :param int code: the error code.
    :return: e.g. ``"EZFS_BUSY"``, or ``"UNKNOWN"`` for codes that are not
        part of `ZFSError`.
    :rtype: str
    """
    try:
        return ZFSError(code).name
    except ValueError:
        return "UNKNOWN"


def _to_code(code):
    try:
        return ZFSError(code)
    except ValueError:
        return code


def _string(cstr):
    if cstr == _ffi.NULL:
        return ""
    return _ffi.string(cstr).decode(ENCODING, errors="replace")


def _caller_location(depth):
    frame = sys._getframe(depth + 1)
    return "%s:%d" % (
        os.path.basename(frame.f_code.co_filename), frame.f_lineno)


def libzfs_error(lzh):
    """
    Read the error state of a libzfs handle.

    :param lzh: ``libzfs_handle_t *``
    :return: a ``(code, description, action)`` tuple.
    """
    code = _lib.libzfs_errno(lzh)
    description = _string(_lib.libzfs_error_description(lzh))
    action = _string(_lib.libzfs_error_action(lzh))
    return code, description, action


def exception_from_error(code, description, action, location, extra=None):
    """
    Build a `ZFSException` from the parts of a libzfs error.

    :param int code: libzfs error code.
    :param str description: libzfs error description.
    :param str action: libzfs suggested action.
    :param str location: where the failure was detected.
    :param str extra: optional context, preferred over ``description``
        in the exception message.
    :rtype: ZFSException
    """
    try:
        name = zfs_error_name(code)
        err_str = "[%s]: %s" % (name, extra if extra else description)
        return ZFSException(
            _to_code(code), err_str, name, action, description, location)
    except MemoryError:
        # the absolute minimum, no formatting
        return ZFSException(code, description)


def zfs_exception(lzh, extra=None):
    """
    Build a `ZFSException` from the current error state of ``lzh``.
    The location is the caller's source file and line.

    :param lzh: ``libzfs_handle_t *``
    :param str extra: optional context for the exception message,
        usually the name of the failed library call.
    :rtype: ZFSException
    """
    code, description, action = libzfs_error(lzh)
    return exception_from_error(
        code, description, action, _caller_location(1), extra)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
