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
Append records of administrative actions to the zpool history.

Records are written after the action completed.  A failure here does
not undo the action, it only means the action is missing from the
user visible history.
"""

import errno
import logging
import os

from ._constants import ENCODING, MAX_HISTORY_PREFIX_LEN, PYMAXHISTORYLEN
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib

log = logging.getLogger(__name__)


def validate_prefix(prefix):
    """
    :param str prefix: the prefix for every history record.
    :raises TypeError: if ``prefix`` is not a string.
    :raises ValueError: if ``prefix`` is longer than the allowed maximum.
    """
    if not isinstance(prefix, str):
        raise TypeError("history_prefix must be a string")
    if len(prefix.encode(ENCODING)) > MAX_HISTORY_PREFIX_LEN:
        raise ValueError(
            "history_prefix may not exceed %d bytes" %
            MAX_HISTORY_PREFIX_LEN)


def format_record(prefix, message):
    """
    Build the history record, truncated to what the kernel accepts.
    Truncation never splits a multibyte character.

    :rtype: bytes
    """
    buf = (prefix + message).encode(ENCODING)
    # leave room for the terminating NUL
    if len(buf) < PYMAXHISTORYLEN:
        return buf
    head = buf[:PYMAXHISTORYLEN - 1].decode(ENCODING, errors="ignore")
    return head.encode(ENCODING)


def log_history(lzh, prefix, message):
    """
    Write ``prefix + message`` to the history of the pool the library
    handle last operated on.

    ``zpool_log_history()`` does not touch the libzfs error state, so the
    context lock is not required.  Interrupted writes are retried; Python
    signal handlers run between attempts and may abort the loop.

    :param lzh: ``libzfs_handle_t *``
    :param str prefix: the context's history prefix.
    :param str message: the action that completed.
    :raises RuntimeError: if the record could not be written.
    """
    record = format_record(prefix, message)
    while True:
        ret = _lib.zpool_log_history(lzh, record)
        if ret >= 0:
            break
        err = _ffi.errno
        if err != errno.EINTR:
            raise RuntimeError(
                "[%s]: attempt to log action to zpool history failed with "
                "error [%d]: %s. Since logging occurs after the action "
                "completes, this means that the specified action completed "
                "successfully; however it will not be logged in the normal "
                "zpool history log. NOTE: the action will still be logged "
                "in some capacity in the internal zpool log." % (
                    record.decode(ENCODING, errors="replace"),
                    err, os.strerror(err)))

    log.debug("history: %s", message)


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
