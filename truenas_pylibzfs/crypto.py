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
Encryption settings and keys of ZFS filesystems and volumes.

Key material supplied by the caller is never written to disk.  It is
written to an anonymous in-memory file for the duration of the single
libzfs call that needs it, and libzfs reads it through
``file:///proc/self/fd/<fd>``.  Since that location stops being valid
when the call returns, ``keylocation`` is reset to ``prompt``
afterwards.

Typical use::

    cfg = lz.resource_cryptography_config(keyformat="passphrase",
                                          key="correct horse")
    lz.create_resource(name="tank/enc",
                       type=ZFSType.ZFS_TYPE_FILESYSTEM,
                       crypto=cfg)
    enc = lz.open_resource(name="tank/enc").crypto()
    enc.unload_key()
    enc.load_key(key="correct horse")
"""

import logging
import os
import string
import sys
import warnings
from collections import namedtuple
from contextlib import contextmanager

from ._constants import (
    DEFAULT_PBKDF2_ITERATIONS,
    ENCODING,
    MAX_PASSPHRASE_LEN,
    MIN_PASSPHRASE_LEN,
    MIN_PBKDF2_ITERATIONS,
    WRAPPING_KEY_LEN,
    ZFS_KEYFORMAT_NONE,
    ZFS_KEYSTATUS_AVAILABLE,
    ZFS_MAXPROPLEN,
    ZIO_CRYPT_OFF,
)
from ._error_translation import zfs_exception
from ._nvlist import nvlist_in
from .bindings.libzfs import ffi as _ffi
from .bindings.libzfs import lib as _lib
from .enums import ZFSError, ZFSProperty

log = logging.getLogger(__name__)

KEYFORMATS = ("raw", "hex", "passphrase")
URI_PREFIXES = ("file://", "https://")
MEM_KEYFILE_NAME = "truenas_pylibzfs_keyfile"

struct_zfs_crypto_config = namedtuple(
    "struct_zfs_crypto_config",
    ["keyformat", "keylocation", "key", "pbkdf2iters"])
struct_zfs_crypto_config.__doc__ = (
    "Validated encryption settings for a new or rekeyed ZFS resource.")

struct_zfs_crypto_info = namedtuple(
    "struct_zfs_crypto_info",
    ["is_root", "encryption_root", "key_location", "key_is_loaded"])


def _check_key(keyformat, key):
    if keyformat == "raw":
        if not isinstance(key, bytes):
            raise TypeError(
                "Raw key material must be presented as a bytes object.")
        if len(key) != WRAPPING_KEY_LEN:
            raise ValueError(
                "Raw key must be exactly %d bytes." % WRAPPING_KEY_LEN)
        return

    if not isinstance(key, str):
        raise TypeError("%s key must be a string." % keyformat)

    if keyformat == "hex":
        if len(key) != WRAPPING_KEY_LEN * 2 or not all(
                c in string.hexdigits for c in key):
            raise ValueError(
                "A valid hex string of %d characters must be provided "
                "for the \"hex\" key format." % (WRAPPING_KEY_LEN * 2))
        return

    length = len(key.encode(ENCODING))
    if length < MIN_PASSPHRASE_LEN:
        raise ValueError("Passphrase must contain at minimum %d characters."
                         % MIN_PASSPHRASE_LEN)
    if length > MAX_PASSPHRASE_LEN:
        raise ValueError("Passphrase must contain at maximum %d characters."
                         % MAX_PASSPHRASE_LEN)


def crypto_config(keyformat, keylocation=None, key=None,
                  pbkdf2iters=DEFAULT_PBKDF2_ITERATIONS):
    """
    Validate encryption settings.

    :param str keyformat: one of ``raw``, ``hex`` or ``passphrase``.
    :param str keylocation: a ``file://`` or ``https://`` URI where libzfs
        reads the key from.
    :param key: the key itself, ``bytes`` for ``raw`` keys, otherwise
        ``str``.  Exactly one of ``keylocation`` and ``key`` must be given.
    :param int pbkdf2iters: iterations for deriving a wrapping key from a
        passphrase.
    :rtype: struct_zfs_crypto_config
    :raises ValueError: if the settings are not valid.
    :raises TypeError: if the key has the wrong type for ``keyformat``.
    """
    if keyformat not in KEYFORMATS:
        raise ValueError(
            "%s: not a valid key format. Choices are: \"raw\", \"hex\", "
            "and \"passphrase\"." % (keyformat,))

    if keylocation is None and key is None:
        raise ValueError(
            "Either a key location URI or an encryption key material is "
            "required.")
    if keylocation is not None and key is not None:
        raise ValueError(
            "Encryption key location URI and encryption key material may "
            "not be specified at the same time.")

    if keylocation is not None:
        if not isinstance(keylocation, str) or \
                not keylocation.startswith(URI_PREFIXES):
            raise ValueError(
                "Encryption key location URI must be prefixed with either "
                "file:// or https://")
    else:
        _check_key(keyformat, key)

    if not isinstance(pbkdf2iters, int) or isinstance(pbkdf2iters, bool):
        raise TypeError("pbkdf2iters must be an integer.")
    if pbkdf2iters < MIN_PBKDF2_ITERATIONS:
        raise ValueError("Number of pbkdf2 iterations must be at least %d."
                         % MIN_PBKDF2_ITERATIONS)

    return struct_zfs_crypto_config(keyformat, keylocation, key, pbkdf2iters)


def _key_bytes(key):
    if isinstance(key, bytes):
        return bytearray(key)
    if isinstance(key, str):
        return bytearray(key.encode(ENCODING))
    raise TypeError("key must be a string or bytes.")


@contextmanager
def mem_keyfile(key):
    """
    Expose ``key`` as an anonymous in-memory file.

    :return: a context manager that yields the ``file://`` URI of the file
        and closes it on exit.
    :raises RuntimeError: if the file could not be created or written.
    """
    buf = _key_bytes(key)
    try:
        try:
            fd = os.memfd_create(MEM_KEYFILE_NAME)
        except OSError as e:
            raise RuntimeError(
                "Failed to load key into memory: %s" % e.strerror)

        try:
            offset = 0
            with memoryview(buf) as view:
                while offset < len(buf):
                    try:
                        offset += os.write(fd, view[offset:])
                    except OSError as e:
                        raise RuntimeError(
                            "Failed to load key into memory: %s" %
                            e.strerror)
            yield "file:///proc/self/fd/%d" % fd
        finally:
            os.close(fd)
    finally:
        buf[:] = bytes(len(buf))


@contextmanager
def crypto_props(config):
    """
    Properties to create a new encryption root with ``config``.

    :return: a context manager yielding the property dictionary.  The
        ``keylocation`` it contains is only valid inside the block.
    """
    props = {
        "encryption": "on",
        "keyformat": config.keyformat,
    }
    if config.keyformat == "passphrase":
        props["pbkdf2iters"] = str(config.pbkdf2iters)

    if config.key is None:
        props["keylocation"] = config.keylocation
        yield props
        return

    with mem_keyfile(config.key) as uri:
        props["keylocation"] = uri
        yield props


def reset_keylocation(zfs, zhp, name):
    """
    Point ``keylocation`` back to ``prompt`` after an in-memory key file
    was used.  Must be called with the context lock held.
    """
    if _lib.zfs_prop_set(zhp, b"keylocation", b"prompt") != 0:
        log.warning("%s: failed to reset keylocation after using an "
                    "in-memory key", name)
        raise zfs_exception(zfs._lzh, "Failed to reset keylocation.")


class ZFSCrypto(object):
    """
    Controls encryption keys of a ZFS filesystem or volume.

    Instances are obtained through ``ZFSResource.crypto()`` and keep the
    resource alive.
    """

    def __init__(self, rsrc):
        self._rsrc = rsrc

    def __repr__(self):
        return "<truenas_pylibzfs.%s(name=%s, pool=%s, type=%s)>" % (
            self.__class__.__name__, self._rsrc.name,
            self._rsrc.pool_name, self._rsrc.type.name)

    @property
    def _zfs(self):
        return self._rsrc._zfs

    def info(self):
        """
        :return: basic encryption related properties of the resource.
        :rtype: struct_zfs_crypto_info
        :raises ZFSException: if the properties could not be read.
        """
        rsrc = self._rsrc
        zfs = self._zfs
        buf = _ffi.new("char[]", ZFS_MAXPROPLEN)
        keylocation = None

        with zfs._lock:
            err = _lib.zfs_prop_get(
                rsrc._zhp, ZFSProperty.ENCRYPTION_ROOT, buf, ZFS_MAXPROPLEN,
                _ffi.NULL, _ffi.NULL, 0, True)
            if err:
                raise zfs_exception(
                    zfs._lzh, "Failed to get crypto information.")
            encroot = _ffi.string(buf).decode(ENCODING)
            keystatus = _lib.zfs_prop_get_int(
                rsrc._zhp, ZFSProperty.KEYSTATUS)

            is_root = encroot == rsrc.name
            # libzfs only reports keylocation for encryption roots
            if is_root:
                err = _lib.zfs_prop_get(
                    rsrc._zhp, ZFSProperty.KEYLOCATION, buf, ZFS_MAXPROPLEN,
                    _ffi.NULL, _ffi.NULL, 0, True)
                if err:
                    raise zfs_exception(
                        zfs._lzh, "Failed to get crypto information.")
                keylocation = _ffi.string(buf).decode(ENCODING)

        return struct_zfs_crypto_info(
            is_root, encroot, keylocation,
            keystatus == ZFS_KEYSTATUS_AVAILABLE)

    def _check_prompt(self):
        rsrc = self._rsrc
        zfs = self._zfs
        buf = _ffi.new("char[]", ZFS_MAXPROPLEN)
        with zfs._lock:
            err = _lib.zfs_prop_get(
                rsrc._zhp, ZFSProperty.KEYLOCATION, buf, ZFS_MAXPROPLEN,
                _ffi.NULL, _ffi.NULL, 0, True)
            if err:
                raise zfs_exception(
                    zfs._lzh, "Failed to validate key location")

        if _ffi.string(buf) == b"prompt":
            raise ValueError(
                "ZFS resource has been configured to prompt for a password "
                "and no password was provided through the \"key\" argument.")

    def _load_key(self, key, key_location, test):
        if key is not None and key_location is not None:
            raise ValueError(
                "key and key_location may not be specified simultaneously.")
        if key is None and key_location is None:
            self._check_prompt()

        rsrc = self._rsrc
        zfs = self._zfs

        def _do_load(location):
            with zfs._lock:
                err = _lib.zfs_crypto_load_key(rsrc._zhp, test, location)
                if err == 0:
                    _lib.zfs_refresh_properties(rsrc._zhp)
                    return True
                if test and _lib.libzfs_errno(zfs._lzh) == \
                        ZFSError.EZFS_CRYPTOFAILED:
                    return False
                raise zfs_exception(zfs._lzh, "zfs_load_key() failed")

        if key is not None:
            with mem_keyfile(key) as uri:
                return _do_load(uri.encode(ENCODING))

        if key_location is not None:
            return _do_load(key_location.encode(ENCODING))

        return _do_load(_ffi.NULL)

    def load_key(self, *, key=None, key_location=None):
        """
        Load the encryption key.  This does not mount the resource.

        :param key: the key or passphrase, required if ``keylocation`` is
            ``prompt``.
        :param str key_location: overrides the ``keylocation`` property.
        :raises ValueError: if no key can be found.
        :raises ZFSException: if the key could not be loaded.
        """
        sys.audit("truenas_pylibzfs.ZFSCrypto.load_key", self._rsrc.name)
        self._load_key(key, key_location, False)

    def check_key(self, *, key=None, key_location=None):
        """
        Like `load_key` but only verify the key.

        :return: ``True`` if the key is correct.
        :rtype: bool
        """
        return self._load_key(key, key_location, True)

    def unload_key(self):
        """
        Unload the encryption key.  The resource must not be mounted.
        """
        sys.audit("truenas_pylibzfs.ZFSCrypto.unload_key", self._rsrc.name)
        rsrc = self._rsrc
        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_crypto_unload_key(rsrc._zhp) != 0:
                raise zfs_exception(zfs._lzh, "zfs_unload_key() failed")
            _lib.zfs_refresh_properties(rsrc._zhp)

    def _check_rewrap(self, need_root):
        info = self.info()
        if need_root and not info.is_root:
            raise ValueError(
                "This operation is only valid for ZFS resources that are "
                "an encryption root.")
        if not info.key_is_loaded:
            raise ValueError(
                "Encryption key must be loaded for ZFS resource before "
                "changing its encryption settings.")

    def inherit_key(self):
        """
        Make the resource use the encryption key of its parent.

        :raises ValueError: if the resource is not an encryption root or
            its key is not loaded.
        """
        sys.audit("truenas_pylibzfs.ZFSCrypto.inherit_key", self._rsrc.name)
        self._check_rewrap(True)

        rsrc = self._rsrc
        zfs = self._zfs
        with zfs._lock:
            if _lib.zfs_crypto_rewrap(rsrc._zhp, _ffi.NULL, True) != 0:
                raise zfs_exception(zfs._lzh, "zfs_inherit_key() failed")
            _lib.zfs_refresh_properties(rsrc._zhp)

        zfs.log_history("zfs change-key -i %s" % rsrc.name)

    def change_key(self, *, info):
        """
        Change the encryption key.  This makes the resource an encryption
        root if it is not one already.

        :param struct_zfs_crypto_config info: the new settings, see
            ``ZFS.resource_cryptography_config()``.
        """
        if not isinstance(info, struct_zfs_crypto_config):
            raise TypeError(
                "info must be a truenas_pylibzfs.struct_zfs_crypto_config "
                "instance.")

        sys.audit("truenas_pylibzfs.ZFSCrypto.change_key", self._rsrc.name)
        self._check_rewrap(False)

        rsrc = self._rsrc
        zfs = self._zfs
        with crypto_props(info) as props:
            del props["encryption"]
            nvl = nvlist_in(props)
            with zfs._lock:
                if _lib.zfs_crypto_rewrap(rsrc._zhp, nvl, False) != 0:
                    raise zfs_exception(
                        zfs._lzh, "Failed to rewrap crypto key.")
                if info.key is not None:
                    reset_keylocation(zfs, rsrc._zhp, rsrc.name)
                _lib.zfs_refresh_properties(rsrc._zhp)

        zfs.log_history("zfs change-key %s keylocation=%s, keyformat=%s" % (
            rsrc.name, info.keylocation or "prompt", info.keyformat))


class ZFSEncrypt(ZFSCrypto):
    """
    Deprecated, use ``ZFSResource.crypto()``.
    """

    def __init__(self, rsrc):
        warnings.warn(
            "ZFSEncrypt is deprecated, use ZFSResource.crypto()",
            DeprecationWarning, stacklevel=3)
        super().__init__(rsrc)


def crypto_view(rsrc, cls=ZFSCrypto):
    """
    :return: an instance of ``cls`` for ``rsrc`` or ``None`` if the
        resource is not encrypted.
    """
    zfs = rsrc._zfs
    with zfs._lock:
        keyformat = _lib.zfs_prop_get_int(rsrc._zhp, ZFSProperty.KEYFORMAT)
    if keyformat == ZFS_KEYFORMAT_NONE:
        return None
    return cls(rsrc)


def crypto_info_dict(rsrc):
    """
    :return: `ZFSCrypto.info` as a dictionary or ``None`` if the resource
        is not encrypted.
    """
    zfs = rsrc._zfs
    with zfs._lock:
        encryption = _lib.zfs_prop_get_int(rsrc._zhp, ZFSProperty.ENCRYPTION)
    if encryption == ZIO_CRYPT_OFF:
        return None
    return ZFSCrypto(rsrc).info()._asdict()


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
