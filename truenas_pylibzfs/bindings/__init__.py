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
One module per C library that `truenas_pylibzfs` calls into.

Each binding module declares ``CDEF`` and ``LIBRARY`` and, once this
package is imported, carries two more attributes: ``ffi``, the FFI
instance shared by all bindings so that ``nvlist_t`` or ``FILE`` pointers
pass freely between libraries, and ``lib``, a `DeferredLibrary`.
Libraries are opened on first use, importing the package does not
require the ZFS userland to be installed.
"""

import importlib
import logging
import threading

from cffi import FFI


log = logging.getLogger(__name__)

#: binding modules in declaration order, later ones use earlier types
BINDINGS = ("libnvpair", "libc", "libzfs", "libzfs_core")

ffi = FFI()


class DeferredLibrary(object):
    """
    A shared library opened through `ffi` when first used.

    :param str binding: name of the binding module, used in messages.
    :param libname: the name given to ``dlopen()``, ``None`` for the
        C library already loaded into the process.
    """

    def __init__(self, binding, libname):
        self._binding = binding
        self._libname = libname
        self._lib = None
        self._lock = threading.Lock()

    def __repr__(self):
        return "<DeferredLibrary(%s, loaded=%s)>" % (
            self.soname, self._lib is not None)

    @property
    def soname(self):
        return "libc" if self._libname is None else "lib" + self._libname

    def load(self):
        """
        Open the library unless it is open already.

        :raises OSError: if ``dlopen()`` fails, typically because the ZFS
            userland libraries are not installed.
        """
        with self._lock:
            if self._lib is None:
                try:
                    self._lib = ffi.dlopen(self._libname)
                except OSError as e:
                    log.error("Cannot load %s: %s", self.soname, e)
                    raise OSError(
                        "%s bindings need %s which failed to load: %s" % (
                            self._binding, self.soname, e)) from e
                log.debug("Loaded %s for %s", self.soname, self._binding)
            return self._lib

    def __getattr__(self, name):
        lib = self._lib
        if lib is None:
            lib = self.load()
        return getattr(lib, name)


def _bind(binding):
    module = importlib.import_module("." + binding, __name__)
    ffi.cdef(module.CDEF)
    module.ffi = ffi
    module.lib = DeferredLibrary(binding, module.LIBRARY)


for _binding in BINDINGS:
    _bind(_binding)

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
