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
Conversion between dictionaries and ``nvlist_t``.

`nvlist_in` builds an nvlist from a dictionary and ties its lifetime to
the returned CData object.  `nvlist_out` is a context manager for output
parameters: it yields an ``nvlist_t **`` and fills a dictionary from the
result when the block exits.

Values map to nvpairs as follows:

- ``None`` is a BOOLEAN, a flag that is set by being present
- bool is a BOOLEAN_VALUE, str a STRING and float a DOUBLE
- int is a UINT64, which is what libzfs expects for configuration and
  property values; other widths and signed values need one of the
  wrappers from `truenas_pylibzfs.ctypes`
- dict is a nested nvlist
- list and tuple are arrays, all elements of one type

`lua_nvlist_in` is a stricter variant for channel program arguments,
see its documentation.
"""

import numbers
from collections import namedtuple
from contextlib import contextmanager

from ._constants import ENCODING
from .bindings import libc
from .bindings import libnvpair
from .ctypes import _type_to_suffix

_ffi = libnvpair.ffi
_lib = libnvpair.lib

NV_UNIQUE_NAME = 1
#: key of the value entry in the nvlists returned for user properties
ZPROP_VALUE = "value"

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1


def _key(key):
    if not isinstance(key, str):
        raise TypeError("Unsupported key type %s" % type(key).__name__)
    return key.encode(ENCODING)


def _string(cstr):
    return _ffi.string(cstr).decode(ENCODING)


def _nvlist_alloc():
    nvlistp = _ffi.new("nvlist_t **")
    if _lib.nvlist_alloc(nvlistp, NV_UNIQUE_NAME, 0) != 0:
        raise MemoryError("nvlist_alloc() failed")
    return _ffi.gc(nvlistp[0], _lib.nvlist_free)


def _pairs(nvlist):
    pair = _lib.nvlist_next_nvpair(nvlist, _ffi.NULL)
    while pair != _ffi.NULL:
        yield _string(_lib.nvpair_name(pair)), pair
        pair = _lib.nvlist_next_nvpair(nvlist, pair)


def nvlist_in(props):
    """
    Convert a dictionary to an nvlist_t that is freed together with the
    returned object.

    :param dict props: the dictionary to be converted.
    :return: an FFI CData object representing the nvlist_t pointer.
    :rtype: CData
    :raises TypeError: for keys that are not strings, unsupported value
        types and arrays that mix element types.
    :raises ValueError: for empty arrays and integers outside of the
        uint64 range.
    """
    nvlist = _nvlist_alloc()
    for name, value in props.items():
        if _add_value(nvlist, name, value) != 0:
            raise MemoryError("nvlist_add failed for %s" % name)
    return nvlist


@contextmanager
def nvlist_out(props):
    """
    Yield an ``nvlist_t **`` for a C function that allocates an nvlist.

    When the block exits ``props`` is replaced with the content of that
    nvlist, which is then freed.

    :param dict props: the dictionary to be populated.
    """
    nvlistp = _ffi.new("nvlist_t **")
    nvlistp[0] = _ffi.NULL
    try:
        yield nvlistp
        props.clear()
        if nvlistp[0] != _ffi.NULL:
            _nvlist_to_dict(nvlistp[0], props)
    finally:
        if nvlistp[0] != _ffi.NULL:
            _lib.nvlist_free(nvlistp[0])
            nvlistp[0] = _ffi.NULL


def nvlist_to_dict(nvlist):
    """
    Convert a C nvlist_t that is owned by somebody else to a dictionary.

    :param CData nvlist: the nvlist_t pointer.
    :rtype: dict
    """
    return _nvlist_to_dict(nvlist, {})


def nvlist_dup(nvlist):
    """
    Copy an nvlist_t.  The copy is freed when the returned object is
    garbage collected.

    :param CData nvlist: the nvlist_t pointer to copy.
    :return: an FFI CData object representing the new nvlist_t pointer.
    :raises MemoryError: if the copy could not be allocated.
    """
    nvlistp = _ffi.new("nvlist_t **")
    if _lib.nvlist_dup(nvlist, nvlistp, 0) != 0:
        raise MemoryError("nvlist_dup() failed")
    return _ffi.gc(nvlistp[0], _lib.nvlist_free)


def dump_nvlist(nvlist, json=True):
    """
    Render an nvlist_t into a string.

    The nvlist is printed into an in-memory stream so that nothing
    touches the disk.  Callers should pass a private copy (see
    `nvlist_dup`) so that rendering can run without the context lock.

    :param CData nvlist: the nvlist_t pointer to render.
    :param bool json: render JSON rather than the native text format.
    :rtype: str
    :raises RuntimeError: if the stream could not be created or written.
    """
    bufp = _ffi.new("char **")
    sizep = _ffi.new("size_t *")
    target = libc.lib.open_memstream(bufp, sizep)
    if target == _ffi.NULL:
        raise RuntimeError(
            "Failed to dump nvlist: [Errno %d]" % _ffi.errno)

    try:
        try:
            if json:
                ret = _lib.nvlist_print_json(target, nvlist)
            else:
                _lib.nvlist_print(target, nvlist)
                ret = 0
        finally:
            # the buffer is only valid after the stream is closed
            libc.lib.fclose(target)
        if ret != 0:
            raise RuntimeError("Failed to dump nvlist: nvlist_print_json()")
        if bufp[0] == _ffi.NULL:
            return ""
        return _ffi.string(bufp[0], sizep[0]).decode(ENCODING)
    finally:
        if bufp[0] != _ffi.NULL:
            libc.lib.free(bufp[0])


def user_props_to_dict(nvlist):
    """
    Flatten the nvlist returned by ``zfs_get_user_props()``.

    Every entry is itself an nvlist with a ``value`` string and, for
    inherited properties, a ``source``.

    :param CData nvlist: the nvlist_t pointer.
    :return: ``{name: value}``
    :rtype: dict
    """
    out = {}
    for name, pair in _pairs(nvlist):
        if int(_lib.nvpair_type(pair)) != _lib.DATA_TYPE_NVLIST:
            raise RuntimeError(
                "%s: unexpected nvpair data type in user props" % name)

        nested = _ffi.new("nvlist_t **")
        if _lib.nvpair_value_nvlist(pair, nested) != 0:
            raise RuntimeError("%s: nvpair_value_nvlist() failed" % name)

        value = lookup_string(nested[0], ZPROP_VALUE)
        if value is None:
            raise RuntimeError("%s: user property has no value" % name)
        out[name] = value
    return out


def lookup_string(nvlist, key, default=None):
    """
    :return: the string value of ``key`` or ``default`` if it is absent.
    """
    valp = _ffi.new("const char **")
    if _lib.nvlist_lookup_string(nvlist, _key(key), valp) != 0:
        return default
    return _string(valp[0])


def lookup_uint64(nvlist, key, default=None):
    valp = _ffi.new("uint64_t *")
    if _lib.nvlist_lookup_uint64(nvlist, _key(key), valp) != 0:
        return default
    return int(valp[0])


def lookup_uint64_array(nvlist, key):
    """
    :return: a list of ints, ``None`` if ``key`` is absent.
    """
    valp = _ffi.new("uint64_t **")
    lenp = _ffi.new("uint_t *")
    if _lib.nvlist_lookup_uint64_array(nvlist, _key(key), valp, lenp) != 0:
        return None
    return [int(valp[0][i]) for i in range(lenp[0])]


def lookup_nvlist(nvlist, key):
    """
    :return: the nested nvlist_t, owned by ``nvlist``, or ``None``.
    """
    valp = _ffi.new("nvlist_t **")
    if _lib.nvlist_lookup_nvlist(nvlist, _key(key), valp) != 0:
        return None
    return valp[0]


def lookup_nvlist_array(nvlist, key):
    """
    :return: a list of nvlist_t pointers owned by ``nvlist``, empty if
        ``key`` is absent.
    """
    valp = _ffi.new("nvlist_t ***")
    lenp = _ffi.new("uint_t *")
    if _lib.nvlist_lookup_nvlist_array(nvlist, _key(key), valp, lenp) != 0:
        return []
    return [valp[0][i] for i in range(lenp[0])]


def lua_nvlist_in(args):
    """
    Convert channel program arguments to a C nvlist_t.

    Only types with an unambiguous LUA representation are accepted:

    - str is stored as STRING
    - bool is stored as BOOLEAN_VALUE
    - float is stored as DOUBLE
    - int is stored as INT64 when it fits, otherwise as UINT64
    - dict is stored as a nested nvlist

    :param dict args: the arguments.
    :return: an FFI CData object representing the nvlist_t pointer.
    :raises TypeError: for non-string keys or unsupported value types.
    :raises ValueError: for lists and integers that do not fit in 64 bits.
    """
    if not isinstance(args, dict):
        raise TypeError("Not a dictionary")

    nvlist = _nvlist_alloc()
    for k, v in args.items():
        if not isinstance(k, str):
            raise TypeError("Key must be unicode string")

        key = k.encode(ENCODING)
        if isinstance(v, str):
            ret = _lib.nvlist_add_string(nvlist, key, v.encode(ENCODING))
        elif isinstance(v, bool):
            ret = _lib.nvlist_add_boolean_value(nvlist, key, v)
        elif isinstance(v, float):
            ret = _lib.nvlist_add_double(nvlist, key, v)
        elif isinstance(v, int):
            if v < INT64_MIN:
                raise ValueError(
                    "%s: value for key lower than minimum allowed for "
                    "nvlist." % k)
            elif v <= INT64_MAX:
                ret = _lib.nvlist_add_int64(nvlist, key, v)
            elif v <= UINT64_MAX:
                ret = _lib.nvlist_add_uint64(nvlist, key, v)
            else:
                raise ValueError(
                    "%s: value for key exceeds maximum allowed for "
                    "nvlist." % k)
        elif isinstance(v, dict):
            ret = _lib.nvlist_add_nvlist(nvlist, key, lua_nvlist_in(v))
        elif isinstance(v, (list, tuple)):
            raise ValueError("Lists are not supported")
        else:
            raise TypeError("%s: unsupported type for key" % k)

        if ret != 0:
            raise MemoryError("nvlist_add failed for %s" % k)

    return nvlist


# host -> nvlist

def _is_integer(value):
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _uint64(name, value):
    if value < 0:
        raise ValueError(
            "%s: negative value %d, integers are stored as uint64; wrap "
            "signed values with int64_t()" % (name, value))
    if value > UINT64_MAX:
        raise ValueError("%s: value %d exceeds the uint64 maximum" % (
            name, value))
    return value


def _wrapped_suffix(name, value, array):
    if isinstance(value, _ffi.CData):
        suffixes = _type_to_suffix.get(_ffi.typeof(value))
        if suffixes is not None:
            return suffixes[array]
    raise TypeError("%s: unsupported value type %s" % (
        name, type(value).__name__))


def _kind(value):
    if _is_integer(value):
        return "int"
    if isinstance(value, _ffi.CData):
        return _ffi.typeof(value).cname
    return type(value).__name__


def _add_value(nvlist, name, value):
    key = _key(name)
    if value is None:
        return _lib.nvlist_add_boolean(nvlist, key)
    if isinstance(value, bool):
        return _lib.nvlist_add_boolean_value(nvlist, key, value)
    if isinstance(value, str):
        return _lib.nvlist_add_string(nvlist, key, value.encode(ENCODING))
    if _is_integer(value):
        return _lib.nvlist_add_uint64(nvlist, key, _uint64(name, value))
    if isinstance(value, float):
        return _lib.nvlist_add_double(nvlist, key, value)
    if isinstance(value, dict):
        return _lib.nvlist_add_nvlist(nvlist, key, nvlist_in(value))
    if isinstance(value, (list, tuple)):
        return _add_array(nvlist, name, key, list(value))
    add = getattr(_lib, "nvlist_add_" + _wrapped_suffix(name, value, False))
    return add(nvlist, key, value)


def _add_array(nvlist, name, key, array):
    if not array:
        raise ValueError("%s: empty arrays are not supported" % name)
    kinds = set(_kind(element) for element in array)
    if len(kinds) > 1:
        raise TypeError("%s: array has elements of different types: %s" % (
            name, ", ".join(sorted(kinds))))

    first = array[0]
    if isinstance(first, dict):
        # the nested nvlists must stay alive until they are copied
        items = [nvlist_in(d) for d in array]
        return _lib.nvlist_add_nvlist_array(nvlist, key, items, len(items))
    if isinstance(first, str):
        items = [_ffi.new("char[]", s.encode(ENCODING)) for s in array]
        return _lib.nvlist_add_string_array(nvlist, key, items, len(items))
    if isinstance(first, bool):
        return _lib.nvlist_add_boolean_array(nvlist, key, array, len(array))
    if _is_integer(first):
        items = [_uint64(name, element) for element in array]
        return _lib.nvlist_add_uint64_array(nvlist, key, items, len(items))
    add = getattr(_lib,
                  "nvlist_add_%s_array" % _wrapped_suffix(name, first, True))
    return add(nvlist, key, array, len(array))


# nvlist -> host

_Decoder = namedtuple("_Decoder", ["getter", "ctype", "is_array", "convert"])

# nvpair_value_<suffix>() for single values and arrays, element C type,
# conversion of one element
_DECODERS = (
    ("boolean_value", "boolean_array", "boolean_t", bool),
    ("byte", "byte_array", "uchar_t", int),
    ("int8", "int8_array", "int8_t", int),
    ("uint8", "uint8_array", "uint8_t", int),
    ("int16", "int16_array", "int16_t", int),
    ("uint16", "uint16_array", "uint16_t", int),
    ("int32", "int32_array", "int32_t", int),
    ("uint32", "uint32_array", "uint32_t", int),
    ("int64", "int64_array", "int64_t", int),
    ("uint64", "uint64_array", "uint64_t", int),
    ("double", None, "double", float),
    ("hrtime", None, "int64_t", int),
    ("string", "string_array", "char *", _string),
    ("nvlist", "nvlist_array", "nvlist_t *", nvlist_to_dict),
)
_decoders = {}


def _decoder(typeid):
    if not _decoders:
        for scalar, array, ctype, convert in _DECODERS:
            typeid_of = getattr(_lib, "DATA_TYPE_" + scalar.upper())
            _decoders[int(typeid_of)] = _Decoder(
                scalar, ctype + " *", False, convert)
            if array is not None:
                typeid_of = getattr(_lib, "DATA_TYPE_" + array.upper())
                _decoders[int(typeid_of)] = _Decoder(
                    array, ctype + " **", True, convert)
    try:
        return _decoders[typeid]
    except KeyError:
        raise RuntimeError("Unsupported nvpair data type %d" % typeid)


def _pair_value(pair):
    typeid = int(_lib.nvpair_type(pair))
    if typeid == _lib.DATA_TYPE_BOOLEAN:
        return None
    decoder = _decoder(typeid)
    getter = getattr(_lib, "nvpair_value_" + decoder.getter)
    valp = _ffi.new(decoder.ctype)
    if decoder.is_array:
        lenp = _ffi.new("uint_t *")
        ret = getter(pair, valp, lenp)
    else:
        ret = getter(pair, valp)
    if ret != 0:
        raise RuntimeError("nvpair_value_%s() failed" % decoder.getter)
    if decoder.is_array:
        return [decoder.convert(valp[0][i]) for i in range(lenp[0])]
    return decoder.convert(valp[0])


def _nvlist_to_dict(nvlist, props):
    for name, pair in _pairs(nvlist):
        props[name] = _pair_value(pair)
    return props


# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
