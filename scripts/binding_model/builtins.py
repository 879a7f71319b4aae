"""
Builtin type registry

Closed table of the primitive target types, keyed by libclang type kind and
by name. Built once at import time and never mutated.
"""

from types import MappingProxyType
from typing import Optional

from .entities import Builtin


BUILTINS = (
    Builtin('boolean', ('bool',)),
    Builtin('byte', ('uchar', 'schar', 'char_s', 'char_u')),
    Builtin('short', ('ushort', 'short')),
    Builtin('char', ('wchar', 'char16')),
    Builtin('int', ('uint', 'int', 'char32')),
    Builtin('long', ('ulonglong', 'longlong')),
    Builtin('float', ('float',)),
    Builtin('double', ('double',)),
    Builtin('MachineUInt', ('ulong',), '@MachineSizedUInt long'),
    Builtin('MachineSInt', ('long',), '@MachineSizedSInt long'),
    Builtin('MachineFloat', (), '@MachineSizedFloat double'),
    Builtin('void', ('void',)),
    Builtin('Pointer', (), '@Pointer long'),
    Builtin('String', ()),
    Builtin('__builtin_va_list', (), 'VaList'),
    Builtin('ObjCBlock', ('block_pointer',)),
    Builtin('FunctionPtr', ()),
    Builtin('Selector', ('obj_c_sel',)),
    Builtin('ObjCObject', ('obj_c_id',)),
    Builtin('ObjCClass', ('obj_c_class',)),
    Builtin('ObjCProtocol', ()),
    Builtin('BytePtr', ()),
)

_BY_NAME = MappingProxyType({b.name: b for b in BUILTINS})
_BY_KIND = MappingProxyType({kind: b for b in BUILTINS for kind in b.type_kinds})


def lookup_by_name(name: str) -> Optional[Builtin]:
    return _BY_NAME.get(name)


def lookup_by_kind(kind: str) -> Optional[Builtin]:
    return _BY_KIND.get(kind)
