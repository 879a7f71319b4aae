"""Builders for small declaration trees used across the tests."""

import itertools
from typing import Optional

from binding_model import Config, Cursor, CType, Model, SourceLocation

FOUNDATION_H = '/System/Library/Frameworks/Foundation.framework/Headers/Test.h'
GRAPHICS_H = '/System/Library/Frameworks/CoreGraphics.framework/Headers/CGBase.h'

_offsets = itertools.count(1)


def loc(file: str = FOUNDATION_H) -> SourceLocation:
    offset = next(_offsets)
    return SourceLocation(file=file, offset=offset * 10, line=offset, column=1)


def ctype(kind: str, spelling: str = '', **kwargs) -> CType:
    return CType(kind=kind, spelling=spelling or kind, **kwargs)


VOID = ctype('void')
INT = ctype('int')
UINT = ctype('uint', 'unsigned int')
DOUBLE = ctype('double')
FLOAT = ctype('float')
BOOL = ctype('bool', 'BOOL')


def ptr(pointee: CType, spelling: Optional[str] = None) -> CType:
    return CType(kind='pointer', spelling=spelling or f'{pointee.spelling} *', pointee=pointee)


def record(name: str) -> CType:
    return CType(kind='record', spelling=f'struct {name}')


def cursor(kind: str, spelling: str = '', *children: Cursor, file: str = FOUNDATION_H,
           location: Optional[SourceLocation] = None, **kwargs) -> Cursor:
    return Cursor(kind=kind, spelling=spelling, location=location or loc(file),
                  children=list(children), **kwargs)


def attr(source: str) -> Cursor:
    return cursor('unexposed_attr', source=source)


def field(name: str, t: CType) -> Cursor:
    return cursor('field_decl', name, type=t)


def struct(name: str, *fields: Cursor, file: str = FOUNDATION_H) -> Cursor:
    return cursor('struct', name, *fields, file=file, type=record(name))


def param(name: str, t: CType) -> Cursor:
    return cursor('parm_decl', name, type=t)


def function(name: str, result: CType, *children: Cursor, file: str = FOUNDATION_H, **kwargs) -> Cursor:
    params = ', '.join(c.type.spelling for c in children if c.kind == 'parm_decl')
    signature = ctype('function_proto', f'{result.spelling} ({params})')
    return cursor('function', name, *children, file=file, type=signature, result_type=result, **kwargs)


def enum(name: str, *values: tuple, file: str = FOUNDATION_H, location: Optional[SourceLocation] = None,
         enum_type: CType = UINT) -> Cursor:
    constants = [cursor('enum_constant_decl', n, file=file, enum_value=v, type=enum_type) for n, v in values]
    return cursor('enum_decl', name, *constants, file=file, location=location,
                  type=ctype('enum', name or 'enum (unnamed)'), enum_type=enum_type)


def typedef(name: str, aliased: CType, *children: Cursor, file: str = FOUNDATION_H,
            location: Optional[SourceLocation] = None) -> Cursor:
    return cursor('typedef_decl', name, *children, file=file, location=location, typedef_type=aliased)


def method(name: str, result: CType = VOID, *params: Cursor, class_method: bool = False) -> Cursor:
    kind = 'obj_c_class_method_decl' if class_method else 'obj_c_instance_method_decl'
    return cursor(kind, name, *params, result_type=result, type=ctype('function_proto', f'{result.spelling} ()'))


def tu(*children: Cursor) -> Cursor:
    return Cursor(kind='translation_unit', spelling='test.m', children=list(children))


def build(*children: Cursor, conf: Optional[dict] = None) -> Model:
    """Process a translation unit made of children, Foundation being the unit"""
    data = {'framework': 'Foundation'}
    data.update(conf or {})
    return Model(Config(data)).process(tu(*children))
