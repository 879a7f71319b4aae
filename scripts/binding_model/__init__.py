"""
binding_model - semantic model for C/Objective-C binding generation

Builds a normalized, cross-referenced model of the declarations in a clang
AST JSON dump and resolves every native type to the target type vocabulary
of the Java-side bridge (IntPtr, @ByVal, @MachineSizedSInt long, ...).
"""

from .ir import Cursor, CType, SourceLocation, SourceRange, load_ast
from .errors import (
    ModelError, ConfigError, UnknownCursorError, UnresolvedTypeError,
    MergeTargetError, AmbiguousReferenceError,
)
from .attributes import (
    Attribute, AvailableAttribute, IgnoredAttribute, UnavailableAttribute, UnsupportedAttribute,
    parse_attribute,
)
from .entities import (
    Entity, Builtin, Pointer, ArrayType, BlockType, ProtocolUnion,
    Struct, StructMember, Typedef, Enum, EnumValue, Function, FunctionParameter,
    ObjCClass, ObjCProtocol, ObjCCategory, ObjCMethod, ObjCInstanceMethod, ObjCClassMethod, ObjCProperty,
    GlobalValue, ConstantValue, GlobalValueEnumeration, GlobalValueDictionary,
)
from .builtins import lookup_by_kind, lookup_by_name
from .conf import Config, load_unit
from .resolver import TypeResolver
from .model import Model
from .xref import ReferenceGraph, build_references
from .export import export_unit
from .generator import Generator, build_model

__all__ = [
    'Cursor', 'CType', 'SourceLocation', 'SourceRange', 'load_ast',
    'ModelError', 'ConfigError', 'UnknownCursorError', 'UnresolvedTypeError',
    'MergeTargetError', 'AmbiguousReferenceError',
    'Attribute', 'AvailableAttribute', 'IgnoredAttribute', 'UnavailableAttribute', 'UnsupportedAttribute',
    'parse_attribute',
    'Entity', 'Builtin', 'Pointer', 'ArrayType', 'BlockType', 'ProtocolUnion',
    'Struct', 'StructMember', 'Typedef', 'Enum', 'EnumValue', 'Function', 'FunctionParameter',
    'ObjCClass', 'ObjCProtocol', 'ObjCCategory', 'ObjCMethod', 'ObjCInstanceMethod', 'ObjCClassMethod',
    'ObjCProperty', 'GlobalValue', 'ConstantValue', 'GlobalValueEnumeration', 'GlobalValueDictionary',
    'lookup_by_kind', 'lookup_by_name',
    'Config', 'load_unit',
    'TypeResolver',
    'Model',
    'ReferenceGraph', 'build_references',
    'export_unit',
    'Generator', 'build_model',
]
