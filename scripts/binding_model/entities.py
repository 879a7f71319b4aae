"""
Entity module

Modelled native declarations (structs, typedefs, enums, functions, globals,
Objective-C interfaces) and the composite wrappers the type resolver builds
on demand (pointers, arrays, blocks, protocol unions).
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import re

from loguru import logger

from .attributes import (
    Attribute,
    AvailableAttribute,
    UnavailableAttribute,
    UnsupportedAttribute,
    parse_attribute,
)
from .errors import UnknownCursorError
from .ir import Cursor, CType
from . import naming

if TYPE_CHECKING:
    from .model import Model


ATTRIBUTE_KINDS = ('unexposed_attr', 'annotate_attr', 'packed_attr')


def framework_of(path: Optional[str]) -> Optional[str]:
    """/S/L/F/Foundation.framework/Headers/NSString.h -> Foundation"""
    if not path:
        return None
    for part in reversed(re.split(r'[\\/]', path)):
        m = re.fullmatch(r'(.+)\.framework', part)
        if m:
            return m.group(1)
    return None


def strip_qualifiers(spelling: str) -> str:
    """Drop const qualifiers and a leading struct/union/enum tag"""
    name = re.sub(r'\bconst\b', '', spelling)
    name = re.sub(r'\s+', ' ', name).strip()
    name = re.sub(r'\*\s+(?=\*)', '*', name)
    return re.sub(r'^(struct|union|enum)\s+', '', name)


def declared_name(spelling: Optional[str]) -> str:
    """Tag of a record or enum declaration, '' when anonymous"""
    name = strip_qualifiers(spelling or '')
    if name.startswith('(') or 'unnamed ' in name or 'anonymous ' in name:
        return ''
    return name


class Entity:
    """Base of every value a native type expression can resolve to"""

    def __init__(self, model: Optional['Model'], cursor: Optional[Cursor] = None):
        self.model = model
        self.location = cursor.location if cursor is not None else None
        self.id = self.location.id if self.location is not None and self.location.file else None
        self.name = cursor.spelling if cursor is not None else ''
        self.framework = framework_of(self.location.file) if self.location is not None else None
        self.attributes: list[Attribute] = []

    def __repr__(self):
        return f'{type(self).__name__}({self.name!r})'

    @property
    def types(self) -> list[CType]:
        """Native type expressions this entity refers to"""
        return []

    @property
    def target_name(self) -> str:
        if self.model is not None and self.name:
            conf = self.model.conf.class_conf(self.name)
            if conf and conf.get('name'):
                return conf['name']
        return self.name

    def pointer(self) -> 'Pointer':
        return Pointer(self)

    def _availability(self) -> Optional[AvailableAttribute]:
        return next((a for a in self.attributes if isinstance(a, AvailableAttribute)), None)

    def is_available(self, mac_version: Optional[str], ios_version: Optional[str]) -> bool:
        if any(isinstance(a, UnavailableAttribute) for a in self.attributes):
            return False
        attrib = self._availability()
        return attrib.is_available(mac_version, ios_version) if attrib else True

    def is_outdated(self) -> bool:
        attrib = self._availability()
        return attrib.is_outdated() if attrib else False

    @property
    def since(self) -> Optional[str]:
        attrib = self._availability()
        return attrib.ios_version if attrib else None

    @property
    def deprecated(self) -> Optional[str]:
        attrib = self._availability()
        return attrib.ios_dep_version if attrib else None

    def _add_attribute(self, cursor: Cursor, what: str):
        source = cursor.read_source()
        if source == '?':
            return
        attribute = parse_attribute(source)
        if isinstance(attribute, UnsupportedAttribute) and self.model.is_included(self):
            logger.warning(f"{what} {self.name} at {self.location} has unsupported attribute '{source}'")
        self.attributes.append(attribute)

    def _unknown_child(self, cursor: Cursor, what: str):
        raise UnknownCursorError(
            f'Unknown cursor kind {cursor.kind} in {what} {self.name} at {self.location}')


class Builtin(Entity):
    """Primitive target type"""

    def __init__(self, name: str, type_kinds: tuple[str, ...] = (), target: Optional[str] = None):
        super().__init__(None)
        self.name = name
        self.type_kinds = type_kinds
        self._target = target or name

    @property
    def target_name(self) -> str:
        return self._target


# Pointee builtins with a dedicated pointer class on the target side
PRIMITIVE_POINTERS = {'byte', 'short', 'char', 'int', 'long', 'float', 'double', 'void'}
MACHINE_POINTERS = {
    'MachineUInt': 'MachineSizedUIntPtr',
    'MachineSInt': 'MachineSizedSIntPtr',
    'MachineFloat': 'MachineSizedFloatPtr',
    'Pointer': 'VoidPtr.VoidPtrPtr',
}
PRIMITIVE_BUFFERS = {'byte', 'short', 'char', 'int', 'long', 'float', 'double'}


class Pointer(Entity):
    def __init__(self, pointee: Entity):
        super().__init__(pointee.model)
        self.pointee = pointee
        self.name = f'{pointee.name} *'

    @property
    def types(self) -> list[CType]:
        return self.pointee.types

    @property
    def target_name(self) -> str:
        p = self.pointee
        if isinstance(p, Builtin):
            if p.name in PRIMITIVE_POINTERS:
                return f'{naming.capitalize_first(p.name)}Ptr'
            if p.name in MACHINE_POINTERS:
                return MACHINE_POINTERS[p.name]
        if isinstance(p, (Struct, ObjCClass, ObjCProtocol)) or (isinstance(p, Typedef) and p.struct):
            return p.target_name
        name = p.target_name
        return f'{name}.{name}Ptr'


class ArrayType(Entity):
    def __init__(self, base_type: Entity, dimensions: list[int]):
        super().__init__(base_type.model)
        self.base_type = base_type
        self.dimensions = dimensions
        self.name = base_type.name + ''.join(f'[{d}]' for d in dimensions)

    @property
    def types(self) -> list[CType]:
        return self.base_type.types

    @property
    def target_name(self) -> str:
        b = self.base_type
        if isinstance(b, Builtin) and b.name in PRIMITIVE_BUFFERS:
            return f'{naming.capitalize_first(b.name)}Buffer'
        return b.target_name


class BlockType(Entity):
    def __init__(self, return_type: Entity, param_types: list[Entity]):
        super().__init__(return_type.model)
        self.return_type = return_type
        self.param_types = param_types
        self.name = f'{return_type.name} (^)({", ".join(t.name for t in param_types)})'

    @property
    def target_name(self) -> str:
        if self.return_type.name == 'void' and not self.param_types:
            return '@Block Runnable'
        if self.return_type.name == 'void' and [t.name for t in self.param_types] == ['boolean']:
            return '@Block VoidBooleanBlock'
        return 'ObjCBlock'


class ProtocolUnion(Entity):
    """Object pointer qualified by more than one protocol"""

    def __init__(self, protocols: list[Entity]):
        super().__init__(protocols[0].model)
        self.protocols = protocols
        self.name = f'id<{", ".join(p.name for p in protocols)}>'

    @property
    def target_name(self) -> str:
        return ' & '.join(p.target_name for p in self.protocols)


@dataclass
class StructMember:
    name: str
    type: CType


class Struct(Entity):
    def __init__(self, model: 'Model', cursor: Cursor, parent: Optional['Struct'] = None, union: bool = False):
        super().__init__(model, cursor)
        self.name = declared_name(self.name)
        self.type = cursor.type
        self.parent = parent
        self.union = union
        self.members: list[StructMember] = []
        self.children: list['Struct'] = []
        for child in cursor.children:
            if child.kind == 'field_decl':
                self.members.append(StructMember(child.spelling, child.type))
            elif child.kind in ('struct', 'union'):
                s = model.struct_for(child, self, child.kind == 'union')
                model.add_struct(s)
                self.children.append(s)
            elif child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'Struct')
            elif child.kind == 'unexposed_expr':
                pass
            else:
                self._unknown_child(child, 'struct')

    @property
    def types(self) -> list[CType]:
        return [m.type for m in self.members]

    def is_opaque(self) -> bool:
        return not self.members and not self.children


@dataclass
class CallbackParameter:
    name: str
    type: CType


class Typedef(Entity):
    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.typedef_type = cursor.typedef_type
        self.parameters: list[CallbackParameter] = []
        self.struct: Optional[Struct] = None
        self.enum: Optional['Enum'] = None
        for child in cursor.children:
            if child.kind == 'parm_decl':
                self.parameters.append(CallbackParameter(child.spelling, child.type))
            elif child.kind in ('struct', 'union'):
                self.struct = model.struct_for(child, None, child.kind == 'union')
            elif child.kind == 'enum_decl':
                self.enum = model.enum_for(child)
            elif child.kind == 'type_ref':
                if (child.type is not None and child.type.kind == 'record'
                        and (self.typedef_type is None or self.typedef_type.kind != 'pointer')):
                    union = bool(re.search(r'\bunion\b', child.spelling))
                    self.struct = model.struct_for(child, None, union)
            elif child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'Typedef')

    @property
    def types(self) -> list[CType]:
        return [self.typedef_type] if self.typedef_type is not None else []

    def is_callback(self) -> bool:
        return bool(self.parameters)

    def is_struct(self) -> bool:
        return self.struct is not None

    def is_enum(self) -> bool:
        return self.enum is not None


class Enum(Entity):
    def __init__(self, model: 'Model', cursor: Cursor):
        self.tag = ''
        self._name: Optional[str] = None
        self._prefix: Optional[str] = None
        super().__init__(model, cursor)
        self.type = cursor.type
        self.enum_ctype = cursor.enum_type
        self.values: list[EnumValue] = []
        for child in cursor.children:
            if child.kind == 'enum_constant_decl':
                self.values.append(EnumValue(model, child, self))
            elif child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'Enum')
            else:
                self._unknown_child(child, 'enum')

    @property
    def name(self) -> str:
        """Effective name, re-derived from configuration and surrounding typedefs"""
        if self._name is not None:
            return self._name
        name = None
        if self.values:
            name = self.model.conf.enum_name_for_first_value(self.values[0].name)
        if not name and self.id is not None and self.id in self.model.enum_macro_locations:
            td = self.model.typedef_at(self.id)
            name = td.name if td is not None else None
        if not name and not self.tag:
            td = self.model.typedef_wrapping(self)
            name = td.name if td is not None else None
        name = name or self.tag
        if self.model.sealed:
            self._name = name
        return name

    @name.setter
    def name(self, value: str):
        self.tag = declared_name(value)

    @property
    def target_name(self) -> str:
        return self.enum_conf.get('name') or self.name

    @property
    def enum_conf(self) -> dict:
        conf = self.model.conf.enum_conf(self.name)
        if conf is None and self.values:
            conf = self.model.conf.enum_conf_for_first_value(self.values[0].name)
        return conf or {}

    def is_configured(self) -> bool:
        conf = self.model.conf
        return (conf.enum_conf(self.name) is not None
                or (bool(self.values) and conf.enum_conf_for_first_value(self.values[0].name) is not None))

    @property
    def prefix(self) -> str:
        if self._prefix is not None:
            return self._prefix
        prefix = self.enum_conf.get('prefix')
        if prefix is None:
            own = [v.name for v in self.values if v.enum is self]
            if len(own) > 1:
                prefix = naming.common_prefix(own)
            else:
                logger.warning(f"Failed to determine prefix for enum {self.name} with only one value "
                               f"at {self.location}")
                prefix = ''
        if self.model.sealed:
            self._prefix = prefix
        return prefix

    @property
    def suffix(self) -> str:
        return self.enum_conf.get('suffix') or ''

    @property
    def enum_type(self) -> Entity:
        """Backing integer type"""
        configured = self.enum_conf.get('type')
        if configured:
            return self.model.resolve_by_name(configured)
        if self.enum_ctype is not None and self.enum_ctype.kind == 'enum' and self.values:
            return self.model.resolve(self.values[0].type.canonical)
        if self.enum_ctype is None:
            return self.model.resolve_by_name('int')
        return self.model.resolve(self.enum_ctype)

    @property
    def merge_with(self) -> Optional[str]:
        return self.enum_conf.get('merge_with')

    def is_options(self) -> bool:
        return self.id is not None and self.id in self.model.options_macro_locations

    def is_bits(self) -> bool:
        return self.is_options() or bool(self.enum_conf.get('bits'))


class EnumValue(Entity):
    def __init__(self, model: 'Model', cursor: Cursor, enum: Enum):
        super().__init__(model, cursor)
        self.value = cursor.enum_value
        self.type = cursor.type
        self.enum = enum
        for child in cursor.children:
            if child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'Enum value')

    @property
    def target_name(self) -> str:
        owner = self.enum
        rename = owner.enum_conf.get(self.name)
        if isinstance(rename, dict):
            rename = rename.get('name')
        return naming.enum_value_name(self.name, owner.prefix, owner.suffix, rename)


@dataclass
class FunctionParameter:
    name: str
    type: CType


class Function(Entity):
    kind_label = 'Function'
    IGNORED_CHILDREN = ('type_ref', 'obj_c_class_ref', 'obj_c_protocol_ref', 'unexposed_expr',
                        'ibaction_attr', 'asm_label_attr')

    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.type = cursor.type
        self.return_type = cursor.result_type
        self.variadic = cursor.variadic
        self.inline = False
        self.parameters: list[FunctionParameter] = []
        for child in cursor.children:
            if child.kind == 'parm_decl':
                name = child.spelling or f'p{len(self.parameters)}'
                self.parameters.append(FunctionParameter(name, child.type))
            elif child.kind == 'compound_stmt':
                self.inline = True
            elif child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, self.kind_label)
            elif child.kind in self.IGNORED_CHILDREN:
                pass
            else:
                self._unknown_child(child, self.kind_label.lower())

    @property
    def types(self) -> list[CType]:
        types = [self.return_type] if self.return_type is not None else []
        return types + [p.type for p in self.parameters]

    @property
    def definition(self) -> str:
        """Declaration as written, with the name spliced in"""
        spelling = self.type.spelling if self.type is not None else '()'
        return spelling.replace('(', f'{self.name}(', 1)

    def is_variadic(self) -> bool:
        return self.variadic

    def is_inline(self) -> bool:
        return self.inline

    def takes_va_list(self) -> bool:
        return bool(self.parameters) and 'va_list' in self.parameters[-1].type.spelling


class ObjCMethod(Function):
    kind_label = 'ObjC method'
    selector_prefix = '-'

    def __init__(self, model: 'Model', cursor: Cursor, owner: 'ObjCMemberHost'):
        super().__init__(model, cursor)
        self.owner = owner

    @property
    def full_name(self) -> str:
        """-initWithFrame: / +alloc"""
        return f'{self.selector_prefix}{self.name}'

    def is_init(self) -> bool:
        return isinstance(self, ObjCInstanceMethod) and re.match(r'^init([A-Z]|$)', self.name) is not None


class ObjCInstanceMethod(ObjCMethod):
    pass


class ObjCClassMethod(ObjCMethod):
    selector_prefix = '+'


def parse_property_attrs(source: str) -> dict:
    """'nonatomic, getter=isHidden' -> {'nonatomic': True, 'getter': 'isHidden'}"""
    attrs = {}
    for item in re.split(r'\s*,\s*', source.strip()):
        if not item:
            continue
        key, _, value = (s.strip() for s in item.partition('='))
        attrs[key] = value if value else True
    return attrs


class ObjCProperty(Entity):
    IGNORED_CHILDREN = ('type_ref', 'parm_decl', 'obj_c_class_ref', 'obj_c_protocol_ref',
                        'obj_c_instance_method_decl', 'iboutlet_attr', 'unexposed_expr')

    def __init__(self, model: 'Model', cursor: Cursor, owner: 'ObjCMemberHost'):
        super().__init__(model, cursor)
        self.type = cursor.type
        self.owner = owner
        self.getter: Optional[ObjCMethod] = None
        self.setter: Optional[ObjCMethod] = None
        m = re.search(r'@property\s*\(([^)]+)\)', cursor.read_source())
        self.attrs = parse_property_attrs(m.group(1)) if m else {}
        for child in cursor.children:
            if child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'ObjC property')
            elif child.kind in self.IGNORED_CHILDREN:
                pass
            else:
                self._unknown_child(child, 'ObjC property')

    @property
    def types(self) -> list[CType]:
        return [self.type]

    @property
    def getter_name(self) -> str:
        return self.attrs.get('getter') or self.name

    @property
    def setter_name(self) -> str:
        return self.attrs.get('setter') or f'set{naming.capitalize_first(self.name)}:'

    def is_readonly(self) -> bool:
        return self.setter is None and bool(self.attrs.get('readonly'))


class ObjCMemberHost(Entity):
    """Common part of classes, protocols and categories"""

    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.instance_methods: list[ObjCInstanceMethod] = []
        self.class_methods: list[ObjCClassMethod] = []
        self.properties: list[ObjCProperty] = []
        self.protocols: list[str] = []

    def _visit_member(self, cursor: Cursor) -> bool:
        if cursor.kind == 'obj_c_instance_method_decl':
            self.instance_methods.append(ObjCInstanceMethod(self.model, cursor, self))
        elif cursor.kind == 'obj_c_class_method_decl':
            self.class_methods.append(ObjCClassMethod(self.model, cursor, self))
        elif cursor.kind == 'obj_c_property_decl':
            self.properties.append(ObjCProperty(self.model, cursor, self))
        elif cursor.kind == 'obj_c_protocol_ref':
            self.protocols.append(cursor.spelling)
        elif cursor.kind in ATTRIBUTE_KINDS:
            self._add_attribute(cursor, self.kind_label)
        else:
            return False
        return True

    @property
    def kind_label(self) -> str:
        return type(self).__name__

    @property
    def methods(self) -> list[ObjCMethod]:
        return [*self.instance_methods, *self.class_methods]

    @property
    def types(self) -> list[CType]:
        types = []
        for m in self.methods:
            types.extend(m.types)
        for p in self.properties:
            types.extend(p.types)
        return types

    def resolve_property_accessors(self):
        """Move property getters/setters from the method list onto their properties"""
        remaining = []
        for m in self.instance_methods:
            p = next((p for p in self.properties
                      if p.id == m.id or p.getter_name == m.name or p.setter_name == m.name), None)
            if p is None:
                remaining.append(m)
            elif m.name.endswith(':'):
                p.setter = m
            else:
                p.getter = m
        self.instance_methods = remaining


class ObjCClass(ObjCMemberHost):
    IGNORED_CHILDREN = ('unexposed_expr', 'obj_c_ivar_decl', 'obj_c_instance_var_decl', 'type_ref')

    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.superclass: Optional[str] = None
        self.opaque = False
        for child in cursor.children:
            if self._visit_member(child):
                continue
            if child.kind == 'obj_c_class_ref':
                self.opaque = self.name == child.spelling
            elif child.kind == 'obj_c_super_class_ref':
                self.superclass = child.spelling
            elif child.kind in self.IGNORED_CHILDREN:
                pass
            else:
                self._unknown_child(child, 'ObjC class')
        self.resolve_property_accessors()

    def is_opaque(self) -> bool:
        return self.opaque


class ObjCProtocol(ObjCMemberHost):
    IGNORED_CHILDREN = ('unexposed_expr', 'type_ref')

    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.owner: Optional[str] = None
        self.opaque = False
        for child in cursor.children:
            if child.kind == 'obj_c_protocol_ref' and child.spelling == self.name:
                # Forward declaration: @protocol Foo;
                self.opaque = True
            elif self._visit_member(child):
                continue
            elif child.kind == 'obj_c_class_ref':
                # Informal protocol declared as a category on owner
                self.owner = child.spelling
            elif child.kind in self.IGNORED_CHILDREN:
                pass
            else:
                self._unknown_child(child, 'ObjC protocol')
        self.resolve_property_accessors()

    @property
    def target_name(self) -> str:
        conf = self.model.conf.protocol_conf(self.name)
        return (conf or {}).get('name') or self.name

    def is_informal(self) -> bool:
        return self.owner is not None

    def is_opaque(self) -> bool:
        return self.opaque


class ObjCCategory(ObjCMemberHost):
    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.owner: Optional[str] = None
        for child in cursor.children:
            if self._visit_member(child):
                continue
            if child.kind == 'obj_c_class_ref':
                self.owner = child.spelling
            elif child.kind in ('unexposed_expr', 'type_ref'):
                pass
            else:
                self._unknown_child(child, 'ObjC category')
        self.resolve_property_accessors()

    @property
    def target_name(self) -> str:
        return f'{self.owner}Extensions'


class GlobalValue(Entity):
    IGNORED_CHILDREN = ('type_ref', 'integer_literal', 'asm_label_attr', 'obj_c_class_ref',
                        'obj_c_protocol_ref', 'unexposed_expr')

    def __init__(self, model: 'Model', cursor: Cursor):
        super().__init__(model, cursor)
        self.type = cursor.type
        for child in cursor.children:
            if child.kind in ATTRIBUTE_KINDS:
                self._add_attribute(child, 'Global value')
            elif child.kind in self.IGNORED_CHILDREN:
                pass
            else:
                self._unknown_child(child, 'global value')

    @property
    def types(self) -> list[CType]:
        return [self.type]

    @property
    def vconf(self) -> dict:
        return self.model.conf.value_conf(self.name) or {}

    @property
    def enum(self) -> Optional[str]:
        return self.vconf.get('enum')

    @property
    def dictionary(self) -> Optional[str]:
        return self.vconf.get('dictionary')

    def is_const(self) -> bool:
        return re.search(r'\bconst\b', self.type.spelling) is not None


class ConstantValue(Entity):
    """Numeric literal defined by a macro"""

    def __init__(self, model: 'Model', cursor: Cursor, value: str, type: Optional[str] = None):
        super().__init__(model, cursor)
        self.value = value
        self.type = type or self.infer_type(value)

    @staticmethod
    def infer_type(value: str) -> str:
        if re.search(r'[lL]$', value):
            return 'long'
        if re.fullmatch(r'[-~]?(0[xX][0-9a-fA-F]+|[0-9]+)', value):
            return 'int'
        if re.search(r'[fF]$', value):
            return 'float'
        return 'double'


class GlobalValueEnumeration(Entity):
    """Global values grouped into one target enumeration by their value config"""

    def __init__(self, model: 'Model', name: str, first: GlobalValue):
        super().__init__(model)
        self.name = name
        self.type = first.type
        self.location = first.location
        self.framework = first.framework
        vconf = first.vconf
        self.target_type = vconf.get('type') or model.to_target_type(model.resolve(first.type))
        self.values = [first]

    @property
    def target_name(self) -> str:
        return self.name


class GlobalValueDictionary(Entity):
    """Global values used as the keys of one target dictionary wrapper"""

    def __init__(self, model: 'Model', name: str, first: GlobalValue):
        super().__init__(model)
        self.name = name
        self.type = first.type
        self.location = first.location
        self.framework = first.framework
        vconf = first.vconf
        self.key_type = vconf.get('type') or model.to_target_type(model.resolve(first.type))
        self.mutable = vconf.get('mutable', True)
        self.values = [first]
        self.extends = vconf.get('extends') or (
            'NSDictionaryWrapper' if self.is_foundation() else 'CFDictionaryWrapper')

    @property
    def target_name(self) -> str:
        return self.name

    def is_foundation(self) -> bool:
        return self.key_type not in ('CFString', 'CFNumber')
