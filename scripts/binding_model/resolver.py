"""
Type resolver

Maps native type expressions onto model entities. Results are memoized per
spelling so that every spelling of a type resolves to one object for the
lifetime of the owning model.
"""

from typing import Optional, TYPE_CHECKING
import re

from loguru import logger

from .builtins import lookup_by_kind, lookup_by_name
from .entities import (
    ArrayType,
    BlockType,
    Builtin,
    Entity,
    Enum,
    ObjCMemberHost,
    ObjCMethod,
    Pointer,
    ProtocolUnion,
    Struct,
    Typedef,
    declared_name,
    strip_qualifiers,
)
from .errors import UnresolvedTypeError
from .ir import CType

if TYPE_CHECKING:
    from .model import Model


VOID_BLOCK_RE = re.compile(r'void *\(\^\)\((void)?\)')
BOOL_BLOCK_RE = re.compile(r'void *\(\^\)\(BOOL\)')
# 'union (unnamed at Test.h:3:5)', 'struct (anonymous struct at /path/Foo.h:7:1)'
ANONYMOUS_RECORD_RE = re.compile(r'\((?:unnamed|anonymous)(?: struct| union)? at (.+)\)$')


class TypeResolver:
    """Memoizing resolver owned by one model"""

    def __init__(self, model: 'Model'):
        self.model = model
        self.cache: dict[str, Entity] = {}

    def resolve(self, ctype: Optional[CType], allow_arrays: bool = False,
                owner: Optional[ObjCMemberHost] = None, method: Optional[ObjCMethod] = None) -> Entity:
        """Resolve a native type to an entity or raise UnresolvedTypeError"""
        if ctype is None:
            return lookup_by_kind('void')
        contextual = ctype.spelling == 'instancetype' or (allow_arrays and ctype.kind == 'constant_array')
        if not contextual and ctype.spelling in self.cache:
            return self.cache[ctype.spelling]

        t = self._resolve(ctype, allow_arrays, owner, method)
        if t is None:
            declaration = ctype.declaration.location if ctype.declaration is not None else None
            raise UnresolvedTypeError(
                f"Failed to resolve type '{ctype.spelling}' with kind {ctype.kind} defined at {declaration}")
        if isinstance(t, Typedef) and t.is_callback():
            t = lookup_by_name('FunctionPtr')
        if not contextual:
            self.cache[ctype.spelling] = t
        return t

    def resolve_by_name(self, name: str) -> Optional[Entity]:
        """Look a target name up across all entity kinds"""
        model = self.model
        name = re.sub(r'^(@ByVal|@Array\S*)\s+', '', name)
        renamed = model.conf.typedefs.get(name, name)
        e = (model.find_enum(renamed)
             or model.find_struct(renamed)
             or model.find_class(renamed)
             or model.find_protocol(renamed)
             or model.find_typedef(renamed)
             or lookup_by_name(renamed)
             or model.global_value_enums.get(renamed)
             or model.global_value_dictionaries.get(renamed))
        if e is None and renamed != name:
            # Target-side type with no native counterpart, e.g. 'NSString'
            e = Builtin(renamed)
        return e

    def _resolve(self, ctype: CType, allow_arrays: bool, owner, method) -> Optional[Entity]:
        model = self.model
        name = strip_qualifiers(ctype.spelling)
        kind = ctype.kind
        if name in model.conf.typedefs:
            return self.resolve_by_name(name)
        if kind == 'pointer':
            return self._resolve_pointer(ctype, name)
        if kind == 'record':
            return self._resolve_record(ctype, name)
        if kind == 'obj_c_object_pointer':
            return self._resolve_object_pointer(ctype, name)
        if kind == 'enum':
            return model.find_enum(name)
        if kind == 'incomplete_array' or (kind == 'unexposed' and name.endswith('[]')):
            return self._resolve_unbounded_array(name)
        if kind == 'unexposed':
            e = model.find_struct(name)
            if e is None and '(' in name:
                e = lookup_by_name('FunctionPtr')
            return e
        if kind == 'typedef':
            return self._resolve_typedef(name, owner)
        if kind == 'constant_array':
            return self._resolve_constant_array(ctype, allow_arrays)
        if kind == 'block_pointer':
            return self._resolve_block(name, kind)
        return model.find_enum(name) or lookup_by_kind(kind) or model.find_typedef(name)

    def _resolve_pointer(self, ctype: CType, name: str) -> Optional[Entity]:
        pointee = ctype.pointee
        if pointee is None:
            return lookup_by_name('Pointer')
        if pointee.kind in ('function_proto', 'function_no_proto'):
            return lookup_by_name('FunctionPtr')
        if pointee.kind == 'unexposed' and '(*)' in name:
            return lookup_by_name('FunctionPtr')
        if pointee.kind == 'typedef' and self._is_function_typedef(pointee):
            return lookup_by_name('FunctionPtr')
        e = self.resolve(pointee)
        enum = None
        if isinstance(e, Enum):
            enum = e
        elif isinstance(e, Typedef) and e.is_enum():
            enum = e.enum
        if enum is not None:
            # Enums are not addressable, point at the backing integer instead
            if pointee.canonical is pointee or pointee.canonical.kind == 'enum':
                return enum.enum_type.pointer()
            return self.resolve(pointee.canonical).pointer()
        return e.pointer()

    def _is_function_typedef(self, pointee: CType) -> bool:
        declaration = pointee.declaration
        if declaration is not None and declaration.typedef_type is not None:
            return declaration.typedef_type.kind == 'function_proto'
        td = self.model.find_typedef(strip_qualifiers(pointee.spelling))
        return td is not None and td.typedef_type is not None and td.typedef_type.kind == 'function_proto'

    def _resolve_record(self, ctype: CType, name: str) -> Optional[Struct]:
        model = self.model
        if declared_name(name):
            return model.find_struct(name)
        declaration = ctype.declaration
        if declaration is not None and declaration.location.file:
            s = model.struct_at(declaration.location.id)
            if s is not None:
                return s
        m = ANONYMOUS_RECORD_RE.search(name)
        if m is None:
            return None
        where = m.group(1)
        for s in model.structs:
            if not s.name and s.location is not None:
                at = str(s.location)
                if at == where or at.endswith('/' + where):
                    return s
        return None

    def _resolve_object_pointer(self, ctype: CType, name: str) -> Optional[Entity]:
        pointee = ctype.pointee
        pointee_name = strip_qualifiers(pointee.spelling) if pointee is not None else name.rstrip(' *')
        m = re.fullmatch(r'(id|NSObject)\s*<(.*)>', pointee_name) or re.fullmatch(r'(id|NSObject)\s*<(.*)>', name)
        if m:
            types = [self.resolve_by_name(n.strip()) for n in m.group(2).split(',')]
            if any(t is None for t in types):
                return None
            return types[0] if len(types) == 1 else ProtocolUnion(types)
        if re.fullmatch(r'Class\s*<.*>', pointee_name):
            return lookup_by_name('ObjCClass')
        cls = self.model.find_class(pointee_name)
        return cls.pointer() if cls is not None else None

    def _resolve_unbounded_array(self, name: str) -> Optional[Entity]:
        name = name.replace('[]', '*')
        name = re.sub(r'^(id|NSObject)\b(<.*>)?\s*', 'NSObject *', name)
        base = name.split('*', 1)[0].strip()
        if re.fullmatch(r'(unsigned )?char', base):
            e = lookup_by_name('byte')
        elif base == 'long':
            e = lookup_by_name('MachineSInt')
        elif base == 'unsigned long':
            e = lookup_by_name('MachineUInt')
        else:
            e = self.resolve_by_name(base)
        if e is None:
            return None
        for _ in range(name.count('*')):
            e = e.pointer()
        return e

    def _resolve_typedef(self, name: str, owner: Optional[ObjCMemberHost]) -> Optional[Entity]:
        model = self.model
        if name == 'instancetype' and owner is not None:
            return owner
        td = model.find_typedef(name)
        if td is None:
            return lookup_by_name(name)
        if td.is_callback() or td.is_struct() or td.is_enum() or model.conf.class_conf(td.name) is not None:
            return td
        e = model.find_enum(name)
        if e is not None:
            return e
        e = self.resolve(td.typedef_type)
        if isinstance(e, Pointer) and self._is_opaque_record(e.pointee):
            # Opaque handle types (CFStringRef, ...) keep their typedef name
            return td
        return e

    def _is_opaque_record(self, e: Entity) -> bool:
        if isinstance(e, Typedef) and e.struct is not None:
            e = self.model.find_struct(e.struct.name) or e.struct
        return isinstance(e, Struct) and e.is_opaque()

    def _resolve_constant_array(self, ctype: CType, allow_arrays: bool) -> Optional[Entity]:
        dimensions = []
        base = ctype
        while base.kind == 'constant_array' and base.element_type is not None:
            dimensions.append(base.array_size)
            base = base.element_type
        e = self.resolve(base)
        if allow_arrays:
            return ArrayType(e, dimensions)
        for _ in dimensions:
            e = e.pointer()
        return e

    def _resolve_block(self, name: str, kind: str) -> Entity:
        void = lookup_by_kind('void')
        if VOID_BLOCK_RE.fullmatch(name):
            return BlockType(void, [])
        if BOOL_BLOCK_RE.fullmatch(name):
            return BlockType(void, [lookup_by_name('boolean')])
        logger.warning(f'Unknown block type {name}. Using ObjCBlock.')
        return lookup_by_kind(kind)
