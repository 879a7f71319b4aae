"""
Model builder

Walks a translation unit once, collecting every declaration into entity
lists, then runs a fixed post pass (dedupe, enum merge, inclusion and
signature filters, global value grouping). The model is read-only
afterwards.
"""

from typing import Optional
import re

from loguru import logger

from .conf import Config
from .entities import (
    ArrayType,
    ConstantValue,
    Entity,
    Enum,
    Function,
    GlobalValue,
    GlobalValueDictionary,
    GlobalValueEnumeration,
    ObjCCategory,
    ObjCClass,
    ObjCMemberHost,
    ObjCMethod,
    ObjCProtocol,
    Struct,
    Typedef,
    declared_name,
)
from .errors import MergeTargetError
from .ir import Cursor, CType
from .resolver import TypeResolver


ENUM_MACROS = ('CF_ENUM', 'NS_ENUM')
OPTIONS_MACROS = ('CF_OPTIONS', 'NS_OPTIONS')

CONSTANT_RE = re.compile(r'(([-+.0-9Ee]+[fF]?)|(~?0x[0-9a-fA-F]+[UL]*)|(~?[0-9]+[UL]*))', re.IGNORECASE)


def dedupe(entities: list) -> list:
    """Keep one entity per name, full definitions over opaque ones, sorted by name"""
    anonymous = [e for e in entities if not e.name]
    by_name = {}
    for e in sorted((e for e in entities if e.name), key=lambda e: e.is_opaque()):
        by_name.setdefault(e.name, e)
    return sorted([*anonymous, *by_name.values()], key=lambda e: e.name)


def unique_by_name(entities: list) -> list:
    seen = set()
    result = []
    for e in entities:
        if e.name not in seen:
            seen.add(e.name)
            result.append(e)
    return result


def normalize_literal(value: str) -> str:
    """Drop unsigned suffixes, long long -> long: 10UL -> 10, 10ULL -> 10L"""
    for pattern, repl in ((r'U$', ''), (r'UL$', ''), (r'ULL$', 'L'), (r'LL$', 'L')):
        value = re.sub(pattern, repl, value, flags=re.IGNORECASE)
    return value


class Model:
    """Semantic model of one configuration unit"""

    def __init__(self, conf: Optional[Config] = None):
        self.conf = conf or Config()
        self.typedefs: list[Typedef] = []
        self.structs: list[Struct] = []
        self.enums: list[Enum] = []
        self.functions: list[Function] = []
        self.global_values: list[GlobalValue] = []
        self.global_value_enums: dict[str, GlobalValueEnumeration] = {}
        self.global_value_dictionaries: dict[str, GlobalValueDictionary] = {}
        self.constant_values: list[ConstantValue] = []
        self.objc_classes: list[ObjCClass] = []
        self.objc_protocols: list[ObjCProtocol] = []
        self.objc_categories: list[ObjCCategory] = []
        # Locations of CF_ENUM/NS_ENUM (and *_OPTIONS) expansions
        self.enum_macro_locations: set[str] = set()
        self.options_macro_locations: set[str] = set()
        self.sealed = False
        self._registry: dict[tuple[str, str], Entity] = {}
        self.resolver = TypeResolver(self)

    # -- identity registry --

    def _interned(self, kind: str, cursor: Cursor, factory):
        if not cursor.location.file:
            return factory()
        key = (kind, cursor.location.id)
        entity = self._registry.get(key)
        if entity is None:
            entity = factory()
            self._registry[key] = entity
        return entity

    def struct_for(self, cursor: Cursor, parent: Optional[Struct] = None, union: bool = False) -> Struct:
        """Get the struct declared at the cursor's location, creating it once"""
        return self._interned('struct', cursor, lambda: Struct(self, cursor, parent, union))

    def enum_for(self, cursor: Cursor) -> Enum:
        return self._interned('enum', cursor, lambda: Enum(self, cursor))

    def struct_at(self, location_id: str) -> Optional[Struct]:
        return self._registry.get(('struct', location_id))

    def add_struct(self, struct: Struct):
        if not any(s is struct for s in self.structs):
            self.structs.append(struct)

    # -- lookups --

    def find_struct(self, name: str) -> Optional[Struct]:
        return next((s for s in self.structs if s.name == name), None)

    def find_enum(self, name: str) -> Optional[Enum]:
        return next((e for e in self.enums if e.name == name), None)

    def find_typedef(self, name: str) -> Optional[Typedef]:
        return next((t for t in self.typedefs if t.name == name), None)

    def find_class(self, name: str) -> Optional[ObjCClass]:
        return next((c for c in self.objc_classes if c.name == name), None)

    def find_protocol(self, name: str) -> Optional[ObjCProtocol]:
        return next((p for p in self.objc_protocols if p.name == name), None)

    def find_function(self, name: str) -> Optional[Function]:
        return next((f for f in self.functions if f.name == name), None)

    def find_global_value(self, name: str) -> Optional[GlobalValue]:
        return next((v for v in self.global_values if v.name == name), None)

    def find_constant(self, name: str) -> Optional[ConstantValue]:
        return next((v for v in self.constant_values if v.name == name), None)

    def typedef_at(self, location_id: str) -> Optional[Typedef]:
        return next((t for t in self.typedefs if t.id == location_id), None)

    def typedef_wrapping(self, enum: Enum) -> Optional[Typedef]:
        return next((t for t in self.typedefs if t.enum is enum), None)

    # -- type resolution --

    def resolve(self, ctype: Optional[CType], allow_arrays: bool = False,
                owner: Optional[ObjCMemberHost] = None, method: Optional[ObjCMethod] = None) -> Entity:
        return self.resolver.resolve(ctype, allow_arrays, owner, method)

    def resolve_by_name(self, name: str) -> Optional[Entity]:
        return self.resolver.resolve_by_name(name)

    def to_target_type(self, t: Entity) -> str:
        """Target type with its marshalling annotation (@ByVal, @Array)"""
        if isinstance(t, Struct):
            return f'@ByVal {t.target_name}'
        if isinstance(t, Typedef) and (t.struct is not None
                                       or (t.typedef_type is not None and t.typedef_type.kind == 'record')):
            return f'@ByVal {t.target_name}'
        if isinstance(t, ArrayType):
            dimensions = ', '.join(str(d) for d in t.dimensions)
            return f'@Array({{{dimensions}}}) {t.target_name}'
        return t.target_name

    def is_included(self, entity: Entity) -> bool:
        return self.conf.is_included(entity)

    # -- construction --

    def process(self, cursor: Cursor) -> 'Model':
        """Build the model from a translation unit cursor"""
        self._visit(cursor)
        self.structs = dedupe(self.structs)
        self.objc_classes = dedupe(self.objc_classes)
        self.objc_protocols = dedupe(self.objc_protocols)
        self._merge_enums()
        self._filter_functions()
        self._filter_global_values()
        self.constant_values = [v for v in self.constant_values if self.is_included(v)]
        self.sealed = True
        logger.debug(f'Model {self.conf.source or "<unit>"}: {len(self.structs)} structs, '
                     f'{len(self.enums)} enums, {len(self.typedefs)} typedefs, {len(self.functions)} functions, '
                     f'{len(self.objc_classes)} classes, {len(self.objc_protocols)} protocols')
        return self

    def _visit(self, cursor: Cursor):
        for child in cursor.children:
            kind = child.kind
            if kind == 'typedef_decl':
                self.typedefs.append(Typedef(self, child))
            elif kind in ('struct', 'union'):
                if declared_name(child.spelling):
                    self.add_struct(self.struct_for(child, None, kind == 'union'))
            elif kind == 'enum_decl':
                e = self.enum_for(child)
                if e.values and not any(x is e for x in self.enums):
                    self.enums.append(e)
            elif kind == 'macro_definition':
                self._add_constant(child)
            elif kind == 'macro_expansion':
                if child.spelling in ENUM_MACROS:
                    self.enum_macro_locations.add(child.location.id)
                elif child.spelling in OPTIONS_MACROS:
                    self.enum_macro_locations.add(child.location.id)
                    self.options_macro_locations.add(child.location.id)
            elif kind == 'function':
                self.functions.append(Function(self, child))
            elif kind == 'variable':
                self.global_values.append(GlobalValue(self, child))
            elif kind == 'obj_c_interface_decl':
                self.objc_classes.append(ObjCClass(self, child))
            elif kind == 'obj_c_protocol_decl':
                self.objc_protocols.append(ObjCProtocol(self, child))
            elif kind == 'obj_c_category_decl':
                self._add_category(child)
            else:
                self._visit(child)

    def _add_category(self, cursor: Cursor):
        category = ObjCCategory(self, cursor)
        conf = self.conf.category_conf(f'{category.name}@{category.owner}') or self.conf.category_conf(category.name)
        if conf and conf.get('protocol'):
            # Informal protocol declared as a category (e.g. NSObject (NSKeyValueCoding))
            self.objc_protocols.append(ObjCProtocol(self, cursor))
        else:
            self.objc_categories.append(category)

    def _add_constant(self, cursor: Cursor):
        source = cursor.read_source()
        if source == '?' or not source.startswith(cursor.spelling):
            return
        value = source[len(cursor.spelling):].strip()
        while value.startswith('(') and value.endswith(')'):
            value = value[1:-1].strip()
        value = re.sub(r'^\((long long|long|int)\)\s*', '', value)
        if CONSTANT_RE.fullmatch(value) and re.search(r'\d', value):
            self.constant_values.append(ConstantValue(self, cursor, normalize_literal(value)))
            return
        aliased = self.find_constant(value)
        if aliased is not None:
            self.constant_values.append(ConstantValue(self, cursor, aliased.value, aliased.type))

    def _merge_enums(self):
        merged = []
        for e in self.enums:
            target = e.merge_with
            if not target:
                merged.append(e)
                continue
            other = self.find_enum(target)
            if other is None:
                raise MergeTargetError(f"Cannot find other enum '{target}' to merge enum {e.name} "
                                       f"at {e.location} with")
            other.values.extend(e.values)
        self.enums = merged

    def _filter_functions(self):
        functions = []
        for f in self.functions:
            if not self.is_included(f):
                continue
            if f.is_variadic() or f.is_inline() or f.takes_va_list():
                reason = 'variadic' if f.is_variadic() or f.takes_va_list() else 'inline'
                logger.warning(f"Ignoring {reason} function '{f.definition}' at {f.location}")
                continue
            if any(g.name == f.name for g in functions):
                logger.warning(f"Ignoring duplicate function '{f.definition}' at {f.location}")
                continue
            functions.append(f)
        self.functions = functions

    def _filter_global_values(self):
        values = unique_by_name([v for v in self.global_values if self.is_included(v)])
        for v in values:
            if v.enum:
                group = self.global_value_enums.get(v.enum)
                if group is None:
                    self.global_value_enums[v.enum] = GlobalValueEnumeration(self, v.enum, v)
                else:
                    group.values.append(v)
            elif v.dictionary:
                group = self.global_value_dictionaries.get(v.dictionary)
                if group is None:
                    self.global_value_dictionaries[v.dictionary] = GlobalValueDictionary(self, v.dictionary, v)
                else:
                    group.values.append(v)
        self.global_values = [v for v in values if not v.enum and not v.dictionary]
