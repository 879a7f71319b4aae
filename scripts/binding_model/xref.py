"""
Cross-reference graph

Computes the set of named entities reachable from a unit's functions and
global values through parameter, return and member types, remembering who
refers to each of them.
"""

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from loguru import logger

from .entities import (
    ArrayType,
    BlockType,
    Builtin,
    Entity,
    Enum,
    ObjCClass,
    ObjCProtocol,
    Pointer,
    ProtocolUnion,
    Struct,
    Typedef,
    strip_qualifiers,
)
from .errors import AmbiguousReferenceError
from .ir import CType

if TYPE_CHECKING:
    from .model import Model


@dataclass
class Reference:
    entity: Entity
    referrers: set[str] = field(default_factory=set)


@dataclass
class ReferenceGraph:
    """Closure of the entities a unit's functions and values depend on"""
    referenced: list[Reference] = field(default_factory=list)
    omitted: list[Reference] = field(default_factory=list)

    def get(self, entity: Entity) -> Optional[Reference]:
        return next((r for r in self.referenced if r.entity is entity), None)

    def is_referenced(self, entity: Entity) -> bool:
        return self.get(entity) is not None

    def names(self) -> list[str]:
        return sorted(r.entity.name for r in self.referenced)


def named_entities(t: Entity) -> list[Entity]:
    """Unwrap composites down to the declared entities they are built from"""
    if isinstance(t, Builtin):
        return []
    if isinstance(t, Pointer):
        return named_entities(t.pointee)
    if isinstance(t, ArrayType):
        return named_entities(t.base_type)
    if isinstance(t, BlockType):
        return [e for p in (t.return_type, *t.param_types) for e in named_entities(p)]
    if isinstance(t, ProtocolUnion):
        return [e for p in t.protocols for e in named_entities(p)]
    if isinstance(t, (Struct, Enum, Typedef, ObjCClass, ObjCProtocol)):
        return [t]
    return []


class ReferenceTracker:
    def __init__(self, model: 'Model'):
        self.model = model
        self.references: dict[int, Reference] = {}
        self.omitted: dict[int, Reference] = {}
        # Everything reached, including structs and enums seen only through their typedef
        self.reached: set[int] = set()

    def visit(self, t: Entity, referrer: str):
        for entity in named_entities(t):
            ref = self.references.get(id(entity)) or self.omitted.get(id(entity))
            if ref is not None:
                ref.referrers.add(referrer)
                continue
            ref = Reference(entity, {referrer})
            if entity.location is not None and not self.model.is_included(entity):
                self.omitted[id(entity)] = ref
                continue
            self.references[id(entity)] = ref
            self.reached.add(id(entity))
            self._visit_members(entity)

    def visit_type(self, ctype: Optional[CType], referrer: str, allow_arrays: bool = False):
        self.visit(self.model.resolve(ctype, allow_arrays), referrer)
        self._reach_enum_pointee(ctype)

    def _reach_enum_pointee(self, ctype: Optional[CType]):
        """Mark the enum behind a pointer-to-enum type as reached"""
        pointee = ctype.pointee if ctype is not None else None
        while pointee is not None and pointee.kind == 'pointer':
            pointee = pointee.pointee
        if pointee is None or pointee.kind not in ('enum', 'typedef'):
            return
        name = strip_qualifiers(pointee.spelling)
        enum = self.model.find_enum(name)
        if enum is None:
            td = self.model.find_typedef(name)
            enum = td.enum if td is not None else None
        if enum is not None:
            self.reached.add(id(enum))

    def _visit_members(self, entity: Entity):
        model = self.model
        if isinstance(entity, Typedef):
            if entity.struct is not None:
                struct = self.full_struct(entity.struct)
                self.reached.add(id(struct))
                self._visit_struct(struct, entity.name)
            elif entity.enum is not None:
                self.reached.add(id(entity.enum))
            elif not entity.is_callback() and entity.typedef_type is not None:
                self.visit(model.resolve(entity.typedef_type), entity.name)
        elif isinstance(entity, Struct):
            self._visit_struct(entity, entity.name)

    def full_struct(self, struct: Struct) -> Struct:
        """The full definition of a possibly forward declared struct"""
        if not struct.name:
            return struct
        return self.model.find_struct(struct.name) or struct

    def _visit_struct(self, struct: Struct, referrer: str):
        for member in struct.members:
            self.visit_type(member.type, referrer, True)
        for child in struct.children:
            self._visit_struct(child, referrer)

    def canonical(self, entity: Entity) -> Entity:
        """Follow typedef aliases to the entity they name"""
        model = self.model
        seen = set()
        while isinstance(entity, Typedef) and id(entity) not in seen:
            seen.add(id(entity))
            if entity.struct is not None:
                return self.full_struct(entity.struct)
            if entity.enum is not None:
                return entity.enum
            if entity.is_callback() or entity.typedef_type is None:
                return entity
            target = model.resolve(entity.typedef_type)
            if not isinstance(target, (Struct, Enum, Typedef, ObjCClass, ObjCProtocol)):
                return entity
            entity = target
        return entity

    def check_names(self):
        """Fail if one entity is referenced under more than one target name"""
        groups: dict[int, list[Reference]] = {}
        for ref in self.references.values():
            groups.setdefault(id(self.canonical(ref.entity)), []).append(ref)
        for refs in groups.values():
            names = sorted({r.entity.target_name for r in refs})
            if len(names) > 1:
                referrers = sorted(set().union(*(r.referrers for r in refs)))
                raise AmbiguousReferenceError(
                    f"Types {', '.join(names)} refer to the same entity declared at {refs[0].entity.location} "
                    f"(used by {', '.join(referrers)}). Configure one name for all of them.")


def _sort_key(ref: Reference):
    return ref.entity.name, type(ref.entity).__name__


def build_references(model: 'Model') -> ReferenceGraph:
    """Compute the cross-reference closure of a processed model"""
    tracker = ReferenceTracker(model)
    for f in model.functions:
        for ctype in f.types:
            tracker.visit_type(ctype, f.name)
    for v in model.global_values:
        tracker.visit_type(v.type, v.name)
    for group in [*model.global_value_enums.values(), *model.global_value_dictionaries.values()]:
        for v in group.values:
            tracker.visit_type(v.type, v.name)

    for ref in tracker.omitted.values():
        e = ref.entity
        logger.warning(f'Omitting {type(e).__name__.lower()} {e.name} declared at {e.location} outside this unit. '
                       f'Referenced by {", ".join(sorted(ref.referrers))}')
    tracker.check_names()

    for e in model.enums:
        if (model.is_included(e) and id(e) not in tracker.reached
                and not e.is_configured()):
            logger.warning(f'Enum {e.name} at {e.location} is not referenced by any function or value '
                           f'and has no configuration')

    return ReferenceGraph(
        referenced=sorted(tracker.references.values(), key=_sort_key),
        omitted=sorted(tracker.omitted.values(), key=_sort_key),
    )
