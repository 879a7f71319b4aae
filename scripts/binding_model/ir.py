"""
IR (Intermediate Representation) module

Reads and represents the clang declaration tree handed over by the parser
front end. Kinds use libclang names in lower case without the ``cursor_`` /
``type_`` prefixes (``struct``, ``typedef_decl``, ``obj_c_object_pointer``...).
"""

from dataclasses import dataclass, field
from typing import Optional
import json


@dataclass
class SourceLocation:
    """Position of a declaration in its source file"""
    file: Optional[str] = None
    offset: int = 0
    line: int = 0
    column: int = 0

    @property
    def id(self) -> str:
        """Stable identity key (file + byte offset)"""
        return f'{self.file}:{self.offset}'

    def __str__(self) -> str:
        return f'{self.file}:{self.line}:{self.column}'

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'SourceLocation':
        data = data or {}
        return cls(
            file=data.get('file'),
            offset=data.get('offset', 0),
            line=data.get('line', 0),
            column=data.get('column', 0),
        )


@dataclass
class SourceRange:
    """Byte range covered by a cursor"""
    start: SourceLocation
    end: SourceLocation


@dataclass
class CType:
    """Native type expression"""
    kind: str
    spelling: str = ''
    pointee: Optional['CType'] = None
    element_type: Optional['CType'] = None
    array_size: int = -1
    canonical_type: Optional['CType'] = None
    declaration: Optional['Cursor'] = None

    @property
    def canonical(self) -> 'CType':
        return self.canonical_type or self

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional['CType']:
        if data is None:
            return None
        declaration = data.get('declaration')
        return cls(
            kind=data['kind'],
            spelling=data.get('spelling', ''),
            pointee=cls.from_dict(data.get('pointee')),
            element_type=cls.from_dict(data.get('element_type')),
            array_size=data.get('array_size', -1),
            canonical_type=cls.from_dict(data.get('canonical')),
            declaration=Cursor.from_dict(declaration) if declaration else None,
        )


@dataclass
class Cursor:
    """One node of the declaration tree"""
    kind: str
    spelling: str = ''
    location: SourceLocation = field(default_factory=SourceLocation)
    extent: Optional[SourceRange] = None
    type: Optional[CType] = None
    typedef_type: Optional[CType] = None
    result_type: Optional[CType] = None
    enum_type: Optional[CType] = None
    enum_value: Optional[int] = None
    variadic: bool = False
    children: list['Cursor'] = field(default_factory=list)
    source: Optional[str] = None  # Inline extent text, used instead of reading the file

    def read_source(self) -> str:
        """Return the exact source text covered by this cursor, '?' if unknown"""
        if self.source is not None:
            return self.source
        if self.extent is None or not self.extent.start.file:
            return '?'
        start = self.extent.start.offset
        with open(self.extent.start.file, 'rb') as f:
            f.seek(start)
            data = f.read(self.extent.end.offset - start)
        return data.decode('utf-8', errors='replace')

    @classmethod
    def from_dict(cls, data: dict) -> 'Cursor':
        """Create a cursor tree from a dictionary (e.g., from a JSON AST dump)"""
        extent = None
        if 'extent' in data:
            extent = SourceRange(
                start=SourceLocation.from_dict(data['extent'].get('start')),
                end=SourceLocation.from_dict(data['extent'].get('end')),
            )
        return cls(
            kind=data['kind'],
            spelling=data.get('spelling', ''),
            location=SourceLocation.from_dict(data.get('location')),
            extent=extent,
            type=CType.from_dict(data.get('type')),
            typedef_type=CType.from_dict(data.get('typedef_type')),
            result_type=CType.from_dict(data.get('result_type')),
            enum_type=CType.from_dict(data.get('enum_type')),
            enum_value=data.get('enum_value'),
            variadic=data.get('variadic', False),
            children=[cls.from_dict(c) for c in data.get('children', [])],
            source=data.get('source'),
        )


def load_ast(json_path: str) -> Cursor:
    """Load a translation unit cursor from a JSON file"""
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return Cursor.from_dict(data)
