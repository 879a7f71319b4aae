"""
Configuration module

Per-unit override configuration loaded from YAML. Tables (classes, enums,
functions, ...) are keyed either by exact native names or by regular
expressions; a pattern entry can use {n} placeholders that are replaced by
the n-th capture group of the matching name ({0} is the whole match).
"""

from pathlib import Path
from typing import Optional, TYPE_CHECKING
import re

import yaml

from .errors import ConfigError

if TYPE_CHECKING:
    from .entities import Entity


TABLES = ('classes', 'protocols', 'categories', 'functions', 'values', 'constants', 'enums')
EXCLUDED_BY_INCLUDE = ('classes', 'protocols', 'enums')
DEFAULT_IOS_VERSION = '8.1'

PLACEHOLDER_RE = re.compile(r'\{(\d+)\}')


def _normalize_table(table: Optional[dict]) -> dict:
    # 'Foo:' with no value means "configured with defaults"
    return {k: (v if v is not None else {}) for k, v in (table or {}).items()}


def _interpolate(value, match: re.Match):
    if not isinstance(value, str):
        return value

    def repl(m: re.Match) -> str:
        index = int(m.group(1))
        if index > match.re.groups:
            raise ConfigError(f"Placeholder {{{index}}} in '{value}' has no capture group in "
                              f"pattern '{match.re.pattern}'")
        return match.group(index) or ''

    return PLACEHOLDER_RE.sub(repl, value)


class Config:
    """Resolved override configuration of one unit"""

    def __init__(self, data: Optional[dict] = None, source: Optional[str] = None):
        data = data or {}
        self.data = data
        self.source = source
        self.tables = {name: _normalize_table(data.get(name)) for name in TABLES}
        self.typedefs: dict = dict(data.get('typedefs') or {})
        self.annotations: list = list(data.get('annotations') or [])
        self.framework: Optional[str] = data.get('framework')
        self.path_match: Optional[str] = data.get('path_match')
        self.default_class: Optional[str] = data.get('default_class') or self.framework
        self.mac_version: Optional[str] = data.get('mac_version')
        self.ios_version: Optional[str] = data.get('ios_version', DEFAULT_IOS_VERSION)
        self._patterns: dict[str, re.Pattern] = {}

    def get(self, key: str, default=None):
        return self.data.get(key, default)

    def _pattern(self, key: str) -> re.Pattern:
        pattern = self._patterns.get(key)
        if pattern is None:
            source = key
            if source.startswith('+'):
                source = '\\' + source
            if source.startswith('^'):
                source = source[1:]
            if source.endswith('$') and not source.endswith('\\$'):
                source = source[:-1]
            try:
                pattern = re.compile(source)
            except re.error as e:
                raise ConfigError(f"Invalid pattern key '{key}' in {self.source}: {e}") from e
            self._patterns[key] = pattern
        return pattern

    def lookup(self, name: str, table: dict) -> Optional[dict]:
        """Find the entry for name: exact key first, then the first matching pattern key"""
        if name in table:
            return table[name]
        for key, value in table.items():
            m = self._pattern(key).fullmatch(name)
            if m is None:
                continue
            if not isinstance(value, dict) or not m.re.groups:
                return value
            return {k: _interpolate(v, m) for k, v in value.items()}
        return None

    def class_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['classes'])

    def protocol_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['protocols'])

    def category_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['categories'])

    def function_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['functions'])

    def value_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['values'])

    def constant_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['constants'])

    def enum_conf(self, name: str) -> Optional[dict]:
        return self.lookup(name, self.tables['enums']) if name else None

    def enum_conf_for_first_value(self, first: str) -> Optional[dict]:
        return next((v for v in self.tables['enums'].values()
                     if isinstance(v, dict) and v.get('first') == first), None)

    def enum_name_for_first_value(self, first: str) -> Optional[str]:
        """Name of the first enum entry declaring first as its first value"""
        return next((k for k, v in self.tables['enums'].items()
                     if isinstance(v, dict) and v.get('first') == first), None)

    def is_included(self, entity: 'Entity') -> bool:
        """Check if entity is declared inside this unit"""
        location = entity.location
        if self.path_match and location and location.file and re.search(self.path_match, location.file):
            return True
        return self.framework is not None and entity.framework == self.framework


def load_yaml(path) -> dict:
    """Load a YAML mapping, '{}' for an empty file"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in '{path}': {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration '{path}' must be a mapping")
    return data


def merge_unit(unit: dict, global_data: Optional[dict] = None, includes: Optional[list[dict]] = None) -> dict:
    """Layer a unit over the global configuration and its included units

    Entries of included units are only there to be referenced, so their
    classes, protocols and enums are marked excluded. Own entries win.
    """
    global_data = global_data or {}
    merged = {**global_data, **unit}
    merged['typedefs'] = {
        **(global_data.get('typedefs') or {}),
        **(unit.get('typedefs') or {}),
        **(unit.get('private_typedefs') or {}),
    }
    for included in includes or []:
        for key in EXCLUDED_BY_INCLUDE:
            excluded = {k: {**(v or {}), 'exclude': True} for k, v in (included.get(key) or {}).items()}
            merged[key] = {**excluded, **(merged.get(key) or {})}
        merged['typedefs'] = {**(included.get('typedefs') or {}), **merged['typedefs']}
        merged['annotations'] = [*(included.get('annotations') or []), *(merged.get('annotations') or [])]
    return merged


def load_unit(path, global_path=None) -> Config:
    """Load a unit configuration file with its global defaults and includes"""
    path = Path(path)
    unit = load_yaml(path)
    global_data = load_yaml(global_path) if global_path else {}
    includes = [load_yaml(path.parent / p) for p in unit.get('include') or []]
    return Config(merge_unit(unit, global_data, includes), str(path))
