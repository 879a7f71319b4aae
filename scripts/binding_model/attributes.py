"""
Attribute module

Classifies the macro attributes captured on declarations (availability
macros, export markers, ...) and parses platform availability facts from the
already expanded attribute source text.
"""

import re
from typing import Optional


# Tokens with no effect on the generated bindings
IGNORED_EXACT = {
    'CF_IMPLICIT_BRIDGING_ENABLED',
    'NS_RETURNS_INNER_POINTER',
    'NS_AUTOMATED_REFCOUNT_WEAK_UNAVAILABLE',
    'NS_REQUIRES_NIL_TERMINATION',
    'NS_ROOT_CLASS',
    '__header_always_inline',
    'NS_REPLACES_RECEIVER',
    '__objc_exception__',
    'OBJC_EXPORT',
    'OBJC_ROOT_CLASS',
    '__ai',
}
IGNORED_PREFIXES = ('__DARWIN_ALIAS', 'DISPATCH_')
IGNORED_SUFFIXES = ('_EXTERN', '_EXTERN_CLASS', '_CLASS_EXPORT', '_EXPORT', '_EXTERN_WEAK')
IGNORED_PATTERNS = [
    re.compile(r'^(CF|NS)_RETURNS_RETAINED'),
    re.compile(r'^(CF|NS)_INLINE$'),
    re.compile(r'^(CF|NS)_FORMAT_FUNCTION'),
    re.compile(r'^(CF|NS)_FORMAT_ARGUMENT'),
]

UNAVAILABLE_EXACT = {'NS_UNAVAILABLE', 'UNAVAILABLE_ATTRIBUTE'}

# iOS releases deprecated at or below this version are not bound at all
OUTDATED_VERSION = (5,)


def parse_version(value: Optional[str]) -> Optional[tuple[int, ...]]:
    """'10_8' / '10.8' -> (10, 8), '5.0' -> (5,)"""
    if not value:
        return None
    parts = [int(p) for p in re.findall(r'\d+', value)]
    if not parts:
        return None
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


class Attribute:
    def __init__(self, source: str):
        self.source = source

    def __repr__(self):
        return f'{type(self).__name__}({self.source!r})'


class IgnoredAttribute(Attribute):
    pass


class UnavailableAttribute(Attribute):
    pass


class UnsupportedAttribute(Attribute):
    pass


class AvailableAttribute(Attribute):
    """Platform introduction/deprecation versions

    Positional macro arguments map onto (mac, ios, mac deprecated, ios
    deprecated) depending on which macro family matched. 'NA' arguments are
    left unset.
    """

    def __init__(self, source: str):
        super().__init__(source)
        self.mac_version: Optional[str] = None
        self.ios_version: Optional[str] = None
        self.mac_dep_version: Optional[str] = None
        self.ios_dep_version: Optional[str] = None

        s = re.sub(r'^[A-Z_]+\s*\(', '', source)
        s = re.sub(r'\)$', '', s)
        args = [a for a in re.split(r'\s*,\s*', s.strip())]
        args = [re.sub(r'^[A-Z_]+', '', a).replace('_', '.') for a in args]

        def arg(i: int) -> Optional[str]:
            return args[i] if i < len(args) else None

        if re.search(r'_AVAILABLE_IOS\s*\(', source):
            self.ios_version = arg(0)
        elif re.search(r'_AVAILABLE_MAC\s*\(', source):
            self.mac_version = arg(0)
        elif re.search(r'_AVAILABLE\s*\(', source):
            if len(args) == 1:
                # MP_EXTERN_CLASS_AVAILABLE(version) means the same version on both
                self.mac_version = self.ios_version = arg(0)
            else:
                self.mac_version = arg(0)
                self.ios_version = arg(1)
        elif re.search(r'_DEPRECATED_MAC\s*\(', source):
            self.mac_version = arg(0)
            self.mac_dep_version = arg(1)
        elif re.search(r'_DEPRECATED_IOS\s*\(', source):
            self.ios_version = arg(0)
            self.ios_dep_version = arg(1)
        elif re.search(r'_AVAILABLE_STARTING\s*\(', source):
            self.mac_version = arg(0)
            self.ios_version = arg(1)
        elif re.search(r'_AVAILABLE_BUT_DEPRECATED\s*\(', source) or re.search(r'_DEPRECATED\s*\(', source):
            self.mac_version = arg(0)
            self.mac_dep_version = arg(1)
            self.ios_version = arg(2)
            self.ios_dep_version = arg(3)

        self.mac_version = self.mac_version or None
        self.ios_version = self.ios_version or None
        self.mac_dep_version = self.mac_dep_version or None
        self.ios_dep_version = self.ios_dep_version or None

    def is_available(self, mac_version: Optional[str], ios_version: Optional[str]) -> bool:
        """True if introduced on either requested platform at or before the target"""
        for target, introduced in ((mac_version, self.mac_version), (ios_version, self.ios_version)):
            target_v = parse_version(target)
            introduced_v = parse_version(introduced)
            if target_v and introduced_v and introduced_v <= target_v:
                return True
        return False

    def is_outdated(self) -> bool:
        deprecated = parse_version(self.ios_dep_version)
        return deprecated is not None and deprecated <= OUTDATED_VERSION


def parse_attribute(source: str) -> Attribute:
    """Classify a captured attribute token"""
    if (source in IGNORED_EXACT
            or source.startswith(IGNORED_PREFIXES)
            or source.endswith(IGNORED_SUFFIXES)
            or any(p.match(source) for p in IGNORED_PATTERNS)):
        return IgnoredAttribute(source)
    if source in UNAVAILABLE_EXACT:
        return UnavailableAttribute(source)
    if '_AVAILABLE' in source or '_DEPRECATED' in source:
        return AvailableAttribute(source)
    return UnsupportedAttribute(source)
