"""
Naming utilities

Derives target-side names from native ones: enum constant prefixes,
enum value names and property accessor names.
"""

from typing import Optional


# Verbs that already read as a boolean getter ("isEnabled", "hasShadow", ...)
BOOLEAN_GETTER_PREFIXES = (
    'is', 'has', 'can', 'should', 'adjusts', 'allows', 'always', 'animates',
    'applies', 'apportions', 'are', 'autoenables', 'automatically', 'autoresizes',
    'autoreverses', 'bounces', 'casts', 'clears', 'clips', 'collapses', 'contains',
    'defers', 'defines', 'delays', 'depends', 'dims', 'disconnects', 'displays',
    'does', 'draws', 'enables', 'evicts', 'expects', 'fixes', 'fills', 'generates', 'groups',
    'hides', 'ignores', 'includes', 'invalidates', 'locks', 'marks', 'masks', 'needs',
    'normalizes', 'notifies', 'pauses', 'performs', 'presents', 'preserves', 'propagates',
    'provides', 'reads', 'receives', 'requests', 'requires', 'resets', 'returns', 'reverses',
    'scrolls', 'sends', 'shows', 'supports', 'suppresses', 'uses', 'wants', 'writes',
)


def capitalize_first(name: str) -> str:
    """frameRate -> FrameRate"""
    return name[:1].upper() + name[1:]


def is_word_boundary(name: str, pos: int) -> bool:
    """Check if a word of a C identifier starts at pos

    Examples:
        kCFFooBar, 6 -> True  (kCFFoo|Bar)
        kCFFooBar, 8 -> False (kCFFooBa|r)
        NS_FOO_BAR, 3 -> True  (NS_|FOO_BAR)
    """
    if pos <= 0 or pos >= len(name):
        return True
    prev, cur = name[pos - 1], name[pos]
    if prev == '_':
        return True
    if cur.isdigit():
        return not prev.isdigit()
    if cur.isupper():
        if prev.islower() or prev.isdigit():
            return True
        # End of an acronym: CFFoo -> CF|Foo
        return pos + 1 < len(name) and name[pos + 1].islower()
    return False


def common_prefix(names: list[str]) -> str:
    """Get the longest common prefix of names that ends on a word boundary

    Examples:
        [kCFFooBar, kCFFooBaz] -> kCFFoo
        [UIViewAnimationCurveEaseIn, UIViewAnimationCurveLinear] -> UIViewAnimationCurve
    """
    if not names:
        return ''
    prefix = names[0]
    for name in names[1:]:
        while not name.startswith(prefix):
            prefix = prefix[:-1]
    pos = len(prefix)
    while pos > 0 and not all(is_word_boundary(n, pos) for n in names):
        pos -= 1
    return prefix[:pos]


def enum_value_name(name: str, prefix: str, suffix: str, rename: Optional[str] = None) -> str:
    """Get the target name of an enum constant

    Examples:
        kCFFooBar, prefix kCFFoo -> Bar
        kFoo2D, prefix kFoo -> _2D
    """
    n = rename or name
    if prefix and n.startswith(prefix) and len(n) > len(prefix):
        n = n[len(prefix):]
    if suffix and n.endswith(suffix) and len(n) > len(suffix):
        n = n[:-len(suffix)]
    if n[:1].isdigit():
        n = f'_{n}'
    return n


def getter_for_name(name: str, type_name: str, omit_prefix: bool = False) -> str:
    """Get the accessor method name for a property

    Examples:
        hidden, boolean -> isHidden
        hasShadow, boolean -> hasShadow
        frame, CGRect -> getFrame
    """
    if omit_prefix:
        return name
    base = capitalize_first(name)
    if type_name == 'boolean':
        if name.startswith(BOOLEAN_GETTER_PREFIXES):
            return name
        return f'is{base}'
    return f'get{base}'


def setter_for_name(name: str, omit_prefix: bool = False) -> str:
    """hidden -> setHidden"""
    if omit_prefix:
        return name
    return f'set{capitalize_first(name)}'
