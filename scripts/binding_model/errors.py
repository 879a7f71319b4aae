"""
Errors that abort the current configuration unit
"""


class ModelError(Exception):
    pass


class ConfigError(ModelError):
    pass


class UnknownCursorError(ModelError):
    pass


class UnresolvedTypeError(ModelError):
    pass


class MergeTargetError(ModelError):
    pass


class AmbiguousReferenceError(ModelError):
    pass
