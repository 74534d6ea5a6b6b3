"""
Error taxonomy for tokmatch.

Configuration errors are raised while entities and patterns are registered,
never while a document is being scanned.
"""


class MatcherError(Exception):
    """Base class for all tokmatch errors."""


class InvalidPatternError(MatcherError, ValueError):
    """A token specifier, quantifier or label is malformed."""


class UnknownAttributeError(InvalidPatternError):
    """A token specifier references an attribute or flag that is not registered."""

    def __init__(self, attr):
        self.attr = attr
        super().__init__(f"Unknown token attribute: {attr!r}")


class UnknownEntityError(MatcherError, KeyError):
    """An entity id was referenced before registration (strict mode or lookup)."""

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(entity_id)

    def __str__(self):
        return f"Unknown entity: {self.entity_id!r}"


class DuplicateEntityError(MatcherError):
    """An entity was re-registered with if_exists='raise'."""

    def __init__(self, entity_id):
        self.entity_id = entity_id
        super().__init__(f"Entity already registered: {entity_id!r}")


class InvalidMatchError(MatcherError, ValueError):
    """An acceptor returned offsets outside the scanned document."""


class RuleFileError(MatcherError):
    """A rule file is well-formed but cannot be turned into a matcher."""
