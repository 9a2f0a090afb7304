"""
Strip MongoDB operators from user provided documents.

Usage:

    >>> sanitizer = Sanitizer({'query': QUERY.LOGICAL | QUERY.COMPARISON})
    >>> sanitizer.filter({'$where': 'sleep(100)', 'price': {'$gt': 1}}, 'query')
    {'price': {'$gt': 1}}

An operator key stays only if every active group allows it. When no group is
active at all, every operator is stripped.
"""

import logging
import sys
from collections.abc import Mapping, MutableMapping

from spynl_queryfilter.catalog import OPERATORS, is_operator_token
from spynl_queryfilter.exceptions import DepthExceeded, InvalidArgument
from spynl_queryfilter.permissions import PermissionSet
from spynl_queryfilter.resolver import GroupResolver

MAX_DEPTH = 100

# two frames per level of nesting, the rest of the stack is left to the caller
FRAMES_PER_LEVEL = 4

logger = logging.getLogger(__name__)


def max_depth_limit():
    """The deepest max_depth the interpreter's recursion limit can handle."""
    return sys.getrecursionlimit() // FRAMES_PER_LEVEL


def is_mapping(value):
    """True for dicts and any other Mapping. None is not a mapping."""
    return isinstance(value, Mapping)


def is_ordered_sequence(value):
    """True for lists and tuples. Strings, bytes and None are not sequences."""
    return isinstance(value, (list, tuple))


def is_container(value):
    return is_mapping(value) or is_ordered_sequence(value)


class Sanitizer:
    """
    Filter operators out of documents according to a permission configuration.

    configuration maps group names to bitmasks, for example
    {'query': QUERY.ALL, 'update': UPDATE.FIELDS}. Groups that are left out
    allow no operators.
    """

    def __init__(self, configuration=None, catalog=OPERATORS, max_depth=MAX_DEPTH):
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise InvalidArgument(message='max_depth must be an integer.')
        if max_depth < 1:
            raise InvalidArgument(message='max_depth must be at least 1.')
        if max_depth > max_depth_limit():
            raise InvalidArgument(
                message='max_depth must be at most {}.'.format(max_depth_limit())
            )

        self.catalog = catalog
        self.max_depth = max_depth
        self.permissions = PermissionSet(configuration, catalog)
        self.resolver = GroupResolver(self.permissions)

    def filter(self, document, restrict=None):
        """
        Remove the operators that are not allowed from document.

        Mappings are changed in place and returned, lists and tuples are
        returned as new, compacted sequences. Anything else is returned as is.
        If restrict is given only the permissions of that group are used.
        """
        if not is_container(document):
            return document

        groups = self.active_groups(restrict)
        return self._filter(document, groups, 1, set())

    def _filter(self, document, groups, depth, ancestors):
        if depth > self.max_depth:
            logger.warning('Refusing to filter document deeper than %s', self.max_depth)
            raise DepthExceeded(self.max_depth)
        if id(document) in ancestors:
            logger.warning('Refusing to filter document with a reference cycle')
            raise DepthExceeded(self.max_depth, cycle=True)

        ancestors.add(id(document))
        try:
            if is_mapping(document):
                return self._filter_mapping(document, groups, depth, ancestors)
            return self._filter_sequence(document, groups, depth, ancestors)
        finally:
            ancestors.discard(id(document))

    def _filter_mapping(self, document, groups, depth, ancestors):
        if not isinstance(document, MutableMapping):
            document = dict(document)

        for key, value in list(document.items()):
            if is_container(value):
                document[key] = self._filter(value, groups, depth + 1, ancestors)

            if is_operator_token(key) and not self._permitted(key, groups):
                logger.debug(
                    'Stripped operator %s, not allowed by %s', key, groups or 'no group'
                )
                del document[key]

        return document

    def _filter_sequence(self, document, groups, depth, ancestors):
        kept = []
        for element in document:
            if is_container(element):
                element = self._filter(element, groups, depth + 1, ancestors)
            # drops emptied containers and falsy scalars alike
            if element:
                kept.append(element)

        if len(kept) != len(document):
            logger.debug(
                'Dropped %s empty elements from sequence', len(document) - len(kept)
            )
        if isinstance(document, tuple):
            return tuple(kept)
        return kept

    def _permitted(self, key, groups):
        if not groups:
            return False
        return all(self.resolver.allowed(group, key) for group in groups)

    def allowed(self, group, token):
        """Check if the operator token is allowed for the group."""
        return self.resolver.allowed(group, token)

    def active_groups(self, restrict=None):
        """Return the groups with allowed operators, optionally only restrict."""
        return self.resolver.active_groups(restrict)

    def resolve(self, group, bitmask):
        """Return the operators bitmask would enable for group."""
        return self.permissions.resolve(group, bitmask)

    def __repr__(self):
        return '<Sanitizer {!r}>'.format(self.permissions)
