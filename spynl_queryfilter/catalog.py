"""
The catalog of MongoDB operators the filter knows about.

Operators are organised in groups (the context they are used in: a query
filter, an update, an aggregation pipeline or a projection) and every group is
divided into categories. A category is the unit of permission: it maps to one
bit of the group's bitmask. The bit of a category is its position in the
group's declaration, so the tuples below must only ever be appended to.
"""

from collections import namedtuple
from types import MappingProxyType

from spynl_queryfilter.exceptions import InvalidArgument, UnknownGroup

__all__ = [
    'OPERATOR_PREFIX',
    'DEFINITION',
    'OPERATORS',
    'Category',
    'OperatorCatalog',
    'canonical_token',
    'is_operator_token',
]

OPERATOR_PREFIX = '$'
# name of the single category of a group that is declared as a flat tuple
IMPLICIT_CATEGORY = 'OPERATORS'

# fmt: off
DEFINITION = (
    ('query', (
        ('COMPARISON', ('$gt', '$gte', '$in', '$lt', '$lte', '$ne', '$nin')),
        ('LOGICAL', ('$or', '$and', '$not', '$nor')),
        ('ELEMENT', ('$exists', '$type')),
        ('EVALUATION', ('$mod', '$regex', '$text', '$where')),
        ('GEOSPATIAL', ('$geoWithin', '$geoIntersects', '$near', '$nearSphere')),
        ('ARRAY', ('$all', '$elemMatch', '$size')),
        ('MODIFIERS', (
            '$comment', '$explain', '$hint', '$maxScan', '$maxTimeMS', '$max',
            '$min', '$returnKey', '$showDiskLoc', '$snapshot', '$query',
        )),
        ('SORT', ('$orderby', '$natural')),
    )),
    ('update', (
        ('FIELDS', (
            '$inc', '$mul', '$rename', '$setOnInsert', '$set', '$unset', '$min',
            '$max', '$currentDate',
        )),
        ('ARRAY', (
            '$', '$addToSet', '$pop', '$pullAll', '$pull', '$pushAll', '$push',
        )),
        ('MODIFIERS', ('$each', '$slice', '$sort', '$position')),
        ('BITWISE', ('$bit',)),
        ('ISOLATION', ('$isolated',)),
    )),
    ('pipeline', (
        ('STAGE', (
            '$project', '$match', '$redact', '$limit', '$skip', '$unwind',
            '$group', '$sort', '$geoNear', '$out',
        )),
        ('BOOLEAN', ('$and', '$or', '$not')),
        ('SET', (
            '$setEquals', '$setIntersection', '$setUnion', '$setDifference',
            '$setIsSubset', '$anyElementTrue', '$allElementsTrue',
        )),
        ('COMPARISON', ('$cmp', '$eq', '$gt', '$gte', '$lt', '$lte', '$ne')),
        ('ARITHMETIC', ('$add', '$divide', '$mod', '$multiply', '$subtract')),
        ('STRING', ('$concat', '$strcasecmp', '$substr', '$toLower', '$toUpper')),
        ('TEXT', ('$meta',)),
        ('ARRAY', ('$size',)),
        ('VARIABLE', ('$map', '$let')),
        ('LITERAL', ('$literal',)),
        ('DATE', (
            '$dayOfYear', '$dayOfMonth', '$dayOfWeek', '$year', '$month', '$week',
            '$hour', '$minute', '$second', '$millisecond',
        )),
        ('CONDITIONAL', ('$cond', '$ifNull')),
        ('ACCUMULATORS', (
            '$sum', '$avg', '$first', '$last', '$max', '$min', '$push',
            '$addToSet',
        )),
    )),
    ('projection', ('$', '$elemMatch', '$meta', '$slice')),
)
# fmt: on

Category = namedtuple('Category', ['name', 'bit', 'tokens'])


def is_operator_token(value):
    """
    Return True if value is a string that starts with the operator prefix.

    None and anything that is not a string is never an operator.
    """
    return isinstance(value, str) and value.startswith(OPERATOR_PREFIX)


def canonical_token(token):
    """Prefix token with the operator prefix if it does not carry it yet."""
    if not isinstance(token, str):
        raise InvalidArgument(
            message='Operator must be a string, got {}.'.format(type(token).__name__)
        )
    if token.startswith(OPERATOR_PREFIX):
        return token
    return OPERATOR_PREFIX + token


def group_key(group):
    """Group names are case insensitive, we store them lowercased."""
    if not isinstance(group, str):
        raise InvalidArgument(
            message='Group must be a string, got {}.'.format(type(group).__name__)
        )
    return group.lower()


class OperatorCatalog:
    """
    Immutable registry of operator groups, their categories and tokens.

    definition is an ordered iterable of (group, categories) pairs, where
    categories is either an ordered iterable of (category, tokens) pairs or,
    for a flat group, just the tokens.
    """

    def __init__(self, definition=DEFINITION):
        groups = {}
        masks = {}
        for group, categories in definition:
            group = group_key(group)
            if group in groups:
                raise InvalidArgument(message='Duplicate group {!r}.'.format(group))
            groups[group] = self._build_group(group, categories)
            masks[group] = self._build_masks(group, groups[group])

        self._groups = MappingProxyType(groups)
        self._masks = MappingProxyType(masks)

    @staticmethod
    def _build_group(group, categories):
        categories = tuple(categories)
        if categories and all(isinstance(c, str) for c in categories):
            categories = ((IMPLICIT_CATEGORY, categories),)
        if not categories:
            raise InvalidArgument(
                message='Group {!r} has no categories.'.format(group)
            )

        built = []
        seen = set()
        for index, (name, tokens) in enumerate(categories):
            name = name.upper()
            if name == 'ALL' or not name.isidentifier():
                raise InvalidArgument(
                    message='Invalid category name {!r} in group {!r}.'.format(
                        name, group
                    )
                )
            if name in (c.name for c in built):
                raise InvalidArgument(
                    message='Duplicate category {!r} in group {!r}.'.format(
                        name, group
                    )
                )
            tokens = tuple(tokens)
            for token in tokens:
                if not is_operator_token(token):
                    raise InvalidArgument(
                        message='{!r} is not an operator token.'.format(token)
                    )
                if token in seen:
                    raise InvalidArgument(
                        message='Operator {!r} occurs twice in group {!r}.'.format(
                            token, group
                        )
                    )
                seen.add(token)
            built.append(Category(name, 1 << index, tokens))
        return tuple(built)

    @staticmethod
    def _build_masks(group, categories):
        mask_type = namedtuple(
            '{}Masks'.format(group.capitalize()),
            [c.name for c in categories] + ['ALL'],
        )
        return mask_type(
            *[c.bit for c in categories], (1 << len(categories)) - 1
        )

    def _get_group(self, group):
        try:
            return self._groups[group_key(group)]
        except KeyError:
            raise UnknownGroup(group)

    def _get_category(self, group, category):
        if not isinstance(category, str):
            raise InvalidArgument(
                message='Category must be a string, got {}.'.format(
                    type(category).__name__
                )
            )
        for c in self._get_group(group):
            if c.name == category.upper():
                return c
        raise InvalidArgument(
            message='Unknown category {!r} in group {!r}.'.format(category, group)
        )

    @property
    def groups(self):
        return tuple(self._groups)

    def __contains__(self, group):
        return isinstance(group, str) and group.lower() in self._groups

    def categories(self, group):
        """Return the Category tuples of a group in declaration order."""
        return self._get_group(group)

    def categories_of(self, group):
        return tuple(c.name for c in self._get_group(group))

    def tokens_of(self, group, category):
        return self._get_category(group, category).tokens

    def tokens(self, group):
        """Return all the tokens of a group in declaration order."""
        return tuple(t for c in self._get_group(group) for t in c.tokens)

    def bit_of(self, group, category):
        return self._get_category(group, category).bit

    def all_of(self, group):
        return self.masks(group).ALL

    def masks(self, group):
        """
        Return a namedtuple with the bit of every category of the group and
        an ALL field that enables all of them.

        >>> OPERATORS.masks('query').LOGICAL
        2
        """
        self._get_group(group)
        return self._masks[group_key(group)]

    def __repr__(self):
        return '<OperatorCatalog {}>'.format(', '.join(self._groups))


OPERATORS = OperatorCatalog()
