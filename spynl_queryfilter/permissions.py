"""
Turning a permission configuration into the operators that are allowed.

A configuration maps a group name to a bitmask of the categories that should be
enabled for that group. A mask can be given as an integer, or as an expression
naming the categories, e.g. ``'logical | comparison'``.
"""

import re
from collections.abc import Mapping
from functools import lru_cache
from types import MappingProxyType

from marshmallow import RAISE, Schema, ValidationError, fields, pre_load

from spynl_queryfilter.catalog import OPERATORS, group_key
from spynl_queryfilter.exceptions import InvalidArgument

MASK_SEPARATOR = re.compile(r'[|,\s]+')


def parse_mask(expression, group, catalog=OPERATORS):
    """
    Parse a mask expression for a group into an integer.

    The expression consists of category names, ALL, or non-negative integers
    separated by '|', ',' or whitespace. Category names are case insensitive.

    >>> parse_mask('logical | comparison', 'query')
    3
    """
    masks = catalog.masks(group)
    mask = 0
    for part in MASK_SEPARATOR.split(expression.strip()):
        if not part:
            continue
        if part.isdecimal() and part.isascii():
            mask |= int(part)
            continue
        try:
            mask |= getattr(masks, part.upper())
        except AttributeError:
            raise InvalidArgument(
                message='Unknown category {!r} for group {!r}, choose from {}.'.format(
                    part, group, ', '.join(masks._fields)
                )
            )
    return mask


class Bitmask(fields.Field):
    """A non-negative integer mask, or a mask expression for one group."""

    default_error_messages = {
        **fields.Field.default_error_messages,
        'invalid': 'Must be a non-negative integer or a mask expression.',
    }

    def __init__(self, group, catalog=OPERATORS, **kwargs):
        self.group = group
        self.catalog = catalog
        super().__init__(**kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        # bool is a subclass of int
        if isinstance(value, bool):
            raise self.make_error('invalid')
        if isinstance(value, int):
            if value < 0:
                raise self.make_error('invalid')
            return value
        if isinstance(value, str):
            try:
                return parse_mask(value, self.group, self.catalog)
            except InvalidArgument as e:
                raise ValidationError(str(e))
        raise self.make_error('invalid')

    def _serialize(self, value, attr, obj, **kwargs):
        return value


class PermissionsSchema(Schema):
    """Base schema for permission configurations, see permissions_schema."""

    class Meta:
        unknown = RAISE

    @pre_load
    def lowercase_groups(self, data, **kwargs):
        if not isinstance(data, Mapping):
            raise ValidationError('Must be a mapping of group names to masks.')
        return {
            key.lower() if isinstance(key, str) else key: value
            for key, value in data.items()
        }


@lru_cache(maxsize=None)
def permissions_schema(catalog=OPERATORS):
    """Return a schema class with a Bitmask field for every group of catalog."""
    return PermissionsSchema.from_dict(
        {
            group: Bitmask(group, catalog, allow_none=True)
            for group in catalog.groups
        },
        name='PermissionConfigurationSchema',
    )


def load_configuration(configuration, catalog=OPERATORS):
    """
    Validate a configuration and return the mask of every group of the catalog.

    Groups that are not configured get a mask of 0.
    """
    if configuration is None:
        configuration = {}
    try:
        loaded = permissions_schema(catalog)().load(configuration)
    except ValidationError as e:
        raise InvalidArgument(
            message='Invalid permission configuration.',
            developer_message=e.messages,
        )
    return {group: loaded.get(group) or 0 for group in catalog.groups}


class PermissionSet:
    """
    The allowed operators of every group, derived once from a configuration.
    """

    def __init__(self, configuration=None, catalog=OPERATORS):
        self.catalog = catalog
        self.masks = MappingProxyType(load_configuration(configuration, catalog))
        self._allowed = MappingProxyType(
            {
                group: frozenset(self.resolve(group, mask))
                for group, mask in self.masks.items()
            }
        )

    def resolve(self, group, bitmask):
        """
        Return the operators that bitmask enables for group, in catalog order.

        A missing, zero or negative mask and an unknown group all resolve to
        no operators at all.
        """
        key = group_key(group)
        if bitmask is None:
            return []
        if isinstance(bitmask, bool) or not isinstance(bitmask, int):
            raise InvalidArgument(
                message='Bitmask must be an integer, got {}.'.format(
                    type(bitmask).__name__
                )
            )
        if bitmask <= 0 or key not in self.catalog:
            return []

        tokens = []
        for category in self.catalog.categories(key):
            if category.bit & bitmask:
                tokens.extend(category.tokens)
        return tokens

    def allowed_in(self, group):
        """Return the frozenset of allowed operators of a group."""
        return self._allowed.get(group_key(group), frozenset())

    def __repr__(self):
        return '<PermissionSet {}>'.format(
            ', '.join('{}={}'.format(g, m) for g, m in self.masks.items())
        )
