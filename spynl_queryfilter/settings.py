"""Build a Sanitizer from flat, ini style settings."""

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate

from spynl_queryfilter.catalog import OPERATORS
from spynl_queryfilter.exceptions import InvalidArgument
from spynl_queryfilter.permissions import Bitmask
from spynl_queryfilter.sanitizer import MAX_DEPTH, Sanitizer

PREFIX = 'spynl.queryfilter.'


class QueryFilterSettings(Schema):
    """
    Schema for the ini settings of the query filter.

    All values are read as strings from the ini file, masks may be written as
    expressions, e.g.

        spynl.queryfilter.query = comparison | logical | element
        spynl.queryfilter.update = all
    """

    query = Bitmask(
        'query',
        data_key=PREFIX + 'query',
        metadata={'description': 'Enabled categories of query operators.'},
    )
    update = Bitmask(
        'update',
        data_key=PREFIX + 'update',
        metadata={'description': 'Enabled categories of update operators.'},
    )
    pipeline = Bitmask(
        'pipeline',
        data_key=PREFIX + 'pipeline',
        metadata={'description': 'Enabled categories of aggregation operators.'},
    )
    projection = Bitmask(
        'projection',
        data_key=PREFIX + 'projection',
        metadata={'description': 'Enabled categories of projection operators.'},
    )
    max_depth = fields.Integer(
        data_key=PREFIX + 'max_depth',
        load_default=MAX_DEPTH,
        validate=validate.Range(min=1),
        metadata={
            'description': 'Documents nested deeper than this are refused instead '
            'of filtered.'
        },
    )

    class Meta:
        unknown = EXCLUDE


def sanitizer_from_settings(settings):
    """
    Return a Sanitizer configured by the spynl.queryfilter.* settings.

    Settings that do not belong to the query filter are ignored.
    """
    try:
        loaded = QueryFilterSettings().load(
            {k: v for k, v in settings.items() if k.startswith(PREFIX)}
        )
    except ValidationError as e:
        raise InvalidArgument(
            message='Invalid query filter settings.', developer_message=e.messages
        )

    max_depth = loaded.pop('max_depth')
    return Sanitizer(loaded, catalog=OPERATORS, max_depth=max_depth)
