"""
This module defines an intentionally leaky abstraction over the Pymongo
database and collecion objects.

The reason for this is that every filter, update, pipeline and projection
should pass through the operator filter before it reaches MongoDB, and that
reads should be limited in size and time.

Both the Database and CollectionWrapper allow direct access to pymongo
attributes by prefixing attribute lookup with `pymongo_`. So for example

db.users.pymongo_find_one would use the original find_one. Whereas
db.users.find_one would use our version, which filters operators first.
"""

import logging

from bson.codec_options import CodecOptions
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from pymongo.read_preferences import ReadPreference

from spynl_queryfilter import (
    PIPELINE,
    PROJECTION,
    QUERY,
    UPDATE,
    Sanitizer,
    is_mapping,
    is_operator_token,
)

__all__ = [
    'CollectionWrapper',
    'Database',
    'DocumentNotFound',
    'ForbiddenOperation',
]

# Server side javascript ($where), geo and query modifiers are not allowed by
# default.
DEFAULT_PERMISSIONS = {
    'query': QUERY.COMPARISON | QUERY.LOGICAL | QUERY.ELEMENT | QUERY.ARRAY,
    'update': UPDATE.ALL & ~UPDATE.ISOLATION,
    'pipeline': (
        PIPELINE.STAGE | PIPELINE.BOOLEAN | PIPELINE.COMPARISON | PIPELINE.ACCUMULATORS
    ),
    'projection': PROJECTION.ALL,
}
MAX_LIMIT = 1000
MAX_AGG_LIMIT = 5000
MAX_TIME_MS = 60 * 2 * 1000  # 2 minutes

logger = logging.getLogger(__name__)


class DocumentNotFound(PyMongoError):
    """Raised when a document cannot be found by the get method."""


class ForbiddenOperation(PyMongoError):
    """Raised when an update has no allowed update operators left."""


class Database:
    """A thin wrapper around a pymongo database object.

    Attributes prefixed with `pymongo_` are proxied to the pymongo database
    object.
    """

    def __init__(
        self,
        host=None,
        database_name=None,
        ssl=True,
        auth_mechanism=None,
        *args,
        sanitizer=None,
        **kwargs
    ):
        self._max_limit = kwargs.pop('max_limit', MAX_LIMIT)
        self._max_agg_limit = kwargs.pop('max_agg_limit', MAX_AGG_LIMIT)
        self._max_time_ms = kwargs.pop('max_time_ms', MAX_TIME_MS)
        if sanitizer is None:
            sanitizer = Sanitizer(DEFAULT_PERMISSIONS)
        self.sanitizer = sanitizer

        client_kwargs = {'ssl': ssl}
        if ssl:
            client_kwargs.update(
                tlsAllowInvalidHostnames=True, tlsAllowInvalidCertificates=True
            )
        if auth_mechanism:
            client_kwargs['authMechanism'] = auth_mechanism

        self._client = MongoClient(host, **client_kwargs)

        kwargs.setdefault(
            'codec_options', CodecOptions(uuid_representation=4, tz_aware=True)
        )

        self._db = self._client.get_database(database_name, *args, **kwargs)

    def __getattr__(self, name):
        """Fallback attribute access.

        If name is prefixed with `pymongo_` then we will call getattr on the
        pymongo database object.

        Otherwise we attempt to retrieve a collection and wrap it in
        CollectionWrapper.

        If what is returned in not a collection we raise AttributeError.
        """
        if name.lower().startswith('pymongo_'):
            return getattr(self._db, name.replace('pymongo_', ''))

        attr = getattr(self._db, name)
        if isinstance(attr, Collection):
            return CollectionWrapper(attr, self)

        raise AttributeError(
            "'{}' has no attribute '{}'".format(self.__class__.__name__, name)
        )

    def __getitem__(self, value):
        """Item access to retrieve a wrapped collection by name."""
        if not isinstance(value, str):
            raise ValueError('Collections can only be retrieved by name.')
        return CollectionWrapper(self.pymongo_db.get_collection(value), self)

    @property
    def pymongo_db(self):
        """Return the pymongo database object. For direct operations."""
        return self._db

    @property
    def pymongo_client(self):
        """Return the pymongo client object. For direct operations."""
        return self._client

    def __repr__(self):
        return '<wrapped %s' % self.pymongo_db


class CollectionWrapper:
    """A thin wrapper around a pymongo collection.

    Implements a number of methods with our defaults. Attributes prefixed with
    `pymongo_` are proxied to the pymongo collection object.
    """

    def __init__(self, collection, db):
        self._collection = collection
        self._db = db

    def __getattr__(self, name):
        """Fallback attribute access.

        If name prefixed with pymongo_ then we will get the attribute from
        the pymongo database object.

        Otherwise we raise AttributeError
        """
        if name.lower().startswith('pymongo_'):
            return getattr(self._collection, name.replace('pymongo_', ''))

        raise AttributeError(
            "'{}' has no attribute '{}'".format(self.__class__.__name__, name)
        )

    @property
    def pymongo_collection(self):
        return self._collection

    @property
    def _secondary(self):
        """Return a collection that will prefer the secondary in querying."""
        return self._collection.with_options(
            read_preference=ReadPreference.SECONDARY_PREFERRED
        )

    def _filter(self, filter):
        if filter is None:
            return {}
        return self._db.sanitizer.filter(filter, 'query')

    def _projection(self, projection):
        # a list of field names has no operators to filter
        if is_mapping(projection):
            return self._db.sanitizer.filter(projection, 'projection')
        return projection

    def _update(self, update):
        update = self._db.sanitizer.filter(update, 'update')
        if not any(is_operator_token(key) for key in update):
            allowed = self._db.sanitizer.permissions.allowed_in('update')
            raise ForbiddenOperation(
                'Must use one or more of the following '
                'operators for update: %s.' % ', '.join(sorted(allowed))
            )
        return update

    def get(self, id):
        document = self.pymongo_find_one({'_id': id})
        if not document:
            raise DocumentNotFound
        return document

    def find_one(self, filter=None, projection=None, **kwargs):
        kwargs.update(max_time_ms=self._db._max_time_ms)
        return self.pymongo_find_one(
            self._filter(filter), self._projection(projection), **kwargs
        )

    def find(self, filter=None, projection=None, **kwargs):
        kwargs.update(max_time_ms=self._db._max_time_ms)

        limit = kwargs.get('limit')
        if not limit or limit > self._db._max_limit:
            kwargs['limit'] = self._db._max_limit

        return self.pymongo_find(
            self._filter(filter), self._projection(projection), **kwargs
        )

    def count_documents(self, filter=None, **kwargs):
        kwargs.update(maxTimeMS=self._db._max_time_ms)
        return self._secondary.count_documents(self._filter(filter), **kwargs)

    def _required_filter(self, filter, action):
        filter = self._filter(filter)
        if not filter:
            # an emptied filter matches any document
            logger.warning(
                'Refusing to %s %s with an empty filter', action, self._collection.name
            )
            raise ForbiddenOperation(
                '{} needs a non-empty filter.'.format(action.capitalize())
            )
        return filter

    def delete_one(self, filter, **kwargs):
        return self.pymongo_delete_one(
            self._required_filter(filter, 'delete'), **kwargs
        )

    def delete_many(self, filter, **kwargs):
        return self.pymongo_delete_many(
            self._required_filter(filter, 'delete'), **kwargs
        )

    def update_one(self, filter, update, **kwargs):
        return self.pymongo_update_one(
            self._required_filter(filter, 'update'),
            self._update(update),
            **kwargs,
        )

    def update_many(self, filter, update, **kwargs):
        return self.pymongo_update_many(
            self._required_filter(filter, 'update'),
            self._update(update),
            **kwargs,
        )

    def aggregate(self, pipeline, **kwargs):
        kwargs.update(maxTimeMS=self._db._max_time_ms)

        pipeline = list(self._db.sanitizer.filter(pipeline, 'pipeline'))

        max_limit = self._db._max_agg_limit
        limit_set = False
        for stage in pipeline:
            if '$limit' in stage:
                limit_set = True
                if stage['$limit'] > max_limit:
                    stage['$limit'] = max_limit

        if not limit_set:
            pipeline.append({'$limit': max_limit})
        return self._secondary.aggregate(pipeline, **kwargs)
