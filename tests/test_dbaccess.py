"""Tests for the pymongo wrapper, pymongo itself is mocked."""

from unittest.mock import MagicMock

import pytest
from pymongo.collection import Collection
from pymongo.read_preferences import ReadPreference

from spynl_dbaccess import (
    CollectionWrapper,
    Database,
    DocumentNotFound,
    ForbiddenOperation,
)
from spynl_dbaccess.database import DEFAULT_PERMISSIONS
from spynl_queryfilter import QUERY, Sanitizer

RAISE = object()


def test_client_settings(mongo_client):
    Database('mongodb://localhost:27017', 'test_db', ssl=True, auth_mechanism='X')
    args, kwargs = mongo_client.call_args
    assert args == ('mongodb://localhost:27017',)
    assert kwargs['ssl'] is True
    assert kwargs['authMechanism'] == 'X'
    assert kwargs['tlsAllowInvalidCertificates'] is True


def test_codec_options(database, mongo_client):
    get_database = mongo_client.return_value.get_database
    args, kwargs = get_database.call_args
    assert args == ('test_db',)
    assert kwargs['codec_options'].tz_aware


def test_default_sanitizer(database):
    assert dict(database.sanitizer.permissions.masks) == DEFAULT_PERMISSIONS
    assert not database.sanitizer.allowed('query', '$where')


def test_custom_sanitizer(mongo_client):
    sanitizer = Sanitizer({'query': QUERY.ALL})
    database = Database('mongodb://localhost:27017', 'test_db', sanitizer=sanitizer)
    assert database.sanitizer is sanitizer


def test_attribute_access_on_db(database):
    pymongo_db = database.pymongo_db
    pymongo_db.users = MagicMock(spec=Collection)
    pymongo_db.not_a_collection = 'value'

    assert isinstance(database.users, CollectionWrapper)
    assert database.pymongo_users is pymongo_db.users
    assert database.pymongo_client is database._client
    with pytest.raises(AttributeError):
        database.not_a_collection


def test_item_access_on_db(database):
    assert isinstance(database['users'], CollectionWrapper)
    database.pymongo_db.get_collection.assert_called_with('users')
    with pytest.raises(ValueError):
        database[1]


collection_attributes = [
    ('with_options', RAISE),
    ('add_user', RAISE),
    ('pymongo_find_one', lambda c, x: x is c.pymongo_collection.find_one),
    ('pymongo_with_options', lambda c, x: x is c.pymongo_collection.with_options),
]


@pytest.mark.parametrize('name,test', collection_attributes)
def test_attribute_access_on_collection(name, test, collection):
    if test is RAISE:
        with pytest.raises(AttributeError):
            getattr(collection, name)
    else:
        assert test(collection, getattr(collection, name))


def test_secondary(collection):
    collection._secondary
    collection.pymongo_collection.with_options.assert_called_once_with(
        read_preference=ReadPreference.SECONDARY_PREFERRED
    )


def test_find_strips_operators(collection):
    collection.find({'$where': 'sleep(100)', 'a': {'$gt': 1, '$near': [1, 2]}})
    collection.pymongo_collection.find.assert_called_once_with(
        {'a': {'$gt': 1}}, None, max_time_ms=1, limit=10
    )


def test_find_without_filter(collection):
    collection.find()
    collection.pymongo_collection.find.assert_called_once_with(
        {}, None, max_time_ms=1, limit=10
    )


@pytest.mark.parametrize('limit,expected', [(None, 10), (0, 10), (5, 5), (50, 10)])
def test_find_limit(collection, limit, expected):
    collection.find({}, limit=limit)
    _, kwargs = collection.pymongo_collection.find.call_args
    assert kwargs['limit'] == expected


def test_find_projection(collection):
    collection.find({}, {'a': 1, 'b': {'$slice': 2}, 'c': {'$where': 1}})
    args, _ = collection.pymongo_collection.find.call_args
    assert args[1] == {'a': 1, 'b': {'$slice': 2}, 'c': {}}


def test_find_projection_as_list(collection):
    collection.find({}, projection=['a', 'b'])
    args, _ = collection.pymongo_collection.find.call_args
    assert args[1] == ['a', 'b']


def test_find_one(collection):
    collection.find_one({'$or': [{'a': 1}, {'$where': 'x'}]})
    collection.pymongo_collection.find_one.assert_called_once_with(
        {'$or': [{'a': 1}]}, None, max_time_ms=1
    )


def test_get(collection):
    collection.pymongo_collection.find_one.return_value = {'_id': 1}
    assert collection.get(1) == {'_id': 1}

    collection.pymongo_collection.find_one.return_value = None
    with pytest.raises(DocumentNotFound):
        collection.get(2)


def test_count_documents(collection):
    collection.count_documents({'a': {'$exists': True, '$where': 'x'}})
    secondary = collection.pymongo_collection.with_options.return_value
    secondary.count_documents.assert_called_once_with(
        {'a': {'$exists': True}}, maxTimeMS=1
    )


def test_update_one(collection):
    collection.update_one({'a': {'$ne': 1}}, {'$set': {'b': 1}, '$isolated': 1})
    collection.pymongo_collection.update_one.assert_called_once_with(
        {'a': {'$ne': 1}}, {'$set': {'b': 1}}
    )


def test_update_many(collection):
    collection.update_many(
        {'a': 1}, {'$push': {'b': {'$each': [1, 2]}}}, upsert=True
    )
    collection.pymongo_collection.update_many.assert_called_once_with(
        {'a': 1}, {'$push': {'b': {'$each': [1, 2]}}}, upsert=True
    )


@pytest.mark.parametrize('update', [{'b': 1}, {'$isolated': 1}, {}])
def test_update_needs_update_operators(collection, update):
    with pytest.raises(ForbiddenOperation):
        collection.update_one({'a': 1}, update)
    collection.pymongo_collection.update_one.assert_not_called()


@pytest.mark.parametrize('filter', [None, {}, {'$where': 'this.owner == "x"'}])
def test_update_needs_a_filter(collection, filter, caplog):
    with pytest.raises(ForbiddenOperation):
        collection.update_many(filter, {'$set': {'a': 1}})
    with pytest.raises(ForbiddenOperation):
        collection.update_one(filter, {'$set': {'a': 1}})
    collection.pymongo_collection.update_many.assert_not_called()
    collection.pymongo_collection.update_one.assert_not_called()
    assert 'Refusing to update' in caplog.text


def test_delete(collection):
    collection.delete_one({'a': 1, '$where': 'x'})
    collection.pymongo_collection.delete_one.assert_called_once_with({'a': 1})
    collection.delete_many({'a': {'$in': [1, 2]}})
    collection.pymongo_collection.delete_many.assert_called_once_with(
        {'a': {'$in': [1, 2]}}
    )


@pytest.mark.parametrize('filter', [None, {}, {'$where': 'x'}])
def test_delete_needs_a_filter(collection, filter):
    with pytest.raises(ForbiddenOperation):
        collection.delete_many(filter)
    with pytest.raises(ForbiddenOperation):
        collection.delete_one(filter)
    collection.pymongo_collection.delete_many.assert_not_called()
    collection.pymongo_collection.delete_one.assert_not_called()


def test_aggregate(collection):
    pipeline = [
        {'$match': {'a': {'$gt': 1}}},
        {'$where': 'x'},
        {'$group': {'_id': '$a', 'total': {'$sum': 1}}},
        {'$limit': 50},
    ]
    collection.aggregate(pipeline)
    secondary = collection.pymongo_collection.with_options.return_value
    secondary.aggregate.assert_called_once_with(
        [
            {'$match': {'a': {'$gt': 1}}},
            {'$group': {'_id': '$a', 'total': {'$sum': 1}}},
            {'$limit': 10},
        ],
        maxTimeMS=1,
    )


def test_aggregate_adds_a_limit(collection):
    collection.aggregate(({'$match': {'a': 1}},))
    secondary = collection.pymongo_collection.with_options.return_value
    args, _ = secondary.aggregate.call_args
    assert args[0] == [{'$match': {'a': 1}}, {'$limit': 10}]
