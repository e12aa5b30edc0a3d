"""
Tests for shared utilities.
Tests cover: Object ids, Error rendering, Date field, MongoDB request logging, Logging middleware.
"""
from datetime import date
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase, TestCase, override_settings
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from rest_framework import serializers
from drf_spectacular.generators import SchemaGenerator
from rest_framework.test import APITestCase

from utils import mongo
from utils.exceptions import flatten_errors
from utils.fields import CalendarDateField
from utils.ids import generate_object_id, is_valid_object_id


# =============================================================================
# UNIT TESTS - Helpers
# =============================================================================

class ObjectIdTests(SimpleTestCase):

    def test_generated_ids_are_valid_and_unique(self):
        ids = {generate_object_id() for _ in range(100)}

        self.assertEqual(len(ids), 100)
        for value in ids:
            self.assertTrue(is_valid_object_id(value))

    def test_invalid_ids(self):
        for value in ('invalid-id', "'invalid-id", '', '123', None, 42):
            self.assertFalse(is_valid_object_id(value), value)


class FlattenErrorsTests(SimpleTestCase):

    def test_field_errors_keep_order(self):
        errors = flatten_errors({
            'email': ['Please provide a valid email address'],
            'password': ['too short', 'needs a number'],
        })

        self.assertEqual(errors, [
            {'msg': 'Please provide a valid email address', 'path': 'email'},
            {'msg': 'too short', 'path': 'password'},
            {'msg': 'needs a number', 'path': 'password'},
        ])

    def test_nested_list_errors(self):
        errors = flatten_errors({'availableDates': [{}, {'date': ['Invalid date']}]})
        self.assertEqual(errors, [{'msg': 'Invalid date', 'path': 'availableDates.1.date'}])

    def test_non_field_errors(self):
        self.assertEqual(flatten_errors(['Bad request']), [{'msg': 'Bad request', 'path': 'non_field_errors'}])


class CalendarDateFieldTests(SimpleTestCase):

    def test_plain_date(self):
        self.assertEqual(CalendarDateField().run_validation('2030-05-01'), date(2030, 5, 1))

    def test_iso_datetime_keeps_date_part(self):
        self.assertEqual(CalendarDateField().run_validation('2030-05-01T10:30:00.000Z'), date(2030, 5, 1))

    def test_garbage_rejected(self):
        with self.assertRaises(serializers.ValidationError):
            CalendarDateField().run_validation('2030-05-01Tnonsense')


# =============================================================================
# UNIT TESTS - MongoDB logging
# =============================================================================

@override_settings(API_LOGGING_ENABLED=True)
class RequestLogTests(SimpleTestCase):
    """log_api_request builds the entry and hands it to the store."""

    def test_log_entry_written(self):
        with patch.object(mongo.store, 'insert', return_value=True) as insert:
            stored = mongo.log_api_request('/bookings', 'POST', None, {}, 201, 12.5)

        self.assertTrue(stored)
        entry = insert.call_args[0][0]
        self.assertEqual(entry['endpoint'], '/bookings')
        self.assertEqual(entry['method'], 'POST')
        self.assertEqual(entry['response_status'], 201)
        self.assertEqual(entry['execution_time_ms'], 12.5)
        self.assertIn('timestamp', entry)
        self.assertNotIn('results_count', entry)

    def test_results_count_recorded(self):
        with patch.object(mongo.store, 'insert', return_value=True) as insert:
            mongo.log_api_request('/trains/search', 'GET', 'abc', {'startStation': 'Delhi'}, 200, 3.0,
                                  results_count=2)

        self.assertEqual(insert.call_args[0][0]['results_count'], 2)

    @override_settings(API_LOGGING_ENABLED=False)
    def test_disabled_logging_never_connects(self):
        with patch.object(mongo.store, 'connect') as connect:
            self.assertFalse(mongo.log_api_request('/bookings', 'GET', None, {}, 200, 1.0))
        connect.assert_not_called()


class RequestLogStoreTests(SimpleTestCase):
    """Connection handling of the MongoDB store."""

    def test_insert_writes_to_collection(self):
        store = mongo.RequestLogStore()
        collection = MagicMock()

        with patch.object(store, 'connect', return_value=collection):
            self.assertTrue(store.insert({'endpoint': '/bookings'}))

        collection.insert_one.assert_called_once_with({'endpoint': '/bookings'})

    def test_unavailable_database_is_skipped(self):
        store = mongo.RequestLogStore()

        with patch.object(store, 'connect', return_value=None):
            self.assertFalse(store.insert({'endpoint': '/bookings'}))

    def test_write_errors_are_not_raised(self):
        store = mongo.RequestLogStore()
        collection = MagicMock()
        collection.insert_one.side_effect = PyMongoError('write failed')

        with patch.object(store, 'connect', return_value=collection):
            self.assertFalse(store.insert({'endpoint': '/bookings'}))

    def test_successful_connection_creates_indexes(self):
        store = mongo.RequestLogStore('mongodb://example:27017/', 'logs')
        client = MagicMock()

        with patch('utils.mongo.MongoClient', return_value=client):
            collection = store.connect()
            self.assertIs(store.connect(), collection)

        self.assertTrue(store.available)
        client.__getitem__.assert_called_once_with('logs')
        self.assertEqual(collection.create_index.call_count, len(mongo.INDEXES))

    def test_connection_failure_disables_store(self):
        store = mongo.RequestLogStore('mongodb://example:27017/', 'logs')
        client = MagicMock()
        client.admin.command.side_effect = ServerSelectionTimeoutError('no server')

        with patch('utils.mongo.MongoClient', return_value=client) as mongo_client:
            self.assertIsNone(store.connect())
            self.assertFalse(store.available)
            # The failure is remembered; no second connection attempt
            self.assertFalse(store.insert({'endpoint': '/bookings'}))
            self.assertEqual(mongo_client.call_count, 1)


# =============================================================================
# INTEGRATION TESTS - Middleware
# =============================================================================

class APILoggingMiddlewareTests(APITestCase):

    def test_booking_requests_are_logged(self):
        with patch('utils.middleware.log_api_request') as log:
            response = self.client.get('/bookings', {'user': 'abc'})

        self.assertEqual(response.status_code, 200)
        log.assert_called_once()
        kwargs = log.call_args.kwargs
        self.assertEqual(kwargs['endpoint'], '/bookings')
        self.assertEqual(kwargs['method'], 'GET')
        self.assertEqual(kwargs['request_params'], {'user': 'abc'})
        self.assertEqual(kwargs['response_status'], 200)
        self.assertEqual(kwargs['results_count'], 0)
        self.assertIsNone(kwargs['user_id'])

    def test_search_requests_are_logged(self):
        with patch('utils.middleware.log_api_request') as log:
            self.client.get('/trains/search', {'startStation': 'Delhi', 'endStation': 'Mumbai'})

        self.assertEqual(log.call_args.kwargs['endpoint'], '/trains/search')

    def test_other_requests_are_not_logged(self):
        with patch('utils.middleware.log_api_request') as log:
            self.client.get('/routes')

        log.assert_not_called()

    def test_logging_failure_does_not_break_request(self):
        with patch('utils.middleware.log_api_request', side_effect=RuntimeError('boom')):
            response = self.client.get('/bookings')

        self.assertEqual(response.status_code, 200)


class ApiRootTests(TestCase):

    def test_api_root(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)


class OpenAPISchemaTests(TestCase):

    def setUp(self):
        self.schema = SchemaGenerator().get_schema(request=None, public=True)

    def test_operation_ids_are_unique(self):
        operation_ids = [
            operation['operationId']
            for path in self.schema['paths'].values()
            for operation in path.values()
        ]
        self.assertEqual(len(operation_ids), len(set(operation_ids)))
        self.assertIn('bookings_list', operation_ids)
        self.assertIn('routes_list', operation_ids)
        self.assertIn('trains_list', operation_ids)

    def test_route_details_are_typed(self):
        train = self.schema['components']['schemas']['Train']
        self.assertIn('#/components/schemas/RouteDetails', str(train['properties']['routeDetails']))
        self.assertIn('startStation', self.schema['components']['schemas']['RouteDetails']['properties'])
