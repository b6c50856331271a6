"""
Tests for the Wercker API client.
"""
import json
import unittest

import ddt
import responses
from requests.exceptions import ConnectionError as RequestsConnectionError

from wercker_gate.exception import DecodeError, TransportError
from wercker_gate.wercker_api import WerckerAPI
from wercker_gate.tests.wercker_helpers import (
    APPLICATION_URL,
    APPROVE_URL,
    RUNS_URL,
    TEST_APP_ID,
    TEST_APPLICATION,
    TEST_COMMIT,
    TEST_PIPELINE_ID,
    TEST_RUN_ID,
    TEST_SOURCE_RUN_ID,
    TEST_TOKEN,
    TEST_TRIGGERED_RUN_ID,
    TEST_USERNAME,
    fake_run,
    fake_run_summary,
    mock_application,
    mock_approve,
    mock_run_detail,
    mock_run_list,
    mock_trigger,
)


@ddt.ddt
class TestWerckerAPI(unittest.TestCase):
    """
    Test the requests issued to Wercker and the handling of their responses.
    """
    def setUp(self):
        super().setUp()
        self.api = WerckerAPI(TEST_TOKEN)

    @responses.activate
    def test_headers(self):
        mock_application()
        self.api.get_application(TEST_USERNAME, TEST_APPLICATION)
        request = responses.calls[0].request
        self.assertEqual(request.headers['Authorization'], f'Bearer {TEST_TOKEN}')
        self.assertEqual(request.headers['Content-Type'], 'application/json')

    @responses.activate
    def test_get_returns_raw_body(self):
        responses.add(responses.GET, APPLICATION_URL, body=b'{"id": "raw"}')
        self.assertEqual(self.api.get(APPLICATION_URL), b'{"id": "raw"}')

    @responses.activate
    def test_get_application(self):
        mock_application()
        self.assertEqual(self.api.get_application(TEST_USERNAME, TEST_APPLICATION).id, TEST_APP_ID)

    @responses.activate
    def test_list_runs(self):
        mock_run_list([fake_run_summary()])
        runs = self.api.list_runs(TEST_APP_ID, TEST_COMMIT)
        self.assertEqual([run.id for run in runs], [TEST_RUN_ID])

    @responses.activate
    def test_get_run(self):
        mock_run_detail(fake_run())
        self.assertEqual(self.api.get_run(TEST_RUN_ID).source_run.id, TEST_SOURCE_RUN_ID)

    @responses.activate
    def test_trigger_run(self):
        mock_trigger()
        trigger = self.api.trigger_run(TEST_PIPELINE_ID, 'master', TEST_COMMIT, TEST_SOURCE_RUN_ID, 'hello')
        self.assertEqual(trigger.run_id, TEST_TRIGGERED_RUN_ID)
        self.assertEqual(
            json.loads(responses.calls[0].request.body),
            {
                'pipelineId': TEST_PIPELINE_ID,
                'message': 'hello',
                'branch': 'master',
                'commitHash': TEST_COMMIT,
                'sourceRunId': TEST_SOURCE_RUN_ID,
            }
        )

    @responses.activate
    def test_approve_run(self):
        mock_approve()
        url, body = self.api.approve_run(TEST_RUN_ID)
        self.assertEqual(url, APPROVE_URL)
        self.assertEqual(json.loads(body), {'success': True})
        self.assertEqual(json.loads(responses.calls[0].request.body), {'runId': TEST_RUN_ID})

    def test_base_url(self):
        api = WerckerAPI(TEST_TOKEN, base_url='https://wercker.example.com/')
        self.assertEqual(api.url('runs'), 'https://wercker.example.com/api/v3/runs')

    @ddt.data(401, 404, 500, 503)
    @responses.activate
    def test_http_error(self, status_code):
        responses.add(responses.GET, f'{RUNS_URL}/{TEST_RUN_ID}', status=status_code, body='nope')
        with self.assertRaises(TransportError) as context:
            self.api.get_run(TEST_RUN_ID)
        self.assertEqual(context.exception.status_code, status_code)
        self.assertIn('nope', str(context.exception))

    @responses.activate
    def test_connection_error(self):
        responses.add(responses.POST, APPROVE_URL, body=RequestsConnectionError('refused'))
        with self.assertRaises(TransportError) as context:
            self.api.approve_run(TEST_RUN_ID)
        self.assertIsNone(context.exception.status_code)
        self.assertEqual(context.exception.url, APPROVE_URL)

    @responses.activate
    def test_decode_error(self):
        mock_application(body='<html>maintenance</html>')
        with self.assertRaises(DecodeError):
            self.api.get_application(TEST_USERNAME, TEST_APPLICATION)
