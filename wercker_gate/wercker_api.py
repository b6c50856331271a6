"""
A module to call the Wercker v3 REST API.
"""
import json
import logging

from requests import RequestException, Session

from wercker_gate import records
from wercker_gate.exception import TransportError

LOG = logging.getLogger(__name__)

WERCKER_URL = 'https://app.wercker.com'


class WerckerAPI:
    """
    A class for reading and triggering Wercker runs using a personal API token.
    """
    def __init__(self, auth_token, base_url=WERCKER_URL):
        self.base_url = base_url.rstrip('/')
        self.session = Session()
        self.session.headers['Authorization'] = f'Bearer {auth_token}'
        self.session.headers['Content-Type'] = 'application/json'

    def url(self, path):
        return f'{self.base_url}/api/v3/{path}'

    def _request(self, method, url, data=None):
        """
        Issue a request and return the raw response body.

        Raises:
            TransportError: on a connection problem or a non-2xx response.
        """
        LOG.debug('%s %s', method, url)
        try:
            response = self.session.request(method, url, data=data)
        except RequestException as err:
            raise TransportError(url, str(err)) from err

        if not 200 <= response.status_code < 300:
            raise TransportError(url, response.text, status_code=response.status_code)
        return response.content

    def get(self, url):
        """
        GET the url and return the raw response body.
        """
        return self._request('GET', url)

    def post(self, url, body):
        """
        POST body (a dict, sent as JSON) to the url and return the raw response body.
        """
        return self._request('POST', url, data=json.dumps(body))

    def get_application(self, username, application):
        """
        Fetch the application owned by username.

        Returns:
            records.Application
        """
        body = self.get(self.url(f'applications/{username}/{application}'))
        return records.decode_application(body)

    def list_runs(self, application_id, commit_hash):
        """
        List the run summaries of an application for a commit.

        Returns:
            list of records.Run
        """
        url = self.url(f'runs?applicationId={application_id}&commitHash={commit_hash}')
        return records.decode_runs(self.get(url))

    def get_run(self, run_id):
        """
        Fetch the full detail of a run. Summaries from list_runs lack the source run.

        Returns:
            records.Run
        """
        return records.decode_run(self.get(self.url(f'runs/{run_id}')))

    def trigger_run(self, pipeline_id, branch, commit_hash, source_run_id, message):
        """
        Start a new run of a pipeline.

        Returns:
            records.TriggerResponse
        """
        trigger_data = {
            'pipelineId': pipeline_id,
            'message': message,
            'branch': branch,
            'commitHash': commit_hash,
            'sourceRunId': source_run_id,
        }
        body = self.post(self.url('runs'), trigger_data)
        return records.decode_trigger_response(body)

    def approve_run(self, run_id):
        """
        Approve a run that is waiting on a manual gate.

        Returns:
            (str, bytes): the approve url and the raw response body.
        """
        url = self.url('trigger/runs/approve')
        return url, self.post(url, {'runId': run_id})
