"""
Flat records decoded from Wercker v3 API responses.

Only the fields the approval flow reads are kept; anything else in the payload is ignored.
"""
import json
from collections import namedtuple

from wercker_gate.exception import DecodeError

Application = namedtuple('Application', ['id', 'name', 'url', 'owner_name'])
Pipeline = namedtuple('Pipeline', ['id', 'name', 'pipeline_name', 'manual_approval'])
SourceRun = namedtuple('SourceRun', ['id', 'result', 'status'])
Run = namedtuple(
    'Run',
    ['id', 'commit_hash', 'branch', 'status', 'result', 'message', 'pipeline', 'source_run']
)


class TriggerResponse(namedtuple('TriggerResponse', ['id', 'run_ids'])):
    """
    Response to triggering a pipeline. The run to approve is the first workflow item's run.
    """
    __slots__ = ()

    @property
    def run_id(self):
        return self.run_ids[0]


# Run statuses reported by Wercker.
STATUS_PENDING_APPROVAL = 'pendingapproval'
RESULT_PASSED = 'passed'


def load_json(body):
    """
    Parse a raw response body.

    Arguments:
        body (bytes or str): The response body.

    Returns:
        The parsed JSON value.

    Raises:
        DecodeError: if the body is not valid JSON.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode('utf-8')
        except UnicodeDecodeError as err:
            raise DecodeError(f'Response body is not valid UTF-8: {err}') from err
    try:
        return json.loads(body)
    except ValueError as err:
        raise DecodeError(f'Response body is not valid JSON: {err}') from err


def _expect_object(data, what):
    if not isinstance(data, dict):
        raise DecodeError(f'Expected a JSON object for {what}, got {type(data).__name__}')
    return data


def _nested(data, key):
    """
    Return the object stored under key, or an empty dict when it is missing or null.
    """
    value = data.get(key)
    if value is None:
        return {}
    return _expect_object(value, key)


def _pipeline_from_json(data):
    return Pipeline(
        id=data.get('id', ''),
        name=data.get('name', ''),
        pipeline_name=data.get('pipelineName', ''),
        manual_approval=bool(data.get('manualApproval', False)),
    )


def _source_run_from_json(data):
    return SourceRun(
        id=data.get('id', ''),
        result=data.get('result', ''),
        status=data.get('status', ''),
    )


def _run_from_json(data):
    data = _expect_object(data, 'run')
    return Run(
        id=data.get('id', ''),
        commit_hash=data.get('commitHash', ''),
        branch=data.get('branch', ''),
        status=data.get('status', ''),
        result=data.get('result', ''),
        message=data.get('message', ''),
        pipeline=_pipeline_from_json(_nested(data, 'pipeline')),
        source_run=_source_run_from_json(_nested(data, 'sourceRun')),
    )


def decode_application(body):
    """
    Decode the response of GET /api/v3/applications/{username}/{application}.
    """
    data = _expect_object(load_json(body), 'application')
    owner = _nested(data, 'owner')
    return Application(
        id=data.get('id', ''),
        name=data.get('name', ''),
        url=data.get('url', ''),
        owner_name=owner.get('name', ''),
    )


def decode_run(body):
    """
    Decode the response of GET /api/v3/runs/{id}.
    """
    return _run_from_json(load_json(body))


def decode_runs(body):
    """
    Decode the response of GET /api/v3/runs, a JSON list of run summaries.
    """
    data = load_json(body)
    if not isinstance(data, list):
        raise DecodeError(f'Expected a JSON list of runs, got {type(data).__name__}')
    return [_run_from_json(item) for item in data]


def decode_trigger_response(body):
    """
    Decode the response of POST /api/v3/runs.

    The id of the new run is nested in the workflow item list, not at the top level.

    Raises:
        DecodeError: if the payload is malformed or carries no workflow item run id.
    """
    data = _expect_object(load_json(body), 'trigger response')
    items = _nested(data, 'workflow').get('items') or []
    if not isinstance(items, list):
        raise DecodeError('Expected a JSON list for workflow items')

    run_ids = []
    for item in items:
        run_id = _nested(_expect_object(item, 'workflow item'), 'data').get('runId')
        if run_id:
            run_ids.append(run_id)
    if not run_ids:
        raise DecodeError('Trigger response does not contain a workflow item with a runId')

    return TriggerResponse(id=data.get('id', ''), run_ids=run_ids)
