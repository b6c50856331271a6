"""
Find the run of a manually-gated Wercker pipeline for a commit and approve it.

The flow is threaded through an ApprovalState: each step takes the state built so far and
returns a copy with the values it learned filled in.
"""
import json
import logging
from collections import namedtuple

from wercker_gate.exception import DecodeError, GateError, NotFoundError, TransportError, WerckerLookupError
from wercker_gate.records import RESULT_PASSED, STATUS_PENDING_APPROVAL

LOG = logging.getLogger(__name__)

DEFAULT_BRANCH = 'master'
DEFAULT_TRIGGER_MESSAGE = 'auto-triggered-002'

# Outcomes of approve_pipeline.
APPROVED = 'approved'
TRIGGERED = 'triggered'

ApprovalState = namedtuple(
    'ApprovalState',
    [
        'username', 'application', 'pipeline', 'commit_hash', 'branch',
        'app_id', 'pipeline_id', 'source_id', 'run_id',
    ]
)


def new_state(username, application, pipeline, commit_hash, branch=DEFAULT_BRANCH):
    """
    Create the state for one invocation; the ids are filled in as the flow learns them.
    """
    return ApprovalState(
        username=username,
        application=application,
        pipeline=pipeline,
        commit_hash=commit_hash,
        branch=branch,
        app_id='',
        pipeline_id='',
        source_id='',
        run_id='',
    )


def resolve_application(api, state):
    """
    Look up the application id.

    Raises:
        WerckerLookupError: if the application can't be fetched or decoded.
    """
    try:
        application = api.get_application(state.username, state.application)
    except (TransportError, DecodeError) as err:
        raise WerckerLookupError(
            f'Unable to look up application {state.username}/{state.application}: {err}'
        ) from err

    state = state._replace(app_id=application.id)
    LOG.info(
        '%s (%s) pipeline=%s commitHash=%s',
        state.application, state.app_id, state.pipeline, state.commit_hash
    )
    return state


def list_runs(api, state):
    """
    List the runs of the application for the commit.

    Raises:
        WerckerLookupError: if the runs can't be fetched or decoded.
    """
    try:
        return api.list_runs(state.app_id, state.commit_hash)
    except (TransportError, DecodeError) as err:
        raise WerckerLookupError(
            f'Unable to list runs of application {state.app_id} for commit {state.commit_hash}: {err}'
        ) from err


def approve_run(api, state):
    """
    Approve state.run_id and log the server's answer.
    """
    url, body = api.approve_run(state.run_id)
    LOG.info('Approved pipeline=%s (%s), runID=%s', state.pipeline, state.pipeline_id, state.run_id)
    show_response(url, body)
    return state


def show_response(url, body):
    """
    Log an API response as indented JSON, or as text when it isn't JSON.
    """
    LOG.info('Request: URL is %s', url)
    try:
        data = json.loads(body)
    except ValueError:
        LOG.info('Response: %s', body.decode('utf-8', 'replace') if isinstance(body, bytes) else body)
        return
    LOG.info('Response: %s', json.dumps(data, indent=2))


def find_and_approve_pending_run(api, state, runs):
    """
    Scan the runs for the commit and pipeline, approving the first one waiting on the manual gate.

    Returns:
        (ApprovalState, bool): the updated state and whether a run was approved.

    Raises:
        GateError: if the pending run's source run did not pass.
        NotFoundError: if no matching run belongs to a manual-approval pipeline.
    """
    has_manual = False

    for summary in runs:
        if summary.commit_hash != state.commit_hash or summary.pipeline.pipeline_name != state.pipeline:
            continue

        # Summaries in the run list are missing the source run, so fetch the full record.
        run = api.get_run(summary.id)
        state = state._replace(source_id=run.source_run.id)
        LOG.info(
            'runId=%s pipeline=%s (%s) status=%s',
            run.id, run.pipeline.pipeline_name, run.pipeline.id, run.status
        )

        if run.pipeline.name != state.pipeline or not run.pipeline.manual_approval:
            continue

        has_manual = True
        state = state._replace(pipeline_id=run.pipeline.id)
        if run.status != STATUS_PENDING_APPROVAL:
            continue

        if run.source_run.result != RESULT_PASSED:
            raise GateError("previous pipeline didn't pass so approval is not done.")

        state = approve_run(api, state._replace(run_id=run.id))
        return state, True

    if not has_manual:
        raise NotFoundError('approval pipeline does not exist for this run')
    return state, False


def trigger_and_approve(api, state, message=DEFAULT_TRIGGER_MESSAGE):
    """
    Trigger a new run of the recorded pipeline and approve it.
    """
    trigger = api.trigger_run(state.pipeline_id, state.branch, state.commit_hash, state.source_id, message)
    state = state._replace(run_id=trigger.run_id)
    LOG.info('Triggered pipeline=%s (%s), runID=%s', state.pipeline, state.pipeline_id, state.run_id)
    return approve_run(api, state)


def approve_pipeline(api, state, message=DEFAULT_TRIGGER_MESSAGE):
    """
    Approve the manual gate of state.pipeline for state.commit_hash, triggering a run first
    when none is waiting for approval.

    Arguments:
        api (WerckerAPI): client for the Wercker API.
        state (ApprovalState): the invocation's parameters, from new_state.
        message (str): message recorded on a triggered run.

    Returns:
        (ApprovalState, str): the final state and APPROVED or TRIGGERED.

    Raises:
        WerckerLookupError: if the application or its runs can't be looked up.
        GateError: if the pending run's source run did not pass.
        NotFoundError: if there is no manual-approval pipeline for the commit.
        TransportError, DecodeError: if a later call fails.
    """
    state = resolve_application(api, state)
    runs = list_runs(api, state)

    state, approved = find_and_approve_pending_run(api, state, runs)
    if approved:
        return state, APPROVED

    LOG.info('There is no pending approval: so trigger the pipeline again')
    return trigger_and_approve(api, state, message), TRIGGERED
