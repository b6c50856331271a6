#! /usr/bin/env python3

"""
Command-line script to approve the manual gate of a Wercker pipeline for a commit,
triggering the pipeline first when no run is waiting for approval.
"""

import logging
import os
import sys
import traceback

import click
import click_log
import yaml

from wercker_gate import approval
from wercker_gate.wercker_api import WERCKER_URL, WerckerAPI

logging.basicConfig(stream=sys.stdout, level=logging.INFO)
LOG = logging.getLogger(__name__)


@click.command("approve_pipeline")
@click.argument('username')
@click.argument('application')
@click.argument('pipeline_name')
@click.argument('commit_hash')
@click.argument('token', envvar='WERCKER_TOKEN')
@click.option(
    '--branch',
    default=approval.DEFAULT_BRANCH,
    help="Branch to use when the pipeline has to be triggered.",
)
@click.option(
    '--message',
    default=approval.DEFAULT_TRIGGER_MESSAGE,
    help="Message recorded on a triggered run.",
)
@click.option(
    '--base-url',
    default=WERCKER_URL,
    envvar='WERCKER_BASE_URL',
    help="Base URL of the Wercker server.",
)
@click.option(
    '--out_file',
    help="File location in which to write a YAML summary of the approved run. (optional)",
    type=click.File(mode='w', lazy=True),
    default=None,
)
@click_log.simple_verbosity_option(default='INFO')
def approve_pipeline(username, application, pipeline_name, commit_hash, token, branch, message, base_url, out_file):
    """
    Approve PIPELINE_NAME of USERNAME/APPLICATION for COMMIT_HASH, authenticating with TOKEN.
    TOKEN may be given through the WERCKER_TOKEN environment variable instead.
    """
    try:
        api = WerckerAPI(token, base_url=base_url)
        state = approval.new_state(username, application, pipeline_name, commit_hash, branch=branch)
        state, outcome = approval.approve_pipeline(api, state, message=message)
    except Exception as err:  # pylint: disable=broad-except
        traceback.print_exc()
        click.secho('{}'.format(err), fg='red')
        sys.exit(1)

    if outcome == approval.TRIGGERED:
        LOG.info('Successfully triggered and approved the pipeline.')
    else:
        LOG.info('Successfully approved the pipeline.')

    if out_file:
        dirname = os.path.dirname(out_file.name)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        yaml.safe_dump(
            {
                'application': state.application,
                'application_id': state.app_id,
                'pipeline': state.pipeline,
                'pipeline_id': state.pipeline_id,
                'run_id': state.run_id,
                'commit_hash': state.commit_hash,
                'outcome': outcome,
            },
            stream=out_file,
        )


if __name__ == "__main__":
    approve_pipeline()  # pylint: disable=no-value-for-parameter
