"""
Handles the 'check' command: one refresh cycle, printed.

Default output is a single JSON document on stdout; --yaml and --pretty
switch to YAML or rich tables. Logs go to stderr.
"""

import json

import click
import yaml

from ..app import build_snapshot_builder
from ..cli_utils import standard_command, config_option, load_app_config
from ..exit_codes import PartialSuccessError
from ..render import render_snapshot


@click.command(name='check')
@config_option
@click.option('--yaml', 'as_yaml', is_flag=True, help='Output the snapshot as YAML')
@click.option('--pretty', is_flag=True, help='Display as formatted tables')
@click.option('--no-deployments', is_flag=True, help='Only resolve releases, skip the BOSH director')
@click.option('--fail-on-error', is_flag=True, help='Exit with code 71 when any entity is errored')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@standard_command
def check_handler(config_path, as_yaml, pretty, no_deployments, fail_on_error, verbose):
    """Resolve every release source and correlate deployments once.

    Examples:

    \b
        releasedrift check                      # JSON on stdout
        releasedrift check --pretty             # Tables
        releasedrift check --yaml -c prod.yml   # YAML, explicit config
        releasedrift check --no-deployments     # GitHub only
    """
    if as_yaml and pretty:
        raise click.UsageError("--yaml and --pretty are mutually exclusive")

    config = load_app_config(config_path, 'debug' if verbose else None)
    builder = build_snapshot_builder(config, with_deployments=not no_deployments)
    snapshot = builder.build()

    if pretty:
        render_snapshot(snapshot)
    elif as_yaml:
        click.echo(yaml.safe_dump(snapshot.to_dict(), sort_keys=False, default_flow_style=False), nl=False)
    else:
        click.echo(json.dumps(snapshot.to_dict(), ensure_ascii=False))

    if fail_on_error and snapshot.error_count:
        raise PartialSuccessError(
            f"refresh completed with {snapshot.error_count} error(s)",
            failed=snapshot.error_count,
        )
