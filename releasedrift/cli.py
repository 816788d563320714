#!/usr/bin/env python3

import click

from releasedrift.commands.check import check_handler
from releasedrift.commands.serve import serve_handler
from releasedrift.commands.config import config_cmd


@click.group()
@click.version_option(package_name='releasedrift')
def cli():
    """releasedrift - Track BOSH deployment drift against GitHub releases.

    Resolves the version history of GitHub repositories, renders their BOSH
    manifests with ops and variables files, and tells how far behind each
    live deployment and BOSH release is.
    """
    pass


cli.add_command(check_handler)
cli.add_command(serve_handler)
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
