import json

import click

from ..config import get_config_path, load_config, parse_config, mask_secrets
from ..cli_utils import standard_command, config_option


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("validate")
@config_option
@standard_command
def validate_config(config_path):
    """Validate the configuration file.

    Exits with code 66 and prints the first problem found when the
    configuration is invalid.
    """
    config = parse_config(load_config(config_path))
    print(json.dumps({
        "valid": True,
        "config_path": str(get_config_path(config_path)),
        "manifest_releases": [s.name for s in config.github.manifest_releases],
        "generic_releases": [s.name for s in config.github.generic_releases],
    }, ensure_ascii=False))


@config_cmd.command("show")
@config_option
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSON")
@click.option("--path", is_flag=True, help="Show the config file path being used")
@standard_command
def show_config(config_path, pretty, path):
    """Show the current configuration with all merges applied.

    Secrets (passwords, client secrets, tokens) are masked.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path(config_path))}))
        return

    config = mask_secrets(load_config(config_path))
    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))
