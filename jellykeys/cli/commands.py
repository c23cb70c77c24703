"""
Command-line interface for jellykeys.
"""
import os
import sys
import logging
import click
from typing import Optional

from jellykeys import __version__
from jellykeys.api.jellyfin import JellyfinError
from jellykeys.core.config import load_config, create_default_config_file
from jellykeys.core.provider import JellyfinProvider
from jellykeys.core.resources import APIKeyState, ProviderError, mask_token

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def connect(ctx: click.Context) -> JellyfinProvider:
    """
    Build and configure the provider from the command-line options and config.

    Exits with status 1 if the provider cannot be configured.
    """
    provider = JellyfinProvider(version=__version__, config=ctx.obj['config'])
    try:
        provider.configure(
            endpoint=ctx.obj.get('endpoint'),
            username=ctx.obj.get('username'),
            password=ctx.obj.get('password'),
        )
    except ProviderError as e:
        fail(e)
    return provider


def fail(error: ProviderError) -> None:
    click.echo(f"Error: {error.summary}", err=True)
    click.echo(error.detail, err=True)
    sys.exit(1)


def echo_key(state: APIKeyState, show_tokens: bool) -> None:
    data = state.to_dict(redact=not show_tokens)
    click.echo(f"- {data['app_name']}")
    click.echo(f"    access_token: {data['access_token']}")
    click.echo(f"    date_created: {data['date_created']}")


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--endpoint', help='Jellyfin server URL (or JELLYFIN_ENDPOINT)')
@click.option('--username', help='Jellyfin username (or JELLYFIN_USERNAME)')
@click.option('--password', help='Jellyfin password (or JELLYFIN_PASSWORD)')
@click.version_option(__version__, prog_name='jellykeys')
@click.pass_context
def cli(ctx, config, verbose, endpoint, username, password):
    """Jellykeys - Manage the API keys of a Jellyfin media server"""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)
    ctx.obj['endpoint'] = endpoint
    ctx.obj['username'] = username
    ctx.obj['password'] = password


@cli.command()
@click.option('--file', '-f', type=click.Path(), default='config.py',
              help='Path to create the configuration file (default: config.py)')
def init(file):
    """Initialize a new configuration file with default settings"""
    if os.path.exists(file):
        if not click.confirm(f"File {file} already exists. Overwrite?"):
            click.echo("Aborted.")
            return

    if create_default_config_file(file):
        click.echo(f"Configuration file created at {file}")
        click.echo("Please edit this file with your server details before running other commands.")
    else:
        click.echo(f"Failed to create configuration file at {file}")
        sys.exit(1)


@cli.command(name='list')
@click.option('--show-tokens', is_flag=True, help='Print access tokens in full')
@click.pass_context
def list_keys(ctx, show_tokens):
    """List every API key on the server"""
    provider = connect(ctx)
    try:
        result = provider.get_client().get_keys()
    except JellyfinError as e:
        click.echo(f"Error retrieving API keys: {e}", err=True)
        sys.exit(1)

    click.echo("\n=== Jellyfin API Keys ===")
    if not result.items:
        click.echo("No API keys found.")
        return
    for key in result.items:
        echo_key(APIKeyState.from_key(key), show_tokens)
    click.echo(f"\nTotal: {len(result.items)}")


@cli.command()
@click.option('--app-name', '-a', help='Look the key up by application name')
@click.option('--access-token', '-t', help='Look the key up by access token')
@click.option('--show-tokens', is_flag=True, help='Print access tokens in full')
@click.pass_context
def show(ctx, app_name: Optional[str], access_token: Optional[str], show_tokens):
    """Show a single API key"""
    provider = connect(ctx)
    try:
        state = provider.api_key_data_source().read(app_name=app_name, access_token=access_token)
    except ProviderError as e:
        fail(e)
    echo_key(state, show_tokens)


@cli.command()
@click.argument('app_name')
@click.pass_context
def create(ctx, app_name):
    """Create an API key for APP_NAME and print its token"""
    provider = connect(ctx)
    try:
        state = provider.api_key_resource().create(app_name)
    except ProviderError as e:
        fail(e)
    click.echo(f"Created API key for {state.app_name}")
    click.echo(f"access_token: {state.access_token}")
    click.echo(f"date_created: {state.date_created}")


@cli.command()
@click.argument('access_token')
@click.pass_context
def delete(ctx, access_token):
    """Revoke the API key with ACCESS_TOKEN"""
    provider = connect(ctx)
    resource = provider.api_key_resource()
    try:
        resource.delete(APIKeyState(id=access_token, access_token=access_token))
    except ProviderError as e:
        fail(e)
    click.echo(f"Deleted API key {mask_token(access_token)}")


@cli.command(name='import')
@click.argument('access_token')
@click.option('--show-tokens', is_flag=True, help='Print access tokens in full')
@click.pass_context
def import_key(ctx, access_token, show_tokens):
    """Import an existing API key by ACCESS_TOKEN and show its state"""
    provider = connect(ctx)
    resource = provider.api_key_resource()
    try:
        state = resource.read(resource.import_state(access_token))
    except ProviderError as e:
        fail(e)
    if state is None:
        click.echo(f"API key {mask_token(access_token)} does not exist.", err=True)
        sys.exit(1)
    echo_key(state, show_tokens)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
