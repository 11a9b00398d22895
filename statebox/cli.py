import functools
import json
import logging
from typing import Any, Callable, Optional, Union

import click
import yaml

from statebox._cogs.configs import serializers, storages
from statebox._core.engines import loggers

logger = logging.getLogger(__name__)

ListableStorage = Union[storages.FileStorage, storages.SQLiteStorage]

DECODERS = {
    'json': serializers.load_json,
    'yaml': serializers.load_yaml,
}


class LogFormatParamType(click.Choice):
    """ The names of the predefined log formats, case-insensitive. """

    def __init__(self) -> None:
        super().__init__(choices=[log_format.name.lower() for log_format in loggers.LogFormat],
                         case_sensitive=False)

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure the logging in all commands the same way. """
    @click.option('-v', '--verbose', is_flag=True, help="Log the debug messages too.")
    @click.option('-d', '--debug', is_flag=True, help="Log the debug messages of other libraries too.")
    @click.option('-q', '--quiet', is_flag=True, help="Log only the warnings and errors.")
    @click.option('--log-format', type=LogFormatParamType(), default='plain', show_default=True)
    @click.option('--log-refkey', type=str, help="The JSON field for the storage names.")
    @click.option('--log-prefix/--no-log-prefix', default=None,
                  help="Prefix the messages with the storage names (text formats only by default).")
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(
            *args: Any,
            verbose: bool,
            quiet: bool,
            debug: bool,
            log_format: loggers.LogFormat,
            log_prefix: Optional[bool],
            log_refkey: Optional[str],
            **kwargs: Any,
    ) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


def storage_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to build the storage from the options in all commands the same way."""
    @click.option('--path', type=click.Path(file_okay=False), help="A directory of a file storage.")
    @click.option('--suffix', type=str, default='.json', show_default=True)
    @click.option('--sqlite', type=click.Path(dir_okay=False, exists=True),
                  help="An existing database of an SQLite storage.")
    @click.option('--table', type=str, default='statebox', show_default=True)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(
            *args: Any,
            path: Optional[str],
            suffix: str,
            sqlite: Optional[str],
            table: str,
            **kwargs: Any,
    ) -> Any:
        storage: ListableStorage
        if path and sqlite:
            raise click.UsageError("Either --path or --sqlite can be used, not both.")
        elif path:
            storage = storages.FileStorage(path, suffix=suffix)
        elif sqlite:
            storage = storages.SQLiteStorage(sqlite, table=table)
        else:
            raise click.UsageError("Either --path or --sqlite is required.")
        logger.debug(f"Using the storage: {storage!r}")
        try:
            return fn(*args, storage=storage, **kwargs)
        finally:
            if isinstance(storage, storages.SQLiteStorage):
                storage.close()

    return wrapper


@click.version_option(prog_name='statebox')
@click.group(name='statebox', context_settings=dict(
    auto_envvar_prefix='STATEBOX',
))
def main() -> None:
    pass


@main.command(name='list')
@logging_options
@storage_options
def list_(
        storage: ListableStorage,
) -> None:
    """ List the names of all persisted states in the storage. """
    for name in storage.keys():
        click.echo(name)


@main.command()
@logging_options
@storage_options
@click.option('-f', '--format', 'input_format', type=click.Choice(list(DECODERS)), default='json',
              show_default=True, help="The format of the persisted records.")
@click.option('-o', '--output', type=click.Choice(['json', 'yaml']), default='json',
              show_default=True, help="The format to print the state in.")
@click.argument('name')
def show(
        storage: ListableStorage,
        input_format: str,
        output: str,
        name: str,
) -> None:
    """ Print the version and the state persisted under the name. """
    encoded = storage.get_item(name)
    if encoded is None:
        raise click.ClickException(f"No persisted state is found for {name!r}.")
    try:
        envelope = DECODERS[input_format](encoded)
        state = envelope['state']
    except Exception as e:
        raise click.ClickException(f"The persisted state of {name!r} cannot be decoded: {e}")
    version = envelope.get('version')
    click.echo(f"version: {'unversioned' if version is None else version}")
    if output == 'yaml':
        click.echo(yaml.safe_dump(state, sort_keys=False, allow_unicode=True).rstrip('\n'))
    else:
        click.echo(json.dumps(state, indent=2, ensure_ascii=False))


@main.command()
@logging_options
@storage_options
@click.argument('name')
def clear(
        storage: ListableStorage,
        name: str,
) -> None:
    """ Remove the state persisted under the name. """
    storage.remove_item(name)
    logger.info(f"The persisted state of {name!r} is removed.")
