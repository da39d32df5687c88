# luks-backup: Backups to intermittently attached LUKS encrypted disks.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""
Loading of the ``luks-backup`` configuration file.

The configuration file consists of shell style ``KEY=VALUE`` assignments,
for example:

.. code-block:: sh

   # The UUID of the backup volume.
   UUID="4b9e2c7a-0c55-4a6e-9f3b-1f0e5cf29a5e"
   KEYFILE="/root/backup.key"
   MOUNTROOT="/mnt/"
   REMOVEMOUNT=1
   BACKUP="/usr/bin/rsnapshot"

The supported keys are listed in :data:`CONFIG_KEYS`.
"""

# Standard library modules.
import dataclasses
import logging
import os
import shlex
from typing import Optional

# External dependencies.
from humanfriendly import (
    InvalidTimespan,
    coerce_boolean,
    compact,
    format_path,
    parse_path,
    parse_timespan,
)

# Modules included in our package.
from luks_backup.exceptions import ConfigurationError

# Public identifiers that require documentation.
__all__ = (
    'logger',
    'CONFIG_FILENAME',
    'CONFIG_KEYS',
    'DEFAULT_BACKUP_PROGRAM',
    'DEFAULT_MOUNT_ROOT',
    'Configuration',
    'find_config_file',
    'load_configuration',
    'parse_config_file',
)

# Initialize a logger for this module.
logger = logging.getLogger(__name__)

CONFIG_FILENAME = 'luks-backup.conf'
"""The base name of the configuration file (a string)."""

DEFAULT_MOUNT_ROOT = '/mnt/'
"""The default root of the mount point (a string)."""

DEFAULT_BACKUP_PROGRAM = '/usr/bin/rsnapshot'
"""The default backup program (a string)."""

CONFIG_KEYS = dict(
    UUID='volume_identifier',
    KEYFILE='key_file',
    MOUNTROOT='mount_root',
    REMOVEMOUNT='remove_mount_point',
    BACKUP='backup_program',
    BACKUP_ARGS='backup_arguments',
    TIMEOUT='backup_timeout',
)
"""A dictionary that maps configuration file keys to :class:`Configuration` fields."""


@dataclasses.dataclass(frozen=True)
class Configuration:

    """
    The immutable configuration of a single backup run.

    Use :func:`load_configuration()` to construct a :class:`Configuration`
    from a configuration file, or construct one directly when using the
    Python API.
    """

    volume_identifier: str = ''
    """The UUID of the encrypted backup volume (a string)."""

    key_file: str = ''
    """The pathname of the LUKS key file (a string, empty to ask for a passphrase)."""

    mount_root: str = DEFAULT_MOUNT_ROOT
    """The root of the mount point (a string, the volume identifier is appended)."""

    remove_mount_point: bool = True
    """Whether to remove the mount point after unmounting (a boolean)."""

    backup_program: str = DEFAULT_BACKUP_PROGRAM
    """The pathname of the backup program (a string)."""

    backup_arguments: str = ''
    """The arguments for the backup program (a string, split like a shell would)."""

    backup_timeout: Optional[float] = None
    """The maximum number of seconds the backup program may run (a number or :data:`None`)."""

    filename: Optional[str] = None
    """The pathname of the configuration file that was loaded (a string or :data:`None`)."""


def find_config_file():
    """
    Find the default configuration file.

    :returns: The pathname of the configuration file (a string) or
              :data:`None` when no configuration file exists.

    The following locations are checked:

    1. ``$XDG_CONFIG_HOME/luks-backup.conf`` (only when ``$XDG_CONFIG_HOME`` is set).
    2. ``~/.luks-backup.conf``
    """
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME')
    candidates = []
    if xdg_config_home:
        candidates.append(os.path.join(xdg_config_home, CONFIG_FILENAME))
    candidates.append(os.path.join(os.path.expanduser('~'), '.' + CONFIG_FILENAME))
    for filename in candidates:
        if os.path.isfile(filename):
            return filename


def load_configuration(filename=None, **overrides):
    """
    Load the configuration of a backup run.

    :param filename: The pathname of the configuration file to load (a
                     string). When this is :data:`None` the file is located
                     using :func:`find_config_file()`.
    :param overrides: Any keyword arguments override the values of the
                      corresponding :class:`Configuration` fields
                      (:data:`None` values are ignored).
    :returns: A :class:`Configuration` object.
    :raises: :exc:`.ConfigurationError` when the configuration
             file can't be read or contains invalid lines.
    """
    if not filename:
        filename = find_config_file()
    if filename:
        config = parse_config_file(filename)
    else:
        logger.debug("No configuration file found, using defaults.")
        config = Configuration()
    changes = dict((name, value) for name, value in overrides.items() if value is not None)
    return dataclasses.replace(config, **changes) if changes else config


def parse_config_file(filename):
    """
    Parse a configuration file.

    :param filename: The pathname of the configuration file (a string).
    :returns: A :class:`Configuration` object.
    :raises: :exc:`.ConfigurationError` when the configuration
             file can't be read or contains invalid lines.
    """
    logger.debug("Loading configuration file %s ..", format_path(filename))
    try:
        with open(filename) as handle:
            lines = handle.readlines()
    except EnvironmentError as e:
        raise ConfigurationError("Failed to load configuration file! (%s)" % e)
    values = dict(filename=filename)
    for line_number, line in enumerate(lines, start=1):
        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as e:
            raise ConfigurationError(syntax_error(filename, line_number, e))
        if tokens and tokens[0] == 'export':
            tokens.pop(0)
        if not tokens:
            continue
        if len(tokens) != 1 or '=' not in tokens[0]:
            raise ConfigurationError(syntax_error(filename, line_number, "expected KEY=VALUE"))
        key, _, value = tokens[0].partition('=')
        if key not in CONFIG_KEYS:
            logger.warning("Ignoring unknown key %s on line %i of %s.", key, line_number, filename)
            continue
        try:
            values[CONFIG_KEYS[key]] = coerce_value(key, value)
        except (InvalidTimespan, ValueError) as e:
            raise ConfigurationError(syntax_error(filename, line_number, e))
    return Configuration(**values)


def coerce_value(key, value):
    """
    Convert a configuration file value to the type of its :class:`Configuration` field.

    :param key: The configuration file key (a string).
    :param value: The value from the configuration file (a string).
    :returns: The converted value.
    :raises: :exc:`~exceptions.ValueError` or
             :exc:`~humanfriendly.InvalidTimespan` when
             the value can't be converted.
    """
    if key == 'REMOVEMOUNT':
        # Any nonzero number enables removal of the mount point.
        if value.strip().lstrip('-').isdigit():
            return int(value) != 0
        return coerce_boolean(value)
    elif key == 'TIMEOUT':
        return parse_timespan(value) if value.strip() else None
    elif key == 'KEYFILE':
        return parse_path(value) if value.strip() else ''
    return value


def syntax_error(filename, line_number, problem):
    """Format an error message about an invalid line in a configuration file."""
    return compact(
        "Invalid line {line} in configuration file {file}! ({problem})",
        line=line_number, file=format_path(filename), problem=problem,
    )
