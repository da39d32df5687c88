# luks-backup: Backups to intermittently attached LUKS encrypted disks.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""
Usage: luks-backup [OPTIONS]

Back up to a LUKS encrypted external disk that isn't always attached.

The backup volume is located by its filesystem UUID. When the volume isn't
attached the program exits with status 66 and doesn't touch anything else,
which makes it safe to run periodically (e.g. from cron). When the volume is
attached, the backup process consists of several steps:

1. The encrypted volume is opened using cryptsetup, either with the key file
   given in the configuration file or by asking for the passphrase.

2. The decrypted filesystem is mounted on the mount point (the configured
   mount root followed by the UUID). The mount point is created when it
   doesn't exist yet.

3. The backup program (rsnapshot by default) is run. Its exit status is
   reported but doesn't change the outcome of the run.

4. The filesystem is unmounted (and the mount point removed, if configured)
   and the encrypted volume is closed. This also happens when one of the
   previous steps fails.

The configuration file contains KEY=VALUE lines. When no configuration file
is given, $XDG_CONFIG_HOME/luks-backup.conf and ~/.luks-backup.conf are
tried. The following keys are supported:

- UUID: The filesystem UUID of the encrypted volume (required).
- KEYFILE: The LUKS key file (optional on a terminal).
- MOUNTROOT: The root of the mount point (defaults to /mnt/).
- REMOVEMOUNT: Nonzero to remove the mount point afterwards (defaults to 1).
- BACKUP: The backup program (defaults to /usr/bin/rsnapshot).
- BACKUP_ARGS: Arguments for the backup program.
- TIMEOUT: The maximum runtime of the backup program (e.g. '6h').

Supported options:

  -c, --config=FILE

    Load the configuration from FILE instead of the default locations.

  -i, --interval=ARGUMENTS

    Pass ARGUMENTS to the backup program (overrides BACKUP_ARGS). When the
    backup program is rsnapshot this is the interval (e.g. 'daily').

  -t, --timeout=TIMESPAN

    Terminate the backup program when it runs longer than TIMESPAN
    (overrides TIMEOUT). The volume is still unmounted and closed.

  --no-lock

    By default an advisory lock in /run/lock prevents overlapping runs
    against the same volume. This option disables the lock.

  --disable-notifications

    By default a desktop notification is shown (using notify-send) before the
    backup starts and after the backup finishes. The use of this option
    disables the notifications (notify-send will not be called at all).

  -v, --verbose

    Make more noise (increase logging verbosity). Can be repeated.

  -q, --quiet

    Make less noise (decrease logging verbosity). Can be repeated.

  -h, --help

    Show this message and exit.

Exit status: 0 (success), 64 (usage error), 66 (volume not found), 73 (mount
point can't be created), 75 (volume in use by another run), 77 (not running
as root), 78 (invalid configuration). Failures of cryptsetup, mount or umount
propagate their exit status.
"""

# Standard library modules.
import getopt
import logging
import sys

# External dependencies.
import coloredlogs
from humanfriendly import parse_timespan
from humanfriendly.terminal import usage, warning

# Modules included in our package.
from luks_backup import LuksBackup
from luks_backup.exceptions import EX_USAGE, LuksBackupError, MissingBackupDiskError

# Initialize a logger.
logger = logging.getLogger(__name__)


def main():
    """Command line interface for the ``luks-backup`` program."""
    # Initialize logging to the terminal and system log.
    coloredlogs.install(syslog=True)
    # Parse the command line arguments.
    config_overrides = dict()
    program_opts = dict()
    try:
        options, arguments = getopt.getopt(sys.argv[1:], 'c:i:t:vqh', [
            'config=', 'interval=', 'timeout=', 'no-lock',
            'disable-notifications', 'verbose', 'quiet', 'help',
        ])
        for option, value in options:
            if option in ('-c', '--config'):
                program_opts['config_file'] = value
            elif option in ('-i', '--interval'):
                config_overrides['backup_arguments'] = value
            elif option in ('-t', '--timeout'):
                config_overrides['backup_timeout'] = parse_timespan(value)
            elif option == '--no-lock':
                program_opts['lock_enabled'] = False
            elif option == '--disable-notifications':
                program_opts['notifications_enabled'] = False
            elif option in ('-v', '--verbose'):
                coloredlogs.increase_verbosity()
            elif option in ('-q', '--quiet'):
                coloredlogs.decrease_verbosity()
            elif option in ('-h', '--help'):
                usage(__doc__)
                return
            else:
                raise Exception("Unhandled option! (programming error)")
        if arguments:
            msg = "Expected no positional arguments! (got %i)"
            raise Exception(msg % len(arguments))
    except Exception as e:
        warning("Error: %s", e)
        sys.exit(EX_USAGE)
    try:
        # Initialize the program with the command line
        # options and execute the backup.
        program_opts['config_overrides'] = config_overrides
        LuksBackup(**program_opts).execute()
    except LuksBackupError as e:
        if isinstance(e, MissingBackupDiskError):
            # The backup disk not being attached is
            # expected, it shouldn't alarm anyone.
            logger.info("Skipping backup: %s", e)
        else:
            # Known problems shouldn't produce
            # an intimidating traceback to users.
            logger.error("Aborting due to error: %s", e)
        sys.exit(e.exit_status)
    except Exception:
        # Unhandled exceptions do get a traceback,
        # because it may help fix programming errors.
        logger.exception("Aborting due to unhandled exception!")
        sys.exit(1)
