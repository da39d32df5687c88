# Test suite for the `luks-backup' Python package.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""Test suite for the `luks-backup` package."""

# Standard library modules.
import contextlib
import fcntl
import logging
import os
import stat

# External dependencies.
from executor import ExternalCommand, ExternalCommandFailed, execute, which
from humanfriendly import Timer
from humanfriendly.testing import MockedProgram, TemporaryDirectory, TestCase, run_cli
from linux_utils.luks import TemporaryKeyFile, create_encrypted_filesystem, create_image_file
from mock import patch

# The module we're testing.
from luks_backup import LuksBackup, WorkflowState
from luks_backup.cli import main
from luks_backup.config import Configuration, find_config_file, load_configuration
from luks_backup.exceptions import (
    EX_CONFIG,
    EX_NOINPUT,
    EX_NOPERM,
    EX_OK,
    EX_TEMPFAIL,
    EX_USAGE,
    ConfigurationError,
    FailedToLockError,
    FailedToMountError,
    FailedToUnlockError,
    FailedToUnmountError,
    InsufficientPrivilegesError,
    MissingBackupDiskError,
    MountPointCreationError,
    UsageError,
    VolumeBusyError,
)
from luks_backup.services import CryptoService, MountService

# Initialize a logger for this module.
logger = logging.getLogger(__name__)

# Configuration defaults.
VOLUME_UUID = '4b9e2c7a-0c55-4a6e-9f3b-1f0e5cf29a5e'
MAPPING_NAME = 'crypt-%s' % VOLUME_UUID
MAPPED_DEVICE = '/dev/mapper/%s' % MAPPING_NAME
IMAGE_FILE = '/tmp/luks-backup.img'
KEY_FILE = '/tmp/luks-backup.key'


class LuksBackupTestCase(TestCase):

    """:mod:`unittest` compatible container for `luks-backup` tests."""

    def setUp(self):
        """Create a temporary directory that's cleaned up after every test."""
        super(LuksBackupTestCase, self).setUp()
        self.calls = []
        self.temporary_directory = TemporaryDirectory()
        self.directory = self.temporary_directory.__enter__()
        self.addCleanup(self.temporary_directory.__exit__, None, None, None)

    def create_program(self, attached=True, open_status=0, close_status=0,
                       mount_status=0, unmount_status=0, **config_options):
        """Create a :class:`.LuksBackup` object that uses fake services."""
        device_directory = os.path.join(self.directory, 'by-uuid')
        if not os.path.isdir(device_directory):
            os.mkdir(device_directory)
        if attached:
            touch(os.path.join(device_directory, VOLUME_UUID))
        config_options.setdefault('volume_identifier', VOLUME_UUID)
        config_options.setdefault('key_file', os.path.join(self.directory, 'backup.key'))
        config_options.setdefault('mount_root', os.path.join(self.directory, 'mnt-'))
        config_options.setdefault('backup_program', 'true')
        return LuksBackup(
            config=Configuration(**config_options),
            crypto_service=FakeCryptoService(self.calls, open_status, close_status),
            device_directory=device_directory,
            interactive=False,
            lock_directory=self.directory,
            mount_service=FakeMountService(self.calls, mount_status, unmount_status),
            notifications_enabled=False,
            superuser_privileges=True,
        )

    @property
    def mount_point(self):
        """The mount point used by :func:`create_program()`."""
        return os.path.join(self.directory, 'mnt-' + VOLUME_UUID)

    def test_usage(self):
        """Test the usage message."""
        for option in '-h', '--help':
            exit_code, output = run_cli(main, option)
            assert exit_code == EX_OK
            assert "Usage:" in output

    def test_invalid_arguments(self):
        """Test the handling of incorrect command line arguments."""
        # Unknown options should report a usage error.
        exit_code, output = run_cli(main, '--foo', merged=True)
        assert exit_code == EX_USAGE
        assert "Error" in output
        # Positional arguments should report a usage error.
        exit_code, output = run_cli(main, 'daily', merged=True)
        assert exit_code == EX_USAGE
        assert "Error" in output
        # Invalid timeouts should report a usage error.
        exit_code, output = run_cli(main, '--timeout=soon', merged=True)
        assert exit_code == EX_USAGE

    def test_privileges_checked_first(self):
        """Make sure the lack of superuser privileges is reported before configuration errors."""
        program = self.create_program(volume_identifier='', mount_root='')
        program.superuser_privileges = False
        with self.assertRaises(InsufficientPrivilegesError) as context:
            program.execute()
        assert context.exception.exit_status == EX_NOPERM
        assert self.calls == []
        # The same thing through the command line interface, this time with
        # a configuration file that doesn't even exist.
        with patch('os.getuid', return_value=1000):
            exit_code, output = run_cli(main, '--config=/non/existing/file.conf', merged=True)
            assert exit_code == EX_NOPERM

    def test_missing_settings(self):
        """Make sure incomplete configurations are rejected before anything else happens."""
        for options in dict(volume_identifier=''), dict(mount_root=''), dict(backup_program=''):
            program = self.create_program(**options)
            with self.assertRaises(ConfigurationError) as context:
                program.execute()
            assert context.exception.exit_status == EX_CONFIG
            assert self.calls == []
            assert not os.path.exists(self.mount_point)
            assert program.state == WorkflowState.NOT_STARTED

    def test_invalid_volume_identifier(self):
        """Make sure volume identifiers can't escape from the device directory."""
        program = self.create_program(volume_identifier='../sda1')
        self.assertRaises(ConfigurationError, program.execute)
        assert self.calls == []

    def test_key_file_or_terminal(self):
        """Make sure a key file is required when no passphrase can be entered."""
        program = self.create_program(key_file='')
        self.assertRaises(ConfigurationError, program.validate_configuration)
        assert self.calls == []
        # On a terminal cryptsetup can ask for the passphrase.
        program.interactive = True
        program.validate_configuration()

    def test_rsnapshot_needs_interval(self):
        """Make sure rsnapshot isn't run without an interval."""
        program = self.create_program(backup_program='/usr/bin/rsnapshot')
        with self.assertRaises(UsageError) as context:
            program.execute()
        assert context.exception.exit_status == EX_USAGE
        assert self.calls == []
        program.config = Configuration(
            volume_identifier=VOLUME_UUID,
            key_file=KEY_FILE,
            backup_program='/usr/bin/rsnapshot',
            backup_arguments='daily',
        )
        program.validate_configuration()

    def test_missing_device(self):
        """Make sure a missing backup disk is reported without side effects."""
        program = self.create_program(attached=False)
        # Running twice gives the same result.
        for i in range(2):
            with self.assertRaises(MissingBackupDiskError) as context:
                program.execute()
            assert context.exception.exit_status == EX_NOINPUT
            assert self.calls == []
            assert program.state == WorkflowState.NOT_STARTED
            # The mount point is created before the device is checked.
            assert os.path.isdir(self.mount_point)

    def test_mount_point_creation_failure(self):
        """Make sure the device isn't touched when the mount point can't be created."""
        program = self.create_program(mount_root=os.path.join(self.directory, 'missing', 'parent-'))
        with self.assertRaises(MountPointCreationError) as context:
            program.execute()
        assert context.exception.exit_status == 73
        assert self.calls == []

    def test_successful_backup(self):
        """Test the happy path: unlock, mount, backup, unmount, remove, close."""
        program = self.create_program()
        program.execute()
        assert self.calls == [
            ('open', program.device_file, MAPPING_NAME, program.config.key_file),
            ('mount', MAPPED_DEVICE, self.mount_point),
            ('unmount', self.mount_point),
            ('close', MAPPING_NAME),
        ]
        assert program.state == WorkflowState.CLOSED
        assert not os.path.exists(self.mount_point)

    def test_keep_mount_point(self):
        """Make sure the mount point is kept when that's requested."""
        program = self.create_program(remove_mount_point=False)
        program.execute()
        assert program.state == WorkflowState.CLOSED
        assert os.path.isdir(self.mount_point)

    def test_passphrase_prompt(self):
        """Make sure cryptsetup is asked to prompt for a passphrase when no key file is configured."""
        program = self.create_program(key_file='')
        program.interactive = True
        program.execute()
        assert self.calls[0] == ('open', program.device_file, MAPPING_NAME, None)

    def test_unlock_failure(self):
        """Make sure nothing is mounted or closed when unlocking fails."""
        program = self.create_program(open_status=2)
        with self.assertRaises(FailedToUnlockError) as context:
            program.execute()
        assert context.exception.exit_status == 2
        assert self.calls == [('open', program.device_file, MAPPING_NAME, program.config.key_file)]
        assert program.state == WorkflowState.DEVICE_FOUND
        # The mount point was created before the failure, but not removed.
        assert os.path.isdir(self.mount_point)

    def test_mount_failure(self):
        """Make sure the decryption mapping is closed when mounting fails."""
        program = self.create_program(mount_status=32)
        with self.assertRaises(FailedToMountError) as context:
            program.execute()
        assert context.exception.exit_status == 32
        assert self.calls == [
            ('open', program.device_file, MAPPING_NAME, program.config.key_file),
            ('mount', MAPPED_DEVICE, self.mount_point),
            ('close', MAPPING_NAME),
        ]
        assert program.state == WorkflowState.CLOSED
        # The mount point isn't removed because nothing was unmounted.
        assert os.path.isdir(self.mount_point)

    def test_backup_failure(self):
        """Make sure a failing backup program doesn't prevent the teardown."""
        program = self.create_program(backup_program='false')
        program.execute()
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']
        assert program.state == WorkflowState.CLOSED
        assert not os.path.exists(self.mount_point)

    def test_missing_backup_program(self):
        """Make sure a backup program that doesn't exist doesn't prevent the teardown."""
        program = self.create_program(backup_program=os.path.join(self.directory, 'no-such-program'))
        program.execute()
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']

    def test_backup_arguments(self):
        """Make sure the backup arguments are split like a shell would."""
        output_file = os.path.join(self.directory, 'arguments.txt')
        backup_program = create_script(
            os.path.join(self.directory, 'backup-program'),
            'for arg in "$@"; do echo "$arg"; done > %s' % output_file,
        )
        program = self.create_program(
            backup_program=backup_program,
            backup_arguments="daily --label 'two words'",
        )
        program.execute()
        with open(output_file) as handle:
            assert handle.read().splitlines() == ['daily', '--label', 'two words']

    def test_backup_timeout(self):
        """Make sure a backup program that runs too long is terminated."""
        backup_program = create_script(os.path.join(self.directory, 'slow-backup'), 'sleep 60')
        program = self.create_program(backup_program=backup_program, backup_timeout=1)
        timer = Timer()
        program.execute()
        assert timer.elapsed_time < 30
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']

    def test_backup_within_timeout(self):
        """Make sure a backup program that finishes before the timeout runs to completion."""
        marker_file = os.path.join(self.directory, 'backup-ran.txt')
        backup_program = create_script(os.path.join(self.directory, 'quick-backup'), 'touch %s' % marker_file)
        program = self.create_program(backup_program=backup_program, backup_timeout=30)
        program.execute()
        assert os.path.isfile(marker_file)
        assert program.state == WorkflowState.CLOSED
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']

    def test_unmount_failure(self):
        """Make sure the mapping is closed and the mount point kept when unmounting fails."""
        program = self.create_program(unmount_status=16)
        with self.assertRaises(FailedToUnmountError) as context:
            program.execute()
        assert context.exception.exit_status == 16
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']
        assert os.path.isdir(self.mount_point)

    def test_close_failure(self):
        """Make sure a failure to close the mapping is reported."""
        program = self.create_program(close_status=5)
        with self.assertRaises(FailedToLockError) as context:
            program.execute()
        assert context.exception.exit_status == 5
        assert [c[0] for c in self.calls] == ['open', 'mount', 'unmount', 'close']

    def test_first_failure_wins(self):
        """Make sure teardown failures don't override an earlier failure."""
        program = self.create_program(mount_status=32, close_status=5)
        self.assertRaises(FailedToMountError, program.execute)
        program = self.create_program(unmount_status=16, close_status=5)
        self.assertRaises(FailedToUnmountError, program.execute)

    def test_teardown(self):
        """Test that teardown unwinds from the last reached state."""
        program = self.create_program()
        os.mkdir(self.mount_point)
        for state, expected in (
                (WorkflowState.NOT_STARTED, []),
                (WorkflowState.DEVICE_FOUND, []),
                (WorkflowState.DECRYPTED, ['close']),
                (WorkflowState.UNMOUNTED, ['close']),
                (WorkflowState.CLOSED, []),
                (WorkflowState.MOUNTED, ['unmount', 'close'])):
            del self.calls[:]
            program.state = state
            assert program.teardown() == []
            assert [c[0] for c in self.calls] == expected
        assert not os.path.exists(self.mount_point)

    def test_volume_lock(self):
        """Make sure overlapping runs against the same volume are rejected."""
        program = self.create_program()
        lock_file = os.path.join(self.directory, 'luks-backup-%s.lock' % VOLUME_UUID)
        with open(lock_file, 'a') as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            with self.assertRaises(VolumeBusyError) as context:
                program.execute()
            assert context.exception.exit_status == EX_TEMPFAIL
            assert self.calls == []
            # Disabling the lock makes the run possible.
            program.lock_enabled = False
            program.execute()
            assert program.state == WorkflowState.CLOSED

    def test_lock_file_reused(self):
        """Make sure the lock file is released, kept and reused by the next run."""
        program = self.create_program()
        lock_file = os.path.join(self.directory, 'luks-backup-%s.lock' % VOLUME_UUID)
        for i in range(2):
            program.execute()
            assert program.state == WorkflowState.CLOSED
            assert os.path.isfile(lock_file)
        # The lock was released, so it can be acquired again.
        with open(lock_file, 'a') as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

    def test_lock_file_creation_failure(self):
        """Make sure a lock file that can't be created isn't reported as a mount point problem."""
        program = self.create_program()
        program.lock_directory = os.path.join(self.directory, 'no-such-directory')
        with self.assertRaises(VolumeBusyError) as context:
            program.execute()
        assert context.exception.exit_status == EX_TEMPFAIL
        assert "lock file" in str(context.exception)
        assert self.calls == []
        assert not os.path.exists(self.mount_point)

    def test_notifications(self):
        """Test the desktop notification functionality."""
        program = self.create_program()
        program.notifications_enabled = True
        with patch('luks_backup.notify_desktop') as notify_desktop:
            program.execute()
            assert notify_desktop.call_count == 2
        # A failed backup results in an urgent notification.
        program = self.create_program(mount_status=32)
        program.notifications_enabled = True
        with patch('luks_backup.notify_desktop') as notify_desktop:
            self.assertRaises(FailedToMountError, program.execute)
            assert notify_desktop.call_args[1]['urgency'] == 'critical'
        # No notifications are shown when the volume isn't attached.
        program = self.create_program(attached=False)
        program.notifications_enabled = True
        os.unlink(os.path.join(program.device_directory, VOLUME_UUID))
        with patch('luks_backup.notify_desktop') as notify_desktop:
            self.assertRaises(MissingBackupDiskError, program.execute)
            assert not notify_desktop.called

    def test_real_services(self):
        """Test the services that run cryptsetup, mount and umount."""
        program = self.create_program()
        program.crypto_service = CryptoService()
        program.mount_service = MountService()
        with MockedProgram('cryptsetup'):
            with MockedProgram('mount'):
                with MockedProgram('umount'):
                    program.execute()
        assert program.state == WorkflowState.CLOSED
        assert not os.path.exists(self.mount_point)

    def test_real_services_mount_failure(self):
        """Test that exit statuses of external commands are propagated."""
        program = self.create_program()
        program.crypto_service = CryptoService()
        program.mount_service = MountService()
        with MockedProgram('cryptsetup'):
            with MockedProgram('mount', returncode=32):
                with self.assertRaises(FailedToMountError) as context:
                    program.execute()
        assert context.exception.exit_status == 32
        assert program.state == WorkflowState.CLOSED

    def test_config_file_parsing(self):
        """Test the parsing of configuration files."""
        filename = os.path.join(self.directory, 'luks-backup.conf')
        write_file(filename, '''
            # Define the UUID of the backup volume.
            UUID="%s"
            KEYFILE='/root/backup.key'  # trailing comment
            export MOUNTROOT=/media/
            REMOVEMOUNT=0
            BACKUP="/usr/bin/rsnapshot"
            BACKUP_ARGS="-v daily"
            TIMEOUT=2h
            SOMETHING_ELSE=ignored
        ''' % VOLUME_UUID)
        config = load_configuration(filename)
        assert config.volume_identifier == VOLUME_UUID
        assert config.key_file == '/root/backup.key'
        assert config.mount_root == '/media/'
        assert config.remove_mount_point is False
        assert config.backup_program == '/usr/bin/rsnapshot'
        assert config.backup_arguments == '-v daily'
        assert config.backup_timeout == 7200
        assert config.filename == filename
        # Overrides take precedence, None values are ignored.
        config = load_configuration(filename, backup_arguments='weekly', backup_timeout=None)
        assert config.backup_arguments == 'weekly'
        assert config.backup_timeout == 7200
        # Nonzero numbers and boolean words are accepted by REMOVEMOUNT.
        for value, expected in ('1', True), ('2', True), ('yes', True), ('false', False):
            write_file(filename, 'REMOVEMOUNT=%s' % value)
            assert load_configuration(filename).remove_mount_point is expected

    def test_config_file_errors(self):
        """Test that invalid configuration files are reported."""
        filename = os.path.join(self.directory, 'luks-backup.conf')
        for contents in 'UUID', 'UUID="unterminated', 'REMOVEMOUNT=maybe', 'TIMEOUT=soon', 'A=1 B=2':
            write_file(filename, contents)
            self.assertRaises(ConfigurationError, load_configuration, filename)
        self.assertRaises(ConfigurationError, load_configuration, os.path.join(self.directory, 'missing.conf'))

    def test_config_file_search(self):
        """Test the default locations of the configuration file."""
        xdg_directory = os.path.join(self.directory, 'xdg')
        home_directory = os.path.join(self.directory, 'home')
        os.mkdir(xdg_directory)
        os.mkdir(home_directory)
        environment = dict(HOME=home_directory, XDG_CONFIG_HOME=xdg_directory)
        with patch.dict(os.environ, environment):
            # Without configuration files the defaults are used.
            assert find_config_file() is None
            assert load_configuration() == Configuration()
            # The dotfile in the home directory is used as a fall back.
            dotfile = os.path.join(home_directory, '.luks-backup.conf')
            write_file(dotfile, 'UUID=home')
            assert find_config_file() == dotfile
            # The XDG location takes precedence.
            xdg_file = os.path.join(xdg_directory, 'luks-backup.conf')
            write_file(xdg_file, 'UUID=xdg')
            assert find_config_file() == xdg_file
            assert load_configuration().volume_identifier == 'xdg'

    def test_configuration_is_immutable(self):
        """Make sure configuration values can't be changed after they've been created."""
        config = Configuration(volume_identifier=VOLUME_UUID)
        with self.assertRaises(AttributeError):
            config.volume_identifier = 'something-else'

    def test_cli_missing_device(self):
        """Test the exit status of the command line interface when the volume isn't attached."""
        filename = os.path.join(self.directory, 'luks-backup.conf')
        write_file(filename, '''
            UUID=%s
            KEYFILE=/root/backup.key
            MOUNTROOT=%s/
            BACKUP=/bin/true
        ''' % (VOLUME_UUID, self.directory))
        with patch('os.getuid', return_value=0):
            exit_code, output = run_cli(
                main, '--config=%s' % filename,
                '--no-lock', '--disable-notifications',
                merged=True,
            )
        assert exit_code == EX_NOINPUT
        assert os.path.isdir(os.path.join(self.directory, VOLUME_UUID))

    def test_cli_configuration_error(self):
        """Test the exit status of the command line interface for invalid configurations."""
        filename = os.path.join(self.directory, 'luks-backup.conf')
        write_file(filename, 'KEYFILE=/root/backup.key')
        with patch('os.getuid', return_value=0):
            exit_code, output = run_cli(main, '--config=%s' % filename, '--no-lock', merged=True)
            assert exit_code == EX_CONFIG
            # Configuration files that fail to load are reported the same way.
            exit_code, output = run_cli(main, '--config=/non/existing/file.conf', merged=True)
            assert exit_code == EX_CONFIG

    def test_encrypted_backup(self):
        """
        Test a backup to a real encrypted filesystem.

        This test is skipped unless it runs with superuser privileges on a
        system where cryptsetup is installed, because it creates an image file
        containing an encrypted filesystem and unlocks and mounts it.
        """
        if os.getuid() != 0 or not which('cryptsetup'):
            return self.skipTest("Skipping test because it requires root privileges and cryptsetup!")
        marker_file = os.path.join(self.directory, 'backup-ran.txt')
        backup_program = create_script(
            os.path.join(self.directory, 'backup-program'),
            'touch "$1/backup.txt" && echo "$1" > %s' % marker_file,
        )
        with prepared_image_file():
            device_directory = os.path.join(self.directory, 'by-uuid')
            os.mkdir(device_directory)
            os.symlink(IMAGE_FILE, os.path.join(device_directory, VOLUME_UUID))
            program = LuksBackup(
                config=Configuration(
                    volume_identifier=VOLUME_UUID,
                    key_file=KEY_FILE,
                    mount_root=os.path.join(self.directory, 'mnt-'),
                    backup_program=backup_program,
                    backup_arguments=self.mount_point,
                ),
                device_directory=device_directory,
                lock_directory=self.directory,
                notifications_enabled=False,
            )
            program.execute()
            assert program.state == WorkflowState.CLOSED
            assert os.path.isfile(marker_file)
            assert not os.path.exists(self.mount_point)
            assert not os.path.exists(MAPPED_DEVICE)


class FakeCryptoService(object):

    """In-memory replacement for :class:`.CryptoService`."""

    def __init__(self, calls, open_status=0, close_status=0):
        self.calls = calls
        self.open_status = open_status
        self.close_status = close_status

    def open(self, device_file, mapping_name, key_file=None):
        self.calls.append(('open', device_file, mapping_name, key_file))
        if self.open_status:
            raise command_failure(self.open_status)

    def close(self, mapping_name):
        self.calls.append(('close', mapping_name))
        if self.close_status:
            raise command_failure(self.close_status)


class FakeMountService(object):

    """In-memory replacement for :class:`.MountService`."""

    def __init__(self, calls, mount_status=0, unmount_status=0):
        self.calls = calls
        self.mount_status = mount_status
        self.unmount_status = unmount_status

    def mount(self, device_file, mount_point):
        self.calls.append(('mount', device_file, mount_point))
        if self.mount_status:
            raise command_failure(self.mount_status)

    def unmount(self, mount_point):
        self.calls.append(('unmount', mount_point))
        if self.unmount_status:
            raise command_failure(self.unmount_status)


def command_failure(returncode):
    """Create an :exc:`~executor.ExternalCommandFailed` exception for the given exit status."""
    cmd = ExternalCommand('sh', '-c', 'exit %i' % returncode, check=False)
    cmd.start()
    return ExternalCommandFailed(cmd)


def create_script(filename, command):
    """Create an executable shell script."""
    write_file(filename, '#!/bin/sh\n%s\n' % command)
    os.chmod(filename, os.stat(filename).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return filename


def touch(filename):
    """Create an empty file."""
    with open(filename, 'a'):
        pass


def write_file(filename, contents):
    """Write a text file (leading whitespace on each line is removed)."""
    with open(filename, 'w') as handle:
        handle.write('\n'.join(line.strip() for line in contents.splitlines()) + '\n')


@contextlib.contextmanager
def prepared_image_file():
    """Prepare an image file containing an encrypted filesystem (ext4 on top of LUKS)."""
    with TemporaryKeyFile(filename=KEY_FILE):
        create_image_file(filename=IMAGE_FILE, size='10M')
        create_encrypted_filesystem(device_file=IMAGE_FILE, key_file=KEY_FILE)
        execute('cryptsetup', 'luksOpen', '--key-file=%s' % KEY_FILE, IMAGE_FILE, MAPPING_NAME)
        try:
            execute('mkfs.ext4', '-q', MAPPED_DEVICE)
        finally:
            execute('cryptsetup', 'luksClose', MAPPING_NAME)
        yield
        os.unlink(IMAGE_FILE)
