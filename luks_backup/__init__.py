# luks-backup: Backups to intermittently attached LUKS encrypted disks.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""
Simple to use Python API for backups to LUKS encrypted external disks.

The :mod:`luks_backup` module contains the Python API of the `luks-backup`
package. The core logic of the package is contained in the :class:`LuksBackup`
class.
"""

# Standard library modules.
import contextlib
import enum
import fcntl
import logging
import os
import shlex
import sys

# External dependencies.
from executor import ExternalCommandFailed, quote
from executor.contexts import LocalContext
from humanfriendly import Timer, compact, format_path, format_timespan
from humanfriendly.terminal import connected_to_terminal
from proc.notify import notify_desktop
from property_manager import PropertyManager, lazy_property, mutable_property

# Modules included in our package.
from luks_backup.config import load_configuration
from luks_backup.exceptions import (
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

# Semi-standard module versioning.
__version__ = '1.0'

# Initialize a logger for this module.
logger = logging.getLogger(__name__)

DEVICE_DIRECTORY = '/dev/disk/by-uuid'
"""The directory with symbolic links to block devices, named after the filesystem UUIDs (a string)."""

MAPPER_DIRECTORY = '/dev/mapper'
"""The directory where decrypted block devices appear (a string)."""

LOCK_DIRECTORY = '/run/lock'
"""The directory where advisory lock files are created (a string)."""


class WorkflowState(enum.Enum):

    """The stages of a backup run, in the order in which they're reached."""

    NOT_STARTED = 'not started'
    DEVICE_FOUND = 'device found'
    DECRYPTED = 'decrypted'
    MOUNTED = 'mounted'
    BACKUP_RAN = 'backup ran'
    UNMOUNTED = 'unmounted'
    CLOSED = 'closed'


class LuksBackup(PropertyManager):

    """
    Python API for the ``luks-backup`` program.

    The following properties can be set by passing keyword arguments to the
    :class:`LuksBackup` initializer: :attr:`config`, :attr:`config_file`,
    :attr:`config_overrides`, :attr:`context`, :attr:`crypto_service`,
    :attr:`device_directory`, :attr:`interactive`, :attr:`lock_directory`,
    :attr:`lock_enabled`, :attr:`mount_service`,
    :attr:`notifications_enabled` and :attr:`superuser_privileges`.

    The values of :attr:`device_file`, :attr:`mapped_device`,
    :attr:`mapping_name` and :attr:`mount_point` are computed based on
    :attr:`config`.

    The :func:`execute()` method is the main entry point. If you're looking for
    finer grained control refer to :func:`unlock_device()`,
    :func:`mount_filesystem()`, :func:`run_backup()` and :func:`teardown()`.
    """

    @lazy_property(writable=True)
    def config(self):
        """
        The configuration of the backup run (a :class:`~luks_backup.config.Configuration` object).

        When no configuration is given it is loaded on first use from
        :attr:`config_file` (refer to
        :func:`~luks_backup.config.load_configuration()`), applying
        :attr:`config_overrides`.

        :raises: :exc:`.ConfigurationError` when the
                 configuration file fails to load.
        """
        return load_configuration(self.config_file, **self.config_overrides)

    @mutable_property
    def config_file(self):
        """The pathname of the configuration file (a string or :data:`None`)."""

    @mutable_property
    def config_overrides(self):
        """A dictionary with :class:`~luks_backup.config.Configuration` fields that take precedence over :attr:`config_file`."""
        return {}

    @lazy_property(writable=True)
    def context(self):
        """
        The execution context used to manage the mount point directory.

        This is expected to be an execution context created by
        :mod:`executor.contexts`. It defaults to
        :class:`executor.contexts.LocalContext`.
        """
        return LocalContext()

    @lazy_property(writable=True)
    def crypto_service(self):
        """The object that opens and closes the decryption mapping (defaults to a :class:`.CryptoService`)."""
        return CryptoService(context=self.context)

    @mutable_property
    def device_directory(self):
        """The directory where :attr:`device_file` is located (a string, defaults to :data:`DEVICE_DIRECTORY`)."""
        return DEVICE_DIRECTORY

    @property
    def device_file(self):
        """The pathname of the encrypted block device (a string)."""
        return os.path.join(self.device_directory, self.config.volume_identifier)

    @mutable_property
    def interactive(self):
        """
        :data:`True` if a passphrase can be entered interactively, :data:`False` otherwise.

        Defaults to whether standard input is connected to a terminal.
        """
        return connected_to_terminal(sys.stdin)

    @mutable_property
    def lock_directory(self):
        """The directory where the advisory lock file is created (a string)."""
        return LOCK_DIRECTORY if os.path.isdir(LOCK_DIRECTORY) else '/tmp'

    @mutable_property
    def lock_enabled(self):
        """:data:`True` to reject overlapping runs against the same volume, :data:`False` otherwise."""
        return True

    @property
    def mapped_device(self):
        """The pathname of the decrypted block device (a string)."""
        return os.path.join(MAPPER_DIRECTORY, self.mapping_name)

    @property
    def mapping_name(self):
        """The name of the decryption mapping (a string)."""
        return 'crypt-%s' % self.config.volume_identifier

    @property
    def mount_point(self):
        """
        The pathname of the mount point (a string).

        The mount point is the concatenation of the configured mount root and
        volume identifier, so a mount root of ``/mnt/`` results in a mount
        point like ``/mnt/4b9e2c7a-...`` while a mount root of
        ``/mnt/backup-`` results in ``/mnt/backup-4b9e2c7a-...``.
        """
        return self.config.mount_root + self.config.volume_identifier

    @lazy_property(writable=True)
    def mount_service(self):
        """The object that mounts and unmounts the filesystem (defaults to a :class:`.MountService`)."""
        return MountService(context=self.context)

    @mutable_property
    def notifications_enabled(self):
        """Whether desktop notifications are used (a boolean, defaults to :data:`True`)."""
        return True

    @mutable_property
    def state(self):
        """The most recent :class:`WorkflowState` reached by :func:`execute()`."""
        return WorkflowState.NOT_STARTED

    @mutable_property
    def superuser_privileges(self):
        """:data:`True` if we're running with superuser privileges, :data:`False` otherwise."""
        return os.getuid() == 0

    def execute(self):
        """
        Unlock and mount the backup volume, run the backup and clean up afterwards.

        :raises: A subclass of :exc:`.LuksBackupError` describing the first
                 problem encountered. When the backup volume isn't attached
                 this is :exc:`.MissingBackupDiskError`, which callers
                 running unattended are expected to treat as routine.

        The :func:`execute()` method defines the high level control flow of a
        backup run:

        1. :func:`check_privileges()` and :func:`validate_configuration()`
           make sure the run can succeed before touching any device.

        2. :func:`lock_volume()` rejects an overlapping run
           against the same volume (when :attr:`lock_enabled` is set).

        3. :func:`prepare_mount_point()` creates the mount
           point directory when it doesn't exist yet.

        4. :func:`find_device()` checks whether the backup volume is attached.

        5. :func:`unlock_device()`, :func:`mount_filesystem()` and
           :func:`run_backup()` do the actual work, after which
           :func:`teardown()` undoes whatever was done.
        """
        self.state = WorkflowState.NOT_STARTED
        self.check_privileges()
        self.validate_configuration()
        with self.lock_volume():
            self.prepare_mount_point()
            self.find_device()
            timer = Timer()
            self.notify_starting()
            try:
                self.execute_helper()
            except Exception:
                self.notify_failed(timer)
                raise
            else:
                self.notify_finished(timer)
                logger.info("Took %s to back up %s.", timer, self.device_file)

    def execute_helper(self):
        """Helper for :func:`execute()` that guarantees :func:`teardown()` runs."""
        completed = False
        try:
            self.unlock_device()
            self.mount_filesystem()
            self.run_backup()
            completed = True
        finally:
            problems = self.teardown()
            # While an earlier failure propagates all teardown problems
            # are reported here, otherwise the first one is raised below.
            for problem in (problems[1:] if completed else problems):
                logger.error("%s", problem)
        if problems:
            raise problems[0]

    def check_privileges(self):
        """
        Make sure we're running with superuser privileges.

        :raises: :exc:`.InsufficientPrivilegesError` when
                 :attr:`superuser_privileges` is :data:`False`.
        """
        if not self.superuser_privileges:
            raise InsufficientPrivilegesError(compact("""
                Not super-user! Superuser privileges are required to unlock,
                mount and unmount the backup volume.
            """))

    def validate_configuration(self):
        """
        Make sure the configuration is complete.

        :raises: :exc:`.ConfigurationError` when the configuration file can't
                 be loaded or a required setting is missing,
                 :exc:`.UsageError` when rsnapshot_ is used without an
                 interval.

        .. _rsnapshot: https://manpages.debian.org/rsnapshot
        """
        config = self.config
        if not config.volume_identifier:
            raise ConfigurationError("No volume specified! (set UUID in the configuration file)")
        if '/' in config.volume_identifier:
            raise ConfigurationError("Invalid volume identifier! (%s)" % config.volume_identifier)
        if not (config.key_file or self.interactive):
            raise ConfigurationError(compact("""
                No key file specified and not on a terminal for passphrase
                input! (set KEYFILE in the configuration file)
            """))
        if not config.mount_root:
            raise ConfigurationError("No mount root specified! (set MOUNTROOT in the configuration file)")
        if not config.backup_program:
            raise ConfigurationError("No backup program specified! (set BACKUP in the configuration file)")
        if os.path.basename(config.backup_program) == 'rsnapshot' and not config.backup_arguments.strip():
            raise UsageError("No backup interval specified! (rsnapshot needs an interval, use the -i option)")

    @contextlib.contextmanager
    def lock_volume(self):
        """
        Context manager that holds an advisory lock on the backup volume.

        :raises: :exc:`.VolumeBusyError` when another run holds the lock or
                 the lock file can't be created.

        When :attr:`lock_enabled` is :data:`False` this does nothing. The lock
        file (one per volume) is left in :attr:`lock_directory` after the lock
        is released, so the next run locks the same file. Unlinking it would
        let two runs hold locks on different files with the same name.
        """
        if not self.lock_enabled:
            yield
            return
        filename = os.path.join(self.lock_directory, 'luks-backup-%s.lock' % self.config.volume_identifier)
        try:
            handle = open(filename, 'a')
        except EnvironmentError as e:
            raise VolumeBusyError("Failed to create lock file %s! (%s)" % (filename, e))
        with handle:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                raise VolumeBusyError(compact("""
                    Volume {uuid} is in use by another run!
                    (lock file {file} is held)
                """, uuid=self.config.volume_identifier, file=filename))
            logger.debug("Acquired lock file %s.", filename)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def prepare_mount_point(self):
        """
        Create the mount point directory when it doesn't exist yet.

        :raises: :exc:`.MountPointCreationError` when
                 the directory can't be created.
        """
        if not self.context.is_directory(self.mount_point):
            logger.info("Creating mount point %s ..", format_path(self.mount_point))
            try:
                self.context.execute('mkdir', self.mount_point, tty=False)
            except ExternalCommandFailed:
                raise MountPointCreationError("Failed to create mount point %s!" % self.mount_point)

    def find_device(self):
        """
        Check whether the backup volume is attached.

        :raises: :exc:`.MissingBackupDiskError` when
                 :attr:`device_file` doesn't exist.
        """
        if not self.context.exists(self.device_file):
            msg = "Volume %s not found! (the device file %s doesn't exist)"
            raise MissingBackupDiskError(msg % (self.config.volume_identifier, self.device_file))
        self.state = WorkflowState.DEVICE_FOUND

    def unlock_device(self):
        """
        Open the decryption mapping of the backup volume.

        :raises: :exc:`.FailedToUnlockError` when cryptsetup reports an error.

        When no key file is configured cryptsetup asks for the passphrase on
        the terminal.
        """
        key_file = self.config.key_file or None
        logger.info("Unlocking encrypted filesystem %s ..", self.device_file)
        try:
            self.crypto_service.open(
                device_file=self.device_file,
                mapping_name=self.mapping_name,
                key_file=key_file,
            )
        except ExternalCommandFailed as e:
            msg = "Failed to open %s with key %s!"
            raise FailedToUnlockError(msg % (self.device_file, key_file or "(passphrase)"),
                                      exit_status=e.returncode)
        self.state = WorkflowState.DECRYPTED

    def mount_filesystem(self):
        """
        Mount the decrypted filesystem on :attr:`mount_point`.

        :raises: :exc:`.FailedToMountError` when mount reports an error.
        """
        logger.info("Mounting %s on %s ..", self.mapped_device, format_path(self.mount_point))
        try:
            self.mount_service.mount(self.mapped_device, self.mount_point)
        except ExternalCommandFailed as e:
            msg = "Failed to mount %s at %s!"
            raise FailedToMountError(msg % (self.device_file, self.mount_point),
                                     exit_status=e.returncode)
        self.state = WorkflowState.MOUNTED

    def run_backup(self):
        """
        Run the backup program and wait for it to finish.

        The exit status of the backup program is logged but otherwise ignored:
        reporting failed backups is the responsibility of the backup program
        and the volume needs to be unmounted either way. When a timeout is
        configured and the backup program runs longer it is terminated.
        """
        config = self.config
        command = [config.backup_program] + shlex.split(config.backup_arguments)
        timer = Timer()
        logger.info("Running backup program: %s", quote(command))
        try:
            if config.backup_timeout:
                cmd = self.context.execute(*command, asynchronous=True, check=False)
                cmd.wait_for_process(timeout=config.backup_timeout)
                if cmd.is_running:
                    logger.warning("Terminating backup program because it exceeded the timeout of %s ..",
                                   format_timespan(config.backup_timeout))
                    cmd.terminate()
                cmd.wait()
            else:
                cmd = self.context.execute(*command, check=False)
        except EnvironmentError as e:
            logger.error("Failed to run backup program %s! (%s)", config.backup_program, e)
        else:
            if cmd.returncode == 0:
                logger.info("Backup program finished in %s.", timer)
            else:
                logger.warning("Backup program exited with status %s after %s.", cmd.returncode, timer)
        self.state = WorkflowState.BACKUP_RAN

    def teardown(self):
        """
        Undo the stages of the backup run that were completed.

        :returns: A list of :exc:`.LuksBackupError` objects,
                  one for each cleanup action that failed.

        The stages are undone in reverse order based on :attr:`state`:

        - When the filesystem was mounted it is unmounted. When that succeeds
          and :attr:`~luks_backup.config.Configuration.remove_mount_point` is
          set the mount point directory is removed.
        - When the decryption mapping was opened it is closed (even if
          unmounting failed).
        """
        problems = []
        if self.state in (WorkflowState.MOUNTED, WorkflowState.BACKUP_RAN):
            try:
                self.unmount_filesystem()
            except FailedToUnmountError as e:
                problems.append(e)
            else:
                if self.config.remove_mount_point:
                    self.remove_mount_point()
        if self.state in (WorkflowState.DECRYPTED,
                          WorkflowState.MOUNTED,
                          WorkflowState.BACKUP_RAN,
                          WorkflowState.UNMOUNTED):
            try:
                self.lock_device()
            except FailedToLockError as e:
                problems.append(e)
        return problems

    def unmount_filesystem(self):
        """
        Unmount :attr:`mount_point`.

        :raises: :exc:`.FailedToUnmountError` when umount reports an error.
        """
        logger.info("Unmounting %s ..", format_path(self.mount_point))
        try:
            self.mount_service.unmount(self.mount_point)
        except ExternalCommandFailed as e:
            raise FailedToUnmountError("Failed to unmount %s!" % self.mount_point,
                                       exit_status=e.returncode)
        self.state = WorkflowState.UNMOUNTED

    def remove_mount_point(self):
        """Remove the (empty) mount point directory."""
        logger.info("Removing mount point %s ..", format_path(self.mount_point))
        try:
            self.context.execute('rmdir', self.mount_point, tty=False)
        except ExternalCommandFailed:
            logger.warning("Failed to remove mount point %s!", self.mount_point)

    def lock_device(self):
        """
        Close the decryption mapping of the backup volume.

        :raises: :exc:`.FailedToLockError` when cryptsetup reports an error.
        """
        logger.info("Locking encrypted filesystem %s ..", self.mapping_name)
        try:
            self.crypto_service.close(self.mapping_name)
        except ExternalCommandFailed as e:
            raise FailedToLockError("Failed to close decryption mapping %s!" % self.mapping_name,
                                    exit_status=e.returncode)
        self.state = WorkflowState.CLOSED

    def notify_starting(self):
        """Notify the desktop environment that a backup is starting."""
        if self.notifications_enabled:
            notify_desktop(summary="Encrypted backups", body="Starting backup to %s" % self.device_file)

    def notify_finished(self, timer):
        """Notify the desktop environment that a backup has finished."""
        if self.notifications_enabled:
            body = "Finished backup in %s." % timer
            notify_desktop(summary="Encrypted backups", body=body)

    def notify_failed(self, timer):
        """Notify the desktop environment that a backup has failed."""
        if self.notifications_enabled:
            body = "Backup failed after %s! Review the system logs for details." % timer
            notify_desktop(summary="Encrypted backups", body=body, urgency='critical')
