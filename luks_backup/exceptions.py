# luks-backup: Backups to intermittently attached LUKS encrypted disks.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""Custom exceptions and exit statuses used by luks-backup."""

EX_OK = 0
"""Successful termination (an integer)."""

EX_USAGE = 64
"""The command was used incorrectly (an integer)."""

EX_NOINPUT = 66
"""The backup volume isn't available (an integer)."""

EX_CANTCREAT = 73
"""The mount point could not be created (an integer)."""

EX_TEMPFAIL = 75
"""Another run is already using the backup volume (an integer)."""

EX_NOPERM = 77
"""Not running with superuser privileges (an integer)."""

EX_CONFIG = 78
"""The configuration is invalid, incomplete or failed to load (an integer)."""


class LuksBackupError(Exception):

    """
    Base exception for custom exceptions raised by luks-backup.

    The :attr:`exit_status` attribute gives the process exit status that the
    command line interface uses when it reports the exception.
    """

    exit_status = 1

    def __init__(self, message, exit_status=None):
        """
        Initialize a :class:`LuksBackupError` object.

        :param message: The error message (a string).
        :param exit_status: Overrides the default exit status of the exception
                            class (an integer or :data:`None`).
        """
        super(LuksBackupError, self).__init__(message)
        if exit_status:
            self.exit_status = exit_status


class UsageError(LuksBackupError):

    """Raised when the program is invoked incorrectly."""

    exit_status = EX_USAGE


class ConfigurationError(LuksBackupError):

    """Raised when the configuration is incomplete or can't be loaded."""

    exit_status = EX_CONFIG


class InsufficientPrivilegesError(LuksBackupError):

    """Raised when the program isn't running with superuser privileges."""

    exit_status = EX_NOPERM


class MissingBackupDiskError(LuksBackupError):

    """Raised when the backup volume isn't available (the disk isn't attached)."""

    exit_status = EX_NOINPUT


class MountPointCreationError(LuksBackupError):

    """Raised when the mount point directory can't be created."""

    exit_status = EX_CANTCREAT


class VolumeBusyError(LuksBackupError):

    """Raised when another run holds the lock of the backup volume."""

    exit_status = EX_TEMPFAIL


class FailedToUnlockError(LuksBackupError):

    """Raised when cryptsetup_ fails to open the encrypted device."""

    exit_status = EX_NOPERM


class FailedToMountError(LuksBackupError):

    """Raised when mount_ fails to mount the decrypted filesystem."""


class FailedToUnmountError(LuksBackupError):

    """Raised when umount_ fails to unmount the decrypted filesystem."""


class FailedToLockError(LuksBackupError):

    """Raised when cryptsetup_ fails to close the decryption mapping."""
