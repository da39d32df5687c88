# luks-backup: Backups to intermittently attached LUKS encrypted disks.
#
# Author: Peter Odding <peter@peterodding.com>
# Last Change: October 17, 2026

"""
Wrappers for the external programs that unlock and mount the backup volume.

The :class:`.LuksBackup` class doesn't run cryptsetup_, mount_ and umount_
itself, instead it delegates to a :class:`CryptoService` and a
:class:`MountService` object. Any object with the same methods can take their
place, which makes it possible to test the control flow of the backup
without superuser privileges or real devices.

.. _cryptsetup: https://manpages.debian.org/cryptsetup
.. _mount: https://manpages.debian.org/mount
.. _umount: https://manpages.debian.org/umount
"""

# Standard library modules.
import logging

# External dependencies.
from executor.contexts import LocalContext
from property_manager import PropertyManager, lazy_property

# Public identifiers that require documentation.
__all__ = (
    'logger',
    'CryptoService',
    'MountService',
)

# Initialize a logger for this module.
logger = logging.getLogger(__name__)


class ExternalService(PropertyManager):

    """Shared functionality of :class:`CryptoService` and :class:`MountService`."""

    @lazy_property(writable=True)
    def context(self):
        """
        The execution context used to run external commands.

        This is expected to be an execution context created by
        :mod:`executor.contexts`. It defaults to
        :class:`executor.contexts.LocalContext`.
        """
        return LocalContext()


class CryptoService(ExternalService):

    """Open and close LUKS decryption mappings using cryptsetup_."""

    def open(self, device_file, mapping_name, key_file=None):
        """
        Open an encrypted device.

        :param device_file: The pathname of the encrypted block device (a string).
        :param mapping_name: The name of the decryption mapping (a string).
        :param key_file: The pathname of the key file (a string or
                         :data:`None`). When this is :data:`None` cryptsetup
                         asks for the passphrase on the terminal.
        :raises: :exc:`~executor.ExternalCommandFailed` when cryptsetup
                 reports an error.
        """
        command = ['cryptsetup', 'luksOpen']
        if key_file:
            command.append('--key-file=%s' % key_file)
        command.extend([device_file, mapping_name])
        logger.debug("Opening %s as %s ..", device_file, mapping_name)
        self.context.execute(*command, tty=not key_file)

    def close(self, mapping_name):
        """
        Close a decryption mapping.

        :param mapping_name: The name of the decryption mapping (a string).
        :raises: :exc:`~executor.ExternalCommandFailed` when cryptsetup
                 reports an error.
        """
        logger.debug("Closing decryption mapping %s ..", mapping_name)
        self.context.execute('cryptsetup', 'luksClose', mapping_name, tty=False)


class MountService(ExternalService):

    """Mount and unmount filesystems using mount_ and umount_."""

    def mount(self, device_file, mount_point):
        """
        Mount a filesystem.

        :param device_file: The pathname of the block device (a string).
        :param mount_point: The pathname of the mount point (a string).
        :raises: :exc:`~executor.ExternalCommandFailed` when mount reports an error.
        """
        logger.debug("Mounting %s on %s ..", device_file, mount_point)
        self.context.execute('mount', device_file, mount_point, tty=False)

    def unmount(self, mount_point):
        """
        Unmount a filesystem.

        :param mount_point: The pathname of the mount point (a string).
        :raises: :exc:`~executor.ExternalCommandFailed` when umount reports an error.
        """
        logger.debug("Unmounting %s ..", mount_point)
        self.context.execute('umount', mount_point, tty=False)
