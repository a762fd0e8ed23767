# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Mount utilities for the COS FUSE filesystem.

This module provides unmounting, signal handling and the FUSE option set used
when mounting COS buckets as local filesystems.
"""

import signal
import subprocess
import sys
import time

from ..fs.utils import logger, time_function

# Attribute and entry cache lifetime in the kernel
ATTR_TIMEOUT = 60  # seconds


def unmount(mountpoint):
    """
    Unmount the filesystem using fusermount (Linux).

    Args:
        mountpoint (str): Path where the filesystem is mounted

    Returns:
        bool: True if the mountpoint was unmounted
    """
    logger.info(f"Unmounting filesystem at {mountpoint}")
    start_time = time.time()

    mountpoint = mountpoint.rstrip('/')
    try:
        cp = subprocess.run(["mountpoint", "-q", mountpoint])
        if cp.returncode != 0:
            logger.warning(f"{mountpoint} is not mounted, nothing to unmount.")
            return False
        subprocess.run(["fusermount", "-u", mountpoint], check=True)
        logger.info(f"Unmounted {mountpoint} gracefully.")
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Error during unmounting: {e}")
        return False
    finally:
        time_function("unmount", start_time)


def setup_signal_handlers(mountpoint, unmount_func):
    """
    Set up SIGINT and SIGTERM handlers that unmount before exiting.

    Args:
        mountpoint (str): Path where the filesystem is mounted
        unmount_func (callable): Function to call for unmounting

    Returns:
        callable: The signal handler function
    """
    def signal_handler(sig, frame):
        logger.info(f"Signal {sig} received, unmounting...")
        unmount_func(mountpoint)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return signal_handler


def get_mount_options(foreground=True, allow_other=False):
    """
    Get mount options for FUSE.

    Direct I/O is off and the kernel caches attributes and entries for
    ``ATTR_TIMEOUT`` seconds.

    Args:
        foreground (bool, optional): Run in foreground. Defaults to True.
        allow_other (bool, optional): Allow other users to access the mount.
            Requires 'user_allow_other' in /etc/fuse.conf. Defaults to False.

    Returns:
        dict: Dictionary of mount options
    """
    options = {
        'foreground': foreground,
        'default_permissions': True,
        'direct_io': False,
        'rw': True,
        'big_writes': True,
        'hard_remove': True,
        'entry_timeout': ATTR_TIMEOUT,
        'negative_timeout': 0,
        'attr_timeout': ATTR_TIMEOUT,
    }

    if allow_other:
        options['allow_other'] = True

    return options
