"""
Privilege checks for the hosts-file shield.
"""

import ctypes
import os
import platform


def is_admin() -> bool:
    """
    Check if the current process may rewrite the system hosts file.

    Returns:
        True if running as admin/root, False otherwise
    """
    if platform.system() == "Windows":
        try:
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False

    try:
        return os.geteuid() == 0
    except AttributeError:
        return False
