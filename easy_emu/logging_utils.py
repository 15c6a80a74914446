#!/usr/bin/env python3
"""
Shared logging utilities for easy-emu.

Provides timestamped debug logging to file for diagnostic purposes.
"""

import logging

DEBUG_LOG_FORMAT = "[%(created).6f] %(name)s: %(message)s"


def setup_debug_logging(debug_file):
    """
    Send DEBUG records from every easy-emu module to a file.

    Args:
        debug_file: Path of the log file, or None to leave logging unconfigured.

    Returns:
        The installed handler, or None if debug logging is disabled.
    """
    if not debug_file:
        return None
    handler = logging.FileHandler(debug_file, mode="a")
    handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT))
    logger = logging.getLogger("easy_emu")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return handler
