#!/usr/bin/env python3

import logging
from datetime import datetime


def setup_logging(prefix="org_console", verbose=False, log_to_file=True):
    """
    Configure logging for scripts.

    Args:
        prefix (str): Prefix for the log file name
        verbose (bool): Log at DEBUG instead of INFO
        log_to_file (bool): Also write a timestamped log file

    Returns:
        str: Path to the generated log file, or None when not writing one
    """
    handlers = [logging.StreamHandler()]
    log_file = None
    if log_to_file:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"{prefix}_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )
    # urllib3 logs full request URLs at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return log_file
