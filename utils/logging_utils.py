#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Logging Utilities for Treelib
Sets up logging with console and rotating file handlers
"""

import os
import sys
import platform
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

import psutil


def setup_logging(log_dir: Optional[Union[str, Path]] = None,
                  log_level: Union[int, str] = logging.INFO,
                  log_format: Optional[str] = None,
                  enable_console: bool = True,
                  log_to_file: bool = True,
                  max_log_size: int = 10485760,  # 10MB
                  backup_count: int = 5) -> logging.Logger:
    """
    Set up logging with file and console handlers

    Args:
        log_dir: Directory for log files (default: 'logs' in app directory)
        log_level: Logging level, as a number or a name (default: INFO)
        log_format: Log message format (default: defined in function)
        enable_console: Whether to enable console logging
        log_to_file: Whether to write a rotating log file
        max_log_size: Maximum size for log files before rotation (bytes)
        backup_count: Number of backup log files to keep

    Returns:
        Configured root logger
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    formatter = logging.Formatter(log_format)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

    logger = logging.getLogger(__name__)

    if log_to_file:
        if log_dir is None:
            app_dir = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
            log_dir = app_dir / 'logs'
        else:
            log_dir = Path(log_dir)

        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = log_dir / f'treelib_{timestamp}.log'

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_log_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)
        logger.info(f"Logging initialized: {log_file}")

    logger.info(f"Log level: {logging.getLevelName(log_level)}")
    return root_logger


def setup_logging_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logging from the 'logging' and 'application' sections of a config"""
    logging_config = config.get('logging', {})
    return setup_logging(
        log_dir=config.get('application', {}).get('log_dir'),
        log_level=logging_config.get('level', 'INFO'),
        log_to_file=logging_config.get('log_to_file', False),
        max_log_size=logging_config.get('max_bytes', 10485760),
        backup_count=logging_config.get('backup_count', 5)
    )


def log_exception(e: Exception, logger: Optional[logging.Logger] = None) -> None:
    """
    Log an exception with traceback

    Args:
        e: Exception to log
        logger: Logger to use (defaults to root logger)
    """
    if logger is None:
        logger = logging.getLogger()

    logger.error(f"Exception: {str(e)}", exc_info=True)


def log_system_info() -> Dict[str, Any]:
    """
    Log system information for diagnostics

    Returns:
        Dictionary with system information
    """
    logger = logging.getLogger(__name__)
    memory = psutil.virtual_memory()

    system_info = {
        'platform': platform.platform(),
        'python_version': sys.version.split()[0],
        'cpu_count': os.cpu_count(),
        'memory_total': f"{memory.total / (1024**3):.2f} GB",
        'memory_available': f"{memory.available / (1024**3):.2f} GB",
        'memory_percent_used': f"{memory.percent}%"
    }

    logger.info("System information:")
    for key, value in system_info.items():
        logger.info(f"  {key}: {value}")

    return system_info
