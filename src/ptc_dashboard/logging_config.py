"""
Logging setup for the dashboard's web app, CLI and import runs.

Log files live under logs/<subdir>/<subdir>_YYYY-MM-DD.log with midnight
rotation. Under pytest they go to a temp directory instead, removed by
cleanup_test_logs(). Files older than LOG_RETENTION_DAYS are pruned whenever
a logger is configured.

Usage:
    from ptc_dashboard.logging_config import get_logger

    logger = get_logger('ptc_dashboard.import', 'import')
    logger.info('Imported signups.csv')

Library modules log through plain logging.getLogger('ptc_dashboard.<area>')
and inherit whatever the entry point configured.
"""

import logging
import os
import shutil
import sys
import tempfile
from datetime import datetime, timedelta
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional


IS_TEST_ENV = 'pytest' in sys.modules

TEST_LOG_DIR = Path(tempfile.gettempdir()) / 'ptc_dashboard_test_logs'
LOG_BASE_DIR = TEST_LOG_DIR if IS_TEST_ENV else Path(os.getenv('PTC_LOG_DIR', 'logs'))
DEFAULT_LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_RETENTION_DAYS = int(os.getenv('LOG_RETENTION_DAYS', '30'))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def ensure_log_directory(log_subdir: str) -> Path:
    log_dir = LOG_BASE_DIR / log_subdir
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def cleanup_old_logs(log_dir: Path, retention_days: int = LOG_RETENTION_DAYS):
    """Delete *.log files in log_dir last modified more than retention_days ago."""
    if not log_dir.exists():
        return

    cutoff = (datetime.now() - timedelta(days=retention_days)).timestamp()
    for log_file in log_dir.glob('*.log'):
        if log_file.stat().st_mtime < cutoff:
            try:
                log_file.unlink()
            except OSError:
                pass  # another process may still hold it


def _resolve_level(level: Optional[str]) -> int:
    return getattr(logging, (level or DEFAULT_LOG_LEVEL).upper())


def _attach_handlers(logger: logging.Logger, log_subdir: str, level: int, console_output: bool):
    log_dir = ensure_log_directory(log_subdir)
    cleanup_old_logs(log_dir)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = TimedRotatingFileHandler(
        filename=log_dir / f"{log_subdir}_{datetime.now().strftime('%Y-%m-%d')}.log",
        when='midnight',
        interval=1,
        backupCount=LOG_RETENTION_DAYS,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)


def get_logger(
    name: str,
    log_subdir: str,
    level: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Get a logger writing to logs/<log_subdir>, configured once per name.

    Args:
        name: Logger name (e.g., 'ptc_dashboard.import')
        log_subdir: Subdirectory under the log root (e.g., 'import', 'webapp', 'cli')
        level: Handler level name; defaults to LOG_LEVEL
        console_output: Also log to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)  # handlers do the filtering
    _attach_handlers(logger, log_subdir, _resolve_level(level), console_output)
    return logger


def configure_root_logger(level: Optional[str] = None, console_output: bool = True, log_subdir: str = 'app'):
    """Configure the root logger once, so every ptc_dashboard.* logger is captured."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    root_logger.setLevel(logging.DEBUG)
    _attach_handlers(root_logger, log_subdir, _resolve_level(level), console_output)


def cleanup_test_logs():
    """Remove the temp log directory. No-op outside pytest."""
    if not IS_TEST_ENV:
        return
    if TEST_LOG_DIR.exists():
        shutil.rmtree(TEST_LOG_DIR, ignore_errors=True)
