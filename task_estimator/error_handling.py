"""Error handling utilities and decorators for the task estimator.

Provides standardized error handling at the seams where the estimator
talks to collaborators: the SQLite cache, the timewarrior CLI and the
individual estimate sources.
"""

import functools
import json
import logging
import sqlite3
import subprocess
from typing import Callable

from .exceptions import CacheError, TrackedTimeError

logger = logging.getLogger(__name__)


def handle_cache_errors(func: Callable) -> Callable:
    """Decorator to handle cache persistence errors consistently.

    Converts SQLite and file system exceptions to CacheError
    and logs errors appropriately.

    Args:
        func: Function to decorate

    Returns:
        Decorated function
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CacheError:
            raise
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Cache operation failed in {func.__name__}: {str(e)}")
            raise CacheError(f"Cache operation failed: {str(e)}") from e

    return wrapper


def handle_tracked_time_errors(func: Callable) -> Callable:
    """Decorator to handle timewarrior errors consistently.

    Converts process and parsing exceptions to TrackedTimeError.

    Args:
        func: Function to decorate

    Returns:
        Decorated function
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TrackedTimeError:
            raise
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            logger.debug(f"timewarrior failed in {func.__name__}: {stderr}")
            raise TrackedTimeError(f"timewarrior export failed: {stderr}") from e
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Could not run timewarrior in {func.__name__}: {str(e)}")
            raise TrackedTimeError(f"Failed to run timewarrior: {str(e)}") from e
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise TrackedTimeError(f"Failed to parse timewarrior output: {str(e)}") from e

    return wrapper


def abstain_on_error(source_name: str) -> Callable[[Callable], Callable]:
    """Decorator for estimate sources: any failure becomes an abstention.

    The wrapped source returns None instead of raising, so one failing
    source never prevents collection from the others.

    Args:
        source_name: Name used in log messages

    Returns:
        Decorator
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"{source_name} source abstained: {str(e)}")
                return None

        return wrapper

    return decorator
