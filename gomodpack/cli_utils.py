"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
import logging

from .errors import PackError
from .exit_codes import INTERRUPTED, get_exit_code_for_exception

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI error handling:
    - PackError is logged and mapped to its exit code
    - with ``--json`` the error is also printed as a JSON object on stdout
    - Ctrl+C exits with INTERRUPTED
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        as_json = kwargs.get('as_json', False)
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except PackError as e:
            logger.error(f"{e}")
            if e.detail:
                logger.error(e.detail)
            if as_json:
                click.echo(json.dumps({"error": e.to_dict()}, ensure_ascii=False))
            sys.exit(get_exit_code_for_exception(e))

    return wrapper
