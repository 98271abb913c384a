# src/x3f_extract/core/error_handling.py

import functools
import logging
from contextlib import contextmanager
from typing import Iterator, Type

from PIL import UnidentifiedImageError as PILUnidentifiedImageError

from .exceptions import X3FExtractError


def with_error_handling(func):
    """
    A decorator that logs any unexpected exception with its traceback
    before letting it propagate. Pipeline errors are re-raised untouched.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except X3FExtractError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            raise
    return wrapper


@contextmanager
def collaborator_call(error_cls: Type[X3FExtractError], stage: str) -> Iterator[None]:
    """
    Context manager around one call into the decode/encode backend.

    Errors from the pipeline taxonomy pass through unchanged; anything
    else (OSError, PIL errors, bugs in a backend) is wrapped in
    ``error_cls`` so the driver can handle it as a failure of ``stage``.
    """
    try:
        yield
    except X3FExtractError:
        raise
    except Exception as e:
        if isinstance(e, PILUnidentifiedImageError):
            raise error_cls(f"{stage}: unidentified image data: {e}") from e
        raise error_cls(f"{stage}: {e}") from e
