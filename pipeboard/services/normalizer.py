import logging
from functools import lru_cache

from pydantic import TypeAdapter, ValidationError

from .errors import ParseError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _adapter(shape) -> TypeAdapter:
    return TypeAdapter(shape)


def normalize(raw: bytes, shape):
    """Parse a GitLab response body into `shape` (a model or List[model]).

    Fields GitLab sends that `shape` does not declare are dropped; declared
    fields that are missing fall back to their zero value.
    """
    try:
        return _adapter(shape).validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Could not normalize GitLab response into {shape}: {e.error_count()} error(s)")
        raise ParseError(str(e)) from e
