import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from ..models.config import GitLabConfig
from .errors import NotFoundError, ParseError, UpstreamError

logger = logging.getLogger(__name__)

TOKEN_NOTE = "Using example data because GitLab token is not configured"
PROJECT_NOTE = "Using example data because no project ID is configured or provided"
PARSE_NOTE = "Using example data due to parsing error"


class OnError(str, Enum):
    """What to serve when GitLab fails for a resource."""
    EXAMPLE = "example"
    EMPTY = "empty"


@dataclass
class Resource:
    """How one dashboard resource is enveloped and degraded.

    key: top-level response key, or None to spread the payload into the body.
    on_error: OnError (or its value); anything else is rejected.
    """
    name: str
    key: Optional[str]
    example: Callable[[], Any]
    empty: Callable[[], Any]
    on_error: OnError = OnError.EXAMPLE
    error_note: str = "Using example data due to API error"
    not_found_note: str = "No data available"
    empty_note: str = "No data available"

    def __post_init__(self):
        self.on_error = OnError(self.on_error)


@dataclass
class Outcome:
    """What an aggregation produced, when it has more to say than a payload."""
    payload: Any
    extra: Dict[str, Any] = field(default_factory=dict)
    note: Optional[str] = None


def dump(payload):
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, (list, tuple)):
        return [dump(item) for item in payload]
    return payload


def _is_empty(payload) -> bool:
    if isinstance(payload, (list, tuple)):
        return not payload
    is_empty = getattr(payload, "is_empty", None)
    return bool(is_empty()) if callable(is_empty) else False


def envelope(resource: Resource, payload, note: Optional[str] = None,
             extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    data = dump(payload)
    body = {resource.key: data} if resource.key else dict(data)
    if extra:
        body.update(extra)
    if note:
        body["note"] = note
    return body


class DegradationPolicy:
    """Turns every upstream, parse or empty-result condition into a 200 body.

    The body always carries a usable payload; a `note` marks it as example,
    empty or partial data. Only configuration store errors get through.
    """

    def __init__(self, config: GitLabConfig):
        self.config = config

    def run(self, resource: Resource, op: Callable[[], Any],
            require_project: bool = False, project_id: Optional[str] = None) -> Dict[str, Any]:
        if not self.config.token:
            logger.info(f"GitLab token not configured, serving example {resource.name}")
            return envelope(resource, resource.example(), TOKEN_NOTE)

        if require_project and not project_id:
            logger.info(f"No project ID configured or provided, serving example {resource.name}")
            return envelope(resource, resource.example(), PROJECT_NOTE)

        try:
            result = op()
        except NotFoundError as e:
            logger.warning(f"GitLab has no {resource.name} here: {e}")
            return envelope(resource, resource.empty(), resource.not_found_note)
        except UpstreamError as e:
            logger.error(f"Error fetching GitLab {resource.name}: {e}")
            fallback = resource.example() if resource.on_error is OnError.EXAMPLE else resource.empty()
            return envelope(resource, fallback, f"{resource.error_note}: {e}")
        except ParseError as e:
            logger.error(f"Error parsing GitLab {resource.name}: {e}")
            return envelope(resource, resource.example(), f"{PARSE_NOTE}: {e}")

        outcome = result if isinstance(result, Outcome) else Outcome(payload=result)
        if _is_empty(outcome.payload):
            logger.info(f"No {resource.name} returned by GitLab")
            return envelope(resource, resource.empty(), outcome.note or resource.empty_note, outcome.extra)
        return envelope(resource, outcome.payload, outcome.note, outcome.extra)
