from pydantic import BaseModel, BeforeValidator
from typing import Annotated, Optional

DEFAULT_GITLAB_URL = "https://gitlab.com"

# Field name -> key in the legacy .env store
DOTENV_KEYS = {
    "url": "GITLAB_URL",
    "token": "GITLAB_TOKEN",
    "project_id": "GITLAB_PROJECT_ID",
}


def _blank_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    # Both stores hold one value per line
    if any(ord(char) < 32 or ord(char) == 127 for char in value):
        raise ValueError("must not contain control characters")
    return value or None


def _url_or_default(value):
    return _blank_to_none(value) or DEFAULT_GITLAB_URL


# Blank strings mean "unset" in both stores
Setting = Annotated[Optional[str], BeforeValidator(_blank_to_none)]


class StoredConfig(BaseModel):
    """Raw contents of one config store. Every field may be unset."""
    url: Setting = None
    token: Setting = None
    project_id: Setting = None


class GitLabConfig(BaseModel):
    url: Annotated[str, BeforeValidator(_url_or_default)] = DEFAULT_GITLAB_URL
    token: Setting = None
    project_id: Setting = None

    def overlay(self, stored: StoredConfig) -> "GitLabConfig":
        """Return a copy with every field that is set in `stored` applied."""
        updates = {k: v for k, v in stored.model_dump().items() if v is not None}
        return self.model_copy(update=updates)


class ConfigView(BaseModel):
    url: str
    token_set: bool
    project_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: GitLabConfig) -> "ConfigView":
        return cls(url=config.url, token_set=config.token is not None, project_id=config.project_id)
