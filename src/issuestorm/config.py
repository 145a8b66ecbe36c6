"""Run configuration: a TOML file, optionally overridden from the environment."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from .dispatcher import RetryPolicy
from .errors import ConfigError
from .payload import ISSUE_TYPES

logger = logging.getLogger(__name__)

ENV_PREFIX = "ISSUESTORM_"
ENV_OVERRIDES = ("token", "base_url")


class Config(BaseModel):
    token: str
    base_url: str
    project_id: str
    issue_count: int
    issue_type: Optional[str] = None

    concurrency: Optional[int] = Field(default=None, ge=1)
    max_retries: int = Field(default=0, ge=0)
    backoff_base_s: float = Field(default=0.5, gt=0)
    request_timeout_s: Optional[float] = Field(default=None, gt=0)
    per_page: int = Field(default=50, ge=1, le=100)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, backoff_base_s=self.backoff_base_s)


def build_config(raw: dict[str, Any]) -> Config:
    for key in ENV_OVERRIDES:
        value = os.environ.get(ENV_PREFIX + key.upper())
        if value:
            logger.debug(f"Using {ENV_PREFIX + key.upper()} from environment")
            raw = {**raw, key: value}

    try:
        config = Config.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Config validation failed: {e}")
        raise ConfigError("Unable to parse config file.") from e

    if config.issue_count < 1 or config.issue_count > 100:
        raise ConfigError("Issue count must be between 1 to 100")

    if config.issue_type is not None and config.issue_type not in ISSUE_TYPES:
        raise ConfigError("Issue type is invalid.")

    return config


def load_config(path: str | Path) -> Config:
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise ConfigError("Unable to read config file.") from e
    except tomllib.TOMLDecodeError as e:
        logger.debug(f"TOML error in {path}: {e}")
        raise ConfigError("Unable to parse config file.") from e

    return build_config(raw)
