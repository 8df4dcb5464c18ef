"""Environment-based configuration and per-document settings."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

from defilens.constants import (
    DEFAULT_MAX_PROBLEMS,
    HTTP_TIMEOUT_SECONDS,
    INFURA_URL_TEMPLATE,
    MARKET_API_BASE_URL,
)

logger = logging.getLogger(__name__)


class DocumentSettings(BaseModel):
    """The client's ``defi`` configuration section for one document.

    Keys arrive camelCased (``maxNumberOfProblems``); unknown keys are
    ignored and missing ones fall back to defaults.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    max_number_of_problems: int = Field(
        default=DEFAULT_MAX_PROBLEMS, ge=0
    )
    infura_project_id: str = ""
    infura_project_secret: str = ""
    amberdata_api_key: str = ""

    @field_validator(
        "infura_project_id",
        "infura_project_secret",
        "amberdata_api_key",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        """Clients send ``null`` for unset strings."""
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def has_chain_credentials(self) -> bool:
        return bool(self.infura_project_id)

    @property
    def has_market_credentials(self) -> bool:
        return bool(self.amberdata_api_key)

    @classmethod
    def from_client(cls, raw: Any) -> DocumentSettings:
        """Parse a ``workspace/configuration`` result item.

        Anything that is not a mapping (``None``, a list) yields defaults.
        """
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate(raw)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Logging
    log_level: str = "INFO"

    # Market data API
    market_api_base_url: str = MARKET_API_BASE_URL
    http_timeout_seconds: float = HTTP_TIMEOUT_SECONDS

    # Chain RPC
    infura_url_template: str = INFURA_URL_TEMPLATE

    # Fallback document settings (clients without configuration
    # support, and the ``scan`` CLI command)
    max_number_of_problems: int = DEFAULT_MAX_PROBLEMS
    infura_project_id: str = ""
    infura_project_secret: str = ""
    amberdata_api_key: str = ""

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("max_number_of_problems")
    @classmethod
    def _validate_max_problems(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_number_of_problems must be >= 0")
        return v

    def default_document_settings(self) -> DocumentSettings:
        """Document settings used when the client supplies none."""
        return DocumentSettings(
            max_number_of_problems=self.max_number_of_problems,
            infura_project_id=self.infura_project_id,
            infura_project_secret=self.infura_project_secret,
            amberdata_api_key=self.amberdata_api_key,
        )

    def rpc_url(self, document: DocumentSettings) -> str:
        """Infura mainnet endpoint for the document's project ID."""
        return self.infura_url_template.format(
            project_id=document.infura_project_id
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "DEFILENS_",
        "extra": "ignore",
    }
