"""Application configuration."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse, urlunparse

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(3000, ge=1, le=65535)
    max_body_bytes: int = Field(10 * 1024, ge=1024, le=1024 * 1024)


class BloomSettings(BaseModel):
    key: str = "tweet_filter"
    error_rate: float = Field(0.001, gt=0.0, lt=1.0)
    capacity: int = Field(1_000_000, ge=1)

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("key must not be empty")
        return key


class TopKSettings(BaseModel):
    key: str = "topk_hashtags"
    k: int = Field(25, ge=1, le=1000)
    width: int = Field(2000, ge=1)
    depth: int = Field(7, ge=1)
    decay: float = Field(0.925, gt=0.0, le=1.0)

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("key must not be empty")
        return key


class ValidationSettings(BaseModel):
    max_tweet_length: int = Field(280, ge=1, le=10_000)
    max_count: int = Field(25, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        env_prefix="",
        env_nested_delimiter="__",
        extra="ignore",
    )

    redis_url: str = Field("redis://localhost:6379", validation_alias="REDIS_URL")
    redis_socket_timeout: float | None = Field(
        default=None, gt=0.0, validation_alias="REDIS_SOCKET_TIMEOUT"
    )
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    sentry_dsn: str | None = Field(default=None, validation_alias="SENTRY_DSN")
    auto_create_structures: bool = Field(True, validation_alias="AUTO_CREATE_STRUCTURES")

    http: HttpSettings = HttpSettings()
    bloom: BloomSettings = BloomSettings()
    topk: TopKSettings = TopKSettings()
    validation: ValidationSettings = ValidationSettings()

    @model_validator(mode="after")
    def check_query_ceiling(self) -> "Settings":
        if self.validation.max_count > self.topk.k:
            raise ValueError(
                "validation.max_count cannot exceed topk.k "
                f"({self.validation.max_count} > {self.topk.k})"
            )
        return self

    def public_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["redis_url"] = _mask_url_password(self.redis_url)
        if data.get("sentry_dsn"):
            data["sentry_dsn"] = "***"
        return data


def _mask_url_password(raw_url: str) -> str:
    parsed = urlparse(raw_url)
    if not parsed.password:
        return raw_url
    host = parsed.hostname or ""
    if parsed.port:
        host = f"{host}:{parsed.port}"
    user = parsed.username or ""
    netloc = f"{user}:***@{host}"
    return urlunparse(parsed._replace(netloc=netloc))
