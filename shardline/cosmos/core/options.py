"""Client and connection options."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .enums import PropertyNaming

if TYPE_CHECKING:
    from ..runtime.retry import RetryPolicy


class ClientOptions(BaseModel):
    """Behavioural options fixed when a container proxy is constructed.

    Delays are in seconds. Throttled requests stop retrying at whichever
    limit is reached first: ``max_retries`` retries or a cumulative wait
    above ``max_retry_wait``. With the defaults the wait budget applies
    first; the delays 5, 6, ..., 11 add up to 56 s, so a request is given
    up after 7 retries because the next 12 s wait would pass 60 s.
    """

    default_retry_delay: float = Field(5.0, gt=0)
    max_item_count: int | None = Field(None, gt=0)
    throw_if_not_found: bool = True
    backoff_factor: float = Field(0.2, ge=0)
    max_retries: int | None = Field(9, ge=0)
    max_retry_wait: float | None = Field(60.0, gt=0)
    max_delay: float | None = Field(None, gt=0)
    property_naming: PropertyNaming = PropertyNaming.CAMEL_CASE
    exclude_none: bool = True

    model_config = ConfigDict(frozen=True)

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by these options."""
        from ..runtime.retry import RetryPolicy

        return RetryPolicy(
            default_retry_delay=self.default_retry_delay,
            backoff_factor=self.backoff_factor,
            max_retries=self.max_retries,
            max_retry_wait=self.max_retry_wait,
            max_delay=self.max_delay,
        )


class ConnectionOptions(BaseModel):
    """Where the container lives and how to authenticate against it."""

    endpoint: str = Field(..., min_length=1)
    key: SecretStr
    database_id: str = Field(..., min_length=1)
    container_id: str = Field(..., min_length=1)
    partition_key_path: str = "/partition"
    timeout: float = Field(30.0, gt=0)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("endpoint must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("partition_key_path")
    @classmethod
    def validate_partition_key_path(cls, v: str) -> str:
        if not v.startswith("/") or v == "/":
            raise ValueError("partition_key_path must look like '/property'")
        return v

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        *,
        database_id: str,
        container_id: str,
        **kwargs: Any,
    ) -> ConnectionOptions:
        """Create options from an ``AccountEndpoint=...;AccountKey=...;`` string.

        Args:
            connection_string: Account connection string
            database_id: Database identifier
            container_id: Container identifier
            **kwargs: Any other ConnectionOptions field

        Raises:
            ValueError: If the endpoint or key is missing from the string
        """
        parts: dict[str, str] = {}
        for segment in connection_string.split(";"):
            if not segment.strip():
                continue
            name, sep, value = segment.partition("=")
            if not sep:
                raise ValueError(f"Malformed connection string segment: {name.strip()!r}")
            parts[name.strip().lower()] = value.strip()

        endpoint = parts.get("accountendpoint")
        key = parts.get("accountkey")
        if not endpoint or not key:
            raise ValueError("connection string must contain AccountEndpoint and AccountKey")

        return cls(
            endpoint=endpoint,
            key=key,
            database_id=database_id,
            container_id=container_id,
            **kwargs,
        )
