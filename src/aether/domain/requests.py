"""Pydantic models for conversion requests arriving from outer surfaces.

The HTTP API and the CLI both build requests through these models, so
payload validation happens in one place. Each model converts itself to the
immutable domain values used by the engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from aether.domain.formats import MediaType
from aether.domain.models import (
    CONFLICT_KEEP_BOTH,
    MIN_RESIZE_DIMENSION,
    BackgroundColor,
    DateBlock,
    NamingBlock,
    NamingConfig,
    OriginalBlock,
    PrefixBlock,
    RandomBlock,
    ResizeMode,
    ResizeSpec,
    ThumbnailRequest,
)
from aether.errors import InvalidConfigError


class ResizeConfigModel(BaseModel):
    """Resize box as sent by a client."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    width: int = Field(ge=MIN_RESIZE_DIMENSION)
    height: int = Field(ge=MIN_RESIZE_DIMENSION)
    mode: ResizeMode = ResizeMode.CONTAIN
    background_color: BackgroundColor = BackgroundColor.BLACK

    def to_spec(self) -> ResizeSpec:
        return ResizeSpec(
            width=self.width,
            height=self.height,
            mode=self.mode,
            background_color=self.background_color,
        )


class OriginalBlockModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["original"] = "original"


class PrefixBlockModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["prefix"] = "prefix"
    value: str = ""


class RandomBlockModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["random"] = "random"
    # Out-of-range lengths are clamped later, not rejected
    length: int = Field(default=8, ge=0, le=255)


class DateBlockModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["date"] = "date"


NamingBlockModel = Annotated[
    OriginalBlockModel | PrefixBlockModel | RandomBlockModel | DateBlockModel,
    Field(discriminator="type"),
]


def _block_from_model(model: NamingBlockModel) -> NamingBlock:
    match model:
        case PrefixBlockModel(value=value):
            return PrefixBlock(value)
        case RandomBlockModel(length=length):
            return RandomBlock(length)
        case DateBlockModel():
            return DateBlock()
        case _:
            return OriginalBlock()


class NamingConfigModel(BaseModel):
    """Naming pipeline configuration as sent by a client."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    blocks: list[NamingBlockModel] = Field(
        default_factory=lambda: [OriginalBlockModel()]
    )
    sanitize_enabled: bool = False

    def to_config(self) -> NamingConfig:
        return NamingConfig(
            blocks=tuple(_block_from_model(b) for b in self.blocks),
            sanitize=self.sanitize_enabled,
        )


class ConversionRequest(BaseModel):
    """A single conversion job request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    input_path: str = Field(min_length=1)
    output_format: str = Field(min_length=1)
    quality_percent: int = Field(default=80, ge=0, le=100)
    strip_metadata: bool = False
    is_muted: bool = False
    resize_config: ResizeConfigModel | None = None
    naming_config: NamingConfigModel | None = None
    output_directory: str | None = None
    conflict_mode: str = CONFLICT_KEEP_BOTH
    processing_enabled: bool = True
    max_bitrate: int | None = Field(default=None, gt=0)

    @field_validator("conflict_mode")
    @classmethod
    def casefold_conflict_mode(cls, v: str) -> str:
        """Conflict modes are matched case-insensitively."""
        return v.strip().casefold()


class ThumbnailRequestModel(BaseModel):
    """A thumbnail job request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    input_path: str = Field(min_length=1)
    media_type: MediaType

    def to_request(self) -> ThumbnailRequest:
        return ThumbnailRequest(
            id=self.id,
            input_path=Path(self.input_path),
            media_type=self.media_type,
        )


def parse_conversion_request(payload: object) -> ConversionRequest:
    """Validate a raw payload into a ConversionRequest.

    Raises:
        InvalidConfigError: If the payload does not validate.
    """
    try:
        return ConversionRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidConfigError(_summarize(e)) from e


def parse_thumbnail_requests(payload: object) -> list[ThumbnailRequest]:
    """Validate a list of raw thumbnail payloads.

    Raises:
        InvalidConfigError: If the payload is not a list or an item fails
            validation.
    """
    if not isinstance(payload, list):
        raise InvalidConfigError("thumbnail requests must be a list")
    try:
        return [ThumbnailRequestModel.model_validate(p).to_request() for p in payload]
    except ValidationError as e:
        raise InvalidConfigError(_summarize(e)) from e


def _summarize(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "request"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
