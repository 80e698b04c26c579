"""Pydantic validation models for the remote provider manifest."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from streamgarr.domain.entities import ProviderInfo

_KIND_ALIASES = {"movie": "movie", "movies": "movie", "series": "series", "tv": "series"}


class ManifestScraper(BaseModel):
    """One ``scrapers[]`` entry (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    description: str = ""
    version: Optional[str] = None
    author: Optional[str] = None
    supported_types: List[Literal["movie", "series"]] = Field(
        default_factory=lambda: ["movie", "series"],
        alias="supportedTypes",
    )
    enabled: bool = True
    limited: bool = False
    logo: Optional[str] = None
    content_language: List[str] = Field(default_factory=list, alias="contentLanguage")
    formats: List[str] = Field(default_factory=list)

    @field_validator("supported_types", mode="before")
    @classmethod
    def _normalize_kinds(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        out: list[str] = []
        for kind in v:
            mapped = _KIND_ALIASES.get(str(kind).lower())
            if mapped is None:
                raise ValueError(f"unknown media type: {kind!r}")
            if mapped not in out:
                out.append(mapped)
        return out

    def to_domain(self) -> ProviderInfo:
        return ProviderInfo(
            id=self.id,
            name=self.name,
            description=self.description,
            supported_kinds=tuple(self.supported_types),
            enabled=self.enabled,
            source="remote",
            location=self.filename,
            version=self.version,
            author=self.author,
            logo=self.logo,
            content_language=tuple(self.content_language),
            formats=tuple(self.formats),
            limited=self.limited,
        )


class RemoteManifest(BaseModel):
    """Manifest document envelope. Scraper entries are validated separately."""

    model_config = ConfigDict(extra="ignore")

    name: str = "Remote Providers"
    version: str = "0.0.0"
    scrapers: List[Any] = Field(default_factory=list)
