"""Pydantic models for the daemon's JSON responses."""

from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from ipfs_client.exceptions import HashError
from ipfs_client.identifiers import ContentHash


def _parse_content_hash(value):
    if isinstance(value, str):
        if value.startswith("/ipfs/"):
            value = value[len("/ipfs/"):].split("/", 1)[0]
        try:
            return ContentHash.from_string(value)
        except HashError as e:
            raise ValueError(str(e)) from e
    return value


def _none_as_empty(value):
    return value if value is not None else []


ContentHashField = Annotated[ContentHash, BeforeValidator(_parse_content_hash)]


class DaemonModel(BaseModel):
    """Base for daemon payloads, which use PascalCase keys."""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


class AddResponse(DaemonModel):
    """Response model for /api/v0/add."""
    name: str = Field(alias="Name")
    hash: ContentHashField = Field(alias="Hash")
    size: int = Field(alias="Size")


class CidResponse(DaemonModel):
    """Response model for /api/v0/resolve."""
    path: str = Field(alias="Path")

    @field_validator("path")
    @classmethod
    def check_ipfs_path(cls, value: str) -> str:
        if not value.startswith("/ipfs/"):
            raise ValueError(f"resolved path is not an /ipfs/ path: {value!r}")
        _parse_content_hash(value)
        return value

    @property
    def hash(self) -> ContentHash:
        return _parse_content_hash(self.path)


class LinkObject(DaemonModel):
    """A directory entry in ls or object responses."""
    name: str = Field(alias="Name")
    hash: str = Field(alias="Hash")
    size: int = Field(default=0, alias="Size")
    type: Optional[int] = Field(default=None, alias="Type")
    target: Optional[str] = Field(default=None, alias="Target")


LinkList = Annotated[List[LinkObject], BeforeValidator(_none_as_empty)]


class LsObject(DaemonModel):
    """Listing of one argument passed to ls."""
    hash: str = Field(alias="Hash")
    links: LinkList = Field(default_factory=list, alias="Links")


class LsResponse(DaemonModel):
    """Response model for /api/v0/ls."""
    objects: List[LsObject] = Field(alias="Objects")


class ObjectResponse(DaemonModel):
    """Response model for /api/v0/object/patch/add-link."""
    hash: ContentHashField = Field(alias="Hash")
    links: LinkList = Field(default_factory=list, alias="Links")


class Key(DaemonModel):
    """A keypair known to the daemon, as used for IPNS publishing."""
    name: str = Field(alias="Name")
    id: str = Field(alias="Id")


class KeyListResponse(DaemonModel):
    """Response model for /api/v0/key/list."""
    keys: List[Key] = Field(alias="Keys")
