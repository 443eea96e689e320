"""Request and response models exchanged with the GitHub lookup adapter."""

from pydantic import BaseModel, ConfigDict, Field

from ..models import ReferenceKind, RemoteState


class FetchRequest(BaseModel):
    """Lookup request for one distinct URL."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Canonical URL, used as the response key")
    owner: str = Field(..., description="Repository owner")
    repo: str = Field(..., description="Repository name")
    number: int = Field(..., description="Issue or pull request number")
    kind: ReferenceKind = Field(..., description="Issue or pull request")


class FetchResult(BaseModel):
    """Lookup outcome for one URL; ``state`` is None when it could not be resolved."""

    model_config = ConfigDict(frozen=True)

    state: RemoteState | None = None
