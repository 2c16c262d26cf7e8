"""Domain models for remote alignment tasks and local media assets."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _records(value: Any) -> List[Any]:
    """Keep only mapping-like entries of a list; anything else becomes empty."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


class RemoteModel(BaseModel):
    """Base for loosely typed remote payloads: camelCase aliases, unknown keys kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Output(RemoteModel):
    """An artifact produced by a task or one of its targets."""

    name: Optional[str] = None
    format: Optional[str] = None
    type: Optional[str] = None
    link: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None

    @field_validator("name", "format", "type", "link", "url", "status", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> Optional[str]:
        return _string_or_none(value)


class Target(RemoteModel):
    """A sub-job of a task, scoped to one model."""

    status: Optional[str] = None
    model: Optional[str] = None
    language: Optional[str] = None
    duration: Optional[float] = None
    url: Optional[str] = None
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    output: List[Output] = Field(default_factory=list)

    @field_validator("status", "model", "language", "url", "audio_url", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> Optional[str]:
        return _string_or_none(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _number(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("output", mode="before")
    @classmethod
    def _outputs(cls, value: Any) -> List[Any]:
        return _records(value)


class RawTask(RemoteModel):
    targets: List[Target] = Field(default_factory=list)

    @field_validator("targets", mode="before")
    @classmethod
    def _targets(cls, value: Any) -> List[Any]:
        return _records(value)


class AudioSource(RemoteModel):
    url: Optional[str] = None

    @field_validator("url", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> Optional[str]:
        return _string_or_none(value)


class Task(RemoteModel):
    """
    A remote alignment job.

    The same semantic fields (audio URL, status, outputs) can live in several
    places; read them through the accessors in ``alignsync.state.resolvers``.
    ``valid_src`` and ``asset_title`` are written by the task/asset matcher only.
    """

    id: Optional[str] = None
    status: Optional[str] = None
    targets: List[Target] = Field(default_factory=list)
    outputs: List[Output] = Field(default_factory=list)
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    raw_task: Optional[RawTask] = Field(default=None, alias="rawTask")
    audio_sources: List[AudioSource] = Field(default_factory=list, alias="audioSources")
    preferred_audio_url: Optional[str] = Field(default=None, alias="preferredAudioUrl")
    valid_src: Optional[str] = Field(default=None, alias="validSrc")
    asset_title: Optional[str] = Field(default=None, alias="assetTitle")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    completed_at: Optional[str] = Field(default=None, alias="completedAt")

    @field_validator("id", mode="before")
    @classmethod
    def _identifier(cls, value: Any) -> Optional[str]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        return _string_or_none(value)

    @field_validator(
        "status",
        "audio_url",
        "preferred_audio_url",
        "valid_src",
        "asset_title",
        "created_at",
        "updated_at",
        "completed_at",
        mode="before",
    )
    @classmethod
    def _strings(cls, value: Any) -> Optional[str]:
        return _string_or_none(value)

    @field_validator("targets", "outputs", "audio_sources", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[Any]:
        return _records(value)

    @field_validator("raw_task", mode="before")
    @classmethod
    def _raw_task(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else None


class Asset(BaseModel):
    """A locally enumerable media reference."""

    model_config = ConfigDict(extra="allow")

    src: str
    title: Optional[str] = None
    format: Optional[str] = None
    expiry: Optional[str] = None


class StatusInfo(BaseModel):
    raw: str = ""
    normalized: str = ""


class AlignmentRecord(BaseModel):
    """Denormalized snapshot of a task kept for offline listing."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    json_url: Optional[str] = Field(default=None, alias="jsonUrl")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    status: str = ""
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
