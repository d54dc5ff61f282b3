"""Value records and store interfaces.

Variable values are tagged unions of text, file and directory entries.
File and directory entries reference live handles by registry id; the
handles themselves never leave the process.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from promptier.interfaces.handle import HandleKind


class HandleRef(BaseModel):
    """Serializable reference to a registered handle."""

    model_config = ConfigDict(frozen=True)

    handle_id: str = Field(min_length=1, description="Registry id of the live handle")
    path: str | None = Field(default=None, description="Path hint used for re-acquisition")


class TextEntry(BaseModel):
    """A literal text contribution."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    value: str


class FileEntry(BaseModel):
    """A file whose content is inlined when the template is resolved."""

    model_config = ConfigDict(frozen=True)

    type: Literal["file"] = "file"
    value: HandleRef
    name: str


class DirectoryEntry(BaseModel):
    """A directory whose listing is inlined when the template is resolved."""

    model_config = ConfigDict(frozen=True)

    type: Literal["directory"] = "directory"
    value: HandleRef
    name: str


VariableEntry = Annotated[TextEntry | FileEntry | DirectoryEntry, Field(discriminator="type")]


class GlobalVariable(BaseModel):
    """A named value shared across templates."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    value: list[VariableEntry] = Field(default_factory=list)

    @property
    def has_handle_entries(self) -> bool:
        return any(not isinstance(entry, TextEntry) for entry in self.value)


class TemplateRecord(BaseModel):
    """A stored template."""

    id: str
    name: str
    content: str
    category: str | None = None
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Snapshot of the last resolved values, by variable name",
    )


@dataclass(frozen=True)
class HandleMetadata:
    """Durable bookkeeping for a registered handle.

    Attributes:
        id: Registry id.
        name: File or directory name.
        kind: Handle kind.
        timestamp: Registration time in milliseconds since the epoch.
    """

    id: str
    name: str
    kind: HandleKind
    timestamp: int


class BaseVariableStore(ABC):
    """Store of global variables, queryable by name."""

    @abstractmethod
    async def get(self, name: str) -> GlobalVariable | None:
        """Return the variable called ``name``, if any."""

    @abstractmethod
    async def list(self) -> list[GlobalVariable]:
        """Return every stored variable."""

    @abstractmethod
    async def save(self, variable: GlobalVariable) -> GlobalVariable:
        """Insert or replace a variable."""

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """Delete a variable. Returns whether it existed."""


class BaseTemplateStore(ABC):
    """Store of template records."""

    @abstractmethod
    async def get(self, template_id: str) -> TemplateRecord | None:
        """Return the template with ``template_id``, if any."""

    @abstractmethod
    async def list(self, category: str | None = None) -> list[TemplateRecord]:
        """Return templates, optionally restricted to one category."""

    @abstractmethod
    async def save(self, record: TemplateRecord) -> TemplateRecord:
        """Insert or replace a template."""


class BaseHandleRecordStore(ABC):
    """Durable metadata behind the file-handle registry."""

    @abstractmethod
    async def put(self, record: HandleMetadata) -> None:
        """Insert or replace the record with ``record.id``."""

    @abstractmethod
    async def delete(self, handle_id: str) -> None:
        """Remove a record. Missing ids are ignored."""

    @abstractmethod
    async def list(self) -> list[HandleMetadata]:
        """Return every stored record."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every record."""
