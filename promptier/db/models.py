"""Database models using SQLModel.

Defines the durable bookkeeping for the file-handle registry. Live handles
cannot be serialized, so only their metadata is stored; a restart leaves the
records behind and the handles are re-acquired on demand.
"""

from sqlmodel import Field, SQLModel

from promptier.interfaces.handle import HandleKind
from promptier.interfaces.store import HandleMetadata


class HandleRecordBase(SQLModel):
    """Base handle record fields."""

    name: str = Field(max_length=1024)
    kind: HandleKind = Field(default=HandleKind.FILE)
    timestamp: int = Field(ge=0, description="Registration time, ms since the epoch")


class HandleRecord(HandleRecordBase, table=True):
    """Metadata row for a registered handle."""

    __tablename__ = "file_handles"

    id: str = Field(primary_key=True, max_length=64)

    @classmethod
    def from_metadata(cls, metadata: HandleMetadata) -> "HandleRecord":
        return cls(
            id=metadata.id,
            name=metadata.name,
            kind=metadata.kind,
            timestamp=metadata.timestamp,
        )

    def to_metadata(self) -> HandleMetadata:
        return HandleMetadata(
            id=self.id,
            name=self.name,
            kind=HandleKind(self.kind),
            timestamp=self.timestamp,
        )
