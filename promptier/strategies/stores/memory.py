"""In-memory template and global variable stores."""

import logging

from promptier.interfaces.store import (
    BaseTemplateStore,
    BaseVariableStore,
    GlobalVariable,
    TemplateRecord,
)

logger = logging.getLogger(__name__)


class InMemoryVariableStore(BaseVariableStore):
    """Global variables kept in a dict, in insertion order."""

    def __init__(self, variables: list[GlobalVariable] | None = None) -> None:
        self._variables: dict[str, GlobalVariable] = {v.name: v for v in variables or []}

    async def get(self, name: str) -> GlobalVariable | None:
        return self._variables.get(name)

    async def list(self) -> list[GlobalVariable]:
        return list(self._variables.values())

    async def save(self, variable: GlobalVariable) -> GlobalVariable:
        self._variables[variable.name] = variable
        logger.debug(f"Saved global variable {variable.name}")
        return variable

    async def delete(self, name: str) -> bool:
        return self._variables.pop(name, None) is not None


class InMemoryTemplateStore(BaseTemplateStore):
    """Template records kept in a dict."""

    def __init__(self, records: list[TemplateRecord] | None = None) -> None:
        self._records: dict[str, TemplateRecord] = {r.id: r for r in records or []}

    async def get(self, template_id: str) -> TemplateRecord | None:
        return self._records.get(template_id)

    async def list(self, category: str | None = None) -> list[TemplateRecord]:
        return [
            record
            for record in self._records.values()
            if category is None or record.category == category
        ]

    async def save(self, record: TemplateRecord) -> TemplateRecord:
        self._records[record.id] = record
        logger.debug(f"Saved template {record.id}")
        return record
