"""Variable resolution engine.

Tracks per-variable state for the template being edited, validates values,
and produces the final text: placeholders are replaced in a single
left-to-right pass using local values, then global variables (with file and
directory contents resolved on demand), then parsed defaults.
"""

import dataclasses
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from promptier.interfaces.clipboard import BaseClipboard
from promptier.interfaces.notifier import BaseNotifier, ResolutionEvent, ResolutionStatus
from promptier.interfaces.store import (
    BaseVariableStore,
    DirectoryEntry,
    FileEntry,
    GlobalVariable,
    TemplateRecord,
    TextEntry,
    VariableEntry,
)
from promptier.strategies.filesystem.resolver import (
    EntryDiagnosis,
    FileContentResolver,
    ResolutionResult,
    ResolveOptions,
)
from promptier.strategies.template_engine.models import (
    TemplateParseResult,
    TemplateVariableState,
    ValidationRules,
    VariableValidationError,
)
from promptier.strategies.template_engine.parser import TemplateParser
from promptier.strategies.template_engine.validation import validate_value

logger = logging.getLogger(__name__)

LocalValue = str | TemplateVariableState
GlobalValues = Mapping[str, GlobalVariable] | Iterable[GlobalVariable]


@dataclass(frozen=True)
class ResolvedTemplate:
    """Final text plus everything needed to explain it.

    Attributes:
        text: The substituted template.
        parse_result: Parse of the template.
        resolution: Outcome of resolving the referenced file and directory
            entries, flattened across variables.
        diagnostics: Reports for the entries that failed to resolve.
    """

    text: str
    parse_result: TemplateParseResult
    resolution: ResolutionResult = field(default_factory=ResolutionResult)
    diagnostics: tuple[EntryDiagnosis, ...] = ()

    @property
    def status(self) -> ResolutionStatus:
        return ResolutionStatus.SUCCESS if self.resolution.success else ResolutionStatus.PARTIAL


def _index_globals(global_values: GlobalValues | None) -> dict[str, GlobalVariable]:
    if global_values is None:
        return {}
    if isinstance(global_values, Mapping):
        return dict(global_values)
    return {variable.name: variable for variable in global_values}


def _local_text(value: LocalValue | None) -> str:
    # Clean states only mirror the default or a saved value; they do not
    # override globals.
    if value is None:
        return ""
    if isinstance(value, TemplateVariableState):
        return value.value if value.is_dirty else ""
    return value


def render_entries(entries: Sequence[VariableEntry], contents: Sequence[str | None] | None = None) -> str:
    """Render a global value, one entry per line.

    Args:
        entries: The variable's entries.
        contents: Resolved contents aligned with ``entries``. Unresolved file
            and directory entries render as ``[File: name]`` or
            ``[Directory: name]``.
    """
    parts: list[str] = []
    for index, entry in enumerate(entries):
        content = contents[index] if contents is not None else None
        match entry:
            case TextEntry():
                parts.append(entry.value)
            case FileEntry():
                parts.append(content if content is not None else f"[File: {entry.name}]")
            case DirectoryEntry():
                parts.append(content if content is not None else f"[Directory: {entry.name}]")
    return "\n".join(parts)


class VariableResolutionEngine:
    """Binds template variables to values and renders the final text.

    Example:
        ```python
        engine = factory.get_engine()
        engine.load("Hello {{name:World}}")
        engine.set_value("name", "Ada")
        resolved = await engine.resolve_and_copy()
        ```
    """

    def __init__(
        self,
        parser: TemplateParser,
        resolver: FileContentResolver,
        clipboard: BaseClipboard | None = None,
        notifier: BaseNotifier | None = None,
        variable_store: BaseVariableStore | None = None,
        rules: Mapping[str, ValidationRules] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            parser: Memoizing template parser.
            resolver: Resolver for file and directory entries.
            clipboard: Sink for ``resolve_and_copy``.
            notifier: Receives resolution outcomes.
            variable_store: Source of global variables when none are passed.
            rules: Validation rules by variable name.
        """
        self._parser = parser
        self._resolver = resolver
        self._clipboard = clipboard
        self._notifier = notifier
        self._variable_store = variable_store
        self._rules: dict[str, ValidationRules] = dict(rules or {})

        self._template = ""
        self._parse_result = parser.parse("")
        self._initial_values: dict[str, str] = {}
        self._states: dict[str, TemplateVariableState] = {}

    # =========================================================================
    # Parsing
    # =========================================================================

    def parse(self, template: str) -> TemplateParseResult:
        return self._parser.parse(template)

    def used_variable_names(self, template: str) -> set[str]:
        """Names referenced by well-formed placeholders in ``template``."""
        return self._parser.used_variable_names(template)

    # =========================================================================
    # Variable state
    # =========================================================================

    @property
    def template(self) -> str:
        return self._template

    @property
    def parse_result(self) -> TemplateParseResult:
        return self._parse_result

    @property
    def states(self) -> dict[str, TemplateVariableState]:
        return {name: state.model_copy(deep=True) for name, state in self._states.items()}

    def load(
        self,
        template: str,
        initial_values: Mapping[str, str] | None = None,
    ) -> dict[str, TemplateVariableState]:
        """Bind the engine to ``template`` and reset every variable.

        Args:
            template: The template text.
            initial_values: Previously saved values, by variable name.

        Returns:
            The fresh variable states.
        """
        self._template = template
        self._parse_result = self._parser.parse(template)
        self._initial_values = dict(initial_values or {})
        self.reset()
        return self.states

    def set_rules(self, name: str, rules: ValidationRules | None) -> None:
        if rules is None:
            self._rules.pop(name, None)
        else:
            self._rules[name] = rules

    def set_value(self, name: str, value: str) -> TemplateVariableState:
        """Update a variable, marking it dirty and re-validating it.

        Raises:
            KeyError: If the loaded template has no variable called ``name``.
        """
        variable = self._parse_result.get_variable(name)
        if variable is None:
            raise KeyError(name)

        errors = validate_value(variable, value, self._rules.get(name))
        state = TemplateVariableState(
            value=value,
            is_dirty=True,
            is_valid=not errors,
            errors=errors,
        )
        self._states[name] = state
        return state.model_copy(deep=True)

    def reset(self) -> None:
        """Return every variable to its clean state."""
        self._states = {}
        for variable in self._parse_result.variables:
            value = self._initial_values.get(variable.name)
            if value is None:
                value = variable.default_value or ""
            self._states[variable.name] = TemplateVariableState(value=value)

    @property
    def validation_errors(self) -> list[VariableValidationError]:
        return [error for state in self._states.values() for error in state.errors]

    @property
    def has_all_required_values(self) -> bool:
        return all(
            self._states[variable.name].value.strip()
            for variable in self._parse_result.variables
            if variable.is_required
        )

    def local_values(self) -> dict[str, str]:
        """Values that override globals: edited values and saved initial values."""
        local: dict[str, str] = {}
        for name, state in self._states.items():
            if state.is_dirty:
                local[name] = state.value
            elif name in self._initial_values:
                local[name] = self._initial_values[name]
        return local

    def snapshot(self) -> dict[str, str]:
        """Current values by name, for saving alongside the template."""
        return {name: state.value for name, state in self._states.items()}

    def apply_to_record(self, record: TemplateRecord) -> TemplateRecord:
        return record.model_copy(update={"variables": {**record.variables, **self.snapshot()}})

    # =========================================================================
    # Substitution
    # =========================================================================

    def substitute(
        self,
        template: str,
        values: Mapping[str, LocalValue] | None = None,
        global_values: GlobalValues | None = None,
        resolved: Mapping[str, Sequence[str | None]] | None = None,
    ) -> str:
        """Replace every placeholder in one left-to-right pass.

        A placeholder takes the first of: a non-empty local value, the
        global variable of that name, the parsed default, the empty string.
        Replacement text is never scanned for placeholders again, and
        placeholders with an empty name are left as they are.

        Args:
            template: Template text.
            values: Local values by name.
            global_values: Global variables, as a mapping or an iterable.
            resolved: Resolved contents of global variables' entries, by
                variable name, aligned with each variable's entries.

        Returns:
            The substituted text.
        """
        values = values or {}
        resolved = resolved or {}
        globals_by_name = _index_globals(global_values)
        parse_result = self._parser.parse(template)

        pieces: list[str] = []
        last = 0
        for placeholder in self._parser.iter_placeholders(template):
            pieces.append(template[last : placeholder.start])
            last = placeholder.end

            if not placeholder.name:
                pieces.append(template[placeholder.start : placeholder.end])
                continue

            local = _local_text(values.get(placeholder.name))
            if local:
                pieces.append(local)
                continue

            variable = globals_by_name.get(placeholder.name)
            if variable is not None and variable.value:
                pieces.append(render_entries(variable.value, resolved.get(placeholder.name)))
                continue

            parsed = parse_result.get_variable(placeholder.name)
            pieces.append((parsed.default_value if parsed else None) or "")

        pieces.append(template[last:])
        return "".join(pieces)

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(
        self,
        template: str | None = None,
        values: Mapping[str, LocalValue] | None = None,
        global_values: GlobalValues | None = None,
        options: ResolveOptions | None = None,
    ) -> ResolvedTemplate:
        """Resolve file-backed values and substitute the template.

        Only global variables referenced by the template, and not overridden
        by a non-empty local value, are resolved; nothing else is read or
        asked for permission.

        Args:
            template: Template text; defaults to the loaded template.
            values: Local values; default to the loaded variable states.
            global_values: Global variables; default to the variable store.
            options: Resolution options.

        Returns:
            The resolved template. Unresolved files make it partial.
        """
        if template is None:
            template = self._template
            if values is None:
                values = self.local_values()
        values = values or {}

        if global_values is None and self._variable_store is not None:
            global_values = await self._variable_store.list()
        globals_by_name = _index_globals(global_values)

        parse_result = self._parser.parse(template)
        used = set(parse_result.variable_names)

        entries: list[VariableEntry] = []
        slices: dict[str, tuple[int, int]] = {}
        for name, variable in globals_by_name.items():
            if name not in used or _local_text(values.get(name)):
                continue
            if not variable.has_handle_entries:
                continue
            slices[name] = (len(entries), len(entries) + len(variable.value))
            entries.extend(variable.value)

        if entries:
            logger.info(f"Resolving {len(entries)} entries for {len(slices)} variable(s)")
            resolution = await self._resolver.resolve_all(entries, options)
        else:
            resolution = ResolutionResult()

        diagnostics: tuple[EntryDiagnosis, ...] = ()
        if resolution.failures:
            failed = [entries[failure.index] for failure in resolution.failures]
            report = await self._resolver.diagnose(failed)
            diagnostics = tuple(
                dataclasses.replace(diagnosis, index=failure.index)
                for diagnosis, failure in zip(report, resolution.failures)
            )

        resolved = {
            name: resolution.contents[start:end] for name, (start, end) in slices.items()
        }
        text = self.substitute(template, values, globals_by_name, resolved)

        return ResolvedTemplate(
            text=text,
            parse_result=parse_result,
            resolution=resolution,
            diagnostics=diagnostics,
        )

    async def resolve_and_copy(
        self,
        template: str | None = None,
        values: Mapping[str, LocalValue] | None = None,
        global_values: GlobalValues | None = None,
        options: ResolveOptions | None = None,
    ) -> ResolvedTemplate | None:
        """Resolve the template, copy it to the clipboard and notify.

        Returns:
            The resolved template, or None if the clipboard write failed.
        """
        if self._clipboard is None:
            raise RuntimeError("No clipboard configured")

        try:
            resolved = await self.resolve(template, values, global_values, options)
        except Exception as e:
            logger.error(f"Template resolution failed: {e}", exc_info=True)
            self._notify(ResolutionEvent(ResolutionStatus.FAILURE, f"Failed to resolve template: {e}"))
            raise

        if not await self._clipboard.write_text(resolved.text):
            self._notify(
                ResolutionEvent(ResolutionStatus.FAILURE, f"Failed to copy to {self._clipboard.name}")
            )
            return None

        if resolved.status is ResolutionStatus.PARTIAL:
            count = len(resolved.resolution.failures)
            self._notify(
                ResolutionEvent(
                    ResolutionStatus.PARTIAL,
                    f"Copied to {self._clipboard.name}; {count} file(s) could not be read",
                    list(resolved.diagnostics),
                )
            )
        else:
            self._notify(ResolutionEvent(ResolutionStatus.SUCCESS, f"Copied to {self._clipboard.name}"))

        return resolved

    def _notify(self, event: ResolutionEvent) -> None:
        if self._notifier is not None:
            self._notifier.notify(event)
