"""Unit tests for the variable resolution engine."""

import asyncio

import pytest

from promptier.interfaces.handle import PermissionState
from promptier.interfaces.notifier import ResolutionStatus
from promptier.interfaces.store import (
    DirectoryEntry,
    FileEntry,
    GlobalVariable,
    HandleRef,
    TemplateRecord,
    TextEntry,
)
from promptier.strategies.clipboard.memory import InMemoryClipboard
from promptier.strategies.notifiers.sinks import RecordingNotifier
from promptier.strategies.stores.memory import InMemoryVariableStore
from promptier.strategies.template_engine.engine import (
    VariableResolutionEngine,
    render_entries,
)
from promptier.strategies.template_engine.models import ValidationErrorKind, ValidationRules
from promptier.strategies.template_engine.parser import TemplateParser
from tests.fakes import FakeFileHandle


def file_entry(handle_id, name):
    return FileEntry(value=HandleRef(handle_id=handle_id), name=name)


def text_global(name, *lines):
    return GlobalVariable(name=name, value=[TextEntry(value=line) for line in lines])


class FailingVariableStore(InMemoryVariableStore):
    async def list(self):
        raise RuntimeError("store offline")


@pytest.fixture
def clipboard():
    return InMemoryClipboard()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def variable_store():
    return InMemoryVariableStore()


@pytest.fixture
def engine(resolver, clipboard, notifier, variable_store):
    return VariableResolutionEngine(
        parser=TemplateParser(),
        resolver=resolver,
        clipboard=clipboard,
        notifier=notifier,
        variable_store=variable_store,
    )


class TestSubstitution:
    """Test suite for placeholder substitution and precedence."""

    def test_default_and_file_global(self, engine, registry):
        """Test a default value combined with a file-backed global."""
        asyncio.run(registry.register_handle(FakeFileHandle("doc.txt", "abc"), "h1"))
        doc = GlobalVariable(name="doc", value=[file_entry("h1", "doc.txt")])

        resolved = asyncio.run(
            engine.resolve("Hello {{name:World}}, file: {{doc}}", {}, [doc])
        )

        assert resolved.text == "Hello World, file: abc"
        assert resolved.status is ResolutionStatus.SUCCESS

    def test_local_value_wins(self, engine):
        """Test that a non-empty local value beats the global and the default."""
        text = engine.substitute(
            "{{tone:neutral}}", {"tone": "formal"}, [text_global("tone", "casual")]
        )

        assert text == "formal"

    def test_empty_local_falls_back_to_global(self, engine):
        """Test that an empty local value does not hide the global."""
        text = engine.substitute("{{tone:neutral}}", {"tone": ""}, [text_global("tone", "casual")])

        assert text == "casual"

    def test_default_then_empty(self, engine):
        """Test fallback to the default, then to the empty string."""
        assert engine.substitute("[{{a:x}}][{{b}}]") == "[x][]"

    def test_empty_global_counts_as_absent(self, engine):
        """Test that a global with no entries falls through to the default."""
        text = engine.substitute("{{tone:neutral}}", {}, [GlobalVariable(name="tone", value=[])])

        assert text == "neutral"

    def test_multi_entry_global_joined_by_newlines(self, engine):
        """Test that text entries render one per line."""
        text = engine.substitute("Sig:\n{{sig}}", {}, {"sig": text_global("sig", "Ada", "Lovelace")})

        assert text == "Sig:\nAda\nLovelace"

    def test_every_occurrence_replaced(self, engine):
        """Test that repeated placeholders all take the same value."""
        assert engine.substitute("{{x}}-{{x:ignored}}", {"x": "v"}) == "v-v"

    def test_single_pass(self, engine):
        """Test that inserted values are not expanded again."""
        text = engine.substitute("{{a}} {{b}}", {"a": "{{b}}", "b": "B"})

        assert text == "{{b}} B"

    def test_empty_name_left_verbatim(self, engine):
        """Test that a placeholder without a name is kept as written."""
        assert engine.substitute("x {{ }} y {{:d}}") == "x {{ }} y {{:d}}"

    def test_render_entries_placeholders(self):
        """Test the inline markers for unresolved entries."""
        entries = [
            TextEntry(value="intro"),
            file_entry("h1", "a.txt"),
            DirectoryEntry(value=HandleRef(handle_id="d1"), name="src"),
        ]

        assert render_entries(entries) == "intro\n[File: a.txt]\n[Directory: src]"
        assert render_entries(entries, ["intro", "A", None]) == "intro\nA\n[Directory: src]"


class TestResolution:
    """Test suite for file-backed resolution."""

    def test_unused_global_is_never_touched(self, engine, registry):
        """Test that an unreferenced file global is neither requested nor read."""
        unused = FakeFileHandle("secret.txt", "s", permission=PermissionState.PROMPT)
        asyncio.run(registry.register_handle(unused, "h1"))
        globals_ = [GlobalVariable(name="secret", value=[file_entry("h1", "secret.txt")])]

        resolved = asyncio.run(engine.resolve("Just {{name:text}}", {}, globals_))

        assert resolved.text == "Just text"
        assert unused.request_calls == 0
        assert unused.read_calls == 0
        assert unused.query_calls == 0

    def test_overridden_global_is_never_read(self, engine, registry):
        """Test that a local value skips resolving the global's files."""
        handle = FakeFileHandle("doc.txt", "file text")
        asyncio.run(registry.register_handle(handle, "h1"))
        globals_ = [GlobalVariable(name="doc", value=[file_entry("h1", "doc.txt")])]

        resolved = asyncio.run(engine.resolve("{{doc}}", {"doc": "typed"}, globals_))

        assert resolved.text == "typed"
        assert handle.read_calls == 0

    def test_partial_resolution(self, engine, registry):
        """Test that unreadable files render as markers and are diagnosed."""
        asyncio.run(registry.register_handle(FakeFileHandle("a.txt", "A"), "h1"))
        globals_ = [
            GlobalVariable(name="first", value=[file_entry("h1", "a.txt")]),
            GlobalVariable(name="second", value=[file_entry("gone", "gone.txt")]),
        ]

        resolved = asyncio.run(engine.resolve("{{first}}|{{second}}", {}, globals_))

        assert resolved.text == "A|[File: gone.txt]"
        assert resolved.status is ResolutionStatus.PARTIAL
        assert len(resolved.diagnostics) == 1
        assert resolved.diagnostics[0].index == 1
        assert "not registered" in resolved.diagnostics[0].message

    def test_globals_from_store(self, engine, variable_store):
        """Test that globals come from the variable store when not passed."""
        asyncio.run(variable_store.save(text_global("team", "Platform")))

        resolved = asyncio.run(engine.resolve("Team: {{team}}"))

        assert resolved.text == "Team: Platform"


class TestVariableState:
    """Test suite for per-variable editing state."""

    TEMPLATE = "Write about {{topic}} in a {{tone:friendly}} tone"

    def test_load_initial_states(self, engine):
        """Test that loading creates clean states seeded with defaults."""
        states = engine.load(self.TEMPLATE)

        assert states["topic"].value == ""
        assert states["tone"].value == "friendly"
        assert not states["topic"].is_dirty
        assert not engine.has_all_required_values

    def test_set_value_marks_dirty(self, engine):
        """Test that editing marks the variable dirty and valid."""
        engine.load(self.TEMPLATE)

        state = engine.set_value("topic", "tides")

        assert state.is_dirty
        assert state.is_valid
        assert engine.has_all_required_values

    def test_blank_required_value(self, engine):
        """Test that a blank required value is a validation error."""
        engine.load(self.TEMPLATE)

        state = engine.set_value("topic", "   ")

        assert not state.is_valid
        assert state.errors[0].kind is ValidationErrorKind.MISSING_REQUIRED
        assert engine.validation_errors == state.errors

    def test_unknown_variable(self, engine):
        """Test that setting a variable the template lacks raises KeyError."""
        engine.load(self.TEMPLATE)

        with pytest.raises(KeyError):
            engine.set_value("missing", "x")

    def test_reset_restores_initial_values(self, engine):
        """Test that reset discards edits in favour of saved values."""
        engine.load(self.TEMPLATE, {"topic": "saved"})
        engine.set_value("topic", "edited")

        engine.reset()

        assert engine.states["topic"].value == "saved"
        assert not engine.states["topic"].is_dirty

    def test_states_are_copies(self, engine):
        """Test that mutating returned states does not affect the engine."""
        engine.load(self.TEMPLATE)

        engine.states["topic"].value = "sneaky"

        assert engine.states["topic"].value == ""

    def test_validation_rules(self, engine):
        """Test length, pattern and custom rules."""
        engine.load("{{code}}")
        engine.set_rules(
            "code",
            ValidationRules(
                min_length=2,
                max_length=4,
                pattern=r"[A-Z]+",
                validator=lambda v: "reserved" if v == "NULL" else None,
            ),
        )

        assert engine.set_value("code", "ABC").is_valid
        assert len(engine.set_value("code", "abcdef").errors) == 2
        assert engine.set_value("code", "NULL").errors[0].message == "reserved"

        engine.set_rules("code", None)
        assert engine.set_value("code", "abcdef").is_valid

    def test_invalid_pattern_rejected(self):
        """Test that an uncompilable pattern is refused."""
        with pytest.raises(ValueError):
            ValidationRules(pattern="[unclosed")

    def test_clean_default_does_not_override_global(self, engine):
        """Test that an untouched default yields to a global of the same name."""
        engine.load("{{tone:friendly}}")

        resolved = asyncio.run(engine.resolve(global_values=[text_global("tone", "terse")]))

        assert resolved.text == "terse"

    def test_edited_value_overrides_global(self, engine):
        """Test that an edited value beats the global."""
        engine.load("{{tone:friendly}}")
        engine.set_value("tone", "warm")

        resolved = asyncio.run(engine.resolve(global_values=[text_global("tone", "terse")]))

        assert resolved.text == "warm"

    def test_saved_value_overrides_global(self, engine):
        """Test that a value saved with the template beats the global."""
        engine.load("{{tone}}", {"tone": "saved"})

        resolved = asyncio.run(engine.resolve(global_values=[text_global("tone", "terse")]))

        assert resolved.text == "saved"

    def test_apply_to_record(self, engine):
        """Test that the snapshot is stored on the template record."""
        engine.load(self.TEMPLATE)
        engine.set_value("topic", "tides")
        record = TemplateRecord(id="t1", name="Essay", content=self.TEMPLATE, variables={"old": "x"})

        updated = engine.apply_to_record(record)

        assert updated.variables == {"old": "x", "topic": "tides", "tone": "friendly"}
        assert record.variables == {"old": "x"}


class TestResolveAndCopy:
    """Test suite for resolve_and_copy notifications."""

    def test_success(self, engine, clipboard, notifier):
        """Test that a full resolution is copied and reported."""
        engine.load("Hi {{name:there}}")

        resolved = asyncio.run(engine.resolve_and_copy())

        assert resolved.text == "Hi there"
        assert clipboard.text == "Hi there"
        assert notifier.last.status is ResolutionStatus.SUCCESS
        assert notifier.last.message == "Copied to memory clipboard"

    def test_partial(self, engine, clipboard, notifier):
        """Test that unreadable files still copy, with a partial notice."""
        globals_ = [GlobalVariable(name="doc", value=[file_entry("gone", "gone.txt")])]

        asyncio.run(engine.resolve_and_copy("See {{doc}}", {}, globals_))

        assert clipboard.text == "See [File: gone.txt]"
        assert notifier.last.status is ResolutionStatus.PARTIAL
        assert "1 file(s) could not be read" in notifier.last.message
        assert len(notifier.last.diagnostics) == 1

    def test_clipboard_failure(self, engine, clipboard, notifier):
        """Test that a failed clipboard write returns None and reports failure."""
        clipboard.fail = True

        assert asyncio.run(engine.resolve_and_copy("text", {}, [])) is None
        assert notifier.last.status is ResolutionStatus.FAILURE

    def test_resolution_error_is_reported_and_raised(self, resolver, clipboard, notifier):
        """Test that unexpected errors notify failure and propagate."""
        engine = VariableResolutionEngine(
            TemplateParser(), resolver, clipboard, notifier, FailingVariableStore()
        )

        with pytest.raises(RuntimeError):
            asyncio.run(engine.resolve_and_copy("{{x}}"))

        assert notifier.last.status is ResolutionStatus.FAILURE
        assert clipboard.history == []

    def test_requires_clipboard(self, resolver):
        """Test that copying without a clipboard is a configuration error."""
        engine = VariableResolutionEngine(TemplateParser(), resolver)

        with pytest.raises(RuntimeError):
            asyncio.run(engine.resolve_and_copy("x"))
