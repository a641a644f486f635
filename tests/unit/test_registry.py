"""Unit tests for the command registry."""

from __future__ import annotations

import pytest

from uibridge.core.registry import CommandRegistry
from uibridge.exceptions import RegistrationValidationError
from uibridge.models.command import CommandDescriptor, CommandParameter


async def _noop(bridge, *args):
    return {"ok": True}


def _descriptor(**overrides) -> dict:
    data = {
        "name": "hover",
        "description": "Hover an element",
        "parameters": [{"name": "selector", "type": "Selector", "required": True}],
        "execute": _noop,
        "examples": ["execute('hover', '#x')"],
    }
    data.update(overrides)
    return data


class TestRegister:
    def test_register_mapping(self) -> None:
        registry = CommandRegistry()
        stored = registry.register("hover", _descriptor())
        assert isinstance(stored, CommandDescriptor)
        assert stored.registered_at
        assert registry.has("hover") and "hover" in registry
        assert registry.get_names() == ["hover"]
        assert len(registry) == registry.size() == 1

    def test_stored_copy_is_independent(self) -> None:
        registry = CommandRegistry()
        descriptor = CommandDescriptor(
            name="hover",
            description="Hover",
            parameters=[CommandParameter(name="selector")],
            execute=_noop,
        )
        stored = registry.register("hover", descriptor)
        descriptor.parameters.append(CommandParameter(name="extra"))
        assert len(stored.parameters) == 1
        assert descriptor.registered_at is None

    def test_reregister_overwrites(self) -> None:
        registry = CommandRegistry()
        registry.register("hover", _descriptor())
        registry.register("hover", _descriptor(description="Second"))
        assert registry.size() == 1
        assert registry.get("hover").description == "Second"

    def test_empty_parameter_list_is_valid(self) -> None:
        registry = CommandRegistry()
        registry.register("ping", _descriptor(name="ping", parameters=[]))
        assert registry.get("ping").parameters == []

    @pytest.mark.parametrize(
        "name,overrides,field",
        [
            ("", {}, "name"),
            ("hover", {"execute": None}, "execute"),
            ("hover", {"execute": "not callable"}, "execute"),
            ("hover", {"name": ""}, "name"),
            ("hover", {"description": ""}, "description"),
            ("hover", {"parameters": None}, "parameters"),
        ],
    )
    def test_validation_errors(self, name, overrides, field) -> None:
        registry = CommandRegistry()
        with pytest.raises(RegistrationValidationError) as exc_info:
            registry.register(name, _descriptor(**overrides))
        assert exc_info.value.field == field
        assert registry.size() == 0

    def test_rejects_non_descriptor(self) -> None:
        with pytest.raises(RegistrationValidationError):
            CommandRegistry().register("x", 42)


class TestLookup:
    def test_unregister(self) -> None:
        registry = CommandRegistry()
        registry.register("hover", _descriptor())
        assert registry.unregister("hover") is True
        assert registry.unregister("hover") is False
        assert registry.get("hover") is None

    def test_get_all_and_clear(self) -> None:
        registry = CommandRegistry()
        registry.register("a", _descriptor(name="a"))
        registry.register("b", _descriptor(name="b"))
        assert [d.name for d in registry.get_all()] == ["a", "b"]
        registry.clear()
        assert registry.size() == 0


class TestDescriptor:
    def test_usage_marks_optional_parameters(self) -> None:
        descriptor = CommandDescriptor.from_mapping(
            _descriptor(
                parameters=[
                    {"name": "selector", "required": True},
                    {"name": "options", "required": False},
                ]
            )
        )
        assert descriptor.usage() == "execute('hover', selector, [options])"

    def test_discovery_omits_handler(self) -> None:
        entry = CommandDescriptor.from_mapping(_descriptor()).discovery()
        assert "execute" not in entry
        assert entry["parameters"][0]["name"] == "selector"
