from pathlib import Path

import pytest

from ai_chat.core.message import ContentKind, Message, MessageRole
from ai_chat.core.utils.config import ConfigError
from ai_chat.session.input import Input
from ai_chat.session.role import Role, RoleNotFoundError, RoleRegistry, complete_prompt_args


def test_embedded_role_merges_input_into_single_user_message() -> None:
    role = Role(name="translate", prompt="Translate to French: __INPUT__")

    messages = role.build_messages(Input.from_str("good morning"))

    assert role.embedded()
    assert len(messages) == 1
    assert messages[0].role is MessageRole.USER
    assert messages[0].content.kind is ContentKind.TEXT
    assert messages[0].content.text == "Translate to French: good morning"


def test_plain_role_prepends_system_prompt() -> None:
    role = Role(name="poet", prompt="You are a poet.")

    messages = role.build_messages(Input.from_str("write about rain"))

    assert not role.embedded()
    assert messages == [Message.system("You are a poet."), Message.user("write about rain")]


def test_embedded_tracks_prompt_changes() -> None:
    role = Role(name="r", prompt="plain")
    assert not role.embedded()

    role.prompt = "wrap __INPUT__"
    assert role.embedded()


def test_complete_prompt_args() -> None:
    assert complete_prompt_args("convert __ARG1__", "convert:foo") == "convert foo"
    assert complete_prompt_args("convert __ARG1__ to __ARG2__", "convert:foo:bar") == "convert foo to bar"


def test_role_complete_prompt_args_updates_name() -> None:
    role = Role(name="convert:json", prompt="  convert to __ARG1__  ")

    role.complete_prompt_args("convert:yaml")

    assert role.name == "convert:yaml"
    assert role.prompt == "convert to yaml"


def test_match_name_with_args() -> None:
    role = Role(name="convert:foo", prompt="convert __ARG1__")

    assert role.match_name("convert:bar")
    assert not role.match_name("convert")
    assert not role.match_name("other:foo")


def test_match_name_without_args_is_exact() -> None:
    role = Role(name="shell", prompt="p")

    assert role.match_name("shell")
    assert not role.match_name("shell:x")


def test_echo_messages() -> None:
    embedded = Role(name="e", prompt="Fix: __INPUT__")
    plain = Role(name="p", prompt="Be brief.")
    item = Input.from_str("teh typo")

    assert embedded.echo_messages(item) == "Fix: teh typo"
    assert plain.echo_messages(item) == "Be brief.\n\nteh typo"


def test_export_is_yaml_without_trailing_newline() -> None:
    role = Role(name="poet", prompt="You are a poet.", temperature=0.7)

    assert role.export() == "name: poet\nprompt: You are a poet.\ntemperature: 0.7"


def test_execute_role_uses_shell_specific_separator(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ai_chat.session.role.detect_shell", lambda: "nushell")
    assert "using ;." in Role.for_execute().prompt

    monkeypatch.setattr("ai_chat.session.role.detect_shell", lambda: "bash")
    role = Role.for_execute()
    assert role.name == Role.EXECUTE
    assert "using &&." in role.prompt
    assert "bash commands" in role.prompt


def test_registry_loads_roles_and_presets(tmp_path: Path) -> None:
    roles_file = tmp_path / "roles.yaml"
    roles_file.write_text(
        "- name: poet\n"
        "  prompt: You are a poet.\n"
        "  temperature: 0.9\n"
        "- name: convert:json\n"
        "  prompt: Convert __INPUT__ to __ARG1__\n",
        encoding="utf-8",
    )

    registry = RoleRegistry.load(roles_file)

    assert registry.names() == ["poet", "convert:json", Role.EXECUTE, Role.DESCRIBE_COMMAND, Role.CODE]
    assert registry.find("poet").temperature == 0.9
    converted = registry.find("convert:toml")
    assert converted.name == "convert:toml"
    assert converted.prompt == "Convert __INPUT__ to toml"
    assert registry.find("convert:yaml").prompt == "Convert __INPUT__ to yaml"
    assert registry.find(Role.CODE).name == Role.CODE


def test_registry_find_returns_copies(tmp_path: Path) -> None:
    registry = RoleRegistry([Role(name="poet", prompt="You are a poet.")])

    found = registry.find("poet")
    found.prompt = "changed"

    assert registry.find("poet").prompt == "You are a poet."


def test_registry_unknown_role() -> None:
    with pytest.raises(RoleNotFoundError):
        RoleRegistry().find("missing")
    assert issubclass(RoleNotFoundError, LookupError)


def test_registry_missing_file_yields_presets(tmp_path: Path) -> None:
    registry = RoleRegistry.load(tmp_path / "absent.yaml")

    assert registry.names() == [Role.EXECUTE, Role.DESCRIBE_COMMAND, Role.CODE]
    assert registry.find(Role.DESCRIBE_COMMAND).name == Role.DESCRIBE_COMMAND


def test_registry_rejects_malformed_file(tmp_path: Path) -> None:
    roles_file = tmp_path / "roles.yaml"
    roles_file.write_text("name: not-a-list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        RoleRegistry.load(roles_file)

    roles_file.write_text("- name: missing-prompt\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        RoleRegistry.load(roles_file)
