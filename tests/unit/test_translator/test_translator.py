"""Tests for natural-language command translation."""

from __future__ import annotations

import pytest

from flowdeck.translator.rules import TranslationRule, default_rules, find_agent_type
from flowdeck.translator.translator import CommandTranslator


@pytest.fixture
def translator() -> CommandTranslator:
    return CommandTranslator()


class TestRuleOrder:
    def test_todo_rule_wins_over_generic_app(self, translator: CommandTranslator) -> None:
        text = "build me a todo app"
        assert translator.match(text).name == "todo-app"
        command = translator.translate(text)
        assert command.startswith("npx claude-flow@alpha swarm ")
        assert "build todo application: build me a todo app" in command
        assert "build application:" not in command

    def test_generic_app(self, translator: CommandTranslator) -> None:
        assert translator.match("make a recipe app").name == "app"
        assert "build application: make a recipe app" in translator.translate("make a recipe app")

    def test_rest_api(self, translator: CommandTranslator) -> None:
        assert translator.match("create an API for invoices").name == "rest-api"

    def test_website(self, translator: CommandTranslator) -> None:
        assert translator.match("I need a landing page").name == "website"

    def test_custom_rule_order_is_respected(self) -> None:
        general = TranslationRule.create("general", ["app"], lambda t: "general")
        specific = TranslationRule.create("specific", ["todo app"], lambda t: "specific")
        assert CommandTranslator(rules=[general, specific]).translate("todo app") == "general"
        assert CommandTranslator(rules=[specific, general]).translate("todo app") == "specific"


class TestAgentSpawn:
    def test_spawn_names_agent_type(self, translator: CommandTranslator) -> None:
        command = translator.translate("spawn a researcher agent to look into X")
        assert command.startswith("npx claude-flow@alpha hive-mind spawn ")
        assert "--type researcher" in command
        assert command.endswith("--claude")

    def test_spawn_without_known_type(self, translator: CommandTranslator) -> None:
        command = translator.translate("create a new agent")
        assert "hive-mind spawn" in command
        assert "--type" not in command

    def test_find_agent_type(self) -> None:
        assert find_agent_type("spawn a Coder agent") == "coder"
        assert find_agent_type("spawn a senior architect agent please") == "architect"
        assert find_agent_type("spawn an agent") is None


class TestFixedCommands:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("help", "npx claude-flow@alpha --help"),
            ("what can you do?", "npx claude-flow@alpha --help"),
            ("check system", "npx claude-flow@alpha status"),
            ("initialize everything", "npx claude-flow@alpha init --force"),
        ],
    )
    def test_fixed_commands(self, translator: CommandTranslator, text: str, expected: str) -> None:
        assert translator.translate(text) == expected


class TestFallback:
    def test_direct_invocation_unchanged(self, translator: CommandTranslator) -> None:
        assert translator.translate("npx some-tool --flag") == "npx some-tool --flag"

    def test_npm_invocation_unchanged(self, translator: CommandTranslator) -> None:
        assert translator.translate("npm ls --depth 0") == "npm ls --depth 0"

    def test_free_text_wrapped_as_swarm_task(self, translator: CommandTranslator) -> None:
        command = translator.translate("refactor the billing module")
        assert command == "npx claude-flow@alpha swarm 'refactor the billing module' --claude"

    def test_user_text_is_shell_quoted(self, translator: CommandTranslator) -> None:
        command = translator.translate("optimize queries; rm -rf /")
        assert command == "npx claude-flow@alpha swarm 'optimize queries; rm -rf /' --claude"

    def test_looks_like_invocation(self, translator: CommandTranslator) -> None:
        assert translator.looks_like_invocation("  npx foo") is True
        assert translator.looks_like_invocation("npxfoo") is False
        assert translator.looks_like_invocation("") is False

    def test_custom_domain_command(self) -> None:
        translator = CommandTranslator(domain_command="flow", direct_prefixes=["flow"])
        assert translator.translate("index the docs") == "flow swarm 'index the docs' --claude"
        assert translator.translate("flow hive-mind list") == "flow hive-mind list"


class TestDeterminism:
    def test_same_input_same_output(self, translator: CommandTranslator) -> None:
        text = "build a website for my bakery"
        assert translator.translate(text) == translator.translate(text)

    def test_default_rules_are_fresh_lists(self) -> None:
        assert default_rules() is not default_rules()
        assert [r.name for r in default_rules()][:2] == ["spawn-agent", "todo-app"]
