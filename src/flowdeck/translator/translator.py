"""Natural-language to command translation.

Maps free text such as "build me a todo app" onto a concrete domain
command using an ordered rule table. Translation is pure: the same input
and rule table always produce the same command.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from flowdeck.translator.rules import TranslationRule, default_rules, swarm_command

logger = logging.getLogger(__name__)


class CommandTranslator:
    """Translates free-form requests into executable commands.

    Example usage::

        translator = CommandTranslator()
        translator.translate("build me a todo app")
        # "npx claude-flow@alpha swarm 'build todo application: build me a todo app' --claude"
    """

    def __init__(
        self,
        rules: Sequence[TranslationRule] | None = None,
        domain_command: str = "npx claude-flow@alpha",
        direct_prefixes: Iterable[str] = ("npx", "npm"),
    ) -> None:
        self._domain_command = domain_command
        self._rules = list(rules) if rules is not None else default_rules(domain_command)
        self._direct_prefixes = tuple(direct_prefixes)

    @property
    def rules(self) -> list[TranslationRule]:
        return list(self._rules)

    @property
    def domain_command(self) -> str:
        return self._domain_command

    def match(self, text: str) -> TranslationRule | None:
        """Return the first rule matching the text, if any."""
        for rule in self._rules:
            if rule.matches(text):
                return rule
        return None

    def looks_like_invocation(self, text: str) -> bool:
        """Whether the text already starts with a direct command prefix."""
        tokens = text.strip().split(maxsplit=1)
        return bool(tokens) and tokens[0] in self._direct_prefixes

    def invokes_domain_tool(self, command: str) -> bool:
        return self._domain_command in command

    def translate(self, text: str) -> str:
        """Translate free text into a command string."""
        rule = self.match(text)
        if rule is not None:
            command = rule.build(text)
            logger.debug("Rule %s matched %r -> %s", rule.name, text, command)
            return command
        if self.looks_like_invocation(text):
            return text
        return swarm_command(self._domain_command, text)
