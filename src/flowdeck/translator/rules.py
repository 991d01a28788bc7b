"""Ordered natural-language translation rules.

Each rule pairs a set of case-insensitive patterns with a generator that
builds the command. The order of ``default_rules()`` is the only
tie-break: the first matching rule wins, so specific rules (a todo app)
must come before general ones (any app).
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from typing import Callable, Iterable

# Agent roles recognized in "spawn a <type> agent" requests
AGENT_TYPES: tuple[str, ...] = (
    "researcher",
    "coder",
    "developer",
    "analyst",
    "architect",
    "tester",
    "reviewer",
    "optimizer",
    "coordinator",
    "documenter",
    "monitor",
    "specialist",
)

_AGENT_TYPE_RE = re.compile(
    r"\b(" + "|".join(AGENT_TYPES) + r")\b(?:\s+\w+)?\s+agent\b", re.IGNORECASE
)


@dataclass(frozen=True)
class TranslationRule:
    """An ordered (patterns, generator) pair."""

    name: str
    patterns: tuple[re.Pattern[str], ...]
    build: Callable[[str], str]

    @classmethod
    def create(
        cls, name: str, patterns: Iterable[str], build: Callable[[str], str]
    ) -> TranslationRule:
        return cls(
            name=name,
            patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
            build=build,
        )

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


def find_agent_type(text: str) -> str | None:
    """Return the agent role named before the word "agent", if any."""
    match = _AGENT_TYPE_RE.search(text)
    return match.group(1).lower() if match else None


def swarm_command(domain_command: str, objective: str) -> str:
    return f"{domain_command} swarm {shlex.quote(objective)} --claude"


def default_rules(domain_command: str = "npx claude-flow@alpha") -> list[TranslationRule]:
    """Build the default rule table for a domain tool invocation."""

    def spawn_agent(text: str) -> str:
        agent_type = find_agent_type(text)
        type_flag = f" --type {agent_type}" if agent_type else ""
        return f"{domain_command} hive-mind spawn {shlex.quote(text)}{type_flag} --claude"

    def swarm(prefix: str) -> Callable[[str], str]:
        return lambda text: swarm_command(domain_command, f"{prefix}: {text}")

    return [
        TranslationRule.create(
            "spawn-agent",
            [r"spawn.*agent", r"create.*agent", r"new.*agent"],
            spawn_agent,
        ),
        TranslationRule.create(
            "todo-app",
            [r"build.*todo", r"create.*todo", r"todo.*app", r"task.*app"],
            swarm("build todo application"),
        ),
        TranslationRule.create(
            "rest-api",
            [r"build.*api", r"create.*api", r"rest.*api", r"api.*server"],
            swarm("build REST API"),
        ),
        TranslationRule.create(
            "website",
            [r"build.*website", r"create.*website", r"web.*site", r"landing.*page"],
            swarm("build website"),
        ),
        TranslationRule.create(
            "app",
            [r"build.*app", r"create.*application", r"develop.*app", r"make.*app"],
            swarm("build application"),
        ),
        TranslationRule.create(
            "help",
            [r"\bhelp\b", r"what.*can.*do", r"\bcommands\b"],
            lambda text: f"{domain_command} --help",
        ),
        TranslationRule.create(
            "status",
            [r"\bstatus\b", r"how.*system", r"check.*system"],
            lambda text: f"{domain_command} status",
        ),
        TranslationRule.create(
            "init",
            [r"\binit", r"\bsetup\b", r"\bset up\b", r"\bstart\b"],
            lambda text: f"{domain_command} init --force",
        ),
    ]
