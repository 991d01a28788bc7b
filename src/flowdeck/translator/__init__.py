"""Natural-language command translation for flowdeck.

Public API:
    CommandTranslator -- Applies the ordered rule table
    TranslationRule -- One (patterns, generator) pair
    default_rules -- The built-in rule table
"""

from flowdeck.translator.rules import TranslationRule, default_rules
from flowdeck.translator.translator import CommandTranslator

__all__ = ["CommandTranslator", "TranslationRule", "default_rules"]
