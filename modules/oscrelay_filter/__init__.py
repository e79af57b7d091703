"""OSC Relay Message Filter

Blacklists por canal (consola / transmisión) con patrones glob.
"""

from modules.oscrelay_filter.message_filter import MessageFilter, FilterRule, compile_rule

__all__ = [
    "MessageFilter",
    "FilterRule",
    "compile_rule",
]
