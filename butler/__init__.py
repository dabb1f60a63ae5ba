"""
Butler - a Discord helper bot with a tool-calling AI layer.

The bot answers @mentions through one of several AI chat-completion vendors,
keeps short conversation memory per reply chain, and exposes the same set of
tools to the AI and to the /butler slash command.
"""

__version__ = "0.1.0"
