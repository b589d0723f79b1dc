"""
chatrelay - Streaming Chat Relay

Relays one conversational request to a text-generation provider
(Gemini or OpenAI) and re-emits the provider's event stream to the
client as a single normalized SSE protocol.
"""

__version__ = "1.0.0"
__author__ = "chatrelay"
