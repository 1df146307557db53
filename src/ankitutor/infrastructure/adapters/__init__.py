# Infrastructure Adapters Package
from .anki_connect import AnkiConnectAdapter
from .anthropic_client import AnthropicTextCompleter

__all__ = ["AnkiConnectAdapter", "AnthropicTextCompleter"]
