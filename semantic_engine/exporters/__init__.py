from semantic_engine.exporters.sqlite_exporter import export, list_conversations, load_conversation

__all__ = ["export", "list_conversations", "load_conversation"]
