from semantic_engine.transform.canonical import (
    clean_sender,
    ensure_timestamp,
    generate_message_id,
    normalize_text,
    to_canonical,
    tokenize,
    transform_batch,
)

__all__ = [
    "clean_sender", "ensure_timestamp", "generate_message_id",
    "normalize_text", "to_canonical", "tokenize", "transform_batch",
]
