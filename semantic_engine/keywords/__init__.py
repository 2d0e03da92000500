from semantic_engine.keywords.taxonomy import Role, Taxonomy, get_taxonomy, registered_taxonomies

__all__ = ["Role", "Taxonomy", "get_taxonomy", "registered_taxonomies"]
