"""
semantic_engine
Deterministic, explainable analysis of exported chat conversations:
canonical messages -> lexical + behavioral signals -> segments -> intent evolution.
"""

__version__ = '1.0.0'
