"""
Graph module for the reference graph.

Provides the data model for declarations and references, the symbol table
they are collected into, and the resolver that links them.
"""

from docref.graph.schema import (
    CodeBlock,
    Declaration,
    DocumentFacts,
    Reference,
    RoleUse,
    ScannedDocument,
    SymbolKey,
    SymbolKind,
    normalize_name,
)
from docref.graph.symbols import SymbolTable
from docref.graph.resolver import Resolution, ResolutionStatus, Resolver

__all__ = [
    "CodeBlock",
    "Declaration",
    "DocumentFacts",
    "Reference",
    "RoleUse",
    "ScannedDocument",
    "SymbolKey",
    "SymbolKind",
    "normalize_name",
    "SymbolTable",
    "Resolution",
    "ResolutionStatus",
    "Resolver",
]
