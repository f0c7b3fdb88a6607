"""Pydantic models for the retail schema registry."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ColumnDefinition(BaseModel):
    """Database column definition with business context."""
    name: str
    type: str
    description: str = ""
    sample_values: List[str] = Field(default_factory=list)
    foreign_key: Optional[str] = None


class TableDefinition(BaseModel):
    """Database table definition with business context."""
    name: str
    description: str = ""
    columns: List[ColumnDefinition] = Field(default_factory=list)
    relationships: List[str] = Field(default_factory=list)
    common_queries: List[str] = Field(default_factory=list)


class BusinessGlossary(BaseModel):
    """Fixed business facts injected into every SQL prompt."""
    domain: str
    primary_client: Optional[str] = None
    currency: str
    timezone: str
    facts: List[str] = Field(default_factory=list)
    key_questions: List[str] = Field(default_factory=list)


class SchemaRegistry(BaseModel):
    """Complete registry document."""
    tables: Dict[str, TableDefinition] = Field(default_factory=dict)
    glossary: BusinessGlossary
