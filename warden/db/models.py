"""
Database model of stored rule types.

The engine only needs the definition blob and the owning scope; everything
else here is descriptive.
"""

import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class RuleTypeRow(Base):
    """A rule type as stored in the database."""
    __tablename__ = "rule_types"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    provider = Column(String(255), nullable=False)
    organization = Column(String(255), nullable=True, index=True)
    project = Column(String(255), nullable=True, index=True)  # group scope
    description = Column(Text, nullable=False, default="")
    guidance = Column(Text, nullable=False, default="")
    definition = Column(Text, nullable=False)  # serialized RuleTypeDefinition (JSON)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
