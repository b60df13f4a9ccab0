"""SQL tables for the ``sql`` backend.

``added_at`` is kept as ISO-8601 text, the same representation the REST
backend returns, so both stores hand the tracker identical rows.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class ExpectedReturn(Base):
    __tablename__ = "expected"

    id = Column(Integer, primary_key=True, index=True)
    barcode = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False, default="")
    phone = Column(Text, nullable=False, default="")
    added_at = Column(Text, nullable=True)


class ReceivedReturn(Base):
    __tablename__ = "received"

    id = Column(Integer, primary_key=True, index=True)
    barcode = Column(Text, nullable=False, unique=True, index=True)
    added_at = Column(Text, nullable=True)
