"""Table definitions for the bundled catalog resources (categories and widgets)."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Table, Text

from entity_rest.common.db import metadata

category_table = Table(
    "category",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(120), nullable=False, unique=True),
)

widget_table = Table(
    "widget",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(120), nullable=False),
    Column("color", String(40), nullable=False, default=""),
    Column("price", Float, nullable=False, default=0.0),
    Column("active", Boolean, nullable=False, default=True),
    Column("description", Text, nullable=True),
    Column("category_id", Integer, ForeignKey("category.id"), nullable=True),
)
