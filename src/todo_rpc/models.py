"""
Storage shape of a todo task.

Columns:
- id: auto-assigned unique integer primary key
- title: short title
- description: optional free text
- reminder: reminder date and time, stored as naive UTC
"""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table

metadata = MetaData()

# PUBLIC_INTERFACE
todo_table = Table(
    "todo",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=True),
    Column("description", String(1024), nullable=True),
    Column("reminder", DateTime(timezone=False), nullable=True),
)
