# warpstore/models/warp.py
import re
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Double,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects import mysql

from warpstore.warp.model import IDENTIFIER_MAX_LENGTH, NAME_MAX_LENGTH, WELCOME_MESSAGE_MAX_LENGTH

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")

# Microsecond precision on MySQL so creation dates survive a round trip.
CreationDateType = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


def validate_table_name(table_name: str) -> str:
    """Table names end up in DDL text, so only plain identifiers are accepted."""
    if not TABLE_NAME_PATTERN.match(table_name):
        raise ValueError(f"Invalid table name: {table_name!r}")
    return table_name


def warp_table(table_name: str = "warp", metadata: Optional[MetaData] = None) -> Table:
    """The current (v5) layout of the warp table."""
    return Table(
        validate_table_name(table_name),
        metadata if metadata is not None else MetaData(),
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(NAME_MAX_LENGTH), nullable=False, unique=True),
        Column("creator", String(IDENTIFIER_MAX_LENGTH), nullable=False),
        Column("world", String(IDENTIFIER_MAX_LENGTH), nullable=False),
        Column("x", Double, nullable=False, default=0),
        Column("y", SmallInteger, nullable=False, default=0),
        Column("z", Double, nullable=False, default=0),
        Column("yaw", SmallInteger, nullable=False, default=0),
        Column("pitch", SmallInteger, nullable=False, default=0),
        Column("publicAll", Boolean, nullable=False, default=True),
        Column("permissions", Text, nullable=True),
        Column("groupPermissions", Text, nullable=True),
        Column("welcomeMessage", String(WELCOME_MESSAGE_MAX_LENGTH), nullable=False, default=""),
        Column("visits", Integer, nullable=False, default=0),
        Column("creationDate", CreationDateType, nullable=True),
    )


def schema_version_table(table_name: str = "warp", metadata: Optional[MetaData] = None) -> Table:
    """History of the migrations applied to an embedded database."""
    return Table(
        f"{validate_table_name(table_name)}_schema_version",
        metadata if metadata is not None else MetaData(),
        Column("version", Integer, primary_key=True, autoincrement=False),
        Column("description", String(200), nullable=False),
        Column("installed_on", DateTime, nullable=False),
    )
