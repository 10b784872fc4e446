# warpstore/models/enums.py
import enum


class WarpType(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class Permission(str, enum.Enum):
    MODIFY_OVERRIDE = "mywarp.override.modify"
    USE_OVERRIDE = "mywarp.override.use"
    UNLIMITED_PRIVATE = "mywarp.limit.private.unlimited"
