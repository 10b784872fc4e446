# warpstore/services/errors.py


class WarpServiceError(Exception):
    """Base class for refusals of the warp service."""

    def __init__(self, warp_name: str, message: str = ""):
        super().__init__(message or warp_name)
        self.warp_name = warp_name


class NoSuchWarp(WarpServiceError):
    pass


class WarpNameTaken(WarpServiceError):
    pass


class NotModifiable(WarpServiceError):
    pass


class NotUsable(WarpServiceError):
    pass


class PrivateLimitReached(WarpServiceError):
    def __init__(self, warp_name: str, limit: int):
        super().__init__(warp_name, f"Private warp limit of {limit} reached")
        self.limit = limit
