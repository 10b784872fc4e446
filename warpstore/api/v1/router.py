# warpstore/api/v1/router.py
from fastapi import APIRouter
from warpstore.api.v1 import warps

# Create the main router
api_router = APIRouter()

# Include all the sub-routers
api_router.include_router(warps.router, prefix="/warps", tags=["warps"])
