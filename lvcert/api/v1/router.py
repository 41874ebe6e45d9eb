# lvcert/api/v1/router.py
from fastapi import APIRouter
from lvcert.api.v1 import (
    activities,
    certificates,
    verify,
)

api_router = APIRouter()

# -------- rota pública --------
api_router.include_router(verify.router, prefix="/verify", tags=["verify"])

# -------- rotas de admin (Bearer) --------
api_router.include_router(certificates.router, prefix="/certificates", tags=["certificates"])
api_router.include_router(activities.router,   prefix="/activities",   tags=["activities"])
