# saloony/health.py
from fastapi import APIRouter
router = APIRouter()

@router.get("/api/health")
def health():
    return {"status": "ok"}

@router.get("/api/ping")
def ping():
    return {"ok": True}
