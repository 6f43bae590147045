from fastapi import APIRouter
from ..config import settings

router = APIRouter(tags=["health"])

@router.get("/health")
def health():
    return {
        "status": "ok",
        "vector_backend": settings.vector_backend,
        "index": settings.vector_index_name,
    }
