from fastapi import APIRouter, Request

router = APIRouter()


@router.get("")
def health(request: Request):
    redis_manager = request.app.state.redis_manager
    return {
        "ok": True,
        "draft_store": "redis" if redis_manager.is_available else "memory",
        "open_wizards": len(request.app.state.wizards),
    }
