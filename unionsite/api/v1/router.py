from fastapi import APIRouter
from unionsite.api.v1.endpoints import auth, posts, members, settings, push, health

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(posts.router, prefix="/posts", tags=["Posts"])
api_router.include_router(members.router, prefix="/members", tags=["Members"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(push.router, prefix="/push", tags=["Push"])
