from fastapi import APIRouter
from app.api.v1.endpoints import auth, users, notes, folders, bookmarks, public, search

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(folders.router, prefix="/folders", tags=["folders"])
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["bookmarks"])
api_router.include_router(search.router, prefix="/search", tags=["search"])
api_router.include_router(public.router, tags=["public"])
