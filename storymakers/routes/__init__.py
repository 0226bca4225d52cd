from fastapi import APIRouter
from .stories import router as stories_router
from .submit import router as submit_router
from .admin import router as admin_router
from .language import router as language_router

router = APIRouter()
router.include_router(stories_router, tags=['stories'])
router.include_router(submit_router, tags=['submit'])
router.include_router(admin_router, prefix='/admin', tags=['admin'])
router.include_router(language_router, tags=['language'])
