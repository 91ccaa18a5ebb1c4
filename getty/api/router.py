from fastapi import APIRouter

from getty.api.commands.routes import router as commands_router

router = APIRouter()
router.include_router(commands_router)
