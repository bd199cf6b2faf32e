from fastapi import APIRouter
from app.modules.availability.router import router as availability_router
from app.modules.appointments.router import router as appointments_router
from app.modules.tasks.router import router as tasks_router
from app.modules.selection.router import router as selection_router

api_router = APIRouter()
api_router.include_router(availability_router, tags=["availability"])
api_router.include_router(appointments_router, tags=["appointments"])
api_router.include_router(tasks_router, tags=["tasks"])
api_router.include_router(selection_router, tags=["selection"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
