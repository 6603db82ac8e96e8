from fastapi import APIRouter

from app.api.v1 import bills, reminders

api_router = APIRouter()

api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(reminders.router, prefix="/reminders", tags=["reminders"])
