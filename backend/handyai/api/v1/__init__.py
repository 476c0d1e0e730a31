from fastapi import APIRouter

from handyai.api.v1 import appointments, chat, customers, invoices, mcp, offers

api_router = APIRouter()
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(offers.router, prefix="/offers", tags=["offers"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(mcp.router, prefix="/mcp", tags=["tools"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
