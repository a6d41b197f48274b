"""
Registre central des routers (API v1 + health).
"""
from fastapi import FastAPI
from fundraiser_backend.cart import views as cart_views
from fundraiser_backend.payments import views as payments_views
from fundraiser_backend.purchases import views as purchases_views
from fundraiser_backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(cart_views.router)
    app.include_router(payments_views.router)
    app.include_router(purchases_views.router)
    # Health & monitoring
    app.include_router(health_router)
