"""
Factory d'application pour les entrypoints (ex: fundraiser_backend.asgi).
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base (session panier, CORS, hosts) et sécurité/CSRF
      - gestionnaires d'exceptions (HTTPException, PaymentError)
      - routers (panier, paiements, achats, health)
    """
    app = FastAPI(title="Fundraiser Tickets API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
