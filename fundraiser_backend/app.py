# module fundraiser_backend.app
from fundraiser_backend.app_setup.factory import create_app

# App globale
app = create_app()
