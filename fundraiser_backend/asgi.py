"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe
  `fundraiser_backend.asgi:app`.
"""

from fundraiser_backend.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "fundraiser_backend.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
