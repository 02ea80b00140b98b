from __future__ import annotations

from .api import create_app


# uvicorn portal_chat.main:app
app = create_app()
