"""Run the API with uvicorn.

Usage:
  ADMIN_TOKEN=... python main.py
"""

import logging
import os

import uvicorn

from fmx_pm.api.app import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
