"""Main entry point for the café API."""

import os

import uvicorn

from cafe_api.server import app

if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("CAFE_API_HOST", "0.0.0.0"), port=int(os.getenv("CAFE_API_PORT", "8000")))
