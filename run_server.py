#!/usr/bin/env python3
"""
Script to run the catalog API server.
"""
import uvicorn
from catalog.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
