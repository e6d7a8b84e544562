"""Production entry point for the CS2DLE admin API using uvicorn workers"""

import os

import uvicorn

if __name__ == "__main__":
    PORT = int(os.getenv("PORT", "8000"))
    HOST = os.getenv("HOST", "127.0.0.1")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
    WORKERS = int(os.getenv("WORKERS", "2"))

    uvicorn.run(
        "cs2dle_backend.app.main:create_app",
        factory=True,
        host=HOST,
        port=PORT,
        workers=WORKERS if ENVIRONMENT == "production" else 1,
        reload=ENVIRONMENT == "development",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
    )
