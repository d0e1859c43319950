from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from worker.app.routers import analyze as analyze_router
from worker.app.routers import status as status_router
from worker.app.config import settings as C
from worker.app.services.pipeline import get_pipeline

app = FastAPI(title="img2insight-worker")

# CORS origins from environment variable or default

cors_origins_env = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
)
origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(status_router.router)
app.include_router(analyze_router.router)


@app.on_event("startup")
async def _startup_log():
    logging.info(
        f"[worker] MODEL_PROVIDER={C.MODEL_PROVIDER}  MODEL_NAME={C.MODEL_NAME}  CACHE_DIR={C.CACHE_DIR}"
    )
    # drop anything that expired while the service was down
    try:
        purged = get_pipeline().cache.purge_expired()
        if purged:
            logging.info(f"[worker] purged {purged} expired cache entries")
    except Exception as e:
        logging.warning(f"[worker] cache purge skipped due to error: {e}")
    logging.info("[worker] Routes: /health /status /analyze /language /cache")


@app.get("/")
async def root():
    return {"message": "img2insight Worker Service"}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT_WORKER", "8090"))
    uvicorn.run(app, host="0.0.0.0", port=port)
