import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blockrank.database import init_db
from blockrank.routes import overrides, promotion, rules, runtime, standings

logger = logging.getLogger(__name__)

app = FastAPI(title="Blockrank Standings API")


def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Match confirmation drives standings recompute + bracket promotion
app.include_router(runtime.router, prefix="/api", tags=["runtime"])
app.include_router(standings.router, prefix="/api", tags=["standings"])
app.include_router(rules.router, prefix="/api", tags=["rules"])
app.include_router(promotion.router, prefix="/api", tags=["promotion"])
app.include_router(overrides.router, prefix="/api", tags=["match-overrides"])


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    init_db()
    logger.info("Blockrank API started (build %s, %d routes)", BUILD_HASH, len(app.routes))


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "Blockrank Standings API", "build_hash": BUILD_HASH, "status": "healthy"}
