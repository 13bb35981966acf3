"""FastAPI app: topic management proxy and sink schema endpoints with Bearer auth."""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

# Ensure project root is on path for scripts.keyvault_loader
_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from api.master import MasterService
from api.routes import router as sinks_router
from api.topic import TopicServices
from api.topic import router as topic_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load env (Key Vault), validate required env, wire the master client, then yield."""
    from scripts.keyvault_loader import load_env

    load_env()
    if not os.environ.get("API_AUTH_TOKEN"):
        raise RuntimeError("API_AUTH_TOKEN is not set (Key Vault or .env)")
    services = TopicServices.from_master(MasterService.from_env())
    app.state.topic_services = services
    yield
    services.close()


app = FastAPI(title="Sink Schema and Topic API", lifespan=lifespan)
app.include_router(topic_router)
app.include_router(sinks_router)
