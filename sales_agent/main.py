"""FastAPI application for the sales agent."""
import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sales_agent.config import settings
from sales_agent.observability.tracing import setup_observability
from sales_agent.api.routes import router

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
)

# Turn routing and state commits are the interesting traces
for name in ("sales_agent.graph", "sales_agent.conversations"):
    logging.getLogger(name).setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    observability = setup_observability()
    logger.info(
        f"{settings.app_name} {settings.app_version} ready: auto-approve up to "
        f"{settings.policy_threshold_percent}%, escalate to {settings.policy_approver}, "
        f"tracing {'on' if observability.enabled else 'off'}"
    )
    yield
    logger.info(f"{settings.app_name} shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Conversation-driven sales proposal and discount approval agent",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1", tags=["conversations"])


@app.get("/")
async def root():
    """Service identity and the pricing policy in force."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "policy": {
            "threshold_percent": settings.policy_threshold_percent,
            "approver": settings.policy_approver,
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sales_agent.main:app", host="0.0.0.0", port=8000)
