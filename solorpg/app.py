import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI

from solorpg.config import build_llm, get_config
from solorpg.llm import LLM
from solorpg.routes import router
from solorpg.session import SessionRegistry

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None, llm: LLM | None = None) -> FastAPI:
    resolved = {**get_config(), **(config or {})}
    if llm is None:
        llm = build_llm(resolved)
    logger.info("Starting engine with provider=%s language=%s", resolved["provider"], resolved["language"])

    app = FastAPI(title="Solo RPG Engine")
    app.state.config = resolved
    app.state.sessions = SessionRegistry(
        llm,
        language=resolved["language"],
        context_window=resolved["context_window"],
        memory_window=resolved["memory_window"],
    )
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (reads SOLORPG_* env vars and solorpg.json)
app = create_app()
