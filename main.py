import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.agent_store import SqliteAgentStore
from routes.agent_route import router as agent_router
from routes.analyze_route import router as analyze_router
from services.agent.llm_client import LLMClient, OpenAIResponsesClient
from services.agent.orchestrator import AgentStore, TurnOrchestrator
from services.agent.page_analyzer import PageAnalyzer
from services.session_store import InMemoryAgentStore
from utils.config import AgentSettings
from utils.database_init import AsyncDatabaseInitializer
from utils.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def build_store(settings: AgentSettings) -> AgentStore:
    """Create the store selected by AGENT_STORAGE_BACKEND."""
    if settings.storage_backend == "memory":
        return InMemoryAgentStore()
    db_initializer = AsyncDatabaseInitializer(settings.database_dir, reset=settings.reset_database)
    return SqliteAgentStore(db_initializer)


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        result = aclose()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        LOGGER.warning("Error while closing OpenAI client: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the settings (from the environment unless injected)
      - the session store (SQLite at DATABASE_DIR/app.db, or in-memory)
      - the OpenAI async client and the language model client
    and attach the turn orchestrator and page analyzer to `app.state`.
    """
    settings: AgentSettings = app.state.settings or AgentSettings.from_env()
    app.state.settings = settings
    configure_logging(settings.log_level)

    store = app.state.store or build_store(settings)
    await store.initialize()
    app.state.store = store

    openai_client = None
    llm_client = app.state.llm_client
    if llm_client is None:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        try:
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.timeout_seconds)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
        llm_client = OpenAIResponsesClient(
            openai_client,
            model=settings.model,
            max_output_tokens=settings.max_output_tokens,
        )
    app.state.llm_client = llm_client
    app.state.orchestrator = TurnOrchestrator(store, llm_client, settings)
    app.state.page_analyzer = PageAnalyzer(llm_client)
    LOGGER.info("Agent service ready (store=%s, model=%s)", store.backend_name, getattr(llm_client, "model", "?"))

    try:
        yield
    finally:
        if openai_client is not None:
            await _close_client(openai_client)


def create_app(
    settings: Optional[AgentSettings] = None,
    llm_client: Optional[LLMClient] = None,
    store: Optional[AgentStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Any of `settings`, `llm_client` or `store` may be injected; the rest are
    built from the environment at startup.
    """
    app = FastAPI(title="Browser Agent API", lifespan=lifespan)
    app.state.settings = settings
    app.state.llm_client = llm_client
    app.state.store = store

    @app.get("/health")
    async def health(request: Request):
        """
        Report the store backend and whether a language model client is configured.
        """
        state = request.app.state
        store_ = getattr(state, "store", None)
        return {
            "ok": True,
            "store_backend": getattr(store_, "backend_name", None),
            "model_available": getattr(state, "llm_client", None) is not None,
        }

    app.include_router(agent_router)
    app.include_router(analyze_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
