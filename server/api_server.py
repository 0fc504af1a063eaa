"""FastAPI application entry point for persona_bots."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.exceptions import AppException
from shared.clients.ClientInterface import ClientInterface
from shared.clients.ClientManager import ClientManager
from shared.extract.TextExtractor import TextExtractor
from shared.storage.FileStorage import FileStorage
from shared.store.StoreManager import StoreManager
from services.ingestion.IngestionService import IngestionService
from server.core.BotService import BotService
from server.core.ChatService import ChatService
from server.core.CompletionService import CompletionService
from server.core.ContextAssembler import ContextAssembler
from server.core.ConversationLocks import ConversationLocks
from server.core.RetrievalService import RetrievalService
from server.routers.HealthRouter import router as health_router
from server.routers.BotRouter import router as bot_router
from server.routers.FileRouter import router as file_router
from server.routers.ChatRouter import router as chat_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config = HelperConfig(logger=logging)

    # the store is required, a failing boot stops the app before any client is opened
    store = StoreManager(helper_config).get_store()
    await store.boot()

    # a missing embed or index config disables retrieval and ingestion, a missing
    # llm config turns every reply into the fallback text
    embed_client = ClientManager(helper_config, "embed").get_optional_client()
    index_client = ClientManager(helper_config, "index").get_optional_client()
    llm_client = ClientManager(helper_config, "llm").get_optional_client()

    logging.info("Booting all clients...")
    for client in [embed_client, index_client, llm_client]:
        if client is not None:
            await client.boot()
    if index_client is not None:
        try:
            await index_client.do_prepare()
        except Exception as e:
            logging.error("Preparing the vector index failed, running without it: %s", e)
            await index_client.close()
            index_client = None
    logging.info("All clients booted successfully.")

    storage = FileStorage(helper_config=helper_config)

    app.state.store = store
    app.state.embed_client = embed_client
    app.state.index_client = index_client
    app.state.llm_client = llm_client

    app.state.ingestion_service = ingestion_service = IngestionService(
        helper_config=helper_config,
        embed_client=embed_client,
        index_client=index_client,
        extractor=TextExtractor(helper_config=helper_config),
        storage=storage,
        store=store,
    )
    app.state.bot_service = BotService(
        helper_config=helper_config,
        store=store,
        ingestion=ingestion_service,
        storage=storage,
    )
    app.state.chat_service = ChatService(
        helper_config=helper_config,
        store=store,
        retrieval=RetrievalService(helper_config, embed_client, index_client),
        assembler=ContextAssembler(helper_config),
        completion=CompletionService(helper_config, llm_client),
        locks=ConversationLocks(),
    )

    await check_connections([c for c in (embed_client, index_client, llm_client) if c is not None])

    # while the app is running...
    yield

    # when the app shuts down, stop ingestion and close all client connections
    logging.info("Shutting down, closing all clients...")
    await ingestion_service.close()
    for client in [embed_client, index_client, llm_client]:
        if client is not None:
            await client.close()
    await store.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="persona_bots",
    description=(
        "Persona chat bots with document-augmented conversations. "
        "Users create bots, attach reference documents that are indexed into a vector store, "
        "and chat with them via POST /chat."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health_router)
app.include_router(bot_router)
app.include_router(file_router)
app.include_router(chat_router)


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Failures are non-fatal: retrieval degrades to no context and completion
    to the fallback reply, so the server stays up and only warns.
    """
    for client in clients:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as e:
            logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.__class__.__name__, e)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' is not reachable (status %d).",
                client.get_client_type().upper(),
                client.__class__.__name__,
                result.status_code,
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting persona_bots API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
