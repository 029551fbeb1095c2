"""FastAPI application for the lore trigger engine"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from loretrigger.core.logging_config import setup_logging
from loretrigger.core.models import (
    ChatMessage,
    ConversationContext,
    InjectionAction,
    MatchType,
    TriggerStats,
)
from loretrigger.pipeline.engine import TriggerEngine


# Global state
engine: Optional[TriggerEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan (startup/shutdown)"""
    global engine

    # Startup
    setup_logging()
    engine = TriggerEngine()

    yield

    # Shutdown
    engine = None


app = FastAPI(
    title="Lore Trigger Engine",
    description="Keyword-triggered retrieval of lore entries and role memories",
    version="0.1.0",
    lifespan=lifespan,
)


def _require_engine() -> TriggerEngine:
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


# Request/Response models
class LoadEntriesRequest(BaseModel):
    """Replace the loaded corpus"""
    entries: List[Dict[str, Any]]


class LoadEntriesResponse(BaseModel):
    loaded: int
    constant: int


class ProcessMessageRequest(BaseModel):
    """Request to process a message"""
    message: str
    role: str = "user"
    history: List[ChatMessage] = Field(default_factory=list)
    attributes: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)
    current_topic: Optional[str] = None
    emotional_state: Optional[str] = None


class ProcessMessageResponse(BaseModel):
    """What a prompt assembler needs from one run"""
    actions: List[InjectionAction]
    constant_content: str
    triggered_content: str
    full_content: str
    injected_count: int
    skipped_count: int
    duration: float
    match_type_counts: Dict[MatchType, int]


class CleanupResponse(BaseModel):
    removed: int
    remaining: int


# Endpoints
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Lore Trigger Engine",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    trigger_engine = _require_engine()
    return {
        "status": "healthy",
        "entries": len(trigger_engine.state.loaded_entries),
        "messages_processed": trigger_engine.messages_processed,
    }


@app.post("/entries", response_model=LoadEntriesResponse)
async def load_entries(request: LoadEntriesRequest):
    """Validate and load a corpus; malformed entries or duplicate ids give 422"""
    trigger_engine = _require_engine()
    try:
        loaded = trigger_engine.load_entries(request.entries)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    return LoadEntriesResponse(
        loaded=loaded,
        constant=len(trigger_engine.state.constant_entries),
    )


@app.post("/process", response_model=ProcessMessageResponse)
async def process_message(request: ProcessMessageRequest):
    """
    Run one message through the trigger pipeline.

    Returns the rendered constant and triggered blocks plus the chosen actions.
    """
    trigger_engine = _require_engine()

    context = ConversationContext(
        current_message=ChatMessage(role=request.role, content=request.message),
        conversation_history=request.history,
        attributes=request.attributes,
        current_topic=request.current_topic,
        emotional_state=request.emotional_state,
    )
    result = await trigger_engine.process_message(request.message, context=context)

    return ProcessMessageResponse(
        actions=result.actions,
        constant_content=result.constant_content,
        triggered_content=result.triggered_content,
        full_content=result.full_content,
        injected_count=result.injected_count,
        skipped_count=result.skipped_count,
        duration=result.duration,
        match_type_counts=result.match_type_counts,
    )


@app.get("/constant-content")
async def get_constant_content():
    """Rendered constant entries"""
    return {"content": _require_engine().get_constant_content()}


@app.get("/stats", response_model=TriggerStats)
async def get_stats():
    """Get trigger statistics"""
    return _require_engine().get_state().stats


@app.post("/stats/reset", response_model=TriggerStats)
async def reset_stats():
    trigger_engine = _require_engine()
    trigger_engine.reset_statistics()
    logger.info("Statistics reset via API")
    return trigger_engine.get_state().stats


@app.post("/history/cleanup", response_model=CleanupResponse)
async def cleanup_history():
    """Drop expired injection history records"""
    trigger_engine = _require_engine()
    removed = trigger_engine.cleanup_expired_history()
    return CleanupResponse(
        removed=removed,
        remaining=len(trigger_engine.state.injection_history),
    )
