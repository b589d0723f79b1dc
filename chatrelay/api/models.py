"""
chatrelay - API Request/Response Models

Pydantic models for the HTTP surface. Field names follow the client wire
format (camelCase); semantic checks happen in GenerationRequest.from_dict.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Relay
# ============================================================

class HistoryTurn(BaseModel):
    """One prior conversation turn."""
    role: str
    content: str


class RelayRequestBody(BaseModel):
    """Body of POST /api/ai and POST /api/ai/complete."""
    provider: str = Field(..., description="gemini | openai")
    userMessage: str = Field(..., description="The new user turn")
    systemPrompt: Optional[str] = None
    history: List[HistoryTurn] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class CompletionResponse(BaseModel):
    """One-shot completion result."""
    text: str
    provider: str


# ============================================================
# Auth
# ============================================================

class LoginRequest(BaseModel):
    """Admin login."""
    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    """Issued session token."""
    token: str
    expiresIn: int


# ============================================================
# System
# ============================================================

class HealthResponse(BaseModel):
    """Liveness and provider configuration."""
    status: str
    version: str
    providers: List[str]
