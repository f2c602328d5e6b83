"""
Chat layer: message and conversation stores, and the ChatService backend.
"""

from .conversations import ConversationFilter, ConversationSort, ConversationStore, SortField
from .messages import MessageStore, StreamingStatus
from .service import ChatService
from .types import (
    ChatBackend,
    ChatMessage,
    ChatResponse,
    Conversation,
    ConversationStatus,
    MessageRole,
    MessageStatus,
    ModelConfig,
    OnChunk,
    TokenUsage,
)

__all__ = [
    # Stores
    "MessageStore",
    "StreamingStatus",
    "ConversationStore",
    "ConversationFilter",
    "ConversationSort",
    "SortField",
    # Service
    "ChatService",
    "ChatBackend",
    # Types
    "ChatMessage",
    "ChatResponse",
    "Conversation",
    "ConversationStatus",
    "MessageRole",
    "MessageStatus",
    "ModelConfig",
    "OnChunk",
    "TokenUsage",
]
