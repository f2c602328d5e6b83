"""
Multi-agent LLM workflow orchestration.

Environment variables are loaded from the nearest `.env` on import so
provider API keys are available to the default settings.
"""
from dotenv import find_dotenv, load_dotenv

# Keep side effect so API keys are loaded on import.
_ = load_dotenv(find_dotenv(), override=True)

from .cancellation import CancellationToken
from .chat import (
    ChatBackend,
    ChatMessage,
    ChatResponse,
    ChatService,
    Conversation,
    ConversationStore,
    MessageStore,
    ModelConfig,
    TokenUsage,
)
from .config import Settings, configure, get_settings
from .errors import (
    ConfigurationError,
    ErrorCode,
    InsufficientResultsError,
    NoRouteMatchedError,
    ProviderError,
    WorkflowCancelledError,
    WorkflowError,
    WorkflowTimeoutError,
)
from .logging import StructuredLogger, configure_logging, get_logger
from .retry import RetryPolicy
from .workflows import (
    AgentSpec,
    AggregationStrategy,
    EvaluatorOptimizerConfig,
    EvaluatorOptimizerRunner,
    ExecutionResult,
    ExecutionStep,
    ParallelConfig,
    ParallelRunner,
    RouteSpec,
    RoutingConfig,
    RoutingRunner,
    RunState,
    RunStatus,
    SequentialConfig,
    SequentialRunner,
    WorkflowRequest,
    create_evaluator_optimizer_workflow,
    create_parallel_workflow,
    create_routing_workflow,
    create_runner,
    create_sequential_workflow,
)

__all__ = [
    "CancellationToken",
    "RetryPolicy",
    # Chat
    "ChatBackend",
    "ChatService",
    "ChatMessage",
    "ChatResponse",
    "Conversation",
    "ConversationStore",
    "MessageStore",
    "ModelConfig",
    "TokenUsage",
    # Config
    "Settings",
    "configure",
    "get_settings",
    # Errors
    "ErrorCode",
    "WorkflowError",
    "ProviderError",
    "ConfigurationError",
    "WorkflowCancelledError",
    "WorkflowTimeoutError",
    "InsufficientResultsError",
    "NoRouteMatchedError",
    # Logging
    "StructuredLogger",
    "get_logger",
    "configure_logging",
    # Workflows
    "AgentSpec",
    "ExecutionStep",
    "ExecutionResult",
    "RunState",
    "RunStatus",
    "WorkflowRequest",
    "SequentialConfig",
    "SequentialRunner",
    "AggregationStrategy",
    "ParallelConfig",
    "ParallelRunner",
    "RouteSpec",
    "RoutingConfig",
    "RoutingRunner",
    "EvaluatorOptimizerConfig",
    "EvaluatorOptimizerRunner",
    "create_sequential_workflow",
    "create_parallel_workflow",
    "create_routing_workflow",
    "create_evaluator_optimizer_workflow",
    "create_runner",
]
