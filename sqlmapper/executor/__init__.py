from sqlmapper.executor.executor import (
    UNKNOWN_ROWCOUNT,
    BaseExecutor,
    BatchExecutor,
    BatchKeyGeneration,
    BatchResult,
    ExecutorType,
    SimpleExecutor,
)
from sqlmapper.executor.keygen import (
    NO_KEY_GENERATOR,
    CursorKeyGenerator,
    KeyGenerator,
    NoKeyGenerator,
    SelectKeyGenerator,
)
from sqlmapper.executor.parameters import DefaultParameterBinder
from sqlmapper.executor.results import DefaultResultHandler, DefaultResultMapper, ResultHandler
from sqlmapper.executor.statement import (
    BaseStatementHandler,
    CallableStatementHandler,
    PreparedStatementHandler,
    RoutingStatementHandler,
    SimpleStatementHandler,
    StatementHandler,
)

__all__ = (
    "NO_KEY_GENERATOR",
    "UNKNOWN_ROWCOUNT",
    "BaseExecutor",
    "BaseStatementHandler",
    "BatchExecutor",
    "BatchKeyGeneration",
    "BatchResult",
    "CallableStatementHandler",
    "CursorKeyGenerator",
    "DefaultParameterBinder",
    "DefaultResultHandler",
    "DefaultResultMapper",
    "ExecutorType",
    "KeyGenerator",
    "NoKeyGenerator",
    "PreparedStatementHandler",
    "ResultHandler",
    "RoutingStatementHandler",
    "SelectKeyGenerator",
    "SimpleExecutor",
    "SimpleStatementHandler",
    "StatementHandler",
)
