from reframe.infrastructure.observability.context import RunLogContext, create_run_logger_context
from reframe.infrastructure.observability.logger import NullLogger, RunLogger

__all__ = ["NullLogger", "RunLogContext", "RunLogger", "create_run_logger_context"]
