from reframe.application.engine import Engine, build_registry

__all__ = ["Engine", "build_registry"]
