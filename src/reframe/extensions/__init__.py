from reframe.extensions.current import get_current_registry, registry_context
from reframe.extensions.registry import RegisteredFn, Registry

__all__ = ["RegisteredFn", "Registry", "get_current_registry", "registry_context"]
