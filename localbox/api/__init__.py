"""
localbox HTTP API module.
"""

def __getattr__(name):
    if name in ("create_app", "get_runtime"):
        from localbox.api.server import create_app
        from localbox.api.dependencies import get_runtime
        return locals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["create_app", "get_runtime"]
