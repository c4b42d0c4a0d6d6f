"""
Core runtime: the expiry maintenance loop and the composed sandbox runtime.

SandboxRuntime lives in localbox.core.runtime and must not be imported from
this package init: the workspace registry imports localbox.core.
"""
from localbox.core.reaper import ExpiryReaper

__all__ = ["ExpiryReaper"]
