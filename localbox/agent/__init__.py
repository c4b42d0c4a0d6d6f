"""
Sandbox operations as invoked by an agent's tool calls.
"""
from localbox.agent.tools import SandboxTools

__all__ = ["SandboxTools"]
