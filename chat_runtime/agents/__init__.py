from .base import Agent, AgentRegistry

__all__ = ["Agent", "AgentRegistry"]
