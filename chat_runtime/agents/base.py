from __future__ import annotations

from typing import Dict, List, Optional, Protocol, runtime_checkable

from chat_runtime.models import AgentInvocationOptions, ChatResponseStream


@runtime_checkable
class Agent(Protocol):
    """
    An invocable AI agent.

    ``invoke_streaming`` returns as soon as the agent accepted the prompt;
    the reply is consumed through the returned stream, which may raise
    StreamFailure (or be cancelled) part-way through.
    """

    name: str

    async def invoke_streaming(
        self, message: str, options: AgentInvocationOptions
    ) -> ChatResponseStream: ...


class AgentRegistry:
    """
    Name -> Agent lookup handed to the invocation service.
    """

    def __init__(self, agents: Optional[List[Agent]] = None) -> None:
        self._agents: Dict[str, Agent] = {}
        for agent in agents or []:
            self.register(agent)

    def register(self, agent: Agent) -> None:
        self._agents[agent.name] = agent

    def get(self, name: str) -> Optional[Agent]:
        return self._agents.get(name)

    def names(self) -> List[str]:
        return sorted(self._agents)


__all__ = ["Agent", "AgentRegistry"]
