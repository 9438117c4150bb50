"""
Agent catalog - the static set of agents the hub can route to.

Loaded once at startup and read-only for the life of the process.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from models.session_models import AgentDefinition, AgentType, UserProfile

DEFAULT_AGENTS: tuple[AgentDefinition, ...] = (
    AgentDefinition(
        id="github-agent",
        name="GitHub Agent",
        description="Manages GitHub repositories, pull requests, issues, and workflows.",
        agent_type=AgentType.GITHUB,
        system_prompt=(
            "You are a GitHub operations assistant. Help users manage repositories, review pull requests, "
            "triage issues, and configure GitHub Actions workflows. Provide concise, actionable guidance "
            "using GitHub best practices."
        ),
    ),
    AgentDefinition(
        id="azure-agent",
        name="Azure Agent",
        description="Manages Azure cloud resources, deployments, and monitoring.",
        agent_type=AgentType.AZURE,
        system_prompt=(
            "You are an Azure cloud assistant. Help users provision and manage Azure resources, troubleshoot "
            "deployments, monitor services, and optimize cloud costs. Follow Azure Well-Architected Framework "
            "principles."
        ),
    ),
    AgentDefinition(
        id="ado-agent",
        name="Azure DevOps Agent",
        description="Manages Azure DevOps projects, pipelines, boards, and artifacts.",
        agent_type=AgentType.AZURE_DEVOPS,
        system_prompt=(
            "You are an Azure DevOps assistant. Help users manage work items, configure build and release "
            "pipelines, organize boards, and manage artifacts. Follow DevOps best practices for CI/CD."
        ),
    ),
    AgentDefinition(
        id="dotnet-dev-agent",
        name=".NET Developer Agent",
        description="Assists with .NET development, code reviews, and architectural guidance.",
        agent_type=AgentType.DOTNET_DEV,
        system_prompt=(
            "You are a .NET development assistant. Help users write, review, and refactor C# and .NET code. "
            "Provide guidance on architecture, design patterns, testing, and performance optimization "
            "following current .NET best practices."
        ),
    ),
    AgentDefinition(
        id="ai-llm-agent",
        name="AI/LLM Agent",
        description="Assists with AI model integration, prompt engineering, and LLM operations.",
        agent_type=AgentType.AI_LLM,
        system_prompt=(
            "You are an AI and LLM operations assistant. Help users integrate AI models, craft effective "
            "prompts, manage model deployments, and implement responsible AI practices. Provide guidance on "
            "Azure OpenAI, semantic kernel, and AI orchestration patterns."
        ),
    ),
    AgentDefinition(
        id="devops-agent",
        name="DevOps Agent",
        description="Manages infrastructure as code, CI/CD pipelines, and platform engineering.",
        agent_type=AgentType.DEVOPS,
        system_prompt=(
            "You are a DevOps and platform engineering assistant. Help users manage infrastructure as code, "
            "configure CI/CD pipelines, implement monitoring and observability, and follow SRE best practices "
            "for reliability and scalability."
        ),
    ),
    AgentDefinition(
        id="personal-agent",
        name="Personal Assistant Agent",
        description="Provides general productivity assistance, scheduling, and task management.",
        agent_type=AgentType.PERSONAL,
        system_prompt=(
            "You are a personal productivity assistant. Help users manage tasks, organize information, draft "
            "communications, and improve workflow efficiency. Be helpful, concise, and proactive in offering "
            "relevant suggestions."
        ),
    ),
)


class AgentCatalog:
    """Ordered, read-only registry of agent definitions keyed by agent type."""

    def __init__(self, agents: Sequence[AgentDefinition] = DEFAULT_AGENTS):
        by_type: dict[AgentType, AgentDefinition] = {}
        for agent in agents:
            if agent.agent_type in by_type:
                raise ValueError(f"Duplicate agent type in catalog: {agent.agent_type.value}")
            by_type[agent.agent_type] = agent
        self._agents: tuple[AgentDefinition, ...] = tuple(agents)
        self._by_type = by_type

    @classmethod
    def with_disabled(cls, disabled: Iterable[str], agents: Sequence[AgentDefinition] = DEFAULT_AGENTS) -> AgentCatalog:
        """Build a catalog with the named agent types marked disabled."""
        disabled_set = {value.lower() for value in disabled}
        return cls(
            [
                agent.model_copy(update={"is_enabled": False}) if agent.agent_type.value in disabled_set else agent
                for agent in agents
            ]
        )

    def get_all_agents(self) -> list[AgentDefinition]:
        return list(self._agents)

    def get_agent(self, agent_type: AgentType | str) -> AgentDefinition | None:
        try:
            key = AgentType(agent_type)
        except ValueError:
            return None
        return self._by_type.get(key)

    def get_agents_for_user(self, profile: UserProfile) -> list[AgentDefinition]:
        """Enabled agents visible to a user.

        A non-empty assignment list restricts the result to those types.
        """
        enabled = [agent for agent in self._agents if agent.is_enabled]
        if profile.assigned_agents:
            assigned = set(profile.assigned_agents)
            return [agent for agent in enabled if agent.agent_type in assigned]
        return enabled
