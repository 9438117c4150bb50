"""
Integrations Module - External System Integrations
===================================================

Completion Backend (completion_backend.py):
    Chat completions over OpenAI or Azure OpenAI, with a bounded
    tool-calling loop and lazy token streaming.

Tool Gateway (tool_gateway.py):
    Agent type -> tool client lookup and aggregated health probes.

Tool Registry (tool_registry.py):
    Startup wiring of one tool client per agent type:
    - HttpToolClient: agents served by the remote MCP tool gateway
    - StubToolClient: gateway agents when no gateway is configured
    - PersonalToolClient: in-process plugins (calendar, fantasy football)

Example:
    gateway = build_tool_gateway(settings, http_client)
    client = gateway.get_client(AgentType.GITHUB)
    tools = await client.list_tools()
"""
