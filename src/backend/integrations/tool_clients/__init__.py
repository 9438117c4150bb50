from integrations.tool_clients.http import HttpToolClient
from integrations.tool_clients.personal import PersonalToolClient
from integrations.tool_clients.stub import StubToolClient

__all__ = ["HttpToolClient", "PersonalToolClient", "StubToolClient"]
