from integrations.tool_clients.plugins.base import PersonalPlugin
from integrations.tool_clients.plugins.calendar import CalendarPlugin
from integrations.tool_clients.plugins.fantasy_football import FantasyFootballPlugin

#: Plugins loaded by the personal agent, in tool listing order.
DEFAULT_PLUGINS: tuple[type[PersonalPlugin], ...] = (FantasyFootballPlugin, CalendarPlugin)

__all__ = ["DEFAULT_PLUGINS", "CalendarPlugin", "FantasyFootballPlugin", "PersonalPlugin"]
