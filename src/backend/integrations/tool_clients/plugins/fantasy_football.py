"""Fantasy football plugin: rosters, scores, standings and trade ideas."""

from __future__ import annotations

from integrations.tool_clients.plugins.base import PersonalPlugin, schema
from models.mcp_models import McpToolDefinition

_LEAGUE = {"type": "string"}
_TEAM = {"type": "string"}


class FantasyFootballPlugin(PersonalPlugin):
    name = "FantasyFootball"
    description = "Fantasy football tools for managing teams and leagues"

    tools = (
        McpToolDefinition(
            name="personal_ff_get_roster",
            description="Gets the current fantasy football roster",
            input_schema=schema({"leagueId": _LEAGUE, "teamId": _TEAM}, ["leagueId", "teamId"]),
        ),
        McpToolDefinition(
            name="personal_ff_get_scores",
            description="Gets current fantasy football scores",
            input_schema=schema({"leagueId": _LEAGUE, "week": {"type": "integer"}}, ["leagueId"]),
        ),
        McpToolDefinition(
            name="personal_ff_get_standings",
            description="Gets fantasy football league standings",
            input_schema=schema({"leagueId": _LEAGUE}, ["leagueId"]),
        ),
        McpToolDefinition(
            name="personal_ff_suggest_trades",
            description="Suggests fantasy football trades based on roster analysis",
            input_schema=schema({"leagueId": _LEAGUE, "teamId": _TEAM}, ["leagueId", "teamId"]),
        ),
    )

    responses = {
        "personal_ff_get_roster": {"players": [{"name": "Player A", "position": "QB", "points": 25.3}]},
        "personal_ff_get_scores": {"scores": [{"team": "Team 1", "points": 120.5}]},
        "personal_ff_get_standings": {"standings": [{"team": "Team 1", "wins": 8, "losses": 3}]},
        "personal_ff_suggest_trades": {
            "trades": [{"give": "Player A", "receive": "Player B", "reason": "Position need"}]
        },
    }
