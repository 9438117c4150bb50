"""Calendar plugin: events and reminders."""

from __future__ import annotations

from integrations.tool_clients.plugins.base import PersonalPlugin, schema
from models.mcp_models import McpToolDefinition


class CalendarPlugin(PersonalPlugin):
    name = "Calendar"
    description = "Calendar management tools for events and reminders"

    tools = (
        McpToolDefinition(
            name="personal_cal_get_events",
            description="Gets calendar events for a date range",
            input_schema=schema(
                {
                    "startDate": {"type": "string", "format": "date"},
                    "endDate": {"type": "string", "format": "date"},
                },
                ["startDate"],
            ),
        ),
        McpToolDefinition(
            name="personal_cal_create_event",
            description="Creates a new calendar event",
            input_schema=schema(
                {
                    "title": {"type": "string"},
                    "startTime": {"type": "string", "format": "date-time"},
                    "endTime": {"type": "string", "format": "date-time"},
                    "description": {"type": "string"},
                },
                ["title", "startTime"],
            ),
        ),
        McpToolDefinition(
            name="personal_cal_get_reminders",
            description="Gets upcoming reminders",
            input_schema=schema({"count": {"type": "integer"}}, []),
        ),
    )

    responses = {
        "personal_cal_get_events": {
            "events": [{"title": "Team Standup", "start": "2024-01-15T09:00:00", "end": "2024-01-15T09:30:00"}]
        },
        "personal_cal_create_event": {"id": "evt-1", "created": True, "title": "New Event"},
        "personal_cal_get_reminders": {"reminders": [{"title": "Review PR", "dueAt": "2024-01-15T14:00:00"}]},
    }
