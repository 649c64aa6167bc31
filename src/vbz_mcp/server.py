"""VBZ MCP Server for real-time Zürich departures."""

import asyncio
import logging
from datetime import datetime

from mcp.server import Server
from mcp.types import Tool, TextContent

from .config import Settings, get_settings
from .logging_config import configure_logging
from .models import Departure, VbzData
from .monitor import DepartureMonitor, collect_departures, default_client_factory

logger = logging.getLogger(__name__)

# Create MCP server
app = Server("vbz-mcp")

TRANSPORT_ICONS = {
    "tram": "🚋",
    "bus": "🚌",
    "rail": "🚆",
    "funicular": "🚠",
    "ferry": "⛴️",
    "gondola": "🚠",
}
DEFAULT_ICON = "🚍"
MAX_BOARD_ROWS = 20


class LatestSnapshot:
    """Holds the most recent snapshot published by the background monitor."""

    def __init__(self):
        self.snapshot: VbzData | None = None

    def __call__(self, snapshot: VbzData) -> None:
        self.snapshot = snapshot


latest = LatestSnapshot()


def transport_icon(mode: str) -> str:
    """Return the board icon for a PtMode value."""
    return TRANSPORT_ICONS.get(mode.lower(), DEFAULT_ICON)


def format_departure(dep: Departure, now: datetime | None = None) -> str:
    """Format a departure record for display."""
    countdown = dep.formatted_time(now) or "--"
    platform_str = f" (Pl. {dep.platform})" if dep.platform else ""
    delay_str = f" (+{dep.delay_minutes}min)" if dep.is_late else ""
    accessible_str = " ♿" if dep.is_accessible else ""
    realtime_str = "" if dep.is_realtime else " [scheduled]"

    return (
        f"{transport_icon(dep.transport_mode)} {dep.line} → {dep.destination}"
        f"{platform_str}: {countdown}{delay_str}{realtime_str}{accessible_str}"
    )


def format_board(snapshot: VbzData, now: datetime | None = None) -> str:
    """Format a whole snapshot, or its error, for display."""
    if snapshot.has_error:
        return f"Error: {snapshot.error_message}"

    updated = snapshot.timestamp.astimezone().strftime("%H:%M:%S")
    station = snapshot.station_name or "Unknown stop"
    lines = [f"Departures at {station} (updated {updated}):\n"]

    if not snapshot.departures:
        lines.append("No departures found.")
    else:
        for dep in snapshot.departures[:MAX_BOARD_ROWS]:
            lines.append(f"  {format_departure(dep, now)}")

        if len(snapshot.departures) > MAX_BOARD_ROWS:
            lines.append(f"\n  ... and {len(snapshot.departures) - MAX_BOARD_ROWS} more")

    return "\n".join(lines)


async def fetch_snapshot(settings: Settings) -> VbzData:
    """Run a single poll outside the background monitor."""
    async with default_client_factory(settings) as client:
        return await collect_departures(client, settings)


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="get_departures",
            description="Get the latest real-time departures at the configured VBZ stop",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="get_stop_departures",
            description="Get real-time departures for any Swiss public transport stop",
            inputSchema={
                "type": "object",
                "properties": {
                    "stop_point_id": {
                        "type": "string",
                        "description": "DiDok stop number (e.g., '8591067' for Zürich, Bahnhofplatz/HB)",
                    },
                    "number_of_results": {
                        "type": "integer",
                        "description": "How many departures to return (default: configured value)",
                        "minimum": 1,
                    },
                },
                "required": ["stop_point_id"],
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "get_departures":
            result = await _get_departures(get_settings())
        elif name == "get_stop_departures":
            result = await _get_stop_departures(get_settings(), arguments)
        else:
            result = f"Unknown tool: {name}"

        return [TextContent(type="text", text=result)]
    except Exception as e:
        error_msg = f"Error: {str(e)}"
        logger.error(error_msg, exc_info=True)
        return [TextContent(type="text", text=error_msg)]


async def _get_departures(settings: Settings) -> str:
    """Board for the configured stop, polling once if the monitor has nothing yet."""
    snapshot = latest.snapshot
    if snapshot is None:
        snapshot = await fetch_snapshot(settings)
    return format_board(snapshot)


async def _get_stop_departures(settings: Settings, arguments: dict) -> str:
    """Board for an arbitrary stop."""
    stop_point_id = str(arguments.get("stop_point_id", "")).strip()
    if not stop_point_id:
        return "Error: 'stop_point_id' parameter is required"

    update = {"stop_point_id": stop_point_id}
    number_of_results = arguments.get("number_of_results")
    if number_of_results is not None:
        try:
            number_of_results = int(number_of_results)
        except (TypeError, ValueError):
            return "Error: 'number_of_results' must be a positive integer"
        if number_of_results < 1:
            return "Error: 'number_of_results' must be a positive integer"
        update["number_of_results"] = number_of_results

    snapshot = await fetch_snapshot(settings.model_copy(update=update))
    return format_board(snapshot)


async def main():
    """Run the MCP server with a background departure monitor."""
    from mcp.server.stdio import stdio_server

    settings = get_settings()
    configure_logging(settings.log_level)

    monitor = DepartureMonitor(settings, on_snapshot=latest)
    monitor.start()
    try:
        async with stdio_server() as (read_stream, write_stream):
            init_options = app.create_initialization_options()
            await app.run(read_stream, write_stream, init_options)
    finally:
        await monitor.stop()


def cli():
    """Entry point for console script."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
