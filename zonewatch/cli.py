"""
ZoneWatch control CLI.

A virtual controller (and, with --viewer, a virtual viewer) for external
control sessions. Useful for driving a wall display from a terminal and for
checking what a session is showing.

Examples:
  zonewatch-control send 1234 mode forward
  zonewatch-control send 1234 range backward
  zonewatch-control send 1234 state
  zonewatch-control watch 1234
  zonewatch-control watch 1234 --viewer --aircraft a1b2c3 --aircraft ae0123
"""
import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Optional

import click
import websockets
from rich.console import Console
from rich.table import Table
from rich import box

from zonewatch.services.selection import step_selection, zone_view_order

console = Console()

ACTIONS = {
    "mode": "MODE",
    "range": "RANGE",
    "zones": "ZONES",
    "select": "SELECT",
    "state": "STATE_REQUEST",
}
DIRECTED_ACTIONS = ("mode", "range", "select")


def control_url(host: str, port: int) -> str:
    return f"ws://{host}:{port}/ws/control"


def build_message(action: str, session_id: str, direction: Optional[str] = None) -> dict:
    """Build the wire message for a CLI action."""
    message = {"type": ACTIONS[action], "sessionId": session_id}
    if action in DIRECTED_ACTIONS:
        message["direction"] = direction or "forward"
    return message


def render_state(session_id: str, state: dict) -> Table:
    mode = state.get("mode", "?")
    unit = "mi" if mode == "radar" else "h"

    table = Table(title=f"Session {session_id}", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Mode", mode)
    table.add_row("Range", f"{state.get('range')} {unit}")
    if mode == "radar":
        table.add_row("Zones", "on" if state.get("zonesEnabled") else "off")
    return table


@dataclass
class VirtualViewer:
    """Applies SELECT_AIRCRAFT steps to a fixed aircraft list."""
    aircraft: list[str] = field(default_factory=list)
    selected: Optional[str] = None

    def __post_init__(self):
        self.aircraft = zone_view_order(self.aircraft)

    def step(self, direction: str) -> Optional[str]:
        self.selected = step_selection(self.aircraft, self.selected, direction)
        return self.selected


async def _next_state(ws, timeout: float) -> Optional[dict]:
    """Wait for the next STATE_UPDATE, skipping anything else."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            return None
        try:
            raw = await asyncio.wait_for(ws.recv(), timeout=remaining)
        except asyncio.TimeoutError:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if data.get("type") == "STATE_UPDATE":
            return data.get("state", {})


async def send_action(
    url: str, session_id: str, action: str, direction: Optional[str], timeout: float
) -> Optional[dict]:
    """Register as controller, send one action, return the resulting state."""
    async with websockets.connect(url) as ws:
        await ws.send(json.dumps({"type": "REGISTER_CONTROLLER", "sessionId": session_id}))
        state = await _next_state(ws, timeout)

        await ws.send(json.dumps(build_message(action, session_id, direction)))
        if action == "select":
            # Relayed to viewers only; controllers get no state back
            return state

        # ZONES outside radar mode is a no-op and produces no update
        return await _next_state(ws, timeout) or state


async def watch_session(url: str, session_id: str, viewer: Optional[VirtualViewer], reconnect_delay: float):
    """Print every update for a session, reconnecting on loss."""
    register = {"type": "REGISTER_VIEWER" if viewer else "REGISTER_CONTROLLER", "sessionId": session_id}

    while True:
        try:
            async with websockets.connect(url) as ws:
                console.print(f"[green]Connected to {url}[/]")
                await ws.send(json.dumps(register))

                async for message in ws:
                    try:
                        data = json.loads(message)
                    except json.JSONDecodeError:
                        continue

                    msg_type = data.get("type")
                    if msg_type == "STATE_UPDATE":
                        console.print(render_state(session_id, data.get("state", {})))
                    elif msg_type == "SELECT_AIRCRAFT" and viewer:
                        selected = viewer.step(data.get("direction", "forward"))
                        console.print(f"Selected: [bold]{selected or 'none'}[/]")
        except (OSError, websockets.WebSocketException) as e:
            console.print(f"[yellow]Disconnected ({e}); retrying in {reconnect_delay}s[/]")
            await asyncio.sleep(reconnect_delay)


@click.group()
@click.option("--host", default=lambda: os.environ.get("ZONEWATCH_HOST", "localhost"), help="Server hostname")
@click.option("--port", default=lambda: int(os.environ.get("ZONEWATCH_PORT", "3000")), type=int, help="Server port")
@click.pass_context
def main(ctx, host, port):
    """Drive ZoneWatch external control sessions from the terminal."""
    ctx.obj = {"url": control_url(host, port)}


@main.command()
@click.argument("session_id")
@click.argument("action", type=click.Choice(sorted(ACTIONS)))
@click.argument("direction", required=False, type=click.Choice(["forward", "backward"]))
@click.option("--timeout", default=3.0, type=float, help="Seconds to wait for a state update")
@click.pass_context
def send(ctx, session_id, action, direction, timeout):
    """Send one control ACTION to SESSION_ID and show the resulting state."""
    try:
        state = asyncio.run(send_action(ctx.obj["url"], session_id, action, direction, timeout))
    except (OSError, websockets.WebSocketException) as e:
        raise click.ClickException(f"Could not reach {ctx.obj['url']}: {e}")

    if state is None:
        raise click.ClickException("No state received")
    console.print(render_state(session_id, state))


@main.command()
@click.argument("session_id")
@click.option("--viewer", is_flag=True, help="Join as a viewer instead of a controller")
@click.option("--aircraft", multiple=True, help="ICAO hex for the virtual viewer's aircraft list")
@click.option("--reconnect-delay", default=2.0, type=float, help="Seconds between reconnect attempts")
@click.pass_context
def watch(ctx, session_id, viewer, aircraft, reconnect_delay):
    """Print state updates for SESSION_ID as they arrive."""
    virtual_viewer = VirtualViewer(list(aircraft)) if viewer else None
    try:
        asyncio.run(watch_session(ctx.obj["url"], session_id, virtual_viewer, reconnect_delay))
    except KeyboardInterrupt:
        console.print("\n[bright_yellow]  Stopped watching[/]\n")


if __name__ == "__main__":
    main()
