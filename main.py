"""Terminal front end for the route optimizer.

Usage:
    python main.py                                  # Interactive mode
    python main.py "221B Baker St, London" "10 Downing St, London"   # Single query mode
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from routewise.config import settings
from routewise.errors import RouteWiseError
from routewise.pipeline import PipelineController, create_controller
from routewise.tools import export_route_gpx, file_to_data_uri, generate_google_maps_url
from routewise.utils import parse_lat_lng


console = Console()

HELP = """[bold]Commands:[/bold]
  • add <address>        Add a stop
  • photo <image path>   Read a stop from a photo
  • remove <number>      Remove a stop
  • locate <lat>,<lng>   Set your current location
  • optimize             Find the best visiting order
  • list                 Show stops, route and insights
  • map                  Print a Google Maps link for the route
  • gpx [name]           Save the route as a GPX file
  • quit

[dim]Anything else you type is added as an address.[/dim]"""


def show_state(controller: PipelineController) -> None:
    console.print()
    console.print(Markdown(controller.state.format_summary()))


def show_notice(controller: PipelineController) -> None:
    if controller.state.notice:
        console.print(f"[yellow]{controller.state.notice}[/yellow]")


async def run_optimize(controller: PipelineController) -> None:
    """Optimize, then wait for the map refresh and show the result."""
    with console.status("🧠 Optimizing route..."):
        ok = await controller.optimize()
    
    if not ok:
        console.print(f"[red]❌ Optimization failed:[/red] {controller.state.error}")
        return
    
    with console.status("🛤️ Calculating directions..."):
        await controller.wait_for_map()
    
    console.print("[green]✓ Route optimized![/green]")
    show_state(controller)


async def handle_command(controller: PipelineController, line: str) -> bool:
    """Run one command. Returns False when the session should end."""
    command, _, argument = line.strip().partition(" ")
    command = command.lower()
    argument = argument.strip()
    state = controller.state
    
    if command in ("quit", "exit", "q"):
        return False
    
    if command in ("help", "?"):
        console.print(HELP)
    
    elif command == "list":
        show_state(controller)
    
    elif command == "remove":
        try:
            removed = controller.remove_address(int(argument) - 1)
        except ValueError:
            console.print("[red]Usage: remove <number>[/red]")
            return True
        console.print(f"[green]✓[/green] Removed: {removed}")
        controller.request_map_refresh()
    
    elif command == "photo":
        with console.status("📷 Recognizing address..."):
            added = await controller.add_from_photo(file_to_data_uri(argument))
        if added:
            console.print(f"[green]✓[/green] Address recognized. Added: {added}")
            controller.request_map_refresh()
        show_notice(controller)
    
    elif command == "locate":
        coords = parse_lat_lng(argument)
        if coords is None:
            console.print("[red]Usage: locate <lat>,<lng>[/red]")
            return True
        country = await controller.set_user_location(*coords)
        console.print(f"[green]✓[/green] Location set{f' ({country})' if country else ''}")
        if state.addresses:
            controller.request_map_refresh()
    
    elif command == "optimize":
        await run_optimize(controller)
    
    elif command == "map":
        stops = [w.address for w in state.waypoints] or list(state.effective_addresses)
        url = generate_google_maps_url(stops)
        if url is None:
            lat, lng = state.map_center
            url = f"https://www.google.com/maps/@{lat:.5f},{lng:.5f},12z"
        console.print(f"🗺️ [link={url}]{url}[/link]")
    
    elif command == "gpx":
        if state.path is None:
            console.print("[yellow]No route yet. Run 'optimize' first.[/yellow]")
            return True
        filepath = export_route_gpx(
            state.path,
            state.waypoints,
            route_name=argument or "optimized_route",
            description=state.reasoning,
        )
        console.print(f"[green]✓[/green] GPX saved to {filepath}")
    
    else:
        address = line if command != "add" else argument
        if controller.add_address(address):
            console.print(f"[green]✓[/green] Added: {address.strip()}")
            controller.request_map_refresh()
        show_notice(controller)
    
    return True


async def interactive_mode(controller: PipelineController):
    """Run interactive mode."""
    
    console.print("\n[bold blue]🚗 RouteWise Route Planner[/bold blue]\n")
    console.print(Panel(
        "Add the addresses you need to visit, then let me work out the order.\n\n" + HELP,
        title="Welcome",
        border_style="blue",
    ))
    
    while True:
        try:
            console.print()
            user_input = Prompt.ask("[bold green]You[/bold green]")
            
            if not user_input.strip():
                continue
            
            if not await handle_command(controller, user_input):
                console.print("\n[dim]Goodbye! Drive safe! 🚗[/dim]\n")
                break
            
        except KeyboardInterrupt:
            console.print("\n\n[dim]Session interrupted. Goodbye![/dim]\n")
            break
        except RouteWiseError as e:
            console.print(f"[red]Error: {e}[/red]")


async def single_query(controller: PipelineController, addresses: list[str]):
    """Add the given addresses and optimize them once."""
    for address in addresses:
        try:
            controller.add_address(address)
        except RouteWiseError as e:
            console.print(f"[red]Error: {e}[/red]")
        show_notice(controller)
    
    await run_optimize(controller)
    
    stops = [w.address for w in controller.state.waypoints]
    url = generate_google_maps_url(stops)
    if url:
        console.print(f"\n🗺️ Directions: {url}")


def main():
    """Main entry point."""
    load_dotenv()
    
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    
    # Check configuration
    missing = settings.validate_required()
    if missing:
        console.print(Panel(
            f"[red]Missing required configuration:[/red]\n" +
            "\n".join(f"  • {m}" for m in missing) +
            "\n\n[dim]Copy .env.example to .env and fill in your API keys.[/dim]",
            title="Configuration Error",
            border_style="red",
        ))
        sys.exit(1)
    
    controller = create_controller(settings)
    
    if len(sys.argv) > 1:
        asyncio.run(single_query(controller, sys.argv[1:]))
    else:
        asyncio.run(interactive_mode(controller))


if __name__ == "__main__":
    main()
