#!/usr/bin/env python3
"""
Simple testing script for the catalog /v1/entries endpoint.

Usage examples:
    python scripts/test_capture.py photos/dog.jpg
    python scripts/test_capture.py photos/cup.png --endpoint http://localhost:8000
    python scripts/test_capture.py photos/dog.jpg --owner user-123 --save-response entry.json
"""

import asyncio
import base64
import json
import mimetypes
import time
from pathlib import Path
from typing import Optional

import aiohttp
import typer
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

console = Console()

STAT_FIELDS = ["hp", "attack", "defense", "speed"]


def encode_image(image_path: Path) -> str:
    """Read an image file into a base64 data URI."""
    mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
    encoded = base64.b64encode(image_path.read_bytes()).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


async def make_capture_request(
    endpoint: str, image: str, owner: Optional[str]
) -> tuple[Optional[dict], Optional[str]]:
    """Make the create-entry request and return response or error."""
    url = f"{endpoint}/v1/entries"
    payload = {"capture": {"image": image}}
    headers = {"Content-Type": "application/json"}
    if owner:
        headers["X-Owner-Subject"] = owner

    try:
        timeout = aiohttp.ClientTimeout(total=60)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            console.print(f"[yellow]Making request to: {url}[/yellow]")

            start_time = time.time()

            async with session.post(url, json=payload, headers=headers) as response:
                response_time = time.time() - start_time
                result = await response.json()

                if response.status == 200 and result.get("success"):
                    console.print(f"[green]✓ Success! Response time: {response_time:.2f}s[/green]")
                    return result, None

                error = f"HTTP {response.status}: {result.get('error')}"
                console.print(f"[red]✗ Request failed: {error}[/red]")
                return None, error

    except asyncio.TimeoutError:
        error = "Request timed out after 60 seconds"
        console.print(f"[red]✗ {error}[/red]")
        return None, error
    except Exception as e:
        error = f"Request error: {str(e)}"
        console.print(f"[red]✗ {error}[/red]")
        return None, error


def display_entry(entry: dict) -> None:
    """Display a catalog entry in a nice format."""
    console.print(Panel(
        f"[bold]#{entry.get('no', '?')} {entry.get('object', 'N/A')}[/bold]\n"
        f"[bold]Species:[/bold] {entry.get('species', 'N/A')}\n"
        f"[bold]Type:[/bold] {entry.get('type', 'N/A')}\n"
        f"[bold]Weight:[/bold] {entry.get('approximateWeight', 'N/A')}\n"
        f"[bold]Height:[/bold] {entry.get('approximateHeight', 'N/A')}\n"
        f"[bold]Image:[/bold] {entry.get('image', 'N/A')}",
        title="[bold blue]Catalog Entry[/bold blue]",
        expand=False
    ))

    stats_table = Table(title="[bold green]Stats[/bold green]")
    stats_table.add_column("Stat", style="cyan", no_wrap=True)
    stats_table.add_column("Value", style="magenta")
    for stat in STAT_FIELDS:
        stats_table.add_row(stat, str(entry.get(stat)))
    console.print(stats_table)

    console.print(f"\n[bold]Description:[/bold] {entry.get('description', '')}")

    if entry.get("inference_job_token"):
        console.print(
            f"[green]Voice job:[/green] {entry['inference_job_token']} "
            f"({entry.get('voiceStatus')})"
        )
    else:
        console.print("[yellow]No voice job[/yellow]")


async def main(
    image_path: Path,
    endpoint: str,
    owner: Optional[str],
    save_response: Optional[Path],
    show_raw: bool,
) -> None:
    """Post an image file to the create-entry endpoint."""
    if not image_path.exists():
        console.print(f"[red]Error: File {image_path} does not exist[/red]")
        raise typer.Exit(1)

    console.print(f"[blue]Encoding image: {image_path}[/blue]")
    response, error = await make_capture_request(endpoint, encode_image(image_path), owner)

    if error or not response:
        console.print(f"\n[red]Failed to get response: {error}[/red]")
        raise typer.Exit(1)

    console.print()

    if show_raw:
        console.print(Panel(
            JSON.from_data(response),
            title="[bold]Raw JSON Response[/bold]",
            expand=False
        ))
    else:
        display_entry(response["entry"])

    if save_response:
        try:
            with open(save_response, 'w', encoding='utf-8') as f:
                json.dump(response, f, indent=2, ensure_ascii=False)
            console.print(f"\n[green]Response saved to: {save_response}[/green]")
        except Exception as e:
            console.print(f"\n[red]Failed to save response: {e}[/red]")


def cli_main(
    image_path: Path = typer.Argument(
        ...,
        help="Path to an image file"
    ),
    endpoint: str = typer.Option(
        "http://localhost:8000",
        "--endpoint",
        help="Catalog API endpoint"
    ),
    owner: Optional[str] = typer.Option(
        None,
        "--owner",
        help="Owner identity subject sent as X-Owner-Subject"
    ),
    save_response: Optional[Path] = typer.Option(
        None,
        "--save-response",
        help="Save full response to JSON file"
    ),
    show_raw: bool = typer.Option(
        False,
        "--raw",
        help="Show raw JSON response"
    )
) -> None:
    """Test the catalog create-entry endpoint with a local image."""

    try:
        asyncio.run(main(
            image_path=image_path,
            endpoint=endpoint,
            owner=owner,
            save_response=save_response,
            show_raw=show_raw
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(1)


if __name__ == "__main__":
    typer.run(cli_main)
