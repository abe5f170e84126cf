#!/usr/bin/env python3
"""
Azure Classic VM CLI - inspect and drive classic (Service Management) VMs.

Features:
- Inventory of classic VMs in a region with normalized status
- Instance detail: network identity, reserved/public IP, disks
- Lifecycle operations that wait for the VM to converge
- Classic VM size reference table

Usage:
    python main.py list --region "East US"
    python main.py show --vm my-vm
    python main.py start --vm my-vm
"""
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box
from dotenv import load_dotenv

from azure_client import ClassicRegion
from classic_instance import ClassicInstance
from cloudprovider import CloudProviderError, ServerStopOptions, VMStatus
from config import CLASSIC_VM_SIZES, Settings


# Load environment variables
load_dotenv()

app = typer.Typer(
    name="classic-vm",
    help="""Azure Classic VM adapter

Inspect and operate virtual machines deployed with the classic
(Service Management) model.""",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()


def setup_logging(verbose: bool = False):
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def format_memory(memory_mb: int) -> str:
    """Format a memory size given in MB."""
    if memory_mb <= 0:
        return "-"
    if memory_mb < 1024:
        return f"{memory_mb} MB"
    return f"{memory_mb / 1024:.2f} GB"


def get_status_color(status: str) -> str:
    """Get color for a normalized VM status."""
    colors = {
        VMStatus.RUNNING.value: "green",
        VMStatus.READY.value: "yellow",
        VMStatus.UNKNOWN.value: "red",
    }
    return colors.get(status, "white")


def get_region(subscription: Optional[str], region: Optional[str]) -> ClassicRegion:
    settings = Settings()
    try:
        return ClassicRegion.from_settings(settings, subscription_id=subscription, region=region)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def find_instance(classic_region: ClassicRegion, vm_name: str) -> ClassicInstance:
    """Find a classic VM by name or resource id."""
    if vm_name.startswith("/subscriptions/"):
        return classic_region.get_classic_instance(vm_name)
    instances = classic_region.get_classic_instances()
    instance = next((i for i in instances if i.name.lower() == vm_name.lower()), None)
    if instance is None:
        console.print(f"[red]Classic VM '{vm_name}' not found in {classic_region.name}[/red]")
        raise typer.Exit(1)
    return instance


def create_instance_table(instances: list[ClassicInstance]) -> Table:
    table = Table(title="Classic Virtual Machines", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Resource Group")
    table.add_column("Size")
    table.add_column("vCPUs", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("OS")
    table.add_column("Status")

    for instance in instances:
        status = instance.get_status().value
        color = get_status_color(status)
        table.add_row(
            instance.name,
            instance.get_project_id(),
            instance.get_instance_type() or "-",
            str(instance.get_vcpu_count()),
            format_memory(instance.get_vmem_size_mb()),
            instance.get_os_type(),
            f"[{color}]{status}[/{color}]",
        )
    return table


def create_detail_panel(instance: ClassicInstance) -> Panel:
    status = instance.get_status().value
    color = get_status_color(status)
    lines = [
        f"[bold]ID:[/bold] {instance.get_id()}",
        f"[bold]Location:[/bold] {instance.location}",
        f"[bold]Status:[/bold] [{color}]{status}[/{color}]",
        f"[bold]Size:[/bold] {instance.get_instance_type()} "
        f"({instance.get_vcpu_count()} vCPU, {format_memory(instance.get_vmem_size_mb())})",
        f"[bold]OS:[/bold] {instance.get_os_type()} {instance.get_full_os_name()}",
    ]

    for nic in instance.get_inics():
        lines.append(f"[bold]NIC:[/bold] {nic.get_ip()} ({nic.get_id()})")

    eip = instance.get_ieip()
    if eip is not None:
        lines.append(f"[bold]Public IP:[/bold] {eip.get_ip_addr()} [dim]({eip.get_mode()})[/dim]")

    for secgroup_id in instance.get_security_group_ids():
        lines.append(f"[bold]Security group:[/bold] {secgroup_id}")

    for disk in instance.get_idisks():
        lines.append(
            f"[bold]Disk:[/bold] {disk.get_name()} [dim]{disk.get_disk_type()}, "
            f"{format_memory(disk.get_disk_size_mb())}[/dim]"
        )

    return Panel("\n".join(lines), title=f"[bold cyan]{instance.name}[/bold cyan]", border_style="cyan")


SUBSCRIPTION_OPTION = typer.Option(None, "--subscription", "-s", help="Azure Subscription ID")
REGION_OPTION = typer.Option(None, "--region", "-r", help="Azure region (defaults to AZURE_REGION)")
VM_OPTION = typer.Option(..., "--vm", "-v", help="Classic VM name or resource id")
VERBOSE_OPTION = typer.Option(False, "--verbose", help="Enable debug logging")


@app.command("list")
def list_instances(
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    List classic VMs in a region.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        with console.status("[cyan]Fetching classic VMs...[/cyan]"):
            instances = classic_region.get_classic_instances()
        if not instances:
            console.print(f"[yellow]No classic VMs found in {classic_region.name}[/yellow]")
            raise typer.Exit(0)
        console.print(create_instance_table(instances))
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command()
def show(
    vm_name: str = VM_OPTION,
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show details of one classic VM.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        console.print(create_detail_panel(instance))
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command()
def start(
    vm_name: str = VM_OPTION,
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Start a classic VM and wait until it is running.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        with console.status(f"[cyan]Starting {instance.name}...[/cyan]"):
            instance.start_vm()
        console.print(f"[green]{instance.name} is running[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command()
def stop(
    vm_name: str = VM_OPTION,
    force: bool = typer.Option(False, "--force", help="Force shutdown"),
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Shut down a classic VM and wait until it is stopped.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        with console.status(f"[cyan]Stopping {instance.name}...[/cyan]"):
            instance.stop_vm(ServerStopOptions(is_force=force))
        console.print(f"[green]{instance.name} is stopped[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command("attach-disk")
def attach_disk(
    vm_name: str = VM_OPTION,
    disk_id: str = typer.Option(..., "--disk", "-d", help="Classic disk resource id"),
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Attach a data disk to a classic VM.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        with console.status(f"[cyan]Attaching disk to {instance.name}...[/cyan]"):
            instance.attach_disk(disk_id)
        console.print(f"[green]Disk attached to {instance.name}[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command("detach-disk")
def detach_disk(
    vm_name: str = VM_OPTION,
    disk_id: str = typer.Option(..., "--disk", "-d", help="Disk name, resource id or VHD URI"),
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Detach a data disk from a classic VM.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        with console.status(f"[cyan]Detaching disk from {instance.name}...[/cyan]"):
            instance.detach_disk(disk_id)
        console.print(f"[green]Disk detached from {instance.name}[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command()
def delete(
    vm_name: str = VM_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Delete a classic VM together with its security group and cloud service name.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        if not yes and not typer.confirm(f"Delete classic VM {instance.name}?"):
            raise typer.Exit(0)
        instance.delete_vm()
        console.print(f"[green]{instance.name} deleted[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command("assign-secgroup")
def assign_secgroup(
    vm_name: str = VM_OPTION,
    secgroup_id: str = typer.Option(..., "--secgroup", "-g", help="Classic network security group id"),
    subscription: Optional[str] = SUBSCRIPTION_OPTION,
    region: Optional[str] = REGION_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Associate a classic network security group with a VM.
    """
    setup_logging(verbose)
    classic_region = get_region(subscription, region)
    try:
        instance = find_instance(classic_region, vm_name)
        instance.assign_security_group(secgroup_id)
        console.print(f"[green]Security group assigned to {instance.name}[/green]")
    except CloudProviderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        classic_region.close()


@app.command()
def sizes(
    family: Optional[str] = typer.Option(None, "--family", "-f", help="Filter by name prefix (e.g. 'Standard_D')"),
):
    """
    Show the classic VM size table.
    """
    table = Table(title="Classic VM Sizes", box=box.ROUNDED)
    table.add_column("Size", style="cyan")
    table.add_column("vCPUs", justify="right")
    table.add_column("Memory", justify="right")

    for name, size in CLASSIC_VM_SIZES.items():
        if family and not name.lower().startswith(family.lower()):
            continue
        table.add_row(name, str(size.number_of_cores), format_memory(size.memory_in_mb))

    console.print(table)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
