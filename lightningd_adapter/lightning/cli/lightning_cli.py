"""CLI commands for the lightningd adapter."""

import json
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from ...exceptions import LightningdAdapterError
from ...utils.config import get_settings
from ..application.services.lightningd_service import LightningdService
from ..domain.models import DEFAULT_FEE_LIMIT, LightningInvoice, LightningPayment
from ..domain.value_objects import BitcoinAmount, FeeLimit
from ..infrastructure.message_worker import LightningdMessageWorker, open_channel
from ..infrastructure.rpc_transport import LightningdRpcConnector, LightningdRpcTransport

app = typer.Typer(name="lightning", help="lightningd invoices, payments and event worker")
console = Console()
err_console = Console(stderr=True)


def get_service() -> tuple[LightningdService, LightningdRpcConnector]:
    """Build the RPC service from settings."""
    settings = get_settings()
    connector = LightningdRpcConnector(settings.rpc_file, settings.socket_timeout)
    return LightningdService(LightningdRpcTransport(connector), settings=settings), connector


def _fail(error: Exception) -> None:
    err_console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def _print_record(title: str, data: dict) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        if value is not None and value != "":
            table.add_row(key, str(value))
    console.print(table)


@app.command()
def info():
    """Show raw node information (getinfo)."""
    service, connector = get_service()
    try:
        console.print_json(json.dumps(service.get_info()))
    except LightningdAdapterError as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command()
def decode(request: str = typer.Argument(..., help="bolt11 payment request")):
    """Decode a bolt11 payment request."""
    service, connector = get_service()
    try:
        _print_record("Decoded request", service.decode(request).to_dict())
    except LightningdAdapterError as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command()
def invoice(
    amount: str = typer.Option(..., help="Amount, e.g. 50000MSAT or 50SAT"),
    label: str = typer.Option(..., help="Unique invoice label"),
    description: str = typer.Option("", help="Invoice description"),
    expiry: int = typer.Option(3600, help="Expiry in seconds (60 - 31536000)"),
):
    """Request a new invoice."""
    service, connector = get_service()
    try:
        result = service.request(
            LightningInvoice(
                amount=BitcoinAmount.from_native(amount),
                label=label,
                description=description,
                expiry=expiry,
            )
        )
        _print_record("Invoice", result.to_dict())
    except (ValueError, LightningdAdapterError) as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command()
def pay(
    request: str = typer.Argument(..., help="bolt11 payment request"),
    label: str = typer.Option("", help="Payment label"),
    fee_limit: float = typer.Option(
        float(DEFAULT_FEE_LIMIT.percent), help="Maximum fee as a percentage of the amount"
    ),
):
    """Pay a bolt11 request."""
    service, connector = get_service()
    try:
        decoded = service.decode(request)
        payment = LightningPayment(
            request=request,
            destination=decoded.destination,
            amount=decoded.amount,
            fee_limit=FeeLimit(Decimal(str(fee_limit))),
            label=label,
        )
        _print_record("Payment", service.send(payment).to_dict())
    except (ValueError, LightningdAdapterError) as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command("estimate-fee")
def estimate_fee(
    destination: str = typer.Option(..., help="Destination node id"),
    amount: str = typer.Option(..., help="Amount, e.g. 50000MSAT"),
    fee_limit: float = typer.Option(float(DEFAULT_FEE_LIMIT.percent), help="Fee limit percentage"),
):
    """Estimate the routing fee to a node."""
    service, connector = get_service()
    try:
        fee = service.estimate_fee(
            LightningPayment(
                destination=destination,
                amount=BitcoinAmount.from_native(amount),
                fee_limit=FeeLimit(Decimal(str(fee_limit))),
            )
        )
        console.print(f"Estimated fee: [bold]{fee}[/bold] ({fee.sat} sat)")
    except (ValueError, LightningdAdapterError) as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command("invoice-status")
def invoice_status(preimage_hash: str = typer.Argument(..., help="Payment hash")):
    """Look up an invoice by payment hash."""
    service, connector = get_service()
    try:
        result = service.get_invoice(preimage_hash)
        if result is None:
            console.print("Invoice not found")
            raise typer.Exit(1)
        _print_record("Invoice", result.to_dict())
        if result.is_settled:
            console.print("[green]Invoice settled[/green]")
    except LightningdAdapterError as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command("payment-status")
def payment_status(preimage_hash: str = typer.Argument(..., help="Payment hash")):
    """Look up an outgoing payment by payment hash."""
    service, connector = get_service()
    try:
        result = service.get_payment(preimage_hash)
        if result is None:
            console.print("Payment not found")
            raise typer.Exit(1)
        _print_record("Payment", result.to_dict())
        if result.is_completed:
            console.print("[green]Payment completed[/green]")
    except LightningdAdapterError as e:
        _fail(e)
    finally:
        connector.disconnect()


@app.command()
def worker(
    queue: str | None = typer.Option(None, help="Queue to consume (defaults to settings)"),
):
    """Consume lightningd messages and publish domain events."""
    settings = get_settings()
    channel = open_channel(settings.amqp_url)
    message_worker = LightningdMessageWorker(channel, events_channel=settings.events_channel)
    try:
        message_worker.run(queue or settings.consumer_queue)
    except KeyboardInterrupt:
        message_worker.stop()
    except LightningdAdapterError as e:
        _fail(e)
    finally:
        channel.connection.close()
