# Overview: Flask CLI command groups for bootstrap, sample data, and inventory inspection.

# backend/medtrade/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system wipe --yes
#   Delete every row but keep the schema.
# - python -m flask system seed
#   Load sample dealers, product batches, requests, invoices and payments.
#
# Inventory inspection:
# - python -m flask inventory expiry-report --days 60 --dealer-id 1
#   List non-expired batches expiring within the window, soonest first.
#
# Schema migrations (Flask-Migrate):
# - python -m flask db upgrade

import click
from datetime import timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import (
    Dealer, DocumentSequence, Invoice, LedgerEvent, Payment, ProductBatch, RequestStatus, TransferRequest,
)
from .commands import CreateBatch, CreateDealer, CreateInvoice, CreateRequest, RecordPayment, UpdatePayment
from .services import dealer_service, inventory_service, invoice_service, payment_service, request_service
from .money_utils import money_str
from .time_utils import today
from .validation import DomainError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for sample data.")


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """Delete every row (payments, invoices, requests, batches, dealers, ledger)."""
    if not yes:
        click.confirm("WARN This will DELETE all data. Are you sure?", abort=True)

    click.echo("WIPE  Clearing data...")

    # Delete in FK-safe order (children before parents)
    tables = [
        ("Payment", Payment),
        ("Invoice", Invoice),
        ("TransferRequest", TransferRequest),
        ("ProductBatch", ProductBatch),
        ("Dealer", Dealer),
        ("LedgerEvent", LedgerEvent),
        ("DocumentSequence", DocumentSequence),
    ]
    for name, model in tables:
        count = db.session.query(model).delete(synchronize_session=False)
        click.echo(f"  {name:<18} {count} row(s)")

    db.session.commit()
    click.echo("PASS Wipe complete.")


SAMPLE_DEALERS = [
    {
        "user_id": "user_01h4kxt2e8z9y3b1n7m6q5w8r4",
        "business_name": "MediSupply Distributors",
        "gst_number": "27AABCU9603R1ZM",
        "address": "123, Medical Complex, MG Road, Mumbai, Maharashtra - 400001",
        "phone": "9876543210",
        "license_number": "MH-20A-12345",
    },
    {
        "user_id": "user_01h4kxt2e8z9y3b1n7m6q5w8r5",
        "business_name": "PharmaCare Wholesale",
        "gst_number": "29BBCDE1234F1Z5",
        "address": "456, Healthcare Plaza, Brigade Road, Bangalore, Karnataka - 560001",
        "phone": "8765432109",
        "license_number": "KA-21B-67890",
    },
    {
        "user_id": "user_01h4kxt2e8z9y3b1n7m6q5w8r6",
        "business_name": "HealthFirst Traders",
        "gst_number": "07CDFGH5678K2A1",
        "address": "789, Pharma Hub, Connaught Place, New Delhi, Delhi - 110001",
        "phone": "7654321098",
        "license_number": "DL-22C-34567",
    },
    {
        "user_id": "user_01h4kxt2e8z9y3b1n7m6q5w8r7",
        "business_name": "MedPlus Distribution",
        "gst_number": "36EFGHI9012M3B2",
        "address": "321, Medical Square, Park Street, Hyderabad, Telangana - 500001",
        "phone": "9543210987",
        "license_number": "TS-23D-89012",
    },
    {
        "user_id": "user_01h4kxt2e8z9y3b1n7m6q5w8r8",
        "business_name": "Wellness Pharma Suppliers",
        "gst_number": "24GHIJK3456N4C3",
        "address": "654, Healthcare Center, SG Highway, Ahmedabad, Gujarat - 380001",
        "phone": "8432109876",
        "license_number": "GJ-24E-45678",
    },
]

# (dealer index, name, batch, manufacturer, qty, mrp, dealer price, days to expiry)
SAMPLE_BATCHES = [
    (0, "Paracetamol 500mg", "PCM2024001", "Sun Pharma", 1000, "2.50", "1.80", 400),
    (0, "Amoxicillin 250mg", "AMX2024002", "Cipla", 500, "8.00", "6.20", 20),
    (1, "Azithromycin 500mg", "AZM2024003", "Dr. Reddy's", 300, "22.00", "17.50", 75),
    (1, "Cetirizine 10mg", "CTZ2024004", "Mankind Pharma", 800, "3.00", "2.10", -5),
    (2, "Metformin 500mg", "MTF2024005", "Lupin", 1200, "4.50", "3.40", 180),
    (3, "Atorvastatin 10mg", "ATV2024006", "Torrent Pharma", 600, "9.50", "7.00", 28),
    (4, "Omeprazole 20mg", "OMP2024007", "Zydus Cadila", 900, "5.00", "3.80", 300),
]

# (requesting idx, responding idx, batch idx, qty, final status, invoice subtotal or None)
SAMPLE_REQUESTS = [
    (2, 0, 0, 150, RequestStatus.PENDING, None),
    (3, 1, 2, 200, RequestStatus.PENDING, None),
    (0, 1, 2, 100, RequestStatus.CONFIRMED, "8500.00"),
    (2, 3, 5, 250, RequestStatus.CONFIRMED, "12000.00"),
    (1, 0, 1, 160, RequestStatus.COMPLETED, "950.00"),
    (4, 2, 4, 220, RequestStatus.COMPLETED, None),
    (2, 4, 6, 85, RequestStatus.REJECTED, None),
]

# Request chains to reach each final status
_PATHS = {
    RequestStatus.PENDING: [],
    RequestStatus.CONFIRMED: [RequestStatus.CONFIRMED],
    RequestStatus.COMPLETED: [RequestStatus.CONFIRMED, RequestStatus.COMPLETED],
    RequestStatus.REJECTED: [RequestStatus.REJECTED],
}


@system_group.command('seed')
@with_appcontext
def seed():
    """Load sample data through the service layer (skips if dealers exist)."""
    if db.session.query(Dealer.id).first() is not None:
        click.echo("WARN  Dealers already exist, skipping seed. Run 'flask system wipe --yes' first.")
        return

    try:
        dealers = [dealer_service.create_dealer(CreateDealer.from_payload(d)) for d in SAMPLE_DEALERS]
        click.echo(f"PASS Created {len(dealers)} dealers")

        base = today()
        batches = []
        for idx, name, batch_no, maker, qty, mrp, price, days in SAMPLE_BATCHES:
            expiry = base + timedelta(days=days)
            batches.append(inventory_service.create_batch(CreateBatch.from_payload({
                "dealer_id": dealers[idx].id,
                "name": name,
                "batch_number": batch_no,
                "manufacturer": maker,
                "quantity": qty,
                "mrp": mrp,
                "dealer_price": price,
                "manufacturing_date": (expiry - timedelta(days=730)).isoformat(),
                "expiry_date": expiry.isoformat(),
            })))
        click.echo(f"PASS Created {len(batches)} product batches")

        invoices = []
        for req_idx, resp_idx, batch_idx, qty, final, subtotal in SAMPLE_REQUESTS:
            req = request_service.create_request(CreateRequest.from_payload({
                "requesting_dealer_id": dealers[req_idx].id,
                "responding_dealer_id": dealers[resp_idx].id,
                "product_id": batches[batch_idx].id,
                "quantity": qty,
            }))
            for status in _PATHS[final]:
                request_service.transition_request(req.id, status)
            if subtotal is not None:
                invoices.append(invoice_service.create_invoice(
                    CreateInvoice.from_payload({"request_id": req.id, "subtotal": subtotal})
                ))
        click.echo(f"PASS Created {len(SAMPLE_REQUESTS)} requests, {len(invoices)} invoices")

        for n, invoice in enumerate(invoices, start=1):
            payment = payment_service.record_payment(RecordPayment.from_payload({
                "invoice_id": invoice.id,
                "amount": money_str(invoice.total),
                "payment_method": ("NEFT", "RTGS", "UPI")[n % 3],
                "transaction_id": f"TXN{base:%Y%m%d}{n:04d}",
            }))
            if n == 1:
                payment_service.update_payment(payment.id, UpdatePayment(status="COMPLETED"))
        click.echo(f"PASS Recorded {len(invoices)} payments")
    except DomainError as exc:
        db.session.rollback()
        raise click.ClickException(f"Seed failed: {exc.message}")

    click.echo("DONE Sample data loaded.")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('expiry-report')
@click.option('--days', type=int, default=None, help='Window in days (default NEAR_EXPIRY_DAYS)')
@click.option('--dealer-id', type=int, default=None, help='Only batches of this dealer')
@with_appcontext
def expiry_report(days, dealer_id):
    """List batches expiring soon, FEFO order."""
    as_of = today()
    try:
        batches = inventory_service.near_expiry_alerts(days=days, dealer_id=dealer_id, as_of=as_of)
    except DomainError as exc:
        raise click.ClickException(exc.message)

    if not batches:
        click.echo("No batches expiring in the window.")
        return

    click.echo("\n" + "="*96)
    click.echo(f"{'ID':<5} {'Dealer':<7} {'Name':<28} {'Batch':<14} {'Qty':>7} {'Expiry':<11} {'Days':>5} Class")
    click.echo("="*96)
    for b in batches:
        d = inventory_service.days_until_expiry(b, as_of)
        cls = inventory_service.classify_days(d).value
        click.echo(
            f"{b.id:<5} {b.dealer_id:<7} {b.name[:28]:<28} {b.batch_number[:14]:<14} "
            f"{b.quantity:>7} {b.expiry_date.isoformat():<11} {d:>5} {cls}"
        )
    click.echo("="*96 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
